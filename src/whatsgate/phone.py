"""Phone number normalization.

Turns whatever a user typed ("0532 123 45 67", "+90 (532) 123-4567")
into the canonical international digits used for all outbound
addressing.
"""

from __future__ import annotations

import re

from whatsgate.config.settings import PhoneConfig
from whatsgate.domain.errors import InvalidInput

_NON_DIGIT = re.compile(r"\D")


def normalize_phone(raw: str, config: PhoneConfig | None = None) -> str:
    """Return the canonical digit-only number for ``raw``.

    A leading trunk prefix is replaced by the country code, and the
    country code is prepended when missing.

    Raises:
        InvalidInput: If ``raw`` contains no digits.
    """
    if config is None:
        config = PhoneConfig()

    digits = _NON_DIGIT.sub("", raw or "")
    if not digits:
        raise InvalidInput(f"Invalid phone number: {raw!r}")

    if digits.startswith(config.trunk_prefix):
        digits = config.country_code + digits[len(config.trunk_prefix):]
    if not digits.startswith(config.country_code):
        digits = config.country_code + digits
    return digits


def to_chat_id(raw: str, config: PhoneConfig | None = None) -> str:
    """Return the external recipient identifier for a user-entered number."""
    if config is None:
        config = PhoneConfig()
    return normalize_phone(raw, config) + config.chat_suffix
