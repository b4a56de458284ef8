"""Command resolution and reply catalog.

Public API:
    CommandResolver -- Fuzzy text-to-category resolver
    ReplyCatalog -- Category-to-reply templates
"""

from whatsgate.commands.catalog import (
    DEFAULT_REPLIES,
    DEFAULT_RESERVED_REPLY,
    DEFAULT_VARIANTS,
    ReplyCatalog,
    ReplyTemplate,
)
from whatsgate.commands.resolver import CommandResolver, sequence_ratio

__all__ = [
    "CommandResolver",
    "DEFAULT_REPLIES",
    "DEFAULT_RESERVED_REPLY",
    "DEFAULT_VARIANTS",
    "ReplyCatalog",
    "ReplyTemplate",
    "sequence_ratio",
]
