"""Reply catalog: static responses for each recognized command category.

Also holds the default command table (category -> phrase variants) so
that both tables live next to each other and can be overridden together
from configuration.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


# Category order is significant: the resolver breaks ties by first-seen
# category, so this table is iterated in insertion order.
DEFAULT_VARIANTS: dict[str, list[str]] = {
    "merhaba": [
        "merhaba", "merhabalar", "mrb", "mrhb", "selam", "slm",
        "selamlar", "iyi günler", "günaydın", "hello", "hi",
    ],
    "adres": [
        "adres", "adresiniz", "adres nedir", "adresi", "nerede",
        "neredesiniz", "konum", "yol tarifi", "lokasyon",
    ],
    "randevu": [
        "randevu", "randevu al", "randevu almak istiyorum", "rndv",
        "randevü", "rezervasyon", "müsait misiniz",
    ],
    "iletisim": [
        "iletişim", "iletisim", "telefon", "numara", "tel",
        "bize ulaşın", "ulaşım", "e-posta",
    ],
    "menu": [
        "menü", "menu", "ana menü", "ana menu", "geri", "başa dön",
        "yardım", "yardim",
    ],
}

DEFAULT_REPLIES: dict[str, dict[str, str]] = {
    "merhaba": {
        "text": "Merhaba! Size nasıl yardımcı olabiliriz? Menü için \"menü\" yazabilirsiniz.",
        "personalized": "Merhaba {name}! Size nasıl yardımcı olabiliriz? Menü için \"menü\" yazabilirsiniz.",
    },
    "adres": {
        "text": "Adresimizi ve yol tarifini web sitemizin iletişim sayfasında bulabilirsiniz.",
    },
    "randevu": {
        "text": "Randevu almak için lütfen uygun olduğunuz gün ve saati yazın, ekibimiz size dönüş yapacaktır.",
        "personalized": "{name}, randevu almak için lütfen uygun olduğunuz gün ve saati yazın, ekibimiz size dönüş yapacaktır.",
    },
    "iletisim": {
        "text": "Bize bu numaradan mesaj yoluyla veya mesai saatlerinde telefonla ulaşabilirsiniz.",
    },
    "menu": {
        "text": (
            "Ana menü:\n"
            "- merhaba\n"
            "- adres\n"
            "- randevu\n"
            "- iletişim"
        ),
    },
}

DEFAULT_RESERVED_REPLY = "pong"


class ReplyTemplate(BaseModel):
    """Response text for one command category."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Reply used when the sender's name is unknown")
    personalized: str | None = Field(
        default=None, description="Reply with a {name} placeholder for known senders"
    )

    def render(self, name: str | None = None) -> str:
        if name and self.personalized:
            return self.personalized.format(name=name)
        return self.text


class ReplyCatalog:
    """Maps command categories to reply templates.

    Example usage::

        catalog = ReplyCatalog.from_mapping(DEFAULT_REPLIES)
        catalog.render("merhaba", name="Ayşe")
    """

    def __init__(
        self,
        templates: dict[str, ReplyTemplate],
        reserved_reply: str = DEFAULT_RESERVED_REPLY,
    ) -> None:
        self._templates = dict(templates)
        self._reserved_reply = reserved_reply

    @classmethod
    def from_mapping(
        cls,
        replies: dict[str, dict[str, str]],
        reserved_reply: str = DEFAULT_RESERVED_REPLY,
    ) -> ReplyCatalog:
        templates = {
            category: ReplyTemplate(**entry) for category, entry in replies.items()
        }
        return cls(templates, reserved_reply=reserved_reply)

    @property
    def reserved_reply(self) -> str:
        return self._reserved_reply

    @property
    def categories(self) -> list[str]:
        return list(self._templates)

    def render(self, category: str, name: str | None = None) -> str:
        """Render the reply for a category.

        Raises:
            KeyError: If the category has no template.
        """
        return self._templates[category].render(name)
