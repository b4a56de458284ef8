"""Tests for the reply catalog."""

from __future__ import annotations

import pytest

from whatsgate.commands.catalog import (
    DEFAULT_REPLIES,
    DEFAULT_VARIANTS,
    ReplyCatalog,
    ReplyTemplate,
)


class TestReplyTemplate:
    def test_plain_text_without_name(self) -> None:
        template = ReplyTemplate(text="Merhaba!", personalized="Merhaba {name}!")
        assert template.render() == "Merhaba!"

    def test_personalized_with_name(self) -> None:
        template = ReplyTemplate(text="Merhaba!", personalized="Merhaba {name}!")
        assert template.render("Ayşe") == "Merhaba Ayşe!"

    def test_name_ignored_without_personalized_text(self) -> None:
        template = ReplyTemplate(text="Adresimiz")
        assert template.render("Ayşe") == "Adresimiz"


class TestReplyCatalog:
    def test_defaults_cover_every_category(self) -> None:
        assert list(DEFAULT_REPLIES) == list(DEFAULT_VARIANTS)

    def test_render_default_greeting(self, catalog: ReplyCatalog) -> None:
        assert catalog.render("merhaba", name="Mehmet").startswith("Merhaba Mehmet!")

    def test_reserved_reply_default(self, catalog: ReplyCatalog) -> None:
        assert catalog.reserved_reply == "pong"

    def test_unknown_category_raises(self, catalog: ReplyCatalog) -> None:
        with pytest.raises(KeyError):
            catalog.render("bilinmeyen")

    def test_from_mapping_custom_reserved_reply(self) -> None:
        catalog = ReplyCatalog.from_mapping({"a": {"text": "A"}}, reserved_reply="PONG")
        assert catalog.categories == ["a"]
        assert catalog.reserved_reply == "PONG"
        assert catalog.render("a") == "A"
