"""Tests for the command-line interface."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from whatsgate.cli import main, parse_args


@pytest.fixture(autouse=True)
def empty_workdir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    for name in ("API_SECRET_KEY", "PORT", "MAIN_APP_URL", "WHATSAPP_BRIDGE_URL"):
        monkeypatch.delenv(name, raising=False)
    yield
    logger = logging.getLogger("whatsgate")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


class TestParseArgs:
    def test_serve(self) -> None:
        args = parse_args(["-v", "serve"])
        assert args.command == "serve"
        assert args.verbose is True

    def test_resolve_with_name(self) -> None:
        args = parse_args(["resolve", "merhaba", "--name", "Ayşe"])
        assert args.text == "merhaba"
        assert args.name == "Ayşe"

    def test_config_path(self) -> None:
        args = parse_args(["-c", "custom.yaml", "normalize", "0532"])
        assert args.config == Path("custom.yaml")


class TestNormalizeCommand:
    def test_prints_canonical_number(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["normalize", "0532 123 45 67"])
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.strip() == "905321234567"

    def test_invalid_number(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["normalize", "abc"])
        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err


class TestResolveCommand:
    def test_personalized_reply(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["resolve", "Merhaba", "--name", "Ayşe"])
        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "Category: merhaba" in out
        assert "Merhaba Ayşe!" in out

    def test_reserved_keyword(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            main(["resolve", "ping"])
        assert "Reply: pong" in capsys.readouterr().out

    def test_no_match(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["resolve", "xyzxyz"])
        assert exc_info.value.code == 1
        assert "No match" in capsys.readouterr().out

    def test_config_threshold_is_used(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = tmp_path / "strict.yaml"
        config.write_text("commands:\n  threshold: 0.99\n")
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(config), "resolve", "rndvu"])
        assert exc_info.value.code == 1
