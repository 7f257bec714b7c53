"""Tests for environment configuration and structured game-event logging."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from framework.logging import get_logger, log_game_event
from server import settings as settings_module
from server.settings import GameSettings


def test_load_dotenv_sets_missing_vars(tmp_path: Path, monkeypatch) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text("CROSSBOARD_MAX_PLAYERS=4\n# comment\nexport CROSSBOARD_LOG_LEVEL='debug'\n", encoding="utf-8")
    monkeypatch.delenv("CROSSBOARD_MAX_PLAYERS", raising=False)
    monkeypatch.delenv("CROSSBOARD_LOG_LEVEL", raising=False)
    monkeypatch.setattr(settings_module, "_DOTENV_LOADED", False)

    settings_module.load_dotenv(dotenv)

    assert os.getenv("CROSSBOARD_MAX_PLAYERS") == "4"
    assert os.getenv("CROSSBOARD_LOG_LEVEL") == "debug"


def test_settings_defaults_without_environment(monkeypatch) -> None:
    monkeypatch.setattr(settings_module, "_DOTENV_LOADED", True)
    for name in list(os.environ):
        if name.startswith(settings_module.ENV_PREFIX):
            monkeypatch.delenv(name)

    settings = GameSettings.from_env()

    assert settings.max_players == 8
    assert settings.cards_per_player == 5
    assert settings.session_timeout_seconds == 30 * 60
    assert settings.store_dir is None
    assert settings.deck_seed is None


def test_settings_read_prefixed_variables(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(settings_module, "_DOTENV_LOADED", True)
    monkeypatch.setenv("CROSSBOARD_MAX_PLAYERS", "4")
    monkeypatch.setenv("CROSSBOARD_CARDS_PER_PLAYER", "3")
    monkeypatch.setenv("CROSSBOARD_STORE_DIR", str(tmp_path))
    monkeypatch.setenv("CROSSBOARD_DECK_SEED", "99")
    monkeypatch.setenv("CROSSBOARD_LOG_JSON", "yes")
    monkeypatch.setenv("CROSSBOARD_CORS_ORIGINS", "http://a.test, http://b.test")

    settings = GameSettings.from_env()

    assert settings.max_players == 4
    assert settings.cards_per_player == 3
    assert settings.store_dir == tmp_path
    assert settings.deck_seed == 99
    assert settings.log_json is True
    assert settings.cors_origins == ("http://a.test", "http://b.test")


def test_settings_reject_invalid_numbers(monkeypatch) -> None:
    monkeypatch.setattr(settings_module, "_DOTENV_LOADED", True)
    monkeypatch.setenv("CROSSBOARD_MAX_PLAYERS", "1")
    with pytest.raises(ValueError, match=">= 2"):
        GameSettings.from_env()

    monkeypatch.setenv("CROSSBOARD_MAX_PLAYERS", "many")
    with pytest.raises(ValueError, match="must be an integer"):
        GameSettings.from_env()


def test_game_events_are_logged_with_their_data() -> None:
    with capture_logs() as captured:
        log_game_event("move_executed", session_id="s1", player_id="p1")
        log_game_event("move_executed_rejected", level="warning", session_id="s1")

    assert captured[0]["event"] == "game_event"
    assert captured[0]["game_event"] == "move_executed"
    assert captured[0]["game_data"] == {"session_id": "s1", "player_id": "p1"}
    assert captured[1]["log_level"] == "warning"


def test_loggers_live_under_the_package_namespace() -> None:
    with capture_logs() as captured:
        get_logger("tests").info("hello", answer=42)

    assert captured == [{"event": "hello", "answer": 42, "log_level": "info"}]
