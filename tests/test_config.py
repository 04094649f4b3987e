from __future__ import annotations

from pathlib import Path

import pytest

from tower_defense.config import Settings, get_settings

_VARS = ("HOST", "PORT", "TICK_INTERVAL_MS", "SPAWN_STAGGER_MS", "DEFAULT_SESSION_ID", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so monkeypatch remembers to drop whatever load_dotenv writes back.
    for name in _VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults() -> None:
    s = Settings.from_env()

    assert s.port == 3000
    assert s.tick_interval_ms == 50
    assert s.spawn_stagger_ms == 1000
    assert s.default_session_id == "default"
    assert s.log_level == "INFO"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "4000")
    monkeypatch.setenv("TICK_INTERVAL_MS", "20")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    s = Settings.from_env()

    assert (s.port, s.tick_interval_ms, s.log_level) == (4000, 20, "DEBUG")


def test_dotenv_file_is_loaded_but_shell_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("PORT=5000\nDEFAULT_SESSION_ID=lobby\n")
    monkeypatch.setenv("PORT", "4000")

    s = get_settings(env_file=env_file)

    assert s.port == 4000
    assert s.default_session_id == "lobby"
