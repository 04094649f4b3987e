from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    # Simulation period of the tick scheduler.
    tick_interval_ms: int = 50
    # Delay between two enemies of the same wave.
    spawn_stagger_ms: int = 1000
    # Session joined when a client does not name one.
    default_session_id: str = "default"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            host=os.environ.get("HOST", cls.host),
            port=int(os.environ.get("PORT", cls.port)),
            tick_interval_ms=int(os.environ.get("TICK_INTERVAL_MS", cls.tick_interval_ms)),
            spawn_stagger_ms=int(os.environ.get("SPAWN_STAGGER_MS", cls.spawn_stagger_ms)),
            default_session_id=os.environ.get("DEFAULT_SESSION_ID", cls.default_session_id),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level).upper(),
        )


def get_settings(*, env_file: Path | None = None) -> Settings:
    """Read settings from the environment, after loading a `.env` file if there is one.

    Values already exported in the shell win over the file.
    """

    env_path = env_file or Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)
    return Settings.from_env()
