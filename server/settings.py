"""Environment-driven configuration for the Crossboard server."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path

from crossboard.crossboard_state import DEFAULT_CARDS_PER_PLAYER, DEFAULT_MAX_PLAYERS

ENV_PREFIX = "CROSSBOARD_"

_DOTENV_LOADED = False


def load_dotenv(path: str | Path = ".env") -> None:
    """Load environment variables from a .env file without overriding existing values."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return

    dotenv_path = Path(path)
    if not dotenv_path.exists():
        _DOTENV_LOADED = True
        return

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[7:].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if value.startswith(("'", '"')) and value.endswith(("'", '"')) and len(value) >= 2:
            value = value[1:-1]
        os.environ.setdefault(key, value)

    _DOTENV_LOADED = True


def getenv_any(*names: str, default: str | None = None) -> str | None:
    """Return first defined env var from a list of candidate names."""
    load_dotenv()
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def _env_int(name: str, default: int, *, minimum: int) -> int:
    raw = getenv_any(f"{ENV_PREFIX}{name}")
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer; received {raw!r}.") from exc
    if value < minimum:
        raise ValueError(f"{ENV_PREFIX}{name} must be >= {minimum}; received {value}.")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = getenv_any(f"{ENV_PREFIX}{name}")
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class GameSettings:
    """Server and game configuration."""

    max_players: int = DEFAULT_MAX_PLAYERS
    cards_per_player: int = DEFAULT_CARDS_PER_PLAYER
    session_timeout_minutes: int = 30
    reaper_interval_seconds: int = 60
    store_dir: Path | None = None
    cards_path: Path | None = None
    deck_seed: int | None = None
    log_level: str = "INFO"
    log_json: bool = False
    cors_origins: tuple[str, ...] = field(default=("http://localhost:5173", "http://127.0.0.1:5173"))

    @property
    def session_timeout_seconds(self) -> float:
        return self.session_timeout_minutes * 60.0

    @classmethod
    def from_env(cls) -> "GameSettings":
        """Read ``CROSSBOARD_*`` variables, falling back to defaults."""
        store_dir = getenv_any(f"{ENV_PREFIX}STORE_DIR")
        cards_path = getenv_any(f"{ENV_PREFIX}CARDS_PATH")
        raw_seed = getenv_any(f"{ENV_PREFIX}DECK_SEED")
        raw_origins = getenv_any(f"{ENV_PREFIX}CORS_ORIGINS")
        defaults = cls()
        return cls(
            max_players=_env_int("MAX_PLAYERS", defaults.max_players, minimum=2),
            cards_per_player=_env_int("CARDS_PER_PLAYER", defaults.cards_per_player, minimum=1),
            session_timeout_minutes=_env_int("SESSION_TIMEOUT_MINUTES", defaults.session_timeout_minutes, minimum=1),
            reaper_interval_seconds=_env_int("REAPER_INTERVAL_SECONDS", defaults.reaper_interval_seconds, minimum=1),
            store_dir=Path(store_dir) if store_dir else None,
            cards_path=Path(cards_path) if cards_path else None,
            deck_seed=int(raw_seed) if raw_seed else None,
            log_level=getenv_any(f"{ENV_PREFIX}LOG_LEVEL", default=defaults.log_level) or defaults.log_level,
            log_json=_env_bool("LOG_JSON", defaults.log_json),
            cors_origins=(
                tuple(origin.strip() for origin in raw_origins.split(",") if origin.strip())
                if raw_origins
                else defaults.cors_origins
            ),
        )
