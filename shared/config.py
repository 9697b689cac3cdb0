"""Service configuration loaded from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from shared.data_store import default_db_path
from shared.errors import ConfigError

DEFAULT_API_PORT = 8080

# Names both logging and uvicorn accept
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")
LOG_LEVEL_ALIASES = {"warn": "warning", "fatal": "critical"}


def parse_chat_ids(raw: Optional[str]) -> tuple[int, ...]:
    """Comma-separated chat ids; entries that aren't integers are skipped."""
    if not raw:
        return ()
    ids = []
    for part in raw.split(","):
        try:
            ids.append(int(part.strip()))
        except ValueError:
            continue
    return tuple(ids)


def _parse_port(raw: Optional[str]) -> int:
    try:
        return int(raw) if raw else DEFAULT_API_PORT
    except ValueError:
        return DEFAULT_API_PORT


def parse_log_level(raw: str) -> str:
    """
    Normalize a log level name.

    Raises:
        ConfigError: If the name is not a known level
    """
    level = raw.strip().lower()
    level = LOG_LEVEL_ALIASES.get(level, level)
    if level not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level {raw!r}; use one of: {', '.join(LOG_LEVELS)}")
    return level


@dataclass
class Settings:
    """
    Everything the service reads from its environment.

    An empty allowed_chat_ids means every chat may use the bot.
    notify_chat_ids are the chats that receive broadcasts of API changes;
    they default to the allowed chats.
    """

    bot_token: Optional[str] = None
    allowed_chat_ids: tuple[int, ...] = ()
    notify_chat_ids: tuple[int, ...] = ()
    api_token: Optional[str] = None
    api_host: str = "0.0.0.0"
    api_port: int = DEFAULT_API_PORT
    db_path: Path = field(default_factory=default_db_path)
    log_level: str = "info"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Raises:
            ConfigError: If LOG_LEVEL names an unknown level
        """
        env = os.environ if environ is None else environ

        allowed = parse_chat_ids(env.get("ALLOWED_CHAT_IDS"))
        notify_raw = env.get("NOTIFY_CHAT_IDS")
        notify = parse_chat_ids(notify_raw) if notify_raw is not None else allowed
        db_path = env.get("DB_PATH")

        return cls(
            bot_token=env.get("BOT_TOKEN") or None,
            allowed_chat_ids=allowed,
            notify_chat_ids=notify,
            api_token=env.get("API_TOKEN") or None,
            api_host=env.get("API_HOST", "0.0.0.0"),
            api_port=_parse_port(env.get("API_PORT")),
            db_path=Path(db_path) if db_path else default_db_path(),
            log_level=parse_log_level(env.get("LOG_LEVEL") or "info"),
        )

    def is_chat_allowed(self, chat_id: int) -> bool:
        if not self.allowed_chat_ids:
            return True
        return chat_id in self.allowed_chat_ids

    @property
    def bot_enabled(self) -> bool:
        return bool(self.bot_token)

    @property
    def api_enabled(self) -> bool:
        return bool(self.api_token)
