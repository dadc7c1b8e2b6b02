"""App settings: loaded from environment variables with defaults."""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    DATABASE_URL: str = os.getenv("BABYLOG_DATABASE_URL", "sqlite+aiosqlite:///babylog.db")

    # Empty means timestamps are treated as naive local wall-clock time
    TIMEZONE: str = os.getenv("BABYLOG_TIMEZONE", "")

    # false reproduces the old behaviour: only the start date of a sleep interval is resynced
    RESYNC_ALL_SLEEP_DATES: bool = _env_flag("BABYLOG_RESYNC_ALL_SLEEP_DATES", "true")

    BACKUP_DIR: str = os.getenv("BABYLOG_BACKUP_DIR", "backups")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
