import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///./chatroom.db"
    port: int = 5000
    sweep_interval: float = 15.0
    heartbeat_timeout: float = 10.0
    sql_echo: bool = False
    log_level: str = "INFO"


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    # Load .env
    load_dotenv()
    defaults = Settings()
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        port=int(os.getenv("PORT", defaults.port)),
        sweep_interval=float(os.getenv("SWEEP_INTERVAL", defaults.sweep_interval)),
        heartbeat_timeout=float(
            os.getenv("HEARTBEAT_TIMEOUT", defaults.heartbeat_timeout)
        ),
        sql_echo=_flag(os.getenv("SQL_ECHO", "false")),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )
