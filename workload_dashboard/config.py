"""Configuration for the workload dashboard service."""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    database_url: str = "sqlite:///./dashboard.db"
    log_level: str = "INFO"
    db_pool_size: int = 10
    db_pool_timeout: int = 30
    default_available_hours: float = 40.0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", cls.db_pool_size)),
            db_pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", cls.db_pool_timeout)),
            default_available_hours=float(
                os.getenv("DEFAULT_AVAILABLE_HOURS", cls.default_available_hours)
            ),
        )


settings = Settings.from_env()
