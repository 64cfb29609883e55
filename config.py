# CampusGate - configuration
import logging
from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    secret_key: str = "dev-secret-change-in-production"
    database_url: str = "sqlite+aiosqlite:///./campusgate.db"
    access_expire_minutes: int = 60
    resolver_timeout_seconds: float = 2.0
    audit_log_path: Path = Path("./data/audit_log.jsonl")
    audit_approvals: bool = True  # record allowed approvals too, not only denials
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "CAMPUSGATE_"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
