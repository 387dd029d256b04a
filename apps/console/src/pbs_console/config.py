from dataclasses import dataclass
from functools import lru_cache
import os


def _to_bool(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_float(value: str | None, *, default: float, minimum: float) -> float:
    if value is None:
        return default
    parsed = float(value)
    return max(minimum, parsed)


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_echo: bool
    pbs_base_url: str
    pbs_node: str
    pbs_api_token: str | None
    pbs_timeout_seconds: float
    pbs_verify_tls: bool
    log_level: str


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=os.getenv(
            "CONSOLE_DATABASE_URL",
            "sqlite+pysqlite:///./data/console.db",
        ),
        db_echo=_to_bool(os.getenv("CONSOLE_DB_ECHO"), default=False),
        pbs_base_url=os.getenv("PBS_BASE_URL", "https://localhost:8007/api2/json"),
        pbs_node=os.getenv("PBS_NODE", "localhost"),
        pbs_api_token=os.getenv("PBS_API_TOKEN") or None,
        pbs_timeout_seconds=_to_float(os.getenv("PBS_TIMEOUT_SECONDS"), default=30.0, minimum=1.0),
        pbs_verify_tls=_to_bool(os.getenv("PBS_VERIFY_TLS"), default=True),
        log_level=os.getenv("CONSOLE_LOG_LEVEL", "INFO").strip().upper(),
    )
