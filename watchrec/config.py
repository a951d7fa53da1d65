from pydantic import BaseModel, ConfigDict, Field
from functools import lru_cache
import os


def _env(name: str, default: str, **constraints):
    return Field(default_factory=lambda: os.getenv(name, default), **constraints)


class Settings(BaseModel):
    # env values arrive as strings and are coerced by validation
    model_config = ConfigDict(validate_default=True)

    host: str = _env("WATCHREC_HOST", "0.0.0.0")
    port: int = _env("WATCHREC_PORT", "5555", ge=0, le=65535)
    http_host: str = _env("WATCHREC_HTTP_HOST", "0.0.0.0")
    http_port: int = _env("WATCHREC_HTTP_PORT", "8000", ge=0, le=65535)
    tcp_enabled: bool = _env("WATCHREC_TCP_ENABLED", "true")
    # 0 means no admission limit
    max_connections: int = _env("WATCHREC_MAX_CONNECTIONS", "0", ge=0)
    # negative blocks until the store lock is free
    lock_timeout_seconds: float = _env("WATCHREC_LOCK_TIMEOUT", "-1")
    max_line_bytes: int = _env("WATCHREC_MAX_LINE_BYTES", "4096", ge=16)
    recommendation_limit: int = _env("WATCHREC_RECOMMENDATION_LIMIT", "10", ge=1)
    log_level: str = _env("WATCHREC_LOG_LEVEL", "INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
