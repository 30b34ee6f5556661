import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database (unset = in-memory stores)
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Auth: HS256 secret for Bearer tokens; X-User-Id header is used when unset
    AUTH_JWT_SECRET: Optional[str] = None

    # Group goals
    DEFAULT_MAX_PARTICIPANTS: int = 10
    TOP_CONTRIBUTORS_LIMIT: int = 5

    # Goals
    MIN_GOAL_VALUE: int = 1
    MAX_GOAL_VALUE: int = 500
    DEFAULT_GOAL_VALUE: int = 100

    # Paging caps
    GOAL_PAGE_LIMIT_MAX: int = 100
    USER_SEARCH_LIMIT_MAX: int = 50

    # App
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("goalkeeper")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = ["DATABASE_URL"]
    if cfg.ENV.lower() == "production":
        required_keys.append("AUTH_JWT_SECRET")

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    if cfg.MIN_GOAL_VALUE > cfg.MAX_GOAL_VALUE:
        message = "MIN_GOAL_VALUE must not exceed MAX_GOAL_VALUE"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
