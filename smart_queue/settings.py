import logging
from functools import cached_property
from typing import Any, List, Optional

from pydantic import (
    PostgresDsn,
    RedisDsn,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", frozen=True, extra="ignore")

    DATABASE_DSN: Optional[PostgresDsn] = None
    REDIS_DSN: Optional[RedisDsn] = None
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    LOG_LEVEL: str = "info"
    CORS_ORIGINS: List[str] = ["*"]
    AVERAGE_MINUTES_PER_TICKET: int = 2
    SEQUENCING_RETRY_LIMIT: int = 5

    @field_validator("DATABASE_DSN", "REDIS_DSN", mode="wrap")
    @classmethod
    def drop_invalid_dsn(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except ValidationError as e:
            logger.error(
                "ignoring invalid %s: %s", info.field_name, e.errors()[0]["msg"]
            )
            return None

    @computed_field  # type: ignore[misc]
    @cached_property
    def REDIS_URL(self) -> Optional[str]:
        return self.REDIS_DSN.unicode_string() if self.REDIS_DSN else None

    @computed_field  # type: ignore[misc]
    @cached_property
    def DATABASE_URL(self) -> Optional[str]:
        return self.DATABASE_DSN.unicode_string() if self.DATABASE_DSN else None
