from typing import Optional

import structlog
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHATSTREAM_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    OPENAI_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("CHATSTREAM_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    API_URL: str = DEFAULT_API_URL
    MODEL: str = "gpt-3.5-turbo"
    TEMPERATURE: Optional[float] = None
    SYSTEM_PROMPT: str = DEFAULT_SYSTEM_PROMPT
    TIMEOUT_SECONDS: float = 60.0
    # cap on bytes read from a non-200 body before classifying it
    ERROR_BODY_LIMIT: int = Field(default=64 * 1024, gt=0)
    STRICT_STREAM: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @field_validator("OPENAI_API_KEY")
    @classmethod
    def _warn_on_padded_key(cls, v: str) -> str:
        check_api_key(v)
        return v


def mask_key(key: str) -> str:
    """Render an API key for logs: only the last four characters survive."""
    key = (key or "").strip()
    if len(key) <= 4:
        return "****"
    return f"****{key[-4:]}"


def check_api_key(key: str) -> None:
    # Keys pasted from files often carry a trailing newline; the server
    # rejects those with a confusing auth error, so flag it early.
    if key and key != key.rstrip():
        logger.warning("api_key_trailing_whitespace", key=mask_key(key))


settings = Settings()
