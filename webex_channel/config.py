from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from webex_channel.channels.plugins.webex.config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    WebexAccountSection,
    WebexSection,
)

# Project root (parent of webex_channel/) - used so .env is found regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Explicitly load .env into os.environ so it works in tests and subprocesses
load_dotenv(_PROJECT_ROOT / ".env")


class Settings(BaseSettings):
    app_name: str = "conversa-webex"
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENV", "ENVIRONMENT"),
    )
    log_level: str = Field(default="INFO", json_schema_extra={"env": "LOG_LEVEL"})
    port: int = Field(default=8000, json_schema_extra={"env": "PORT"})

    # Webex default account
    webex_enabled: bool = Field(
        default=False, json_schema_extra={"env": "WEBEX_ENABLED"}
    )
    webex_token: Optional[str] = Field(
        default=None, json_schema_extra={"env": "WEBEX_TOKEN"}
    )
    webex_webhook_url: Optional[str] = Field(
        default=None, json_schema_extra={"env": "WEBEX_WEBHOOK_URL"}
    )
    webex_webhook_secret: Optional[str] = Field(
        default=None, json_schema_extra={"env": "WEBEX_WEBHOOK_SECRET"}
    )
    webex_dm_policy: str = Field(
        default="allow", json_schema_extra={"env": "WEBEX_DM_POLICY"}
    )
    webex_allow_from: str = Field(
        default="", json_schema_extra={"env": "WEBEX_ALLOW_FROM"}
    )  # comma separated person ids / emails

    # Webex API client
    webex_api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL, json_schema_extra={"env": "WEBEX_API_BASE_URL"}
    )
    webex_max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        json_schema_extra={"env": "WEBEX_MAX_RETRIES"},
    )
    webex_retry_delay_ms: int = Field(
        default=DEFAULT_RETRY_DELAY_MS,
        ge=0,
        json_schema_extra={"env": "WEBEX_RETRY_DELAY_MS"},
    )
    webex_request_timeout_seconds: float = Field(
        default=30.0, json_schema_extra={"env": "WEBEX_REQUEST_TIMEOUT_SECONDS"}
    )

    # Named accounts, JSON in the environment:
    # WEBEX_ACCOUNTS='{"support": {"token": "...", "webhook_url": "..."}}'
    webex_accounts: dict[str, WebexAccountSection] = Field(
        default_factory=dict, json_schema_extra={"env": "WEBEX_ACCOUNTS"}
    )

    # Inbound webhook listener
    webex_webhook_path_prefix: str = Field(
        default="/webhooks/webex",
        json_schema_extra={"env": "WEBEX_WEBHOOK_PATH_PREFIX"},
    )
    webex_max_body_bytes: int = Field(
        default=1024 * 1024, json_schema_extra={"env": "WEBEX_MAX_BODY_BYTES"}
    )

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="allow",
    )

    @property
    def is_production(self) -> bool:
        """Check if the current environment is production."""
        return self.environment.lower() == "production"

    @property
    def is_test(self) -> bool:
        """Check if the current environment is test."""
        return self.environment.lower() == "test"

    @property
    def allow_from_list(self) -> list[str]:
        return [e.strip() for e in self.webex_allow_from.split(",") if e.strip()]

    def webex_section(self) -> WebexSection:
        """Build the channels.webex section: the default account plus named accounts."""
        return WebexSection(
            enabled=self.webex_enabled,
            token=self.webex_token,
            webhook_url=self.webex_webhook_url,
            webhook_secret=self.webex_webhook_secret,
            dm_policy=self.webex_dm_policy,
            allow_from=self.allow_from_list or None,
            api_base_url=self.webex_api_base_url,
            max_retries=self.webex_max_retries,
            retry_delay_ms=self.webex_retry_delay_ms,
            accounts=dict(self.webex_accounts),
        )


def get_settings() -> Settings:
    """Get application settings from the environment."""
    return Settings()
