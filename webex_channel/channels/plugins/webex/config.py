"""
Webex account configuration.

`WebexConfig` is the settings of one account. `WebexSection` is the
`channels.webex` block of the host config: top-level values describe the
default account and `accounts` holds named accounts that override them.
Section helpers never mutate their input; they return a new section.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from webex_channel.errors import ChannelConfigError

DEFAULT_ACCOUNT_ID = "default"
DEFAULT_API_BASE_URL = "https://webexapis.com/v1"
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000

_HTTP_URL = TypeAdapter(AnyHttpUrl)

# Top-level keys that belong to the default account only.
_DEFAULT_ACCOUNT_CREDENTIALS = (
    "token",
    "webhook_url",
    "webhook_secret",
    "dm_policy",
    "allow_from",
)


class DmPolicy(str, Enum):
    """Access rule for direct (1:1) conversations."""

    ALLOW = "allow"
    DENY = "deny"
    ALLOWLISTED = "allowlisted"


class WebexConfig(BaseModel):
    """Settings of a single Webex account. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    token: str = ""
    webhook_url: str = ""
    dm_policy: str = DmPolicy.ALLOW.value
    allow_from: Optional[list[str]] = None
    webhook_secret: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS


def validate_config(config: WebexConfig) -> None:
    """Raise ChannelConfigError if the account cannot be started with this config."""
    if not config.token:
        raise ChannelConfigError("Webex channel config requires a token")
    if not config.webhook_url:
        raise ChannelConfigError("Webex channel config requires a webhook_url")
    if not config.dm_policy:
        raise ChannelConfigError("Webex channel config requires a dm_policy")
    try:
        policy = DmPolicy(config.dm_policy)
    except ValueError as e:
        raise ChannelConfigError(
            f"Webex channel config has unknown dm_policy: {config.dm_policy!r}"
        ) from e
    if policy is DmPolicy.ALLOWLISTED and not config.allow_from:
        raise ChannelConfigError(
            'Webex channel config requires allow_from when dm_policy is "allowlisted"'
        )
    try:
        _HTTP_URL.validate_python(config.webhook_url)
    except PydanticValidationError as e:
        raise ChannelConfigError(
            "Webex channel config webhook_url must be a valid URL"
        ) from e
    if config.max_retries < 0:
        raise ChannelConfigError("Webex channel config max_retries must be >= 0")
    if config.retry_delay_ms < 0:
        raise ChannelConfigError("Webex channel config retry_delay_ms must be >= 0")


class WebexAccountSection(BaseModel):
    """Named account entry; unset values fall back to the section."""

    enabled: Optional[bool] = None
    name: Optional[str] = None
    token: Optional[str] = None
    webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None
    dm_policy: Optional[str] = None
    allow_from: Optional[list[str]] = None
    api_base_url: Optional[str] = None
    max_retries: Optional[int] = None
    retry_delay_ms: Optional[int] = None


class WebexSection(WebexAccountSection):
    """The channels.webex block: default account plus named accounts."""

    accounts: dict[str, WebexAccountSection] = Field(default_factory=dict)


class ResolvedWebexAccount(BaseModel):
    """An account id with its merged config and lifecycle flags."""

    account_id: str
    name: Optional[str] = None
    enabled: bool = False
    configured: bool = False
    config: WebexConfig = Field(default_factory=WebexConfig)

    @property
    def api_base_url(self) -> str:
        return self.config.api_base_url or DEFAULT_API_BASE_URL


def _pick(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _build_config(
    account: WebexAccountSection, fallback: Optional[WebexAccountSection]
) -> WebexConfig:
    fallback = fallback or WebexAccountSection()
    return WebexConfig(
        token=_pick(account.token, fallback.token) or "",
        webhook_url=_pick(account.webhook_url, fallback.webhook_url) or "",
        webhook_secret=_pick(account.webhook_secret, fallback.webhook_secret),
        dm_policy=_pick(account.dm_policy, fallback.dm_policy, DmPolicy.ALLOW.value),
        allow_from=_pick(account.allow_from, fallback.allow_from),
        api_base_url=_pick(
            account.api_base_url, fallback.api_base_url, DEFAULT_API_BASE_URL
        ),
        max_retries=_pick(
            account.max_retries, fallback.max_retries, DEFAULT_MAX_RETRIES
        ),
        retry_delay_ms=_pick(
            account.retry_delay_ms, fallback.retry_delay_ms, DEFAULT_RETRY_DELAY_MS
        ),
    )


def list_account_ids(section: Optional[WebexSection]) -> list[str]:
    """Account ids present in the section. The default account comes first."""
    if section is None:
        return []
    ids: list[str] = []
    if section.token:
        ids.append(DEFAULT_ACCOUNT_ID)
    for account_id in section.accounts:
        if account_id != DEFAULT_ACCOUNT_ID:
            ids.append(account_id)
    return ids


def resolve_account(
    section: Optional[WebexSection], account_id: str = DEFAULT_ACCOUNT_ID
) -> ResolvedWebexAccount:
    """
    Merge a named account over the section defaults.

    Unknown accounts resolve as disabled and unconfigured rather than raising.
    """
    if section is None:
        return ResolvedWebexAccount(account_id=account_id)

    named = section.accounts.get(account_id)
    if named is not None:
        config = _build_config(named, section)
        return ResolvedWebexAccount(
            account_id=account_id,
            name=named.name,
            enabled=named.enabled is not False,
            configured=bool(config.token and config.webhook_url),
            config=config,
        )

    if account_id == DEFAULT_ACCOUNT_ID:
        config = _build_config(section, None)
        return ResolvedWebexAccount(
            account_id=account_id,
            name=section.name,
            enabled=section.enabled is not False,
            configured=bool(config.token and config.webhook_url),
            config=config,
        )

    return ResolvedWebexAccount(account_id=account_id)


def set_account_enabled(
    section: Optional[WebexSection], account_id: str, enabled: bool
) -> WebexSection:
    section = section or WebexSection()
    if account_id == DEFAULT_ACCOUNT_ID:
        return section.model_copy(update={"enabled": enabled})
    accounts = dict(section.accounts)
    current = accounts.get(account_id) or WebexAccountSection()
    accounts[account_id] = current.model_copy(update={"enabled": enabled})
    return section.model_copy(update={"accounts": accounts})


def delete_account(section: Optional[WebexSection], account_id: str) -> WebexSection:
    section = section or WebexSection()
    if account_id == DEFAULT_ACCOUNT_ID:
        return section.model_copy(
            update={key: None for key in _DEFAULT_ACCOUNT_CREDENTIALS}
        )
    accounts = {k: v for k, v in section.accounts.items() if k != account_id}
    return section.model_copy(update={"accounts": accounts})


def describe_account(account: ResolvedWebexAccount) -> dict[str, Any]:
    return {
        "account_id": account.account_id,
        "name": account.name,
        "enabled": account.enabled,
        "configured": account.configured,
        "base_url": account.api_base_url,
    }


def normalize_allow_entry(raw: str) -> str:
    return raw.strip().lower()


def format_allow_from(allow_from: list[str]) -> list[str]:
    return [normalize_allow_entry(entry) for entry in allow_from]
