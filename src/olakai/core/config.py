# src/olakai/core/config.py
"""Configuration models for the Olakai SDK.

OlakaiSettings is validated once by initialize() and is immutable
afterwards. WrapperConfig and CallContext describe how a single wrapped
provider client tags the calls it reports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator, model_validator

from olakai import __version__
from olakai.contracts.enums import Provider

DEFAULT_DOMAIN = "https://app.olakai.ai"
MONITORING_PATH = "/api/monitoring/prompt"
CONTROL_PATH = "/api/control/prompt"

CustomData = dict[str, str | int | float | bool | None]


def _domain_of(endpoint: str) -> str:
    parts = urlsplit(endpoint)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"endpoint must be an absolute URL, got {endpoint!r}")
    return f"{parts.scheme}://{parts.netloc}"


class OlakaiSettings(BaseModel):
    """Process-wide SDK configuration.

    Endpoints default to the hosted service. When only ``monitor_endpoint``
    is supplied, ``control_endpoint`` is derived from the same domain.
    ``domain`` is accepted as a shorthand for both.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    api_key: str = Field(min_length=1, description="Olakai API key sent as x-api-key")
    monitor_endpoint: str = Field(default=f"{DEFAULT_DOMAIN}{MONITORING_PATH}")
    control_endpoint: str = Field(default=f"{DEFAULT_DOMAIN}{CONTROL_PATH}")
    enable_control: bool = Field(default=False, description="Run the pre-execution control check")
    retries: int = Field(default=4, ge=0, le=10, description="Retries after the first attempt")
    timeout_ms: int = Field(default=30_000, gt=0, description="Per-attempt HTTP timeout")
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_cooldown_ms: int = Field(default=30_000, gt=0)
    debug: bool = False
    verbose: bool = Field(default=False, description="Include payload bodies in debug logs")
    configure_logging: bool = Field(default=False, description="Let initialize() configure structlog")
    json_logs: bool = False
    sdk_version: str = __version__

    @model_validator(mode="before")
    @classmethod
    def derive_endpoints(cls, data: Any) -> Any:
        """Fill unset endpoints from ``domain`` or from the monitor endpoint."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        domain = data.pop("domain", None)
        if domain:
            domain = str(domain).rstrip("/")
            data.setdefault("monitor_endpoint", f"{domain}{MONITORING_PATH}")
            data.setdefault("control_endpoint", f"{domain}{CONTROL_PATH}")
        elif data.get("monitor_endpoint") and not data.get("control_endpoint"):
            data["control_endpoint"] = f"{_domain_of(str(data['monitor_endpoint']))}{CONTROL_PATH}"
        return data

    @field_validator("monitor_endpoint", "control_endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        _domain_of(v)
        return v

    def with_overrides(self, **overrides: Any) -> OlakaiSettings:
        """Copy with ``overrides`` applied and validated.

        Endpoints not named in ``overrides`` are re-derived when a new
        ``domain`` or ``monitor_endpoint`` is given.
        """
        data = self.model_dump()
        if "domain" in overrides:
            del data["monitor_endpoint"], data["control_endpoint"]
        elif "monitor_endpoint" in overrides:
            del data["control_endpoint"]
        return OlakaiSettings(**{**data, **overrides})

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def breaker_cooldown_seconds(self) -> float:
        return self.breaker_cooldown_ms / 1000


class CallContext(BaseModel):
    """Identity and tagging applied to every call made through a wrapped client."""

    model_config = {"frozen": True, "extra": "forbid"}

    user_email: str | None = None
    user_id: str | None = None
    chat_id: str | None = None
    task: str | None = None
    sub_task: str | None = None
    should_score: bool | None = None
    custom_data: CustomData | None = None
    enable_control: bool | None = Field(default=None, description="Overrides the wrapper and global setting when set")
    api_key: str | None = Field(default=None, repr=False, description="Provider key reported (masked) in llmMetadata")


class WrapperConfig(BaseModel):
    """Options for wrap_client()."""

    model_config = {"frozen": True, "extra": "forbid"}

    provider: Provider
    default_context: CallContext = Field(default_factory=CallContext)
    enable_control: bool | None = Field(default=None, description="Overrides the global setting when set")
    sanitize: bool = False


def load_settings(config_path: Path | None = None, **overrides: Any) -> OlakaiSettings:
    """Load settings from the environment and an optional YAML file.

    Uses Dynaconf for multi-source loading with precedence:
    1. Keyword overrides - highest priority
    2. Environment variables (OLAKAI_*)
    3. Config file, when given
    4. Defaults from the pydantic model - lowest priority

    Raises:
        ValidationError: If configuration fails pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    settings_files: list[str] = []
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        settings_files.append(str(config_path))

    dynaconf_settings = Dynaconf(
        envvar_prefix="OLAKAI",
        settings_files=settings_files,
        environments=False,
        load_dotenv=False,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES", "ENVVAR_PREFIX"}
    known = set(OlakaiSettings.model_fields) | {"domain"}
    raw_config = {
        k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys and k.lower() in known
    }
    raw_config.update(overrides)
    return OlakaiSettings(**raw_config)
