"""Certificate service configuration management."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator

from cert_lifecycle_manager.integrations.cloud.endpoints import DEFAULT_API_HOST
from cert_lifecycle_manager.integrations.cloud.exceptions import CloudConfigError

_SCHEME_RE = re.compile(r"^http(|s)://")


def normalize_url(url: str) -> str:
    """Normalize a service base URL.

    Accepts a bare host or a scheme-prefixed URL. The result is lower-cased,
    always uses ``https://`` and always ends with ``/``. An empty value
    falls back to the default service host.

    Args:
        url: Host or URL supplied by the caller.

    Returns:
        Normalized base URL.
    """
    if not url:
        url = DEFAULT_API_HOST
    modified = url.lower()
    if _SCHEME_RE.match(modified):
        modified = _SCHEME_RE.sub("https://", modified, count=1)
    else:
        modified = "https://" + modified
    if not modified.endswith("/"):
        modified += "/"
    return modified


class CloudConfig(BaseModel):
    """Certificate service configuration."""

    api_key: SecretStr = Field(..., description="Service API key")
    base_url: str = Field(
        default="", validate_default=True, description="Service host or base URL"
    )
    zone: str | None = Field(
        default=None, description="Default zone as 'Application\\TemplateAlias'"
    )
    timeout: int = Field(default=30, description="HTTP timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify the service TLS certificate")
    poll_interval: float = Field(default=2.0, description="Seconds between issuance polls")
    import_settle_delay: float = Field(
        default=1.0, description="Seconds to wait before looking up an imported certificate"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Normalize the base URL."""
        return normalize_url(v)

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("poll_interval", "import_settle_delay")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Validate delays are non-negative."""
        if v < 0:
            raise ValueError("delay must be non-negative")
        return v

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the config file path.

        Returns:
            Path to the config file (~/.config/certlm/cloud.yaml).
        """
        return Path.home() / ".config" / "certlm" / "cloud.yaml"

    @classmethod
    def load(cls) -> CloudConfig:
        """Load configuration from environment or file.

        Priority:
        1. Environment variables (CERTLM_CLOUD_API_KEY, CERTLM_CLOUD_URL,
           CERTLM_CLOUD_ZONE)
        2. Config file (~/.config/certlm/cloud.yaml)

        Returns:
            Loaded configuration.

        Raises:
            CloudConfigError: If configuration is missing or invalid.
        """
        env_key = os.environ.get("CERTLM_CLOUD_API_KEY")
        if env_key:
            return cls(
                api_key=SecretStr(env_key),
                base_url=os.environ.get("CERTLM_CLOUD_URL", ""),
                zone=os.environ.get("CERTLM_CLOUD_ZONE"),
            )

        config_path = cls.get_config_path()
        if not config_path.exists():
            raise CloudConfigError(
                "Certificate service not configured",
                details=f"Set CERTLM_CLOUD_API_KEY or create {config_path}",
            )

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CloudConfigError(
                "Invalid config file format",
                details=str(e),
            ) from e

        if not isinstance(data, dict) or "api_key" not in data:
            raise CloudConfigError(
                "Invalid config file",
                details="Missing 'api_key' in config file",
            )

        data["api_key"] = SecretStr(str(data["api_key"]))
        try:
            return cls(**data)
        except ValueError as e:
            raise CloudConfigError("Invalid configuration", details=str(e)) from e

    def save(self) -> None:
        """Save configuration to file.

        Creates the config directory if needed and restricts the file to
        owner read/write.
        """
        config_path = self.get_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data: dict[str, Any] = {
            "api_key": self.api_key.get_secret_value(),
            "base_url": self.base_url,
            "timeout": self.timeout,
            "verify_ssl": self.verify_ssl,
            "poll_interval": self.poll_interval,
            "import_settle_delay": self.import_settle_delay,
        }
        if self.zone:
            data["zone"] = self.zone

        with config_path.open("w") as f:
            yaml.safe_dump(data, f, default_flow_style=False)

        config_path.chmod(0o600)

    @classmethod
    def exists(cls) -> bool:
        """Check if configuration is available.

        Returns:
            True if the environment provides an API key or the config file exists.
        """
        if os.environ.get("CERTLM_CLOUD_API_KEY"):
            return True
        return cls.get_config_path().exists()
