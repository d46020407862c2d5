"""SP configuration management.

Loads SP settings from a config.yaml file and environment variables.
Environment variables take precedence over config file settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

import httpx
import yaml

from samlsp.core.crypto import load_certificate, load_private_key
from samlsp.core.errors import ConfigurationError
from samlsp.core.saml.fetch import DEFAULT_RETRY_COUNT, DEFAULT_RETRY_DELAY, DEFAULT_TIMEOUT
from samlsp.core.logging import LoggingClient
from samlsp.middleware import Middleware, Options

# Default config locations
DEFAULT_CONFIG_DIR = Path.home() / ".samlsp"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

# Environment variable prefix
ENV_PREFIX = "SAMLSP_"


@dataclass
class SPSettings:
    """Service provider settings as read from file and environment."""

    url: str | None = None
    key_file: Path | None = None
    cert_file: Path | None = None
    idp_metadata_url: str | None = None
    idp_metadata_file: Path | None = None
    cookie_name: str | None = None
    cookie_max_age: int | None = None
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_delay: float = DEFAULT_RETRY_DELAY
    timeout: float = DEFAULT_TIMEOUT
    force_authn: bool = False
    allow_idp_initiated: bool = False
    config_path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], config_path: Path | None = None) -> SPSettings:
        """Create SPSettings from a dictionary."""
        try:
            return cls(
                url=data.get("url"),
                key_file=Path(data["key_file"]).expanduser() if data.get("key_file") else None,
                cert_file=Path(data["cert_file"]).expanduser() if data.get("cert_file") else None,
                idp_metadata_url=data.get("idp_metadata_url"),
                idp_metadata_file=(
                    Path(data["idp_metadata_file"]).expanduser() if data.get("idp_metadata_file") else None
                ),
                cookie_name=data.get("cookie_name"),
                cookie_max_age=(
                    int(data["cookie_max_age"]) if data.get("cookie_max_age") is not None else None
                ),
                retry_count=int(data.get("retry_count", DEFAULT_RETRY_COUNT)),
                retry_delay=float(data.get("retry_delay", DEFAULT_RETRY_DELAY)),
                timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
                force_authn=_parse_bool(data.get("force_authn", False)),
                allow_idp_initiated=_parse_bool(data.get("allow_idp_initiated", False)),
                config_path=config_path,
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "url": self.url,
            "key_file": str(self.key_file) if self.key_file else None,
            "cert_file": str(self.cert_file) if self.cert_file else None,
            "idp_metadata_url": self.idp_metadata_url,
            "idp_metadata_file": str(self.idp_metadata_file) if self.idp_metadata_file else None,
            "cookie_name": self.cookie_name,
            "cookie_max_age": self.cookie_max_age,
            "retry_count": self.retry_count,
            "retry_delay": self.retry_delay,
            "timeout": self.timeout,
            "force_authn": self.force_authn,
            "allow_idp_initiated": self.allow_idp_initiated,
        }

    def save(self, path: Path | None = None) -> None:
        """Save settings to a YAML file.

        Args:
            path: Path to save to. Uses config_path or default if not specified.
        """
        save_path = path or self.config_path or DEFAULT_CONFIG_FILE
        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)

    def to_options(self, http_client: httpx.Client | None = None) -> Options:
        """Load key material and build middleware options.

        Raises:
            ConfigurationError: If a required setting is missing or the key
                material cannot be loaded.
        """
        if not self.url:
            raise ConfigurationError("url is not configured")
        if not self.key_file:
            raise ConfigurationError("key_file is not configured")
        if not self.cert_file:
            raise ConfigurationError("cert_file is not configured")

        return Options(
            url=self.url,
            key=load_private_key(self.key_file),
            certificate=load_certificate(self.cert_file),
            allow_idp_initiated=self.allow_idp_initiated,
            idp_metadata_url=self.idp_metadata_url,
            http_client=http_client,
            cookie_max_age=(
                timedelta(seconds=self.cookie_max_age) if self.cookie_max_age else None
            ),
            cookie_name=self.cookie_name,
            force_authn=self.force_authn,
            retry_count=self.retry_count,
            retry_delay=self.retry_delay,
        )


def _parse_bool(value: Any) -> bool:
    """Interpret a config value as a boolean; strings use the env var spelling."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def _get_env_bool(key: str, default: bool) -> bool:
    """Get a boolean from environment variable."""
    value = os.environ.get(key)
    if value is None:
        return default
    return _parse_bool(value)


def _get_env_number(key: str, default: Any, convert: type) -> Any:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return convert(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number: {value!r}") from e


def load_settings(config_path: Path | None = None) -> SPSettings:
    """Load SP settings.

    Settings are loaded in this order (later values override earlier):
    1. Default values
    2. config.yaml file (if exists)
    3. Environment variables

    Args:
        config_path: Path to config file. Uses default if not specified.

    Returns:
        SPSettings with merged values.

    Raises:
        ConfigurationError: If the config file cannot be read or parsed.
    """
    settings = SPSettings()

    file_path = config_path or DEFAULT_CONFIG_FILE
    if file_path.exists():
        try:
            with open(file_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read configuration {file_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration {file_path} must be a mapping")
        settings = SPSettings.from_dict(data, config_path=file_path)
    elif config_path is not None:
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    if os.environ.get(f"{ENV_PREFIX}URL"):
        settings.url = os.environ[f"{ENV_PREFIX}URL"]

    if os.environ.get(f"{ENV_PREFIX}KEY_FILE"):
        settings.key_file = Path(os.environ[f"{ENV_PREFIX}KEY_FILE"])

    if os.environ.get(f"{ENV_PREFIX}CERT_FILE"):
        settings.cert_file = Path(os.environ[f"{ENV_PREFIX}CERT_FILE"])

    if os.environ.get(f"{ENV_PREFIX}IDP_METADATA_URL"):
        settings.idp_metadata_url = os.environ[f"{ENV_PREFIX}IDP_METADATA_URL"]

    settings.retry_count = _get_env_number(f"{ENV_PREFIX}RETRY_COUNT", settings.retry_count, int)
    settings.retry_delay = _get_env_number(f"{ENV_PREFIX}RETRY_DELAY", settings.retry_delay, float)
    settings.force_authn = _get_env_bool(f"{ENV_PREFIX}FORCE_AUTHN", settings.force_authn)
    settings.allow_idp_initiated = _get_env_bool(
        f"{ENV_PREFIX}ALLOW_IDP_INITIATED", settings.allow_idp_initiated
    )

    return settings


def build_middleware(settings: SPSettings, http_client: httpx.Client | None = None) -> Middleware:
    """Build a middleware from settings.

    A configured ``idp_metadata_file`` is registered after any remote
    metadata, so it becomes the primary IdP.
    """
    if http_client is None and settings.idp_metadata_url:
        with LoggingClient(timeout=settings.timeout) as client:
            middleware = Middleware.from_options(settings.to_options(client))
    else:
        middleware = Middleware.from_options(settings.to_options(http_client))

    if settings.idp_metadata_file:
        try:
            data = settings.idp_metadata_file.read_bytes()
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read IdP metadata file {settings.idp_metadata_file}: {e}"
            ) from e
        middleware.add_idp_metadata(data)

    return middleware


def get_default_config_yaml() -> str:
    """Get the default config.yaml content as a string."""
    return """\
# samlsp configuration file
# Environment variables override these settings (prefix: SAMLSP_)

# SP base URL; metadata and ACS endpoints are derived from it
url: "https://sp.example.com"

# SP signing key and certificate (PEM)
key_file: ~/.samlsp/sp.key
cert_file: ~/.samlsp/sp.crt

# Remote IdP metadata, fetched at startup
# idp_metadata_url: "https://idp.example.com/metadata"

# Local IdP metadata file
# idp_metadata_file: ~/.samlsp/idp-metadata.xml

# Session cookie
# cookie_name: token
# cookie_max_age: 3600

# Metadata fetch
retry_count: 10
retry_delay: 5.0
timeout: 10.0

force_authn: false
allow_idp_initiated: false
"""
