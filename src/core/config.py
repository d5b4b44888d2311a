"""
Loki connection configuration.

Settings come from LOKI_* environment variables and an optional logcli-style
YAML file. Environment values win field by field; the file only fills gaps.
"""

import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from common.pylogger import get_python_logger
from .errors import LokiAuthError

logger = get_python_logger(__name__)

CONFIG_PATH_ENV_VAR = "LOKI_CONFIG_PATH"
CONFIG_FILE_NAME = "logcli-config.yaml"

# Config field -> environment variable
ENV_VARS = {
    "addr": "LOKI_ADDR",
    "username": "LOKI_USERNAME",
    "password": "LOKI_PASSWORD",
    "tenant_id": "LOKI_TENANT_ID",
    "bearer_token": "LOKI_BEARER_TOKEN",
    "bearer_token_file": "LOKI_BEARER_TOKEN_FILE",
    "ca_file": "LOKI_CA_FILE",
    "cert_file": "LOKI_CERT_FILE",
    "key_file": "LOKI_KEY_FILE",
    "org_id": "LOKI_ORG_ID",
    "tls_skip_verify": "LOKI_TLS_SKIP_VERIFY",
}

SECRET_FIELDS = ("password", "bearer_token")


@dataclass(frozen=True)
class LokiConfig:
    """Resolved, read-only connection settings for Loki."""
    addr: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    tenant_id: Optional[str] = None
    bearer_token: Optional[str] = None
    bearer_token_file: Optional[str] = None
    ca_file: Optional[str] = None
    cert_file: Optional[str] = None
    key_file: Optional[str] = None
    org_id: Optional[str] = None
    tls_skip_verify: Optional[bool] = None

    @property
    def is_valid(self) -> bool:
        """Whether a server address is configured."""
        return bool(self.addr)

    def safe_dict(self) -> Dict[str, Any]:
        """Configuration without password and bearer token, excluding None values."""
        return {
            k: v for k, v in asdict(self).items()
            if v is not None and k not in SECRET_FIELDS
        }


class LokiConfigSchema(BaseModel):
    """Typed view of the merged configuration; YAML numbers become strings."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    addr: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    tenant_id: Optional[str] = None
    bearer_token: Optional[str] = None
    bearer_token_file: Optional[str] = None
    ca_file: Optional[str] = None
    cert_file: Optional[str] = None
    key_file: Optional[str] = None
    org_id: Optional[str] = None
    tls_skip_verify: Optional[bool] = None


def _load_from_env() -> Dict[str, Any]:
    """Read configuration fields from LOKI_* environment variables."""
    config: Dict[str, Any] = {}
    for field_name, env_var in ENV_VARS.items():
        value = os.environ.get(env_var)
        if not value:
            continue
        if field_name == "tls_skip_verify":
            config[field_name] = value == "true"
        else:
            config[field_name] = value

    logger.debug("Configuration loaded from environment variables: %s", sorted(config))
    return config


def _config_file_candidates() -> List[Path]:
    """Config file locations, highest priority first."""
    candidates = []
    custom_path = os.environ.get(CONFIG_PATH_ENV_VAR)
    if custom_path:
        candidates.append(Path(custom_path).expanduser())
    candidates.append(Path.cwd() / CONFIG_FILE_NAME)
    candidates.append(Path.home() / f".{CONFIG_FILE_NAME}")
    return candidates


def _load_from_file() -> Dict[str, Any]:
    """Load the first config file that exists and parses as a mapping."""
    for config_path in _config_file_candidates():
        if not config_path.exists():
            continue
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Failed to load configuration file %s: %s", config_path, e)
            continue

        if data is None:
            data = {}
        if not isinstance(data, dict):
            logger.warning("Ignoring configuration file %s: expected a mapping, got %s", config_path, type(data).__name__)
            continue

        logger.debug("Configuration file loaded: %s", config_path)
        return {k: v for k, v in data.items() if k in ENV_VARS and v is not None}

    return {}


def _validate(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert the merged settings to their declared types.

    Fields that cannot be converted are logged and dropped so a malformed value
    such as tls_skip_verify: "maybe" never reaches the backends. A non-URL addr
    only produces a warning. Never raises.
    """
    try:
        validated = LokiConfigSchema(**config)
    except ValidationError as e:
        logger.warning("Loki configuration validation failed: %s", e)
        invalid = {error["loc"][0] for error in e.errors() if error["loc"]}
        logger.warning("Ignoring invalid configuration fields: %s", ", ".join(sorted(invalid)))
        validated = LokiConfigSchema(**{k: v for k, v in config.items() if k not in invalid})

    addr = validated.addr
    if not addr:
        logger.warning("Loki server address (addr) is not configured")
    elif not addr.startswith(("http://", "https://")):
        logger.warning("Loki configuration validation failed: addr %r is not an http:// or https:// URL", addr)

    return validated.model_dump(exclude_none=True)


def load_loki_config() -> LokiConfig:
    """
    Resolve the Loki connection configuration.

    Environment variables take precedence over the config file on a per-field
    basis. Missing optional fields are not an error.

    Returns:
        LokiConfig: The merged configuration

    Raises:
        LokiAuthError: If resolving the configuration fails unexpectedly
    """
    try:
        config = _load_from_env()
        for key, value in _load_from_file().items():
            config.setdefault(key, value)

        resolved = LokiConfig(**_validate(config))
        logger.debug("Authentication configuration loaded, addr=%s", resolved.addr)
        return resolved

    except Exception as e:
        logger.error("Error loading authentication configuration: %s", e)
        raise LokiAuthError(
            "config_load_error",
            "An error occurred while loading authentication configuration",
            details={"message": str(e), "name": type(e).__name__},
        ) from e
