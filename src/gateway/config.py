"""Gateway configuration loaded from a YAML file.

The file holds an ``npm_gateway`` section::

    npm_gateway:
      registry_url: registry.example.com/npm
      authorization: s3cr3t
      timeout: 10

Any failure here is a deployment problem, reported as ``ConfigError``.
"""

from __future__ import annotations

import logging
import os
import urllib.parse
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import yaml

from constants import Constants
from common.logging_utils import safe_url
from gateway.errors import ConfigError

logger = logging.getLogger(__name__)


def normalize_registry_url(url: str) -> str:
    """Force https on the configured registry base and drop the trailing slash.

    Raises:
        ConfigError: The URL cannot be parsed, has no host, or carries a query or fragment.
    """
    if not isinstance(url, str) or not url.strip():
        raise ConfigError("registry_url must be a non-empty string")
    text = url.strip()
    if "://" not in text:
        # Bare host ("registry.example.com/npm") parses as a path otherwise.
        text = f"{Constants.REGISTRY_SCHEME}://{text}"
    try:
        parts = urllib.parse.urlsplit(text)
        parts.port  # pylint: disable=pointless-statement
    except ValueError as exc:
        raise ConfigError(f"Invalid registry_url '{url}': {exc}") from exc
    if not parts.hostname:
        raise ConfigError(f"Invalid registry_url '{url}': missing host")
    # Package names are appended as a path segment; nothing may follow the path.
    if parts.query or parts.fragment:
        raise ConfigError(f"Invalid registry_url '{url}': query and fragment are not supported")
    return urllib.parse.urlunsplit(
        (Constants.REGISTRY_SCHEME, parts.netloc, parts.path.rstrip("/"), "", "")
    )


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable settings for an NpmGateway."""
    registry_url: str
    authorization: str
    timeout: float = Constants.REQUEST_TIMEOUT

    @classmethod
    def from_mapping(cls, section: Any) -> "GatewayConfig":
        """Validate a plain mapping (the ``npm_gateway`` section)."""
        if not isinstance(section, Mapping):
            raise ConfigError(f"'{Constants.CONFIG_SECTION}' section must be a mapping")

        registry_url = section.get("registry_url")
        if registry_url is None:
            raise ConfigError("registry_url is required")

        authorization = section.get("authorization")
        if authorization is None:
            authorization = os.environ.get(Constants.ENV_AUTHORIZATION)
        if authorization is None:
            raise ConfigError(
                f"authorization is required (set it in the config or via {Constants.ENV_AUTHORIZATION})"
            )

        timeout = section.get("timeout", Constants.REQUEST_TIMEOUT)
        try:
            timeout = float(timeout)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"timeout must be a number, got {timeout!r}") from exc
        if timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {timeout}")

        return cls(
            registry_url=normalize_registry_url(registry_url),
            authorization=str(authorization),
            timeout=timeout,
        )


def load_gateway_config(path: str, section: Optional[str] = None) -> GatewayConfig:
    """Load a GatewayConfig from a YAML file.

    Args:
        path: Path to the YAML config file.
        section: Top-level key to read; defaults to ``npm_gateway``.

    Raises:
        ConfigError: The file is missing, unreadable, or the section is invalid.
    """
    section = section or Constants.CONFIG_SECTION
    if not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to load config {path}: {exc}") from exc

    if not isinstance(data, Mapping) or section not in data:
        raise ConfigError(f"Config {path} has no '{section}' section")

    config = GatewayConfig.from_mapping(data[section])
    logger.debug("Loaded gateway config from %s (registry %s)", path, safe_url(config.registry_url))
    return config
