"""Configuration loading utilities."""

import configparser
import ssl
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from loguru import logger

from pyipa.config.schema import DEFAULT_IPA_CONF, DEFAULT_REALM, IPAConfig


def get_config_path() -> Path:
    """Get the default FreeIPA client configuration path."""
    return DEFAULT_IPA_CONF


def read_ipa_defaults(path: Path) -> dict[str, Any]:
    """
    Read host and realm from an ipa default.conf file.

    Args:
        path: Path to the ini file written by ipa-client-install.

    Returns:
        Dict with ``host`` and ``realm`` keys; empty when the file is missing.
    """
    if not path.is_file():
        return {}
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read(path, encoding="utf-8")
    except (configparser.Error, OSError) as e:
        raise ValueError(f"Failed to load config from {path}: {e}") from e

    values: dict[str, Any] = {}
    xmlrpc_uri = parser.get("global", "xmlrpc_uri", fallback="http://localhost")
    host = urlparse(xmlrpc_uri).netloc
    if host:
        values["host"] = host
    values["realm"] = parser.get("global", "realm", fallback=DEFAULT_REALM)
    return values


def load_config(config_path: Path | None = None, **overrides: Any) -> IPAConfig:
    """
    Load configuration from default.conf, the environment and overrides.

    Precedence, lowest first: built-in defaults, default.conf, ``IPA_*``
    environment variables, explicit keyword overrides.
    """
    path = config_path or get_config_path()
    file_values = read_ipa_defaults(path)
    env_cfg = IPAConfig()
    data: dict[str, Any] = {"ipa_conf": path, **file_values}
    # Environment values only win over the file when they were actually set.
    data.update(env_cfg.model_dump(exclude_unset=True))
    data.update({k: v for k, v in overrides.items() if v is not None})
    cfg = IPAConfig.model_validate(data)
    logger.debug("Loaded FreeIPA config: host={} realm={}", cfg.host or "-", cfg.realm)
    return cfg


def build_ssl_context(cfg: IPAConfig) -> ssl.SSLContext | bool:
    """TLS verification setting for httpx.

    Uses the CA bundle when it exists and loads, otherwise the system roots.
    """
    if not cfg.verify_ssl:
        return False
    ca_cert = Path(cfg.ca_cert)
    if ca_cert.is_file():
        try:
            return ssl.create_default_context(cafile=str(ca_cert))
        except (ssl.SSLError, OSError) as e:
            logger.warning("Ignoring unusable CA bundle {}: {}", ca_cert, e)
    return True
