"""Configuration module for pyipa."""

from pyipa.config.loader import build_ssl_context, get_config_path, load_config, read_ipa_defaults
from pyipa.config.schema import IPAConfig
from pyipa.config.access import get_config, clear_config_cache

__all__ = [
    "IPAConfig",
    "load_config",
    "read_ipa_defaults",
    "build_ssl_context",
    "get_config_path",
    "get_config",
    "clear_config_cache",
]
