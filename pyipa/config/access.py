"""Process-wide IPAConfig cache, one entry per default.conf path."""

from __future__ import annotations

import os
import threading
from pathlib import Path

from loguru import logger

from pyipa.config.loader import get_config_path, load_config
from pyipa.config.schema import ENV_PREFIX, IPAConfig

_CacheKey = tuple[str, tuple[tuple[str, str], ...]]

_lock = threading.RLock()
_cache: dict[_CacheKey, IPAConfig] = {}


def _env_snapshot() -> tuple[tuple[str, str], ...]:
    return tuple(sorted((k, v) for k, v in os.environ.items() if k.startswith(ENV_PREFIX)))


def _resolved(config_path: Path | None) -> str:
    return str(Path(config_path or get_config_path()).expanduser().resolve())


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> IPAConfig:
    """Return the IPAConfig for ``config_path``, loading it on first use.

    Entries are keyed by the resolved path and the current ``IPA_*``
    environment, so changing either yields a fresh load.
    """
    key = (_resolved(config_path), _env_snapshot())
    with _lock:
        cfg = None if force_reload else _cache.get(key)
        if cfg is None:
            cfg = load_config(Path(key[0]))
            _cache[key] = cfg
            logger.debug("Cached FreeIPA config for {}", key[0])
        return cfg


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Drop every cached entry, or only those for ``config_path``."""
    with _lock:
        if config_path is None:
            _cache.clear()
            return
        path = _resolved(config_path)
        for key in [k for k in _cache if k[0] == path]:
            del _cache[key]
