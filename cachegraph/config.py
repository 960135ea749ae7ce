# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Load Options

Environment variables:
- CACHEGRAPH_CACHE_DIR: directory of the default local cache
- CACHEGRAPH_STRICT: "1"/"true" to reject unknown ops at build time
- CACHEGRAPH_VERBOSITY: logger verbosity (see observability.logger)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import ConfigurationError
from .io.cache import ArtifactCache, LocalArtifactCache


DEFAULT_CACHE_DIR = os.path.join("~", ".cache", "cachegraph")


def default_cache_dir() -> str:
    """Cache directory from CACHEGRAPH_CACHE_DIR, else ~/.cache/cachegraph."""
    return os.path.expanduser(os.environ.get("CACHEGRAPH_CACHE_DIR", DEFAULT_CACHE_DIR))


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "on", "yes")


@dataclass
class LoadOptions:
    """
    Options controlling where and how a graph model is loaded.

    Attributes:
        cache: Cache to read from. Defaults to a LocalArtifactCache
            rooted at cache_dir.
        cache_dir: Root of the default local cache.
        io_handler: Object with an async load() returning ModelArtifacts.
            Takes precedence over the cache.
        strict: Reject ops without a registered kernel at build time.
        model_name: Label used in logs and metrics.
    """

    cache: Optional[ArtifactCache] = None
    cache_dir: str = field(default_factory=default_cache_dir)
    io_handler: Optional[Any] = None
    strict: bool = False
    model_name: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides) -> "LoadOptions":
        """Build options from the environment, then apply overrides."""
        options = cls(strict=_env_flag("CACHEGRAPH_STRICT"))
        for key, value in overrides.items():
            if not hasattr(options, key):
                raise ConfigurationError(
                    f"unknown load option '{key}'", config_key=key
                )
            setattr(options, key, value)
        return options

    def resolve_cache(self) -> ArtifactCache:
        """Get the configured cache, or a LocalArtifactCache rooted at cache_dir."""
        if self.cache is not None:
            return self.cache
        return LocalArtifactCache(self.cache_dir)
