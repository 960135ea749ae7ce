# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Artifact Caches

Local byte-oriented key/value stores that hold serialized model files.
Keys are opaque path-like strings; values are raw bytes.

Example:
    cache = LocalArtifactCache("~/.cache/cachegraph")
    await cache.set("models/encoder/model.json", topology_bytes)
    data = await cache.get("models/encoder/model.json")
"""

from __future__ import annotations

import hashlib
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os


class ArtifactCache(ABC):
    """
    Abstract asynchronous key/value store for model artifacts.

    Implementations return None from `get` for absent keys and never
    raise for them.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable cache identifier used in errors and logs."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Get the bytes stored under key, or None."""
        pass

    @abstractmethod
    async def set(self, key: str, data: bytes) -> None:
        """Store bytes under key, replacing any previous value."""
        pass

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """Remove key. Returns False if it was not present."""
        pass

    @abstractmethod
    async def keys(self) -> list[str]:
        """List stored keys."""
        pass

    async def contains(self, key: str) -> bool:
        return key in await self.keys()


class MemoryArtifactCache(ArtifactCache):
    """Dict-backed cache, mainly for tests and in-process hand-off."""

    def __init__(self, entries: Optional[dict[str, bytes]] = None):
        self._entries: dict[str, bytes] = dict(entries or {})
        self.get_calls: list[str] = []

    @property
    def name(self) -> str:
        return "memory"

    async def get(self, key: str) -> Optional[bytes]:
        self.get_calls.append(key)
        return self._entries.get(key)

    async def set(self, key: str, data: bytes) -> None:
        self._entries[key] = bytes(data)

    async def remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def keys(self) -> list[str]:
        return list(self._entries)

    async def contains(self, key: str) -> bool:
        return key in self._entries


class LocalArtifactCache(ArtifactCache):
    """
    Directory-backed cache.

    Each entry is a `<sha256(key)>.bin` file holding the value and a
    `<sha256(key)>.key` file holding the original key so `keys()` can
    list them.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(os.path.expanduser(str(root)))

    @property
    def name(self) -> str:
        return str(self.root)

    def _stem(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.root / digest

    async def get(self, key: str) -> Optional[bytes]:
        path = self._stem(key).with_suffix(".bin")
        if not await aiofiles.os.path.exists(path):
            return None
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def set(self, key: str, data: bytes) -> None:
        await aiofiles.os.makedirs(self.root, exist_ok=True)
        stem = self._stem(key)
        async with aiofiles.open(stem.with_suffix(".bin"), "wb") as f:
            await f.write(bytes(data))
        async with aiofiles.open(stem.with_suffix(".key"), "w", encoding="utf-8") as f:
            await f.write(key)

    async def remove(self, key: str) -> bool:
        stem = self._stem(key)
        data_path = stem.with_suffix(".bin")
        if not await aiofiles.os.path.exists(data_path):
            return False
        await aiofiles.os.remove(data_path)
        key_path = stem.with_suffix(".key")
        if await aiofiles.os.path.exists(key_path):
            await aiofiles.os.remove(key_path)
        return True

    async def keys(self) -> list[str]:
        if not await aiofiles.os.path.isdir(self.root):
            return []
        keys = []
        for entry in sorted(await aiofiles.os.listdir(self.root)):
            if not entry.endswith(".key"):
                continue
            async with aiofiles.open(self.root / entry, "r", encoding="utf-8") as f:
                keys.append(await f.read())
        return keys

    def __repr__(self) -> str:
        return f"LocalArtifactCache(root='{self.root}')"
