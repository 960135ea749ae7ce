# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Cache Artifact Loader

Reads a topology document and a weight blob from an ArtifactCache and
packages them into ModelArtifacts.

Example:
    loader = cache_artifact_request("encoder/model.json", "encoder/weights.bin", cache)
    artifacts = await loader.load()
"""

from __future__ import annotations

import asyncio
import json
import time

from ..errors import DeserializationError, NotFoundError
from ..observability import get_logger
from .artifacts import ModelArtifacts, artifacts_info, flatten_weights_manifest
from .cache import ArtifactCache


class CacheArtifactLoader:
    """
    Loads model artifacts from a local cache.

    The loader only reads from the cache. Both keys are fetched
    concurrently and both must be present.
    """

    def __init__(self, topology_key: str, weights_key: str, cache: ArtifactCache):
        self.topology_key = topology_key
        self.weights_key = weights_key
        self.cache = cache

    async def load(self) -> ModelArtifacts:
        """
        Read both keys and build the artifact bundle.

        Raises:
            NotFoundError: If either key is absent from the cache.
            DeserializationError: If the topology bytes are not a UTF-8
                JSON model document.
        """
        logger = get_logger()
        start = time.perf_counter()

        topology_bytes, weight_bytes = await asyncio.gather(
            self.cache.get(self.topology_key),
            self.cache.get(self.weights_key),
        )
        if topology_bytes is None:
            raise NotFoundError(self.topology_key, cache=self.cache.name)
        if weight_bytes is None:
            raise NotFoundError(self.weights_key, cache=self.cache.name)

        model_json = self._parse_document(topology_bytes)
        weight_specs = flatten_weights_manifest(model_json.get("weightsManifest", []))
        artifacts = ModelArtifacts.from_model_json(
            model_json, weight_specs, weight_bytes
        )

        logger.debug(
            "Loaded artifacts from cache",
            component="io",
            operation="load",
            duration_ms=(time.perf_counter() - start) * 1000,
            topology_key=self.topology_key,
            weights_key=self.weights_key,
            **artifacts_info(artifacts).as_dict(),
        )
        return artifacts

    def _parse_document(self, data: bytes) -> dict:
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DeserializationError(
                f"topology document is not valid UTF-8: {e}", key=self.topology_key
            ) from e
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise DeserializationError(
                f"topology document is not valid JSON: {e}", key=self.topology_key
            ) from e
        if not isinstance(document, dict):
            raise DeserializationError(
                "topology document must be a JSON object", key=self.topology_key
            )
        return document

    def __repr__(self) -> str:
        return (
            f"CacheArtifactLoader(topology_key='{self.topology_key}', "
            f"weights_key='{self.weights_key}', cache={self.cache.name!r})"
        )


def cache_artifact_request(
    topology_key: str, weights_key: str, cache: ArtifactCache
) -> CacheArtifactLoader:
    """Create a loader that reads the two keys from cache."""
    return CacheArtifactLoader(topology_key, weights_key, cache)
