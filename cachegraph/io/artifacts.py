# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Model Artifacts

The structured bundle a loader produces from a topology document and
a weight blob, plus the weight manifest types it carries.

Document layout (model.json):
    {
        "format": "graph-model",
        "generatedBy": "...",
        "convertedBy": "...",
        "modelTopology": {"node": [...], "versions": {...}},
        "modelInitializer": {"node": [...]},
        "signature": {"inputs": {...}, "outputs": {...}},
        "userDefinedMetadata": {...},
        "weightsManifest": [{"paths": [...], "weights": [...]}]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..errors import DeserializationError


@dataclass(frozen=True)
class Quantization:
    """Quantization parameters of a stored weight."""

    dtype: str
    scale: float = 1.0
    min: float = 0.0

    @classmethod
    def from_json(cls, data: dict) -> "Quantization":
        return cls(
            dtype=data["dtype"],
            scale=float(data.get("scale", 1.0)),
            min=float(data.get("min", 0.0)),
        )


@dataclass(frozen=True)
class WeightSpec:
    """
    One manifest entry. The byte offset into the blob is implied by
    the position of the spec in the flattened manifest.
    """

    name: str
    shape: tuple[int, ...]
    dtype: str
    quantization: Optional[Quantization] = None

    @classmethod
    def from_json(cls, data: dict) -> "WeightSpec":
        try:
            quantization = data.get("quantization")
            return cls(
                name=data["name"],
                shape=tuple(int(d) for d in data.get("shape", [])),
                dtype=data["dtype"],
                quantization=(
                    Quantization.from_json(quantization) if quantization else None
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DeserializationError(
                f"invalid weight spec {data!r}: {e}"
            ) from e

    def to_json(self) -> dict:
        data: dict[str, Any] = {
            "name": self.name,
            "shape": list(self.shape),
            "dtype": self.dtype,
        }
        if self.quantization is not None:
            data["quantization"] = {
                "dtype": self.quantization.dtype,
                "scale": self.quantization.scale,
                "min": self.quantization.min,
            }
        return data


def flatten_weights_manifest(manifest: Any) -> list[WeightSpec]:
    """
    Flatten manifest groups into one ordered spec list.

    Order is preserved within and across groups; it determines the
    byte offset of every weight in the blob.
    """
    if not isinstance(manifest, list):
        raise DeserializationError("weightsManifest must be a list of groups")

    specs = []
    for group in manifest:
        if not isinstance(group, dict) or not isinstance(group.get("weights"), list):
            raise DeserializationError(
                "every weightsManifest group needs a 'weights' list"
            )
        specs.extend(WeightSpec.from_json(entry) for entry in group["weights"])
    return specs


@dataclass(frozen=True)
class ModelArtifacts:
    """
    Everything needed to build and run a graph model.

    Produced once by a loader and only read afterwards.
    """

    model_topology: Any
    weight_specs: tuple[WeightSpec, ...] = ()
    weight_data: bytes = b""
    model_initializer: Optional[dict] = None
    user_defined_metadata: Optional[dict] = None
    signature: Optional[dict] = None
    format: Optional[str] = None
    generated_by: Optional[str] = None
    converted_by: Optional[str] = None
    training_config: Optional[dict] = None

    @classmethod
    def from_model_json(
        cls,
        model_json: dict,
        weight_specs: list[WeightSpec],
        weight_data: bytes,
    ) -> "ModelArtifacts":
        """Package a parsed model document with its weights."""
        if not isinstance(model_json, dict) or "modelTopology" not in model_json:
            raise DeserializationError("model document has no 'modelTopology'")

        return cls(
            model_topology=model_json["modelTopology"],
            weight_specs=tuple(weight_specs),
            weight_data=bytes(weight_data),
            model_initializer=model_json.get("modelInitializer"),
            user_defined_metadata=model_json.get("userDefinedMetadata"),
            signature=model_json.get("signature"),
            format=model_json.get("format"),
            generated_by=model_json.get("generatedBy"),
            converted_by=model_json.get("convertedBy"),
            training_config=model_json.get("trainingConfig"),
        )


@dataclass
class ModelArtifactsInfo:
    """Size information about a bundle, for logging."""

    date_saved: datetime
    model_topology_type: str = "JSON"
    model_topology_bytes: int = 0
    weight_specs_bytes: int = 0
    weight_data_bytes: int = 0

    def as_dict(self) -> dict:
        return {
            "date_saved": self.date_saved.isoformat(),
            "model_topology_type": self.model_topology_type,
            "model_topology_bytes": self.model_topology_bytes,
            "weight_specs_bytes": self.weight_specs_bytes,
            "weight_data_bytes": self.weight_data_bytes,
        }


def _json_size(value: Any) -> int:
    if value is None:
        return 0
    return len(json.dumps(value).encode("utf-8"))


def artifacts_info(artifacts: ModelArtifacts) -> ModelArtifactsInfo:
    """Compute size information for a bundle."""
    return ModelArtifactsInfo(
        date_saved=datetime.now(),
        model_topology_bytes=_json_size(artifacts.model_topology),
        weight_specs_bytes=_json_size([s.to_json() for s in artifacts.weight_specs]),
        weight_data_bytes=len(artifacts.weight_data),
    )
