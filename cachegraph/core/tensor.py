# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tensor Info
"""

from dataclasses import dataclass
from typing import Optional

from .types import DataType, Shape, dtype_to_string


@dataclass
class TensorInfo:
    """
    Describes a declared graph input or output without holding data.

    `shape` is None when the topology does not declare one. `output_index`
    selects one output of a multi-output node, as in "pair:1".
    """

    name: str = ""
    shape: Optional[Shape] = None
    dtype: DataType = DataType.Float32
    signature_key: Optional[str] = None
    output_index: int = 0

    @property
    def tensor_name(self) -> str:
        """Node name, suffixed with ":<index>" for outputs other than the first."""
        if self.output_index:
            return f"{self.name}:{self.output_index}"
        return self.name

    def __repr__(self) -> str:
        return (
            f"TensorInfo(name='{self.tensor_name}', "
            f"shape={self.shape}, dtype={dtype_to_string(self.dtype)})"
        )
