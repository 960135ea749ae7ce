# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Hash Table Resource

Stateful key/value table created by HashTable ops and filled by
LookupTableImport ops, typically inside a model's initializer graph.
"""

from __future__ import annotations

import itertools
from typing import Any

import numpy as np

from ..core.types import DataType, to_numpy_dtype
from ..errors import ExecutionError


_table_id_counter = itertools.count()


def _as_key(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class HashTable:
    """
    A lookup table addressed by a scalar int64 handle tensor.

    Attributes:
        id: Process-unique table id, the value of `handle`
        key_dtype: Declared key dtype
        value_dtype: Declared value dtype
    """

    def __init__(self, key_dtype: DataType, value_dtype: DataType, name: str = ""):
        self.id = next(_table_id_counter)
        self.name = name
        self.key_dtype = key_dtype
        self.value_dtype = value_dtype
        self._table: dict[Any, Any] = {}
        self._disposed = False

    @property
    def handle(self) -> np.ndarray:
        return np.array(self.id, dtype=np.int64)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def size(self) -> int:
        return len(self._table)

    def _check_alive(self) -> None:
        if self._disposed:
            raise ExecutionError(f"hash table '{self.name}' has been disposed")

    async def import_(self, keys: np.ndarray, values: np.ndarray) -> np.ndarray:
        """Replace the table contents with keys -> values."""
        self._check_alive()
        keys = np.asarray(keys).reshape(-1)
        values = np.asarray(values).reshape(-1)
        if keys.shape[0] != values.shape[0]:
            raise ExecutionError(
                f"hash table '{self.name}' import got {keys.shape[0]} keys "
                f"and {values.shape[0]} values"
            )
        self._table = {_as_key(k): _as_key(v) for k, v in zip(keys, values)}
        return self.handle

    async def find(self, keys: np.ndarray, default_value: np.ndarray) -> np.ndarray:
        """Look up every key, using default_value for missing ones."""
        self._check_alive()
        keys = np.asarray(keys)
        default = _as_key(np.asarray(default_value).reshape(-1)[0])
        found = [self._table.get(_as_key(k), default) for k in keys.reshape(-1)]
        dtype = to_numpy_dtype(self.value_dtype)
        if dtype is np.object_:
            result = np.empty(len(found), dtype=object)
            result[:] = found
        else:
            result = np.array(found, dtype=dtype)
        return result.reshape(keys.shape)

    def dispose(self) -> None:
        self._table.clear()
        self._disposed = True

    def __repr__(self) -> str:
        return f"HashTable(id={self.id}, name='{self.name}', size={self.size()})"
