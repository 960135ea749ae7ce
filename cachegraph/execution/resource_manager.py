# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Resource Manager

Table of stateful resources created by ops while a model executes.
One instance is shared by every executor of a model, so a table created
by the initializer graph is found by name from the primary graph.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .hash_table import HashTable


class ResourceManager:
    """
    Owns the hash tables of one model.

    Tables are registered under their creating node name and looked up
    either by that name or by the id carried in their handle tensor.
    """

    def __init__(self):
        self._name_to_handle: dict[str, np.ndarray] = {}
        self._tables: dict[int, HashTable] = {}
        self.dispose_count = 0

    def add_hash_table(self, name: str, table: HashTable) -> None:
        self._name_to_handle[name] = table.handle
        self._tables[table.id] = table

    def get_hash_table_handle_by_name(self, name: str) -> Optional[np.ndarray]:
        return self._name_to_handle.get(name)

    def get_hash_table_by_id(self, table_id: int) -> Optional[HashTable]:
        return self._tables.get(int(table_id))

    def has_resource(self, name: str) -> bool:
        return name in self._name_to_handle

    @property
    def num_hash_tables(self) -> int:
        return len(self._tables)

    def dispose(self) -> None:
        """Dispose every table and forget all of them."""
        for table in self._tables.values():
            table.dispose()
        self._tables.clear()
        self._name_to_handle.clear()
        self.dispose_count += 1

    def __repr__(self) -> str:
        return f"ResourceManager(hash_tables={self.num_hash_tables})"
