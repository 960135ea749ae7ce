# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Hash Table Operators

Kernels over ResourceManager tables. They are coroutines, so graphs that
use them must be run with GraphExecutor.execute_async.
"""

from __future__ import annotations

from typing import Any, List

import numpy as np

from ...core.types import DataType
from ...errors import ExecutionError
from ..hash_table import HashTable
from ..registry import OperatorRegistry


def _table_for(ctx, node, handle: Any) -> HashTable:
    if ctx.resource_manager is None:
        raise ExecutionError("no resource manager attached", node_name=node.name)
    table = ctx.resource_manager.get_hash_table_by_id(int(np.asarray(handle)))
    if table is None:
        raise ExecutionError(
            f"hash table with id {int(np.asarray(handle))} not found",
            node_name=node.name,
            op_type=node.op_type,
        )
    return table


@OperatorRegistry.register("HashTable", aliases=["HashTableV2"], category="hash_table")
async def execute_hash_table(ctx, node, inputs: List[Any]) -> List[Any]:
    """Create a table, or reuse the one already registered under this name."""
    if ctx.resource_manager is None:
        raise ExecutionError("no resource manager attached", node_name=node.name)

    existing = ctx.resource_manager.get_hash_table_handle_by_name(node.name)
    if existing is not None:
        return [existing]

    table = HashTable(
        key_dtype=node.get_attr("key_dtype", DataType.String),
        value_dtype=node.get_attr("value_dtype", DataType.Int32),
        name=node.name,
    )
    ctx.resource_manager.add_hash_table(node.name, table)
    return [table.handle]


@OperatorRegistry.register(
    "LookupTableImport", aliases=["LookupTableImportV2"], category="hash_table"
)
async def execute_lookup_table_import(ctx, node, inputs: List[Any]) -> List[Any]:
    table = _table_for(ctx, node, inputs[0])
    return [await table.import_(inputs[1], inputs[2])]


@OperatorRegistry.register(
    "LookupTableFind", aliases=["LookupTableFindV2"], category="hash_table"
)
async def execute_lookup_table_find(ctx, node, inputs: List[Any]) -> List[Any]:
    table = _table_for(ctx, node, inputs[0])
    return [await table.find(inputs[1], inputs[2])]


@OperatorRegistry.register(
    "LookupTableSize", aliases=["LookupTableSizeV2"], category="hash_table"
)
async def execute_lookup_table_size(ctx, node, inputs: List[Any]) -> List[Any]:
    table = _table_for(ctx, node, inputs[0])
    return [np.array(table.size(), dtype=np.int32)]
