# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
CacheGraph Execution Engine

Components:
- ExecutionContext: Tensors produced during one run
- OperatorRegistry: Maps op types to kernel functions
- ResourceManager / HashTable: Stateful resources shared across executors
- GraphExecutor: Blocking and suspending graph execution
"""

from .context import ExecutionContext
from .registry import OperatorRegistry
from .hash_table import HashTable
from .resource_manager import ResourceManager
from .executor import ExecutionPlan, GraphExecutor

__all__ = [
    "ExecutionContext",
    "OperatorRegistry",
    "HashTable",
    "ResourceManager",
    "ExecutionPlan",
    "GraphExecutor",
]
