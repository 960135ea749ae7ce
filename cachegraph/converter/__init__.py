# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""CacheGraph Converter: topology descriptors to executable graphs."""

from .operation_mapper import OperationMapper

__all__ = ["OperationMapper"]
