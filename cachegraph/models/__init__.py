# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""CacheGraph Models"""

from .graph_model import GraphModel, load_graph_model

__all__ = ["GraphModel", "load_graph_model"]
