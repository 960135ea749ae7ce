# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Operator implementations.

Importing this package registers every kernel with OperatorRegistry.
"""

from . import graph_ops  # noqa: F401
from . import math_ops  # noqa: F401
from . import activation_ops  # noqa: F401
from . import shape_ops  # noqa: F401
from . import hash_table_ops  # noqa: F401
