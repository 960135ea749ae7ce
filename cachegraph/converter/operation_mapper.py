# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Operation Mapper

Converts a JSON graph descriptor (GraphDef layout) into a Graph.

Descriptor layout:
    {
        "node": [
            {"name": "x", "op": "Placeholder",
             "attr": {"dtype": {"type": "DT_FLOAT"},
                      "shape": {"shape": {"dim": [{"size": "-1"}, {"size": "3"}]}}}},
            {"name": "w", "op": "Const", "attr": {...}},
            {"name": "y", "op": "MatMul", "input": ["x", "w"]}
        ],
        "versions": {"producer": 1395, "minConsumer": 12}
    }
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Optional

from ..core.graph_ir import Graph
from ..core.node import Node, Ops, parse_node_name
from ..core.tensor import TensorInfo
from ..core.types import DataType, Shape, dtype_from_string
from ..errors import DeserializationError, UnsupportedOperationError
from ..execution.registry import OperatorRegistry
from ..execution import operators  # noqa: F401
from ..observability import get_logger


_PLACEHOLDER_OPS = (Ops.PLACEHOLDER, Ops.PLACEHOLDER_WITH_DEFAULT)


class OperationMapper:
    """
    Builds executable graphs from topology descriptors.

    Example:
        graph = OperationMapper.instance().transform_graph(topology, signature)
    """

    _instance: Optional["OperationMapper"] = None

    @classmethod
    def instance(cls) -> "OperationMapper":
        """Get the shared mapper."""
        if cls._instance is None:
            cls._instance = OperationMapper()
        return cls._instance

    def transform_graph(
        self,
        graph_def: Any,
        signature: Optional[dict] = None,
        strict: bool = False,
        name: str = "",
    ) -> Graph:
        """
        Build a Graph from a descriptor.

        Args:
            graph_def: Topology descriptor with a "node" list.
            signature: Optional {"inputs": {...}, "outputs": {...}} mapping
                signature keys to tensor entries; restricts the declared
                inputs and outputs.
            strict: Raise for ops without a registered kernel.
            name: Graph name used in logs.

        Raises:
            DeserializationError: Malformed descriptor or dangling input.
            UnsupportedOperationError: Unknown op in strict mode.
        """
        if not isinstance(graph_def, dict):
            raise DeserializationError("graph descriptor must be a JSON object")
        node_defs = graph_def.get("node") or []
        if not isinstance(node_defs, list):
            raise DeserializationError("graph descriptor 'node' must be a list")

        graph = Graph(
            name=name or "graph",
            versions=dict(graph_def.get("versions") or {}),
            signature=signature,
        )

        for node_def in node_defs:
            node = self._convert_node(node_def)
            if graph.has_node(node.name):
                raise DeserializationError(f"duplicate node name '{node.name}'")
            if strict and not OperatorRegistry.is_supported(node.op_type):
                raise UnsupportedOperationError(
                    node.op_type,
                    node_name=node.name,
                    supported_ops=OperatorRegistry.list_operators(),
                )
            graph.add_node(node)

        for node in graph.nodes:
            for dep in node.dependencies():
                if not graph.has_node(dep):
                    raise DeserializationError(
                        f"node '{node.name}' references unknown node '{dep}'"
                    )

        graph.placeholders = [n for n in graph.nodes if n.op_type in _PLACEHOLDER_OPS]
        graph.weights = [n for n in graph.nodes if n.op_type == Ops.CONST]

        if signature:
            graph.inputs = self._map_signature_entries(graph, signature.get("inputs"))
            graph.outputs = self._map_signature_entries(graph, signature.get("outputs"))
        else:
            graph.inputs = [self._placeholder_info(n) for n in graph.placeholders]
            consumers = graph.consumers()
            graph.outputs = [
                TensorInfo(name=n.name, dtype=n.get_attr("T", DataType.Float32))
                for n in graph.nodes
                if not consumers.get(n.name)
            ]

        unsupported = OperatorRegistry.get_unsupported_ops(list(graph.count_ops()))
        if unsupported:
            get_logger().warning(
                f"Graph contains ops without kernels: {unsupported}",
                component="converter",
            )

        get_logger().debug(
            f"Built graph with {graph.num_nodes()} nodes",
            component="converter",
            operation="transform_graph",
            inputs=graph.input_names,
            outputs=graph.output_names,
        )
        return graph

    def _convert_node(self, node_def: Any) -> Node:
        if not isinstance(node_def, dict) or "name" not in node_def or "op" not in node_def:
            raise DeserializationError(f"node descriptor needs 'name' and 'op': {node_def!r}")

        inputs, indices, control = [], [], []
        for ref in node_def.get("input") or []:
            node_name, index = parse_node_name(ref)
            if ref.startswith("^"):
                control.append(node_name)
            else:
                inputs.append(node_name)
                indices.append(index)

        attrs = {
            key: self._convert_attribute(value)
            for key, value in (node_def.get("attr") or {}).items()
        }

        return Node(
            op_type=node_def["op"],
            name=node_def["name"],
            inputs=inputs,
            input_indices=indices,
            control_inputs=control,
            attrs=attrs,
        )

    def _convert_attribute(self, attr: Any) -> Any:
        """Convert one AttrValue JSON object to a Python value."""
        if not isinstance(attr, dict):
            return attr
        if "type" in attr:
            return self._convert_dtype(attr["type"])
        if "shape" in attr:
            return self._convert_shape(attr["shape"])
        if "b" in attr:
            return bool(attr["b"])
        if "i" in attr:
            return int(attr["i"])
        if "f" in attr:
            return float(attr["f"])
        if "s" in attr:
            return self._decode_string(attr["s"])
        if "list" in attr:
            return self._convert_list(attr["list"])
        if "tensor" in attr:
            return attr["tensor"]
        return None

    def _convert_list(self, value: dict) -> list:
        if "i" in value:
            return [int(v) for v in value["i"]]
        if "f" in value:
            return [float(v) for v in value["f"]]
        if "s" in value:
            return [self._decode_string(v) for v in value["s"]]
        if "b" in value:
            return [bool(v) for v in value["b"]]
        if "type" in value:
            return [self._convert_dtype(v) for v in value["type"]]
        if "shape" in value:
            return [self._convert_shape(v) for v in value["shape"]]
        return []

    @staticmethod
    def _decode_string(value: str) -> str:
        try:
            return base64.b64decode(value, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return value

    @staticmethod
    def _convert_dtype(value: str) -> DataType:
        try:
            return dtype_from_string(value)
        except ValueError:
            return DataType.Float32

    @staticmethod
    def _convert_shape(value: Any) -> Optional[Shape]:
        if not isinstance(value, dict) or value.get("unknownRank"):
            return None
        return Shape([int(d.get("size", -1)) for d in value.get("dim", [])])

    def _placeholder_info(self, node: Node) -> TensorInfo:
        return TensorInfo(
            name=node.name,
            shape=node.get_attr("shape"),
            dtype=node.get_attr("dtype", DataType.Float32),
        )

    def _map_signature_entries(self, graph: Graph, entries: Any) -> list[TensorInfo]:
        infos = []
        for key, entry in (entries or {}).items():
            node_name, index = parse_node_name(entry.get("name", key))
            if not graph.has_node(node_name):
                raise DeserializationError(
                    f"signature entry '{key}' references unknown node '{node_name}'"
                )
            infos.append(
                TensorInfo(
                    name=node_name,
                    shape=self._convert_shape(entry.get("tensorShape")),
                    dtype=self._convert_dtype(entry.get("dtype", "DT_FLOAT")),
                    signature_key=key,
                    output_index=index,
                )
            )
        return infos
