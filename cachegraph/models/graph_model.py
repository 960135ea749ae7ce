# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Graph Model

Loads a cached graph model and runs it.

A GraphModel owns one primary GraphExecutor, an optional initializer
GraphExecutor and one ResourceManager. Both executors share the same
weight store and resource manager objects, so tables created by the
initializer graph are visible to the primary graph.

Example:
    model = await load_graph_model("encoder/model.json", "encoder/weights.bin")
    y = model.predict(x)
    ids = await model.execute_async({"tokens": tokens}, "ids")
    model.dispose()
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional, Union

import numpy as np

from ..config import LoadOptions
from ..converter import OperationMapper
from ..core.tensor import TensorInfo
from ..errors import (
    CacheGraphError,
    ConfigurationError,
    DeserializationError,
    ExecutionError,
    ValidationError,
    format_input_count_mismatch,
)
from ..execution import GraphExecutor, ResourceManager
from ..io import ModelArtifacts, cache_artifact_request, decode_weights
from ..observability import InferenceMetrics, get_logger, get_metrics_collector


Tensor = np.ndarray
NamedTensorMap = Dict[str, Any]
ModelInputs = Union[Tensor, Sequence[Tensor], Mapping[str, Tensor]]
ModelOutputs = Union[Tensor, List[Tensor]]

VERSION_UNKNOWN = "n/a"


class GraphModel:
    """
    A graph model loaded from a local artifact cache.

    Args:
        topology_key: Cache key of the topology document.
        weights_key: Cache key of the weight blob.
        load_options: Where and how to load; None means defaults.
    """

    def __init__(
        self,
        topology_key: str,
        weights_key: str,
        load_options: Optional[LoadOptions] = None,
    ):
        self.topology_key = topology_key
        self.weights_key = weights_key
        self.load_options = load_options if load_options is not None else LoadOptions()

        self._resource_manager = ResourceManager()
        self._executor: Optional[GraphExecutor] = None
        self._initializer: Optional[GraphExecutor] = None
        self._initializer_task: Optional[asyncio.Task] = None
        self._handler: Any = None
        self._artifacts: Optional[ModelArtifacts] = None
        self._signature: Optional[dict] = None
        self._version = VERSION_UNKNOWN
        self._execution_lock = asyncio.Lock()

    @property
    def model_name(self) -> str:
        return self.load_options.model_name or self.topology_key

    @property
    def model_version(self) -> str:
        return self._version

    @property
    def is_loaded(self) -> bool:
        return self._executor is not None

    @property
    def input_nodes(self) -> List[str]:
        return self._require_executor().input_nodes

    @property
    def output_nodes(self) -> List[str]:
        return self._require_executor().output_nodes

    @property
    def inputs(self) -> List[TensorInfo]:
        return self._require_executor().inputs

    @property
    def outputs(self) -> List[TensorInfo]:
        return self._require_executor().outputs

    @property
    def weights(self) -> Dict[str, List[Tensor]]:
        return self._require_executor().weight_map

    @property
    def metadata(self) -> Optional[dict]:
        return self._artifacts.user_defined_metadata if self._artifacts else None

    @property
    def model_signature(self) -> Optional[dict]:
        return self._signature

    @property
    def artifacts(self) -> Optional[ModelArtifacts]:
        return self._artifacts

    @property
    def resource_manager(self) -> ResourceManager:
        return self._resource_manager

    @property
    def executor(self) -> Optional[GraphExecutor]:
        return self._executor

    @property
    def initializer(self) -> Optional[GraphExecutor]:
        return self._initializer

    @property
    def initializer_task(self) -> Optional[asyncio.Task]:
        return self._initializer_task

    def _require_executor(self) -> GraphExecutor:
        if self._executor is None:
            raise ExecutionError(
                "model is not loaded",
                suggestions=["Call `await model.load()` or model.load_sync(artifacts)"],
            )
        return self._executor

    def _ensure_unloaded(self) -> None:
        if self._executor is not None:
            raise ExecutionError(
                "model is already loaded; executors are built once per model",
                suggestions=["Create a new GraphModel to load another copy"],
            )

    def _find_io_handler(self) -> Any:
        if self.load_options.io_handler is not None:
            return self.load_options.io_handler
        return cache_artifact_request(
            self.topology_key, self.weights_key, self.load_options.resolve_cache()
        )

    async def load(self) -> bool:
        """
        Fetch the artifacts, build the executors and run the initializer.

        Returns once the initializer run has settled.

        Raises:
            ConfigurationError: The IO handler has no load method.
            NotFoundError / DeserializationError: From the loader.
            ExecutionError: The model is already loaded.
        """
        self._ensure_unloaded()
        self._handler = self._find_io_handler()
        if not callable(getattr(self._handler, "load", None)):
            raise ConfigurationError(
                "Cannot proceed with model loading because the IO handler "
                "provided does not have the `load` method implemented.",
                config_key="io_handler",
                config_value=type(self._handler).__name__,
            )
        artifacts = await self._handler.load()

        self.load_sync(artifacts)
        try:
            await self.wait_for_initializer()
        except BaseException:
            self._discard()
            raise
        return True

    def load_sync(self, artifacts: ModelArtifacts) -> bool:
        """
        Build the executors from already retrieved artifacts.

        Inside a running event loop the initializer run is scheduled as
        `initializer_task`; without one it runs to completion here.
        """
        self._ensure_unloaded()
        start = time.perf_counter()
        logger = get_logger()

        graph_def = artifacts.model_topology
        if not isinstance(graph_def, dict):
            raise DeserializationError("model topology is not a graph descriptor")

        signature = self._resolve_signature(artifacts)
        version = self._format_version(graph_def)
        strict = self.load_options.strict
        mapper = OperationMapper.instance()

        executor = GraphExecutor(
            mapper.transform_graph(graph_def, signature, strict=strict, name=self.model_name)
        )
        weight_map = decode_weights(artifacts.weight_data, artifacts.weight_specs)
        executor.weight_map = self._to_weight_store(weight_map)
        executor.resource_manager = self._resource_manager

        initializer = None
        init_def = artifacts.model_initializer
        if isinstance(init_def, dict) and init_def.get("node"):
            initializer = GraphExecutor(
                mapper.transform_graph(
                    init_def, strict=strict, name=f"{self.model_name}/initializer"
                )
            )
            initializer.weight_map = executor.weight_map
            initializer.resource_manager = self._resource_manager

        self._artifacts = artifacts
        self._signature = signature
        self._version = version
        self._executor = executor
        self._initializer = initializer

        logger.info(
            "Graph model loaded",
            component="model",
            model_name=self.model_name,
            operation="load",
            duration_ms=(time.perf_counter() - start) * 1000,
            version=version,
            inputs=executor.input_nodes,
            outputs=executor.output_nodes,
            weights=len(weight_map),
            initializer=initializer is not None,
        )

        if initializer is not None:
            self._start_initializer(initializer)
        return True

    def _start_initializer(self, initializer: GraphExecutor) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            try:
                asyncio.run(initializer.execute_async({}, []))
            except BaseException:
                self._discard()
                raise
            return

        self._initializer_task = loop.create_task(initializer.execute_async({}, []))
        self._initializer_task.add_done_callback(self._on_initializer_done)

    def _on_initializer_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            get_logger().error(
                f"Initializer run failed: {error}",
                component="model",
                model_name=self.model_name,
                operation="initializer",
            )

    async def wait_for_initializer(self) -> None:
        """Wait for a scheduled initializer run; re-raises its failure."""
        if self._initializer_task is not None:
            await self._initializer_task

    @staticmethod
    def _resolve_signature(artifacts: ModelArtifacts) -> Optional[dict]:
        metadata = artifacts.user_defined_metadata
        if isinstance(metadata, dict) and metadata.get("signature") is not None:
            return metadata["signature"]
        return artifacts.signature

    @staticmethod
    def _format_version(graph_def: dict) -> str:
        versions = graph_def.get("versions") or {}
        producer = versions.get("producer")
        min_consumer = versions.get("minConsumer")
        if producer is None or min_consumer is None:
            return VERSION_UNKNOWN
        return f"{producer}.{min_consumer}"

    @staticmethod
    def _to_weight_store(weight_map: Dict[str, Tensor]) -> Dict[str, List[Tensor]]:
        return {name: [tensor] for name, tensor in weight_map.items()}

    def _discard(self) -> None:
        """Return to the unloaded state after a failed load."""
        if self._executor is not None:
            self._executor.dispose()
        if self._initializer is not None:
            self._initializer.dispose()
        self._resource_manager.dispose()
        self._executor = None
        self._initializer = None
        self._initializer_task = None
        self._artifacts = None
        self._signature = None
        self._version = VERSION_UNKNOWN

    def _normalize_inputs(self, inputs: ModelInputs) -> NamedTensorMap:
        if isinstance(inputs, Mapping):
            return inputs
        tensors = list(inputs) if isinstance(inputs, (list, tuple)) else [inputs]
        input_nodes = self.input_nodes
        if len(tensors) != len(input_nodes):
            raise format_input_count_mismatch(len(input_nodes), len(tensors))
        return dict(zip(input_nodes, tensors))

    def _normalize_outputs(self, outputs: Optional[Union[str, Sequence[str]]]) -> List[str]:
        if outputs is None or outputs == "":
            return list(self.output_nodes)
        if isinstance(outputs, str):
            return [outputs]
        return list(outputs)

    @staticmethod
    def _shape_result(result: List[Tensor]) -> ModelOutputs:
        return result[0] if len(result) == 1 else result

    def _record(self, executor: GraphExecutor, start: float, asynchronous: bool) -> None:
        get_metrics_collector().record_inference(
            InferenceMetrics(
                latency_ms=(time.perf_counter() - start) * 1000,
                kernel_calls=executor.last_kernel_calls,
                asynchronous=asynchronous,
                model_name=self.model_name,
            )
        )

    def predict(self, inputs: ModelInputs, config: Optional[dict] = None) -> ModelOutputs:
        """Run the graph for every declared output. `config` is accepted and ignored."""
        return self.execute(inputs, self.output_nodes)

    def execute(
        self,
        inputs: ModelInputs,
        outputs: Optional[Union[str, Sequence[str]]] = None,
    ) -> ModelOutputs:
        """
        Run the graph without suspending.

        Args:
            inputs: A tensor, a sequence of tensors matched positionally
                to input_nodes, or a name -> tensor mapping.
            outputs: Output name(s); defaults to output_nodes.

        Returns:
            The single fetched tensor, or a list in request order.

        Raises:
            ValidationError: Positional input count mismatch.
            ExecutionError: Not loaded, async-only graph, or an
                asynchronous execution is in flight.
        """
        executor = self._require_executor()
        if self._execution_lock.locked():
            raise ExecutionError(
                "another execution is in flight on this model",
                suggestions=["Await the pending execute_async() first"],
            )
        named = self._normalize_inputs(inputs)
        names = self._normalize_outputs(outputs)

        start = time.perf_counter()
        try:
            result = executor.execute(named, names)
        except CacheGraphError:
            get_metrics_collector().record_error(self.model_name)
            raise
        self._record(executor, start, asynchronous=False)
        return self._shape_result(result)

    async def execute_async(
        self,
        inputs: ModelInputs,
        outputs: Optional[Union[str, Sequence[str]]] = None,
    ) -> ModelOutputs:
        """
        Run the graph, awaiting suspending kernels.

        Waits for a scheduled initializer run first; executions on one
        model are serialized.
        """
        executor = self._require_executor()
        named = self._normalize_inputs(inputs)
        names = self._normalize_outputs(outputs)
        await self.wait_for_initializer()

        async with self._execution_lock:
            start = time.perf_counter()
            try:
                result = await executor.execute_async(named, names)
            except CacheGraphError:
                get_metrics_collector().record_error(self.model_name)
                raise
            self._record(executor, start, asynchronous=True)
        return self._shape_result(result)

    def dispose(self) -> None:
        """
        Release the primary executor, the initializer executor and the
        resource manager, in that order.
        """
        if self._initializer_task is not None and not self._initializer_task.done():
            self._initializer_task.cancel()
        if self._executor is not None:
            self._executor.dispose()
        if self._initializer is not None:
            self._initializer.dispose()
        self._resource_manager.dispose()
        get_logger().debug(
            "Graph model disposed", component="model", model_name=self.model_name
        )

    def __repr__(self) -> str:
        return (
            f"GraphModel(topology_key='{self.topology_key}', "
            f"weights_key='{self.weights_key}', version='{self._version}', "
            f"loaded={self.is_loaded})"
        )


async def load_graph_model(
    topology_key: Optional[str],
    weights_key: Optional[str],
    options: Optional[LoadOptions] = None,
) -> GraphModel:
    """
    Construct and load a GraphModel.

    Raises:
        ValidationError: If either key is None; nothing is read.
    """
    if topology_key is None or weights_key is None:
        raise ValidationError(
            "topology_key or weights_key in load_graph_model() cannot be None. "
            "Please provide the cache keys the model was stored under.",
            parameter="topology_key" if topology_key is None else "weights_key",
            received="None",
        )
    if options is None:
        options = LoadOptions()

    model = GraphModel(topology_key, weights_key, options)
    await model.load()
    return model
