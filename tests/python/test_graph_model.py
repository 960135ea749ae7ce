# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tests for GraphModel and load_graph_model.

Validates:
- Loading from a cache, from an IO handler and from artifacts
- Input / output normalization and result unwrapping
- Initializer executors sharing the weight store and resources
- Initializer sequencing for load, load_sync and execute_async
- Disposal
"""

import asyncio
import json

import numpy as np
import pytest

from cachegraph.config import LoadOptions
from cachegraph.errors import (
    ConfigurationError,
    ExecutionError,
    NotFoundError,
    UnsupportedOperationError,
    ValidationError,
)
from cachegraph.execution import OperatorRegistry
from cachegraph.io import ModelArtifacts, MemoryArtifactCache, flatten_weights_manifest
from cachegraph.models import GraphModel, load_graph_model
from cachegraph.observability import get_metrics_collector


def _artifacts(model_files, nodes, tensors=None, **kwargs):
    topology, blob = model_files.document(nodes, tensors, **kwargs)
    model_json = json.loads(topology)
    return ModelArtifacts.from_model_json(
        model_json, flatten_weights_manifest(model_json["weightsManifest"]), blob
    )


async def _load(model_files, nodes, tensors=None, **kwargs):
    cache = model_files.cache(nodes, tensors, **kwargs)
    return await load_graph_model(
        model_files.topology_key, model_files.weights_key, LoadOptions(cache=cache)
    )


class _Spy:
    def __init__(self, target):
        self.calls = 0
        self._target = target

    def __call__(self):
        self.calls += 1
        return self._target()


class TestLoad:
    """Tests for loading a model."""

    @pytest.mark.asyncio
    async def test_load_from_cache(self, model_files, dense_graph):
        model = await _load(model_files, *dense_graph)
        assert model.is_loaded
        assert model.model_version == "1395.12"
        assert model.input_nodes == ["x"]
        assert model.output_nodes == ["out"]
        assert sorted(model.weights) == ["b", "w"]
        assert isinstance(model.weights["w"], list)
        assert model.initializer is None
        assert model.model_signature is None
        assert model.artifacts.format == "graph-model"

    @pytest.mark.asyncio
    async def test_version_unknown(self, model_files, add_graph):
        model = await _load(model_files, *add_graph, versions={"producer": 1395})
        assert model.model_version == "n/a"

    @pytest.mark.asyncio
    async def test_signature_from_document(self, model_files, dense_graph):
        signature = {
            "inputs": {"features": {"name": "x:0", "dtype": "DT_FLOAT"}},
            "outputs": {"logits": {"name": "out:0", "dtype": "DT_FLOAT"}},
        }
        model = await _load(model_files, *dense_graph, signature=signature)
        assert model.model_signature == signature
        assert model.inputs[0].signature_key == "features"

        x = np.zeros((1, 2), dtype=np.float32)
        np.testing.assert_allclose(model.execute(x, "logits"), [[0.5, -0.5]])
        np.testing.assert_allclose(model.execute({"features": x}), [[0.5, -0.5]])

    @pytest.mark.asyncio
    async def test_metadata_signature_takes_precedence(self, model_files, multi_output_graph):
        document_signature = {
            "inputs": {"a": {"name": "a:0"}, "b": {"name": "b:0"}},
            "outputs": {"sum": {"name": "sum:0"}},
        }
        metadata_signature = {
            "inputs": {"a": {"name": "a:0"}, "b": {"name": "b:0"}},
            "outputs": {"prod": {"name": "prod:0"}},
        }
        model = await _load(
            model_files,
            *multi_output_graph,
            signature=document_signature,
            metadata={"signature": metadata_signature},
        )
        assert model.model_signature == metadata_signature
        assert model.output_nodes == ["prod"]
        assert model.metadata == {"signature": metadata_signature}

    @pytest.mark.asyncio
    async def test_second_load_rejected(self, model_files, add_graph):
        cache = model_files.cache(*add_graph)
        model = GraphModel(
            model_files.topology_key, model_files.weights_key, LoadOptions(cache=cache)
        )
        await model.load()
        first = model.executor

        with pytest.raises(ExecutionError, match="already loaded"):
            await model.load()
        with pytest.raises(ExecutionError, match="already loaded"):
            model.load_sync(_artifacts(model_files, *add_graph))

        assert model.executor is first
        assert not first.is_disposed
        assert len(cache.get_calls) == 2

    @pytest.mark.asyncio
    async def test_missing_key_reads_nothing(self, model_files, add_graph):
        cache = model_files.cache(*add_graph)
        with pytest.raises(ValidationError):
            await load_graph_model(None, "weights.bin", LoadOptions(cache=cache))
        with pytest.raises(ValidationError):
            await load_graph_model(model_files.topology_key, None, LoadOptions(cache=cache))
        assert cache.get_calls == []

    @pytest.mark.asyncio
    async def test_missing_topology_leaves_model_unloaded(self, model_files):
        cache = MemoryArtifactCache({model_files.weights_key: b""})
        model = GraphModel(
            model_files.topology_key, model_files.weights_key, LoadOptions(cache=cache)
        )
        with pytest.raises(NotFoundError) as exc_info:
            await model.load()
        assert exc_info.value.key == model_files.topology_key
        assert not model.is_loaded
        assert model.executor is None
        assert model.initializer is None
        with pytest.raises(ExecutionError, match="not loaded"):
            model.predict(np.zeros(3))

    @pytest.mark.asyncio
    async def test_io_handler_takes_precedence(self, model_files, add_graph):
        artifacts = _artifacts(model_files, *add_graph)

        class Handler:
            async def load(self):
                return artifacts

        cache = MemoryArtifactCache()
        model = await load_graph_model(
            "k1", "k2", LoadOptions(cache=cache, io_handler=Handler())
        )
        assert model.is_loaded
        assert model.artifacts is artifacts
        assert cache.get_calls == []

    @pytest.mark.asyncio
    async def test_io_handler_without_load(self):
        model = GraphModel("k1", "k2", LoadOptions(io_handler=object()))
        with pytest.raises(ConfigurationError, match="load"):
            await model.load()
        assert not model.is_loaded

    @pytest.mark.asyncio
    async def test_strict_rejects_unknown_ops(self, model_files):
        mf = model_files
        cache = mf.cache([mf.placeholder("x"), mf.op("y", "Conv3DBackprop", ["x"])])
        options = LoadOptions(cache=cache, strict=True)
        with pytest.raises(UnsupportedOperationError):
            await load_graph_model(mf.topology_key, mf.weights_key, options)

    def test_load_sync_without_event_loop(self, model_files, dense_graph):
        model = GraphModel("k1", "k2")
        assert model.load_sync(_artifacts(model_files, *dense_graph)) is True
        out = model.predict(np.array([[1.0, 1.0]], dtype=np.float32))
        np.testing.assert_allclose(out, [[4.5, 5.5]])


class TestPredictAndExecute:
    """Tests for input and output handling."""

    @pytest.mark.asyncio
    async def test_positional_inputs_unwrap_single_output(self, model_files, add_graph):
        model = await _load(model_files, *add_graph)
        assert model.input_nodes == ["a", "b"]
        assert model.output_nodes == ["out"]

        t0 = np.array([1.0, 2.0, 3.0])
        t1 = np.array([10.0, 20.0, 30.0])
        result = model.predict([t0, t1])

        assert isinstance(result, np.ndarray)
        np.testing.assert_array_equal(result, [11.0, 22.0, 33.0])

    @pytest.mark.asyncio
    async def test_multiple_outputs_in_declared_order(self, model_files, multi_output_graph):
        model = await _load(model_files, *multi_output_graph)
        assert model.output_nodes == ["sum", "prod"]

        result = model.predict((np.array(2.0), np.array(5.0)))
        assert isinstance(result, list)
        assert [float(t) for t in result] == [7.0, 10.0]

        reordered = model.execute([np.array(2.0), np.array(5.0)], ["prod", "sum"])
        assert [float(t) for t in reordered] == [10.0, 7.0]

    @pytest.mark.asyncio
    async def test_signature_output_slot(self, model_files):
        mf = model_files
        nodes = [
            mf.placeholder("a"),
            mf.placeholder("b"),
            mf.op("pair", "IdentityN", ["a", "b"]),
        ]
        signature = {
            "inputs": {"a": {"name": "a:0"}, "b": {"name": "b:0"}},
            "outputs": {"second": {"name": "pair:1"}},
        }
        model = await _load(mf, nodes, signature=signature)
        assert model.output_nodes == ["pair:1"]

        inputs = [np.array(1.0), np.array(2.0)]
        assert float(model.predict(inputs)) == 2.0
        assert float(model.execute(inputs, "second")) == 2.0
        assert float(await model.execute_async(inputs)) == 2.0

    @pytest.mark.asyncio
    async def test_single_tensor_input(self, model_files, dense_graph):
        model = await _load(model_files, *dense_graph)
        out = model.predict(np.array([[0.0, 1.0]], dtype=np.float32))
        np.testing.assert_allclose(out, [[3.5, 3.5]])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 1, 3])
    async def test_input_count_mismatch(self, model_files, add_graph, count):
        model = await _load(model_files, *add_graph)
        tensors = [np.zeros(3)] * count
        with pytest.raises(ValidationError, match=f"expected 2, got {count}"):
            model.execute(tensors)
        with pytest.raises(ValidationError, match=f"expected 2, got {count}"):
            await model.execute_async(tensors)

    @pytest.mark.asyncio
    async def test_single_tensor_for_two_inputs(self, model_files, add_graph):
        model = await _load(model_files, *add_graph)
        with pytest.raises(ValidationError, match="expected 2, got 1"):
            model.predict(np.zeros(3))

    @pytest.mark.asyncio
    async def test_mapping_skips_count_check(self, model_files):
        mf = model_files
        nodes = [mf.placeholder("a"), mf.placeholder("b"), mf.op("twice", "AddV2", ["a", "a"])]
        signature = {
            "inputs": {"a": {"name": "a:0"}, "b": {"name": "b:0"}},
            "outputs": {"twice": {"name": "twice:0"}},
        }
        model = await _load(mf, nodes, signature=signature)

        assert float(model.execute({"a": np.array(3.0)})) == 6.0
        with pytest.raises(ValidationError, match="expected 2, got 1"):
            model.execute([np.array(3.0)])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outputs", [None, "", "out", ["out"]])
    async def test_output_normalization(self, model_files, add_graph, outputs):
        model = await _load(model_files, *add_graph)
        result = model.execute([np.ones(3), np.ones(3)], outputs)
        assert isinstance(result, np.ndarray)
        np.testing.assert_array_equal(result, [2.0, 2.0, 2.0])

    @pytest.mark.asyncio
    async def test_predict_is_repeatable(self, model_files, dense_graph):
        model = await _load(model_files, *dense_graph)
        x = np.array([[0.25, -1.5]], dtype=np.float32)
        first = model.predict(x)
        second = model.predict(x)
        np.testing.assert_array_equal(first, second)

    @pytest.mark.asyncio
    async def test_predict_ignores_config(self, model_files, dense_graph):
        model = await _load(model_files, *dense_graph)
        x = np.ones((1, 2), dtype=np.float32)
        np.testing.assert_array_equal(model.predict(x, {"batch_size": 4}), model.predict(x))

    @pytest.mark.asyncio
    async def test_execute_async_matches_execute(self, model_files, dense_graph):
        model = await _load(model_files, *dense_graph)
        x = np.array([[2.0, 1.0]], dtype=np.float32)
        np.testing.assert_array_equal(await model.execute_async(x), model.execute(x))

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, model_files, dense_graph):
        model = await _load(model_files, *dense_graph)
        x = np.ones((1, 2), dtype=np.float32)
        model.predict(x)
        await model.execute_async(x)
        with pytest.raises(ValidationError):
            model.execute(x, "ghost")

        summary = get_metrics_collector().get_summary()
        assert summary["total_inferences"] == 2
        assert summary["async_inferences"] == 1
        assert summary["error_count"] == 1
        assert summary["executions_by_model"] == {model_files.topology_key: 2}


class TestInitializer:
    """Tests for the initializer executor."""

    @pytest.mark.asyncio
    async def test_initializer_shares_store_and_resources(self, model_files, add_graph):
        model = await _load(
            model_files, *add_graph, initializer=[model_files.op("init", "NoOp")]
        )
        assert model.initializer is not None
        assert model.initializer is not model.executor
        assert model.initializer.weight_map is model.executor.weight_map
        assert model.initializer.resource_manager is model.executor.resource_manager
        assert model.executor.resource_manager is model.resource_manager

    @pytest.mark.asyncio
    async def test_empty_initializer_is_skipped(self, model_files, add_graph):
        model = await _load(model_files, *add_graph, initializer=[])
        assert model.initializer is None

    @pytest.mark.asyncio
    async def test_load_completes_initializer(self, model_files, vocab_graph):
        nodes, tensors, initializer = vocab_graph
        model = await _load(model_files, nodes, tensors, initializer=initializer)

        assert model.resource_manager.num_hash_tables == 1
        ids = await model.execute_async(
            {"tokens": np.array(["hello", "nope", "world"], dtype=object)}, "ids"
        )
        np.testing.assert_array_equal(ids, [7, -1, 9])

    @pytest.mark.asyncio
    async def test_blocking_execute_refuses_table_ops(self, model_files, vocab_graph):
        nodes, tensors, initializer = vocab_graph
        model = await _load(model_files, nodes, tensors, initializer=initializer)
        with pytest.raises(ExecutionError, match="asynchronously"):
            model.execute(np.array(["hello"], dtype=object))

    @pytest.mark.asyncio
    async def test_initializer_failure_fails_load(self, model_files, vocab_graph):
        nodes, tensors, initializer = vocab_graph
        tensors = dict(tensors, vocab_values=np.array([1, 2, 3], dtype=np.int32))
        cache = model_files.cache(nodes, tensors, initializer=initializer)
        model = GraphModel(
            model_files.topology_key, model_files.weights_key, LoadOptions(cache=cache)
        )
        with pytest.raises(ExecutionError, match="2 keys and 3 values"):
            await model.load()
        assert not model.is_loaded
        assert model.resource_manager.dispose_count == 1

    def test_load_sync_runs_initializer_without_loop(self, model_files, vocab_graph):
        nodes, tensors, initializer = vocab_graph
        model = GraphModel("k1", "k2")
        model.load_sync(_artifacts(model_files, nodes, tensors, initializer=initializer))

        assert model.initializer_task is None
        assert model.resource_manager.num_hash_tables == 1
        ids = asyncio.run(model.execute_async(np.array(["world"], dtype=object)))
        np.testing.assert_array_equal(ids, [9])

    @pytest.mark.asyncio
    async def test_load_sync_in_loop_schedules_initializer(self, model_files, vocab_graph):
        nodes, tensors, initializer = vocab_graph
        model = GraphModel("k1", "k2")
        model.load_sync(_artifacts(model_files, nodes, tensors, initializer=initializer))

        assert model.initializer_task is not None
        assert not model.initializer_task.done()

        ids = await model.execute_async(np.array(["hello"], dtype=object))
        assert model.initializer_task.done()
        np.testing.assert_array_equal(ids, [7])

    @pytest.mark.asyncio
    async def test_arity_checked_before_failed_initializer(self, model_files, vocab_graph):
        nodes, tensors, initializer = vocab_graph
        tensors = dict(tensors, vocab_values=np.array([1, 2, 3], dtype=np.int32))
        model = GraphModel("k1", "k2")
        model.load_sync(_artifacts(model_files, nodes, tensors, initializer=initializer))

        with pytest.raises(ValidationError, match="expected 1, got 0"):
            await model.execute_async([])
        with pytest.raises(ExecutionError, match="2 keys and 3 values"):
            await model.wait_for_initializer()

    @pytest.mark.asyncio
    async def test_dispose_cancels_pending_initializer(self, model_files, vocab_graph):
        nodes, tensors, initializer = vocab_graph
        model = GraphModel("k1", "k2")
        model.load_sync(_artifacts(model_files, nodes, tensors, initializer=initializer))
        task = model.initializer_task

        model.dispose()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()


class TestConcurrency:
    """Tests for serialized execution."""

    @pytest.mark.asyncio
    async def test_blocking_execute_during_async_execution(self, model_files):
        release = asyncio.Event()
        started = asyncio.Event()

        @OperatorRegistry.register("TestGate", category="test")
        async def execute_gate(ctx, node, inputs):
            started.set()
            await release.wait()
            return [inputs[0]]

        try:
            mf = model_files
            model = await _load(mf, [mf.placeholder("x"), mf.op("y", "TestGate", ["x"])])
            pending = asyncio.ensure_future(model.execute_async(np.array(1.0)))
            await started.wait()

            with pytest.raises(ExecutionError, match="in flight"):
                model.execute(np.array(2.0))

            release.set()
            assert float(await pending) == 1.0
            assert float(await model.execute_async(np.array(3.0))) == 3.0
        finally:
            OperatorRegistry.unregister("TestGate")


class TestDispose:
    """Tests for GraphModel.dispose."""

    @pytest.mark.asyncio
    async def test_dispose_releases_everything_once(self, model_files, add_graph):
        model = await _load(
            model_files, *add_graph, initializer=[model_files.op("init", "NoOp")]
        )
        executor_spy = _Spy(model.executor.dispose)
        initializer_spy = _Spy(model.initializer.dispose)
        model.executor.dispose = executor_spy
        model.initializer.dispose = initializer_spy

        model.dispose()

        assert executor_spy.calls == 1
        assert initializer_spy.calls == 1
        assert model.resource_manager.dispose_count == 1
        assert model.executor.is_disposed

        model.dispose()
        assert executor_spy.calls == 2
        assert initializer_spy.calls == 2
        assert model.resource_manager.dispose_count == 2

    @pytest.mark.asyncio
    async def test_dispose_without_initializer(self, model_files, add_graph):
        model = await _load(model_files, *add_graph)
        executor_spy = _Spy(model.executor.dispose)
        model.executor.dispose = executor_spy

        model.dispose()

        assert model.initializer is None
        assert executor_spy.calls == 1
        assert model.resource_manager.dispose_count == 1

    @pytest.mark.asyncio
    async def test_dispose_releases_tables(self, model_files, vocab_graph):
        nodes, tensors, initializer = vocab_graph
        model = await _load(model_files, nodes, tensors, initializer=initializer)
        model.dispose()
        assert model.resource_manager.num_hash_tables == 0
        with pytest.raises(ExecutionError, match="disposed"):
            await model.execute_async(np.array(["hello"], dtype=object))

    @pytest.mark.asyncio
    async def test_repr(self, model_files, add_graph):
        model = await _load(model_files, *add_graph)
        assert "loaded=True" in repr(model)
        assert "version='1395.12'" in repr(model)
