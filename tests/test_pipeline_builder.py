"""Tests for PipelineBuilder and MetricsCollector."""

import pytest
from typing import Any, Dict, List, TypedDict
from workflow_patterns.core.metrics import MetricsCollector
from workflow_patterns.core.pipeline_builder import PipelineBuilder, create_linear_pipeline


class CounterState(TypedDict, total=False):
    """Test state schema."""
    value: int
    trace: List[str]


async def add_one(state: Dict[str, Any]) -> Dict[str, Any]:
    return {"value": state["value"] + 1, "trace": state.get("trace", []) + ["add_one"]}


async def double(state: Dict[str, Any]) -> Dict[str, Any]:
    return {"value": state["value"] * 2, "trace": state.get("trace", []) + ["double"]}


async def add(state: Dict[str, Any], amount: int) -> Dict[str, Any]:
    return {"value": state["value"] + amount}


async def explode(state: Dict[str, Any]) -> Dict[str, Any]:
    raise RuntimeError("step failed")


# ============================================================================
# Tests: Pipelines
# ============================================================================

class TestPipelineBuilder:
    """Tests for pipeline construction and execution."""

    @pytest.mark.asyncio
    async def test_linear_pipeline_runs_in_order(self):
        pipeline = create_linear_pipeline(
            CounterState, [("add_one", add_one, {}), ("double", double, {})]
        )
        result = await pipeline({"value": 3})
        assert result["value"] == 8
        assert result["trace"] == ["add_one", "double"]

    @pytest.mark.asyncio
    async def test_params_are_passed_to_steps(self):
        builder = PipelineBuilder(CounterState, "params")
        builder.add_step("add_ten", add, {"amount": 10}).set_entry_point("add_ten")
        result = await builder.build()({"value": 1})
        assert result["value"] == 11

    @pytest.mark.asyncio
    async def test_metrics_are_recorded(self):
        metrics = MetricsCollector("test")
        pipeline = create_linear_pipeline(
            CounterState,
            [("add_one", add_one, {}), ("double", double, {})],
            metrics=metrics,
        )
        await pipeline({"value": 1})
        await pipeline({"value": 2})

        summary = metrics.get_summary()
        assert summary["steps"]["add_one"]["count"] == 2
        assert summary["steps"]["double"]["success_rate"] == 1.0

    @pytest.mark.asyncio
    async def test_step_errors_propagate_and_are_recorded(self):
        metrics = MetricsCollector("test")
        pipeline = create_linear_pipeline(
            CounterState,
            [("add_one", add_one, {}), ("explode", explode, {}), ("double", double, {})],
            metrics=metrics,
        )
        with pytest.raises(RuntimeError, match="step failed"):
            await pipeline({"value": 1})

        steps = metrics.get_summary()["steps"]
        assert steps["explode"]["success_rate"] == 0.0
        assert "double" not in steps
        assert metrics.steps["explode"][0]["details"] == {"error": "step failed"}

    def test_missing_entry_point(self):
        builder = PipelineBuilder(CounterState)
        builder.add_step("add_one", add_one)
        with pytest.raises(ValueError, match="Entry point"):
            builder.build()

    def test_unknown_step_in_edge(self):
        builder = PipelineBuilder(CounterState)
        builder.add_step("add_one", add_one).set_entry_point("add_one")
        builder.add_edge("add_one", "missing")
        with pytest.raises(ValueError, match="Unknown step"):
            builder.build()

    def test_duplicate_step(self):
        builder = PipelineBuilder(CounterState)
        builder.add_step("add_one", add_one)
        with pytest.raises(ValueError, match="Duplicate"):
            builder.add_step("add_one", double)


# ============================================================================
# Tests: MetricsCollector
# ============================================================================

def test_metrics_collector_summary():
    collector = MetricsCollector("learning")
    collector.record("analyze_workflow", 100.0, "success")
    collector.record("persist_pattern", 200.0, "success")
    collector.record("persist_pattern", 100.0, "error", {"error": "disk full"})
    collector.increment("created")
    collector.increment("reinforced", 2)

    summary = collector.get_summary()

    assert summary["name"] == "learning"
    assert summary["steps"]["analyze_workflow"]["avg_ms"] == 100.0
    assert summary["steps"]["persist_pattern"]["count"] == 2
    assert summary["steps"]["persist_pattern"]["min_ms"] == 100.0
    assert summary["steps"]["persist_pattern"]["max_ms"] == 200.0
    assert summary["steps"]["persist_pattern"]["success_rate"] == 0.5
    assert summary["outcomes"] == {
        "created": 1,
        "reinforced": 2,
        "analysis_only": 0,
        "persistence_failures": 0,
    }


def test_metrics_collector_reset():
    collector = MetricsCollector()
    collector.record("analyze_workflow", 1.0, "success")
    collector.increment("created")
    collector.reset()
    summary = collector.get_summary()
    assert summary["steps"] == {}
    assert summary["outcomes"]["created"] == 0
