"""
LangGraph Pipeline Builder

Reusable pattern for building the learning pipeline as a state machine:
- Step wrapping with timing/metrics
- Edge definition and entry point
- Errors are recorded, then propagated to the caller unchanged

Pipelines just define their state and steps, then use the builder.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from langgraph.graph import END, START, StateGraph

from .metrics import MetricsCollector

logger = logging.getLogger(__name__)

# Type for step functions: async (state, **params) -> partial state update
StepFunc = Callable[..., Awaitable[Dict[str, Any]]]

Pipeline = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


def wrap_step_with_metrics(
    step_func: StepFunc,
    step_name: str,
    metrics: MetricsCollector,
    params: Dict[str, Any],
) -> Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]:
    """
    Wrap a step function with timing and metrics collection.

    Args:
        step_func: The step coroutine function to wrap
        step_name: Name for logging/metrics
        metrics: MetricsCollector instance
        params: Parameters to pass to step_func

    Returns:
        Wrapped async function for LangGraph
    """
    async def wrapped(state: Dict[str, Any]) -> Dict[str, Any]:
        start_time = time.time()
        try:
            result = await step_func(state, **params)
        except Exception as e:
            duration = (time.time() - start_time) * 1000
            metrics.record(step_name, duration, "error", {"error": str(e)})
            logger.debug(f"[{step_name}] failed after {duration:.1f}ms: {e}")
            raise
        duration = (time.time() - start_time) * 1000
        metrics.record(step_name, duration, "success")
        logger.debug(f"[{step_name}] succeeded ({duration:.1f}ms)")
        return result

    return wrapped


class PipelineBuilder:
    """
    Builder for LangGraph step pipelines.

    Example:
        builder = PipelineBuilder(LearningState, "learning")
        builder.add_step("analyze_workflow", analyze, {"engine": engine})
        builder.add_step("persist_pattern", persist, {"storage": storage})
        builder.add_edge("analyze_workflow", "persist_pattern")
        builder.set_entry_point("analyze_workflow")

        pipeline = builder.build()
        final_state = await pipeline({"workflow": {...}})
    """

    def __init__(
        self,
        state_type: type,
        name: str = "pipeline",
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Initialize pipeline builder.

        Args:
            state_type: TypedDict class for state
            name: Pipeline name for logging/metrics
            metrics: Collector shared with the owner (a new one by default)
        """
        self.state_type = state_type
        self.name = name
        self.metrics = metrics or MetricsCollector(name)
        self.steps: Dict[str, Tuple[StepFunc, Dict[str, Any]]] = {}
        self.edges: List[Tuple[str, str]] = []
        self.entry_point: Optional[str] = None

    def add_step(
        self,
        name: str,
        func: StepFunc,
        params: Optional[Dict[str, Any]] = None,
    ) -> "PipelineBuilder":
        """
        Add a step to the pipeline.

        Args:
            name: Step identifier (must not clash with a state key)
            func: Async function (state, **params) -> dict
            params: Parameters to pass to the function

        Returns:
            self for chaining
        """
        if name in self.steps:
            raise ValueError(f"Duplicate step name: {name}")
        self.steps[name] = (func, params or {})
        return self

    def add_edge(self, from_step: str, to_step: str) -> "PipelineBuilder":
        """Add an edge between steps ("END" terminates the pipeline)."""
        self.edges.append((from_step, to_step))
        return self

    def set_entry_point(self, step_name: str) -> "PipelineBuilder":
        """Set the step the pipeline starts with."""
        self.entry_point = step_name
        return self

    def _validate(self) -> None:
        if not self.entry_point:
            raise ValueError("Entry point not set. Call set_entry_point() first.")
        known = set(self.steps)
        referenced = [self.entry_point]
        for from_step, to_step in self.edges:
            referenced.extend([from_step, to_step])
        for step in referenced:
            if step != "END" and step not in known:
                raise ValueError(
                    f"Unknown step: {step}. Available: {sorted(known)}"
                )

    def build(self) -> Pipeline:
        """
        Compile the pipeline.

        Returns:
            Async function that runs the pipeline and returns the final state
        """
        self._validate()
        graph = StateGraph(self.state_type)

        for step_name, (func, params) in self.steps.items():
            graph.add_node(
                step_name,
                wrap_step_with_metrics(func, step_name, self.metrics, params),
            )

        graph.add_edge(START, self.entry_point)
        terminal = {from_step for from_step, _ in self.edges}
        for from_step, to_step in self.edges:
            graph.add_edge(from_step, END if to_step == "END" else to_step)
        for step_name in self.steps:
            if step_name not in terminal:
                graph.add_edge(step_name, END)

        compiled = graph.compile()
        logger.debug(f"[{self.name}] compiled pipeline with {len(self.steps)} steps")

        async def invoke(initial_state: Dict[str, Any]) -> Dict[str, Any]:
            return await compiled.ainvoke(initial_state)

        return invoke


def create_linear_pipeline(
    state_type: type,
    steps: List[Tuple[str, StepFunc, Dict[str, Any]]],
    name: str = "pipeline",
    metrics: Optional[MetricsCollector] = None,
) -> Pipeline:
    """
    Convenience function for creating a strictly sequential pipeline.

    Args:
        state_type: TypedDict for state
        steps: List of (name, func, params) tuples in execution order
        name: Pipeline name
        metrics: Optional shared MetricsCollector

    Returns:
        Async pipeline function
    """
    builder = PipelineBuilder(state_type, name, metrics)

    for i, (step_name, func, params) in enumerate(steps):
        builder.add_step(step_name, func, params)
        if i == 0:
            builder.set_entry_point(step_name)
        else:
            builder.add_edge(steps[i - 1][0], step_name)

    if steps:
        builder.add_edge(steps[-1][0], "END")

    return builder.build()
