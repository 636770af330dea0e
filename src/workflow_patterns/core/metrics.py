"""
Metrics Collection Utilities

Tracks how long each learning pipeline step takes and what learning
decided (created / reinforced / failed to persist).
"""

import time
from collections import Counter, defaultdict
from typing import Any, Dict, List, Optional

# Outcome counters reported in every summary, even when still zero
OUTCOMES = ("created", "reinforced", "analysis_only", "persistence_failures")


class MetricsCollector:
    """
    Collect step timings and learning outcomes.

    One collector lives for the lifetime of a learning manager; records
    accumulate across ``learn_from_workflow`` calls.
    """

    def __init__(self, name: str = "pattern_learning"):
        """
        Initialize metrics collector.

        Args:
            name: Identifier for this collector (e.g., pipeline name)
        """
        self.name = name
        self.steps: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.outcomes: Counter = Counter()

    def record(
        self,
        step_name: str,
        duration_ms: float,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record one step execution.

        Args:
            step_name: Pipeline step identifier
            duration_ms: Execution time in milliseconds
            status: "success" or "error"
            details: Optional additional details (e.g. the error message)
        """
        self.steps[step_name].append({
            "timestamp": time.time(),
            "duration_ms": duration_ms,
            "status": status,
            "details": details or {},
        })

    def increment(self, outcome: str, amount: int = 1) -> None:
        """Bump a learning outcome counter."""
        self.outcomes[outcome] += amount

    def reset(self) -> None:
        self.steps.clear()
        self.outcomes.clear()

    def get_summary(self) -> Dict[str, Any]:
        """
        Get summary of all metrics.

        Returns:
            Dict with per-step statistics and outcome counters
        """
        steps = {}
        for step_name, executions in self.steps.items():
            durations = [e["duration_ms"] for e in executions]
            successes = len([e for e in executions if e["status"] == "success"])
            steps[step_name] = {
                "count": len(executions),
                "avg_ms": sum(durations) / len(durations),
                "min_ms": min(durations),
                "max_ms": max(durations),
                "success_rate": successes / len(executions),
            }
        outcomes = {outcome: self.outcomes.get(outcome, 0) for outcome in OUTCOMES}
        for outcome, count in self.outcomes.items():
            outcomes.setdefault(outcome, count)
        return {"name": self.name, "steps": steps, "outcomes": outcomes}
