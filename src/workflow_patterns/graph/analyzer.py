"""
Workflow Graph Analyzer

Structural analysis of a single workflow:
  - node type sequence in topological order
  - aggregated (from type -> to type) connection patterns
  - structural complexity score

Example:
    analyzer = WorkflowGraphAnalyzer(workflow)
    analyzer.get_node_sequence()       # ["...manualTrigger", "...httpRequest"]
    analyzer.get_connection_patterns() # [ConnectionPattern(...)]
    analyzer.calculate_complexity()    # 4.58...
"""

import logging
import math
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..core.types import ConnectionPattern, WorkflowSignature
from .builder import GraphBuilder, WorkflowGraph
from .node_types import NodeRole, has_role

logger = logging.getLogger(__name__)

# Historical metrics per (from type, to type): {"success_rate": .., "avg_execution_time": ..}
ConnectionMetrics = Mapping[Tuple[str, str], Mapping[str, float]]

# Bonus per structural feature (conditional node or fan-in merge point)
FEATURE_BONUS = 0.5


@dataclass(frozen=True)
class ComplexityBreakdown:
    """The individual factors behind a complexity score."""

    node_count: int
    edge_count: int
    max_depth: int
    avg_branching_factor: float
    excess_branches: int
    conditional_nodes: int
    merge_points: int
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class WorkflowGraphAnalyzer:
    """
    Analyzes the structure of one workflow.

    Accepts either a raw workflow descriptor (built with GraphBuilder, which
    may raise GraphIntegrityError / GraphCycleError) or a prebuilt
    WorkflowGraph.
    """

    def __init__(
        self,
        workflow: Union[Mapping[str, Any], WorkflowGraph],
        connection_metrics: Optional[ConnectionMetrics] = None,
    ):
        """
        Initialize analyzer.

        Args:
            workflow: Workflow descriptor or an already built graph
            connection_metrics: Optional historical metrics keyed by type pair
        """
        if isinstance(workflow, WorkflowGraph):
            self.graph = workflow
        else:
            self.graph = GraphBuilder().build(workflow)
        self.connection_metrics = connection_metrics or {}
        self._breakdown: Optional[ComplexityBreakdown] = None

    def get_node_sequence(self) -> List[str]:
        """Node types in topological order, one entry per node."""
        return [self.graph.node_type(n) for n in self.graph.topological_order]

    def get_connection_patterns(self) -> List[ConnectionPattern]:
        """Distinct type pairs in first-seen edge order with their frequency."""
        frequency: Counter = Counter(
            (self.graph.node_type(src), self.graph.node_type(dst))
            for src, dst in self.graph.edges
        )
        patterns = []
        for pair, count in frequency.items():
            history = self.connection_metrics.get(pair, {})
            patterns.append(
                ConnectionPattern(
                    from_node_type=pair[0],
                    to_node_type=pair[1],
                    frequency=count,
                    success_rate=history.get("success_rate", 1.0),
                    avg_execution_time=history.get("avg_execution_time", 0.0),
                )
            )
        return patterns

    def get_signature(self) -> WorkflowSignature:
        return WorkflowSignature(
            node_sequence=self.get_node_sequence(),
            connection_patterns=self.get_connection_patterns(),
        )

    def max_depth(self) -> int:
        """Longest source-to-sink path, counted in edges."""
        depth: Dict[str, int] = {}
        for node_id in self.graph.topological_order:
            preds = self.graph.predecessors[node_id]
            depth[node_id] = max((depth[p] + 1 for p in preds), default=0)
        return max(depth.values(), default=0)

    def complexity_breakdown(self) -> ComplexityBreakdown:
        if self._breakdown is not None:
            return self._breakdown

        graph = self.graph
        node_count = len(graph)
        edge_count = len(graph.edges)
        depth = self.max_depth()
        branching_nodes = [n for n in graph.node_types if graph.out_degree(n) > 0]
        excess = sum(graph.out_degree(n) - 1 for n in branching_nodes)
        conditional = sum(
            1 for t in graph.node_types.values() if has_role(t, NodeRole.CONDITIONAL)
        )
        merges = sum(1 for n in graph.node_types if len(graph.distinct_predecessors(n)) > 1)

        score = 0.0
        if node_count:
            # every term is non-decreasing when nodes/edges are added
            score = (
                math.log2(node_count + 1)
                + math.log2(edge_count + 1)
                + math.log2(depth + 1)
                + math.log2(excess + 1)
                + FEATURE_BONUS * (conditional + merges)
            )

        self._breakdown = ComplexityBreakdown(
            node_count=node_count,
            edge_count=edge_count,
            max_depth=depth,
            avg_branching_factor=edge_count / node_count if node_count else 0.0,
            excess_branches=excess,
            conditional_nodes=conditional,
            merge_points=merges,
            score=score,
        )
        logger.debug(f"[WorkflowGraphAnalyzer] complexity {self._breakdown}")
        return self._breakdown

    def calculate_complexity(self) -> float:
        """
        Structural complexity score.

        Combines node count, edge count, maximum path depth, branching beyond
        a single successor, and a bonus for conditional nodes and fan-in
        merge points. Zero only for an empty workflow.
        """
        return self.complexity_breakdown().score
