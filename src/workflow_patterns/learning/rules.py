"""
Rule-based workflow classification and structural suggestions.

Every rule is a deterministic function of the workflow graph; none of them
depends on the catalog or on similarity.
"""

from collections import Counter
from typing import List

from ..core.types import (
    AIPatternMetadata,
    AutomationPatternMetadata,
    GenericPatternMetadata,
    PatternCategory,
    PatternMetadata,
)
from ..graph.builder import WorkflowGraph
from ..graph.node_types import NodeRole, any_has_role, count_role, has_role

ERROR_HANDLING_RECOMMENDATION = (
    "Consider adding error handling nodes (error trigger, retry or fallback branch) "
    "to improve workflow reliability"
)
MONITORING_RECOMMENDATION = (
    "Add monitoring or logging nodes to track workflow execution"
)
CACHING_IMPROVEMENT = (
    "Consider caching responses of HTTP/API nodes that fetch frequently accessed data"
)


def classify_workflow(node_types: List[str]) -> PatternCategory:
    """
    Assign a category from node type signals, in fixed precedence order.

    AI nodes win over everything; trigger + conditional + merge marks an
    automation; two or more data stores mark a sync; then HTTP, transforms
    and plain triggers.
    """
    if any_has_role(node_types, NodeRole.AI):
        return PatternCategory.AI_WORKFLOW
    has_trigger = any_has_role(node_types, NodeRole.TRIGGER)
    if (
        has_trigger
        and any_has_role(node_types, NodeRole.CONDITIONAL)
        and any_has_role(node_types, NodeRole.MERGE)
    ):
        return PatternCategory.AUTOMATION
    if count_role(node_types, NodeRole.DATA_STORE) >= 2:
        return PatternCategory.DATA_SYNC
    if any_has_role(node_types, NodeRole.HTTP):
        return PatternCategory.API_INTEGRATION
    if any_has_role(node_types, NodeRole.TRANSFORM):
        return PatternCategory.DATA_PROCESSING
    if has_trigger:
        return PatternCategory.AUTOMATION
    return PatternCategory.GENERIC


def structural_recommendations(graph: WorkflowGraph) -> List[str]:
    node_types = list(graph.node_types.values())
    recommendations = []
    if not node_types:
        return recommendations

    if not any_has_role(node_types, NodeRole.ERROR_HANDLING):
        recommendations.append(ERROR_HANDLING_RECOMMENDATION)
    if not any_has_role(node_types, NodeRole.MONITORING):
        recommendations.append(MONITORING_RECOMMENDATION)

    isolated = graph.isolated_nodes() if len(graph) > 1 else []
    if isolated:
        recommendations.append(
            f"Connect or remove {len(isolated)} disconnected node(s): {', '.join(isolated)}"
        )
    return recommendations


def parallel_branch_points(graph: WorkflowGraph) -> List[str]:
    """
    Ids of nodes whose outgoing branches never reconverge at a merge node.

    Conditional nodes are skipped: their branches are mutually exclusive,
    so running them in parallel is not an option.
    """
    points = []
    for node_id in graph.topological_order:
        if has_role(graph.node_type(node_id), NodeRole.CONDITIONAL):
            continue
        branches = graph.distinct_successors(node_id)
        if len(branches) < 2:
            continue
        reach = [{b} | graph.descendants(b) for b in branches]
        reconverges = False
        for i in range(len(reach)):
            for j in range(i + 1, len(reach)):
                shared = reach[i] & reach[j]
                if any(has_role(graph.node_type(n), NodeRole.MERGE) for n in shared):
                    reconverges = True
                    break
            if reconverges:
                break
        if not reconverges:
            points.append(node_id)
    return points


def structural_improvements(
    graph: WorkflowGraph,
    max_depth: int,
    max_linear_depth: int = 10,
) -> List[str]:
    improvements = []
    for node_id in parallel_branch_points(graph):
        improvements.append(
            f"Branches after '{graph.node_type(node_id)}' ({node_id}) never reconverge; "
            f"consider running them in parallel execution paths"
        )

    node_types = list(graph.node_types.values())
    if any_has_role(node_types, NodeRole.HTTP):
        improvements.append(CACHING_IMPROVEMENT)

    if max_depth > max_linear_depth:
        improvements.append(
            f"Longest path has {max_depth} steps (more than {max_linear_depth}); "
            f"consider splitting it into sub-workflows"
        )
    return improvements


def build_metadata(category: PatternCategory, graph: WorkflowGraph) -> PatternMetadata:
    """Category specific metadata for a pattern learned from ``graph``."""
    node_types = list(graph.node_types.values())
    if category == PatternCategory.AI_WORKFLOW:
        ai_types = [t for t in node_types if has_role(t, NodeRole.AI)]
        return AIPatternMetadata(
            ai_node_types=sorted(set(ai_types)),
            ai_node_count=len(ai_types),
        )
    if category == PatternCategory.AUTOMATION:
        return AutomationPatternMetadata(
            trigger_types=sorted({t for t in node_types if has_role(t, NodeRole.TRIGGER)}),
            branch_points=sum(1 for n in graph.node_types if len(graph.distinct_successors(n)) > 1),
            merge_points=sum(
                1 for n in graph.node_types if len(graph.distinct_predecessors(n)) > 1
            ),
        )
    return GenericPatternMetadata(node_type_counts=dict(Counter(node_types)))
