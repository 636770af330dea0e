"""Workflow graph construction and structural analysis."""

from .builder import GraphBuilder, WorkflowGraph
from .analyzer import ComplexityBreakdown, ConnectionMetrics, WorkflowGraphAnalyzer
from .node_types import NodeRole, any_has_role, count_role, has_role, tokenize_type

__all__ = [
    "GraphBuilder",
    "WorkflowGraph",
    "ComplexityBreakdown",
    "ConnectionMetrics",
    "WorkflowGraphAnalyzer",
    "NodeRole",
    "any_has_role",
    "count_role",
    "has_role",
    "tokenize_type",
]
