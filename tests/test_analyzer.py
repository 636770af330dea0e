"""Tests for WorkflowGraphAnalyzer."""

import math

import pytest
from workflow_patterns.core.errors import GraphIntegrityError
from workflow_patterns.graph import GraphBuilder, WorkflowGraphAnalyzer


TRIGGER = "n8n-nodes-base.manualTrigger"
HTTP = "n8n-nodes-base.httpRequest"
SET = "n8n-nodes-base.set"
SLACK = "n8n-nodes-base.slack"
IF = "n8n-nodes-base.if"
MERGE = "n8n-nodes-base.merge"


def make_workflow(node_types, edges=None, name="Test Workflow"):
    nodes = [
        {"id": str(i), "name": f"Node {i}", "type": node_type}
        for i, node_type in enumerate(node_types)
    ]
    if edges is None:
        edges = [(i, i + 1) for i in range(len(node_types) - 1)]
    connections = {}
    for src, dst in edges:
        ports = connections.setdefault(str(src), {"main": [[]]})
        ports["main"][0].append({"node": str(dst), "type": "main", "index": 0})
    return {"name": name, "nodes": nodes, "connections": connections}


# ============================================================================
# Tests: Signature
# ============================================================================

class TestSignature:
    """Tests for node sequence and connection patterns."""

    def test_node_sequence_follows_topological_order(self):
        workflow = make_workflow([SLACK, TRIGGER, HTTP], edges=[(1, 2), (2, 0)])
        analyzer = WorkflowGraphAnalyzer(workflow)
        assert analyzer.get_node_sequence() == [TRIGGER, HTTP, SLACK]

    def test_connection_patterns_aggregate_type_pairs(self):
        workflow = make_workflow([TRIGGER, HTTP, HTTP, SET], edges=[(0, 1), (0, 2), (1, 3)])
        patterns = WorkflowGraphAnalyzer(workflow).get_connection_patterns()

        assert [p.pair for p in patterns] == [(TRIGGER, HTTP), (HTTP, SET)]
        assert patterns[0].frequency == 2
        assert patterns[1].frequency == 1
        assert patterns[0].success_rate == 1.0
        assert patterns[0].avg_execution_time == 0.0

    def test_connection_metrics_history_is_applied(self):
        history = {(TRIGGER, HTTP): {"success_rate": 0.9, "avg_execution_time": 120.0}}
        analyzer = WorkflowGraphAnalyzer(make_workflow([TRIGGER, HTTP]), history)
        pattern = analyzer.get_connection_patterns()[0]
        assert pattern.success_rate == 0.9
        assert pattern.avg_execution_time == 120.0

    def test_sequence_respects_every_edge(self):
        workflow = make_workflow(
            [SLACK, SET, TRIGGER, HTTP, MERGE],
            edges=[(2, 3), (2, 1), (3, 4), (1, 4), (4, 0)],
        )
        analyzer = WorkflowGraphAnalyzer(workflow)
        position = {n: i for i, n in enumerate(analyzer.graph.topological_order)}
        for src, dst in analyzer.graph.edges:
            assert position[src] < position[dst]
        assert analyzer.get_node_sequence() == [TRIGGER, SET, HTTP, MERGE, SLACK]

    def test_accepts_prebuilt_graph(self):
        graph = GraphBuilder().build(make_workflow([TRIGGER, HTTP]))
        analyzer = WorkflowGraphAnalyzer(graph)
        assert analyzer.graph is graph
        assert analyzer.get_signature().node_sequence == [TRIGGER, HTTP]

    def test_invalid_workflow_raises(self):
        with pytest.raises(GraphIntegrityError):
            WorkflowGraphAnalyzer({"nodes": [{"id": "1"}]})


# ============================================================================
# Tests: Complexity
# ============================================================================

class TestComplexity:
    """Tests for the complexity score."""

    def test_empty_workflow_scores_zero(self):
        assert WorkflowGraphAnalyzer({}).calculate_complexity() == 0.0

    def test_single_node(self):
        analyzer = WorkflowGraphAnalyzer(make_workflow([TRIGGER]))
        assert analyzer.calculate_complexity() == pytest.approx(1.0)

    def test_linear_chain(self):
        analyzer = WorkflowGraphAnalyzer(make_workflow([TRIGGER, HTTP, SET, SLACK]))
        # nodes 4, edges 3, depth 3, no excess branches
        assert analyzer.calculate_complexity() == pytest.approx(math.log2(5) + 4)
        assert analyzer.max_depth() == 3

    def test_conditional_and_merge_add_bonus(self):
        workflow = make_workflow(
            [TRIGGER, IF, HTTP, SET, MERGE],
            edges=[(0, 1), (1, 2), (1, 3), (2, 4), (3, 4)],
        )
        breakdown = WorkflowGraphAnalyzer(workflow).complexity_breakdown()

        assert breakdown.conditional_nodes == 1
        assert breakdown.merge_points == 1
        assert breakdown.excess_branches == 1
        assert breakdown.max_depth == 3
        expected = math.log2(6) + math.log2(6) + math.log2(4) + math.log2(2) + 1.0
        assert breakdown.score == pytest.approx(expected)
        assert breakdown.avg_branching_factor == pytest.approx(1.0)

    def test_superset_never_scores_lower(self):
        smaller = make_workflow([TRIGGER, HTTP, SET])
        larger = make_workflow([TRIGGER, HTTP, SET, SLACK], edges=[(0, 1), (1, 2), (0, 3)])
        assert (
            WorkflowGraphAnalyzer(larger).calculate_complexity()
            > WorkflowGraphAnalyzer(smaller).calculate_complexity()
        )

    def test_breakdown_to_dict(self):
        data = WorkflowGraphAnalyzer(make_workflow([TRIGGER, HTTP])).complexity_breakdown().to_dict()
        assert data["node_count"] == 2
        assert data["edge_count"] == 1
        assert data["score"] == pytest.approx(math.log2(3) + 2)

    def test_parallel_edges_are_not_a_merge(self):
        workflow = make_workflow([TRIGGER, HTTP], edges=[(0, 1), (0, 1)])
        breakdown = WorkflowGraphAnalyzer(workflow).complexity_breakdown()

        assert breakdown.merge_points == 0
        assert breakdown.score == pytest.approx(
            math.log2(3) + math.log2(3) + math.log2(2) + math.log2(2)
        )
