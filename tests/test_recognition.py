"""Tests for PatternRecognitionEngine."""

import pytest
from workflow_patterns.core.config import PatternLearningConfig
from workflow_patterns.core.errors import GraphCycleError, GraphIntegrityError
from workflow_patterns.core.types import ConnectionPattern, PatternCategory, WorkflowPattern
from workflow_patterns.learning import PatternCatalog, PatternRecognitionEngine


TRIGGER = "n8n-nodes-base.manualTrigger"
HTTP = "n8n-nodes-base.httpRequest"
SET = "n8n-nodes-base.set"
AI = "@n8n/n8n-nodes-langchain.openAi"
SLACK = "n8n-nodes-base.slack"


def make_workflow(node_types, edges=None):
    nodes = [{"id": str(i), "type": t} for i, t in enumerate(node_types)]
    if edges is None:
        edges = [(i, i + 1) for i in range(len(node_types) - 1)]
    connections = {}
    for src, dst in edges:
        connections.setdefault(str(src), {"main": [[]]})["main"][0].append({"node": str(dst)})
    return {"name": "Test Workflow", "nodes": nodes, "connections": connections}


def make_pattern(pattern_id, node_types, category=PatternCategory.API_INTEGRATION):
    return WorkflowPattern(
        id=pattern_id,
        name=f"Pattern {pattern_id}",
        category=category,
        node_sequence=list(node_types),
        connection_patterns=[
            ConnectionPattern(from_node_type=a, to_node_type=b)
            for a, b in zip(node_types, node_types[1:])
        ],
    )


# ============================================================================
# Tests: Analysis
# ============================================================================

class TestAnalyzeWorkflow:
    """Tests for novelty, detection and suggestions."""

    def test_empty_catalog_is_fully_novel(self):
        result = PatternRecognitionEngine().analyze_workflow(make_workflow([TRIGGER, HTTP]))
        assert result.novelty_score == 1.0
        assert result.detected_patterns == []
        assert result.top_match is None
        assert result.complexity_score > 0

    def test_known_structure_is_not_novel(self):
        engine = PatternRecognitionEngine()
        engine.add_known_pattern(make_pattern("p1", [TRIGGER, HTTP, SET]))

        result = engine.analyze_workflow(make_workflow([TRIGGER, HTTP, SET]))

        assert result.novelty_score == 0.0
        assert result.top_match.pattern_id == "p1"
        assert result.top_match.similarity == 1.0
        assert result.top_match.category == PatternCategory.API_INTEGRATION

    def test_detection_respects_match_threshold(self):
        engine = PatternRecognitionEngine(PatternLearningConfig(match_threshold=0.8))
        engine.add_known_pattern(make_pattern("partial", [TRIGGER, HTTP, SET, AI]))

        result = engine.analyze_workflow(make_workflow([TRIGGER, HTTP, SET]))

        # best similarity is ~0.708: below the threshold, still lowers novelty
        assert result.detected_patterns == []
        assert result.novelty_score == pytest.approx(1 - (0.75 + 2 / 3) / 2)

    def test_detected_patterns_sorted_best_first(self):
        engine = PatternRecognitionEngine()
        engine.add_known_pattern(make_pattern("b", [TRIGGER, HTTP, SET, AI]))
        engine.add_known_pattern(make_pattern("exact", [TRIGGER, HTTP, SET]))
        engine.add_known_pattern(make_pattern("a", [TRIGGER, HTTP, SET, AI]))

        result = engine.analyze_workflow(make_workflow([TRIGGER, HTTP, SET]))

        assert [d.pattern_id for d in result.detected_patterns] == ["exact", "a", "b"]

    def test_analysis_does_not_touch_catalog(self):
        catalog = PatternCatalog([make_pattern("p1", [TRIGGER, HTTP])])
        engine = PatternRecognitionEngine(catalog=catalog)

        engine.analyze_workflow(make_workflow([TRIGGER, HTTP]))
        engine.analyze_workflow(make_workflow([AI, SLACK]))

        assert catalog.ids() == ["p1"]
        assert catalog.get("p1").usage.times_used == 0

    def test_recommendations_and_improvements_are_reported(self):
        result = PatternRecognitionEngine().analyze_workflow(make_workflow([TRIGGER, HTTP]))
        assert len(result.recommendations) == 2
        assert any("caching" in i for i in result.potential_improvements)

    def test_signature_is_returned(self):
        result = PatternRecognitionEngine().analyze_workflow(make_workflow([TRIGGER, HTTP]))
        assert result.signature.node_sequence == [TRIGGER, HTTP]
        assert [c.pair for c in result.signature.connection_patterns] == [(TRIGGER, HTTP)]

    def test_malformed_workflow_raises(self):
        engine = PatternRecognitionEngine()
        workflow = make_workflow([TRIGGER, HTTP])
        workflow["connections"]["1"] = {"main": [[{"node": "nowhere"}]]}
        with pytest.raises(GraphIntegrityError):
            engine.analyze_workflow(workflow)

    def test_cyclic_workflow_raises(self):
        with pytest.raises(GraphCycleError):
            PatternRecognitionEngine().analyze_workflow(
                make_workflow([TRIGGER, HTTP], edges=[(0, 1), (1, 0)])
            )


# ============================================================================
# Tests: Matching helpers
# ============================================================================

def test_best_match_uses_configured_weights():
    engine = PatternRecognitionEngine(
        PatternLearningConfig(sequence_weight=1.0, connection_weight=0.0)
    )
    partial = make_pattern("partial", [TRIGGER, HTTP, SET, AI])
    signature = engine.analyze_workflow(make_workflow([TRIGGER, HTTP, SET])).signature

    pattern, similarity = engine.best_match(signature, [partial])

    assert pattern is partial
    assert similarity == pytest.approx(0.75)


def test_best_match_without_candidates():
    engine = PatternRecognitionEngine()
    signature = engine.analyze_workflow(make_workflow([TRIGGER])).signature
    assert engine.best_match(signature, []) is None


def test_known_patterns_listed_in_insertion_order():
    engine = PatternRecognitionEngine()
    engine.add_known_pattern(make_pattern("z", [TRIGGER]))
    engine.add_known_pattern(make_pattern("a", [HTTP]))
    assert [p.id for p in engine.get_known_patterns()] == ["z", "a"]


# ============================================================================
# Tests: End-to-end scenarios
# ============================================================================

def test_linear_ai_workflow_on_empty_catalog():
    result = PatternRecognitionEngine().analyze_workflow(
        make_workflow([TRIGGER, HTTP, SET, AI])
    )
    assert result.novelty_score == 1.0
    assert result.complexity_score > 0
    assert any("error handling" in r for r in result.recommendations)
    assert any("monitoring" in r for r in result.recommendations)


def test_unmerged_branches_suggest_parallel_execution():
    result = PatternRecognitionEngine().analyze_workflow(
        make_workflow([TRIGGER, SET, SLACK], edges=[(0, 1), (0, 2)])
    )
    assert any("parallel" in i for i in result.potential_improvements)


def test_novelty_drops_after_learning_identical_pattern():
    engine = PatternRecognitionEngine()
    workflow = make_workflow([TRIGGER, HTTP, SET])
    before = engine.analyze_workflow(workflow).novelty_score
    engine.add_known_pattern(make_pattern("p1", [TRIGGER, HTTP, SET]))
    assert engine.analyze_workflow(workflow).novelty_score < before
