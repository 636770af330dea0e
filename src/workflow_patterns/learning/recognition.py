"""
Pattern Recognition Engine

Compares a workflow's structural signature against the catalog of learned
patterns. A single ``analyze_workflow`` call is a pure function of its input
and the current catalog snapshot:

    build signature -> compare -> score novelty -> recommend

The engine never mutates the catalog during analysis.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from ..core.config import PatternLearningConfig
from ..core.types import (
    DetectedPattern,
    PatternAnalysisResult,
    WorkflowPattern,
    WorkflowSignature,
)
from ..graph.analyzer import ConnectionMetrics, WorkflowGraphAnalyzer
from .catalog import PatternCatalog
from .rules import structural_improvements, structural_recommendations
from .similarity import pattern_similarity

logger = logging.getLogger(__name__)


class PatternRecognitionEngine:
    """
    Detects known patterns in workflows and scores their novelty.

    Example:
        engine = PatternRecognitionEngine()
        engine.add_known_pattern(pattern)
        result = engine.analyze_workflow(workflow)
        result.novelty_score        # 0.0 .. 1.0
        result.detected_patterns    # [DetectedPattern(pattern_id=..., similarity=...)]
    """

    def __init__(
        self,
        config: Optional[PatternLearningConfig] = None,
        catalog: Optional[PatternCatalog] = None,
    ):
        self.config = config or PatternLearningConfig()
        self.catalog = catalog if catalog is not None else PatternCatalog()

    def analyze_workflow(
        self,
        workflow: Mapping[str, Any],
        connection_metrics: Optional[ConnectionMetrics] = None,
    ) -> PatternAnalysisResult:
        """
        Analyze one workflow against the current catalog.

        Args:
            workflow: Workflow descriptor (nodes + connections)
            connection_metrics: Optional historical metrics keyed by type pair

        Returns:
            PatternAnalysisResult

        Raises:
            GraphIntegrityError: If a connection references an unknown node
            GraphCycleError: If the workflow is not acyclic
        """
        analyzer = WorkflowGraphAnalyzer(workflow, connection_metrics)
        return self.analyze_graph(analyzer)

    def analyze_graph(self, analyzer: WorkflowGraphAnalyzer) -> PatternAnalysisResult:
        signature = analyzer.get_signature()
        complexity = analyzer.calculate_complexity()

        scored = self.score_patterns(signature, self.catalog.snapshot())
        best = scored[0][1] if scored else 0.0
        novelty = 1.0 - best

        detected = [
            DetectedPattern(
                pattern_id=pattern.id,
                name=pattern.name,
                category=pattern.category,
                similarity=similarity,
            )
            for pattern, similarity in scored
            if similarity >= self.config.match_threshold
        ]

        result = PatternAnalysisResult(
            novelty_score=min(1.0, max(0.0, novelty)),
            complexity_score=complexity,
            detected_patterns=detected,
            recommendations=structural_recommendations(analyzer.graph),
            potential_improvements=structural_improvements(
                analyzer.graph,
                analyzer.max_depth(),
                self.config.max_linear_depth,
            ),
            signature=signature,
        )
        logger.debug(
            f"[PatternRecognitionEngine] novelty={result.novelty_score:.3f} "
            f"complexity={complexity:.3f} detected={len(detected)}"
        )
        return result

    def similarity(self, signature: WorkflowSignature, pattern: WorkflowPattern) -> float:
        return pattern_similarity(
            signature,
            pattern,
            self.config.sequence_weight,
            self.config.connection_weight,
        )

    def score_patterns(
        self,
        signature: WorkflowSignature,
        patterns: Iterable[WorkflowPattern],
    ) -> List[Tuple[WorkflowPattern, float]]:
        """Similarity for every pattern, best first (ties by pattern id)."""
        scored = [(p, self.similarity(signature, p)) for p in patterns]
        scored.sort(key=lambda item: (-item[1], item[0].id))
        return scored

    def best_match(
        self,
        signature: WorkflowSignature,
        patterns: Iterable[WorkflowPattern],
    ) -> Optional[Tuple[WorkflowPattern, float]]:
        scored = self.score_patterns(signature, patterns)
        return scored[0] if scored else None

    def add_known_pattern(self, pattern: WorkflowPattern) -> None:
        """Seed the catalog directly, outside the learning pipeline."""
        self.catalog.add(pattern)

    def get_known_patterns(self) -> List[WorkflowPattern]:
        return self.catalog.snapshot()
