"""
Pattern Learning Manager

Orchestrates end-to-end learning as a LangGraph pipeline:

    analyze_workflow -> classify_workflow -> apply_learning -> persist_pattern

  - analyze_workflow: recognition engine signature + scores (returned as is)
  - classify_workflow: category from node type signals
  - apply_learning: reinforce the matching pattern or create a new one
  - persist_pattern: write the created/updated pattern to storage

Concurrency:
  Mutations of one pattern are serialized with a per-id asyncio.Lock;
  creations are serialized per category and re-check the catalog under the
  lock, so two concurrent learns of the same new workflow produce one pattern.
  Analysis never takes a lock.

Persistence failures surface as PatternPersistenceError after the in-memory
catalog was updated; ``retry_persistence()`` writes pending patterns again.
"""

import asyncio
import hashlib
import json
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Set, TypedDict

from ..core.abstractions import IPatternStorage
from ..core.config import PatternLearningConfig
from ..core.errors import PatternNotFoundError, PatternPersistenceError
from ..core.logger import get_logger
from ..core.metrics import MetricsCollector
from ..core.pipeline_builder import create_linear_pipeline
from ..core.types import (
    ConnectionPattern,
    PatternAnalysisResult,
    PatternCategory,
    PerformanceMetrics,
    StorageQuery,
    UsageStats,
    WorkflowPattern,
    WorkflowSignature,
    as_utc,
    utcnow,
)
from ..graph.analyzer import ConnectionMetrics, WorkflowGraphAnalyzer
from .catalog import PatternCatalog
from .recognition import PatternRecognitionEngine
from .rules import build_metadata, classify_workflow
from .storage import InMemoryPatternStorage
from .utils import (
    calculate_effectiveness_score,
    export_patterns,
    generate_workflow_from_pattern,
    import_patterns,
)

logger = get_logger(__name__)


class LearningState(TypedDict, total=False):
    """State flowing through the learning pipeline."""

    workflow: Dict[str, Any]
    metrics_override: Optional[PerformanceMetrics]
    connection_metrics: Optional[ConnectionMetrics]
    analyzer: WorkflowGraphAnalyzer
    analysis: PatternAnalysisResult
    category: PatternCategory
    pattern_id: str
    created: bool
    persisted: bool


def running_average(
    current: PerformanceMetrics,
    sample: PerformanceMetrics,
    observations: int,
) -> PerformanceMetrics:
    """Fold one sample into aggregates built from ``observations`` samples."""
    if observations <= 0:
        return sample.model_copy()
    values = {}
    for field_name in PerformanceMetrics.model_fields:
        old = getattr(current, field_name)
        new = getattr(sample, field_name)
        values[field_name] = (old * observations + new) / (observations + 1)
    return PerformanceMetrics(**values)


def merge_connection_patterns(
    existing: List[ConnectionPattern],
    observed: List[ConnectionPattern],
) -> None:
    """Add observed frequencies/stats into the pattern's matching pairs."""
    by_pair = {conn.pair: conn for conn in existing}
    for conn in observed:
        target = by_pair.get(conn.pair)
        if target is None:
            continue
        total = target.frequency + conn.frequency
        target.success_rate = (
            target.success_rate * target.frequency + conn.success_rate * conn.frequency
        ) / total
        target.avg_execution_time = (
            target.avg_execution_time * target.frequency
            + conn.avg_execution_time * conn.frequency
        ) / total
        target.frequency = total


class PatternLearningManager:
    """
    Main orchestrator for workflow pattern learning.

    Usage:
        async with PatternLearningManager(storage=my_storage) as manager:
            result = await manager.learn_from_workflow(workflow)
            top = manager.get_top_patterns(5)
    """

    def __init__(
        self,
        config: Optional[PatternLearningConfig] = None,
        storage: Optional[IPatternStorage] = None,
        catalog: Optional[PatternCatalog] = None,
    ):
        """
        Initialize manager.

        Args:
            config: Tuning configuration (defaults to PatternLearningConfig())
            storage: Storage collaborator (defaults to InMemoryPatternStorage)
            catalog: Pattern catalog shared with the recognition engine
        """
        self.config = config or PatternLearningConfig()
        self.storage = storage if storage is not None else InMemoryPatternStorage()
        self.catalog = catalog if catalog is not None else PatternCatalog()
        self.engine = PatternRecognitionEngine(self.config, self.catalog)
        self.metrics = MetricsCollector("pattern_learning")

        self._pattern_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._category_locks: Dict[PatternCategory, asyncio.Lock] = defaultdict(asyncio.Lock)
        # ids known to exist in storage, and ids whose latest state is not stored
        self._stored: Set[str] = set()
        self._pending: Set[str] = set()

        self._pipeline = create_linear_pipeline(
            LearningState,
            [
                ("analyze_workflow", self._analyze_step, {}),
                ("classify_workflow", self._classify_step, {}),
                ("apply_learning", self._apply_learning_step, {}),
                ("persist_pattern", self._persist_step, {}),
            ],
            name="pattern_learning",
            metrics=self.metrics,
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> None:
        """Connect the storage and load previously learned patterns."""
        await self.storage.connect()
        try:
            result = await self.storage.read(
                StorageQuery(limit=self.config.max_patterns_to_store)
            )
        except Exception:
            await self.storage.disconnect()
            raise

        loaded = 0
        for pattern in result.data:
            self._stored.add(pattern.id)
            if pattern.id not in self.catalog:
                self.catalog.add(pattern)
                loaded += 1
        logger.info(
            f"[PatternLearningManager] loaded {loaded} patterns "
            f"({result.total} stored)"
        )

    async def cleanup(self) -> None:
        """Release the storage handles."""
        await self.storage.disconnect()
        logger.info("[PatternLearningManager] storage disconnected")

    async def __aenter__(self) -> "PatternLearningManager":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    # =========================================================================
    # LEARNING
    # =========================================================================

    async def learn_from_workflow(
        self,
        workflow: Mapping[str, Any],
        metrics_override: Optional[PerformanceMetrics] = None,
        connection_metrics: Optional[ConnectionMetrics] = None,
    ) -> PatternAnalysisResult:
        """
        Analyze a workflow and learn from it.

        Args:
            workflow: Workflow descriptor
            metrics_override: Observed performance of this run (defaults otherwise)
            connection_metrics: Optional historical metrics keyed by type pair

        Returns:
            The analysis result, unchanged by learning

        Raises:
            GraphIntegrityError / GraphCycleError: Malformed workflow, nothing learned
            PatternPersistenceError: Learned in memory but not yet stored
        """
        if not self.config.enable_real_time_learning:
            self.metrics.increment("analysis_only")
            return self.engine.analyze_workflow(workflow, connection_metrics)

        final_state = await self._pipeline({
            "workflow": workflow,
            "metrics_override": metrics_override,
            "connection_metrics": connection_metrics,
        })
        return final_state["analysis"]

    async def _analyze_step(self, state: LearningState) -> Dict[str, Any]:
        analyzer = WorkflowGraphAnalyzer(state["workflow"], state.get("connection_metrics"))
        return {"analyzer": analyzer, "analysis": self.engine.analyze_graph(analyzer)}

    async def _classify_step(self, state: LearningState) -> Dict[str, Any]:
        node_sequence = state["analysis"].signature.node_sequence
        return {"category": classify_workflow(node_sequence)}

    async def _apply_learning_step(self, state: LearningState) -> Dict[str, Any]:
        analysis = state["analysis"]
        category = state["category"]
        sample = state.get("metrics_override")
        threshold = self.config.reinforcement_threshold

        top = analysis.top_match
        if top is not None and top.similarity >= threshold and top.pattern_id in self.catalog:
            async with self._pattern_locks[top.pattern_id]:
                self._reinforce(self.catalog.get(top.pattern_id), analysis, top.similarity, sample)
            return {"pattern_id": top.pattern_id, "created": False}

        async with self._category_locks[category]:
            # another learn may have created a matching pattern meanwhile
            match = self.engine.best_match(analysis.signature, self.catalog.by_category(category))
            if match is not None and match[1] >= threshold:
                pattern, similarity = match
                async with self._pattern_locks[pattern.id]:
                    self._reinforce(pattern, analysis, similarity, sample)
                return {"pattern_id": pattern.id, "created": False}

            pattern = self._build_pattern(state["analyzer"], analysis, category, sample)
            self.catalog.add(pattern)
            self._pending.add(pattern.id)

        self.metrics.increment("created")
        logger.info(
            f"[PatternLearningManager] created pattern {pattern.id} "
            f"({category.value}, novelty={analysis.novelty_score:.2f})"
        )
        return {"pattern_id": pattern.id, "created": True}

    async def _persist_step(self, state: LearningState) -> Dict[str, Any]:
        pattern_id = state["pattern_id"]
        async with self._pattern_locks[pattern_id]:
            await self._persist(pattern_id)
        return {"persisted": True}

    def _reinforce(
        self,
        pattern: WorkflowPattern,
        analysis: PatternAnalysisResult,
        similarity: float,
        sample: Optional[PerformanceMetrics],
    ) -> None:
        """Update one pattern in place. Caller holds the pattern's lock."""
        now = utcnow()
        observations = pattern.usage.times_used

        # Compute everything before the first assignment
        metrics = running_average(
            pattern.performance_metrics, sample or PerformanceMetrics(), observations
        )
        connections = [conn.model_copy() for conn in pattern.connection_patterns]
        merge_connection_patterns(connections, analysis.signature.connection_patterns)
        usage = pattern.usage.model_copy()
        usage.times_used = observations + 1
        if similarity < 1.0:
            usage.times_modified += 1
            usage.last_modified = now
        last_used = max(as_utc(pattern.last_used), now)
        confidence = min(
            1.0, pattern.confidence + (1.0 - pattern.confidence) * self.config.confidence_growth
        )
        recommendations = list(pattern.recommendations)
        for suggestion in analysis.recommendations + analysis.potential_improvements:
            if suggestion not in recommendations:
                recommendations.append(suggestion)

        pattern.performance_metrics = metrics
        pattern.connection_patterns = connections
        pattern.usage = usage
        pattern.last_used = last_used
        pattern.confidence = confidence
        pattern.recommendations = recommendations

        self._pending.add(pattern.id)
        self.metrics.increment("reinforced")
        logger.info(
            f"[PatternLearningManager] reinforced pattern {pattern.id} "
            f"(similarity={similarity:.2f}, used {pattern.usage.times_used}x, "
            f"confidence={pattern.confidence:.2f})"
        )

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    async def _persist(self, pattern_id: str) -> None:
        """Write one pattern's latest state. Caller holds the pattern's lock."""
        pattern = self.catalog.get(pattern_id)
        created = pattern_id not in self._stored
        try:
            if created:
                await self.storage.create(pattern.model_copy(deep=True))
            else:
                try:
                    await self.storage.update(
                        pattern_id, pattern.model_dump(exclude={"id", "category"})
                    )
                except PatternNotFoundError:
                    # removed from storage behind our back
                    await self.storage.create(pattern.model_copy(deep=True))
        except Exception as e:
            self._pending.add(pattern_id)
            self.metrics.increment("persistence_failures")
            logger.error(f"[PatternLearningManager] persisting {pattern_id} failed: {e}")
            raise PatternPersistenceError(pattern_id, created, str(e)) from e
        self._stored.add(pattern_id)
        self._pending.discard(pattern_id)

    def pending_persistence(self) -> List[str]:
        """Ids learned in memory whose latest state is not stored yet."""
        return sorted(self._pending)

    async def retry_persistence(self) -> List[str]:
        """
        Persist every pending pattern again.

        Returns:
            Ids persisted by this call

        Raises:
            PatternPersistenceError: First failure; failed ids stay pending
        """
        persisted = []
        first_error: Optional[PatternPersistenceError] = None
        for pattern_id in sorted(self._pending):
            async with self._pattern_locks[pattern_id]:
                if pattern_id not in self._pending:
                    continue
                try:
                    await self._persist(pattern_id)
                except PatternPersistenceError as e:
                    first_error = first_error or e
                    continue
            persisted.append(pattern_id)
        if first_error is not None:
            raise first_error
        return persisted

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_pattern_recommendations(self, workflow: Mapping[str, Any]) -> List[str]:
        """
        Suggestions for a workflow without learning from it.

        Structural recommendations and improvements first, then what the
        matched patterns' history says.
        """
        analysis = self.engine.analyze_workflow(workflow)
        suggestions = list(analysis.recommendations) + list(analysis.potential_improvements)

        for detected in analysis.detected_patterns:
            pattern = self.catalog.find(detected.pattern_id)
            if pattern is None:
                continue
            success_rate = pattern.performance_metrics.success_rate
            if success_rate < self.config.min_success_rate_threshold:
                suggestions.append(
                    f"Similar pattern '{pattern.name}' succeeds only {success_rate:.0%} "
                    f"of the time; review its failure handling before reusing it"
                )
            else:
                suggestions.append(
                    f"Reuse proven pattern '{pattern.name}' "
                    f"({detected.similarity:.0%} similar) for better reliability"
                )
            suggestions.extend(pattern.recommendations)

        return list(dict.fromkeys(suggestions))

    def create_pattern_from_workflow(
        self,
        workflow: Mapping[str, Any],
        metrics: Optional[PerformanceMetrics] = None,
        name: Optional[str] = None,
    ) -> WorkflowPattern:
        """Build (but neither catalog nor store) a pattern from one workflow."""
        analyzer = WorkflowGraphAnalyzer(workflow)
        analysis = self.engine.analyze_graph(analyzer)
        category = classify_workflow(analysis.signature.node_sequence)
        return self._build_pattern(analyzer, analysis, category, metrics, name)

    def _build_pattern(
        self,
        analyzer: WorkflowGraphAnalyzer,
        analysis: PatternAnalysisResult,
        category: PatternCategory,
        metrics: Optional[PerformanceMetrics],
        name: Optional[str] = None,
    ) -> WorkflowPattern:
        now = utcnow()
        signature = analysis.signature
        workflow_name = analyzer.graph.name or "Unnamed Workflow"
        return WorkflowPattern(
            id=self._generate_pattern_id(signature),
            name=name or f"{workflow_name} pattern",
            description=(
                f"Pattern extracted from workflow: {workflow_name} "
                f"({len(signature.node_sequence)} nodes, "
                f"{len(signature.connection_patterns)} connection types)"
            ),
            category=category,
            node_sequence=list(signature.node_sequence),
            connection_patterns=[c.model_copy() for c in signature.connection_patterns],
            performance_metrics=metrics.model_copy() if metrics else PerformanceMetrics(),
            usage=UsageStats(times_used=1, last_modified=now),
            confidence=self.config.initial_confidence,
            created_at=now,
            last_used=now,
            metadata=build_metadata(category, analyzer.graph),
            recommendations=list(
                dict.fromkeys(analysis.recommendations + analysis.potential_improvements)
            ),
        )

    def _generate_pattern_id(self, signature: WorkflowSignature) -> str:
        digest = hashlib.sha1(
            json.dumps(signature.node_sequence).encode("utf-8")
        ).hexdigest()[:8]
        while True:
            pattern_id = f"pattern_{digest}_{uuid.uuid4().hex[:8]}"
            if pattern_id not in self.catalog:
                return pattern_id

    def get_pattern(self, pattern_id: str) -> WorkflowPattern:
        return self.catalog.get(pattern_id)

    def get_top_patterns(self, n: int = 10) -> List[WorkflowPattern]:
        """Up to ``n`` patterns ranked by effectiveness score."""
        return self.catalog.top(
            n, key=lambda p: calculate_effectiveness_score(p, self.config.usage_floor)
        )

    def get_patterns_by_category(self, category: PatternCategory) -> List[WorkflowPattern]:
        return self.catalog.by_category(category)

    def get_learning_metrics(self) -> Dict[str, Any]:
        return self.metrics.get_summary()

    # =========================================================================
    # CURATION
    # =========================================================================

    async def generate_workflow(self, pattern_id: str, name: str) -> Dict[str, Any]:
        """Synthesize a workflow skeleton from a catalogued pattern."""
        pattern = self.catalog.get(pattern_id)
        async with self._pattern_locks[pattern_id]:
            pattern.usage.times_generated += 1
            workflow = generate_workflow_from_pattern(pattern, name)
            await self._persist(pattern_id)
        return workflow

    async def rate_pattern(self, pattern_id: str, rating: float) -> WorkflowPattern:
        """Record a user rating between 0 and 5."""
        if not 0.0 <= rating <= 5.0:
            raise ValueError(f"Rating must be between 0 and 5, got {rating}")
        pattern = self.catalog.get(pattern_id)
        async with self._pattern_locks[pattern_id]:
            pattern.usage.user_rating = rating
            await self._persist(pattern_id)
        return pattern

    def export_catalog(self) -> str:
        return export_patterns(self.catalog.snapshot())

    async def import_catalog(self, blob: str) -> List[WorkflowPattern]:
        """
        Import exported patterns into the catalog and the storage.

        Ids already in the catalog are skipped.

        Returns:
            Newly imported patterns
        """
        imported = []
        for pattern in import_patterns(blob):
            if pattern.id in self.catalog:
                logger.info(f"[PatternLearningManager] skipping known pattern {pattern.id}")
                continue
            self.catalog.add(pattern)
            self._pending.add(pattern.id)
            imported.append(pattern)
        await self.retry_persistence()
        return imported


def create_pattern_learning_manager(
    config: Optional[PatternLearningConfig] = None,
    storage: Optional[IPatternStorage] = None,
) -> PatternLearningManager:
    """Create a PatternLearningManager with optional config and storage."""
    return PatternLearningManager(config, storage)
