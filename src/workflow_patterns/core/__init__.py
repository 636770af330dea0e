"""Core infrastructure shared by graph analysis and pattern learning."""

from .types import (
    AIPatternMetadata,
    AutomationPatternMetadata,
    ConnectionPattern,
    DetectedPattern,
    GenericPatternMetadata,
    PatternAnalysisResult,
    PatternCategory,
    PatternMetadata,
    PerformanceMetrics,
    StorageQuery,
    StorageQueryResult,
    UsageStats,
    WorkflowPattern,
    WorkflowSignature,
    utcnow,
)
from .errors import (
    GraphCycleError,
    GraphIntegrityError,
    ImportValidationError,
    PatternLearningError,
    PatternNotFoundError,
    PatternPersistenceError,
)
from .config import PatternLearningConfig
from .logger import get_logger
from .abstractions import IPatternStorage
from .metrics import MetricsCollector
from .pipeline_builder import (
    PipelineBuilder,
    create_linear_pipeline,
    wrap_step_with_metrics,
)

__all__ = [
    # Data model
    "AIPatternMetadata",
    "AutomationPatternMetadata",
    "ConnectionPattern",
    "DetectedPattern",
    "GenericPatternMetadata",
    "PatternAnalysisResult",
    "PatternCategory",
    "PatternMetadata",
    "PerformanceMetrics",
    "StorageQuery",
    "StorageQueryResult",
    "UsageStats",
    "WorkflowPattern",
    "WorkflowSignature",
    "utcnow",
    # Errors
    "GraphCycleError",
    "GraphIntegrityError",
    "ImportValidationError",
    "PatternLearningError",
    "PatternNotFoundError",
    "PatternPersistenceError",
    # Infrastructure
    "PatternLearningConfig",
    "get_logger",
    "IPatternStorage",
    "MetricsCollector",
    "PipelineBuilder",
    "create_linear_pipeline",
    "wrap_step_with_metrics",
]
