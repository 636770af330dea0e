"""workflow-patterns: learn reusable structural patterns from automation workflows."""

from .core import (
    ConnectionPattern,
    DetectedPattern,
    GraphCycleError,
    GraphIntegrityError,
    ImportValidationError,
    IPatternStorage,
    PatternAnalysisResult,
    PatternCategory,
    PatternLearningConfig,
    PatternLearningError,
    PatternNotFoundError,
    PatternPersistenceError,
    PerformanceMetrics,
    UsageStats,
    WorkflowPattern,
    WorkflowSignature,
    get_logger,
)
from .graph import GraphBuilder, WorkflowGraph, WorkflowGraphAnalyzer
from .learning import (
    InMemoryPatternStorage,
    PatternCatalog,
    PatternLearningManager,
    PatternRecognitionEngine,
    calculate_effectiveness_score,
    create_pattern_learning_manager,
    export_patterns,
    generate_workflow_from_pattern,
    import_patterns,
)

__version__ = "0.1.0"

__all__ = [
    # Data model
    "ConnectionPattern",
    "DetectedPattern",
    "PatternAnalysisResult",
    "PatternCategory",
    "PerformanceMetrics",
    "UsageStats",
    "WorkflowPattern",
    "WorkflowSignature",
    # Errors
    "GraphCycleError",
    "GraphIntegrityError",
    "ImportValidationError",
    "PatternLearningError",
    "PatternNotFoundError",
    "PatternPersistenceError",
    # Infrastructure
    "IPatternStorage",
    "PatternLearningConfig",
    "get_logger",
    # Graph
    "GraphBuilder",
    "WorkflowGraph",
    "WorkflowGraphAnalyzer",
    # Learning
    "InMemoryPatternStorage",
    "PatternCatalog",
    "PatternLearningManager",
    "PatternRecognitionEngine",
    "calculate_effectiveness_score",
    "create_pattern_learning_manager",
    "export_patterns",
    "generate_workflow_from_pattern",
    "import_patterns",
]
