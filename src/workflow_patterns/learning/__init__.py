"""Pattern recognition, learning and catalog management."""

from .similarity import (
    jaccard_similarity,
    lcs_length,
    pattern_similarity,
    sequence_similarity,
)
from .rules import (
    build_metadata,
    classify_workflow,
    parallel_branch_points,
    structural_improvements,
    structural_recommendations,
)
from .catalog import PatternCatalog
from .recognition import PatternRecognitionEngine
from .storage import InMemoryPatternStorage
from .utils import (
    calculate_effectiveness_score,
    export_patterns,
    generate_workflow_from_pattern,
    import_patterns,
)
from .manager import (
    LearningState,
    PatternLearningManager,
    create_pattern_learning_manager,
)

__all__ = [
    # Similarity
    "jaccard_similarity",
    "lcs_length",
    "pattern_similarity",
    "sequence_similarity",
    # Rules
    "build_metadata",
    "classify_workflow",
    "parallel_branch_points",
    "structural_improvements",
    "structural_recommendations",
    # Catalog & engine
    "PatternCatalog",
    "PatternRecognitionEngine",
    "InMemoryPatternStorage",
    # Utils
    "calculate_effectiveness_score",
    "export_patterns",
    "generate_workflow_from_pattern",
    "import_patterns",
    # Manager
    "LearningState",
    "PatternLearningManager",
    "create_pattern_learning_manager",
]
