"""Shared type definitions for pattern learning."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current time used for every pattern timestamp."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Read naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PatternCategory(str, Enum):
    """Fixed set of categories a learned pattern can belong to."""

    AI_WORKFLOW = "ai-workflow"
    AUTOMATION = "automation"
    DATA_SYNC = "data-sync"
    API_INTEGRATION = "api-integration"
    DATA_PROCESSING = "data-processing"
    GENERIC = "generic"


class ConnectionPattern(CamelModel):
    """Aggregated statistics for one (from type -> to type) edge kind."""

    from_node_type: str
    to_node_type: str
    frequency: int = Field(default=1, ge=1)
    success_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    avg_execution_time: float = Field(default=0.0, ge=0.0)

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.from_node_type, self.to_node_type)


class PerformanceMetrics(CamelModel):
    """Running performance aggregates of a pattern (or one observation)."""

    success_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    avg_execution_time: float = Field(default=0.0, ge=0.0)
    avg_token_usage: float = Field(default=0.0, ge=0.0)
    avg_cost: float = Field(default=0.0, ge=0.0)
    error_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    reusability_score: float = Field(default=0.5, ge=0.0, le=1.0)


class UsageStats(CamelModel):
    times_used: int = Field(default=0, ge=0)
    times_generated: int = Field(default=0, ge=0)
    times_modified: int = Field(default=0, ge=0)
    last_modified: datetime = Field(default_factory=utcnow)
    user_rating: float = Field(default=0.0, ge=0.0, le=5.0)

    @field_validator("last_modified")
    @classmethod
    def _last_modified_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


# =============================================================================
# CATEGORY METADATA - tagged variants instead of a free-form dict
# =============================================================================

class AIPatternMetadata(CamelModel):
    kind: Literal["ai"] = "ai"
    ai_node_types: List[str] = Field(default_factory=list)
    ai_node_count: int = 0


class AutomationPatternMetadata(CamelModel):
    kind: Literal["automation"] = "automation"
    trigger_types: List[str] = Field(default_factory=list)
    branch_points: int = 0
    merge_points: int = 0


class GenericPatternMetadata(CamelModel):
    kind: Literal["generic"] = "generic"
    node_type_counts: Dict[str, int] = Field(default_factory=dict)


PatternMetadata = Annotated[
    Union[AIPatternMetadata, AutomationPatternMetadata, GenericPatternMetadata],
    Field(discriminator="kind"),
]


class WorkflowPattern(CamelModel):
    """
    A learned structural archetype.

    ``id`` and ``category`` are frozen once the pattern exists; every other
    field is updated in place by the learning manager.
    """

    id: str = Field(frozen=True)
    name: str
    description: str = ""
    category: PatternCategory = Field(frozen=True)
    node_sequence: List[str] = Field(default_factory=list)
    connection_patterns: List[ConnectionPattern] = Field(default_factory=list)
    performance_metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    usage: UsageStats = Field(default_factory=UsageStats)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)
    metadata: Optional[PatternMetadata] = None
    recommendations: List[str] = Field(default_factory=list)

    @field_validator("created_at", "last_used")
    @classmethod
    def _timestamps_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def connection_pairs(self) -> Set[Tuple[str, str]]:
        return {c.pair for c in self.connection_patterns}


class WorkflowSignature(CamelModel):
    """Structural signature of a single workflow."""

    node_sequence: List[str] = Field(default_factory=list)
    connection_patterns: List[ConnectionPattern] = Field(default_factory=list)

    def connection_pairs(self) -> Set[Tuple[str, str]]:
        return {c.pair for c in self.connection_patterns}


class DetectedPattern(CamelModel):
    pattern_id: str
    name: str = ""
    category: PatternCategory = PatternCategory.GENERIC
    similarity: float = Field(ge=0.0, le=1.0)


class PatternAnalysisResult(CamelModel):
    """Output of analyzing one workflow against the catalog."""

    novelty_score: float = Field(ge=0.0, le=1.0)
    complexity_score: float = Field(ge=0.0)
    detected_patterns: List[DetectedPattern] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    potential_improvements: List[str] = Field(default_factory=list)
    signature: WorkflowSignature = Field(default_factory=WorkflowSignature)

    @property
    def top_match(self) -> Optional[DetectedPattern]:
        return self.detected_patterns[0] if self.detected_patterns else None


# =============================================================================
# STORAGE CONTRACT
# =============================================================================

class StorageQuery(CamelModel):
    category: Optional[PatternCategory] = None
    limit: Optional[int] = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)


class StorageQueryResult(CamelModel):
    data: List[WorkflowPattern] = Field(default_factory=list)
    total: int = 0
