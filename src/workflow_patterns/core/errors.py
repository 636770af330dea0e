"""Error taxonomy for graph analysis and pattern learning."""

from typing import List, Optional


class PatternLearningError(Exception):
    """Base class for every error raised by this package."""


class GraphIntegrityError(PatternLearningError):
    """
    Raised when a workflow descriptor does not describe a valid graph.

    Attributes:
        reason: Human readable description
        node_id: Offending node id or reference, when known
    """

    def __init__(self, reason: str, node_id: Optional[str] = None):
        self.reason = reason
        self.node_id = node_id
        super().__init__(reason if node_id is None else f"{reason}: {node_id!r}")


class GraphCycleError(PatternLearningError):
    """Raised when the connection map contains a directed cycle."""

    def __init__(self, node_ids: List[str]):
        self.node_ids = list(node_ids)
        super().__init__(
            f"Workflow graph contains a cycle through nodes: {', '.join(self.node_ids)}"
        )


class PatternNotFoundError(PatternLearningError, KeyError):
    """Raised for operations addressing an unknown pattern id."""

    def __init__(self, pattern_id: str):
        self.pattern_id = pattern_id
        super().__init__(pattern_id)

    def __str__(self) -> str:
        return f"Pattern not found: {self.pattern_id}"


class ImportValidationError(PatternLearningError):
    """
    Raised when an import blob cannot be turned into patterns.

    Attributes:
        reason: What is wrong
        index: Position of the offending record, or None for document errors
        missing_fields: Required fields absent from the record
    """

    def __init__(
        self,
        reason: str,
        index: Optional[int] = None,
        missing_fields: Optional[List[str]] = None,
    ):
        self.reason = reason
        self.index = index
        self.missing_fields = missing_fields or []
        location = "" if index is None else f"record {index}: "
        super().__init__(f"{location}{reason}")


class PatternPersistenceError(PatternLearningError):
    """
    Raised when the storage collaborator fails to persist a learned pattern.

    The in-memory catalog already holds the learned state; the pattern can be
    persisted later with ``PatternLearningManager.retry_persistence()``.
    """

    def __init__(self, pattern_id: str, created: bool, reason: str):
        self.pattern_id = pattern_id
        self.created = created
        self.reason = reason
        action = "create" if created else "update"
        super().__init__(f"[{pattern_id}] failed to {action} pattern in storage: {reason}")
