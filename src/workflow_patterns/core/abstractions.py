"""
Core Abstractions

Interfaces the learning engine depends on. The engine never talks to a
concrete backing store; it only requires immediate read-after-write
semantics within a single process.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .types import StorageQuery, StorageQueryResult, WorkflowPattern


# ============================================================================
# Storage Abstraction (Dependency Inversion Principle)
# ============================================================================

class IPatternStorage(ABC):
    """
    Abstract storage collaborator for learned patterns.

    Implementations can wrap SQLite, PostgreSQL, a document store or a plain
    dict. All operations are coroutines because the storage call is the only
    suspension point of the learning pipeline.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Acquire backing store handles."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release backing store handles. Must be safe to call twice."""
        pass

    @abstractmethod
    async def create(self, pattern: WorkflowPattern) -> WorkflowPattern:
        """
        Store a new pattern.

        Args:
            pattern: Pattern to store

        Returns:
            The stored pattern, with an id assigned when it had none
        """
        pass

    @abstractmethod
    async def read(self, query: Optional[StorageQuery] = None) -> StorageQueryResult:
        """
        Read patterns matching a query.

        Args:
            query: Filter/paging options (None reads everything)

        Returns:
            StorageQueryResult with the page of patterns and the total match count
        """
        pass

    @abstractmethod
    async def update(self, pattern_id: str, partial: Dict[str, Any]) -> WorkflowPattern:
        """
        Update fields of a stored pattern.

        Args:
            pattern_id: Id of the pattern to update
            partial: Field values keyed by attribute name

        Returns:
            The updated pattern

        Raises:
            PatternNotFoundError: If no pattern has this id
        """
        pass

    @abstractmethod
    async def delete(self, pattern_id: str) -> bool:
        """Delete a pattern. Returns False when it did not exist."""
        pass
