"""
In-memory storage collaborator.

Implements IPatternStorage on a plain dict. Patterns are deep-copied on the
way in and out, so callers never share state with the store.
"""

import logging
import uuid
from typing import Any, Dict, Optional

from ..core.abstractions import IPatternStorage
from ..core.errors import PatternNotFoundError
from ..core.types import StorageQuery, StorageQueryResult, WorkflowPattern

logger = logging.getLogger(__name__)

# Fields the storage refuses to change through update()
IMMUTABLE_FIELDS = frozenset({"id", "category"})


class InMemoryPatternStorage(IPatternStorage):
    """Process-local pattern store with immediate read-after-write."""

    def __init__(self):
        self._records: Dict[str, WorkflowPattern] = {}
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    def _require_connection(self) -> None:
        if not self.connected:
            raise RuntimeError("Storage is not connected. Call connect() first.")

    async def create(self, pattern: WorkflowPattern) -> WorkflowPattern:
        self._require_connection()
        if not pattern.id:
            pattern = pattern.model_copy(update={"id": f"pattern_{uuid.uuid4().hex}"})
        if pattern.id in self._records:
            raise ValueError(f"Pattern already stored: {pattern.id}")
        self._records[pattern.id] = pattern.model_copy(deep=True)
        logger.debug(f"[InMemoryPatternStorage] created {pattern.id}")
        return pattern.model_copy(deep=True)

    async def read(self, query: Optional[StorageQuery] = None) -> StorageQueryResult:
        self._require_connection()
        query = query or StorageQuery()
        matches = [
            p for p in self._records.values()
            if query.category is None or p.category == query.category
        ]
        end = None if query.limit is None else query.offset + query.limit
        page = matches[query.offset:end]
        return StorageQueryResult(
            data=[p.model_copy(deep=True) for p in page],
            total=len(matches),
        )

    async def update(self, pattern_id: str, partial: Dict[str, Any]) -> WorkflowPattern:
        self._require_connection()
        if pattern_id not in self._records:
            raise PatternNotFoundError(pattern_id)
        blocked = IMMUTABLE_FIELDS.intersection(partial)
        if blocked:
            raise ValueError(f"Cannot update immutable fields: {sorted(blocked)}")
        current = self._records[pattern_id].model_dump()
        current.update(partial)
        updated = WorkflowPattern.model_validate(current)
        self._records[pattern_id] = updated
        return updated.model_copy(deep=True)

    async def delete(self, pattern_id: str) -> bool:
        self._require_connection()
        return self._records.pop(pattern_id, None) is not None
