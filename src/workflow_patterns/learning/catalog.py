"""In-memory catalog of learned workflow patterns."""

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Union

from ..core.errors import PatternNotFoundError
from ..core.types import PatternCategory, WorkflowPattern

logger = logging.getLogger(__name__)


class PatternCatalog:
    """
    Insertion-ordered map of pattern id -> WorkflowPattern.

    The catalog only holds state. Serializing concurrent mutations is the
    learning manager's job; readers iterate over ``snapshot()`` so they never
    observe the map changing under them.
    """

    def __init__(self, patterns: Optional[Iterable[WorkflowPattern]] = None):
        self._patterns: Dict[str, WorkflowPattern] = {}
        for pattern in patterns or []:
            self.add(pattern)

    def __len__(self) -> int:
        return len(self._patterns)

    def __iter__(self) -> Iterator[WorkflowPattern]:
        return iter(self.snapshot())

    def __contains__(self, pattern_id: object) -> bool:
        return pattern_id in self._patterns

    def add(self, pattern: WorkflowPattern) -> WorkflowPattern:
        if pattern.id in self._patterns:
            raise ValueError(f"Pattern id already in catalog: {pattern.id}")
        self._patterns[pattern.id] = pattern
        logger.debug(f"[PatternCatalog] added {pattern.id} ({pattern.category.value})")
        return pattern

    def get(self, pattern_id: str) -> WorkflowPattern:
        try:
            return self._patterns[pattern_id]
        except KeyError:
            raise PatternNotFoundError(pattern_id) from None

    def find(self, pattern_id: str) -> Optional[WorkflowPattern]:
        return self._patterns.get(pattern_id)

    def ids(self) -> List[str]:
        return list(self._patterns)

    def snapshot(self) -> List[WorkflowPattern]:
        return list(self._patterns.values())

    def by_category(self, category: Union[PatternCategory, str]) -> List[WorkflowPattern]:
        category = PatternCategory(category)
        return [p for p in self._patterns.values() if p.category == category]

    def top(
        self,
        n: int,
        key: Callable[[WorkflowPattern], float],
    ) -> List[WorkflowPattern]:
        """Up to ``n`` patterns ranked by ``key`` descending (stable on ties)."""
        if n <= 0:
            return []
        return sorted(self._patterns.values(), key=key, reverse=True)[:n]
