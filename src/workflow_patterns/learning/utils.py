"""
Pattern Learning Utilities

Stateless helpers:
  - synthesize a workflow skeleton from a learned pattern
  - effectiveness score used to rank patterns
  - lossless export/import of the pattern catalog
"""

import json
import math
from typing import Any, Dict, Iterable, List, Mapping

from pydantic import ValidationError

from ..core.errors import ImportValidationError
from ..core.types import WorkflowPattern

EXPORT_FORMAT = "workflow-patterns"
EXPORT_VERSION = 1

# Required keys (wire names) of an imported record and of its nested objects
REQUIRED_FIELDS = (
    "id", "name", "description", "category", "nodeSequence",
    "connectionPatterns", "performanceMetrics", "usage", "confidence",
    "createdAt", "lastUsed",
)
REQUIRED_NESTED_FIELDS = {
    "performanceMetrics": (
        "successRate", "avgExecutionTime", "avgTokenUsage", "avgCost",
        "errorRate", "reusabilityScore",
    ),
    "usage": (
        "timesUsed", "timesGenerated", "timesModified", "lastModified", "userRating",
    ),
}
REQUIRED_CONNECTION_FIELDS = (
    "fromNodeType", "toNodeType", "frequency", "successRate", "avgExecutionTime",
)

NODE_SPACING = 200


# =============================================================================
# GENERATION
# =============================================================================

def generate_workflow_from_pattern(pattern: WorkflowPattern, name: str) -> Dict[str, Any]:
    """
    Build a minimal workflow descriptor that follows a pattern.

    One node per entry of ``pattern.node_sequence`` (ids ``node_0``,
    ``node_1``, ...). Adjacent entries are connected when the pattern
    contains that (from type, to type) pair.

    Args:
        pattern: Learned pattern
        name: Name of the generated workflow

    Returns:
        Workflow descriptor dict
    """
    pairs = pattern.connection_pairs()
    nodes = []
    connections: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}

    for index, node_type in enumerate(pattern.node_sequence):
        nodes.append({
            "id": f"node_{index}",
            "name": f"{node_type.rsplit('.', 1)[-1]}_{index}",
            "type": node_type,
            "typeVersion": 1,
            "position": [index * NODE_SPACING, 100],
            "parameters": {},
        })

    sequence = pattern.node_sequence
    for index in range(len(sequence) - 1):
        if (sequence[index], sequence[index + 1]) in pairs:
            connections.setdefault(f"node_{index}", {}).setdefault("main", []).append(
                {"node": f"node_{index + 1}", "type": "main", "index": 0}
            )

    return {
        "name": name,
        "nodes": nodes,
        "connections": connections,
        "active": False,
        "settings": {"executionOrder": "v1"},
    }


# =============================================================================
# RANKING
# =============================================================================

def calculate_effectiveness_score(pattern: WorkflowPattern, usage_floor: float = 3.0) -> float:
    """
    Score in (0, 1] combining metrics quality and evidence of reuse.

    Quality blends success rate, (1 - error rate) and reusability. Reuse
    saturates: ``1 - exp(-times_used / usage_floor)``, so a handful of uses
    matter a lot and hundreds barely more than dozens. The product means a
    pattern needs both to rank highly.

    A smaller standing factor, the mean of ``user_rating / 5`` and
    ``confidence``, scales the result between 0.8 and 1.0.
    """
    metrics = pattern.performance_metrics
    quality = (
        0.4 * metrics.success_rate
        + 0.3 * (1.0 - metrics.error_rate)
        + 0.3 * metrics.reusability_score
    )
    reuse = 1.0 - math.exp(-pattern.usage.times_used / usage_floor)
    standing = 0.5 * min(pattern.usage.user_rating / 5.0, 1.0) + 0.5 * pattern.confidence
    return (0.1 + 0.9 * quality) * (0.1 + 0.9 * reuse) * (0.8 + 0.2 * standing)


# =============================================================================
# EXPORT / IMPORT
# =============================================================================

def export_patterns(patterns: Iterable[WorkflowPattern]) -> str:
    """Serialize patterns to a self-describing JSON document."""
    document = {
        "format": EXPORT_FORMAT,
        "version": EXPORT_VERSION,
        "patterns": [p.model_dump(mode="json", by_alias=True) for p in patterns],
    }
    return json.dumps(document, indent=2)


def _missing_fields(record: Mapping[str, Any]) -> List[str]:
    missing = [f for f in REQUIRED_FIELDS if f not in record]
    for section, fields in REQUIRED_NESTED_FIELDS.items():
        nested = record.get(section)
        if isinstance(nested, Mapping):
            missing.extend(f"{section}.{f}" for f in fields if f not in nested)
    connections = record.get("connectionPatterns")
    if isinstance(connections, list):
        for i, conn in enumerate(connections):
            if isinstance(conn, Mapping):
                missing.extend(
                    f"connectionPatterns[{i}].{f}"
                    for f in REQUIRED_CONNECTION_FIELDS if f not in conn
                )
    return missing


def import_patterns(blob: str) -> List[WorkflowPattern]:
    """
    Parse an exported document back into patterns.

    Accepts the document produced by ``export_patterns`` or a bare JSON list
    of records. Records missing required fields are rejected, never
    defaulted.

    Raises:
        ImportValidationError: On invalid JSON, wrong format/version, missing
            or invalid fields, or duplicate ids
    """
    try:
        document = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise ImportValidationError(f"Invalid pattern JSON: {e}") from e

    if isinstance(document, Mapping):
        if document.get("format") != EXPORT_FORMAT:
            raise ImportValidationError(f"Unknown export format: {document.get('format')!r}")
        if document.get("version") != EXPORT_VERSION:
            raise ImportValidationError(f"Unsupported export version: {document.get('version')!r}")
        records = document.get("patterns")
    else:
        records = document

    if not isinstance(records, list):
        raise ImportValidationError("Expected a list of pattern records")

    patterns: List[WorkflowPattern] = []
    seen = set()
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise ImportValidationError("Pattern record must be an object", index)
        missing = _missing_fields(record)
        if missing:
            raise ImportValidationError(
                f"Missing required fields: {', '.join(missing)}", index, missing
            )
        try:
            pattern = WorkflowPattern.model_validate(record)
        except ValidationError as e:
            raise ImportValidationError(f"Invalid pattern record: {e}", index) from e
        if pattern.id in seen:
            raise ImportValidationError(f"Duplicate pattern id: {pattern.id}", index)
        seen.add(pattern.id)
        patterns.append(pattern)
    return patterns
