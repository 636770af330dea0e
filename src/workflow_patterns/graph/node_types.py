"""
Node type recognition.

Node type strings look like ``n8n-nodes-base.httpRequest`` or
``@n8n/n8n-nodes-langchain.openAi``. They are split into lowercase word
tokens (on punctuation and camelCase boundaries) and matched against
keyword sets, so ``if`` matches ``n8n-nodes-base.if`` but not ``notify``.
"""

import re
from enum import Enum
from functools import lru_cache
from typing import FrozenSet, Iterable

_SEGMENT_SPLIT = re.compile(r"[^A-Za-z0-9]+")
_CAMEL_WORDS = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")


class NodeRole(str, Enum):
    ERROR_HANDLING = "error_handling"
    MONITORING = "monitoring"
    MERGE = "merge"
    CONDITIONAL = "conditional"
    TRIGGER = "trigger"
    AI = "ai"
    HTTP = "http"
    TRANSFORM = "transform"
    DATA_STORE = "data_store"


ROLE_KEYWORDS = {
    NodeRole.ERROR_HANDLING: frozenset({
        "error", "errors", "catch", "retry", "fallback", "exception",
    }),
    NodeRole.MONITORING: frozenset({
        "log", "logs", "logger", "logging", "monitor", "monitoring", "metric",
        "metrics", "alert", "audit", "sentry", "datadog", "telemetry",
    }),
    NodeRole.MERGE: frozenset({
        "merge", "join", "combine", "aggregate",
    }),
    NodeRole.CONDITIONAL: frozenset({
        "if", "switch", "router", "route", "filter", "condition", "branch",
    }),
    NodeRole.TRIGGER: frozenset({
        "trigger", "webhook", "cron", "schedule", "interval", "manual", "start",
    }),
    NodeRole.AI: frozenset({
        "ai", "openai", "llm", "langchain", "gpt", "anthropic", "claude",
        "agent", "ollama", "gemini", "mistral", "embeddings", "chat",
    }),
    NodeRole.HTTP: frozenset({
        "http", "https", "api", "graphql", "rest", "request",
    }),
    NodeRole.TRANSFORM: frozenset({
        "transform", "set", "code", "function", "map", "mapper", "convert",
        "split", "sort", "rename", "xml", "html", "markdown",
    }),
    NodeRole.DATA_STORE: frozenset({
        "postgres", "mysql", "mongo", "mongodb", "redis", "sqlite", "sql",
        "database", "sheets", "airtable", "supabase", "snowflake", "bigquery",
        "elasticsearch", "notion", "s3", "dynamodb", "firestore",
    }),
}


@lru_cache(maxsize=4096)
def tokenize_type(node_type: str) -> FrozenSet[str]:
    """Split a node type string into lowercase word tokens."""
    tokens = set()
    for segment in _SEGMENT_SPLIT.split(node_type):
        if not segment:
            continue
        tokens.add(segment.lower())
        tokens.update(word.lower() for word in _CAMEL_WORDS.findall(segment))
    return frozenset(tokens)


def has_role(node_type: str, role: NodeRole) -> bool:
    return not tokenize_type(node_type).isdisjoint(ROLE_KEYWORDS[role])


def any_has_role(node_types: Iterable[str], role: NodeRole) -> bool:
    return any(has_role(t, role) for t in node_types)


def count_role(node_types: Iterable[str], role: NodeRole) -> int:
    return sum(1 for t in node_types if has_role(t, role))
