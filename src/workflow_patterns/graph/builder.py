"""
Workflow Graph Builder

Turns a parsed workflow descriptor into a directed graph keyed by node id:

    {
        "nodes": [{"id": "1", "type": "n8n-nodes-base.manualTrigger", ...}],
        "connections": {"1": {"main": [{"node": "2", ...}]}},
    }

Connection sources and targets resolve by node id first, then by node name
(n8n keys its connection map by name). Port entries may be flat lists of
targets or n8n's nested per-output lists. Anything else in the descriptor
is ignored.
"""

import heapq
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from ..core.errors import GraphCycleError, GraphIntegrityError

logger = logging.getLogger(__name__)


@dataclass
class WorkflowGraph:
    """Directed acyclic graph of one workflow, keyed by node id."""

    node_types: Dict[str, str]
    edges: List[Tuple[str, str]]
    topological_order: List[str]
    name: Optional[str] = None
    successors: Dict[str, List[str]] = field(default_factory=dict)
    predecessors: Dict[str, List[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.successors = {node_id: [] for node_id in self.node_types}
        self.predecessors = {node_id: [] for node_id in self.node_types}
        for src, dst in self.edges:
            self.successors[src].append(dst)
            self.predecessors[dst].append(src)

    def __len__(self) -> int:
        return len(self.node_types)

    def node_type(self, node_id: str) -> str:
        return self.node_types[node_id]

    def out_degree(self, node_id: str) -> int:
        return len(self.successors[node_id])

    def in_degree(self, node_id: str) -> int:
        return len(self.predecessors[node_id])

    def distinct_successors(self, node_id: str) -> List[str]:
        return list(dict.fromkeys(self.successors[node_id]))

    def distinct_predecessors(self, node_id: str) -> List[str]:
        return list(dict.fromkeys(self.predecessors[node_id]))

    def sources(self) -> List[str]:
        return [n for n in self.node_types if not self.predecessors[n]]

    def sinks(self) -> List[str]:
        return [n for n in self.node_types if not self.successors[n]]

    def isolated_nodes(self) -> List[str]:
        return [
            n for n in self.node_types
            if not self.predecessors[n] and not self.successors[n]
        ]

    def descendants(self, node_id: str) -> Set[str]:
        """All node ids reachable from ``node_id`` (excluding itself)."""
        seen: Set[str] = set()
        stack = list(self.successors[node_id])
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.successors[current])
        return seen


class GraphBuilder:
    """
    Builds a WorkflowGraph from a workflow descriptor.

    Raises GraphIntegrityError for malformed descriptors (missing ids or
    types, duplicate ids, dangling references) and GraphCycleError when the
    connections form a directed cycle.
    """

    def build(self, workflow: Mapping[str, Any]) -> WorkflowGraph:
        if not isinstance(workflow, Mapping):
            raise GraphIntegrityError("Workflow descriptor must be a mapping")

        node_types, names = self._collect_nodes(workflow.get("nodes") or [])
        edges = list(self._collect_edges(workflow.get("connections") or {}, node_types, names))
        order = self._topological_order(node_types, edges)

        logger.debug(
            f"[GraphBuilder] built graph with {len(node_types)} nodes and {len(edges)} edges"
        )
        return WorkflowGraph(
            node_types=node_types,
            edges=edges,
            topological_order=order,
            name=workflow.get("name"),
        )

    def _collect_nodes(
        self, nodes: Iterable[Any]
    ) -> Tuple[Dict[str, str], Dict[str, str]]:
        if isinstance(nodes, (str, bytes, Mapping)):
            raise GraphIntegrityError("Workflow 'nodes' must be a list")

        node_types: Dict[str, str] = {}
        names: Dict[str, str] = {}
        for position, node in enumerate(nodes):
            if not isinstance(node, Mapping):
                raise GraphIntegrityError(f"Node at position {position} is not a mapping")
            node_id = node.get("id")
            node_type = node.get("type")
            if node_id is None or node_id == "":
                raise GraphIntegrityError(f"Node at position {position} has no id")
            node_id = str(node_id)
            if not isinstance(node_type, str) or not node_type:
                raise GraphIntegrityError("Node has no type", node_id)
            if node_id in node_types:
                raise GraphIntegrityError("Duplicate node id", node_id)
            node_types[node_id] = node_type
            name = node.get("name")
            if isinstance(name, str) and name:
                names.setdefault(name, node_id)
        return node_types, names

    def _collect_edges(
        self,
        connections: Any,
        node_types: Dict[str, str],
        names: Dict[str, str],
    ) -> Iterator[Tuple[str, str]]:
        if not isinstance(connections, Mapping):
            raise GraphIntegrityError("Workflow 'connections' must be a mapping")

        for source_ref, ports in connections.items():
            source = self._resolve(source_ref, node_types, names)
            if not isinstance(ports, Mapping):
                raise GraphIntegrityError("Connection ports must be a mapping", source)
            for port, targets in ports.items():
                for target in self._flatten_targets(targets, source, port):
                    yield source, self._resolve(target, node_types, names)

    def _flatten_targets(self, targets: Any, source: str, port: str) -> Iterator[Any]:
        if targets is None:
            return
        if not isinstance(targets, list):
            raise GraphIntegrityError(f"Targets of port {port!r} must be a list", source)
        for entry in targets:
            if isinstance(entry, list):
                yield from self._flatten_targets(entry, source, port)
            elif isinstance(entry, Mapping):
                if "node" not in entry:
                    raise GraphIntegrityError(
                        f"Connection entry on port {port!r} has no 'node'", source
                    )
                yield entry["node"]
            elif isinstance(entry, str):
                yield entry
            else:
                raise GraphIntegrityError(
                    f"Malformed connection entry on port {port!r}", source
                )

    def _resolve(self, ref: Any, node_types: Dict[str, str], names: Dict[str, str]) -> str:
        key = str(ref)
        if key in node_types:
            return key
        if key in names:
            return names[key]
        raise GraphIntegrityError("Connection references unknown node", key)

    def _topological_order(
        self, node_types: Dict[str, str], edges: List[Tuple[str, str]]
    ) -> List[str]:
        """Kahn's algorithm; ties broken by declaration order."""
        position = {node_id: i for i, node_id in enumerate(node_types)}
        in_degree = {node_id: 0 for node_id in node_types}
        successors: Dict[str, List[str]] = {node_id: [] for node_id in node_types}
        for src, dst in edges:
            successors[src].append(dst)
            in_degree[dst] += 1

        ready = [(position[n], n) for n, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        order: List[str] = []
        while ready:
            _, node_id = heapq.heappop(ready)
            order.append(node_id)
            for dst in successors[node_id]:
                in_degree[dst] -= 1
                if in_degree[dst] == 0:
                    heapq.heappush(ready, (position[dst], dst))

        if len(order) != len(node_types):
            remaining = [n for n in node_types if in_degree[n] > 0]
            raise GraphCycleError(remaining)
        return order
