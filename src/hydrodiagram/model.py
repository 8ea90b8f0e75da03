"""Network model: nodes, conduits and display options."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, NamedTuple, Optional, Tuple


class HydroDiagramError(ValueError):
    """Contract violation with a stable code for CLI mapping."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


class NodeType(str, Enum):
    RESERVOIR = "reservoir"
    SURGE_TANK = "surgeTank"
    FLOW_BOUNDARY = "flowBoundary"
    JUNCTION = "junction"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "NodeType":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class Point(NamedTuple):
    x: float
    y: float


def _frozen(data: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class Node:
    id: str
    type: str = NodeType.OTHER.value
    position: Optional[Point] = None
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _frozen(self.data))
        if isinstance(self.type, NodeType):
            object.__setattr__(self, "type", self.type.value)
        if self.position is not None:
            x, y = (float(coord) for coord in self.position)
            if not (math.isfinite(x) and math.isfinite(y)):
                raise HydroDiagramError(
                    "E_MODEL", f"node {self.id}: position must be finite, got {tuple(self.position)!r}"
                )
            object.__setattr__(self, "position", Point(x, y))

    @property
    def kind(self) -> NodeType:
        return NodeType.parse(self.type)

    @property
    def label(self) -> Optional[str]:
        value = self.data.get("label")
        return str(value) if value not in (None, "") else None

    @property
    def number(self) -> Optional[Any]:
        value = self.data.get("nodeNumber")
        return value if value not in (None, "") else None

    @property
    def elevation(self) -> Optional[Any]:
        value = self.data.get("elevation")
        return value if value not in (None, "") else None


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    target: str
    type: Optional[str] = None
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", _frozen(self.data))

    @property
    def is_dummy(self) -> bool:
        return self.type == "dummy" or self.data.get("type") == "dummy"

    @property
    def pipe_id(self) -> Optional[str]:
        value = self.data.get("pipeId")
        return str(value) if value not in (None, "") else None


@dataclass(frozen=True)
class DisplayOptions:
    show_labels: bool = True
    background: str = "#fff"

    def __post_init__(self) -> None:
        if not isinstance(self.show_labels, bool):
            raise HydroDiagramError(
                "E_OPTIONS", f"showLabels must be a boolean, got {self.show_labels!r}"
            )
        if not isinstance(self.background, str):
            raise HydroDiagramError(
                "E_OPTIONS", f"background must be a string, got {self.background!r}"
            )

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "DisplayOptions":
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise HydroDiagramError("E_OPTIONS", "options must be an object")
        unknown = sorted(set(raw) - {"showLabels", "background"})
        if unknown:
            raise HydroDiagramError(
                "E_OPTIONS", f"unknown option(s): {', '.join(unknown)}"
            )
        kwargs: Dict[str, Any] = {}
        if "showLabels" in raw:
            kwargs["show_labels"] = raw["showLabels"]
        if "background" in raw:
            kwargs["background"] = raw["background"]
        return cls(**kwargs)


def index_nodes(nodes: Iterable[Node]) -> Dict[str, Node]:
    """Map node ids to nodes, rejecting duplicate ids."""
    by_id: Dict[str, Node] = {}
    for node in nodes:
        if node.id in by_id:
            raise HydroDiagramError("E_DUPLICATE_NODE_ID", f"duplicate node id: {node.id}")
        by_id[node.id] = node
    return by_id


def check_edge_ids(edges: Iterable[Edge]) -> None:
    seen = set()
    for edge in edges:
        if edge.id in seen:
            raise HydroDiagramError("E_DUPLICATE_EDGE_ID", f"duplicate edge id: {edge.id}")
        seen.add(edge.id)


@dataclass(frozen=True)
class Network:
    """A hydraulic network as supplied by the editor."""

    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()
    options: DisplayOptions = field(default_factory=DisplayOptions)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(self.edges))
        index_nodes(self.nodes)
        check_edge_ids(self.edges)

    @property
    def fully_positioned(self) -> bool:
        return all(node.position is not None for node in self.nodes)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Network":
        if not isinstance(raw, Mapping):
            raise HydroDiagramError("E_MODEL", "network must be a JSON object")
        raw_nodes = raw.get("nodes")
        raw_edges = raw.get("edges")
        raw_nodes = [] if raw_nodes is None else raw_nodes
        raw_edges = [] if raw_edges is None else raw_edges
        if not isinstance(raw_nodes, list):
            raise HydroDiagramError("E_MODEL", "'nodes' must be an array")
        if not isinstance(raw_edges, list):
            raise HydroDiagramError("E_MODEL", "'edges' must be an array")
        nodes = [_node_from_dict(item, idx) for idx, item in enumerate(raw_nodes)]
        edges = [_edge_from_dict(item, idx) for idx, item in enumerate(raw_edges)]
        options = DisplayOptions.from_dict(raw.get("options"))
        return cls(nodes=tuple(nodes), edges=tuple(edges), options=options)

    @classmethod
    def from_json(cls, text: str) -> "Network":
        return cls.from_dict(json.loads(text))


def _require_str(raw: Mapping[str, Any], key: str, where: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value:
        raise HydroDiagramError("E_MODEL", f"{where}: '{key}' must be a non-empty string")
    return value


def _data_bag(raw: Mapping[str, Any], where: str) -> Mapping[str, Any]:
    data = raw.get("data")
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise HydroDiagramError("E_MODEL", f"{where}: 'data' must be an object")
    return data


def _position(raw: Any, where: str) -> Optional[Point]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise HydroDiagramError("E_MODEL", f"{where}: 'position' must be an object")
    coords = []
    for axis in ("x", "y"):
        value = raw.get(axis)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise HydroDiagramError(
                "E_MODEL", f"{where}: position.{axis} must be a finite number"
            )
        coords.append(float(value))
    return Point(coords[0], coords[1])


def _node_from_dict(raw: Any, idx: int) -> Node:
    where = f"nodes[{idx}]"
    if not isinstance(raw, Mapping):
        raise HydroDiagramError("E_MODEL", f"{where} must be an object")
    node_type = raw.get("type")
    return Node(
        id=_require_str(raw, "id", where),
        type=str(node_type) if node_type is not None else NodeType.OTHER.value,
        position=_position(raw.get("position"), where),
        data=_data_bag(raw, where),
    )


def _edge_from_dict(raw: Any, idx: int) -> Edge:
    where = f"edges[{idx}]"
    if not isinstance(raw, Mapping):
        raise HydroDiagramError("E_MODEL", f"{where} must be an object")
    edge_type = raw.get("type")
    return Edge(
        id=_require_str(raw, "id", where),
        source=_require_str(raw, "source", where),
        target=_require_str(raw, "target", where),
        type=str(edge_type) if edge_type is not None else None,
        data=_data_bag(raw, where),
    )
