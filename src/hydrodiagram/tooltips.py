"""Tooltip text and popover entries for nodes and conduits."""
from __future__ import annotations

import json
import math
import re
from typing import Any, List, Mapping, Tuple

from .model import Edge, Node

POPOVER_HIDDEN_KEYS = frozenset({"id", "label"})


def format_value(value: Any) -> str:
    """Render a data-bag value as display text.

    Numbers get thousands separators and at most three fraction digits,
    structured values collapse to one line of JSON.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "∞" if value > 0 else "-∞"
        text = f"{value:,.3f}".rstrip("0").rstrip(".")
        return "0" if text == "-0" else text
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(
            _plain(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
        )
    return str(value)


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def data_lines(data: Mapping[str, Any], *, skip: Tuple[str, ...] = ()) -> List[str]:
    return [f"{key}: {format_value(value)}" for key, value in data.items() if key not in skip]


def node_tooltip(node: Node) -> str:
    number = node.number if node.number is not None else node.id
    lines = [f"Node {number}", f"Type: {node.type}"]
    lines.extend(data_lines(node.data))
    return "\n".join(lines)


def edge_tooltip(edge: Edge) -> str:
    lines = [edge.pipe_id or edge.id]
    lines.extend(data_lines(edge.data, skip=("pipeId",)))
    return "\n".join(lines)


def tooltip_title(edge: Edge) -> str:
    return "Dummy Pipe Properties" if edge.is_dummy else "Conduit Properties"


def humanize_key(key: str) -> str:
    spaced = re.sub(r"([A-Z])", r" \1", key).strip()
    return spaced[:1].upper() + spaced[1:]


def display_entries(data: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """Popover rows for the editor, without identity and label fields."""
    return [
        (humanize_key(key), format_value(value))
        for key, value in data.items()
        if key not in POPOVER_HIDDEN_KEYS
    ]
