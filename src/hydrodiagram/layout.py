"""Breadth-first leveling layout for hydraulic networks."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, fields
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Sequence, Tuple

from .model import Edge, HydroDiagramError, Node, NodeType, Point, index_nodes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutConfig:
    """Spacing and canvas floors for the level layout."""

    margin_x: float = 100.0
    margin_y: float = 80.0
    level_spacing: float = 200.0  # horizontal distance between levels
    node_spacing: float = 120.0  # vertical distance between nodes of a level
    min_width: float = 800.0
    min_height: float = 600.0

    def __post_init__(self) -> None:
        for entry in fields(self):
            value = getattr(self, entry.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise HydroDiagramError(
                    "E_LAYOUT_CONFIG", f"{entry.name} must be a number, got {value!r}"
                )
            if entry.name.endswith("_spacing") and value <= 0:
                raise HydroDiagramError("E_LAYOUT_CONFIG", f"{entry.name} must be > 0")
            if value < 0:
                raise HydroDiagramError("E_LAYOUT_CONFIG", f"{entry.name} must be >= 0")


@dataclass(frozen=True)
class DiagramLayout:
    levels: Dict[str, int]
    positions: Dict[str, Point]
    width: float
    height: float

    def columns(self) -> Dict[int, List[str]]:
        return _group_by_level(self.levels)


def assign_levels(nodes: Sequence[Node], edges: Sequence[Edge]) -> Dict[str, int]:
    """Assign every node a column index.

    Reservoirs seed level 0; without any reservoir the first node in input
    order starts the first run. Nodes left over after a run start runs of
    their own. A node reached along several paths, from any run, keeps the
    furthest level, and the increase carries on downstream. Reservoirs always
    stay at level 0.
    """
    by_id = index_nodes(nodes)
    order = list(by_id)
    adjacency = _adjacency(edges, by_id)
    reservoirs = [node_id for node_id in order if by_id[node_id].kind is NodeType.RESERVOIR]
    pinned = frozenset(reservoirs)

    state: Dict[str, int] = {}
    forward: Dict[str, List[str]] = {node_id: [] for node_id in order}
    seeds = reservoirs
    while len(state) < len(order):
        if not seeds:
            seeds = [next(node_id for node_id in order if node_id not in state)]
        reached = _explore_run(seeds, adjacency, pinned, state, forward)
        logger.debug(f"Level run seeded from {seeds}: {reached} node(s)")
        seeds = []
    return _furthest_levels(order, forward)


def compute_layout(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    config: Optional[LayoutConfig] = None,
) -> DiagramLayout:
    config = config or LayoutConfig()
    levels = assign_levels(nodes, edges)
    if not levels:
        return DiagramLayout({}, {}, float(config.min_width), float(config.min_height))

    columns = _group_by_level(levels)
    max_level = max(columns)
    tallest = max(len(members) for members in columns.values())
    width = max(float(config.min_width), 2 * config.margin_x + max_level * config.level_spacing)
    height = max(
        float(config.min_height), 2 * config.margin_y + (tallest - 1) * config.node_spacing
    )

    positions: Dict[str, Point] = {}
    for level, members in columns.items():
        x = config.margin_x + level * config.level_spacing
        span = (len(members) - 1) * config.node_spacing
        top = (height - span) / 2.0
        for idx, node_id in enumerate(members):
            positions[node_id] = Point(float(x), top + idx * config.node_spacing)

    logger.debug(
        f"Layout: {len(positions)} node(s) over {len(columns)} level(s), canvas {width}x{height}"
    )
    return DiagramLayout(levels=levels, positions=positions, width=width, height=height)


def fit_canvas(
    positions: Mapping[str, Point], config: Optional[LayoutConfig] = None
) -> Tuple[float, float]:
    """Canvas size for positions that did not come from ``compute_layout``."""
    config = config or LayoutConfig()
    if not positions:
        return float(config.min_width), float(config.min_height)
    max_x = max(point[0] for point in positions.values())
    max_y = max(point[1] for point in positions.values())
    return (
        max(float(config.min_width), max_x + config.margin_x),
        max(float(config.min_height), max_y + config.margin_y),
    )


def _adjacency(edges: Sequence[Edge], by_id: Mapping[str, Node]) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        if edge.source not in by_id or edge.target not in by_id:
            continue
        adjacency.setdefault(edge.source, []).append(edge.target)
    return adjacency


def _explore_run(
    seeds: List[str],
    adjacency: Mapping[str, List[str]],
    pinned: FrozenSet[str],
    state: Dict[str, int],
    forward: Dict[str, List[str]],
) -> int:
    """Depth-first pass from one run's seeds, recording the edges that level.

    Edges into a node still on the stack close a cycle and edges into a
    reservoir would move it off level 0; both are dropped. Edges into nodes
    explored by earlier runs are kept. ``state`` is 1 while a node is on the
    stack and 2 once it is done, and is shared across runs.
    """
    reached = 0
    for seed in seeds:
        if seed in state:
            continue
        state[seed] = 1
        reached += 1
        stack: List[Tuple[str, Iterator[str]]] = [(seed, iter(adjacency.get(seed, ())))]
        while stack:
            node_id, successors = stack[-1]
            for succ in successors:
                if succ in pinned or state.get(succ) == 1:
                    continue
                forward[node_id].append(succ)
                if succ not in state:
                    state[succ] = 1
                    reached += 1
                    stack.append((succ, iter(adjacency.get(succ, ()))))
                    break
            else:
                state[node_id] = 2
                stack.pop()
    return reached


def _furthest_levels(order: List[str], forward: Mapping[str, List[str]]) -> Dict[str, int]:
    # Breadth-first leveling; a successor reached again keeps the larger level.
    indegree: Dict[str, int] = {node_id: 0 for node_id in order}
    for succs in forward.values():
        for succ in succs:
            indegree[succ] += 1
    levels: Dict[str, int] = {node_id: 0 for node_id in order}
    queue = deque(node_id for node_id in order if indegree[node_id] == 0)
    while queue:
        node_id = queue.popleft()
        for succ in forward[node_id]:
            levels[succ] = max(levels[succ], levels[node_id] + 1)
            indegree[succ] -= 1
            if indegree[succ] == 0:
                queue.append(succ)
    return levels


def _group_by_level(levels: Mapping[str, int]) -> Dict[int, List[str]]:
    columns: Dict[int, List[str]] = {}
    for node_id, level in levels.items():
        columns.setdefault(level, []).append(node_id)
    return {level: sorted(columns[level]) for level in sorted(columns)}
