"""SVG rendering of hydraulic networks."""
from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from typing import Callable, Dict, Mapping, Optional, Sequence, Tuple

from .layout import LayoutConfig, compute_layout, fit_canvas
from .model import (
    DisplayOptions,
    Edge,
    HydroDiagramError,
    Network,
    Node,
    NodeType,
    check_edge_ids,
    index_nodes,
)
from .text import TEXT_MEASURER
from .tooltips import edge_tooltip, format_value, node_tooltip

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NS)

ARROW_MARKER_ID = "arrowhead"
SHADOW_FILTER_ID = "node-shadow"
LAYOUT_MODES = ("auto", "always", "never")

CONDUIT_STROKE = "#3498db"
DUMMY_STROKE = "#95a5a6"
TEXT_FILL = "#2c3e50"
CURVE_FACTOR = 0.2
EDGE_LABEL_SIZE = 9.0
EDGE_LABEL_PAD_X = 4.0
EDGE_LABEL_PAD_Y = 2.0
SHORT_LABEL_LIMIT = 8

Coord = Tuple[float, float]


def _q(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def render_network(
    network: Network,
    options: Optional[DisplayOptions] = None,
    *,
    layout: str = "auto",
    config: Optional[LayoutConfig] = None,
) -> str:
    """Render a network, computing a layout unless positions are usable as given.

    ``layout`` is ``"auto"`` (lay out unless every node has a position),
    ``"always"`` or ``"never"`` (unpositioned nodes are dropped).
    """
    if layout not in LAYOUT_MODES:
        raise HydroDiagramError(
            "E_LAYOUT_MODE",
            f"unknown layout mode {layout!r}; expected one of {', '.join(LAYOUT_MODES)}",
        )
    options = options or network.options
    if layout == "always" or (layout == "auto" and not network.fully_positioned):
        result = compute_layout(network.nodes, network.edges, config)
        return render_diagram(
            network.nodes,
            network.edges,
            result.positions,
            options,
            width=result.width,
            height=result.height,
        )
    positions = {node.id: node.position for node in network.nodes if node.position is not None}
    width, height = fit_canvas(positions, config)
    return render_diagram(
        network.nodes, network.edges, positions, options, width=width, height=height
    )


def render_diagram(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    positions: Mapping[str, Coord],
    options: Optional[DisplayOptions] = None,
    *,
    width: Optional[float] = None,
    height: Optional[float] = None,
) -> str:
    svg_root = build_diagram(nodes, edges, positions, options, width=width, height=height)
    return _pretty_xml(svg_root)


def build_diagram(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    positions: Mapping[str, Coord],
    options: Optional[DisplayOptions] = None,
    *,
    width: Optional[float] = None,
    height: Optional[float] = None,
) -> ET.Element:
    options = options or DisplayOptions()
    by_id = index_nodes(nodes)
    check_edge_ids(edges)
    positions = _finite_positions(positions)
    if width is None or height is None:
        fit_width, fit_height = fit_canvas(positions)
        width = fit_width if width is None else width
        height = fit_height if height is None else height

    svg_root = ET.Element(
        _q("svg"),
        {
            "width": _fmt(width),
            "height": _fmt(height),
            "viewBox": f"0 0 {_fmt(width)} {_fmt(height)}",
        },
    )
    _emit_defs(svg_root)
    _apply_background_rect(svg_root, options.background, width, height)

    edge_group = ET.SubElement(svg_root, _q("g"), {"class": "edges"})
    for edge in edges:
        source = by_id.get(edge.source)
        target = by_id.get(edge.target)
        if source is None or target is None:
            logger.debug(f"Skipping edge {edge.id}: unknown endpoint {edge.source} -> {edge.target}")
            continue
        if source.id not in positions or target.id not in positions:
            logger.debug(f"Skipping edge {edge.id}: endpoint has no position")
            continue
        _emit_edge(edge_group, edge, positions[source.id], positions[target.id], options)

    node_group = ET.SubElement(svg_root, _q("g"), {"class": "nodes"})
    for node in nodes:
        point = positions.get(node.id)
        if point is None:
            logger.debug(f"Skipping node {node.id}: no position")
            continue
        _emit_node(node_group, node, point, options)

    return svg_root


def _finite_positions(positions: Mapping[str, Coord]) -> Dict[str, Coord]:
    usable: Dict[str, Coord] = {}
    for node_id, point in positions.items():
        if math.isfinite(point[0]) and math.isfinite(point[1]):
            usable[node_id] = point
        else:
            logger.debug(f"Dropping position of {node_id}: not finite {tuple(point)!r}")
    return usable


def _emit_defs(svg_root: ET.Element) -> None:
    defs = ET.SubElement(svg_root, _q("defs"))
    marker = ET.SubElement(
        defs,
        _q("marker"),
        {
            "id": ARROW_MARKER_ID,
            "viewBox": "0 0 10 10",
            "refX": "9",
            "refY": "5",
            "markerWidth": "6",
            "markerHeight": "6",
            "orient": "auto",
        },
    )
    ET.SubElement(marker, _q("path"), {"d": "M 0 0 L 10 5 L 0 10 z", "fill": CONDUIT_STROKE})

    shadow = ET.SubElement(
        defs,
        _q("filter"),
        {"id": SHADOW_FILTER_ID, "x": "-50%", "y": "-50%", "width": "200%", "height": "200%"},
    )
    ET.SubElement(
        shadow,
        _q("feDropShadow"),
        {
            "dx": "1",
            "dy": "2",
            "stdDeviation": "1.5",
            "flood-color": "#000",
            "flood-opacity": "0.3",
        },
    )


def _apply_background_rect(
    svg_root: ET.Element, color: str, width: float, height: float
) -> None:
    color = color.strip() or "#fff"
    if color.lower() in {"none", "transparent"}:
        return
    ET.SubElement(
        svg_root,
        _q("rect"),
        {
            "class": "background",
            "x": "0",
            "y": "0",
            "width": _fmt(width),
            "height": _fmt(height),
            "fill": color,
        },
    )


def _with_tooltip(parent: ET.Element, attrs: Dict[str, str], tooltip: str) -> ET.Element:
    attrs["data-tooltip"] = tooltip
    group = ET.SubElement(parent, _q("g"), attrs)
    title = ET.SubElement(group, _q("title"))
    title.text = tooltip
    return group


def _control_point(p_from: Coord, p_to: Coord) -> Coord:
    dx = p_to[0] - p_from[0]
    dy = p_to[1] - p_from[1]
    mid_x = (p_from[0] + p_to[0]) / 2.0
    mid_y = (p_from[1] + p_to[1]) / 2.0
    seg_len = math.hypot(dx, dy)
    if seg_len <= 1e-9:
        return mid_x, mid_y
    offset = CURVE_FACTOR * abs(dx)
    # Left-to-right connectors bow upwards.
    nx, ny = dy / seg_len, -dx / seg_len
    return mid_x + nx * offset, mid_y + ny * offset


def _curve_midpoint(p_from: Coord, control: Coord, p_to: Coord) -> Coord:
    return (
        0.25 * p_from[0] + 0.5 * control[0] + 0.25 * p_to[0],
        0.25 * p_from[1] + 0.5 * control[1] + 0.25 * p_to[1],
    )


def _emit_edge(
    parent: ET.Element, edge: Edge, p_from: Coord, p_to: Coord, options: DisplayOptions
) -> None:
    dummy = edge.is_dummy
    group = _with_tooltip(
        parent,
        {
            "class": "edge edge-dummy" if dummy else "edge edge-conduit",
            "id": f"edge-{edge.id}",
            "data-edge-id": edge.id,
        },
        edge_tooltip(edge),
    )
    control = _control_point(p_from, p_to)
    path_attrs = {
        "d": (
            f"M {_fmt(p_from[0])} {_fmt(p_from[1])} "
            f"Q {_fmt(control[0])} {_fmt(control[1])} {_fmt(p_to[0])} {_fmt(p_to[1])}"
        ),
        "fill": "none",
    }
    if dummy:
        path_attrs.update({"stroke": DUMMY_STROKE, "stroke-width": "2", "stroke-dasharray": "5,5"})
    else:
        path_attrs.update(
            {
                "stroke": CONDUIT_STROKE,
                "stroke-width": "3",
                "marker-end": f"url(#{ARROW_MARKER_ID})",
            }
        )
    ET.SubElement(group, _q("path"), path_attrs)

    pipe_id = edge.pipe_id
    if options.show_labels and pipe_id:
        _emit_edge_label(group, pipe_id, _curve_midpoint(p_from, control, p_to))


def _emit_edge_label(parent: ET.Element, label: str, point: Coord) -> None:
    text_width = TEXT_MEASURER.measure(label, EDGE_LABEL_SIZE)
    box_width = text_width + 2 * EDGE_LABEL_PAD_X
    box_height = EDGE_LABEL_SIZE + 2 * EDGE_LABEL_PAD_Y
    group = ET.SubElement(parent, _q("g"), {"class": "edge-label"})
    ET.SubElement(
        group,
        _q("rect"),
        {
            "x": _fmt(point[0] - box_width / 2.0),
            "y": _fmt(point[1] - box_height / 2.0),
            "width": _fmt(box_width),
            "height": _fmt(box_height),
            "rx": "2",
            "fill": "#fff",
            "fill-opacity": "0.9",
            "stroke": "#cbd5e1",
            "stroke-width": "1",
        },
    )
    text = ET.SubElement(
        group,
        _q("text"),
        {
            "x": _fmt(point[0]),
            "y": _fmt(point[1]),
            "text-anchor": "middle",
            "dominant-baseline": "central",
            "font-size": _fmt(EDGE_LABEL_SIZE),
            "font-weight": "bold",
            "fill": TEXT_FILL,
        },
    )
    text.text = label


def _text(
    parent: ET.Element, x: float, y: float, content: str, size: float, **extra: str
) -> ET.Element:
    attrs = {
        "x": _fmt(x),
        "y": _fmt(y),
        "text-anchor": extra.pop("anchor", "middle"),
        "font-size": _fmt(size),
        "fill": extra.pop("fill", TEXT_FILL),
    }
    for key, value in extra.items():
        attrs[key.replace("_", "-")] = value
    elem = ET.SubElement(parent, _q("text"), attrs)
    elem.text = content
    return elem


def _short_label(text: str) -> str:
    if len(text) <= SHORT_LABEL_LIMIT:
        return text
    return text[: SHORT_LABEL_LIMIT - 1] + "…"


def _glyph_rect(
    parent: ET.Element, x: float, y: float, width: float, height: float, fill: str, stroke: str
) -> None:
    ET.SubElement(
        parent,
        _q("rect"),
        {
            "x": _fmt(x - width / 2.0),
            "y": _fmt(y - height / 2.0),
            "width": _fmt(width),
            "height": _fmt(height),
            "rx": "4",
            "fill": fill,
            "stroke": stroke,
            "stroke-width": "2",
            "filter": f"url(#{SHADOW_FILTER_ID})",
        },
    )


def _glyph_circle(parent: ET.Element, x: float, y: float, r: float, fill: str, stroke: str) -> None:
    ET.SubElement(
        parent,
        _q("circle"),
        {
            "cx": _fmt(x),
            "cy": _fmt(y),
            "r": _fmt(r),
            "fill": fill,
            "stroke": stroke,
            "stroke-width": "2",
            "filter": f"url(#{SHADOW_FILTER_ID})",
        },
    )


def _reservoir_glyph(group: ET.Element, node: Node, x: float, y: float) -> float:
    _glyph_rect(group, x, y, 50, 40, "#3498db", "#2980b9")
    _text(group, x, y + 4, _short_label(node.label or node.id), 12,
          fill="white", font_weight="bold", **{"class": "glyph-label"})
    return 20.0


def _surge_tank_glyph(group: ET.Element, node: Node, x: float, y: float) -> float:
    _glyph_rect(group, x, y, 40, 80, "#f39c12", "#e67e22")
    _text(group, x, y + 4, "ST", 11, fill="white", font_weight="bold", **{"class": "glyph-label"})
    return 40.0


def _flow_boundary_glyph(group: ET.Element, node: Node, x: float, y: float) -> float:
    points = f"{_fmt(x)},{_fmt(y - 10)} {_fmt(x + 20)},{_fmt(y)} {_fmt(x)},{_fmt(y + 10)}"
    ET.SubElement(
        group,
        _q("polygon"),
        {
            "points": points,
            "fill": "#2ecc71",
            "stroke": "#27ae60",
            "stroke-width": "2",
            "filter": f"url(#{SHADOW_FILTER_ID})",
        },
    )
    _text(group, x + 25, y + 4, node.label or node.id, 11,
          anchor="start", font_weight="bold", **{"class": "glyph-label"})
    return 10.0


def _junction_glyph(group: ET.Element, node: Node, x: float, y: float) -> float:
    _glyph_circle(group, x, y, 6, "#e74c3c", "#c0392b")
    return 6.0


def _generic_glyph(group: ET.Element, node: Node, x: float, y: float) -> float:
    _glyph_circle(group, x, y, 5, "#95a5a6", "#7f8c8d")
    return 5.0


_GLYPHS: Dict[NodeType, Callable[[ET.Element, Node, float, float], float]] = {
    NodeType.RESERVOIR: _reservoir_glyph,
    NodeType.SURGE_TANK: _surge_tank_glyph,
    NodeType.FLOW_BOUNDARY: _flow_boundary_glyph,
    NodeType.JUNCTION: _junction_glyph,
    NodeType.OTHER: _generic_glyph,
}


def _emit_node(parent: ET.Element, node: Node, point: Coord, options: DisplayOptions) -> None:
    kind = node.kind
    group = _with_tooltip(
        parent,
        {
            "class": f"node node-{kind.value}",
            "id": f"node-{node.id}",
            "data-node-id": node.id,
            "data-node-type": node.type,
        },
        node_tooltip(node),
    )
    x, y = float(point[0]), float(point[1])
    half_height = _GLYPHS[kind](group, node, x, y)

    if not options.show_labels:
        return
    number = node.number if node.number is not None else node.id
    _text(group, x, y - half_height - 8, f"Node {number}", 11, **{"class": "node-caption"})
    if node.elevation is not None:
        _text(group, x, y + half_height + 14, f"Elev: {format_value(node.elevation)}", 9,
              **{"class": "node-elevation"})


def _pretty_xml(element: ET.Element) -> str:
    for text_node in element.iter(_q("text")):
        if text_node.text:
            text_node.text = text_node.text.strip()
    ET.indent(element, space="  ")
    return ET.tostring(element, encoding="unicode")


def _fmt(value: float) -> str:
    if math.isclose(value, round(value)):
        return str(int(round(value)))
    return f"{value:.3f}".rstrip("0").rstrip(".")
