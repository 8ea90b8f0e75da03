"""Public API for hydrodiagram."""
from .layout import DiagramLayout, LayoutConfig, assign_levels, compute_layout, fit_canvas
from .model import DisplayOptions, Edge, HydroDiagramError, Network, Node, NodeType, Point
from .render import build_diagram, render_diagram, render_network
from .tooltips import display_entries, format_value

__all__ = [
    "DiagramLayout",
    "DisplayOptions",
    "Edge",
    "HydroDiagramError",
    "LayoutConfig",
    "Network",
    "Node",
    "NodeType",
    "Point",
    "assign_levels",
    "build_diagram",
    "compute_layout",
    "display_entries",
    "fit_canvas",
    "format_value",
    "render_diagram",
    "render_network",
]
