from __future__ import annotations

import json
import math
import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from hydrodiagram import (
    DisplayOptions,
    Edge,
    HydroDiagramError,
    Network,
    Node,
    NodeType,
    Point,
    display_entries,
    format_value,
)
from hydrodiagram.tooltips import edge_tooltip, humanize_key, node_tooltip, tooltip_title

NETWORK = {
    "nodes": [
        {"id": "R1", "type": "reservoir", "position": {"x": 100, "y": 200.5},
         "data": {"label": "Upper", "nodeNumber": 1}},
        {"id": "J1", "type": "junction", "position": None},
        {"id": "X1"},
    ],
    "edges": [
        {"id": "p1", "source": "R1", "target": "J1", "data": {"pipeId": "P-100"}},
        {"id": "p2", "source": "J1", "target": "X1", "type": "dummy"},
    ],
    "options": {"showLabels": False},
}


class NetworkParsingTests(unittest.TestCase):
    def test_from_dict(self) -> None:
        network = Network.from_dict(NETWORK)
        self.assertEqual([n.id for n in network.nodes], ["R1", "J1", "X1"])
        r1, j1, x1 = network.nodes
        self.assertEqual(r1.position, Point(100.0, 200.5))
        self.assertIsNone(j1.position)
        self.assertEqual(x1.kind, NodeType.OTHER)
        self.assertEqual(r1.label, "Upper")
        self.assertEqual(r1.number, 1)
        self.assertFalse(network.options.show_labels)
        self.assertFalse(network.fully_positioned)
        self.assertEqual([(e.source, e.target) for e in network.edges], [("R1", "J1"), ("J1", "X1")])

    def test_from_json(self) -> None:
        network = Network.from_json(json.dumps(NETWORK))
        self.assertTrue(network.edges[1].is_dummy)
        self.assertEqual(network.edges[0].pipe_id, "P-100")

    def test_missing_options_default_to_labels(self) -> None:
        network = Network.from_dict({"nodes": [], "edges": []})
        self.assertTrue(network.options.show_labels)
        self.assertTrue(network.fully_positioned)

    def test_duplicate_ids(self) -> None:
        with self.assertRaises(HydroDiagramError) as ctx:
            Network.from_dict({"nodes": [{"id": "A"}, {"id": "A"}]})
        self.assertEqual(ctx.exception.code, "E_DUPLICATE_NODE_ID")
        with self.assertRaises(HydroDiagramError) as ctx:
            Network(
                nodes=(Node("A"), Node("B")),
                edges=(Edge("e", "A", "B"), Edge("e", "B", "A")),
            )
        self.assertEqual(ctx.exception.code, "E_DUPLICATE_EDGE_ID")

    def test_malformed_payloads(self) -> None:
        bad_payloads = [
            [],
            {"nodes": {}},
            {"nodes": [{"type": "junction"}]},
            {"nodes": ["R1"]},
            {"nodes": [{"id": "A", "position": {"x": "1", "y": 2}}]},
            {"nodes": [{"id": "A", "position": {"x": True, "y": 2}}]},
            {"nodes": [{"id": "A", "data": [1, 2]}]},
            {"nodes": [{"id": "A"}], "edges": [{"id": "e", "source": "A"}]},
        ]
        for payload in bad_payloads:
            with self.subTest(payload=payload):
                with self.assertRaises(HydroDiagramError) as ctx:
                    Network.from_dict(payload)
                self.assertEqual(ctx.exception.code, "E_MODEL")

    def test_edges_to_unknown_nodes_are_accepted(self) -> None:
        network = Network.from_dict({"nodes": [{"id": "A"}], "edges": [{"id": "e", "source": "A", "target": "ghost"}]})
        self.assertEqual(len(network.edges), 1)


class ModelTests(unittest.TestCase):
    def test_node_type_parse(self) -> None:
        self.assertIs(NodeType.parse("surgeTank"), NodeType.SURGE_TANK)
        self.assertIs(NodeType.parse("valve"), NodeType.OTHER)
        self.assertIs(NodeType.parse(None), NodeType.OTHER)
        self.assertEqual(Node("A", NodeType.RESERVOIR).type, "reservoir")

    def test_position_must_be_finite(self) -> None:
        self.assertEqual(Node("A", position=(1, 2)).position, Point(1.0, 2.0))
        for bad in [(math.nan, 0), (0, math.inf), (-math.inf, 5)]:
            with self.subTest(position=bad):
                with self.assertRaises(HydroDiagramError) as ctx:
                    Node("A", "junction", position=bad)
                self.assertEqual(ctx.exception.code, "E_MODEL")

    def test_dummy_detection(self) -> None:
        self.assertTrue(Edge("e", "a", "b", type="dummy").is_dummy)
        self.assertTrue(Edge("e", "a", "b", data={"type": "dummy"}).is_dummy)
        self.assertFalse(Edge("e", "a", "b", type="conduit").is_dummy)

    def test_data_is_read_only(self) -> None:
        source = {"label": "Upper"}
        node = Node("A", data=source)
        with self.assertRaises(TypeError):
            node.data["label"] = "Lower"  # type: ignore[index]
        source["label"] = "Changed"
        self.assertEqual(node.label, "Upper")

    def test_options_validation(self) -> None:
        with self.assertRaises(HydroDiagramError) as ctx:
            DisplayOptions.from_dict({"showLabels": "yes"})
        self.assertEqual(ctx.exception.code, "E_OPTIONS")
        with self.assertRaises(HydroDiagramError):
            DisplayOptions.from_dict({"zoom": 2})
        with self.assertRaises(HydroDiagramError):
            DisplayOptions.from_dict(["showLabels"])
        self.assertEqual(
            DisplayOptions.from_dict({"background": "none"}),
            DisplayOptions(show_labels=True, background="none"),
        )


class FormatValueTests(unittest.TestCase):
    def test_numbers(self) -> None:
        self.assertEqual(format_value(1234567), "1,234,567")
        self.assertEqual(format_value(1234.5678), "1,234.568")
        self.assertEqual(format_value(0.5), "0.5")
        self.assertEqual(format_value(2.0), "2")
        self.assertEqual(format_value(-0.0001), "0")
        self.assertEqual(format_value(math.nan), "NaN")
        self.assertEqual(format_value(math.inf), "∞")
        self.assertEqual(format_value(-math.inf), "-∞")

    def test_other_values(self) -> None:
        self.assertEqual(format_value(True), "true")
        self.assertEqual(format_value(None), "null")
        self.assertEqual(format_value("steel"), "steel")
        self.assertEqual(format_value({"b": 1, "a": [1, 2]}), '{"a":[1,2],"b":1}')
        self.assertEqual(format_value((1, "x")), '[1,"x"]')


class TooltipTests(unittest.TestCase):
    def test_node_tooltip_prefers_node_number(self) -> None:
        node = Node("J1", "junction", data={"nodeNumber": 12, "elevation": 1234.5})
        self.assertEqual(
            node_tooltip(node), "Node 12\nType: junction\nnodeNumber: 12\nelevation: 1,234.5"
        )
        self.assertEqual(node_tooltip(Node("X", "valve")), "Node X\nType: valve")

    def test_edge_tooltip(self) -> None:
        edge = Edge("p1", "a", "b", data={"pipeId": "P-1", "meta": {"k": 2}, "length": 10.25})
        self.assertEqual(edge_tooltip(edge), 'P-1\nmeta: {"k":2}\nlength: 10.25')
        self.assertEqual(edge_tooltip(Edge("p9", "a", "b")), "p9")

    def test_popover_entries(self) -> None:
        entries = display_entries(
            {"id": "x", "label": "L", "pipeId": "P", "innerDiameter": 2.5, "wave": 1000}
        )
        self.assertEqual(
            entries, [("Pipe Id", "P"), ("Inner Diameter", "2.5"), ("Wave", "1,000")]
        )
        self.assertEqual(humanize_key("nodeNumber"), "Node Number")

    def test_tooltip_title(self) -> None:
        self.assertEqual(tooltip_title(Edge("e", "a", "b")), "Conduit Properties")
        self.assertEqual(tooltip_title(Edge("e", "a", "b", type="dummy")), "Dummy Pipe Properties")


if __name__ == "__main__":
    unittest.main()
