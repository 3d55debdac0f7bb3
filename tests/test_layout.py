from __future__ import annotations

import json
import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from shapetree import BBox, LayoutConfig, NodeStructure, Offset, build_tree, parse_markup, render_template, resolve


def _layout(markup: str, data=None, offset=None, config=None) -> NodeStructure:
    text = render_template(markup, data or {})
    return resolve(build_tree(parse_markup(text)), offset, config)


class LayoutTests(unittest.TestCase):
    def test_rect_with_interpolated_size(self) -> None:
        node = _layout('<rect width="{{w}}" height="{{h}}"/>', {"w": 100, "h": 50}, Offset(0, 0))
        self.assertEqual(node.bbox, BBox(0, 0, 100, 50))
        self.assertEqual(node.attrs, {"x": 0, "y": 0, "width": 100, "height": 50})
        self.assertEqual(node.key, "root")

    def test_children_stack_vertically(self) -> None:
        node = _layout(
            """
<group>
  <rect width="10" height="20"/>
  <rect width="30" height="5" margin-left="4"/>
</group>
"""
        )
        first, second = node.children
        self.assertEqual(first.bbox, BBox(0, 0, 10, 20))
        self.assertEqual(second.bbox, BBox(4, 20, 30, 5))
        self.assertEqual(node.bbox, BBox(0, 0, 34, 25))
        self.assertEqual([first.key, second.key], ["root-0", "root-1"])

    def test_margin_top_shifts_children_and_self(self) -> None:
        node = _layout('<group margin-top="5"><rect width="10" height="10"/></group>')
        self.assertEqual(node.children[0].bbox, BBox(0, 5, 10, 10))
        self.assertEqual(node.bbox, BBox(0, 5, 10, 15))

    def test_offset_is_applied(self) -> None:
        node = _layout('<group><rect width="10" height="10"/></group>', offset=Offset(10, 20))
        self.assertEqual(node.children[0].bbox, BBox(10, 20, 10, 10))
        self.assertEqual(node.bbox, BBox(10, 20, 20, 30))

    def test_circle_marker_and_ellipse_geometry(self) -> None:
        node = _layout(
            '<group><circle r="5"/><marker style="{r: 2}"/><ellipse rx="3" ry="2"/><ellipse rx="3"/></group>'
        )
        circle, marker, ellipse, partial = node.children
        self.assertEqual((circle.bbox.width, circle.bbox.height), (10, 10))
        self.assertEqual((marker.bbox.width, marker.bbox.height), (4, 4))
        self.assertEqual((ellipse.bbox.width, ellipse.bbox.height), (6, 4))
        self.assertEqual((partial.bbox.width, partial.bbox.height), (0, 0))
        self.assertEqual([c.bbox.y for c in node.children], [0, 10, 14, 18])

    def test_explicit_size_overrides_enclosing_box(self) -> None:
        node = _layout('<rect width="50" height="8"><rect width="40" height="3"/></rect>')
        self.assertEqual(node.bbox, BBox(0, 0, 50, 8))

    def test_explicit_size_never_smaller_than_children(self) -> None:
        node = _layout('<rect width="5"><rect width="40" height="30"/></rect>')
        self.assertEqual(node.bbox, BBox(0, 0, 40, 30))

    def test_text_geometry_and_defaults(self) -> None:
        node = _layout('<text length="7" style="{fill: red}">hello</text>')
        self.assertEqual(node.bbox, BBox(0, 16, 35, 16))
        self.assertEqual(node.attrs["fontSize"], 12)
        self.assertEqual(node.attrs["fill"], "red")
        self.assertEqual(node.attrs["text"], "hello")

    def test_text_line_height_is_configurable(self) -> None:
        node = _layout('<text length="2">ab</text>', config=LayoutConfig(text_line_height=20))
        self.assertEqual(node.bbox, BBox(0, 20, 4, 20))

    def test_text_without_char_width_is_measured(self) -> None:
        short = _layout("<text>ab</text>")
        long = _layout("<text>abcdefgh</text>")
        self.assertGreater(short.bbox.width, 0)
        self.assertGreater(long.bbox.width, short.bbox.width)
        self.assertEqual(short.bbox.height, 16)

    def test_empty_text_keeps_enclosing_box(self) -> None:
        node = _layout("<text></text>")
        self.assertEqual(node.bbox, BBox(0, 0, 0, 0))
        self.assertNotIn("fontSize", node.attrs)

    def test_nested_keys(self) -> None:
        node = _layout("<group><group><rect/><rect/></group></group>")
        self.assertEqual(node.children[0].children[1].key, "root-0-1")

    def test_input_tree_is_not_modified(self) -> None:
        built = build_tree(parse_markup('<group><rect width="1" height="1"/></group>'))
        resolve(built)
        self.assertIsNone(built.bbox)
        self.assertIsNone(built.children[0].key)
        self.assertEqual(built.children[0].attrs, {})

    def test_enclosure_holds_for_every_parent(self) -> None:
        node = _layout(
            """
<group margin-top="3">
  <rect width="12" height="4" margin-left="9"/>
  <group>
    <circle r="6" margin-top="2"/>
    <text length="5">wide text</text>
    <rect height="2"><ellipse rx="20" ry="1"/></rect>
  </group>
  <marker r="1"/>
</group>
"""
        )
        for parent in node.iter_nodes():
            for child in parent.children:
                self.assertGreaterEqual(parent.bbox.width, child.bbox.right)
                self.assertGreaterEqual(parent.bbox.height, child.bbox.bottom)

    def test_layout_is_deterministic(self) -> None:
        markup = '<group><rect width="{{w}}" height="3"/><text length="6">{{label}}</text></group>'
        data = {"w": 7, "label": "node"}
        first = json.dumps(_layout(markup, data, Offset(1, 2)).to_dict(), sort_keys=True)
        second = json.dumps(_layout(markup, data, Offset(1, 2)).to_dict(), sort_keys=True)
        self.assertEqual(first, second)


class LayoutConfigTests(unittest.TestCase):
    def test_environment_overrides(self) -> None:
        config = LayoutConfig.from_env(
            {"SHAPETREE_TEXT_LINE_HEIGHT": "18", "SHAPETREE_FONT_FAMILY": "serif"}
        )
        self.assertEqual(config.text_line_height, 18.0)
        self.assertEqual(config.font_family, "serif")
        self.assertEqual(config.default_font_size, 12)

    def test_invalid_line_height(self) -> None:
        with self.assertRaises(ValueError):
            LayoutConfig.from_env({"SHAPETREE_TEXT_LINE_HEIGHT": "tall"})

    def test_overrides_ignore_unset_values(self) -> None:
        config = LayoutConfig().with_overrides(font_family=None, font_path="/tmp/font.ttf")
        self.assertEqual(config.font_family, "sans-serif")
        self.assertEqual(config.font_path, "/tmp/font.ttf")


if __name__ == "__main__":
    unittest.main()
