from __future__ import annotations

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from shapetree import Action, NodeStructure, build_tree, diff, parse_markup, render_template, resolve
from shapetree.diff import summarize, walk


def _tree(markup: str, data=None) -> NodeStructure:
    return resolve(build_tree(parse_markup(render_template(markup, data or {}))))


CARD = """
<group>
  <rect width="{{w}}" height="20" style="{fill: '{{color}}', shadow: {blur: 2}}"/>
  <group>
    <text length="6">{{label}}</text>
    <circle r="4"/>
  </group>
</group>
"""


class DiffTests(unittest.TestCase):
    def test_identical_trees_are_same_everywhere(self) -> None:
        tree = _tree(CARD, {"w": 40, "color": "red", "label": "x"})
        result = diff(tree.copy(), tree.copy())
        self.assertTrue(all(item.action is Action.SAME for item in walk(result)))
        self.assertEqual(len(list(walk(result))), 5)

    def test_add_and_delete_totality(self) -> None:
        a = _tree('<rect width="1" height="1"/>')
        b = _tree('<circle r="1"/>')
        added = diff(a, None)
        self.assertIs(added.action, Action.ADD)
        self.assertEqual(added.payload, a)
        deleted = diff(None, b)
        self.assertIs(deleted.action, Action.DELETE)
        self.assertIs(deleted.payload, b)
        self.assertEqual(deleted.key, "root")

    def test_both_absent_is_same(self) -> None:
        result = diff(None, None)
        self.assertIs(result.action, Action.SAME)
        self.assertIsNone(result.payload)
        self.assertEqual(result.children, [])

    def test_type_change_is_isolated(self) -> None:
        previous = NodeStructure(
            "group",
            attrs={"x": 0},
            children=[NodeStructure("rect", attrs={"a": 1}, key="root-0"), NodeStructure("text", key="root-1")],
            key="root",
        )
        current = NodeStructure(
            "group",
            attrs={"x": 0},
            children=[NodeStructure("circle", attrs={"a": 1}, key="root-0"), NodeStructure("text", key="root-1")],
            key="root",
        )
        result = diff(current, previous)
        actions = [item.action for item in walk(result)]
        self.assertEqual(actions, [Action.SAME, Action.RESTRUCTURE, Action.SAME])
        restructure = result.children[0]
        self.assertEqual(restructure.previous.type, "rect")
        self.assertEqual(restructure.current.type, "circle")

    def test_restructure_keeps_child_diffs(self) -> None:
        previous = NodeStructure("rect", children=[NodeStructure("text", attrs={"text": "a"})])
        current = NodeStructure("circle", children=[NodeStructure("text", attrs={"text": "b"})])
        result = diff(current, previous)
        self.assertIs(result.action, Action.RESTRUCTURE)
        self.assertEqual([child.action for child in result.children], [Action.CHANGE])

    def test_attribute_change_carries_full_attrs(self) -> None:
        before = _tree('<rect width="{{w}}" height="50"/>', {"w": 100})
        after = _tree('<rect width="{{w}}" height="50"/>', {"w": 120})
        result = diff(after, before)
        self.assertIs(result.action, Action.CHANGE)
        self.assertEqual(result.payload.attrs, {"x": 0, "y": 0, "width": 120, "height": 50})
        self.assertEqual(result.key, "root")
        self.assertEqual(result.type, "rect")

    def test_removed_and_added_attributes_are_changes(self) -> None:
        base = NodeStructure("rect", attrs={"fill": "red", "stroke": "blue"})
        fewer = NodeStructure("rect", attrs={"fill": "red"})
        self.assertIs(diff(fewer, base).action, Action.CHANGE)
        self.assertIs(diff(base, fewer).action, Action.CHANGE)

    def test_equal_nested_values_are_not_changes(self) -> None:
        before = NodeStructure("rect", attrs={"shadow": {"blur": 2, "color": [1, 2]}})
        after = NodeStructure("rect", attrs={"shadow": {"blur": 2, "color": [1, 2]}})
        self.assertIs(diff(after, before).action, Action.SAME)
        after.attrs["shadow"]["blur"] = 3
        self.assertIs(diff(after, before).action, Action.CHANGE)

    def test_children_padded_to_longer_side(self) -> None:
        previous = NodeStructure("group", children=[NodeStructure("rect"), NodeStructure("rect"), NodeStructure("rect")])
        current = NodeStructure("group", children=[NodeStructure("rect")])
        result = diff(current, previous)
        self.assertEqual(
            [child.action for child in result.children],
            [Action.SAME, Action.DELETE, Action.DELETE],
        )
        grown = diff(previous, current)
        self.assertEqual(
            [child.action for child in grown.children],
            [Action.SAME, Action.ADD, Action.ADD],
        )

    def test_removing_first_child_is_positional(self) -> None:
        before = _tree('<group><rect width="10" height="10"/><rect width="20" height="10"/></group>')
        after = _tree('<group><rect width="20" height="10"/></group>')
        result = diff(after, before)
        first, second = result.children
        self.assertIs(first.action, Action.CHANGE)
        self.assertEqual(first.key, "root-0")
        self.assertEqual(first.payload.attrs["width"], 20)
        self.assertIs(second.action, Action.DELETE)
        self.assertEqual(second.payload.key, "root-1")

    def test_previous_key_is_carried_forward(self) -> None:
        previous = NodeStructure("rect", attrs={"fill": "red"}, key="custom")
        current = NodeStructure("rect", attrs={"fill": "blue"}, key="root")
        result = diff(current, previous)
        self.assertEqual(result.key, "custom")
        self.assertEqual(result.payload.key, "custom")
        self.assertEqual(current.key, "root")

    def test_summary_and_serialization(self) -> None:
        before = _tree(CARD, {"w": 40, "color": "red", "label": "x"})
        after = _tree(CARD, {"w": 40, "color": "blue", "label": "x"})
        result = diff(after, before)
        self.assertEqual(
            summarize(result),
            {"same": 4, "add": 0, "delete": 0, "change": 1, "restructure": 0},
        )
        data = result.to_dict()
        self.assertEqual(data["action"], "same")
        self.assertEqual(data["children"][0]["action"], "change")
        self.assertEqual(data["children"][0]["node"]["attrs"]["fill"], "blue")


if __name__ == "__main__":
    unittest.main()
