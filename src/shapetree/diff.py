"""Positional tree diff between a freshly resolved tree and the previous one.

Children are compared index by index with no move detection. Removing the
first of two children compares the surviving child against the old first
one and reports the old second one as deleted.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from .structure import GROUP_TYPE, NodeStructure


class Action(str, Enum):
    SAME = "same"
    ADD = "add"
    DELETE = "delete"
    CHANGE = "change"
    RESTRUCTURE = "restructure"


@dataclass
class DiffAction:
    action: Action
    type: Optional[str] = None
    key: Optional[str] = None
    current: Optional[NodeStructure] = None
    previous: Optional[NodeStructure] = None
    children: List[DiffAction] = field(default_factory=list)

    @property
    def payload(self) -> Optional[NodeStructure]:
        """The subtree this action operates on (the old one for ``delete``)."""
        if self.action is Action.DELETE:
            return self.previous
        return self.current

    @property
    def is_group(self) -> bool:
        return self.type == GROUP_TYPE

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"action": self.action.value}
        if self.type is not None:
            data["type"] = self.type
        if self.key is not None:
            data["key"] = self.key
        if self.action is Action.RESTRUCTURE:
            data["previous"] = self.previous.to_dict()
            data["current"] = self.current.to_dict()
        elif self.action is not Action.SAME and self.payload is not None:
            data["node"] = self.payload.to_dict()
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def diff(current: Optional[NodeStructure], previous: Optional[NodeStructure]) -> DiffAction:
    """Compare ``current`` against ``previous``; neither input is modified."""
    return _diff(current.copy() if current is not None else None, previous)


def _diff(current: Optional[NodeStructure], previous: Optional[NodeStructure]) -> DiffAction:
    if current is None and previous is None:
        return DiffAction(Action.SAME)
    if current is None:
        return DiffAction(Action.DELETE, type=previous.type, key=previous.key, previous=previous)
    if previous is None:
        return DiffAction(Action.ADD, type=current.type, key=current.key, current=current)

    if previous.key is not None:
        current.key = previous.key

    length = max(len(current.children), len(previous.children))
    children = [
        _diff(_at(current.children, index), _at(previous.children, index))
        for index in range(length)
    ]

    if current.type != previous.type:
        return DiffAction(
            Action.RESTRUCTURE,
            type=current.type,
            key=current.key,
            current=current,
            previous=previous,
            children=children,
        )

    verdict = Action.CHANGE if attrs_changed(current, previous) else Action.SAME
    return DiffAction(verdict, type=current.type, key=current.key, current=current, children=children)


def attrs_changed(current: NodeStructure, previous: NodeStructure) -> bool:
    """True when any attribute was changed, removed or added.

    Keys are taken from both trees, so an attribute that only the current
    render has counts as a change too.

    Values compare by deep equality, so equal nested mappings (a merged
    ``style``, say) do not count as changes.
    """
    for name in set(previous.attrs) | set(current.attrs):
        if name == "children":
            continue
        if name not in current.attrs or name not in previous.attrs:
            return True
        if current.attrs[name] != previous.attrs[name]:
            return True
    return False


def _at(items: List[NodeStructure], index: int) -> Optional[NodeStructure]:
    return items[index] if index < len(items) else None


def walk(action: DiffAction) -> Iterator[DiffAction]:
    yield action
    for child in action.children:
        yield from walk(child)


def summarize(action: DiffAction) -> Dict[str, int]:
    counts = Counter(item.action.value for item in walk(action))
    return {kind.value: counts.get(kind.value, 0) for kind in Action}


__all__ = ["Action", "DiffAction", "attrs_changed", "diff", "summarize", "walk"]
