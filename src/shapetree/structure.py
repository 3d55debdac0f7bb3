"""Canonical node model shared by the builder, layout, diff and patch stages."""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

AttrValue = Union[str, int, float, bool, None, List[Any], Dict[str, Any]]

GROUP_TYPE = "group"
ROOT_KEY = "root"


class ShapeTreeError(ValueError):
    """Structured error with a stable code for CLI mapping."""

    code = "E_SHAPETREE"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(ShapeTreeError):
    """Raised when a ``style`` or ``attrs`` attribute is not a valid literal mapping."""

    code = "E_CONFIG_LITERAL"


class MarkupError(ShapeTreeError):
    """Raised when template text is not well-formed markup."""

    code = "E_PARSE_MARKUP"

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None) -> None:
        super().__init__(message)
        self.line = line
        self.column = column


@dataclass
class Offset:
    x: float = 0
    y: float = 0


@dataclass
class BBox:
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0

    def as_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass
class NodeStructure:
    """A node of the rendered tree.

    ``attrs`` is what the host surface draws with; ``props`` holds the typed
    values of ordinary markup attributes, which live on the node itself.
    ``bbox`` and ``key`` stay ``None`` until the layout pass has run.
    """

    type: str
    attrs: Dict[str, AttrValue] = field(default_factory=dict)
    props: Dict[str, AttrValue] = field(default_factory=dict)
    children: List[NodeStructure] = field(default_factory=list)
    bbox: Optional[BBox] = None
    key: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.type:
            raise ValueError("NodeStructure.type must be a non-empty string")

    @property
    def is_group(self) -> bool:
        return self.type == GROUP_TYPE

    def copy(self) -> NodeStructure:
        return deepcopy(self)

    def iter_nodes(self):
        """Yield this node and every descendant, parents first."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def find(self, key: str) -> Optional[NodeStructure]:
        for node in self.iter_nodes():
            if node.key == key:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.key is not None:
            data["key"] = self.key
        data["attrs"] = deepcopy(self.attrs)
        if self.props:
            data["props"] = deepcopy(self.props)
        if self.bbox is not None:
            data["bbox"] = self.bbox.as_dict()
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> NodeStructure:
        bbox = data.get("bbox")
        return cls(
            type=data["type"],
            attrs=dict(data.get("attrs") or {}),
            props=dict(data.get("props") or {}),
            children=[cls.from_dict(child) for child in data.get("children") or []],
            bbox=BBox(**bbox) if bbox else None,
            key=data.get("key"),
        )


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


__all__ = [
    "AttrValue",
    "BBox",
    "ConfigurationError",
    "GROUP_TYPE",
    "MarkupError",
    "NodeStructure",
    "Offset",
    "ROOT_KEY",
    "ShapeTreeError",
    "is_number",
]
