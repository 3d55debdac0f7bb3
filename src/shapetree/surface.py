"""Host rendering surface contract and an in-memory implementation."""
from __future__ import annotations

from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Dict, List, Mapping, Optional, Tuple


class ShapeContainer(ABC):
    """A container of drawable shapes that the patch engine mutates."""

    @abstractmethod
    def create_shape(self, shape_type: str, attrs: Mapping[str, Any], meta: Mapping[str, Any]) -> Any:
        """Create a shape and return a reference to it."""
        ...

    @abstractmethod
    def remove_shape(self, ref: Any) -> None:
        ...

    @abstractmethod
    def update_shape_attrs(self, ref: Any, attrs: Mapping[str, Any]) -> None:
        ...

    def update_shape_meta(self, ref: Any, meta: Mapping[str, Any]) -> None:
        """Refresh the metadata attached at creation; hosts without metadata ignore it."""

    @abstractmethod
    def list_child_shapes(self) -> List[Tuple[Optional[str], Any]]:
        """Ordered ``(key, ref)`` pairs for every shape in the container."""
        ...

    def find_shape(self, key: Optional[str]) -> Optional[Any]:
        if key is None:
            return None
        for shape_key, ref in self.list_child_shapes():
            if shape_key == key:
                return ref
        return None


@dataclass
class Shape:
    id: int
    type: str
    attrs: Dict[str, Any]
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Optional[str]:
        return self.meta.get("key")


class MemoryContainer(ShapeContainer):
    """Keeps shapes in a list and records every call made against it."""

    def __init__(self) -> None:
        self.shapes: List[Shape] = []
        self.calls: List[Tuple[str, Optional[str]]] = []
        self._ids = count(1)

    def create_shape(self, shape_type: str, attrs: Mapping[str, Any], meta: Mapping[str, Any]) -> Shape:
        shape = Shape(next(self._ids), shape_type, deepcopy(dict(attrs)), deepcopy(dict(meta)))
        self.shapes.append(shape)
        self.calls.append(("create", shape.key))
        return shape

    def remove_shape(self, ref: Shape) -> None:
        self.shapes.remove(ref)
        self.calls.append(("remove", ref.key))

    def update_shape_attrs(self, ref: Shape, attrs: Mapping[str, Any]) -> None:
        ref.attrs = deepcopy(dict(attrs))
        self.calls.append(("update", ref.key))

    def update_shape_meta(self, ref: Shape, meta: Mapping[str, Any]) -> None:
        ref.meta = deepcopy(dict(meta))

    def list_child_shapes(self) -> List[Tuple[Optional[str], Shape]]:
        return [(shape.key, shape) for shape in self.shapes]

    def snapshot(self) -> Dict[Optional[str], Tuple[str, Dict[str, Any]]]:
        """``{key: (type, attrs)}`` for structural comparison of two containers."""
        return {shape.key: (shape.type, deepcopy(shape.attrs)) for shape in self.shapes}

    def count_calls(self, kind: str) -> int:
        return sum(1 for call, _ in self.calls if call == kind)

    def reset_calls(self) -> None:
        self.calls.clear()


__all__ = ["MemoryContainer", "Shape", "ShapeContainer"]
