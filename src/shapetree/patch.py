"""Apply a diff tree to a host shape container."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .diff import Action, DiffAction
from .structure import NodeStructure
from .surface import ShapeContainer

log = logging.getLogger(__name__)


@dataclass
class PatchStats:
    created: int = 0
    updated: int = 0
    removed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated + self.removed


class Patcher:
    """Drives create/update/remove calls on one container for one patch pass.

    Shapes are located by node key, so the keys carried by the diff tree must
    be the keys the shapes were created with.
    """

    def __init__(self, container: ShapeContainer) -> None:
        self.container = container
        self.stats = PatchStats()
        self.created_shapes: List[Tuple[NodeStructure, Any]] = []

    def apply(self, action: DiffAction) -> PatchStats:
        self._apply(action)
        log.debug(
            "patch applied: %d created, %d updated, %d removed, %d skipped",
            self.stats.created,
            self.stats.updated,
            self.stats.removed,
            self.stats.skipped,
        )
        return self.stats

    def add_tree(self, node: NodeStructure) -> PatchStats:
        """First render: create shapes for the whole tree."""
        self._add(node)
        return self.stats

    def _apply(self, action: DiffAction) -> None:
        if action.action is Action.ADD:
            self._add(action.current)
            return
        if action.action is Action.DELETE:
            self._remove(action.previous)
            return
        if action.action is Action.RESTRUCTURE:
            # the rebuilt subtree already reflects every child diff
            self._remove(action.previous)
            self._add(action.current)
            return
        if action.action is Action.CHANGE and not action.is_group:
            self._update(action)
        for child in action.children:
            self._apply(child)

    def _update(self, action: DiffAction) -> None:
        ref = self.container.find_shape(action.key)
        if ref is None:
            log.debug("no shape with key %r to update; skipped", action.key)
            self.stats.skipped += 1
            return
        self.container.update_shape_attrs(ref, action.current.attrs)
        self.container.update_shape_meta(ref, _meta(action.current))
        self.stats.updated += 1

    def _add(self, node: NodeStructure) -> None:
        if not node.is_group:
            ref = self.container.create_shape(node.type, node.attrs, _meta(node))
            self.created_shapes.append((node, ref))
            self.stats.created += 1
        for child in node.children:
            self._add(child)

    def _remove(self, node: NodeStructure) -> None:
        for item in node.iter_nodes():
            if item.is_group:
                continue
            ref = self.container.find_shape(item.key)
            if ref is None:
                log.debug("no shape with key %r to remove; skipped", item.key)
                self.stats.skipped += 1
                continue
            self.container.remove_shape(ref)
            self.stats.removed += 1


def _meta(node: NodeStructure) -> Dict[str, Any]:
    return {
        "key": node.key,
        "type": node.type,
        "bbox": node.bbox.as_dict() if node.bbox is not None else None,
        "props": dict(node.props),
    }


def apply_diff(action: DiffAction, container: ShapeContainer) -> PatchStats:
    return Patcher(container).apply(action)


def add_tree(node: NodeStructure, container: ShapeContainer) -> PatchStats:
    return Patcher(container).add_tree(node)


__all__ = ["PatchStats", "Patcher", "add_tree", "apply_diff"]
