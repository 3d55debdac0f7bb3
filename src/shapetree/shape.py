"""Custom shapes defined by a markup template, redrawn incrementally on update."""
from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Union

from .builder import build_tree
from .config import LayoutConfig
from .diff import DiffAction, diff
from .layout import resolve
from .markup import MarkupTag, parse_markup, render_template
from .patch import Patcher, PatchStats
from .structure import NodeStructure, Offset
from .surface import ShapeContainer

log = logging.getLogger(__name__)

Template = Union[str, Callable[[Mapping[str, Any]], str]]

ANCHOR_POINTS = [[0, 0.5], [1, 0.5], [0.5, 1], [0.5, 0]]


class StructureCache:
    """Last resolved tree per shape instance id."""

    def __init__(self) -> None:
        self._trees: Dict[Hashable, NodeStructure] = {}

    def get(self, instance_id: Hashable) -> Optional[NodeStructure]:
        return self._trees.get(instance_id)

    def put(self, instance_id: Hashable, tree: NodeStructure) -> None:
        self._trees[instance_id] = tree

    def discard(self, instance_id: Hashable) -> None:
        self._trees.pop(instance_id, None)

    def __contains__(self, instance_id: Hashable) -> bool:
        return instance_id in self._trees

    def __len__(self) -> int:
        return len(self._trees)


class ShapeFactory:
    """Renders a template into a container and keeps it in sync with new data.

    ``template`` is either markup containing ``{{path}}`` placeholders or a
    callable that receives the shape configuration and returns markup.
    """

    def __init__(
        self,
        template: Template,
        *,
        parser: Callable[[str], MarkupTag] = parse_markup,
        config: Optional[LayoutConfig] = None,
        offset: Optional[Offset] = None,
        cache: Optional[StructureCache] = None,
    ) -> None:
        self.template = template
        self.parser = parser
        self.config = config or LayoutConfig()
        self.offset = offset or Offset()
        self.cache = cache if cache is not None else StructureCache()
        self.last_diff: Optional[DiffAction] = None

    def render_markup(self, cfg: Mapping[str, Any]) -> str:
        if callable(self.template):
            return self.template(cfg)
        return render_template(self.template, cfg)

    def compile(self, cfg: Mapping[str, Any]) -> NodeStructure:
        markup = self.render_markup(cfg)
        return resolve(build_tree(self.parser(markup)), self.offset, self.config)

    def draw(self, cfg: Mapping[str, Any], container: ShapeContainer) -> Any:
        """First render of an instance; returns its key shape, if one is marked."""
        tree = self.compile(cfg)
        patcher = Patcher(container)
        patcher.add_tree(tree)
        self.cache.put(_instance_id(cfg), tree)
        return _key_shape(patcher)

    def update(self, cfg: Mapping[str, Any], container: ShapeContainer) -> PatchStats:
        """Recompute the tree and patch only what changed since the last render."""
        tree = self.compile(cfg)
        instance_id = _instance_id(cfg)
        self.last_diff = diff(tree, self.cache.get(instance_id))
        stats = Patcher(container).apply(self.last_diff)
        self.cache.put(instance_id, tree)
        log.debug("updated instance %r: %s", instance_id, stats)
        return stats

    def set_state(
        self,
        name: str,
        value: Any,
        cfg: Mapping[str, Any],
        container: ShapeContainer,
    ) -> PatchStats:
        """Merge the style registered for state ``name`` and update."""
        state_cfg = deepcopy(dict(cfg))
        style = state_cfg.get("style")
        if value and isinstance(style, dict) and isinstance(style.get(name), dict):
            state_cfg["style"] = {**style, **style[name]}
        return self.update(state_cfg, container)

    def teardown(self, instance_id: Hashable) -> None:
        self.cache.discard(instance_id)

    def get_anchor_points(self) -> List[List[float]]:
        return [list(point) for point in ANCHOR_POINTS]


def _instance_id(cfg: Mapping[str, Any]) -> Hashable:
    return cfg.get("id")


def _key_shape(patcher: Patcher) -> Any:
    for node, ref in patcher.created_shapes:
        if node.props.get("keyshape"):
            return ref
    return None


__all__ = ["ANCHOR_POINTS", "ShapeFactory", "StructureCache"]
