"""Public API for shapetree."""
from .builder import build_tree
from .config import LayoutConfig
from .diff import Action, DiffAction, diff
from .layout import resolve
from .markup import MarkupTag, parse_markup, render_template
from .patch import PatchStats, Patcher, add_tree, apply_diff
from .shape import ShapeFactory, StructureCache
from .structure import BBox, ConfigurationError, MarkupError, NodeStructure, Offset, ShapeTreeError
from .surface import MemoryContainer, ShapeContainer

__all__ = [
    "Action",
    "BBox",
    "ConfigurationError",
    "DiffAction",
    "LayoutConfig",
    "MarkupError",
    "MarkupTag",
    "MemoryContainer",
    "NodeStructure",
    "Offset",
    "PatchStats",
    "Patcher",
    "ShapeContainer",
    "ShapeFactory",
    "ShapeTreeError",
    "StructureCache",
    "add_tree",
    "apply_diff",
    "build_tree",
    "diff",
    "parse_markup",
    "render_template",
    "resolve",
]
