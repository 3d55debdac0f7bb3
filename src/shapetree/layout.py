"""Layout resolver: assigns keys top-down and bounding boxes bottom-up.

Children of a node are stacked as a vertical flow. Each node's own box is the
enclosing box of its children, overridden per axis by the geometry its type
declares (radius for circles, rx/ry for ellipses, measured text, explicit
width/height for everything else) but never smaller than it, then shifted by
its margins.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import ImageFont

from .config import LayoutConfig
from .structure import ROOT_KEY, BBox, NodeStructure, Offset, is_number

log = logging.getLogger(__name__)

GENERIC_FONT_FALLBACKS = {
    "sans-serif": ["Helvetica", "Arial", "Liberation Sans", "DejaVu Sans"],
    "serif": ["Times New Roman", "Times", "Liberation Serif", "DejaVu Serif"],
    "monospace": ["Courier New", "Courier", "Liberation Mono", "DejaVu Sans Mono"],
}


class _TextMeasurer:
    """Caches Pillow fonts and measures rendered text width."""

    FONT_DIRS = [
        Path("/System/Library/Fonts"),
        Path("/System/Library/Fonts/Supplemental"),
        Path("/Library/Fonts"),
        Path("~/Library/Fonts").expanduser(),
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
        Path("C:/Windows/Fonts"),
    ]

    def __init__(self) -> None:
        self._font_cache: Dict[Tuple[str, int], Optional[ImageFont.FreeTypeFont]] = {}
        self._font_paths: Dict[str, Optional[str]] = {}

    def font(self, size: float, family: str, explicit_path: Optional[str]) -> Optional[ImageFont.FreeTypeFont]:
        key_size = max(1, int(round(size)))
        cache_key = ((explicit_path or family).lower(), key_size)
        if cache_key in self._font_cache:
            return self._font_cache[cache_key]

        candidates: List[str] = []
        if explicit_path:
            candidates.append(explicit_path)
        for fam in GENERIC_FONT_FALLBACKS.get(family.lower(), [family]):
            resolved = self._locate_font(fam)
            if resolved:
                candidates.append(resolved)
        candidates.append("DejaVuSans.ttf")

        font = None
        for candidate in candidates:
            try:
                font = ImageFont.truetype(candidate, key_size)
                break
            except OSError:
                continue
        if font is None:
            log.debug("no font found for %r; using heuristic text widths", family)
        self._font_cache[cache_key] = font
        return font

    def measure(self, text: str, size: float, family: str, explicit_path: Optional[str]) -> float:
        font = self.font(size, family, explicit_path)
        if font is None:
            return _heuristic_width(text, size)
        return float(font.getlength(text))

    def _locate_font(self, family: str) -> Optional[str]:
        key = family.lower()
        if key in self._font_paths:
            return self._font_paths[key]
        normalized = re.sub(r"[^a-z0-9]+", "", key)
        best_match: Optional[Tuple[int, str]] = None
        for directory in self.FONT_DIRS:
            if not normalized or not directory.exists():
                continue
            for path in directory.rglob("*.ttf"):
                stem = re.sub(r"[^a-z0-9]+", "", path.stem.lower())
                if stem == normalized:
                    score = 0
                elif stem.startswith(normalized):
                    score = 1
                else:
                    continue
                if best_match is None or score < best_match[0]:
                    best_match = (score, str(path))
        resolved = best_match[1] if best_match else None
        self._font_paths[key] = resolved
        return resolved


_TEXT_MEASURER = _TextMeasurer()


def _heuristic_width(text: str, font_size: float) -> float:
    width = 0.0
    for ch in text:
        if ch.isspace():
            width += font_size * 0.33
        elif ch in "il":
            width += font_size * 0.3
        elif ch in "mwMW@#":
            width += font_size * 0.9
        else:
            width += font_size * 0.6
    return width


def resolve(
    node: NodeStructure,
    offset: Optional[Offset] = None,
    config: Optional[LayoutConfig] = None,
) -> NodeStructure:
    """Return a laid-out copy of ``node`` positioned at ``offset``."""
    target = node.copy()
    if target.key is None:
        target.key = ROOT_KEY
    start = offset or Offset()
    _resolve(target, Offset(start.x, start.y), config or LayoutConfig())
    return target


def _resolve(node: NodeStructure, offset: Offset, config: LayoutConfig) -> None:
    enclosing = BBox(offset.x, offset.y, 0, 0)
    if node.children:
        cursor = Offset(offset.x, offset.y + (_geometry(node, "marginTop") or 0))
        for index, child in enumerate(node.children):
            child.key = f"{node.key or ROOT_KEY}-{index}"
            _resolve(child, Offset(cursor.x, cursor.y), config)
            cursor.y += child.bbox.height
            enclosing.width = max(enclosing.width, child.bbox.right)
            enclosing.height = max(enclosing.height, child.bbox.bottom)

    node.bbox = _own_bbox(node, offset, enclosing, config)
    node.attrs.update(node.bbox.as_dict())


def _own_bbox(node: NodeStructure, offset: Offset, enclosing: BBox, config: LayoutConfig) -> BBox:
    bbox = BBox(offset.x, offset.y, enclosing.width, enclosing.height)
    width: Optional[float] = None
    height: Optional[float] = None

    if node.type in ("circle", "marker"):
        r = _geometry(node, "r")
        if r is not None:
            width = height = 2 * r
    elif node.type == "ellipse":
        rx = _geometry(node, "rx")
        ry = _geometry(node, "ry")
        if rx is not None and ry is not None:
            width = 2 * rx
            height = 2 * ry
    elif node.type == "text":
        text = node.attrs.get("text")
        if text not in (None, ""):
            width = _text_width(node, str(text), config)
            height = config.text_line_height
            bbox.y += height
            node.attrs = {
                "fontSize": config.default_font_size,
                "fill": config.default_fill,
                **node.attrs,
            }
    else:
        width = _geometry(node, "width")
        height = _geometry(node, "height")

    # declared geometry never shrinks a node below its children's extent
    if width is not None and width >= 0:
        bbox.width = max(width, enclosing.width)
    if height is not None and height >= 0:
        bbox.height = max(height, enclosing.height)

    bbox.y += _geometry(node, "marginTop") or 0
    bbox.x += _geometry(node, "marginLeft") or 0
    return bbox


def _text_width(node: NodeStructure, text: str, config: LayoutConfig) -> float:
    char_width = _geometry(node, config.char_width_attr)
    if char_width is not None:
        return len(text) * char_width
    font_size = node.attrs.get("fontSize")
    if not is_number(font_size):
        font_size = config.default_font_size
    family = node.attrs.get("fontFamily")
    if not isinstance(family, str) or not family:
        family = config.font_family
    return _TEXT_MEASURER.measure(text, font_size, family, config.font_path)


def _geometry(node: NodeStructure, name: str) -> Optional[float]:
    """Numeric geometry value from ``attrs``, falling back to the node's own props."""
    for source in (node.attrs, node.props):
        value = source.get(name)
        if is_number(value):
            return value
    return None


__all__ = ["resolve"]
