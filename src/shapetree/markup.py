"""Markup parsing and ``{{path}}`` interpolation used ahead of the tree builder."""
from __future__ import annotations

import json
import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from .structure import MarkupError

log = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_PATH = re.compile(r"^[\w.]+$")
_MISSING = object()
_QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}


@dataclass
class MarkupTag:
    """Generic parsed tag: name, raw attributes, inner text and child tags."""

    name: Optional[str]
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: List[MarkupTag] = field(default_factory=list)


def parse_markup(text: str) -> MarkupTag:
    """Parse template markup into a :class:`MarkupTag` tree."""
    try:
        root = ET.fromstring(text.strip())
    except ET.ParseError as exc:
        line, column = getattr(exc, "position", (None, None))
        location = (
            f" at line {line}, column {column}" if line is not None and column is not None else ""
        )
        raise MarkupError(
            "Failed to parse template markup. Ensure XML entities like &, <, > are escaped "
            f"(use &amp;, &lt;, &gt;){location}",
            line=line,
            column=column,
        ) from exc
    return _convert(root)


def _convert(elem: ET.Element) -> MarkupTag:
    attributes = {_local_name(key): value for key, value in elem.attrib.items()}
    name = _local_name(elem.tag) if isinstance(elem.tag, str) else None
    return MarkupTag(
        name=name or None,
        attributes=attributes,
        text="".join(elem.itertext()).strip(),
        children=[_convert(child) for child in elem if isinstance(child.tag, str)],
    )


def render_template(template: str, data: Any) -> str:
    """Replace each ``{{dotted.path}}`` with the value found in ``data``.

    Placeholders whose path is missing, or whose content is not a bare
    identifier/dot path, are left in the output untouched.
    """

    def _substitute(match: re.Match) -> str:
        path = match.group(1).strip()
        if not _PATH.match(path):
            return match.group(0)
        value = lookup_path(data, path)
        if value is _MISSING:
            log.debug("template data has no value for %r; placeholder kept", path)
            return match.group(0)
        return _format_value(value)

    return _PLACEHOLDER.sub(_substitute, template)


def lookup_path(data: Any, path: str, default: Any = _MISSING) -> Any:
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return default
        elif part and hasattr(current, part) and not part.startswith("_"):
            current = getattr(current, part)
        else:
            return default
    return current


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return escape(json.dumps(value), _QUOTE_ENTITIES)
    return escape(str(value), _QUOTE_ENTITIES)


def _local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


__all__ = ["MarkupTag", "lookup_path", "parse_markup", "render_template"]
