"""Conversion of raw markup attributes into typed node attributes."""
from __future__ import annotations

import logging
import re
from typing import Dict, Mapping, Optional, Tuple

import yaml
from yaml.nodes import CollectionNode, Node, ScalarNode

from .structure import AttrValue, ConfigurationError

log = logging.getLogger(__name__)

MERGED_ATTRIBUTES = ("style", "attrs")
TEXT_TYPE = "text"

_BOOL_TAG = "tag:yaml.org,2002:bool"
_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _LiteralLoader(yaml.SafeLoader):
    """Safe loader limited to JSON-like scalars.

    YAML 1.1 would read ``yes``/``no``/``on``/``off`` as booleans and dates as
    timestamps; here only ``true``/``false`` are booleans and dates stay text.
    """


_LiteralLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in (_BOOL_TAG, _TIMESTAMP_TAG)]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_LiteralLoader.add_implicit_resolver(
    _BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


class LiteralParseError(ValueError):
    pass


def to_camel_case(name: str) -> str:
    """``font-size`` -> ``fontSize``; names without hyphens are returned as-is."""
    first, *rest = name.split("-")
    return first + "".join(part[:1].upper() + part[1:] for part in rest)


def parse_literal(raw: Optional[str]) -> AttrValue:
    """Parse a structured literal: number, boolean, null, string, array or mapping.

    Only the JSON-like subset is accepted: one scalar or one flow collection
    (``{...}``/``[...]``) spanning the whole text. YAML block syntax
    (``fill: red``, ``- item``) and comments that would drop text
    (``red #note``) fail to parse.
    """
    if raw is None or not raw.strip():
        raise LiteralParseError("empty literal")
    loader = _LiteralLoader(raw)
    try:
        node = loader.get_single_node()
        _check_literal_node(node, raw)
        return loader.construct_document(node)
    except yaml.YAMLError as exc:
        raise LiteralParseError(str(exc)) from exc
    finally:
        loader.dispose()


def _check_literal_node(node: Optional[Node], raw: str) -> None:
    if node is None:
        # e.g. "#000" is a YAML comment and loads as nothing
        raise LiteralParseError(f"literal {raw!r} has no value")
    if isinstance(node, CollectionNode) and not node.flow_style:
        raise LiteralParseError(f"literal {raw!r} uses block syntax")
    if isinstance(node, ScalarNode) and node.style in ("|", ">"):
        raise LiteralParseError(f"literal {raw!r} uses block syntax")
    start = len(raw) - len(raw.lstrip())
    end = len(raw.rstrip())
    if node.start_mark.index != start or node.end_mark.index != end:
        raise LiteralParseError(f"literal {raw!r} has text outside its value")


def normalize_attributes(
    tag_type: str,
    raw_attributes: Mapping[str, str],
    text: Optional[str] = None,
) -> Tuple[Dict[str, AttrValue], Dict[str, AttrValue]]:
    """Return ``(attrs, props)`` for one tag.

    ``style`` and ``attrs`` literals are merged into ``attrs`` and must parse
    to a mapping; every other attribute lands in ``props``, typed when it
    parses and raw otherwise.
    """
    attrs: Dict[str, AttrValue] = {}
    props: Dict[str, AttrValue] = {}
    if tag_type == TEXT_TYPE:
        attrs["text"] = text or ""

    for raw_name, raw_value in raw_attributes.items():
        key = to_camel_case(raw_name)
        if key in MERGED_ATTRIBUTES:
            attrs.update(_parse_mapping(key, raw_value, tag_type))
            continue
        try:
            props[key] = parse_literal(raw_value)
        except LiteralParseError:
            log.debug("<%s %s=...>: keeping raw text %r", tag_type, raw_name, raw_value)
            props[key] = raw_value
    return attrs, props


def _parse_mapping(key: str, raw_value: str, tag_type: str) -> Dict[str, AttrValue]:
    try:
        value = parse_literal(raw_value)
    except LiteralParseError as exc:
        raise ConfigurationError(
            f"<{tag_type}> attribute '{key}' is not a valid literal: {raw_value!r} ({exc})"
        ) from exc
    if not isinstance(value, dict):
        raise ConfigurationError(
            f"<{tag_type}> attribute '{key}' must be a mapping, got {type(value).__name__}: {raw_value!r}"
        )
    return {str(name): item for name, item in value.items()}
