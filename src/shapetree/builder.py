"""Build the canonical NodeStructure tree from parsed markup."""
from __future__ import annotations

from .attributes import normalize_attributes
from .markup import MarkupTag
from .structure import GROUP_TYPE, NodeStructure


def build_tree(tag: MarkupTag) -> NodeStructure:
    node_type = tag.name.lower() if tag.name else GROUP_TYPE
    attrs, props = normalize_attributes(node_type, tag.attributes, tag.text)
    return NodeStructure(
        type=node_type,
        attrs=attrs,
        props=props,
        children=[build_tree(child) for child in tag.children],
    )
