"""Layout defaults, overridable from the environment (SHAPETREE_*) or the CLI."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_FONT_FAMILY = "sans-serif"
TEXT_LINE_HEIGHT = 16.0
DEFAULT_FONT_SIZE = 12
DEFAULT_FILL = "#000"
CHAR_WIDTH_ATTR = "length"


@dataclass(frozen=True)
class LayoutConfig:
    text_line_height: float = TEXT_LINE_HEIGHT
    default_font_size: float = DEFAULT_FONT_SIZE
    default_fill: str = DEFAULT_FILL
    char_width_attr: str = CHAR_WIDTH_ATTR
    font_family: str = DEFAULT_FONT_FAMILY
    font_path: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> LayoutConfig:
        env = os.environ if environ is None else environ
        config = cls()
        line_height = env.get("SHAPETREE_TEXT_LINE_HEIGHT")
        if line_height:
            try:
                config = replace(config, text_line_height=float(line_height))
            except ValueError:
                raise ValueError(
                    f"SHAPETREE_TEXT_LINE_HEIGHT must be a number, got {line_height!r}"
                ) from None
        family = env.get("SHAPETREE_FONT_FAMILY")
        if family:
            config = replace(config, font_family=family)
        font_path = env.get("SHAPETREE_FONT_PATH")
        if font_path:
            config = replace(config, font_path=os.path.expanduser(font_path))
        return config

    def with_overrides(self, **changes) -> LayoutConfig:
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
