from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .output import OutputBuffer


DEFAULT_WIDTH = 80
MIN_WIDTH = 1


class Color(IntEnum):
    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    MAGENTA = 35
    CYAN = 36
    WHITE = 37


class LinkKind(Enum):
    NORMAL = "normal"
    EMAIL = "email"


class TableAlignment(Enum):
    NONE = "none"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True)
class StyleAttributes:
    bold: bool = False
    underline: bool = False
    inverse: bool = False
    foreground: Optional[Color] = None


@dataclass
class RenderConfig:
    terminal_width: int = DEFAULT_WIDTH
    suppress_trailer: bool = False
    debug_logging: bool = False
    hyphenate: bool = False
    hyphen_lang: str = "en_US"
    h1_font: Optional[str] = None
    h2_font: Optional[str] = None
    h3_font: Optional[str] = None


@dataclass
class RenderState:
    """Mutable bookkeeping for a single document render."""

    terminal_width: int
    output: Optional["OutputBuffer"] = None
    cursor_column: int = 0
    indent_level: int = 0
    indent_override: Optional[int] = None
    active_style: StyleAttributes = field(default_factory=StyleAttributes)
    style_stack: List[StyleAttributes] = field(default_factory=list)
    ordered_list_counter: int = 0


def normalize_width(width: int) -> int:
    return max(MIN_WIDTH, width)


def detect_terminal_width() -> int:
    columns = shutil.get_terminal_size((DEFAULT_WIDTH, 24)).columns
    if columns <= 0:
        return DEFAULT_WIDTH
    return columns
