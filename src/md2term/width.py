"""Terminal cell measurement for wrapped, styled text.

Escape sequences are carried through as zero-width units so styled text
produced by nested inline spans can be measured and split safely.
"""

from __future__ import annotations

import re
import unicodedata
from typing import List

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
WIDE_CLASSES = {"W", "F"}


def rune_width(ch: str) -> int:
    """Return how many terminal cells ``ch`` occupies (1 or 2).

    East Asian wide and fullwidth characters (CJK ideographs, Hangul
    syllables, fullwidth forms, CJK punctuation) take two cells; everything
    else, combining marks included, takes one.
    """
    if unicodedata.east_asian_width(ch) in WIDE_CLASSES:
        return 2
    return 1


def is_escape(unit: str) -> bool:
    return unit.startswith("\x1b")


def unit_width(unit: str) -> int:
    if is_escape(unit):
        return 0
    return rune_width(unit)


def split_units(text: str) -> List[str]:
    """Split ``text`` into single characters and whole escape sequences."""
    units: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        if text[i] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, i)
            if match:
                units.append(match.group(0))
                i = match.end()
                continue
        units.append(text[i])
        i += 1
    return units


def cell_width(text: str) -> int:
    return sum(unit_width(unit) for unit in split_units(text))


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def clip_cells(text: str, width: int) -> str:
    """Cut ``text`` to at most ``width`` cells, keeping escapes intact."""
    kept: List[str] = []
    used = 0
    for unit in split_units(text):
        size = unit_width(unit)
        if used + size > width:
            break
        kept.append(unit)
        used += size
    return "".join(kept)
