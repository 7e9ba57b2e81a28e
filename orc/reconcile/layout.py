"""tmux window layout strings.

tmux reports a window's geometry as `checksum,WxH,X,Y<body>` where the body is
`,<pane-number>` for a single pane, `{...}` for cells side by side and `[...]`
for cells stacked top to bottom. Only the shape matters here: is the window
already in the canonical main-vertical arrangement?
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

_GEOMETRY_RE = re.compile(r"(\d+)x(\d+),(\d+),(\d+)")
_CHECKSUM_RE = re.compile(r"^[0-9a-fA-F]{4},")
_PANE_NUMBER_RE = re.compile(r",(\d+)")


class CellKind(str, Enum):
    PANE = "pane"
    LEFT_RIGHT = "left_right"
    TOP_BOTTOM = "top_bottom"


@dataclass(frozen=True)
class LayoutCell:
    width: int
    height: int
    x: int
    y: int
    kind: CellKind
    children: tuple["LayoutCell", ...] = ()
    pane_number: Optional[int] = None

    @property
    def is_pane(self) -> bool:
        return self.kind is CellKind.PANE

    def pane_count(self) -> int:
        if self.is_pane:
            return 1
        return sum(child.pane_count() for child in self.children)


class LayoutParseError(ValueError):
    """Layout string does not follow the tmux layout grammar."""


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> LayoutCell:
        cell = self._cell()
        if self.pos != len(self.text):
            raise LayoutParseError(f"trailing data at {self.pos}: {self.text[self.pos:]!r}")
        return cell

    def _cell(self) -> LayoutCell:
        match = _GEOMETRY_RE.match(self.text, self.pos)
        if not match:
            raise LayoutParseError(f"expected WxH,X,Y at {self.pos}: {self.text[self.pos:]!r}")
        width, height, x, y = (int(group) for group in match.groups())
        self.pos = match.end()

        nxt = self.text[self.pos : self.pos + 1]
        if nxt == "{":
            return LayoutCell(width, height, x, y, CellKind.LEFT_RIGHT, self._children("}"))
        if nxt == "[":
            return LayoutCell(width, height, x, y, CellKind.TOP_BOTTOM, self._children("]"))
        if nxt == ",":
            number = _PANE_NUMBER_RE.match(self.text, self.pos)
            if number:
                self.pos = number.end()
                return LayoutCell(width, height, x, y, CellKind.PANE, pane_number=int(number.group(1)))
        raise LayoutParseError(f"unexpected {nxt!r} at {self.pos}")

    def _children(self, closer: str) -> tuple[LayoutCell, ...]:
        self.pos += 1  # opening bracket
        children = [self._cell()]
        while self.text[self.pos : self.pos + 1] == ",":
            self.pos += 1
            children.append(self._cell())
        if self.text[self.pos : self.pos + 1] != closer:
            raise LayoutParseError(f"expected {closer!r} at {self.pos}")
        self.pos += 1
        if len(children) < 2:
            raise LayoutParseError("split cell with fewer than two children")
        return tuple(children)


def parse_layout(layout: str) -> LayoutCell:
    """Parse a tmux `#{window_layout}` string (checksum optional)."""
    text = layout.strip()
    if _CHECKSUM_RE.match(text):
        text = text[5:]
    if not text:
        raise LayoutParseError("empty layout")
    return _Parser(text).parse()


def expected_main_width(window_width: int, main_pane_width_pct: int) -> int:
    return window_width * main_pane_width_pct // 100


def is_canonical_main_vertical(
    layout: str,
    *,
    pane_count: int,
    window_width: int = 0,
    main_pane_width_pct: int = 50,
    tolerance_cells: int = 2,
) -> bool:
    """True when `layout` already is main-vertical with the configured main width.

    One pane is always canonical. Two panes must be a left/right split; three or
    more must be a main pane left of a single top/bottom column. An unparsable
    layout is never canonical.
    """
    try:
        root = parse_layout(layout)
    except LayoutParseError:
        return False

    if root.pane_count() != pane_count:
        return False
    if pane_count <= 1:
        return True

    if root.kind is not CellKind.LEFT_RIGHT or len(root.children) != 2:
        return False
    main, rest = root.children
    if not main.is_pane:
        return False
    if pane_count == 2:
        if not rest.is_pane:
            return False
    elif rest.kind is not CellKind.TOP_BOTTOM or not all(child.is_pane for child in rest.children):
        return False

    width = window_width or root.width
    return abs(main.width - expected_main_width(width, main_pane_width_pct)) <= tolerance_cells
