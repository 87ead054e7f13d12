"""Curses color initialization and attribute management for the console."""

from __future__ import annotations

from curses import error as curses_error
from dataclasses import dataclass

from .formatting import (
    STYLE_CRITICAL,
    STYLE_HEADER,
    STYLE_MUTED,
    STYLE_OK,
    STYLE_TITLE,
    STYLE_WARNING,
)

PAIR_TITLE = 1
PAIR_HEADER = 2
PAIR_OK = 3
PAIR_WARNING = 4
PAIR_CRITICAL = 5
PAIR_MUTED = 6
PAIR_POPUP = 7
PAIR_POPUP_BANNER = 8


@dataclass
class CursesAttrs:
    """Named curses attributes for consistent styling.

    Attributes:
        brand_attr: Attribute for "chainops" branding
        tab_attr: Attribute for the active tab label
        status_attr: Attribute for the footer status line
        error_attr: Attribute for refresh errors in the footer
    """

    brand_attr: int
    tab_attr: int
    status_attr: int
    error_attr: int


class CursesColors:
    """Curses color initialization and style-to-attribute mapping."""

    def __init__(self, stdscr) -> None:
        self.stdscr = stdscr
        self.curses_mod = None
        self.color_enabled = False
        self.attrs = CursesAttrs(brand_attr=0, tab_attr=0, status_attr=0, error_attr=0)
        self._style_attrs: dict[str, int] = {}
        self._init_curses()

    def _init_curses(self) -> None:
        """Initialize curses with color support."""
        try:
            import curses

            self.curses_mod = curses
            curses.curs_set(0)
            if curses.has_colors():
                curses.start_color()
                curses.use_default_colors()
                curses.init_pair(PAIR_TITLE, curses.COLOR_CYAN, -1)
                curses.init_pair(PAIR_HEADER, curses.COLOR_MAGENTA, -1)
                curses.init_pair(PAIR_OK, curses.COLOR_GREEN, -1)
                curses.init_pair(PAIR_WARNING, curses.COLOR_YELLOW, -1)
                curses.init_pair(PAIR_CRITICAL, curses.COLOR_RED, -1)
                curses.init_pair(PAIR_MUTED, curses.COLOR_BLUE, -1)
                curses.init_pair(PAIR_POPUP, curses.COLOR_WHITE, curses.COLOR_BLACK)
                curses.init_pair(PAIR_POPUP_BANNER, curses.COLOR_YELLOW, curses.COLOR_BLACK)
                self.color_enabled = True

            def pair(n: int) -> int:
                return curses.color_pair(n) if self.color_enabled else 0

            self.attrs = CursesAttrs(
                brand_attr=curses.A_BOLD | pair(PAIR_TITLE),
                tab_attr=curses.A_REVERSE,
                status_attr=pair(PAIR_MUTED),
                error_attr=curses.A_BOLD | pair(PAIR_CRITICAL),
            )
            self._style_attrs = {
                STYLE_TITLE: curses.A_BOLD | pair(PAIR_TITLE),
                STYLE_HEADER: curses.A_BOLD | pair(PAIR_HEADER),
                STYLE_OK: pair(PAIR_OK),
                STYLE_WARNING: pair(PAIR_WARNING),
                STYLE_CRITICAL: curses.A_BOLD | pair(PAIR_CRITICAL),
                STYLE_MUTED: pair(PAIR_MUTED) if self.color_enabled else curses.A_DIM,
            }
        except curses_error:
            return

    def style_attr(self, style: str) -> int:
        """Return the curses attribute for a formatting style (0 for plain)."""
        return self._style_attrs.get(style, 0)

    def popup_attrs(self) -> tuple[int, int]:
        """Return (body, banner) attributes for popups."""
        if not self.curses_mod:
            return 0, 0
        if not self.color_enabled:
            return self.curses_mod.A_REVERSE, self.curses_mod.A_REVERSE
        return self.curses_mod.color_pair(PAIR_POPUP), self.curses_mod.color_pair(PAIR_POPUP_BANNER)
