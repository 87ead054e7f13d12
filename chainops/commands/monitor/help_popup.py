"""Help overlay for the console display."""

from __future__ import annotations

from curses import error as curses_error
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from .types import CHAINOPS_BANNER, CONSOLE_HELP_TEXT

CLOSE_HINT = "Press any key to close"
H_MARGIN = 2
MIN_POPUP_WIDTH = 10


@dataclass(frozen=True)
class PopupLayout:
    """Window position and inner size; the border adds one cell on each side."""

    top: int
    left: int
    inner_width: int
    visible_rows: int


def help_lines() -> tuple[list[str], int]:
    """Return the popup lines and how many of them belong to the banner."""
    try:
        ver = get_version("chainops")
    except PackageNotFoundError:
        ver = "?"
    banner = [*CHAINOPS_BANNER, f"chainops v{ver}"]
    body = CONSOLE_HELP_TEXT.strip().split("\n")
    return [*banner, "", *body, "", CLOSE_HINT], len(banner)


def popup_layout(lines: list[str], screen_height: int, screen_width: int) -> PopupLayout:
    """Center the popup, shrinking it to fit inside the screen."""
    text_width = max((len(line) for line in lines), default=0)
    inner_width = min(text_width + 2 * H_MARGIN, max(screen_width - 2, MIN_POPUP_WIDTH))
    visible_rows = max(min(len(lines), screen_height - 2), 1)
    top = max((screen_height - visible_rows - 2) // 2, 0)
    left = max((screen_width - inner_width - 2) // 2, 0)
    return PopupLayout(top=top, left=left, inner_width=inner_width, visible_rows=visible_rows)


def draw_help_popup(stdscr, curses_mod, *, body_attr: int, banner_attr: int) -> None:
    """Draw the key guide in a bordered window over the current screen.

    Args:
        stdscr: The curses screen object
        curses_mod: The curses module, needed for newwin; None skips drawing
        body_attr: Attribute for the help text
        banner_attr: Attribute for the banner lines
    """
    if not curses_mod:
        return

    lines, banner_count = help_lines()
    text_width = max(len(line) for line in lines)
    layout = popup_layout(lines, *stdscr.getmaxyx())

    try:
        win = curses_mod.newwin(
            layout.visible_rows + 2, layout.inner_width + 2, layout.top, layout.left
        )
    except curses_error:
        return

    win.bkgd(" ", body_attr)
    win.border()
    margin = " " * H_MARGIN
    for row, line in enumerate(lines[: layout.visible_rows], start=1):
        in_banner = row <= banner_count
        cell = line.center(text_width) if in_banner else line.ljust(text_width)
        try:
            win.addstr(
                row,
                1,
                (margin + cell + margin)[: layout.inner_width],
                banner_attr if in_banner else body_attr,
            )
        except curses_error:
            # Writing the bottom-right cell raises even though the text is drawn
            continue
    win.noutrefresh()
