"""Curses-based UI display for the console."""

from __future__ import annotations

import datetime as dt
import logging
import sqlite3
from curses import error as curses_error
from dataclasses import replace
from typing import Any

from ...constants import DEFAULT_SCHEDULE_LIMIT
from ...exceptions import ChainOpsError
from ...utils import utc_now
from ..actions import ACTIONS, run_action
from .curses_colors import CursesColors
from .filtering import (
    CATEGORY_ALL,
    NODES_VIEW,
    SERVICES_VIEW,
    ViewConfig,
    ViewSpec,
    apply_view,
    build_node_rows,
    build_service_items,
    category_counts,
    cycle_category,
    cycle_sort_column,
    load_view_config,
    save_view_config,
    toggle_sort,
)
from .formatting import (
    NODE_COLUMNS,
    NODE_LABELS,
    SERVICE_COLUMNS,
    SERVICE_LABELS,
    STYLE_MUTED,
    StyledLine,
    format_status_line,
    node_row_style,
    node_row_values,
    render_category_tabs,
    render_dashboard,
    render_rows,
    service_row_style,
    service_row_values,
)
from .health import aggregate_snapshot
from .help_popup import draw_help_popup
from .refresh import RefreshOrchestrator
from .types import (
    FOCUS_IN_SUFFIX,
    FOCUS_OUT_SUFFIX,
    TAB_DASHBOARD,
    TAB_LABELS,
    TAB_NODES,
    TAB_SERVICES,
    TABS,
    TabState,
    compute_header_layout,
)

logger = logging.getLogger(__name__)

KEY_ESC = 27
KEY_TAB = 9
BACKSPACE_KEYS = (8, 127)

TAB_VIEWS: dict[str, ViewSpec[Any]] = {
    TAB_NODES: NODES_VIEW,
    TAB_SERVICES: SERVICES_VIEW,
}


class ConsoleDisplay:
    """Curses console with dashboard, nodes and services tabs."""

    def __init__(
        self,
        stdscr,
        *,
        orchestrator: RefreshOrchestrator,
        db_conn: sqlite3.Connection | None = None,
        schedule_limit: int = DEFAULT_SCHEDULE_LIMIT,
        tz: dt.tzinfo | None = None,
    ) -> None:
        self.stdscr = stdscr
        self.orchestrator = orchestrator
        self.db_conn = db_conn
        self.schedule_limit = schedule_limit
        self.tz = tz
        self.tab = TAB_DASHBOARD
        self.tab_states = {
            tab: TabState(config=load_view_config(db_conn, view)) for tab, view in TAB_VIEWS.items()
        }
        self.dashboard_offset = 0
        self.page_step = 1
        self.max_offset = 0
        self.show_help = False
        self.search_mode = False
        self._search_before = ""
        self.command_mode = False
        self.command_text = ""
        self.flash: str | None = None
        self.flash_is_error = False
        self._seen_version = -1
        self.colors = CursesColors(stdscr)
        self.curses_mod = self.colors.curses_mod

    def safe_addstr(self, row: int, col: int, text: str, attr: int = 0) -> None:
        try:
            if attr:
                self.stdscr.addstr(row, col, text, attr)
            else:
                self.stdscr.addstr(row, col, text)
        except curses_error:
            return

    # State helpers

    @property
    def tab_state(self) -> TabState | None:
        return self.tab_states.get(self.tab)

    @property
    def offset(self) -> int:
        state = self.tab_state
        return state.offset if state else self.dashboard_offset

    @offset.setter
    def offset(self, value: int) -> None:
        state = self.tab_state
        if state:
            state.offset = value
        else:
            self.dashboard_offset = value

    def _update_config(self, **changes: Any) -> None:
        state = self.tab_state
        if state is None:
            return
        state.config = replace(state.config, **changes)
        state.offset = 0

    def _set_config(self, config: ViewConfig) -> None:
        state = self.tab_state
        if state is None:
            return
        state.config = config
        state.offset = 0
        save_view_config(self.db_conn, TAB_VIEWS[self.tab], config)

    def poll_refresh(self) -> bool:
        """Return True if the orchestrator committed, failed or changed phase since last draw."""
        version = self.orchestrator.version
        if version != self._seen_version:
            self._seen_version = version
            return True
        return False

    # Input

    def handle_key(self, key: int, *, draw: bool = True) -> bool:
        """Handle a keypress. Returns True if we should exit.

        Args:
            key: The key code from getch()
            draw: Whether to redraw immediately (default True)
        """
        if key != -1:
            self.flash = None

        if key == KEY_ESC:
            self._handle_escape()
            if draw:
                self.draw_screen()
            return False

        if self.search_mode or self.command_mode:
            if self.search_mode:
                self._handle_search_key(key)
            else:
                self._handle_command_key(key)
            if draw:
                self.draw_screen()
            return False

        # Any key closes help (except '?' which opens it)
        if self.show_help:
            if key != ord("?") and key != -1:
                self.show_help = False
                if draw:
                    self.draw_screen()
            return False

        if key in (ord("q"), ord("Q")):
            return True
        if key == -1 or not self.curses_mod:
            return False

        if key == ord("?"):
            self.show_help = True
        elif key in (ord("1"), ord("2"), ord("3")):
            self.tab = TABS[key - ord("1")]
        elif key == KEY_TAB:
            self.tab = TABS[(TABS.index(self.tab) + 1) % len(TABS)]
        elif key in (self.curses_mod.KEY_UP, ord("k"), self.curses_mod.KEY_PPAGE):
            self.offset = max(self.offset - self.page_step, 0)
        elif key in (self.curses_mod.KEY_DOWN, ord("j"), self.curses_mod.KEY_NPAGE):
            self.offset = min(self.offset + self.page_step, self.max_offset)
        elif key == ord("r"):
            self.orchestrator.request_refresh("manual")
        elif key == ord(":"):
            self.command_mode = True
            self.command_text = ""
        elif self.tab_state is not None:
            view = TAB_VIEWS[self.tab]
            config = self.tab_state.config
            if key == ord("s"):
                self._set_config(cycle_sort_column(config, view))
            elif key == ord("S"):
                self._set_config(toggle_sort(config, config.sort_column))
            elif key == ord("f"):
                self._set_config(cycle_category(config, view))
            elif key == ord("c"):
                self._set_config(replace(config, search="", category=CATEGORY_ALL))
            elif key == ord("/"):
                self.search_mode = True
                self._search_before = config.search
        else:
            return False

        if draw:
            self.draw_screen()
        return False

    def _handle_escape(self) -> None:
        """ESC alone cancels search; ESC [ I / ESC [ O are terminal focus events."""
        first = self.stdscr.getch()
        second = self.stdscr.getch() if first != -1 else -1
        if (first, second) == FOCUS_IN_SUFFIX:
            logger.debug("Terminal focus in")
            self.orchestrator.notify_focus()
            return
        if (first, second) == FOCUS_OUT_SUFFIX:
            return
        if self.search_mode:
            self.search_mode = False
            self._update_config(search=self._search_before)
        elif self.command_mode:
            self.command_mode = False
            self.command_text = ""
        elif self.show_help:
            self.show_help = False

    def _editing_keys(self) -> tuple[tuple[int, ...], tuple[int, ...]]:
        """Keys that submit and delete while typing a search or command."""
        enter_keys: tuple[int, ...] = (ord("\n"), ord("\r"))
        backspace_keys: tuple[int, ...] = BACKSPACE_KEYS
        if self.curses_mod:
            enter_keys += (self.curses_mod.KEY_ENTER,)
            backspace_keys += (self.curses_mod.KEY_BACKSPACE,)
        return enter_keys, backspace_keys

    def _handle_search_key(self, key: int) -> None:
        state = self.tab_state
        if state is None:
            self.search_mode = False
            return
        if key == -1:
            return
        enter_keys, backspace_keys = self._editing_keys()

        if key in enter_keys:
            self.search_mode = False
            self._set_config(state.config)
        elif key in backspace_keys:
            self._update_config(search=state.config.search[:-1])
        elif 32 <= key < 127:
            self._update_config(search=state.config.search + chr(key))

    def _handle_command_key(self, key: int) -> None:
        if key == -1:
            return
        enter_keys, backspace_keys = self._editing_keys()
        if key in enter_keys:
            self.command_mode = False
            self.run_command(self.command_text)
            self.command_text = ""
        elif key in backspace_keys:
            self.command_text = self.command_text[:-1]
        elif 32 <= key < 127:
            self.command_text += chr(key)

    def _set_flash(self, message: str, *, error: bool = False) -> None:
        self.flash = message
        self.flash_is_error = error

    def run_command(self, text: str) -> None:
        """Run ':<action> <name>' and report the outcome in the footer."""
        parts = text.split()
        if not parts:
            return
        if len(parts) != 2:
            self._set_flash("Usage: :<action> <name>", error=True)
            return
        action, target = parts
        try:
            result = run_action(
                self.orchestrator.client, action, target, orchestrator=self.orchestrator
            )
        except ChainOpsError as e:
            self._set_flash(str(e), error=True)
            return
        label = ACTIONS[action].label
        if result.success:
            suffix = f": {result.message}" if result.message else ""
            self._set_flash(f"{label} started on {target}{suffix}")
        else:
            reason = result.message or "no reason given"
            self._set_flash(f"{label} on {target} failed: {reason}", error=True)

    # Rendering

    def build_body(self, now: dt.datetime) -> tuple[list[StyledLine], list[StyledLine]]:
        """Return (pinned, scrollable) lines for the active tab."""
        orchestrator = self.orchestrator
        snapshot = orchestrator.snapshot
        if orchestrator.is_initial_loading:
            return [], [StyledLine("Loading fleet data...", STYLE_MUTED)]

        if self.tab == TAB_DASHBOARD:
            result = aggregate_snapshot(snapshot, now=now, schedule_limit=self.schedule_limit)
            return [], render_dashboard(snapshot, result, now=now, tz=self.tz)

        state = self.tab_state
        view = TAB_VIEWS[self.tab]
        _, width = self.stdscr.getmaxyx()
        if self.tab == TAB_NODES:
            records = build_node_rows(snapshot.nodes, snapshot.node_configs)
            values_fn, style_fn = node_row_values, node_row_style
            columns, labels = NODE_COLUMNS, NODE_LABELS
        else:
            records = build_service_items(snapshot.relayers, snapshot.etl, snapshot.hermes_configs)
            values_fn, style_fn = service_row_values, service_row_style
            columns, labels = SERVICE_COLUMNS, SERVICE_LABELS

        visible = apply_view(records, state.config, view)
        filter_line = render_category_tabs(category_counts(records, view), state.config.category)
        if state.config.search or self.search_mode:
            filter_line += f"   search: {state.config.search}"
        table = render_rows(
            visible,
            values_fn=values_fn,
            style_fn=style_fn,
            columns=columns,
            labels=labels,
            config=state.config,
            now=now,
            max_width=max(width - 1, 0),
        )
        pinned = [StyledLine(filter_line, STYLE_MUTED), table[0]]
        rows = table[1:] or [StyledLine("No matching entries", STYLE_MUTED)]
        return pinned, rows

    def _draw_header(self, usable_width: int, page_info: str) -> int:
        left_parts = ["chainops"]
        for tab in TABS:
            left_parts.append(TAB_LABELS[tab])
        left = "  ".join(left_parts)
        right = page_info
        rows = compute_header_layout(left, right, usable_width)

        col = 0
        self.safe_addstr(0, col, "chainops", self.colors.attrs.brand_attr)
        col += len("chainops") + 2
        for tab in TABS:
            label = TAB_LABELS[tab]
            attr = self.colors.attrs.tab_attr if tab == self.tab else 0
            self.safe_addstr(0, col, label, attr)
            col += len(label) + 2
        if rows == 1:
            self.safe_addstr(0, max(usable_width - len(right), col), right)
        else:
            self.safe_addstr(1, 0, right[:usable_width])
        return rows

    def _draw_footer(self, row: int, usable_width: int, now: dt.datetime) -> None:
        if self.search_mode and self.tab_state is not None:
            self.safe_addstr(row, 0, f"/{self.tab_state.config.search}"[:usable_width])
            return
        if self.command_mode:
            self.safe_addstr(row, 0, f":{self.command_text}"[:usable_width])
            return
        if self.flash:
            attrs = self.colors.attrs
            attr = attrs.error_attr if self.flash_is_error else attrs.status_attr
            self.safe_addstr(row, 0, self.flash[:usable_width], attr)
            return
        error = self.orchestrator.last_error
        text = format_status_line(
            self.orchestrator.phase,
            last_success_at=self.orchestrator.last_success_at,
            last_error=error,
            now=now,
        )
        hint = "  ? help  q quit"
        attr = self.colors.attrs.error_attr if error else self.colors.attrs.status_attr
        self.safe_addstr(row, 0, (text + hint)[:usable_width], attr)

    def draw_screen(self) -> None:
        now = utc_now()
        self.stdscr.erase()
        height, width = self.stdscr.getmaxyx()
        usable_width = max(width - 1, 0)

        pinned, lines = self.build_body(now)

        # Header rows + pinned lines + footer
        reserved = 1 + len(pinned) + 1
        page_size = max(height - reserved, 0)
        self.page_step = max(page_size, 1)
        self.max_offset = max(len(lines) - page_size, 0)
        self.offset = min(self.offset, self.max_offset)
        total_pages = max((len(lines) + self.page_step - 1) // self.page_step, 1)
        current_page = min(self.offset // self.page_step + 1, total_pages)
        page_info = f"page {current_page}/{total_pages}"

        header_rows = self._draw_header(usable_width, page_info)
        if header_rows == 2:
            page_size = max(page_size - 1, 0)

        row = header_rows
        for line in pinned:
            self.safe_addstr(row, 0, line.text[:usable_width], self.colors.style_attr(line.style))
            row += 1
        if page_size <= 0:
            visible = lines[self.offset :]
        else:
            visible = lines[self.offset : self.offset + page_size]
        for line in visible:
            if row >= height - 1:
                break
            self.safe_addstr(row, 0, line.text[:usable_width], self.colors.style_attr(line.style))
            row += 1

        self._draw_footer(height - 1, usable_width, now)

        if self.show_help and self.curses_mod:
            self.stdscr.noutrefresh()
            body_attr, banner_attr = self.colors.popup_attrs()
            draw_help_popup(
                self.stdscr, self.curses_mod, body_attr=body_attr, banner_attr=banner_attr
            )
            self.curses_mod.doupdate()
        else:
            self.stdscr.refresh()
