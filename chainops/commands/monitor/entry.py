"""Console command entry points."""

from __future__ import annotations

import curses
import json
import logging
import sys
from curses import wrapper as curses_wrapper
from dataclasses import replace
from typing import TYPE_CHECKING

from ...api import ApiClient
from ...db import get_connection, get_db_path, init_db
from ...exceptions import ChainOpsError, UserError
from ...models import FleetSnapshot
from ...utils import default_console_log_path, ensure_parent_dir, utc_now
from .display import ConsoleDisplay
from .filtering import (
    NODES_VIEW,
    SERVICES_VIEW,
    SORT_ASC,
    SORT_DESC,
    ViewConfig,
    ViewSpec,
    apply_view,
    build_node_rows,
    build_service_items,
    load_view_config,
    save_view_config,
)
from .formatting import (
    NODE_COLUMNS,
    NODE_LABELS,
    SERVICE_COLUMNS,
    SERVICE_LABELS,
    dashboard_payload,
    issue_to_dict,
    node_row_style,
    node_row_values,
    plain_lines,
    render_dashboard,
    render_issues,
    render_rows,
    render_schedule,
    schedule_entry_to_dict,
    service_row_style,
    service_row_values,
)
from .health import aggregate_snapshot, upcoming_schedule
from .refresh import RefreshOrchestrator
from .types import FOCUS_REPORTING_OFF, FOCUS_REPORTING_ON

if TYPE_CHECKING:
    from ...cli_types import (
        ApiArgs,
        DashboardArgs,
        IssuesArgs,
        ListArgs,
        ScheduleArgs,
    )

logger = logging.getLogger(__name__)


def _make_client(api: ApiArgs) -> ApiClient:
    return ApiClient(api.api_url, timeout=api.timeout)


def load_snapshot(client: ApiClient) -> FleetSnapshot:
    """Run a single refresh cycle and return its snapshot.

    Raises:
        ChainOpsError: If the cycle failed
    """
    orchestrator = RefreshOrchestrator(client, interval=0)
    if not orchestrator.refresh("once"):
        raise ChainOpsError(f"Could not load fleet data: {orchestrator.last_error}")
    return orchestrator.snapshot


def _print_lines(lines: list[str]) -> None:
    for line in lines:
        print(line)


def cmd_dashboard(args: DashboardArgs) -> None:
    """Show the fleet dashboard: one-shot text/JSON, or the live curses console."""
    client = _make_client(args.api)
    try:
        if args.once or args.json or not sys.stdout.isatty():
            snapshot = load_snapshot(client)
            result = aggregate_snapshot(snapshot, schedule_limit=args.limit)
            if args.json:
                print(json.dumps(dashboard_payload(snapshot, result), indent=2, sort_keys=True))
            else:
                _print_lines(plain_lines(render_dashboard(snapshot, result)))
            return
        run_console(client, interval=args.interval, schedule_limit=args.limit)
    finally:
        client.close()


def _attach_console_log() -> logging.Handler:
    """Route package logging to a file while curses owns the terminal."""
    log_path = default_console_log_path()
    ensure_parent_dir(log_path)
    handler = logging.FileHandler(log_path)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("chainops")
    root.addHandler(handler)
    return handler


def run_console(client: ApiClient, *, interval: float, schedule_limit: int) -> None:
    """Run the interactive console until the operator quits."""
    db_path = get_db_path()
    init_db(db_path)
    db_conn = get_connection(db_path)

    package_logger = logging.getLogger("chainops")
    stderr_handlers = [
        h for h in package_logger.handlers if getattr(h, "stream", None) is sys.stderr
    ]
    for h in stderr_handlers:
        package_logger.removeHandler(h)
    file_handler = _attach_console_log()

    def curses_main(stdscr) -> None:
        stdscr.nodelay(True)
        stdscr.timeout(200)
        with RefreshOrchestrator(client, interval=interval) as orchestrator:
            display = ConsoleDisplay(
                stdscr,
                orchestrator=orchestrator,
                db_conn=db_conn,
                schedule_limit=schedule_limit,
            )
            display.draw_screen()
            while True:
                key = stdscr.getch()

                if display.handle_key(key, draw=False):
                    return

                if key != -1:
                    # Drop queued input (fast scrolling) rather than replaying it
                    stdscr.nodelay(True)
                    peek = stdscr.getch()
                    if peek != -1:
                        curses.flushinp()
                    display.draw_screen()

                if display.poll_refresh():
                    display.draw_screen()

    sys.stdout.write(FOCUS_REPORTING_ON)
    sys.stdout.flush()
    try:
        curses_wrapper(curses_main)
    finally:
        sys.stdout.write(FOCUS_REPORTING_OFF)
        sys.stdout.flush()
        package_logger.removeHandler(file_handler)
        file_handler.close()
        for h in stderr_handlers:
            package_logger.addHandler(h)
        db_conn.close()


LIST_VIEWS: dict[str, ViewSpec] = {
    NODES_VIEW.key: NODES_VIEW,
    SERVICES_VIEW.key: SERVICES_VIEW,
}


def resolve_list_config(args: ListArgs, view: ViewSpec, stored: ViewConfig) -> ViewConfig:
    """Overlay command-line options on the stored view configuration."""
    config = stored
    if args.search is not None:
        config = replace(config, search=args.search)
    if args.category is not None:
        if args.category not in view.category_names:
            raise UserError(
                f"Unknown filter '{args.category}' for {view.key}; "
                f"choose from: {', '.join(view.category_names)}"
            )
        config = replace(config, category=args.category)
    if args.sort is not None:
        if args.sort not in view.sort_keys:
            raise UserError(
                f"Unknown sort column '{args.sort}' for {view.key}; "
                f"choose from: {', '.join(view.columns)}"
            )
        config = replace(config, sort_column=args.sort, sort_direction=SORT_ASC)
    if args.desc:
        config = replace(config, sort_direction=SORT_DESC)
    return config


def cmd_list(args: ListArgs) -> None:
    """Print the nodes or services table with search, filter and sort applied."""
    view = LIST_VIEWS.get(args.view)
    if view is None:
        raise UserError(f"Unknown view: {args.view}")

    db_path = get_db_path()
    init_db(db_path)
    db_conn = get_connection(db_path)
    try:
        config = resolve_list_config(args, view, load_view_config(db_conn, view))
        if args.save:
            save_view_config(db_conn, view, config)
    finally:
        db_conn.close()

    client = _make_client(args.api)
    try:
        snapshot = load_snapshot(client)
    finally:
        client.close()

    now = utc_now()
    if view is NODES_VIEW:
        rows = apply_view(build_node_rows(snapshot.nodes, snapshot.node_configs), config, view)
        if args.json:
            payload = [node_row_values(r, now=now) for r in rows]
            print(json.dumps(payload, indent=2, sort_keys=True))
            return
        lines = render_rows(
            rows,
            values_fn=node_row_values,
            style_fn=node_row_style,
            columns=NODE_COLUMNS,
            labels=NODE_LABELS,
            config=config,
            now=now,
        )
    else:
        items = build_service_items(snapshot.relayers, snapshot.etl, snapshot.hermes_configs)
        items = apply_view(items, config, view)
        if args.json:
            payload = [service_row_values(i, now=now) for i in items]
            print(json.dumps(payload, indent=2, sort_keys=True))
            return
        lines = render_rows(
            items,
            values_fn=service_row_values,
            style_fn=service_row_style,
            columns=SERVICE_COLUMNS,
            labels=SERVICE_LABELS,
            config=config,
            now=now,
        )
    _print_lines(plain_lines(lines))


def cmd_issues(args: IssuesArgs) -> None:
    """Print the severity-ranked issue list."""
    client = _make_client(args.api)
    try:
        snapshot = load_snapshot(client)
    finally:
        client.close()
    result = aggregate_snapshot(snapshot)
    if args.json:
        print(json.dumps([issue_to_dict(i) for i in result.issues], indent=2, sort_keys=True))
        return
    _print_lines(plain_lines(render_issues(result.issues)))


def cmd_schedule(args: ScheduleArgs) -> None:
    """Print the next scheduled maintenance operations across all nodes."""
    client = _make_client(args.api)
    try:
        snapshot = load_snapshot(client)
    finally:
        client.close()
    now = utc_now()
    entries = upcoming_schedule(snapshot.node_configs, now=now, limit=args.limit)
    if args.json:
        print(json.dumps([schedule_entry_to_dict(e) for e in entries], indent=2, sort_keys=True))
        return
    _print_lines(plain_lines(render_schedule(entries, now=now)))
