"""ChainOps CLI using Click."""

from __future__ import annotations

import logging
import sys
from importlib.metadata import version

import click

from .cli_types import (
    ActionArgs,
    ApiArgs,
    DashboardArgs,
    IssuesArgs,
    ListArgs,
    ScheduleArgs,
)
from .commands import (
    ACTIONS,
    cmd_action,
    cmd_dashboard,
    cmd_issues,
    cmd_list,
    cmd_schedule,
)
from .commands.monitor import NODES_VIEW, SERVICES_VIEW
from .constants import (
    API_URL_ENV_VAR,
    DEFAULT_SCHEDULE_LIMIT,
    REFRESH_INTERVAL_S,
    REQUEST_TIMEOUT_S,
)
from .exceptions import ChainOpsError, CommandFailureError, UserError

# Module logger
logger = logging.getLogger("chainops")


def setup_logging(debug: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if debug else logging.WARNING
    logger.setLevel(level)
    if any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in logger.handlers
    ):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)


def _api_args(ctx: click.Context) -> ApiArgs:
    return ApiArgs(api_url=ctx.obj["api_url"], timeout=ctx.obj["timeout"])


def json_option(func):
    """Decorator to add the --json flag."""
    return click.option(
        "--json",
        "json_output",
        is_flag=True,
        help="Emit machine-readable JSON to stdout.",
    )(func)


def view_options(func):
    """Decorator to add search/filter/sort options to table commands."""
    func = click.option(
        "--save",
        is_flag=True,
        help="Remember these search/filter/sort settings for the console.",
    )(func)
    func = click.option("--desc", is_flag=True, help="Sort descending.")(func)
    func = click.option("--sort", "sort_column", help="Sort column (e.g. name, status, server).")(
        func
    )
    func = click.option("--filter", "category", help="Category filter (e.g. unhealthy, hermes).")(
        func
    )
    func = click.option("--search", help="Case-insensitive text search.")(func)
    return func


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=version("chainops"), prog_name="chainops")
@click.option(
    "--debug",
    "-d",
    is_flag=True,
    help="Enable debug logging to stderr.",
)
@click.option(
    "--api-url",
    envvar=API_URL_ENV_VAR,
    help=f"Backend API base URL (env: {API_URL_ENV_VAR}).",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0.1),
    default=REQUEST_TIMEOUT_S,
    show_default=True,
    help="Per-request timeout in seconds.",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, api_url: str | None, timeout: float):
    """ChainOps: monitor blockchain nodes, relayers and ETL services."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["api_url"] = api_url
    ctx.obj["timeout"] = timeout
    setup_logging(debug=debug)


@cli.command("dashboard")
@json_option
@click.option(
    "--once",
    is_flag=True,
    help="Print the dashboard once and exit (no live console).",
)
@click.option(
    "--limit",
    type=click.IntRange(min=0),
    default=DEFAULT_SCHEDULE_LIMIT,
    show_default=True,
    help="Number of upcoming operations to show.",
)
@click.option(
    "--interval",
    type=click.FloatRange(min=1),
    default=REFRESH_INTERVAL_S,
    show_default=True,
    help="Seconds between automatic refreshes in the live console.",
)
@click.pass_context
def dashboard(ctx: click.Context, json_output: bool, once: bool, limit: int, interval: float):
    """Fleet health, issues, upcoming maintenance and recent activity."""
    args = DashboardArgs(
        api=_api_args(ctx),
        once=once,
        json=json_output,
        limit=limit,
        interval=interval,
    )
    cmd_dashboard(args)


def _list_command(view_key: str, help_text: str):
    @click.pass_context
    def command(
        ctx: click.Context,
        json_output: bool,
        search: str | None,
        category: str | None,
        sort_column: str | None,
        desc: bool,
        save: bool,
    ):
        args = ListArgs(
            api=_api_args(ctx),
            view=view_key,
            search=search,
            category=category,
            sort=sort_column,
            desc=desc,
            json=json_output,
            save=save,
        )
        cmd_list(args)

    command.__doc__ = help_text
    return cli.command(view_key)(json_option(view_options(command)))


_list_command(
    NODES_VIEW.key,
    "List nodes. Filters: " + ", ".join(NODES_VIEW.category_names) + ".",
)
_list_command(
    SERVICES_VIEW.key,
    "List relayers and ETL services. Filters: " + ", ".join(SERVICES_VIEW.category_names) + ".",
)


@cli.command("issues")
@json_option
@click.pass_context
def issues(ctx: click.Context, json_output: bool):
    """Components needing attention, critical first."""
    cmd_issues(IssuesArgs(api=_api_args(ctx), json=json_output))


@cli.command("schedule")
@json_option
@click.option(
    "--limit",
    type=click.IntRange(min=0),
    default=DEFAULT_SCHEDULE_LIMIT,
    show_default=True,
    help="Number of upcoming operations to show.",
)
@click.pass_context
def schedule(ctx: click.Context, json_output: bool, limit: int):
    """Next scheduled pruning, snapshot and state-sync runs across all nodes."""
    cmd_schedule(ScheduleArgs(api=_api_args(ctx), json=json_output, limit=limit))


def _action_command(action: str):
    spec = ACTIONS[action]

    @click.argument("target", metavar=f"{spec.target_kind.upper()}_NAME")
    @json_option
    @click.option(
        "--confirm",
        is_flag=True,
        help="Apply the action. Without this flag, a summary is printed and the command exits.",
    )
    @click.pass_context
    def command(ctx: click.Context, target: str, json_output: bool, confirm: bool):
        args = ActionArgs(
            api=_api_args(ctx),
            action=action,
            target=target,
            json=json_output,
            confirm=confirm,
        )
        cmd_action(args)

    command.__doc__ = f"{spec.label}."
    return cli.command(action)(command)


for _action in ACTIONS:
    _action_command(_action)


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except CommandFailureError as e:
        # Command already printed its error message, just exit
        sys.exit(e.rc)
    except UserError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(e.rc)
    except ChainOpsError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("ERROR: Interrupted", err=True)
        sys.exit(130)
