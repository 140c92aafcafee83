"""Unified CLI for seat-scout.

Provides five subcommands:
    seat-scout web      – run the REST API (FastAPI + uvicorn)
    seat-scout mcp      – run the MCP server (stdio or SSE transport)
    seat-scout score    – score one request against the local store
    seat-scout history  – list the scores computed for a child
    seat-scout purge    – drop admission cases past the retention window

Running ``seat-scout`` without a subcommand defaults to ``web``.
"""

import json
import logging
import sys

import click

from seat_scout import __version__


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="seat-scout")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Childcare admission scoring."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(web)


@cli.command()
@click.option("--host", default=None, help="Host to bind to.  [default: settings]")
@click.option("--port", default=None, type=int, help="Port to listen on.  [default: settings]")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose logging.",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Auto-reload on code changes (development only).",
)
def web(host: str | None, port: int | None, verbose: bool, reload: bool) -> None:
    """Run the REST API (default)."""
    import uvicorn

    from seat_scout.app import _setup_logging, app
    from seat_scout.settings import settings

    host = host or settings.host
    port = port or settings.port
    log_level = "info" if verbose else "warning"
    _setup_logging(level=logging.DEBUG if verbose else logging.WARNING)

    url = f"http://{host}:{port}"
    click.echo(f"✦ seat-scout running at {click.style(url, fg='cyan', bold=True)}")
    if reload:
        click.echo(f"  {click.style('⟳ Auto-reload enabled', fg='yellow')}")
    click.echo("  Press Ctrl+C to stop.\n")

    if reload:
        uvicorn.run("seat_scout.app:app", host=host, port=port, log_level=log_level, reload=True)
    else:
        uvicorn.run(app, host=host, port=port, log_level=log_level)


@cli.command()
@click.option(
    "--sse",
    is_flag=True,
    default=False,
    help="Use SSE transport instead of stdio.",
)
@click.option(
    "--port",
    default=8080,
    show_default=True,
    help="Port for SSE transport.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose logging.",
)
def mcp(sse: bool, port: int, verbose: bool) -> None:
    """Run the MCP server."""
    from seat_scout.mcp_server import mcp as mcp_server

    if verbose:
        logging.basicConfig(level=logging.INFO)
    else:
        logging.basicConfig(level=logging.WARNING)

    if sse:
        mcp_server.settings.port = port
        mcp_server.run(transport="sse")
    else:
        mcp_server.run(transport="stdio")


@cli.command()
@click.argument("facility_id")
@click.argument("child_id")
@click.option("--class", "target_class", required=True, help="Age-class band (age_0 … age_5).")
@click.option("--priority", "priority_type", default="none", show_default=True)
@click.option(
    "--also",
    "additional",
    multiple=True,
    help="Additional priority classification (repeatable).",
)
@click.option("--position", type=int, default=None, help="Current waitlist position.")
@click.option("--text", "as_text", is_flag=True, default=False, help="Print a text summary.")
def score(
    facility_id: str,
    child_id: str,
    target_class: str,
    priority_type: str,
    additional: tuple[str, ...],
    position: int | None,
    as_text: bool,
) -> None:
    """Score FACILITY_ID for CHILD_ID against the local store."""
    from seat_scout.errors import DataUnavailableError, InvalidRequestError
    from seat_scout.scoring.summary import format_summary
    from seat_scout.services import scoring_service

    payload = {
        "facilityId": facility_id,
        "childId": child_id,
        "targetClass": target_class,
        "priorityType": priority_type,
        "additionalPriorities": list(additional),
        "waitingPosition": position,
    }
    try:
        result = scoring_service.score(payload, use_cache=False)
    except InvalidRequestError as exc:
        click.echo(f"Invalid request: {exc}", err=True)
        sys.exit(2)
    except DataUnavailableError as exc:
        click.echo(f"Data unavailable: {exc}", err=True)
        sys.exit(3)

    if as_text:
        click.echo(format_summary(result))
    else:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))


@cli.command()
@click.argument("child_id")
@click.option("--limit", default=20, show_default=True, type=click.IntRange(1, 100))
def history(child_id: str, limit: int) -> None:
    """List the scores computed for CHILD_ID, newest first."""
    from seat_scout.services import history_store

    entries = history_store.get_score_history(child_id, limit=limit)
    if not entries:
        click.echo(f"No scores recorded for {child_id}.")
        return
    for entry in entries:
        r = entry.result
        click.echo(
            f"{entry.calculatedAt:%Y-%m-%d %H:%M}  {r.facilityName:<30}  "
            f"grade {r.grade}  {r.probability:5.1f}%  ~{r.estimatedMonths} months"
        )


@cli.command()
@click.option(
    "--keep-years",
    default=None,
    type=click.IntRange(min=1),
    help="Years of admission cases to keep.  [default: settings]",
)
def purge(keep_years: int | None) -> None:
    """Delete admission cases older than the retention window."""
    from seat_scout.services import history_store
    from seat_scout.settings import settings

    deleted = history_store.purge_old_cases(
        keep_years=keep_years or settings.case_retention_years
    )
    click.echo(f"Deleted {deleted} admission case(s).")
