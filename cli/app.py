from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import UNITS, render_buckets, render_readings

AGGREGATION_TYPES = ("minute", "hour", "day", "month", "year")


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Query readings collected by the smart plug monitor.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the API to answer.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    start_date: str = typer.Argument(..., help="First day to include (YYYY-MM-DD)."),
    end_date: str = typer.Argument(..., help="Last day to include (YYYY-MM-DD)."),
) -> None:
    """Show raw readings for a date range."""
    state = _get_state(ctx)
    payload = state.client.get_readings(start_date, end_date)
    render_readings(payload)


@app.command("aggregate")
def aggregate_command(
    ctx: typer.Context,
    start_date: str = typer.Argument(..., help="First day to include (YYYY-MM-DD)."),
    end_date: str = typer.Argument(..., help="Last day to include (YYYY-MM-DD)."),
    by: str = typer.Option(
        "hour",
        "--by",
        help=f"Bucket size: {', '.join(AGGREGATION_TYPES)}.",
    ),
    unit: str = typer.Option(
        "Wh",
        "--unit",
        help="Energy unit for the table: Wh or kWh.",
    ),
) -> None:
    """Show time-bucketed averages, extremes and energy for a date range."""
    if unit not in UNITS:
        raise typer.BadParameter(f"unit must be one of {', '.join(UNITS)}", param_hint="--unit")
    state = _get_state(ctx)
    payload = state.client.get_aggregates(start_date, end_date, by)
    render_buckets(payload, unit=unit)
