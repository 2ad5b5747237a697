from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

import typer

UNITS = ("Wh", "kWh")


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_rows(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    table: List[List[str]] = [list(headers)]
    table.extend([_cell(value) for value in row] for row in rows)
    widths = [max(len(line[col]) for line in table) for col in range(len(headers))]
    for position, line in enumerate(table):
        typer.echo("  ".join(cell.ljust(width) for cell, width in zip(line, widths)).rstrip())
        if position == 0:
            typer.echo("  ".join("-" * width for width in widths))


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def convert_energy(watthours: float, unit: str) -> float:
    return watthours / 1000 if unit == "kWh" else watthours


def render_readings(payload: List[Dict[str, Any]]) -> None:
    echo_heading(f"Readings ({len(payload)})")
    if not payload:
        typer.echo("No readings in range.")
        return
    echo_rows(
        ("time", "switch", "country", "town", "volt", "current", "watts"),
        (
            (
                item.get("updateTime"),
                item.get("switchStatus"),
                item.get("country"),
                item.get("town"),
                item.get("volt"),
                item.get("current"),
                item.get("watts"),
            )
            for item in payload
        ),
    )


def render_buckets(payload: List[Dict[str, Any]], unit: str = "Wh") -> None:
    echo_heading(f"Aggregated readings ({len(payload)} buckets)")
    if not payload:
        typer.echo("No aggregated data in range.")
        return
    echo_rows(
        ("time", "avg W", "max W", "min W", "avg V", "avg A", "count", "seconds", unit),
        (
            (
                item.get("time"),
                item.get("watts"),
                item.get("maxWatts"),
                item.get("minWatts"),
                item.get("volt"),
                item.get("current"),
                item.get("count"),
                item.get("durationInSeconds"),
                convert_energy(float(item.get("watthours") or 0.0), unit),
            )
            for item in payload
        ),
    )
    total = sum(float(item.get("watthours") or 0.0) for item in payload)
    typer.echo()
    typer.echo(f"Total energy: {convert_energy(total, unit):.3f} {unit}")
