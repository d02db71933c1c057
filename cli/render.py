from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

from models.schema import CSV_COLUMNS

_HEADERS = [column.value for column in CSV_COLUMNS]


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_rows(rows: List[Dict[str, Any]]) -> None:
    echo_heading(f"Readings ({len(rows)})")
    if not rows:
        typer.echo("No readings matched.")
        return

    cells = [[str(row.get(header, "")) for header in _HEADERS] for row in rows]
    widths = [
        max(len(header), *(len(line[index]) for line in cells))
        for index, header in enumerate(_HEADERS)
    ]
    typer.echo("  ".join(header.ljust(width) for header, width in zip(_HEADERS, widths)))
    for line in cells:
        typer.echo("  ".join(cell.ljust(width) for cell, width in zip(line, widths)))


def render_aggregate(payload: Dict[str, Dict[str, Any]]) -> None:
    echo_heading("Aggregate")
    for operator, values in payload.items():
        echo_key_values((f"{operator.upper()}({column})", value) for column, value in values.items())


def render_search_result(payload: Any) -> None:
    if isinstance(payload, list):
        render_rows(payload)
    else:
        render_aggregate(payload)
