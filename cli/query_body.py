"""Translate search command-line options into a search request body."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

import typer


def _parse_value(raw: str) -> Union[int, float, str]:
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


def parse_filter_option(option: str) -> tuple[str, str, Union[int, float, str]]:
    """Split ``column:operator:value`` into its parts."""
    parts = option.split(":", 2)
    if len(parts) != 3 or not all(parts):
        raise typer.BadParameter(
            f"Filter {option!r} must look like column:operator:value, e.g. temperature:gte:10."
        )
    column, operator, value = parts
    return column, operator, _parse_value(value)


def build_search_body(
    filters: Optional[List[str]] = None,
    sort: Optional[str] = None,
    order: Optional[str] = None,
    aggregate: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {}

    if filters:
        grouped: Dict[str, Dict[str, Any]] = {}
        for option in filters:
            column, operator, value = parse_filter_option(option)
            grouped.setdefault(column, {})[operator] = value
        body["filters"] = grouped

    if sort:
        body["sort"] = {"column": sort, "order": order or "ascending"}

    if aggregate:
        column, _, operator = aggregate.partition(":")
        if not column or not operator:
            raise typer.BadParameter(
                f"Aggregate {aggregate!r} must look like column:OPERATOR, e.g. rainfall:avg."
            )
        body["aggregate"] = {"column": column, "operator": operator}

    return body
