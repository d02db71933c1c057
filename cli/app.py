from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.query_body import build_search_body
from cli.render import echo_key_values, render_search_result
from services.auth import build_default_auth_service


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the weather sensor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:3005).",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        "-t",
        help="Access token from `login` (defaults to WEATHER_API_TOKEN env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, token=token, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("login")
def login_command(
    ctx: typer.Context,
    email: str = typer.Argument(..., help="Account email."),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Exchange credentials for an access token and print it."""
    state = _get_state(ctx)
    token = state.client.login(email, password)
    typer.echo(token)


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
) -> None:
    """Upload a CSV batch of sensor readings."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    payload = state.client.upload_csv(file)
    typer.secho(
        f"Upload accepted. accepted={payload.get('accepted')}",
        fg=typer.colors.GREEN,
    )


@app.command("search")
def search_command(
    ctx: typer.Context,
    filters: Optional[List[str]] = typer.Option(
        None,
        "--filter",
        "-f",
        help="Filter as column:operator:value (repeatable), e.g. temperature:gte:10.",
    ),
    sort: Optional[str] = typer.Option(None, "--sort", help="Column to sort by."),
    order: Optional[str] = typer.Option(None, "--order", help="ascending/asc or descending/desc."),
    aggregate: Optional[str] = typer.Option(
        None,
        "--aggregate",
        "-a",
        help="Aggregate as column:OPERATOR, e.g. rainfall:avg.",
    ),
    json_body: Optional[Path] = typer.Option(
        None,
        "--json-body",
        exists=True,
        dir_okay=False,
        readable=True,
        help="Send this JSON file as the search body instead of building one from options.",
    ),
) -> None:
    """Filter, sort or aggregate stored readings."""
    state = _get_state(ctx)
    if json_body is not None:
        try:
            body = json.loads(json_body.read_text())
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"{json_body} is not valid JSON: {exc}") from exc
    else:
        body = build_search_body(filters=filters, sort=sort, order=order, aggregate=aggregate)
    payload = state.client.search(body)
    render_search_result(payload)


@app.command("create-user")
def create_user_command(
    email: str = typer.Argument(..., help="Account email."),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True
    ),
) -> None:
    """Create or reset a user directly in the local database."""
    build_default_auth_service().create_user(email, password)
    echo_key_values([("created", email)])
