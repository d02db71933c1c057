from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, NoReturn

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the weather sensor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def login(self, email: str, password: str) -> str:
        try:
            response = self._client.post("/api/login", json={"email": email, "password": password})
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        token = response.json().get("accessToken")
        if not isinstance(token, str):
            raise typer.BadParameter("Unexpected response payload when logging in.")
        return token

    def upload_csv(self, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")

        try:
            response = self._client.post(
                "/api/sensors/upload",
                content=path.read_bytes(),
                headers={**self._auth_headers(), "Content-Type": "text/plain"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def search(self, body: Dict[str, Any]) -> Any:
        try:
            response = self._client.post(
                "/api/sensors/search",
                json=body,
                headers=self._auth_headers(),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def _auth_headers(self) -> Dict[str, str]:
        if not self._config.token:
            typer.secho(
                "No access token configured. Run `login` and pass --token or set WEATHER_API_TOKEN.",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        return {"Authorization": f"Bearer {self._config.token}"}

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> NoReturn:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("message") or data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
