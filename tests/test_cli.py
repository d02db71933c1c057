from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.config import load_config
from cli.query_body import build_search_body, parse_filter_option


class StubClient:
    def __init__(self, config, search_payload: Any = None) -> None:
        self.config = config
        self.uploaded_path: Path | None = None
        self.logins: List[tuple[str, str]] = []
        self.search_bodies: List[Dict[str, Any]] = []
        self.search_payload = search_payload if search_payload is not None else [
            {
                "timestamp": 1000,
                "temperature": 10.0,
                "rainfall": 0.0,
                "humidity": 40.0,
                "wind_speed": 5.0,
                "visibility": "G",
            }
        ]
        self.closed = False

    def login(self, email: str, password: str) -> str:
        self.logins.append((email, password))
        return "token-123"

    def upload_csv(self, path: Path) -> Dict[str, Any]:
        self.uploaded_path = path
        return {"message": "Success!", "accepted": 1}

    def search(self, body: Dict[str, Any]) -> Any:
        self.search_bodies.append(body)
        return self.search_payload

    def close(self) -> None:
        self.closed = True


class StubAuthService:
    def __init__(self) -> None:
        self.created: List[tuple[str, str]] = []

    def create_user(self, email: str, password: str) -> None:
        self.created.append((email, password))


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_login_prints_token(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["login", "admin@admin.com", "--password", "pass"])

    assert result.exit_code == 0
    assert result.stdout.strip() == "token-123"
    assert stub.logins == [("admin@admin.com", "pass")]
    assert stub.closed is True


def test_upload(monkeypatch, runner: CliRunner, tmp_path) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("timestamp,temperature,rainfall,humidity,wind_speed,visibility\n1,2,3,4,5,G\n")

    result = runner.invoke(app, ["--token", "abc", "upload", str(csv_path)])

    assert result.exit_code == 0
    assert "Upload accepted. accepted=1" in result.stdout
    assert stub.uploaded_path == csv_path
    assert stub.config.token == "abc"


def test_search_builds_body_and_renders_rows(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(
        app,
        [
            "search",
            "--filter", "temperature:gte:10",
            "--filter", "temperature:lte:20.5",
            "--filter", "visibility:eq:G",
            "--sort", "humidity",
            "--order", "desc",
        ],
    )

    assert result.exit_code == 0
    assert stub.search_bodies == [
        {
            "filters": {
                "temperature": {"gte": 10, "lte": 20.5},
                "visibility": {"eq": "G"},
            },
            "sort": {"column": "humidity", "order": "desc"},
        }
    ]
    assert "Readings (1)" in result.stdout
    assert "wind_speed" in result.stdout


def test_search_renders_aggregate(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None, search_payload={"avg": {"rainfall": 1.25}})
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["search", "--aggregate", "rainfall:avg"])

    assert result.exit_code == 0
    assert stub.search_bodies == [{"aggregate": {"column": "rainfall", "operator": "avg"}}]
    assert "AVG(rainfall): 1.25" in result.stdout


def test_search_with_json_body(monkeypatch, runner: CliRunner, tmp_path) -> None:
    stub = StubClient(config=None, search_payload=[])
    _install_stub(monkeypatch, stub)
    body = {"filters": {"humidity": {"eq": 50}}}
    body_path = tmp_path / "body.json"
    body_path.write_text(json.dumps(body))

    result = runner.invoke(app, ["search", "--json-body", str(body_path)])

    assert result.exit_code == 0
    assert stub.search_bodies == [body]
    assert "No readings matched." in result.stdout


def test_create_user_writes_through_auth_service(monkeypatch, runner: CliRunner) -> None:
    _install_stub(monkeypatch, StubClient(config=None))
    auth = StubAuthService()
    monkeypatch.setattr("cli.app.build_default_auth_service", lambda: auth)

    result = runner.invoke(app, ["create-user", "ops@admin.com", "--password", "pw"])

    assert result.exit_code == 0
    assert auth.created == [("ops@admin.com", "pw")]


def test_build_search_body_defaults_order_to_ascending() -> None:
    assert build_search_body(sort="rainfall") == {
        "sort": {"column": "rainfall", "order": "ascending"}
    }
    assert build_search_body() == {}


@pytest.mark.parametrize("option", ["temperature", "temperature:gte", "temperature::1"])
def test_parse_filter_option_rejects_incomplete_filters(option: str) -> None:
    with pytest.raises(typer.BadParameter):
        parse_filter_option(option)


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://weather.local:9000/")
    monkeypatch.setenv("WEATHER_API_TOKEN", " tok ")
    monkeypatch.setenv("CLI_HTTP_TIMEOUT", "-1")

    config = load_config()

    assert config.base_url == "http://weather.local:9000"
    assert config.token == "tok"
    assert config.timeout == 30.0
