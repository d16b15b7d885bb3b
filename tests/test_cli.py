"""CLI tests — click commands against a mocked HTTP transport."""

import json

import httpx
import pytest
from click.testing import CliRunner

from beacon.cli import main as cli


NOTIFICATION = {
    "id": 1,
    "userId": "42",
    "type": "like",
    "message": "Ada liked your post",
    "isRead": False,
    "createdAt": "2026-10-19T12:00:00Z",
}


@pytest.fixture()
def requests_seen(monkeypatch):
    """Route the CLI's client through a MockTransport; record requests."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "POST" and request.url.path == "/api/v1/notifications":
            body = json.loads(request.content)
            if not body["message"].strip():
                return httpx.Response(400, json={"detail": "Missing or empty field(s): message"})
            return httpx.Response(201, json={**NOTIFICATION, "success": True})
        if request.url.path == "/api/v1/notifications/42":
            return httpx.Response(200, json={
                "notifications": [NOTIFICATION],
                "pagination": {"page": 1, "limit": 20, "total": 1},
            })
        if request.url.path == "/api/v1/notifications/0":
            return httpx.Response(200, json={
                "notifications": [],
                "pagination": {"page": 1, "limit": 20, "total": 0},
            })
        if request.url.path == "/api/v1/health":
            return httpx.Response(200, json={"status": "healthy", "server": "ok"})
        return httpx.Response(404, json={"detail": "Not Found"})

    def client():
        return httpx.AsyncClient(
            base_url="http://beacon.test", transport=httpx.MockTransport(handler)
        )

    monkeypatch.setattr(cli, "_client", client)
    return seen


def test_send(requests_seen):
    result = CliRunner().invoke(cli.main, ["send", "42", "like", "Ada liked your post"])
    assert result.exit_code == 0, result.output
    assert "Notification #1 stored for user 42" in result.output

    body = json.loads(requests_seen[0].content)
    assert body == {"userId": "42", "type": "like", "message": "Ada liked your post"}


def test_send_reports_server_error(requests_seen):
    result = CliRunner().invoke(cli.main, ["send", "42", "like", " "])
    assert result.exit_code == 1
    assert "Error 400" in result.output


def test_list_table(requests_seen):
    result = CliRunner().invoke(cli.main, ["list", "42", "--limit", "20"])
    assert result.exit_code == 0, result.output
    assert "Ada liked your post" in result.output
    assert requests_seen[0].url.params["limit"] == "20"
    assert requests_seen[0].url.params["page"] == "1"


def test_list_json(requests_seen):
    result = CliRunner().invoke(cli.main, ["list", "42", "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["pagination"]["total"] == 1


def test_list_empty(requests_seen):
    result = CliRunner().invoke(cli.main, ["list", "0"])
    assert result.exit_code == 0
    assert "No notifications for user 0" in result.output


def test_health(requests_seen):
    result = CliRunner().invoke(cli.main, ["health"])
    assert result.exit_code == 0
    assert "healthy" in result.output


def test_api_url_from_env(monkeypatch):
    monkeypatch.setenv("BEACON_API_URL", "http://example.test:9000/")
    assert cli._api_url() == "http://example.test:9000"
