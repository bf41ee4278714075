"""Tests for the provider HTTP clients.

Requests go through httpx.MockTransport; retry sleeps are patched out.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from code_analytics.connectors.base import ProviderAPIError
from code_analytics.connectors.claude.client import ClaudeClient
from code_analytics.connectors.cursor.client import CursorClient
from code_analytics.connectors.github.client import GitHubClient
from code_analytics.core.errors import ConfigurationError

pytestmark = pytest.mark.asyncio


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _attach(client, handler):
    """Route the client's requests to ``handler``."""
    client._client = httpx.AsyncClient(
        base_url=client.base_url,
        headers=client._headers(),
        auth=client._auth(),
        transport=httpx.MockTransport(handler),
    )
    return client


def _sequence(*responses):
    """Handler returning the given responses in order, recording requests."""
    seen = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return queue.pop(0)

    handler.seen = seen
    return handler


# ---------------------------------------------------------------------------
# Retry behaviour
# ---------------------------------------------------------------------------

@patch("code_analytics.connectors.base.asyncio.sleep", new_callable=AsyncMock)
async def test_server_error_is_retried(mock_sleep):
    handler = _sequence(httpx.Response(500, text="oops"), httpx.Response(200, json={"data": []}))
    client = _attach(ClaudeClient(admin_key="k", max_retries=3), handler)

    result = await client.fetch_usage("2026-01-05")

    assert result == {"data": [], "has_more": False}
    assert len(handler.seen) == 2
    mock_sleep.assert_awaited_once_with(2)
    await client.close()


@patch("code_analytics.connectors.base.asyncio.sleep", new_callable=AsyncMock)
async def test_rate_limit_exhausts_retries(mock_sleep):
    handler = _sequence(*[httpx.Response(429, text="slow down") for _ in range(3)])
    client = _attach(ClaudeClient(admin_key="k", max_retries=3), handler)

    with pytest.raises(ProviderAPIError) as exc:
        await client.fetch_usage("2026-01-05")

    assert exc.value.status_code == 429
    assert exc.value.source == "claude"
    assert [call.args[0] for call in mock_sleep.await_args_list] == [2, 4]
    await client.close()


@patch("code_analytics.connectors.base.asyncio.sleep", new_callable=AsyncMock)
async def test_client_error_is_not_retried(mock_sleep):
    handler = _sequence(httpx.Response(401, text="bad key"))
    client = _attach(CursorClient(api_key="k"), handler)

    with pytest.raises(ProviderAPIError) as exc:
        await client.fetch_spend()

    assert exc.value.status_code == 401
    assert exc.value.body == "bad key"
    mock_sleep.assert_not_awaited()
    await client.close()


async def test_malformed_json_is_a_provider_error():
    handler = _sequence(httpx.Response(200, text="<html>not json</html>"))
    client = _attach(CursorClient(api_key="k"), handler)

    with pytest.raises(ProviderAPIError, match="Failed to parse"):
        await client.fetch_spend()
    await client.close()


# ---------------------------------------------------------------------------
# Provider specifics
# ---------------------------------------------------------------------------

async def test_claude_follows_pagination():
    handler = _sequence(
        httpx.Response(200, json={"data": [{"n": 1}], "has_more": True, "next_page": "p2"}),
        httpx.Response(200, json={"data": [{"n": 2}], "has_more": False, "next_page": None}),
    )
    client = _attach(ClaudeClient(admin_key="sk-admin"), handler)

    result = await client.fetch_usage("2026-01-05")

    assert result["data"] == [{"n": 1}, {"n": 2}]
    first, second = handler.seen
    assert first.url.params["starting_at"] == "2026-01-05"
    assert "page" not in first.url.params
    assert second.url.params["page"] == "p2"
    assert first.headers["x-api-key"] == "sk-admin"
    assert first.headers["anthropic-version"] == "2023-06-01"
    await client.close()


async def test_cursor_daily_usage_request():
    handler = _sequence(httpx.Response(200, json={"data": []}))
    client = _attach(CursorClient(api_key="key_abc"), handler)

    await client.fetch_daily_usage("2026-01-05", "2026-01-05")

    request = handler.seen[0]
    body = json.loads(request.content)
    assert request.method == "POST"
    assert request.url.path == "/teams/daily-usage-data"
    assert request.headers["authorization"].startswith("Basic ")
    # Whole UTC day, inclusive
    assert body["endDate"] - body["startDate"] == 24 * 60 * 60 * 1000 - 1
    await client.close()


async def test_cursor_window_limit():
    client = CursorClient(api_key="k")
    with pytest.raises(ConfigurationError):
        await client.fetch_daily_usage("2026-01-01", "2026-03-01")


async def test_github_pull_requests_filtered_to_window():
    page = [
        {"number": 3, "created_at": "2026-01-07T10:00:00Z"},
        {"number": 2, "created_at": "2026-01-05T10:00:00Z"},
        {"number": 1, "created_at": "2026-01-01T10:00:00Z"},
    ]
    handler = _sequence(httpx.Response(200, json=page))
    client = _attach(GitHubClient(token="ghp_x"), handler)

    prs = await client.fetch_pull_requests("acme", "api", "2026-01-03", "2026-01-06")

    assert [pr["number"] for pr in prs] == [2]
    request = handler.seen[0]
    assert request.url.path == "/repos/acme/api/pulls"
    assert request.url.params["state"] == "all"
    assert request.headers["authorization"] == "Bearer ghp_x"
    await client.close()


async def test_github_comments_cover_reviews_and_conversation():
    handler = _sequence(
        httpx.Response(200, json=[{"id": 1}]),
        httpx.Response(200, json=[{"id": 2}, {"id": 3}]),
    )
    client = _attach(GitHubClient(token="t"), handler)

    comments = await client.fetch_comments("acme", "api", "2026-01-01")

    assert [c["id"] for c in comments] == [1, 2, 3]
    assert handler.seen[0].url.path == "/repos/acme/api/pulls/comments"
    assert handler.seen[1].url.path == "/repos/acme/api/issues/comments"
    assert handler.seen[0].url.params["since"] == "2026-01-01T00:00:00Z"
    await client.close()


async def test_github_page_cap_is_logged(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"number": n, "created_at": "2026-01-05T10:00:00Z"} for n in range(100)])

    client = _attach(GitHubClient(token="t"), handler)

    with patch("code_analytics.connectors.github.client.MAX_PAGES", 2), caplog.at_level("WARNING"):
        prs = await client.fetch_pull_requests("acme", "api", "2026-01-01", "2026-01-31")
        comments = await client.fetch_comments("acme", "api", "2026-01-01")

    assert len(prs) == 200
    assert len(comments) == 400
    warnings = [r.getMessage() for r in caplog.records if "Stopped at 2 pages" in r.getMessage()]
    assert len(warnings) == 3
    assert "acme/api" in warnings[0]
    await client.close()
