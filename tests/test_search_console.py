"""Tests for the Search Console client."""

import json

import httpx
import pytest
from google.auth.exceptions import RefreshError

from indexwatch.integrations.search_console import (
    INSPECTION_API_URL,
    SearchConsoleClient,
    SearchConsoleError,
)

INSPECTION_RESPONSE = {
    "inspectionResult": {
        "indexStatusResult": {
            "verdict": "PASS",
            "coverageState": "Submitted and indexed",
            "robotsTxtState": "ALLOWED",
            "indexingState": "INDEXING_ALLOWED",
            "lastCrawlTime": "2026-03-01T12:00:00Z",
        }
    }
}


def _client(status_code=200, body=None, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=body or {})

    return SearchConsoleClient(
        access_token="gsc-token",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
class TestSearchConsoleClient:

    async def test_fetch_index_coverage(self):
        seen = []
        gsc = _client(body=INSPECTION_RESPONSE, seen=seen)
        result = await gsc.fetch_index_coverage("https://example.com/")

        assert result["index_status"] == "PASS"
        assert result["coverage_state"] == "Submitted and indexed"
        assert result["robots_txt_state"] == "ALLOWED"
        assert result["last_crawl"] == "2026-03-01T12:00:00Z"
        assert "error" not in result

        request = seen[0]
        assert str(request.url) == INSPECTION_API_URL
        assert request.headers["Authorization"] == "Bearer gsc-token"
        assert json.loads(request.content) == {
            "inspectionUrl": "https://example.com/",
            "siteUrl": "https://example.com/",
        }

    async def test_fetch_index_coverage_failure_never_raises(self):
        result = await _client(status_code=403).fetch_index_coverage("https://example.com/")
        assert result["index_status"] == "unknown"
        assert result["error"] == "Failed to fetch index coverage"

    async def test_inspect_url_raises(self):
        with pytest.raises(SearchConsoleError) as exc_info:
            await _client(status_code=500).inspect_url("https://example.com/")
        assert exc_info.value.status_code == 500

    async def test_missing_credentials_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GSC_ACCESS_TOKEN", raising=False)
        gsc = SearchConsoleClient(credentials_path=str(tmp_path / "missing.json"))
        result = await gsc.fetch_index_coverage("https://example.com/")
        assert result["index_status"] == "unknown"
        assert "GSC credentials not found" in result["error"]

    async def test_publish_url_notification(self):
        assert await _client(status_code=200).publish_url_notification("https://example.com/a") is True
        assert await _client(status_code=429).publish_url_notification("https://example.com/a") is False

    async def test_rejected_service_account_key(self, monkeypatch):
        monkeypatch.delenv("GSC_ACCESS_TOKEN", raising=False)
        gsc = SearchConsoleClient(access_token="")
        gsc._credentials = _RejectedCredentials()

        result = await gsc.fetch_index_coverage("https://example.com/")
        assert result["index_status"] == "unknown"
        assert "invalid_grant" in result["error"]

        with pytest.raises(SearchConsoleError, match="token refresh failed"):
            await gsc.publish_url_notification("https://example.com/a")

    async def test_non_object_inspection_body(self):
        def handler(request):
            return httpx.Response(200, json=["unexpected"])

        gsc = SearchConsoleClient(
            access_token="gsc-token",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        result = await gsc.fetch_index_coverage("https://example.com/")
        assert result["index_status"] == "unknown"
        assert result["error"] == "Unexpected URL Inspection response body"


class _RejectedCredentials:
    valid = False
    token = None

    def refresh(self, request):
        raise RefreshError("invalid_grant: Invalid JWT Signature.")
