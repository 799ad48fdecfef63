"""Google Search Console URL-inspection and Indexing API client."""

import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

INSPECTION_API_URL = "https://searchconsole.googleapis.com/v1/urlInspection/index:inspect"
INDEXING_API_URL = "https://indexing.googleapis.com/v3/urlNotifications:publish"

GSC_SCOPES = [
    "https://www.googleapis.com/auth/webmasters.readonly",
    "https://www.googleapis.com/auth/indexing",
]


class SearchConsoleError(Exception):
    """Raised on a non-2xx Search Console answer or a failed token refresh."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


class SearchConsoleClient:
    """Bearer-token client for the URL Inspection and Indexing APIs.

    Usage::

        gsc = SearchConsoleClient(access_token="ya29....")
        coverage = await gsc.fetch_index_coverage("https://example.com")
        ok = await gsc.publish_url_notification("https://example.com")

    When no access token is supplied, one is minted from the service
    account JSON at ``credentials_path`` (or ``GOOGLE_APPLICATION_CREDENTIALS``).
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        credentials_path: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._access_token = access_token or os.getenv("GSC_ACCESS_TOKEN", "")
        self._credentials_path = credentials_path or os.getenv(
            "GOOGLE_APPLICATION_CREDENTIALS", "config/gsc_credentials.json"
        )
        self._timeout = timeout
        self._client = client
        self._credentials = None

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _refresh_credentials(self) -> str:
        if self._credentials is None:
            if not os.path.isfile(self._credentials_path):
                raise FileNotFoundError(
                    f"GSC credentials not found: {self._credentials_path}"
                )
            self._credentials = service_account.Credentials.from_service_account_file(
                self._credentials_path, scopes=GSC_SCOPES
            )
        if not self._credentials.valid:
            self._credentials.refresh(GoogleAuthRequest())
            logger.info("Refreshed Search Console service-account token.")
        return self._credentials.token

    async def _get_access_token(self) -> str:
        if self._access_token:
            return self._access_token
        try:
            return await asyncio.to_thread(self._refresh_credentials)
        except GoogleAuthError as exc:
            raise SearchConsoleError(f"Service-account token refresh failed: {exc}") from exc

    async def _post(self, url: str, body: dict[str, Any]) -> httpx.Response:
        token = await self._get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if self._client is not None:
            return await self._client.post(url, json=body, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(url, json=body, headers=headers)

    # ------------------------------------------------------------------
    # URL inspection
    # ------------------------------------------------------------------

    async def inspect_url(self, site_url: str, inspection_url: Optional[str] = None) -> dict[str, Any]:
        """Run the URL Inspection API and return the raw ``inspectionResult``.

        Raises:
            SearchConsoleError: on a non-2xx response or a failed token refresh.
            httpx.HTTPError: on transport failure.
        """
        response = await self._post(
            INSPECTION_API_URL,
            {"inspectionUrl": inspection_url or site_url, "siteUrl": site_url},
        )
        if not response.is_success:
            raise SearchConsoleError(
                "Failed to fetch index coverage", status_code=response.status_code
            )
        body = response.json()
        if not isinstance(body, dict):
            raise SearchConsoleError("Unexpected URL Inspection response body")
        return body.get("inspectionResult") or {}

    async def fetch_index_coverage(self, site_url: str) -> dict[str, Any]:
        """Fetch the current index status for *site_url*.

        Never raises: failures come back as ``{"site_url", "error",
        "index_status": "unknown"}``.
        """
        try:
            result = await self.inspect_url(site_url)
        except (SearchConsoleError, httpx.HTTPError, FileNotFoundError, ValueError) as exc:
            logger.warning("Index coverage fetch failed for %s: %s", site_url, exc)
            return {"site_url": site_url, "error": str(exc), "index_status": "unknown"}

        status = result.get("indexStatusResult", {})
        return {
            "site_url": site_url,
            "index_status": status.get("verdict"),
            "coverage_state": status.get("coverageState"),
            "robots_txt_state": status.get("robotsTxtState"),
            "indexing_state": status.get("indexingState"),
            "last_crawl": status.get("lastCrawlTime"),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # ------------------------------------------------------------------
    # Indexing API
    # ------------------------------------------------------------------

    async def publish_url_notification(self, url: str, notification_type: str = "URL_UPDATED") -> bool:
        """Notify the Indexing API that *url* changed.

        Returns:
            True when the API accepted the notification.
        """
        response = await self._post(
            INDEXING_API_URL, {"url": url, "type": notification_type}
        )
        if response.is_success:
            logger.info("Indexing notification accepted for %s", url)
            return True
        logger.warning(
            "Indexing notification rejected for %s: HTTP %d", url, response.status_code
        )
        return False
