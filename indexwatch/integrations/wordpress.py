"""WordPress REST API client used by the schema manager.

Thin async wrapper over ``/wp-json/wp/v2`` for the pages, posts and media
collections. Authentication is either a WordPress application password
(sent as HTTP Basic) or a ready-made header mapping supplied by the caller.
Requests are never retried and redirects are not followed; non-2xx answers
and 2xx answers without a JSON body raise a ``WordPressError``.
"""

import base64
import logging
import os
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class WordPressError(Exception):
    """Base exception for WordPress API errors."""

    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class AuthenticationError(WordPressError):
    """Raised on 401/403 responses."""
    pass


class NotFoundError(WordPressError):
    """Raised on 404 responses."""
    pass


def basic_auth_headers(username: str, app_password: str) -> dict[str, str]:
    """Build request headers for an application-password login."""
    credentials = f"{username}:{app_password}"
    encoded = base64.b64encode(credentials.encode("utf-8")).decode("utf-8")
    return {
        "Authorization": f"Basic {encoded}",
        "Content-Type": "application/json",
    }


class WordPressClient:
    """Async client for a single WordPress site.

    Usage::

        async with WordPressClient("https://example.com", username="bot",
                                   app_password="xxxx xxxx") as wp:
            page = await wp.get_item("pages", 42)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        app_password: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        base_url = base_url or os.getenv("WP_URL", "")
        if not base_url:
            raise ValueError("WordPress base URL is required (pass base_url or set WP_URL).")
        self.base_url = base_url.rstrip("/")

        if headers is None:
            username = username or os.getenv("WP_USERNAME", "")
            app_password = app_password or os.getenv("WP_APP_PASSWORD", "")
            if username and app_password:
                headers = basic_auth_headers(username, app_password)
            else:
                logger.warning("No WordPress credentials configured; requests are unauthenticated.")
                headers = {"Content-Type": "application/json"}

        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/wp-json/wp/v2",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ------------------------------------------------------------------
    # Low-level request
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json_data: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        logger.debug("WP %s %s", method, endpoint)
        try:
            response = await self._client.request(method, endpoint, json=json_data, params=params)
        except httpx.HTTPError as exc:
            raise WordPressError(f"Network error for {self.base_url}: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = response.text

        status = response.status_code
        if response.is_success:
            if not isinstance(body, (dict, list)):
                raise WordPressError(
                    f"Unexpected non-JSON response from {self.base_url}{endpoint}",
                    status_code=status,
                    response_body=str(body)[:500],
                )
            return body

        if response.is_redirect:
            location = response.headers.get("location", "")
            raise WordPressError(
                f"Unexpected redirect ({status}) to {location or 'unknown location'}; "
                "check the configured WordPress URL",
                status_code=status,
                response_body=str(body),
            )

        message = body.get("message", str(body)) if isinstance(body, dict) else str(body)
        if status in (401, 403):
            raise AuthenticationError(message, status_code=status, response_body=str(body))
        if status == 404:
            raise NotFoundError(message, status_code=404, response_body=str(body))
        raise WordPressError(message, status_code=status, response_body=str(body))

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def _request_object(self, method: str, endpoint: str, **kwargs) -> dict[str, Any]:
        body = await self._request(method, endpoint, **kwargs)
        if not isinstance(body, dict):
            raise WordPressError(f"Expected a JSON object from {self.base_url}{endpoint}")
        return body

    async def get_item(self, content_type: str, item_id: int) -> dict[str, Any]:
        """GET a single page or post."""
        return await self._request_object("GET", f"/{content_type}/{item_id}")

    async def update_item(self, content_type: str, item_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a partial update to a page or post."""
        return await self._request_object("POST", f"/{content_type}/{item_id}", json_data=payload)

    async def list_items(self, content_type: str, per_page: int = 100) -> list[dict[str, Any]]:
        """List the first *per_page* items of a collection."""
        items = await self._request("GET", f"/{content_type}", params={"per_page": per_page})
        return items if isinstance(items, list) else []

    async def get_media(self, media_id: int) -> dict[str, Any]:
        """GET a media attachment."""
        return await self._request_object("GET", f"/media/{media_id}")
