"""Shared pytest fixtures for IndexWatch tests."""

import json
import sys
from pathlib import Path

import httpx
import pytest

# Ensure project root is on sys.path so 'indexwatch' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


@pytest.fixture(autouse=True)
def _reset_db_engine():
    """Autouse fixture: reset the global DB engine before and after every test.

    This prevents cross-test pollution when tests create their own in-memory
    databases.
    """
    from indexwatch.database import reset_engine
    reset_engine()
    yield
    reset_engine()


@pytest.fixture()
def test_db():
    """Provide an in-memory SQLite database with all tables created.

    Yields a database URL string. The engine is automatically torn down
    after the test by the autouse ``_reset_db_engine`` fixture.
    """
    from indexwatch.database import reset_engine, init_db
    reset_engine()
    db_url = "sqlite:///:memory:"
    init_db(database_url=db_url, echo=False)
    yield db_url


# ---------------------------------------------------------------------------
# Fake WordPress REST API
# ---------------------------------------------------------------------------

_API_PREFIX = "/wp-json/wp/v2/"
_ITEM_TYPES = {"pages": "page", "posts": "post"}


class FakeWordPress:
    """In-memory stand-in for the pages/posts/media REST collections.

    ``broken`` holds ``(content_type, id)`` pairs that answer 500 on any
    request; ``list_broken`` makes collection listings fail.
    """

    def __init__(self):
        self.items: dict[str, dict[int, dict]] = {"pages": {}, "posts": {}}
        self.media: dict[int, dict] = {}
        self.broken: set[tuple[str, int]] = set()
        self.list_broken = False
        self.requests: list[httpx.Request] = []

    def add(self, content_type, item_id, title="", content="", **extra):
        item = {
            "id": item_id,
            "type": _ITEM_TYPES[content_type],
            "slug": extra.pop("slug", f"item-{item_id}"),
            "parent": extra.pop("parent", 0),
            "link": f"https://blog.example.com/{content_type}/{item_id}",
            "title": {"rendered": title},
            "content": {"rendered": content},
            "excerpt": {"rendered": extra.pop("excerpt", "")},
            "meta": extra.pop("meta", {}),
        }
        item.update(extra)
        self.items[content_type][item_id] = item
        return item

    def content(self, content_type, item_id) -> str:
        return self.items[content_type][item_id]["content"]["rendered"]

    def meta(self, content_type, item_id) -> dict:
        return self.items[content_type][item_id]["meta"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path[len(_API_PREFIX):].strip("/").split("/")
        collection = parts[0]

        if collection == "media":
            media = self.media.get(int(parts[1]))
            if media is None:
                return self._not_found()
            return httpx.Response(200, json=media)

        if collection not in self.items:
            return self._not_found()

        if len(parts) == 1:
            if self.list_broken:
                return httpx.Response(500, json={"message": "Listing failed"})
            return httpx.Response(200, json=list(self.items[collection].values()))

        item_id = int(parts[1])
        if (collection, item_id) in self.broken:
            return httpx.Response(500, json={"message": "Internal server error"})
        item = self.items[collection].get(item_id)
        if item is None:
            return self._not_found()

        if request.method == "POST":
            payload = json.loads(request.content)
            if "meta" in payload:
                item["meta"].update(payload["meta"])
            if "content" in payload:
                item["content"] = {"rendered": payload["content"]}
        return httpx.Response(200, json=item)

    @staticmethod
    def _not_found() -> httpx.Response:
        return httpx.Response(
            404, json={"code": "rest_post_invalid_id", "message": "Invalid post ID."}
        )


@pytest.fixture()
def fake_wp():
    """Return an empty FakeWordPress store."""
    return FakeWordPress()


@pytest.fixture()
def wp_client(fake_wp):
    """Return a WordPressClient wired to the fake store."""
    from indexwatch.integrations.wordpress import WordPressClient
    return WordPressClient(
        base_url="https://blog.example.com",
        username="bot",
        app_password="abcd efgh ijkl",
        transport=httpx.MockTransport(fake_wp.handler),
    )


@pytest.fixture()
def schema_manager(wp_client):
    """Return a WordPressSchemaManager over the fake store."""
    from indexwatch.modules.schema_manager.wordpress_schema import WordPressSchemaManager
    return WordPressSchemaManager(
        wp_client,
        site_url="https://blog.example.com",
        organization={
            "name": "Example Coaching",
            "url": "https://blog.example.com",
            "logo": "https://blog.example.com/logo.png",
        },
    )


# ---------------------------------------------------------------------------
# Fake site for diagnostics
# ---------------------------------------------------------------------------

def make_site_transport(
    robots="User-agent: *\nAllow: /\n",
    sitemap_status=200,
    homepage="<html><head><title>Home</title></head></html>",
    head_status=200,
    fail_paths=(),
):
    """Build a MockTransport serving robots.txt, sitemap.xml and the homepage."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path or "/"
        if path in fail_paths:
            raise httpx.ConnectError("connection refused", request=request)
        if path == "/robots.txt":
            return httpx.Response(200, text=robots)
        if path == "/sitemap.xml":
            return httpx.Response(sitemap_status, text="<urlset/>")
        if request.method == "HEAD":
            return httpx.Response(head_status)
        return httpx.Response(200, text=homepage)

    return httpx.MockTransport(handler)


@pytest.fixture()
def site_transport():
    """Factory fixture around ``make_site_transport``."""
    return make_site_transport
