"""Manage JSON-LD schema on WordPress pages and posts via the REST API.

Schema can live in two places on a content item:

* the ``_schema_org_json`` meta field, holding the JSON string, or
* an inline ``<script type="application/ld+json">`` block in the content.

Reads prefer the meta field. Every public coroutine returns a result dict
and never lets an API error escape. Bulk helpers walk their item list one at
a time with no rollback: a failure mid-list leaves earlier items updated and
is reported alongside the successes.
"""

import asyncio
import json
import logging
import re
from typing import Any, Optional

from indexwatch.integrations.wordpress import WordPressClient, WordPressError
from indexwatch.modules.schema_manager.schema_generator import (
    SchemaGenerator,
    render_schema_tag,
)
from indexwatch.utils.helpers import strip_html

logger = logging.getLogger(__name__)

META_KEY = "_schema_org_json"
METHODS = ("custom_field", "content_injection")

_SCHEMA_BLOCK_RE = re.compile(
    r'<script type="application/ld\+json">([\s\S]*?)</script>'
)


def _rendered(item: dict[str, Any], field: str) -> str:
    value = item.get(field) or {}
    if isinstance(value, dict):
        return value.get("rendered", "") or ""
    return str(value)


def strip_schema_blocks(content: str) -> str:
    """Remove every inline JSON-LD script block from *content*."""
    return _SCHEMA_BLOCK_RE.sub("", content)


class WordPressSchemaManager:
    """Inject, read, remove and audit JSON-LD schema on a WordPress site.

    Usage::

        async with WordPressClient("https://example.com") as wp:
            manager = WordPressSchemaManager(wp, site_url="https://example.com")
            await manager.add_faq_schema_to_page(12, questions)
            audit = await manager.audit_all_schemas()
    """

    def __init__(
        self,
        client: WordPressClient,
        generator: Optional[SchemaGenerator] = None,
        site_url: Optional[str] = None,
        organization: Optional[dict[str, Any]] = None,
    ) -> None:
        self._wp = client
        self._generator = generator or SchemaGenerator()
        self._site_url = (site_url or client.base_url).rstrip("/")
        self._organization = organization or {}

    # ------------------------------------------------------------------
    # Single-item operations
    # ------------------------------------------------------------------

    async def add_schema_to_page(
        self,
        page_id: int,
        schema: dict[str, Any],
        method: str = "custom_field",
        content_type: str = "pages",
    ) -> dict[str, Any]:
        """Write *schema* to one page or post, replacing any existing schema.

        Args:
            page_id: WordPress item id.
            schema: JSON-LD object; validated before anything is written.
            method: ``custom_field`` (meta key) or ``content_injection``.
            content_type: ``pages`` or ``posts``.
        """
        validation = self._generator.validate_schema(schema)
        if not validation["is_valid"]:
            return {"success": False, "errors": validation["errors"]}
        if method not in METHODS:
            return {"success": False, "error": f"Unknown schema storage method: {method}"}

        try:
            if method == "custom_field":
                await self._wp.update_item(
                    content_type, page_id, {"meta": {META_KEY: json.dumps(schema)}}
                )
            else:
                item = await self._wp.get_item(content_type, page_id)
                content = strip_schema_blocks(_rendered(item, "content"))
                new_content = content + "\n\n" + render_schema_tag(schema)
                await self._wp.update_item(content_type, page_id, {"content": new_content})
        except WordPressError as exc:
            logger.error("Failed to add schema to %s %s: %s", content_type, page_id, exc)
            return {"success": False, "error": str(exc)}

        logger.info(
            "Added %s schema to %s %s via %s",
            schema.get("@type"), content_type, page_id, method,
        )
        return {"success": True, "page_id": page_id, "schema": schema, "method": method}

    async def fetch_schema(self, page_id: int, content_type: str = "pages") -> dict[str, Any]:
        """Read the schema of one item with an explicit outcome.

        Returns:
            ``{"status": "found" | "not_found" | "error", "schema", "source",
            "error"}``. ``source`` is ``custom_field`` or ``content``.
        """
        result: dict[str, Any] = {"status": "not_found", "schema": None, "source": None, "error": None}
        try:
            item = await self._wp.get_item(content_type, page_id)
            meta = item.get("meta") or {}
            raw = meta.get(META_KEY) if isinstance(meta, dict) else None
            if raw:
                result.update(status="found", schema=json.loads(raw), source="custom_field")
                return result

            match = _SCHEMA_BLOCK_RE.search(_rendered(item, "content"))
            if match:
                result.update(status="found", schema=json.loads(match.group(1)), source="content")
        except (WordPressError, ValueError) as exc:
            logger.error("Error getting schema for %s %s: %s", content_type, page_id, exc)
            result.update(status="error", schema=None, source=None, error=str(exc))
        return result

    async def get_schema_from_page(self, page_id: int, content_type: str = "pages") -> Optional[dict]:
        """Return the item's schema, or ``None`` when absent or unreadable."""
        return (await self.fetch_schema(page_id, content_type))["schema"]

    async def remove_schema_from_page(self, page_id: int, content_type: str = "pages") -> dict[str, Any]:
        """Clear the meta field and strip any inline schema block."""
        try:
            await self._wp.update_item(content_type, page_id, {"meta": {META_KEY: ""}})
            item = await self._wp.get_item(content_type, page_id)
            content = _rendered(item, "content")
            if _SCHEMA_BLOCK_RE.search(content):
                await self._wp.update_item(
                    content_type, page_id, {"content": strip_schema_blocks(content)}
                )
        except WordPressError as exc:
            logger.error("Failed to remove schema from %s %s: %s", content_type, page_id, exc)
            return {"success": False, "error": str(exc)}
        logger.info("Removed schema from %s %s", content_type, page_id)
        return {"success": True, "page_id": page_id}

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    async def add_organization_schema_to_homepage(
        self, organization: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """Find the homepage and attach an Organization schema to it."""
        org = organization or self._organization
        if not org.get("name"):
            return {"success": False, "error": "Organization details not configured"}

        try:
            pages = await self._wp.list_items("pages")
        except WordPressError as exc:
            return {"success": False, "error": str(exc)}

        homepage = next(
            (
                p for p in pages
                if p.get("slug") in ("home", "")
                or (p.get("type") == "page" and p.get("parent") == 0)
            ),
            None,
        )
        if homepage is None:
            return {"success": False, "error": "Homepage not found"}

        schema = self._generator.generate_organization_schema(**org)
        return await self.add_schema_to_page(homepage["id"], schema)

    async def add_service_schema_to_pages(
        self, service_pages: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Attach a Service schema to each ``{page_id, name, description, url|slug}``."""
        provider = None
        if self._organization.get("name"):
            provider = {
                "name": self._organization["name"],
                "url": self._organization.get("url", self._site_url),
            }

        results = []
        for page in service_pages:
            schema = self._generator.generate_service_schema(
                name=page["name"],
                description=page.get("description", ""),
                url=page.get("url") or f"{self._site_url}/{page.get('slug', '')}",
                provider=provider,
            )
            result = await self.add_schema_to_page(page["page_id"], schema)
            results.append({"page_id": page["page_id"], "name": page["name"], **result})
        return results

    async def add_faq_schema_to_page(
        self, page_id: int, questions: list[dict[str, str]]
    ) -> dict[str, Any]:
        """Attach a FAQPage schema built from ``[{question, answer}]``."""
        schema = self._generator.generate_faq_schema(questions)
        return await self.add_schema_to_page(page_id, schema)

    async def add_blog_schema_to_all_posts(
        self,
        post_ids: Optional[list[int]] = None,
        method: str = "custom_field",
    ) -> list[dict[str, Any]]:
        """Attach a BlogPosting schema to every post (or the given ids).

        Explicit ids are fetched together as one concurrent batch; the
        schema writes then run one post at a time.
        """
        try:
            if post_ids is None:
                posts = await self._wp.list_items("posts")
            else:
                posts = await asyncio.gather(
                    *(self._wp.get_item("posts", pid) for pid in post_ids)
                )
        except WordPressError as exc:
            logger.error("Failed to load posts: %s", exc)
            return [{"success": False, "error": str(exc)}]

        results = []
        for post in posts:
            title = _rendered(post, "title")
            image = None
            if post.get("featured_media"):
                image = await self._get_media_url(post["featured_media"])
            schema = self._generator.generate_blog_posting_schema(
                headline=title,
                date_published=post.get("date", ""),
                date_modified=post.get("modified", ""),
                description=strip_html(_rendered(post, "excerpt"))[:160],
                image=image,
                url=post.get("link", ""),
                publisher_name=self._organization.get("name", ""),
                publisher_logo=self._organization.get("logo", ""),
            )
            result = await self.add_schema_to_page(
                post["id"], schema, method=method, content_type="posts"
            )
            results.append({"post_id": post["id"], "title": title, **result})
        return results

    async def _get_media_url(self, media_id: int) -> Optional[str]:
        try:
            media = await self._wp.get_media(media_id)
        except WordPressError as exc:
            logger.warning("Could not resolve media %s: %s", media_id, exc)
            return None
        return media.get("source_url")

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    async def audit_all_schemas(self) -> dict[str, Any]:
        """Check every page and post for schema and validate what is found."""
        results: dict[str, Any] = {
            "total": 0,
            "with_schema": 0,
            "without_schema": 0,
            "invalid": 0,
            "pages": [],
        }
        try:
            pages = await self._wp.list_items("pages")
            posts = await self._wp.list_items("posts")
        except WordPressError as exc:
            logger.error("Schema audit could not list content: %s", exc)
            results["error"] = str(exc)
            return results

        items = [(p, "pages") for p in pages if isinstance(p, dict) and "id" in p]
        items += [(p, "posts") for p in posts if isinstance(p, dict) and "id" in p]
        results["total"] = len(items)

        for item, content_type in items:
            fetched = await self.fetch_schema(item["id"], content_type)
            schema = fetched["schema"]
            status = "none"
            validation = None

            if schema:
                results["with_schema"] += 1
                validation = self._generator.validate_schema(schema)
                if validation["is_valid"]:
                    status = "valid"
                else:
                    status = "invalid"
                    results["invalid"] += 1
            else:
                results["without_schema"] += 1
                if fetched["status"] == "error":
                    status = "error"

            results["pages"].append({
                "id": item["id"],
                "type": content_type,
                "title": _rendered(item, "title"),
                "url": item.get("link"),
                "status": status,
                "schema_type": schema.get("@type") if isinstance(schema, dict) else None,
                "validation": validation,
                "has_schema": bool(schema),
            })

        logger.info(
            "Schema audit: %d items, %d with schema, %d invalid",
            results["total"], results["with_schema"], results["invalid"],
        )
        return results

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    async def get_schema_recommendations(
        self, page_id: int, content_type: str = "pages"
    ) -> dict[str, Any]:
        """Suggest schema types for an item from its slug, title and content."""
        try:
            page = await self._wp.get_item(content_type, page_id)
        except WordPressError as exc:
            return {"success": False, "page_id": page_id, "error": str(exc)}

        raw_title = _rendered(page, "title")
        title = raw_title.lower()
        content = _rendered(page, "content").lower()
        slug = page.get("slug", "")

        recommendations = []

        def recommend(schema_type: str, priority: str, reason: str) -> None:
            recommendations.append({"type": schema_type, "priority": priority, "reason": reason})

        if slug in ("home", "") or page.get("parent") == 0:
            recommend("Organization", "high", "This appears to be the homepage")
        if "coaching" in title or "service" in title or "our services" in content:
            recommend("Service", "high", "This appears to be a service page")
        if "faq" in title or "question" in title or "<dt>" in content or "?" in content:
            recommend("FAQ", "high", "This appears to contain FAQs")
        if "how to" in title or "guide" in title or "step 1" in content:
            recommend("HowTo", "medium", "This appears to be a how-to guide")
        if page.get("type") == "post":
            recommend("BlogPosting", "high", "This is a blog post")
        if "contact" in title or "about" in title:
            recommend("Organization", "medium", "Contact/about pages benefit from Organization schema")

        return {"page_id": page_id, "title": raw_title, "recommendations": recommendations}
