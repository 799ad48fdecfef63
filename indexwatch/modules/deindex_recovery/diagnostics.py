"""Automated diagnostic checklist for a site that lost indexed pages.

Four independent network checks run one after another: robots.txt,
sitemap.xml, a homepage ``noindex`` scan and a HEAD request for 5xx
answers. A failure inside one check is recorded on that check only and the
remaining checks still run.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from indexwatch.utils.helpers import normalise_site_url

logger = logging.getLogger(__name__)

CHECK_NAMES = (
    "robots_txt",
    "sitemap",
    "canonical",
    "noindex",
    "crawl_errors",
    "server_errors",
)

_NOINDEX_RE = re.compile(
    r"<meta[^>]*name=[\"']robots[\"'][^>]*content=[\"'][^\"']*noindex[^\"']*[\"']",
    re.IGNORECASE,
)

# Errors a single check absorbs into its own status.
_CHECK_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


def _overall_health(critical: int, errors: int) -> str:
    if critical > 0:
        return "critical"
    if errors > 0:
        return "unhealthy"
    return "healthy"


def summarise(diagnostics: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Count statuses across *diagnostics* and derive the overall health."""
    statuses = [d.get("status") for d in diagnostics.values()]
    critical = statuses.count("critical")
    errors = statuses.count("error")
    warnings = statuses.count("warning")
    return {
        "critical": critical,
        "errors": errors,
        "warnings": warnings,
        "overall_health": _overall_health(critical, errors),
    }


class SiteDiagnostics:
    """Run the deindexation diagnostic checklist against a site."""

    def __init__(
        self,
        timeout: float = 20.0,
        user_agent: str = "IndexWatchBot/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._transport = transport

    async def run(self, site_url: str) -> dict[str, Any]:
        """Run every check and return ``{site_url, diagnostics, summary, timestamp}``."""
        site = normalise_site_url(site_url)
        diagnostics: dict[str, dict[str, Any]] = {
            name: {"status": "checking", "issues": []} for name in CHECK_NAMES
        }

        async with httpx.AsyncClient(
            timeout=self._timeout,
            headers={"User-Agent": self._user_agent},
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            await self._check_robots_txt(client, site, diagnostics["robots_txt"])
            await self._check_sitemap(client, site, diagnostics["sitemap"])
            await self._check_noindex(client, site, diagnostics["noindex"])
            await self._check_server_errors(client, site, diagnostics["server_errors"])

        summary = summarise(diagnostics)
        logger.info(
            "Diagnostics for %s: %s (critical=%d errors=%d warnings=%d)",
            site, summary["overall_health"], summary["critical"],
            summary["errors"], summary["warnings"],
        )
        return {
            "site_url": site,
            "diagnostics": diagnostics,
            "summary": summary,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    async def _check_robots_txt(self, client: httpx.AsyncClient, site: str, check: dict) -> None:
        try:
            resp = await client.get(f"{site}/robots.txt")
            if "Disallow: /" in resp.text:
                check["issues"].append("Site may be blocked from crawling")
                check["status"] = "warning"
            else:
                check["status"] = "ok"
        except _CHECK_ERRORS as exc:
            logger.warning("robots.txt check failed for %s: %s", site, exc)
            check["issues"].append("Could not fetch robots.txt")
            check["status"] = "error"

    async def _check_sitemap(self, client: httpx.AsyncClient, site: str, check: dict) -> None:
        try:
            resp = await client.get(f"{site}/sitemap.xml")
            if resp.is_success:
                check["status"] = "ok"
            else:
                check["issues"].append("Sitemap not accessible")
                check["status"] = "error"
        except _CHECK_ERRORS as exc:
            logger.warning("Sitemap check failed for %s: %s", site, exc)
            check["issues"].append("Could not fetch sitemap")
            check["status"] = "error"

    async def _check_noindex(self, client: httpx.AsyncClient, site: str, check: dict) -> None:
        try:
            resp = await client.get(site)
            if _NOINDEX_RE.search(resp.text):
                check["issues"].append("Homepage has noindex meta tag")
                check["status"] = "critical"
            else:
                check["status"] = "ok"
        except _CHECK_ERRORS as exc:
            logger.warning("Homepage check failed for %s: %s", site, exc)
            check["issues"].append("Could not check homepage")
            check["status"] = "error"

    async def _check_server_errors(self, client: httpx.AsyncClient, site: str, check: dict) -> None:
        try:
            resp = await client.head(site)
            if resp.status_code >= 500:
                check["issues"].append(f"Server returning {resp.status_code}")
                check["status"] = "critical"
            else:
                check["status"] = "ok"
        except _CHECK_ERRORS as exc:
            logger.warning("Server check failed for %s: %s", site, exc)
            check["issues"].append("Could not reach server")
            check["status"] = "critical"
