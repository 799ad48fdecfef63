"""Recovery plan generation and execution for deindexed sites."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from indexwatch.integrations.search_console import SearchConsoleClient, SearchConsoleError

logger = logging.getLogger(__name__)

PRIORITY_ORDER: dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}

ACTION_CATALOG: dict[str, dict[str, Any]] = {
    "fix_robots_txt": {
        "priority": "critical",
        "title": "Fix robots.txt blocking",
        "description": "Remove or correct Disallow rules that block crawling",
        "steps": [
            "Review robots.txt file",
            'Remove "Disallow: /" if present',
            "Ensure Googlebot is allowed",
            "Resubmit for crawling",
        ],
    },
    "fix_sitemap": {
        "priority": "high",
        "title": "Fix sitemap accessibility",
        "description": "Ensure sitemap.xml is accessible and properly formatted",
        "steps": [
            "Verify sitemap.xml exists at root",
            "Check XML formatting",
            "Resubmit to GSC and Bing",
            "Verify submission in webmaster tools",
        ],
    },
    "remove_noindex": {
        "priority": "critical",
        "title": "Remove noindex tags",
        "description": "Critical: Homepage or key pages have noindex tags",
        "steps": [
            "Identify all pages with noindex tags",
            "Remove noindex from production pages",
            "Keep noindex only on admin/draft pages",
            "Request re-indexing via GSC",
        ],
    },
    "fix_server_errors": {
        "priority": "critical",
        "title": "Resolve server errors",
        "description": "Site is returning 5xx errors",
        "steps": [
            "Check server logs",
            "Identify error source",
            "Fix server configuration or code",
            "Monitor uptime",
        ],
    },
    "fix_canonical": {
        "priority": "medium",
        "title": "Fix canonical tag issues",
        "description": "Canonical tags may be pointing to wrong URLs",
        "steps": [
            "Audit all canonical tags",
            "Ensure self-referencing canonicals",
            "Fix any cross-domain canonical issues",
            "Use HTTPS in canonical URLs",
        ],
    },
    "request_reindex": {
        "priority": "high",
        "title": "Request re-indexing",
        "description": "Ask Google to recrawl and re-index",
        "steps": [
            "Go to Google Search Console",
            "Use URL Inspection tool",
            "Request indexing for key pages",
            "Submit updated sitemap",
        ],
    },
}

_MANUAL_STEPS: dict[str, str] = {
    "fix_robots_txt": "Manual action required: Review and fix robots.txt",
    "fix_sitemap": "Manual action required: Fix sitemap accessibility",
    "remove_noindex": "Manual action required: Remove noindex tags from production pages",
    "fix_server_errors": "Manual action required: Resolve server errors",
    "fix_canonical": "Manual action required: Audit and correct canonical tags",
}


def _status(diagnostics: dict[str, Any], name: str) -> Optional[str]:
    return (diagnostics.get(name) or {}).get("status")


def build_action(action_id: str) -> dict[str, Any]:
    """Return a fresh copy of a catalog action record."""
    entry = ACTION_CATALOG[action_id]
    return {
        "priority": entry["priority"],
        "action": action_id,
        "title": entry["title"],
        "description": entry["description"],
        "steps": list(entry["steps"]),
    }


def generate_recovery_plan(diagnostics: dict[str, Any]) -> dict[str, Any]:
    """Map diagnostic findings onto a prioritised remediation checklist.

    Args:
        diagnostics: Either the ``diagnostics`` mapping produced by
            ``SiteDiagnostics.run`` or the full result containing it.

    Returns:
        Dict with ``actions`` (sorted critical first), ``estimated_recovery_time``
        and ``timestamp``.
    """
    if "diagnostics" in diagnostics:
        diagnostics = diagnostics["diagnostics"]

    selected: list[str] = []
    if _status(diagnostics, "robots_txt") != "ok":
        selected.append("fix_robots_txt")
    if _status(diagnostics, "sitemap") != "ok":
        selected.append("fix_sitemap")
    if _status(diagnostics, "noindex") == "critical":
        selected.append("remove_noindex")
    if _status(diagnostics, "server_errors") == "critical":
        selected.append("fix_server_errors")
    if _status(diagnostics, "canonical") != "ok":
        selected.append("fix_canonical")
    selected.append("request_reindex")

    actions = sorted(
        (build_action(a) for a in selected),
        key=lambda a: PRIORITY_ORDER[a["priority"]],
    )
    has_critical = any(a["priority"] == "critical" for a in actions)
    logger.debug("Recovery plan: %s", [a["action"] for a in actions])
    return {
        "actions": actions,
        "estimated_recovery_time": "2-4 weeks" if has_critical else "1-2 weeks",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class RecoveryExecutor:
    """Execute recovery actions; only re-indexing is automated."""

    def __init__(self, search_console: Optional[SearchConsoleClient] = None) -> None:
        self._gsc = search_console

    async def execute(self, action: str, site_url: str) -> dict[str, Any]:
        """Run *action* for *site_url*.

        Never raises: network and auth failures land in ``result["error"]``.
        """
        result: dict[str, Any] = {"action": action, "executed": False, "steps": []}

        if action == "request_reindex":
            gsc = self._gsc or SearchConsoleClient()
            try:
                accepted = await gsc.publish_url_notification(site_url)
            except (httpx.HTTPError, SearchConsoleError, FileNotFoundError, ValueError) as exc:
                logger.error("Re-index request failed for %s: %s", site_url, exc)
                result["error"] = str(exc)
                return result
            if accepted:
                result["executed"] = True
                result["steps"].append("Successfully requested re-indexing via GSC")
            else:
                result["steps"].append("Failed to request re-indexing")
        elif action in _MANUAL_STEPS:
            result["steps"].append(_MANUAL_STEPS[action])
        else:
            logger.warning("Unknown recovery action: %s", action)
            result["steps"].append("Unknown action type")

        return result
