"""Alerts, recovery-progress tracking and the weekly recovery report."""

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Optional

from indexwatch.integrations.search_console import SearchConsoleClient
from indexwatch.modules.deindex_recovery.detector import (
    DEFAULT_DROP_THRESHOLD,
    detect_indexation_drop,
)
from indexwatch.modules.deindex_recovery.diagnostics import SiteDiagnostics
from indexwatch.modules.deindex_recovery.recovery import generate_recovery_plan

logger = logging.getLogger(__name__)

RECOVERED_RATIO = 0.95

_PROGRESS_MAP = [
    (50, "recovering"),
    (0, "partial_recovery"),
]


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

def generate_alert(
    drop_data: dict[str, Any],
    diagnostics: Optional[dict[str, Any]],
    recovery_plan: dict[str, Any],
) -> dict[str, Any]:
    """Assemble a human-readable deindexation alert."""
    pct = drop_data["drop_percentage"]
    summary = (diagnostics or {}).get("summary") or {}
    return {
        "severity": drop_data["severity"],
        "title": f"Indexation Drop Detected: {pct}%",
        "message": f"Your site has lost {drop_data['pages_lost']} indexed pages ({pct}% drop)",
        "current_coverage": drop_data["current_coverage"],
        "historical_coverage": drop_data["historical_coverage"],
        "critical_issues": summary.get("critical") or 0,
        "immediate_actions": [
            a for a in recovery_plan.get("actions", []) if a["priority"] == "critical"
        ],
        "estimated_recovery_time": recovery_plan.get("estimated_recovery_time"),
        "alerted_at": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Progress tracking
# ---------------------------------------------------------------------------

def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _progress_status(current: int, baseline: int, pct: float) -> str:
    if current >= baseline * RECOVERED_RATIO:
        return "recovered"
    for threshold, status in _PROGRESS_MAP:
        if pct > threshold:
            return status
    return "no_progress"


def track_recovery_progress(
    site_url: str,
    baseline_coverage: int,
    checkpoints: Optional[list[dict[str, Any]]] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Measure how far coverage has climbed back towards the baseline.

    Args:
        site_url: Site being tracked.
        baseline_coverage: Coverage before the drop.
        checkpoints: ``[{"coverage": int, "date": ...}]`` oldest first.
        now: Reference time for ``days_in_recovery`` (defaults to UTC now).
    """
    checkpoints = checkpoints or []
    current = (checkpoints[-1].get("coverage") or 0) if checkpoints else 0

    pct = 0.0
    if baseline_coverage > 0 and checkpoints:
        first = checkpoints[0].get("coverage") or 0
        span = baseline_coverage - first
        if span != 0:
            pct = (current - first) / span * 100

    if len(checkpoints) >= 2:
        trend = "improving" if checkpoints[-1]["coverage"] > checkpoints[-2]["coverage"] else "declining"
    else:
        trend = "unknown"

    days = 0
    if checkpoints:
        now = now or datetime.now(timezone.utc)
        elapsed = now - _as_datetime(checkpoints[0]["date"])
        days = math.ceil(elapsed.total_seconds() / 86400)

    return {
        "site_url": site_url,
        "baseline_coverage": baseline_coverage,
        "current_coverage": current,
        "recovery_percentage": f"{max(0.0, pct):.2f}",
        "status": _progress_status(current, baseline_coverage, pct),
        "checkpoints": len(checkpoints),
        "days_in_recovery": days,
        "trend": trend,
    }


# ---------------------------------------------------------------------------
# DeindexRecoveryMonitor
# ---------------------------------------------------------------------------

class DeindexRecoveryMonitor:
    """Tie coverage, diagnostics and planning together for one site."""

    def __init__(
        self,
        search_console: Optional[SearchConsoleClient] = None,
        diagnostics: Optional[SiteDiagnostics] = None,
        drop_threshold: float = DEFAULT_DROP_THRESHOLD,
        persist: bool = False,
    ) -> None:
        self._gsc = search_console or SearchConsoleClient()
        self._diagnostics = diagnostics or SiteDiagnostics()
        self._threshold = drop_threshold
        self._persist = persist

    async def check_site(
        self,
        site_url: str,
        current_coverage: int,
        historical_coverage: int,
    ) -> dict[str, Any]:
        """Detect a drop and, when there is one, diagnose it and raise an alert."""
        drop = detect_indexation_drop(current_coverage, historical_coverage, self._threshold)
        result: dict[str, Any] = {"site_url": site_url, "drop": drop, "alert": None}
        if not drop["has_drop"]:
            return result

        diagnostics = await self._diagnostics.run(site_url)
        plan = generate_recovery_plan(diagnostics)
        result["diagnostics"] = diagnostics
        result["plan"] = plan
        result["alert"] = generate_alert(drop, diagnostics, plan)
        return result

    async def generate_recovery_report(
        self,
        site_url: str,
        historical_data: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Build the weekly recovery report for *site_url*."""
        diagnostics = await self._diagnostics.run(site_url)
        coverage = await self._gsc.fetch_index_coverage(site_url)

        baseline = (historical_data or {}).get("baseline", 0)
        index_status = coverage.get("index_status")
        current = baseline if index_status == "PASS" else 0
        drop = detect_indexation_drop(current, baseline, self._threshold)

        report: dict[str, Any] = {
            "week": datetime.now(timezone.utc).date().isoformat(),
            "site_url": site_url,
            "health": diagnostics["summary"]["overall_health"],
            "index_status": index_status,
            "drop_detected": drop["has_drop"],
            "critical_issues": diagnostics["summary"]["critical"],
            "recommendations": [],
        }
        if drop["has_drop"]:
            plan = generate_recovery_plan(diagnostics)
            report["recommendations"] = plan["actions"][:3]

        if self._persist:
            from indexwatch.modules.deindex_recovery.history import (
                record_coverage,
                record_diagnostics,
            )
            record_coverage(site_url, current, index_status)
            record_diagnostics(diagnostics)

        logger.info(
            "Recovery report for %s: health=%s drop=%s",
            site_url, report["health"], report["drop_detected"],
        )
        return report
