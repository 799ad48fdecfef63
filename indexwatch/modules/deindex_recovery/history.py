"""Persistence helpers for coverage snapshots and diagnostic runs."""

import logging
from typing import Any, Optional

from sqlalchemy import func, select

from indexwatch.database import get_session
from indexwatch.models import CoverageSnapshot, DiagnosticRun

logger = logging.getLogger(__name__)


def record_coverage(site_url: str, coverage: int, index_status: Optional[str] = None) -> int:
    """Store one coverage observation and return its row id."""
    with get_session() as session:
        snapshot = CoverageSnapshot(
            site_url=site_url, coverage=coverage, index_status=index_status
        )
        session.add(snapshot)
        session.flush()
        snapshot_id = snapshot.id
    logger.info("Recorded coverage %d for %s", coverage, site_url)
    return snapshot_id


def record_diagnostics(result: dict[str, Any]) -> int:
    """Store the summary of a ``SiteDiagnostics.run`` result."""
    summary = result.get("summary", {})
    with get_session() as session:
        run = DiagnosticRun(
            site_url=result.get("site_url", ""),
            overall_health=summary.get("overall_health", "unknown"),
            critical=summary.get("critical", 0),
            errors=summary.get("errors", 0),
            warnings=summary.get("warnings", 0),
            diagnostics_json=result.get("diagnostics"),
        )
        session.add(run)
        session.flush()
        run_id = run.id
    return run_id


def get_checkpoints(site_url: str, limit: Optional[int] = None) -> list[dict[str, Any]]:
    """Return recorded coverage for *site_url*, oldest first.

    Each entry is ``{"coverage": int, "date": datetime}``, the checkpoint
    shape expected by ``track_recovery_progress``.
    """
    stmt = (
        select(CoverageSnapshot)
        .where(CoverageSnapshot.site_url == site_url)
        .order_by(CoverageSnapshot.recorded_at, CoverageSnapshot.id)
    )
    with get_session() as session:
        rows = session.scalars(stmt).all()
        checkpoints = [{"coverage": r.coverage, "date": r.recorded_at} for r in rows]
    if limit is not None:
        checkpoints = checkpoints[-limit:]
    return checkpoints


def get_baseline(site_url: str) -> int:
    """Highest coverage ever recorded for *site_url* (0 when none)."""
    stmt = select(func.max(CoverageSnapshot.coverage)).where(
        CoverageSnapshot.site_url == site_url
    )
    with get_session() as session:
        value = session.execute(stmt).scalar()
    return int(value or 0)
