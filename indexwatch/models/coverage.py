"""Index coverage history SQLAlchemy models."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Integer, String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from indexwatch.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CoverageSnapshot(Base):
    """Indexed-page count observed for a site at one point in time."""

    __tablename__ = "coverage_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_url: Mapped[str] = mapped_column(String(2048), nullable=False, index=True)
    coverage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    index_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<CoverageSnapshot id={self.id} site={self.site_url!r} coverage={self.coverage}>"


class DiagnosticRun(Base):
    """Summary of one diagnostics pass over a site."""

    __tablename__ = "diagnostic_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_url: Mapped[str] = mapped_column(String(2048), nullable=False, index=True)
    overall_health: Mapped[str] = mapped_column(String(20), nullable=False)
    critical: Mapped[int] = mapped_column(Integer, default=0)
    errors: Mapped[int] = mapped_column(Integer, default=0)
    warnings: Mapped[int] = mapped_column(Integer, default=0)
    diagnostics_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<DiagnosticRun id={self.id} site={self.site_url!r} health={self.overall_health}>"
