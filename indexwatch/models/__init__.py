"""SQLAlchemy ORM models; import every model so Base.metadata is populated."""

from indexwatch.models.coverage import (
    CoverageSnapshot,
    DiagnosticRun,
)

__all__ = [
    "CoverageSnapshot",
    "DiagnosticRun",
]
