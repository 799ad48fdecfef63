"""Deindexation detection, diagnostics and recovery module."""

from indexwatch.modules.deindex_recovery.detector import detect_indexation_drop
from indexwatch.modules.deindex_recovery.diagnostics import SiteDiagnostics
from indexwatch.modules.deindex_recovery.recovery import RecoveryExecutor, generate_recovery_plan
from indexwatch.modules.deindex_recovery.reporting import (
    DeindexRecoveryMonitor,
    generate_alert,
    track_recovery_progress,
)

__all__ = [
    "detect_indexation_drop",
    "SiteDiagnostics",
    "RecoveryExecutor",
    "generate_recovery_plan",
    "DeindexRecoveryMonitor",
    "generate_alert",
    "track_recovery_progress",
]
