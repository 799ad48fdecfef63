"""Indexation drop detection from before/after coverage counts."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DROP_THRESHOLD = 0.20

# Checked top-down, first match wins.
_SEVERITY_MAP = [
    (0.50, "critical"),
    (0.30, "high"),
    (0.20, "medium"),
]

SEVERITY_RANK = {"low": 0, "medium": 1, "high": 2, "critical": 3}


def _severity_for(fraction: float) -> str:
    for threshold, severity in _SEVERITY_MAP:
        if fraction >= threshold:
            return severity
    return "low"


def detect_indexation_drop(
    current_coverage: int,
    historical_coverage: int,
    threshold: float = DEFAULT_DROP_THRESHOLD,
) -> dict[str, Any]:
    """Compare current vs historical index coverage.

    Args:
        current_coverage: Pages indexed now.
        historical_coverage: Pages indexed at the reference point.
        threshold: Drop fraction at or above which a drop is flagged.

    Returns:
        Dict with ``has_drop``, ``drop_percentage`` (string, two decimals),
        ``severity``, ``pages_lost`` and ``needs_action``.
    """
    if historical_coverage > 0:
        fraction = (historical_coverage - current_coverage) / historical_coverage
    else:
        fraction = 0.0

    has_drop = fraction >= threshold
    severity = _severity_for(fraction)

    if has_drop:
        logger.warning(
            "Indexation drop: %d -> %d (%.1f%%, %s)",
            historical_coverage, current_coverage, fraction * 100, severity,
        )

    return {
        "has_drop": has_drop,
        "drop_percentage": f"{fraction * 100:.2f}",
        "severity": severity,
        "current_coverage": current_coverage,
        "historical_coverage": historical_coverage,
        "pages_lost": historical_coverage - current_coverage,
        "needs_action": has_drop,
    }
