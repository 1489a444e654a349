"""
Progress reporting for long-running operations.

A progress reporter is any callable taking ``(phase, percent, detail)``.
Reporting is fire and forget: a reporter that raises is logged and
otherwise ignored, so a broken UI can never stop a restore halfway.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

from msgvault.constants import PHASES

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, str], None]


def progress_step(total: int, updates: int) -> int:
    """
    Get how many records to process between two progress updates.

    Args:
        total: Records in the phase.
        updates: Desired number of updates for the phase.

    Returns:
        Step of at least 1.
    """
    if total <= 0 or updates <= 0:
        return 1
    return max(1, math.ceil(total / updates))


def percent_of(done: int, total: int) -> int:
    """Get completion as a whole percentage, 100 for an empty phase."""
    if total <= 0:
        return 100
    return min(100, done * 100 // total)


def overall_percent(phase: str, percent: int) -> int:
    """
    Map a per-phase percentage onto a single bar covering all phases.

    Unknown phases count as the first phase.
    """
    position = PHASES.index(phase) if phase in PHASES else 0
    return min(100, (position * 100 + percent) // len(PHASES))


def report(
    callback: Optional[ProgressCallback],
    phase: str,
    percent: int,
    detail: str,
) -> None:
    """Send one update to a reporter, absorbing anything it raises."""
    logger.debug(f"[{phase}] {percent}% {detail}")
    if callback is None:
        return
    try:
        callback(phase, percent, detail)
    except Exception as e:
        logger.warning(f"Progress reporter failed during {phase}: {e}")
