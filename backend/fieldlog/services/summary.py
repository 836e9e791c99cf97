"""
Movement summary for breadcrumb sequences.

Derives distance, speed and moving/stationary split from a tracklog.
Speeds are averaged per segment and time is split by sample counts,
not by segment durations.
"""

import logging
import os
from typing import Sequence

import numpy as np

from fieldlog.models.tracklog import Breadcrumb, MovementSummary
from fieldlog.utils.coordinates import haversine_distances


logger = logging.getLogger(__name__)

PATTERN_THRESHOLD = float(os.getenv("FIELDLOG_PATTERN_THRESHOLD", "0.8"))  # share of samples


def classify_pattern(moving_count: int, stationary_count: int, total: int) -> str:
    """Classify a track as moving, stationary or mixed."""
    if total == 0:
        return "stationary"
    if moving_count / total > PATTERN_THRESHOLD:
        return "moving"
    if stationary_count / total > PATTERN_THRESHOLD:
        return "stationary"
    return "mixed"


def summarize_breadcrumbs(breadcrumbs: Sequence[Breadcrumb]) -> MovementSummary:
    """
    Compute aggregate movement statistics.

    Segments with a non-positive time step have no defined speed; they are
    left out of the speed statistics but their distance still counts.
    """
    n = len(breadcrumbs)
    if n == 0:
        return MovementSummary()

    lat = np.array([b.lat for b in breadcrumbs], dtype=np.float64)
    lng = np.array([b.lng for b in breadcrumbs], dtype=np.float64)
    timestamps = np.array([b.timestamp for b in breadcrumbs], dtype=np.float64)
    moving = np.array([b.is_moving for b in breadcrumbs], dtype=np.bool_)

    distances = haversine_distances(lat, lng)
    dt_s = np.diff(timestamps) / 1000.0

    timed = dt_s > 0
    speeds = distances[timed] / dt_s[timed]
    speeds = speeds[np.isfinite(speeds)]

    skipped = len(distances) - len(speeds)
    if skipped:
        logger.debug(f"Excluded {skipped} zero-duration segments from speed statistics")

    average_speed = float(np.mean(speeds)) if len(speeds) > 0 else 0.0
    max_speed = float(np.max(speeds)) if len(speeds) > 0 else 0.0

    moving_count = int(np.count_nonzero(moving))
    stationary_count = n - moving_count

    total_time_ms = float(timestamps[-1] - timestamps[0])
    stationary_time_ms = (stationary_count / n) * total_time_ms
    moving_time_ms = total_time_ms - stationary_time_ms

    return MovementSummary(
        total_distance=round(float(np.sum(distances))),
        average_speed=round(average_speed, 2),
        max_speed=round(max_speed, 2),
        stationary_time=round(stationary_time_ms / 1000),
        moving_time=round(moving_time_ms / 1000),
        pattern=classify_pattern(moving_count, stationary_count, n),
    )
