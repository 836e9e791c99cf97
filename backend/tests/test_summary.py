"""
Tests for breadcrumb movement summaries.
"""

import pytest

from fieldlog.models.tracklog import Breadcrumb, MovementSummary
from fieldlog.services.summary import classify_pattern, summarize_breadcrumbs
from fieldlog.utils.coordinates import haversine_distance


def crumb(lat, lng, timestamp, is_moving=False):
    return Breadcrumb(lat=lat, lng=lng, timestamp=timestamp, is_moving=is_moving)


class TestClassifyPattern:
    """Tests for moving/stationary/mixed classification."""

    def test_empty_is_stationary(self):
        assert classify_pattern(0, 0, 0) == "stationary"

    def test_mostly_moving(self):
        assert classify_pattern(9, 1, 10) == "moving"

    def test_mostly_stationary(self):
        assert classify_pattern(1, 9, 10) == "stationary"

    def test_threshold_is_exclusive(self):
        """Exactly 80% moving is not enough to be 'moving'."""
        assert classify_pattern(8, 2, 10) == "mixed"

    def test_even_split_is_mixed(self):
        assert classify_pattern(5, 5, 10) == "mixed"


class TestSummarizeBreadcrumbs:
    """Tests for summarize_breadcrumbs."""

    def test_empty(self):
        """No breadcrumbs gives the all-zero summary."""
        summary = summarize_breadcrumbs([])

        assert summary == MovementSummary()
        assert summary.pattern == "stationary"

    def test_single_breadcrumb(self):
        summary = summarize_breadcrumbs([crumb(4.6, -74.0, 1000, is_moving=True)])

        assert summary.total_distance == 0
        assert summary.average_speed == 0
        assert summary.max_speed == 0
        assert summary.moving_time == 0
        assert summary.stationary_time == 0
        assert summary.pattern == "moving"

    def test_two_moving_breadcrumbs(self):
        """All-moving pairs are classified as moving."""
        crumbs = [
            crumb(0.0, 0.0, 0, is_moving=True),
            crumb(0.001, 0.0, 10000, is_moving=True),
        ]

        summary = summarize_breadcrumbs(crumbs)

        expected_distance = haversine_distance(0.0, 0.0, 0.001, 0.0)
        assert summary.total_distance == round(expected_distance)
        assert summary.average_speed == pytest.approx(expected_distance / 10, abs=0.01)
        assert summary.max_speed == summary.average_speed
        assert summary.moving_time == 10
        assert summary.stationary_time == 0
        assert summary.pattern == "moving"

    def test_speeds_averaged_per_segment(self):
        """Average speed is the mean of segment speeds, not distance over time."""
        step = haversine_distance(0.0, 0.0, 0.001, 0.0)
        crumbs = [
            crumb(0.0, 0.0, 0),
            crumb(0.001, 0.0, 1000),    # fast segment, 1 s
            crumb(0.002, 0.0, 11000),   # slow segment, 10 s
        ]

        summary = summarize_breadcrumbs(crumbs)

        fast = step / 1.0
        slow = step / 10.0
        assert summary.average_speed == pytest.approx((fast + slow) / 2, abs=0.01)
        assert summary.max_speed == pytest.approx(fast, abs=0.01)

    def test_zero_duration_segment_excluded_from_speeds(self):
        """Duplicate timestamps count toward distance but not toward speed."""
        crumbs = [
            crumb(0.0, 0.0, 0),
            crumb(0.001, 0.0, 0),
            crumb(0.002, 0.0, 10000),
        ]

        summary = summarize_breadcrumbs(crumbs)

        step = haversine_distance(0.0, 0.0, 0.001, 0.0)
        assert summary.total_distance == round(2 * step)
        assert summary.max_speed == pytest.approx(step / 10, abs=0.01)
        assert summary.average_speed == summary.max_speed

    def test_time_split_by_sample_counts(self):
        """Moving time is the moving share of samples times total duration."""
        crumbs = [
            crumb(0.0, 0.0, 0, is_moving=False),
            crumb(0.0, 0.0, 30000, is_moving=True),
            crumb(0.0, 0.0, 60000, is_moving=True),
            crumb(0.0, 0.0, 90000, is_moving=False),
        ]

        summary = summarize_breadcrumbs(crumbs)

        assert summary.stationary_time == 45
        assert summary.moving_time == 45
        assert summary.pattern == "mixed"

    def test_stationary_track(self):
        crumbs = [crumb(4.6, -74.0, t * 1000) for t in range(10)]

        summary = summarize_breadcrumbs(crumbs)

        assert summary.total_distance == 0
        assert summary.average_speed == 0
        assert summary.stationary_time == 9
        assert summary.pattern == "stationary"

    def test_to_dict_uses_wire_names(self):
        data = summarize_breadcrumbs([]).to_dict()

        assert set(data) == {
            "totalDistance",
            "averageSpeed",
            "maxSpeed",
            "stationaryTime",
            "movingTime",
            "pattern",
        }
