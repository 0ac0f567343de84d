"""Tests for trend direction, strength and volatility."""

from __future__ import annotations

import pytest

from analyzers.trend_detector import TrendDetector
from utils.exceptions import InsufficientDataError


@pytest.fixture
def detector() -> TrendDetector:
    return TrendDetector()


def test_increasing_series(detector: TrendDetector) -> None:
    result = detector.detect([1, 2, 3, 4, 5], "Sales")

    assert result.direction == "increasing"
    assert result.increases == 4
    assert result.decreases == 0
    # Strength divides by the number of values, not the number of steps.
    assert result.strength == 80.0
    assert result.min == 1.0
    assert result.max == 5.0
    assert result.average == 3.0
    assert result.range == 4.0
    assert result.volatility == pytest.approx(133.33)


def test_decreasing_series(detector: TrendDetector) -> None:
    result = detector.detect([5, 4, 3, 2, 1], "Stock")

    assert result.direction == "decreasing"
    assert result.decreases == 4
    assert result.strength == 80.0


def test_flat_series_is_stable(detector: TrendDetector) -> None:
    result = detector.detect([1, 1, 1], "Flat")

    assert result.direction == "stable"
    assert result.strength == 0.0
    assert result.increases == result.decreases == 0
    assert result.volatility == 0.0


def test_mixed_series_clearing_the_ratio_has_a_direction(detector: TrendDetector) -> None:
    result = detector.detect([1, 2, 1, 2, 1, 2, 3], "Zigzag")

    assert (result.increases, result.decreases) == (4, 2)
    assert result.direction == "increasing"


def test_mixed_series_without_dominant_direction_is_stable(detector: TrendDetector) -> None:
    # 3 increases vs 2 decreases does not clear the 1.5 ratio
    result = detector.detect([1, 2, 1, 2, 3, 2], "Zigzag")

    assert (result.increases, result.decreases) == (3, 2)
    assert result.direction == "stable"
    assert result.strength == 0.0


def test_non_numeric_values_are_skipped(detector: TrendDetector) -> None:
    result = detector.detect([10, None, "n/a", "20", 30], "Mixed")

    assert result.direction == "increasing"
    assert result.increases == 2
    assert result.strength == pytest.approx(66.67)


def test_zero_average_reports_no_volatility(detector: TrendDetector) -> None:
    result = detector.detect([-1, 0, 1], "Centered")

    assert result.average == 0.0
    assert result.volatility == 0.0


def test_too_few_values_raise(detector: TrendDetector) -> None:
    with pytest.raises(InsufficientDataError) as excinfo:
        detector.detect([1, "x", 2], "Short")

    assert "Short" in excinfo.value.message
    assert "2" in excinfo.value.message
    assert excinfo.value.status_code == 422


def test_insight_messages(detector: TrendDetector) -> None:
    result = detector.detect([100, 102, 104, 106, 108, 110], "Revenue")

    kinds = [item["type"] for item in result.insights]
    assert kinds == ["trend_direction", "volatility"]
    assert result.insights[0]["message"] == "Data is increasing with 83.3% consistency."
    assert "moderate" in result.insights[1]["message"]

    spiky = detector.detect([1, 50, 100], "Spiky")
    assert "high" in spiky.insights[1]["message"]


def test_title_content_and_data(detector: TrendDetector) -> None:
    result = detector.detect([3, 2, 1], "Units")

    assert result.title == "Trend Analysis: Units"
    assert "decreasing" in result.content
    data = result.to_data()
    assert data["direction"] == "decreasing"
    assert set(data) == {
        "direction", "strength", "increases", "decreases", "min", "max",
        "average", "range", "volatility", "insights",
    }
