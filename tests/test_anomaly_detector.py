"""Tests for z-score anomaly detection."""

from __future__ import annotations

import pytest

from analyzers.anomaly_detector import AnomalyDetector
from utils.exceptions import InsufficientDataError


@pytest.fixture
def detector() -> AnomalyDetector:
    return AnomalyDetector()


def test_outlier_is_flagged(detector: AnomalyDetector) -> None:
    result = detector.detect([10, 10, 10, 10, 10, 100], "Amount")

    assert result.anomaly_count == 1
    assert result.mean == 25.0
    assert result.anomalies == [{
        "index": 5,
        "value": 100.0,
        "z_score": 2.24,
        "deviation_percent": 300.0,
    }]


def test_z_score_of_exactly_two_is_not_flagged(detector: AnomalyDetector) -> None:
    # Population std of this series is 36, so the outlier sits at z == 2.0
    result = detector.detect([10, 10, 10, 10, 100], "Amount")

    assert result.mean == 28.0
    assert result.std_dev == 36.0
    assert result.anomaly_count == 0
    assert result.anomalies == []


def test_constant_column_has_no_anomalies(detector: AnomalyDetector) -> None:
    result = detector.detect([5, 5, 5, 5, 5], "Flat")

    assert result.anomaly_count == 0
    assert result.std_dev == 0.0
    assert result.to_data()["insights"] == []


def test_too_few_values_raise(detector: AnomalyDetector) -> None:
    with pytest.raises(InsufficientDataError) as excinfo:
        detector.detect([1, 2, 3, None, "x", 4], "Short")

    assert "Short" in excinfo.value.message
    assert "4" in excinfo.value.message


def test_reported_anomalies_are_capped(detector: AnomalyDetector) -> None:
    values = [0] * 100 + [100] * 11

    result = detector.detect(values, "Spikes")

    assert result.anomaly_count == 11
    assert len(result.anomalies) == 10
    assert [item["index"] for item in result.anomalies] == list(range(100, 110))


def test_zero_mean_has_no_deviation_percent(detector: AnomalyDetector) -> None:
    result = detector.detect([0] * 10 + [-50, 50], "Centered")

    assert result.anomaly_count == 2
    assert all(item["deviation_percent"] is None for item in result.anomalies)


def test_indices_refer_to_numeric_values(detector: AnomalyDetector) -> None:
    result = detector.detect(["x", 10, None, 10, 10, 10, 10, 100], "Mixed")

    assert [item["index"] for item in result.anomalies] == [5]


def test_result_text_and_data(detector: AnomalyDetector) -> None:
    found = detector.detect([10, 10, 10, 10, 10, 100], "Amount")
    clean = detector.detect([1, 2, 3, 4, 5], "Amount")

    assert found.title == "Anomaly Detection: Amount"
    assert found.content.startswith("Detected 1 potential anomalies")
    assert found.insights[0]["severity"] == "warning"
    assert clean.content.startswith("No significant anomalies")

    data = found.to_data()
    assert data["mean"] == 25.0
    assert data["std_dev"] == 33.54
    assert data["anomaly_count"] == 1
