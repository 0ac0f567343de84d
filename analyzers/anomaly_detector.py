from dataclasses import dataclass, field

import numpy as np

from .numeric import numeric_values
from utils.exceptions import InsufficientDataError

MIN_ANOMALY_VALUES = 5
Z_SCORE_THRESHOLD = 2
MAX_REPORTED_ANOMALIES = 10


@dataclass
class AnomalyResult:
    column: str
    mean: float
    std_dev: float
    anomaly_count: int
    anomalies: list = field(default_factory=list)

    @property
    def title(self):
        return f'Anomaly Detection: {self.column}'

    @property
    def content(self):
        if self.anomaly_count > 0:
            return (f'Detected {self.anomaly_count} potential anomalies in "{self.column}" '
                    f'that deviate significantly from the mean.')
        return f'No significant anomalies detected in "{self.column}". Data appears consistent.'

    @property
    def insights(self):
        if not self.anomaly_count:
            return []
        return [{
            'type': 'anomaly_detected',
            'message': (f'{self.anomaly_count} values exceed {Z_SCORE_THRESHOLD} '
                        f'standard deviations from mean.'),
            'severity': 'warning'
        }]

    def to_data(self):
        return {
            'mean': round(self.mean, 2),
            'std_dev': round(self.std_dev, 2),
            'anomaly_count': self.anomaly_count,
            'anomalies': list(self.anomalies),
            'insights': self.insights
        }


class AnomalyDetector:
    """Flags values more than two population standard deviations from the mean"""

    def detect(self, values, column):
        values = numeric_values(values)

        if len(values) < MIN_ANOMALY_VALUES:
            raise InsufficientDataError(
                f"Insufficient data for anomaly detection: column '{column}' has "
                f"{len(values)} numeric value(s), at least {MIN_ANOMALY_VALUES} required")

        data = np.asarray(values, dtype=float)
        mean = float(data.mean())
        std_dev = float(data.std())

        # A constant column has no outliers; skip the division entirely.
        if std_dev == 0 or data.max() == data.min():
            return AnomalyResult(column=column, mean=mean, std_dev=0.0, anomaly_count=0)

        z_scores = np.abs(data - mean) / std_dev
        flagged = np.flatnonzero(z_scores > Z_SCORE_THRESHOLD)

        anomalies = []
        for index in flagged[:MAX_REPORTED_ANOMALIES]:
            value = values[index]
            anomalies.append({
                'index': int(index),
                'value': value,
                'z_score': round(float(z_scores[index]), 2),
                'deviation_percent': round((value - mean) / mean * 100, 2) if mean != 0 else None
            })

        return AnomalyResult(
            column=column,
            mean=mean,
            std_dev=std_dev,
            anomaly_count=len(flagged),
            anomalies=anomalies
        )
