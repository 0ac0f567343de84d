from dataclasses import dataclass, field

from .numeric import numeric_values
from utils.exceptions import InsufficientDataError

MIN_TREND_VALUES = 3
DIRECTION_RATIO = 1.5
HIGH_VOLATILITY_PERCENT = 50


@dataclass
class TrendResult:
    column: str
    direction: str
    strength: float
    increases: int
    decreases: int
    min: float
    max: float
    average: float
    range: float
    volatility: float
    insights: list = field(default_factory=list)

    @property
    def title(self):
        return f'Trend Analysis: {self.column}'

    @property
    def content(self):
        return f'The column "{self.column}" shows a {self.direction} trend over the dataset. '

    def to_data(self):
        return {
            'direction': self.direction,
            'strength': self.strength,
            'increases': self.increases,
            'decreases': self.decreases,
            'min': self.min,
            'max': self.max,
            'average': self.average,
            'range': self.range,
            'volatility': self.volatility,
            'insights': list(self.insights)
        }


class TrendDetector:
    """Classifies an ordered numeric series as increasing, decreasing or stable"""

    def detect(self, values, column):
        values = numeric_values(values)

        if len(values) < MIN_TREND_VALUES:
            raise InsufficientDataError(
                f"Insufficient data for trend analysis: column '{column}' has "
                f"{len(values)} numeric value(s), at least {MIN_TREND_VALUES} required")

        increases = 0
        decreases = 0
        for previous, current in zip(values, values[1:]):
            if current > previous:
                increases += 1
            elif current < previous:
                decreases += 1

        direction = 'stable'
        strength = 0.0
        if increases > decreases * DIRECTION_RATIO:
            direction = 'increasing'
            strength = increases / len(values) * 100
        elif decreases > increases * DIRECTION_RATIO:
            direction = 'decreasing'
            strength = decreases / len(values) * 100

        minimum = min(values)
        maximum = max(values)
        average = sum(values) / len(values)
        value_range = maximum - minimum
        # A zero mean would divide by zero; report no volatility instead.
        volatility = value_range / average * 100 if average != 0 else 0.0

        level = 'high' if volatility > HIGH_VOLATILITY_PERCENT else 'moderate'
        insights = [
            {
                'type': 'trend_direction',
                'message': f'Data is {direction} with {strength:.1f}% consistency.'
            },
            {
                'type': 'volatility',
                'message': f'Volatility is {volatility:.1f}%, indicating {level} variability.'
            }
        ]

        return TrendResult(
            column=column,
            direction=direction,
            strength=round(strength, 2),
            increases=increases,
            decreases=decreases,
            min=minimum,
            max=maximum,
            average=round(average, 2),
            range=value_range,
            volatility=round(volatility, 2),
            insights=insights
        )
