import logging
import re
from datetime import date, datetime

import pandas as pd

from .numeric import parse_numeric, numeric_values

# Strict type classification: share of valid values that must parse.
NUMERIC_TYPE_THRESHOLD = 0.8
DATE_TYPE_THRESHOLD = 0.8

# Looser rule deciding whether a column is worth quantitative analysis.
# The denominator includes blank cells.
QUANTITATIVE_THRESHOLD = 0.7

PLAIN_NUMBER_PATTERN = re.compile(r'^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$')


def valid_values(values):
    """Values that are neither None nor the empty string"""
    return [value for value in values if value is not None and value != '']


def is_quantitative(values):
    """True when more than 70% of all values (blanks included) are numeric"""
    if not values:
        return False
    return len(numeric_values(values)) / len(values) > QUANTITATIVE_THRESHOLD


class DataTypeAnalyzer:
    """Infers column types and computes descriptive statistics"""

    def analyze(self, table):
        """Type and statistics for every column of a SheetTable"""
        results = {}

        for header in table.headers:
            values = table.column_values(header)
            column_stats = self.stats(values)
            results[header] = {
                'type': column_stats['type'],
                'stats': column_stats
            }
            logging.debug(f"Column '{header}' classified as {column_stats['type']}")

        return results

    def classify(self, values):
        """Return one of 'numeric', 'date', 'text' or 'empty'"""
        valid = valid_values(values)
        if not valid:
            return 'empty'

        numeric_count = sum(1 for value in valid if parse_numeric(value) is not None)
        if numeric_count / len(valid) > NUMERIC_TYPE_THRESHOLD:
            return 'numeric'

        date_count = sum(1 for value in valid if self._is_date(value))
        if date_count / len(valid) > DATE_TYPE_THRESHOLD:
            return 'date'

        return 'text'

    def stats(self, values):
        """Descriptive statistics for a column.

        Numeric columns get count/min/max/mean/median/sum. The median of an
        even-length column is the lower of the two middle values. Other
        columns get the valid value count and the number of distinct values.
        """
        column_type = self.classify(values)
        valid = valid_values(values)

        if column_type != 'numeric':
            return {
                'type': column_type,
                'count': len(valid),
                'unique_count': len(set(valid))
            }

        numbers = sorted(numeric_values(valid))
        total = sum(numbers)
        return {
            'type': column_type,
            'count': len(numbers),
            'min': numbers[0],
            'max': numbers[-1],
            'mean': total / len(numbers),
            'median': numbers[(len(numbers) - 1) // 2],
            'sum': total
        }

    def _is_date(self, value):
        if isinstance(value, (date, datetime)):
            return True
        if not isinstance(value, str) or PLAIN_NUMBER_PATTERN.match(value):
            return False
        try:
            return not pd.isna(pd.to_datetime(value, errors='coerce'))
        except (ValueError, TypeError, OverflowError):
            return False
