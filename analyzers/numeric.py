"""Numeric coercion shared by every analyzer.

Classification, column statistics, trend and anomaly detection must agree on
what counts as a number, so they all go through ``parse_numeric``.
"""
import math
import numbers
import re
from datetime import date, datetime, time

NUMERIC_PREFIX_PATTERN = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')

# Stored workbooks keep dates as ISO strings; their leading year is not a number.
ISO_DATE_PATTERN = re.compile(
    r'^\s*\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?\s*$')


def parse_numeric(value):
    """Return the float value of a cell, or None when it is not numeric.

    Strings use their leading numeric prefix, so ``"42kg"`` gives ``42.0``.
    Booleans, dates and non-finite values are never numeric.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (date, datetime, time)):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        if ISO_DATE_PATTERN.match(value):
            return None
        match = NUMERIC_PREFIX_PATTERN.match(value)
        if not match:
            return None
        number = float(match.group(1))
        return number if math.isfinite(number) else None
    return None


def numeric_values(values):
    """Numeric values of a series in their original order"""
    parsed = []
    for value in values:
        number = parse_numeric(value)
        if number is not None:
            parsed.append(number)
    return parsed
