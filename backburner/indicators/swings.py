"""
Swing Extrema

Highest high / lowest low over a candle window. Scans left to right with
strict comparison, so the first occurrence wins ties.
"""

from typing import Sequence

from ..models import Candle, Extremum


def find_highest_high(candles: Sequence[Candle]) -> Extremum:
    """Find the highest high in a range of candles"""
    if not candles:
        raise ValueError("Cannot find highest high of an empty candle window")

    highest_index = 0
    for i in range(1, len(candles)):
        if candles[i].high > candles[highest_index].high:
            highest_index = i

    highest = candles[highest_index]
    return Extremum(price=highest.high, index=highest_index, timestamp=highest.timestamp)


def find_lowest_low(candles: Sequence[Candle]) -> Extremum:
    """Find the lowest low in a range of candles"""
    if not candles:
        raise ValueError("Cannot find lowest low of an empty candle window")

    lowest_index = 0
    for i in range(1, len(candles)):
        if candles[i].low < candles[lowest_index].low:
            lowest_index = i

    lowest = candles[lowest_index]
    return Extremum(price=lowest.low, index=lowest_index, timestamp=lowest.timestamp)
