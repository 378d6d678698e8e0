"""
Indicator Helpers

Shared validation and conversion used by all indicator functions.
"""

from typing import Sequence
import pandas as pd

from ..models import Candle

CANDLE_COLUMNS = ['timestamp', 'open', 'high', 'low', 'close', 'volume']


def validate_period(period: int, min_period: int = 2) -> int:
    """Validate period parameter"""
    if isinstance(period, bool) or not isinstance(period, int):
        raise ValueError(f"Period must be integer, got {type(period)}")

    if period < min_period:
        raise ValueError(f"Period must be >= {min_period}, got {period}")

    return period


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """
    Convert a candle sequence to a DataFrame.

    Args:
        candles: Candles, oldest first

    Returns:
        DataFrame with columns: timestamp, open, high, low, close, volume
    """
    return pd.DataFrame(
        [
            (c.timestamp, c.open, c.high, c.low, c.close, c.volume)
            for c in candles
        ],
        columns=CANDLE_COLUMNS,
    )
