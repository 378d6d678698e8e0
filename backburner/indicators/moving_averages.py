"""
Moving Average Indicators

SMA/EMA over flat numeric sequences, and the SMA-based higher timeframe
trend filter.
"""

from typing import List, Sequence
import pandas as pd

from ..models import Candle
from .base import validate_period, candles_to_frame


def calculate_sma(values: Sequence[float], period: int) -> List[float]:
    """
    Simple Moving Average.

    Returns one trailing mean per full window, so len(values) - period + 1
    values (empty if there are fewer than `period` values).
    """
    validate_period(period, min_period=1)

    if len(values) < period:
        return []

    sma = pd.Series(values, dtype='float64').rolling(window=period).mean()
    return sma.iloc[period - 1:].tolist()


def calculate_ema(values: Sequence[float], period: int) -> List[float]:
    """
    Exponential Moving Average.

    Seeded with the SMA of the first `period` values, then smoothed with
    multiplier 2 / (period + 1). The first output corresponds to
    values[period - 1].
    """
    validate_period(period, min_period=1)

    if len(values) < period:
        return []

    seed = sum(values[:period]) / period
    seeded = pd.Series([seed] + list(values[period:]), dtype='float64')

    ema = seeded.ewm(alpha=2 / (period + 1), adjust=False).mean()
    return ema.tolist()


def is_higher_tf_bullish(candles: Sequence[Candle], sma_period: int = 20) -> bool:
    """
    Determine higher timeframe trend direction.

    Bullish when the latest close is above its `sma_period` SMA.
    """
    if len(candles) < sma_period:
        return False

    closes = candles_to_frame(candles)['close']
    sma = closes.rolling(window=sma_period).mean()

    return bool(closes.iloc[-1] > sma.iloc[-1])
