"""
Oscillator Indicators

Wilder-smoothed RSI over a candle series.
"""

from typing import List, Optional, Sequence

from ..models import Candle, OscillatorSample
from .base import validate_period


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def calculate_rsi(candles: Sequence[Candle], period: int = 14) -> List[OscillatorSample]:
    """
    Relative Strength Index using Wilder's smoothing.

    The first average gain/loss is the simple mean of the first `period`
    close-to-close changes; each later average is (avg * (period - 1) + x) / period.
    Range: 0-100, 100 when the average loss is exactly zero.

    Args:
        candles: Candles, oldest first
        period: Number of bars for RSI calculation (default: 14)

    Returns:
        One sample per candle from index `period` onward, or an empty list
        if fewer than period + 1 candles are supplied
    """
    validate_period(period, min_period=1)

    if len(candles) < period + 1:
        return []

    gains: List[float] = []
    losses: List[float] = []
    for i in range(1, len(candles)):
        change = candles[i].close - candles[i - 1].close
        gains.append(change if change > 0 else 0.0)
        losses.append(-change if change < 0 else 0.0)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    results = [OscillatorSample(_rsi_value(avg_gain, avg_loss), candles[period].timestamp)]

    for i in range(period, len(gains)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        results.append(OscillatorSample(_rsi_value(avg_gain, avg_loss), candles[i + 1].timestamp))

    return results


def get_current_rsi(candles: Sequence[Candle], period: int = 14) -> Optional[float]:
    """Most recent RSI value, or None if there is not enough data"""
    values = calculate_rsi(candles, period)
    if not values:
        return None
    return values[-1].value


def rsi_just_crossed_below(
    samples: Sequence[OscillatorSample],
    threshold: float,
    lookback: int = 3
) -> bool:
    """
    Check if RSI just crossed below a threshold.

    True when the latest sample is below the threshold and at least one of
    the other samples in the last `lookback` was at or above it.
    """
    if len(samples) < lookback + 1:
        return False

    recent = samples[-lookback:]
    if recent[-1].value >= threshold:
        return False

    return any(s.value >= threshold for s in recent[:-1])
