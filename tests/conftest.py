"""Shared fixtures: synthetic candle series for detector tests"""

import pytest

from backburner.models import Candle

BASE_TS = 1_700_000_000_000
STEP_MS = 5 * 60 * 1000


def build_candles(closes, volumes=None, start_ts=BASE_TS, step_ms=STEP_MS):
    """
    Build candles from closes. Each candle opens at the previous close, so
    high/low are just the larger/smaller of open and close.
    """
    candles = []
    prev_close = closes[0]
    for i, close in enumerate(closes):
        open_price = prev_close
        candles.append(Candle(
            timestamp=start_ts + i * step_ms,
            open=open_price,
            high=max(open_price, close),
            low=min(open_price, close),
            close=close,
            volume=volumes[i] if volumes is not None else 1000.0,
        ))
        prev_close = close
    return candles


def backburner_closes(final_drop=2.2):
    """
    60 closes: +0.4 per bar for 45 bars (100 -> 117.6), 14 bars of -0.3
    (RSI eases to ~42), then one drop of `final_drop` (2.2 puts RSI at ~28).
    """
    closes = [100 + 0.4 * i for i in range(45)]
    for _ in range(14):
        closes.append(closes[-1] - 0.3)
    closes.append(closes[-1] - final_drop)
    return closes


def backburner_volumes():
    """Heavy volume on the way up, light on the pullback"""
    return [1000.0] * 45 + [500.0] * 15


@pytest.fixture
def make_candles():
    return build_candles


@pytest.fixture
def backburner_closes_fn():
    return backburner_closes


@pytest.fixture
def backburner_candles():
    """Series whose last bar is the first oversold RSI after a ~13.5% impulse"""
    return build_candles(backburner_closes(), backburner_volumes())


@pytest.fixture
def extend_candles():
    """Append closes to an existing series, continuing its timestamps"""
    def extend(candles, closes, volume=500.0):
        extra = build_candles(
            [candles[-1].close] + list(closes),
            start_ts=candles[-1].timestamp,
        )[1:]
        return list(candles) + [
            Candle(c.timestamp, c.open, c.high, c.low, c.close, volume) for c in extra
        ]
    return extend


@pytest.fixture
def rising_candles():
    """Steadily rising series, bullish on any SMA"""
    return build_candles([50 + i for i in range(30)], step_ms=60 * 60 * 1000)
