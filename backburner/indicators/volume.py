"""
Volume Indicators

Average volume over a trailing window and pullback volume contraction.
"""

from typing import Sequence
import numpy as np

from ..models import Candle

# Pullback volume must be below this fraction of impulse volume
CONTRACTION_RATIO = 0.8


def _mean_volume(candles: Sequence[Candle]) -> float:
    return float(np.mean([c.volume for c in candles]))


def calculate_avg_volume(candles: Sequence[Candle], period: int) -> float:
    """
    Average volume of the last `period` candles.

    Uses every candle when fewer than `period` are available; 0.0 when
    there are none.
    """
    if not candles:
        return 0.0

    if len(candles) < period:
        return _mean_volume(candles)

    return _mean_volume(candles[-period:])


def is_volume_contracting(
    impulse_candles: Sequence[Candle],
    pullback_candles: Sequence[Candle],
    ratio: float = CONTRACTION_RATIO
) -> bool:
    """Check if volume dried up during the pullback relative to the impulse"""
    if not impulse_candles or not pullback_candles:
        return False

    return _mean_volume(pullback_candles) < _mean_volume(impulse_candles) * ratio
