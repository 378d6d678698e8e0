"""
Structural Move Detection

Finds a significant directional impulse within the most recent
`lookback_period` candles.
"""

from typing import Optional, Sequence

from ..models import Candle, Direction, StructuralMove
from .swings import find_highest_high, find_lowest_low


def detect_impulse_move(
    candles: Sequence[Candle],
    min_percent_move: float,
    lookback_period: int = 50
) -> Optional[StructuralMove]:
    """
    Detect if there was a significant impulse move.

    An upward impulse has its highest high after its lowest low, measured
    relative to the low. A downward impulse has its lowest low after its
    highest high, measured relative to the high. Only the direction implied
    by the extrema ordering is evaluated.

    Args:
        candles: Candles, oldest first
        min_percent_move: Minimum move in percent for the impulse to qualify
        lookback_period: Number of most recent candles to search

    Returns:
        StructuralMove with indices relative to candles[-lookback_period:],
        or None if there is not enough data or no qualifying move
    """
    if lookback_period <= 0 or len(candles) < lookback_period:
        return None

    window = candles[-lookback_period:]
    highest = find_highest_high(window)
    lowest = find_lowest_low(window)

    if highest.index > lowest.index:
        percent_move = (highest.price - lowest.price) / lowest.price * 100
        if percent_move >= min_percent_move:
            return StructuralMove(
                start_index=lowest.index,
                end_index=highest.index,
                start_price=lowest.price,
                end_price=highest.price,
                percent_move=percent_move,
                direction=Direction.UP,
            )

    elif lowest.index > highest.index:
        percent_move = (highest.price - lowest.price) / highest.price * 100
        if percent_move >= min_percent_move:
            return StructuralMove(
                start_index=highest.index,
                end_index=lowest.index,
                start_price=highest.price,
                end_price=lowest.price,
                percent_move=percent_move,
                direction=Direction.DOWN,
            )

    return None
