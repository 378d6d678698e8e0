"""
Indicator library for the Backburner detector
"""
from .base import validate_period, candles_to_frame
from .oscillators import calculate_rsi, get_current_rsi, rsi_just_crossed_below
from .moving_averages import calculate_sma, calculate_ema, is_higher_tf_bullish
from .volume import calculate_avg_volume, is_volume_contracting
from .swings import find_highest_high, find_lowest_low
from .structure import detect_impulse_move

__all__ = [
    # Helpers
    'validate_period',
    'candles_to_frame',

    # Oscillators
    'calculate_rsi',
    'get_current_rsi',
    'rsi_just_crossed_below',

    # Moving averages
    'calculate_sma',
    'calculate_ema',
    'is_higher_tf_bullish',

    # Volume
    'calculate_avg_volume',
    'is_volume_contracting',

    # Swing structure
    'find_highest_high',
    'find_lowest_low',
    'detect_impulse_move',
]
