"""
Tests for the Indicator Library

Tests RSI, moving averages, volume aggregates and swing extrema.
"""

import pytest
import numpy as np

from backburner.indicators import (
    calculate_rsi,
    get_current_rsi,
    rsi_just_crossed_below,
    calculate_sma,
    calculate_ema,
    is_higher_tf_bullish,
    calculate_avg_volume,
    is_volume_contracting,
    find_highest_high,
    find_lowest_low,
    validate_period,
    candles_to_frame,
)
from backburner.models import Candle, OscillatorSample


@pytest.fixture
def sample_data(make_candles):
    """Random-walk candles for range/determinism checks"""
    np.random.seed(42)
    n = 100
    closes = list(np.cumsum(np.random.randn(n)) + 100)
    volumes = list(np.random.randint(1000, 10000, n).astype(float))
    return make_candles(closes, volumes)


class TestRSI:
    """Test Wilder RSI"""

    def test_rsi_rising_series_is_100(self, make_candles):
        """Strictly rising closes have zero average loss"""
        candles = make_candles([100 + i for i in range(40)])
        values = calculate_rsi(candles, 14)

        assert len(values) == 40 - 14
        assert all(v.value == 100 for v in values)

    def test_rsi_falling_series_is_0(self, make_candles):
        """Strictly falling closes have zero average gain"""
        candles = make_candles([200 - i for i in range(40)])
        values = calculate_rsi(candles, 14)

        assert values[-1].value == pytest.approx(0.0)

    def test_rsi_single_sample_for_period_plus_one(self, make_candles):
        """period=14 with 15 candles gives exactly one sample"""
        candles = make_candles([100 + (i % 3) for i in range(15)])
        values = calculate_rsi(candles, 14)

        assert len(values) == 1
        assert values[0].timestamp == candles[14].timestamp

    def test_rsi_not_enough_data(self, make_candles):
        """Fewer than period + 1 candles gives no samples"""
        candles = make_candles([100 + i for i in range(14)])
        assert calculate_rsi(candles, 14) == []
        assert get_current_rsi(candles, 14) is None

    def test_rsi_range(self, sample_data):
        """RSI stays within 0-100"""
        values = [s.value for s in calculate_rsi(sample_data, 14)]
        assert min(values) >= 0
        assert max(values) <= 100

    def test_rsi_deterministic(self, sample_data):
        """Same input gives bit-identical output"""
        first = calculate_rsi(sample_data, 14)
        second = calculate_rsi(list(sample_data), 14)
        assert first == second

    def test_rsi_wilder_smoothing(self, make_candles):
        """Second sample follows (avg * (p - 1) + x) / p"""
        # period 2: changes +2, -1, +1
        candles = make_candles([10, 12, 11, 12])
        values = calculate_rsi(candles, 2)

        # seed: gain 1.0, loss 0.5 -> RS 2
        assert values[0].value == pytest.approx(100 - 100 / 3)
        # gain (1.0 + 1) / 2 = 1.0, loss (0.5 + 0) / 2 = 0.25 -> RS 4
        assert values[1].value == pytest.approx(80.0)

    def test_current_rsi_is_last_sample(self, sample_data):
        assert get_current_rsi(sample_data, 14) == calculate_rsi(sample_data, 14)[-1].value

    def test_rsi_period_validation(self, make_candles):
        with pytest.raises(ValueError):
            calculate_rsi(make_candles([1, 2, 3]), 0)


class TestRSICross:
    """Test rsi_just_crossed_below"""

    @staticmethod
    def samples(values):
        return [OscillatorSample(v, i) for i, v in enumerate(values)]

    def test_crossed_below(self):
        assert rsi_just_crossed_below(self.samples([50, 45, 35, 28]), 30)

    def test_already_below(self):
        assert not rsi_just_crossed_below(self.samples([50, 25, 22, 21]), 30)

    def test_not_below(self):
        assert not rsi_just_crossed_below(self.samples([50, 45, 35, 31]), 30)

    def test_not_enough_samples(self):
        assert not rsi_just_crossed_below(self.samples([35, 25]), 30)


class TestMovingAverages:
    """Test SMA / EMA"""

    def test_sma_calculation(self):
        assert calculate_sma([1, 2, 3, 4, 5], 3) == pytest.approx([2, 3, 4])

    def test_sma_not_enough_data(self):
        assert calculate_sma([1, 2], 3) == []

    def test_ema_seeded_with_sma(self):
        """EMA starts at the SMA of the first period values"""
        assert calculate_ema([1, 2, 3, 4, 5], 3) == pytest.approx([2, 3, 4])

    def test_ema_multiplier(self):
        """EMA uses 2 / (period + 1)"""
        result = calculate_ema([2, 4, 6, 10], 3)
        # seed 4, then (10 - 4) * 0.5 + 4 = 7
        assert result == pytest.approx([4, 7])

    def test_ema_different_from_sma(self, sample_data):
        closes = [c.close for c in sample_data]
        sma = calculate_sma(closes, 20)
        ema = calculate_ema(closes, 20)

        assert len(sma) == len(ema)
        assert not np.array_equal(sma[-10:], ema[-10:])

    def test_sma_period_validation(self):
        with pytest.raises(ValueError):
            calculate_sma([1, 2, 3], 0)


class TestHigherTimeframeTrend:
    """Test the SMA-20 trend filter"""

    def test_bullish(self, rising_candles):
        assert is_higher_tf_bullish(rising_candles) is True

    def test_bearish(self, make_candles):
        candles = make_candles([100 - i for i in range(30)])
        assert is_higher_tf_bullish(candles) is False

    def test_not_enough_data(self, make_candles):
        candles = make_candles([100 + i for i in range(19)])
        assert is_higher_tf_bullish(candles) is False


class TestVolume:
    """Test volume aggregates"""

    def test_avg_volume_trailing_window(self, make_candles):
        candles = make_candles([1, 2, 3, 4], volumes=[100, 200, 300, 400])
        assert calculate_avg_volume(candles, 2) == pytest.approx(350)

    def test_avg_volume_fewer_than_period(self, make_candles):
        candles = make_candles([1, 2, 3], volumes=[100, 200, 300])
        assert calculate_avg_volume(candles, 10) == pytest.approx(200)

    def test_avg_volume_empty(self):
        assert calculate_avg_volume([], 10) == 0.0

    def test_volume_contracting(self, make_candles):
        impulse = make_candles([1, 2], volumes=[1000, 1000])
        assert is_volume_contracting(impulse, make_candles([2, 1], volumes=[700, 700]))
        # exactly 80% is not contracting
        assert not is_volume_contracting(impulse, make_candles([2, 1], volumes=[800, 800]))

    def test_volume_contracting_empty(self, make_candles):
        assert not is_volume_contracting([], make_candles([1], volumes=[1]))
        assert not is_volume_contracting(make_candles([1], volumes=[1]), [])


class TestExtrema:
    """Test swing extrema search"""

    def test_highest_high(self, make_candles):
        candles = make_candles([10, 12, 15, 11])
        result = find_highest_high(candles)

        assert result.price == 15
        assert result.index == 2
        assert result.timestamp == candles[2].timestamp

    def test_lowest_low(self, make_candles):
        candles = make_candles([10, 8, 9, 12])
        result = find_lowest_low(candles)

        assert result.price == 8
        assert result.index == 1

    def test_ties_resolve_to_first(self):
        candles = [
            Candle(1, 10, 20, 5, 15, 1),
            Candle(2, 15, 20, 5, 10, 1),
        ]
        assert find_highest_high(candles).index == 0
        assert find_lowest_low(candles).index == 0

    def test_empty_window(self):
        with pytest.raises(ValueError):
            find_highest_high([])


class TestHelpers:
    def test_validate_period(self):
        assert validate_period(14) == 14
        with pytest.raises(ValueError):
            validate_period(1)
        with pytest.raises(ValueError):
            validate_period(2.5)

    def test_candles_to_frame(self, make_candles):
        df = candles_to_frame(make_candles([1, 2, 3]))
        assert list(df.columns) == ['timestamp', 'open', 'high', 'low', 'close', 'volume']
        assert len(df) == 3
        assert df['close'].tolist() == [1, 2, 3]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
