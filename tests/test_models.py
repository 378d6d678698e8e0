"""
Tests for data structures
"""

import pytest

from backburner.models import SetupRecord, SetupState, Timeframe, setup_key


class TestTimeframe:
    def test_mexc_interval(self):
        assert Timeframe.M5.mexc_interval == '5m'
        assert Timeframe.H1.mexc_interval == '60m'
        assert Timeframe.D1.mexc_interval == '1d'

    def test_higher(self):
        assert Timeframe.M5.higher == Timeframe.H1
        assert Timeframe.M15.higher == Timeframe.H4
        assert Timeframe.H1.higher == Timeframe.D1
        assert Timeframe.H4.higher == Timeframe.D1
        assert Timeframe.D1.higher is None

    def test_from_string(self):
        assert Timeframe('15m') is Timeframe.M15
        with pytest.raises(ValueError):
            Timeframe('2h')


class TestSetupRecord:
    @pytest.fixture
    def record(self):
        return SetupRecord(
            symbol='FOOUSDT',
            timeframe=Timeframe.M15,
            state=SetupState.DEEP_OVERSOLD,
            impulse_high=120.0,
            impulse_low=100.0,
            impulse_start_time=1,
            impulse_end_time=2,
            impulse_percent_move=20.0,
            current_rsi=18.0,
            rsi_at_trigger=18.0,
            current_price=108.0,
            detected_at=3,
            last_updated=3,
            impulse_avg_volume=0.0,
            pullback_avg_volume=10.0,
            volume_contracting=False,
        )

    def test_key(self, record):
        assert record.key == 'FOOUSDT-15m'
        assert setup_key('FOOUSDT', '15m') == record.key

    def test_pullback_percent(self, record):
        assert record.pullback_percent == pytest.approx(-10.0)

    def test_volume_ratio_without_impulse_volume(self, record):
        assert record.volume_ratio is None

    def test_to_dict(self, record):
        data = record.to_dict()

        assert data['timeframe'] == '15m'
        assert data['state'] == 'deep_oversold'
        assert data['entry_price'] is None
        assert data['higher_tf_bullish'] is None


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
