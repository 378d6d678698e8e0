"""
Tests for terminal rendering
"""

import re

import pytest

from backburner.display import (
    create_progress_bar,
    create_setup_notification,
    create_setups_table,
    create_summary,
    display_symbol,
    format_percent,
    format_rsi,
    format_state,
    sort_setups,
    time_ago,
    _visible_len,
)
from backburner.models import SetupRecord, SetupState, Timeframe

NOW_MS = 1_700_000_000_000
ANSI = re.compile(r'\x1b\[[0-9;]*m')


def plain(text):
    return ANSI.sub('', text)


def make_setup(symbol='FOOUSDT', timeframe=Timeframe.M5, state=SetupState.TRIGGERED,
               rsi=25.0, detected_at=NOW_MS - 120_000, **kwargs):
    values = dict(
        symbol=symbol,
        timeframe=timeframe,
        state=state,
        impulse_high=117.6,
        impulse_low=103.6,
        impulse_start_time=NOW_MS - 3_600_000,
        impulse_end_time=NOW_MS - 1_800_000,
        impulse_percent_move=13.51,
        current_rsi=rsi,
        rsi_at_trigger=rsi,
        current_price=111.2,
        detected_at=detected_at,
        last_updated=detected_at,
        impulse_avg_volume=1000.0,
        pullback_avg_volume=500.0,
        volume_contracting=True,
        entry_price=111.2,
    )
    values.update(kwargs)
    return SetupRecord(**values)


class TestFormatters:
    """Test cell formatters"""

    def test_time_ago(self):
        assert time_ago(NOW_MS - 30_000, NOW_MS) == '30s ago'
        assert time_ago(NOW_MS - 120_000, NOW_MS) == '2m ago'
        assert time_ago(NOW_MS - 3 * 3_600_000, NOW_MS) == '3h ago'
        assert time_ago(NOW_MS - 2 * 86_400_000, NOW_MS) == '2d ago'

    def test_time_ago_future_clamped(self):
        assert time_ago(NOW_MS + 5_000, NOW_MS) == '0s ago'

    def test_format_percent(self):
        assert plain(format_percent(13.514)) == '+13.51%'
        assert plain(format_percent(-2.5)) == '-2.50%'

    def test_format_rsi(self):
        assert plain(format_rsi(28.08)) == '28.1'
        assert plain(format_rsi(15.0)).strip() == '15.0'

    def test_format_state(self):
        assert plain(format_state(SetupState.TRIGGERED)).strip() == 'TRIGGERED'
        assert plain(format_state(SetupState.DEEP_OVERSOLD)).strip() == 'DEEP OVERSOLD'
        assert plain(format_state('bouncing')).strip() == 'BOUNCING'
        assert plain(format_state(SetupState.PLAYED_OUT)) == 'played out'

    def test_display_symbol(self):
        assert display_symbol('BTCUSDT') == 'BTC'

    def test_visible_len_ignores_escapes(self):
        assert _visible_len(format_percent(1.0)) == len('+1.00%')


class TestTable:
    """Test the setups table"""

    def test_empty(self):
        assert 'No active Backburner setups detected.' in plain(create_setups_table([]))

    def test_rows(self):
        table = plain(create_setups_table([make_setup()], now_ms=NOW_MS))

        assert 'FOO' in table
        assert 'TRIGGERED' in table
        assert '25.0' in table
        assert '+13.51%' in table
        assert '0.50' in table
        assert '2m ago' in table

    def test_rows_aligned(self):
        table = create_setups_table(
            [make_setup(), make_setup('BARUSDT', state=SetupState.DEEP_OVERSOLD, rsi=12.0)],
            now_ms=NOW_MS,
        )
        widths = {_visible_len(line) for line in table.split('\n')}
        assert len(widths) == 1

    def test_sort_order(self):
        setups = [
            make_setup('AUSDT', state=SetupState.BOUNCING, rsi=35.0),
            make_setup('BUSDT', state=SetupState.TRIGGERED, rsi=28.0),
            make_setup('CUSDT', state=SetupState.DEEP_OVERSOLD, rsi=15.0),
            make_setup('DUSDT', state=SetupState.TRIGGERED, rsi=22.0),
        ]
        assert [s.symbol for s in sort_setups(setups)] == ['CUSDT', 'DUSDT', 'BUSDT', 'AUSDT']


class TestSummary:
    def test_counts(self):
        setups = [
            make_setup('AUSDT', state=SetupState.TRIGGERED),
            make_setup('BUSDT', state=SetupState.DEEP_OVERSOLD, timeframe=Timeframe.H1),
            make_setup('CUSDT', state=SetupState.BOUNCING),
        ]
        summary = plain(create_summary(setups, 250, True, 'Scanning 5m'))

        assert '250 symbols' in summary
        assert '3 active setups' in summary
        assert 'Scanning 5m' in summary
        assert 'Triggered: 1 | Deep Oversold: 1 | Bouncing: 1' in summary
        assert '5m: 2 | 15m: 0 | 1h: 1' in summary


class TestNotifications:
    def test_new(self):
        text = plain(create_setup_notification(make_setup(), 'new'))
        assert 'NEW: FOO 5m' in text
        assert 'TRIGGERED' in text

    def test_updated(self):
        text = plain(create_setup_notification(make_setup(state=SetupState.BOUNCING), 'updated'))
        assert 'UPDATE: FOO' in text
        assert 'BOUNCING' in text

    def test_removed(self):
        text = plain(create_setup_notification(make_setup(state=SetupState.PLAYED_OUT), 'removed'))
        assert 'REMOVED: FOO 5m - Setup played out' in text

    def test_unknown_event(self):
        assert create_setup_notification(make_setup(), 'other') == ''


class TestProgressBar:
    def test_half(self):
        bar = plain(create_progress_bar(50, 100, 'Scanning 5m'))
        assert '50% | Scanning 5m' in bar
        assert bar.count('█') == 20

    def test_zero_total(self):
        assert '100%' in plain(create_progress_bar(0, 0, 'Loading symbols'))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
