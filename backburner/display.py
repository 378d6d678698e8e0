"""
Terminal Display

Renders live setups, a summary line, change notifications and a progress bar
as ANSI-coloured strings for the terminal screener.
"""

import sys
import time
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from .models import SetupRecord, SetupState, Timeframe

RESET = '\x1b[0m'
BOLD = '\x1b[1m'
STRIKE = '\x1b[9m'
GRAY = '\x1b[90m'
RED = '\x1b[31m'
GREEN = '\x1b[32m'
YELLOW = '\x1b[33m'
BLUE = '\x1b[34m'
MAGENTA = '\x1b[35m'
CYAN = '\x1b[36m'
WHITE = '\x1b[37m'
BG_RED = '\x1b[41m'
BG_GREEN = '\x1b[42m'
BG_YELLOW = '\x1b[43m'
BLACK = '\x1b[30m'

STATE_PRIORITY = {
    SetupState.DEEP_OVERSOLD: 0,
    SetupState.TRIGGERED: 1,
    SetupState.BOUNCING: 2,
    SetupState.WATCHING: 3,
    SetupState.PLAYED_OUT: 4,
}

TIMEFRAME_COLORS = {
    Timeframe.M5: CYAN,
    Timeframe.M15: BLUE,
    Timeframe.H1: MAGENTA,
    Timeframe.H4: YELLOW,
    Timeframe.D1: RED,
}

COLUMNS = [
    ('Symbol', 12),
    ('TF', 6),
    ('State', 16),
    ('RSI', 8),
    ('Price', 14),
    ('Impulse', 10),
    ('Vol Ratio', 10),
    ('HTF', 6),
    ('Detected', 12),
]


def color(text: str, *codes: str) -> str:
    return f"{''.join(codes)}{text}{RESET}"


def _visible_len(text: str) -> int:
    """Length without ANSI escape sequences"""
    length = 0
    in_escape = False
    for ch in text:
        if ch == '\x1b':
            in_escape = True
        elif in_escape:
            if ch == 'm':
                in_escape = False
        else:
            length += 1
    return length


def _pad(text: str, width: int) -> str:
    return text + ' ' * max(0, width - _visible_len(text))


def time_ago(timestamp_ms: int, now_ms: Optional[int] = None) -> str:
    """Format time elapsed since a ms timestamp"""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    seconds = max(0, (now_ms - timestamp_ms) // 1000)

    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def format_percent(value: float, inverse: bool = False) -> str:
    formatted = f"{'+' if value >= 0 else ''}{value:.2f}%"
    positive = value >= 0
    if inverse:
        positive = not positive
    return color(formatted, GREEN if positive else RED)


def format_rsi(rsi: float) -> str:
    formatted = f"{rsi:.1f}"
    if rsi < 20:
        return color(f" {formatted} ", BG_RED, WHITE, BOLD)
    if rsi < 30:
        return color(formatted, RED, BOLD)
    if rsi < 40:
        return color(formatted, YELLOW)
    if rsi > 70:
        return color(formatted, GREEN, BOLD)
    return formatted


def format_state(state: SetupState) -> str:
    state = SetupState(state)
    if state == SetupState.TRIGGERED:
        return color(' TRIGGERED ', BG_GREEN, BLACK, BOLD)
    if state == SetupState.DEEP_OVERSOLD:
        return color(' DEEP OVERSOLD ', BG_RED, WHITE, BOLD)
    if state == SetupState.BOUNCING:
        return color(' BOUNCING ', BG_YELLOW, BLACK)
    if state == SetupState.WATCHING:
        return color('watching', GRAY)
    return color('played out', STRIKE, GRAY)


def format_timeframe(timeframe: Timeframe) -> str:
    timeframe = Timeframe(timeframe)
    return color(timeframe.value, TIMEFRAME_COLORS.get(timeframe, WHITE))


def format_htf(higher_tf_bullish: Optional[bool]) -> str:
    if higher_tf_bullish is None:
        return color('-', GRAY)
    return color('↑', GREEN) if higher_tf_bullish else color('↓', RED)


def display_symbol(symbol: str) -> str:
    return symbol.replace('USDT', '')


def sort_setups(setups: Iterable[SetupRecord]) -> List[SetupRecord]:
    """Most urgent first: by state priority, then lowest RSI"""
    return sorted(setups, key=lambda s: (STATE_PRIORITY[s.state], s.current_rsi))


def create_setups_table(setups: Sequence[SetupRecord], now_ms: Optional[int] = None) -> str:
    """Create the main display table for setups"""
    if not setups:
        return color('\n  No active Backburner setups detected.\n', GRAY)

    border = color('+' + '+'.join('-' * w for _, w in COLUMNS) + '+', GRAY)
    sep = color('|', GRAY)

    def row(cells: List[str]) -> str:
        padded = [_pad(' ' + cell, width) for cell, (_, width) in zip(cells, COLUMNS)]
        return sep + sep.join(padded) + sep

    lines = [border, row([color(name, WHITE, BOLD) for name, _ in COLUMNS]), border]

    for setup in sort_setups(setups):
        ratio = setup.volume_ratio
        ratio_text = f"{ratio:.2f}" if ratio is not None else 'N/A'

        lines.append(row([
            color(display_symbol(setup.symbol), WHITE, BOLD),
            format_timeframe(setup.timeframe),
            format_state(setup.state),
            format_rsi(setup.current_rsi),
            f"{setup.current_price:.6g}",
            format_percent(setup.impulse_percent_move),
            color(ratio_text, GREEN if setup.volume_contracting else YELLOW),
            format_htf(setup.higher_tf_bullish),
            time_ago(setup.detected_at, now_ms),
        ]))

    lines.append(border)
    return '\n'.join(lines)


def create_summary(
    setups: Sequence[SetupRecord],
    eligible_symbols: int,
    is_scanning: bool,
    status_message: str = '',
    timeframes: Sequence[Timeframe] = (Timeframe.M5, Timeframe.M15, Timeframe.H1)
) -> str:
    """Create the summary block shown above the table"""
    def count_state(state: SetupState) -> int:
        return sum(1 for s in setups if s.state == state)

    by_timeframe = ' | '.join(
        f"{Timeframe(tf).value}: {sum(1 for s in setups if s.timeframe == Timeframe(tf))}"
        for tf in timeframes
    )

    status_icon = color('●', GREEN) if is_scanning else color('○', RED)
    timestamp = datetime.now().strftime('%H:%M:%S')
    status = f" | {status_message}" if status_message else ''

    lines = [
        '',
        f"{status_icon} {color('Backburner Screener', BOLD)} | {eligible_symbols} symbols | "
        f"{len(setups)} active setups",
        color(f"  Last update: {timestamp}{status}", GRAY),
        '',
        color(
            f"  Triggered: {count_state(SetupState.TRIGGERED)} | "
            f"Deep Oversold: {count_state(SetupState.DEEP_OVERSOLD)} | "
            f"Bouncing: {count_state(SetupState.BOUNCING)}",
            GRAY,
        ),
        color(f"  {by_timeframe}", GRAY),
        '',
    ]
    return '\n'.join(lines)


def create_setup_notification(setup: SetupRecord, event_type: str) -> str:
    """Create a one-line notification for a new / updated / removed setup"""
    symbol = color(display_symbol(setup.symbol), BOLD)
    tf = format_timeframe(setup.timeframe)
    rsi = format_rsi(setup.current_rsi)

    if event_type == 'new':
        return color(f"\n✦ NEW: {symbol} {tf} - RSI {rsi} - {format_state(setup.state)}\n", GREEN)
    if event_type == 'updated':
        return color(f"\n⟳ UPDATE: {symbol} {tf} - RSI {rsi} - {format_state(setup.state)}\n", YELLOW)
    if event_type == 'removed':
        return color(f"\n✗ REMOVED: {symbol} {tf} - Setup played out\n", GRAY)
    return ''


def create_header() -> str:
    bar = '═' * 66
    return '\n'.join([
        '',
        color(f"╔{bar}╗", CYAN, BOLD),
        color('║', CYAN, BOLD) + _pad(
            f"  {color('BACKBURNER SCREENER', WHITE, BOLD)} - {color('First oversold after impulse, MEXC spot', GRAY)}",
            66,
        ) + color('║', CYAN, BOLD),
        color(f"╠{bar}╣", CYAN, BOLD),
        color('║', CYAN, BOLD) + _pad(
            f"  {color('Entry: first RSI < 30 after an impulse | Add: RSI < 20', GRAY)}",
            66,
        ) + color('║', CYAN, BOLD),
        color(f"╚{bar}╝", CYAN, BOLD),
        '',
    ])


def create_progress_bar(completed: int, total: int, phase: str, bar_length: int = 40) -> str:
    fraction = completed / total if total > 0 else 1.0
    filled = int(bar_length * fraction)
    bar = color('█' * filled, GREEN) + color('░' * (bar_length - filled), GRAY)
    return f"\n  {bar} {int(fraction * 100)}% | {phase}\n"


def clear_screen():
    sys.stdout.write('\x1b[2J\x1b[H')
    sys.stdout.flush()
