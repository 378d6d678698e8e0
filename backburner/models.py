"""
Backburner Data Structures

Candles, oscillator samples, structural moves and the mutable setup record
owned by the detector. Enums are string-valued so they serialize as-is.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Dict, Any


# ═══════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════

class Timeframe(str, Enum):
    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"

    @property
    def mexc_interval(self) -> str:
        """Interval string understood by the MEXC klines endpoint"""
        return MEXC_INTERVAL[self]

    @property
    def higher(self) -> Optional["Timeframe"]:
        """Coarser timeframe used for trend confirmation (None for 1d)"""
        return HIGHER_TIMEFRAME.get(self)


MEXC_INTERVAL = {
    Timeframe.M5: "5m",
    Timeframe.M15: "15m",
    Timeframe.H1: "60m",
    Timeframe.H4: "4h",
    Timeframe.D1: "1d",
}

HIGHER_TIMEFRAME = {
    Timeframe.M5: Timeframe.H1,
    Timeframe.M15: Timeframe.H4,
    Timeframe.H1: Timeframe.D1,
    Timeframe.H4: Timeframe.D1,
}


class SetupState(str, Enum):
    WATCHING = "watching"            # never stored
    TRIGGERED = "triggered"          # first RSI < oversold after impulse
    DEEP_OVERSOLD = "deep_oversold"  # RSI < deep threshold
    BOUNCING = "bouncing"            # recovered above oversold
    PLAYED_OUT = "played_out"        # terminal, removed from live set


ACTIONABLE_STATES = (SetupState.TRIGGERED, SetupState.DEEP_OVERSOLD)


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


# ═══════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Candle:
    """One OHLCV bar. Timestamp is the open time in ms since epoch."""
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class OscillatorSample:
    value: float
    timestamp: int


@dataclass(frozen=True)
class Extremum:
    """Highest high / lowest low found in a candle window."""
    price: float
    index: int
    timestamp: int


@dataclass(frozen=True)
class StructuralMove:
    """
    A directional impulse inside a candle window.

    Indices are positions within the window the move was detected in.
    """
    start_index: int
    end_index: int
    start_price: float
    end_price: float
    percent_move: float
    direction: Direction


@dataclass
class SetupRecord:
    """A live Backburner setup for one (symbol, timeframe) key."""
    symbol: str
    timeframe: Timeframe
    state: SetupState

    # Impulse
    impulse_high: float
    impulse_low: float
    impulse_start_time: int
    impulse_end_time: int
    impulse_percent_move: float

    # RSI / price
    current_rsi: float
    rsi_at_trigger: float
    current_price: float

    # Lifecycle (ms since epoch)
    detected_at: int
    last_updated: int

    # Volume
    impulse_avg_volume: float
    pullback_avg_volume: float
    volume_contracting: bool

    entry_price: Optional[float] = None
    triggered_at: Optional[int] = None
    higher_tf_bullish: Optional[bool] = None

    @property
    def key(self) -> str:
        return setup_key(self.symbol, self.timeframe)

    @property
    def pullback_percent(self) -> float:
        """Distance of current price below the impulse high, in percent"""
        return (self.current_price - self.impulse_high) / self.impulse_high * 100

    @property
    def volume_ratio(self) -> Optional[float]:
        if self.impulse_avg_volume <= 0:
            return None
        return self.pullback_avg_volume / self.impulse_avg_volume

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data = asdict(self)
        data['timeframe'] = self.timeframe.value
        data['state'] = self.state.value
        return data


def setup_key(symbol: str, timeframe: Timeframe) -> str:
    """Unique key for a setup"""
    return f"{symbol}-{Timeframe(timeframe).value}"
