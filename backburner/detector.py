"""
Backburner Setup Detector

Stateful pattern matcher for the "Backburner" setup:
1. A strong upward impulse move within the lookback window
2. The FIRST oversold RSI reading after that impulse (RSI < 30)
3. That first oversold is the high-probability bounce entry

Holds at most one live setup per (symbol, timeframe) and advances it through
watching -> triggered / deep_oversold -> bouncing -> played_out as new candle
data arrives. Played-out setups are dropped from the live set immediately.

Evaluations for the same key must not run concurrently; the caller is
responsible for that. The live set itself is lock-protected so different
keys can be evaluated from different threads.
"""

import logging
import threading
import time
from collections import Counter
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence

from .config import DetectorConfig
from .indicators import (
    calculate_rsi,
    calculate_avg_volume,
    detect_impulse_move,
    is_higher_tf_bullish,
    is_volume_contracting,
)
from .models import (
    ACTIONABLE_STATES,
    Candle,
    Direction,
    OscillatorSample,
    SetupRecord,
    SetupState,
    Timeframe,
    setup_key,
)

logger = logging.getLogger(__name__)

MIN_CANDLES = 50
MIN_RSI_SAMPLES = 5

# Price back within 1% of the impulse high counts as target reached
TARGET_RECOVERY_RATIO = 0.99

# RSI levels that complete the bounce
BOUNCE_COMPLETE_FROM_TRIGGER_RSI = 40
BOUNCE_COMPLETE_RSI = 50


def _now_ms() -> int:
    return int(time.time() * 1000)


class BackburnerDetector:
    """
    Detects and tracks Backburner setups.

    Key principles:
    - Only the FIRST oversold after the impulse is valid
    - Volume should contract during the pullback
    - Higher timeframe trend should remain bullish (reported, not enforced)
    """

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        clock: Optional[Callable[[], int]] = None,
        **overrides
    ):
        """
        Initialize detector.

        Args:
            config: Detector thresholds (default: DetectorConfig())
            clock: Callable returning the current time in ms (default: wall clock)
            **overrides: Individual DetectorConfig fields to override
        """
        config = config or DetectorConfig()
        self.config = config.with_overrides(**overrides) if overrides else config
        self._clock = clock or _now_ms

        self._active_setups: Dict[str, SetupRecord] = {}
        self._lock = threading.Lock()

        # Statistics
        self.total_evaluations = 0
        self.total_created = 0
        self.total_played_out = 0

        logger.info(
            f"BackburnerDetector initialized (RSI {self.config.rsi_period}, "
            f"oversold < {self.config.rsi_oversold_threshold}, "
            f"deep < {self.config.rsi_deep_oversold_threshold}, "
            f"impulse >= {self.config.min_impulse_percent}% "
            f"over {self.config.lookback_period} bars)"
        )

    # ── Evaluation ──

    def analyze_symbol(
        self,
        symbol: str,
        timeframe: Timeframe,
        candles: Sequence[Candle],
        higher_tf_candles: Optional[Sequence[Candle]] = None
    ) -> Optional[SetupRecord]:
        """
        Analyze candles and detect/update the setup for (symbol, timeframe).

        Args:
            symbol: Instrument symbol (e.g., 'BTCUSDT')
            timeframe: Timeframe of `candles`
            candles: Candles, oldest first
            higher_tf_candles: Optional coarser candles for trend confirmation

        Returns:
            Snapshot of the new or updated setup (its final state if it just
            played out), or None if there is no setup or not enough data
        """
        if len(candles) < MIN_CANDLES:
            return None

        timeframe = Timeframe(timeframe)
        rsi_values = calculate_rsi(candles, self.config.rsi_period)

        if len(rsi_values) < MIN_RSI_SAMPLES:
            return None

        current_rsi = rsi_values[-1].value
        current_price = candles[-1].close

        higher_tf_bullish = (
            is_higher_tf_bullish(higher_tf_candles)
            if higher_tf_candles is not None
            else None
        )

        key = setup_key(symbol, timeframe)

        with self._lock:
            self.total_evaluations += 1
            existing = self._active_setups.get(key)

            if existing is not None:
                setup = self._update_existing_setup(
                    key, existing, current_rsi, current_price, higher_tf_bullish
                )
            else:
                setup = self._detect_new_setup(
                    key, symbol, timeframe, candles, rsi_values,
                    current_rsi, current_price, higher_tf_bullish
                )

            return replace(setup) if setup is not None else None

    def _detect_new_setup(
        self,
        key: str,
        symbol: str,
        timeframe: Timeframe,
        candles: Sequence[Candle],
        rsi_values: List[OscillatorSample],
        current_rsi: float,
        current_price: float,
        higher_tf_bullish: Optional[bool]
    ) -> Optional[SetupRecord]:
        cfg = self.config

        # Step 1: upward impulse (long setups only)
        impulse = detect_impulse_move(candles, cfg.min_impulse_percent, cfg.lookback_period)
        if impulse is None or impulse.direction != Direction.UP:
            return None

        # Step 2: pulling back, structure intact
        if current_price >= impulse.end_price:
            return None
        if current_price <= impulse.start_price:
            return None

        window = candles[-cfg.lookback_period:]
        impulse_start = window[impulse.start_index]
        impulse_end = window[impulse.end_index]

        # Step 3: first oversold since the impulse high
        if not self._is_first_oversold_after_impulse(rsi_values, impulse_end.timestamp):
            return None

        if current_rsi < cfg.rsi_deep_oversold_threshold:
            state = SetupState.DEEP_OVERSOLD
        elif current_rsi < cfg.rsi_oversold_threshold:
            state = SetupState.TRIGGERED
        else:
            state = SetupState.WATCHING

        if state == SetupState.WATCHING:
            return None

        # Step 4: volume during impulse vs pullback
        impulse_candles = window[impulse.start_index:impulse.end_index + 1]
        pullback_candles = window[impulse.end_index + 1:]

        now = self._clock()
        setup = SetupRecord(
            symbol=symbol,
            timeframe=timeframe,
            state=state,
            impulse_high=impulse.end_price,
            impulse_low=impulse.start_price,
            impulse_start_time=impulse_start.timestamp,
            impulse_end_time=impulse_end.timestamp,
            impulse_percent_move=impulse.percent_move,
            current_rsi=current_rsi,
            rsi_at_trigger=current_rsi,
            current_price=current_price,
            entry_price=current_price,
            detected_at=now,
            triggered_at=now,
            last_updated=now,
            impulse_avg_volume=calculate_avg_volume(impulse_candles, len(impulse_candles)),
            pullback_avg_volume=calculate_avg_volume(pullback_candles, len(pullback_candles)),
            volume_contracting=is_volume_contracting(impulse_candles, pullback_candles),
            higher_tf_bullish=higher_tf_bullish,
        )

        self._active_setups[key] = setup
        self.total_created += 1

        logger.info(
            f"New setup {key}: {state.value} RSI={current_rsi:.1f} "
            f"price={current_price} impulse=+{impulse.percent_move:.2f}%"
        )
        return setup

    def _is_first_oversold_after_impulse(
        self,
        rsi_values: List[OscillatorSample],
        impulse_end_time: int
    ) -> bool:
        """
        Check if the current reading is the first oversold since the impulse.

        Counts samples at or after the impulse high that are below the
        oversold threshold; recomputed from the supplied window every call.
        """
        threshold = self.config.rsi_oversold_threshold
        oversold_count = sum(
            1 for s in rsi_values
            if s.timestamp >= impulse_end_time and s.value < threshold
        )
        return oversold_count <= 1

    def _update_existing_setup(
        self,
        key: str,
        setup: SetupRecord,
        current_rsi: float,
        current_price: float,
        higher_tf_bullish: Optional[bool]
    ) -> SetupRecord:
        setup.current_rsi = current_rsi
        setup.current_price = current_price
        setup.last_updated = self._clock()
        if higher_tf_bullish is not None:
            setup.higher_tf_bullish = higher_tf_bullish

        previous = setup.state

        reason = self._invalidation_reason(setup)
        if reason:
            setup.state = SetupState.PLAYED_OUT
        else:
            setup.state = self._determine_setup_state(setup, current_rsi)
            reason = "bounce complete"

        if setup.state == SetupState.PLAYED_OUT:
            del self._active_setups[key]
            self.total_played_out += 1
            logger.info(f"Setup {key} played out from {previous.value}: {reason}")
        elif setup.state != previous:
            logger.debug(f"Setup {key}: {previous.value} -> {setup.state.value} (RSI={current_rsi:.1f})")

        return setup

    def _invalidation_reason(self, setup: SetupRecord) -> Optional[str]:
        """Return why the setup is invalidated, or None if still valid"""
        if setup.current_price < setup.impulse_low:
            return "structure broken"

        if setup.state in ACTIONABLE_STATES:
            if setup.current_price >= setup.impulse_high * TARGET_RECOVERY_RATIO:
                return "target reached"

        # Only checked from bouncing
        if setup.state == SetupState.BOUNCING and setup.current_rsi < self.config.rsi_oversold_threshold:
            return "second oversold"

        return None

    def _determine_setup_state(self, setup: SetupRecord, current_rsi: float) -> SetupState:
        previous = setup.state

        if current_rsi < self.config.rsi_deep_oversold_threshold:
            return SetupState.DEEP_OVERSOLD

        if current_rsi < self.config.rsi_oversold_threshold:
            return SetupState.TRIGGERED

        if previous in ACTIONABLE_STATES:
            if current_rsi > BOUNCE_COMPLETE_FROM_TRIGGER_RSI:
                return SetupState.PLAYED_OUT
            return SetupState.BOUNCING

        if previous == SetupState.BOUNCING:
            if current_rsi > BOUNCE_COMPLETE_RSI:
                return SetupState.PLAYED_OUT
            return SetupState.BOUNCING

        return previous

    # ── Queries ──

    def get_active_setups(self) -> List[SetupRecord]:
        """Snapshots of all live setups"""
        with self._lock:
            return [replace(s) for s in self._active_setups.values()]

    def get_setups_by_timeframe(self, timeframe: Timeframe) -> List[SetupRecord]:
        timeframe = Timeframe(timeframe)
        return [s for s in self.get_active_setups() if s.timeframe == timeframe]

    def get_setups_by_state(self, state: SetupState) -> List[SetupRecord]:
        state = SetupState(state)
        return [s for s in self.get_active_setups() if s.state == state]

    def get_setup(self, symbol: str, timeframe: Timeframe) -> Optional[SetupRecord]:
        with self._lock:
            setup = self._active_setups.get(setup_key(symbol, timeframe))
            return replace(setup) if setup is not None else None

    def get_active_setup_count(self) -> int:
        with self._lock:
            return len(self._active_setups)

    # ── Administration ──

    def remove_setup(self, symbol: str, timeframe: Timeframe) -> bool:
        """
        Remove a setup manually.

        Returns:
            True if a setup was removed
        """
        key = setup_key(symbol, timeframe)
        with self._lock:
            removed = self._active_setups.pop(key, None) is not None

        if removed:
            logger.info(f"Setup {key} removed manually")
        return removed

    def clear_all_setups(self):
        with self._lock:
            count = len(self._active_setups)
            self._active_setups.clear()
        logger.info(f"Cleared {count} active setups")

    def get_statistics(self) -> Dict:
        """Get detector statistics"""
        setups = self.get_active_setups()
        return {
            'active_setups': len(setups),
            'by_state': dict(Counter(s.state.value for s in setups)),
            'by_timeframe': dict(Counter(s.timeframe.value for s in setups)),
            'total_evaluations': self.total_evaluations,
            'total_created': self.total_created,
            'total_played_out': self.total_played_out,
        }
