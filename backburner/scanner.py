"""
Scan Orchestrator

Runs scan cycles: fetch the latest candles for every eligible symbol and
timeframe, feed them to the detector, and report what changed as
new / updated / removed events.

Each (symbol, timeframe) key is evaluated once per cycle, sequentially, so
the detector never sees concurrent evaluations of the same key.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .config import ScannerConfig
from .detector import BackburnerDetector, MIN_CANDLES
from .indicators import get_current_rsi
from .mexc_client import MEXCClient
from .models import Candle, SetupRecord, SetupState, Timeframe

logger = logging.getLogger(__name__)

EVENT_NEW = 'new'
EVENT_UPDATED = 'updated'
EVENT_REMOVED = 'removed'


@dataclass
class SetupEvent:
    """A change to the live setup set produced by one evaluation."""
    type: str  # new / updated / removed
    setup: SetupRecord


class Scanner:
    """Drives the detector with fresh market data"""

    def __init__(
        self,
        client: MEXCClient,
        detector: BackburnerDetector,
        config: Optional[ScannerConfig] = None
    ):
        self.client = client
        self.detector = detector
        self.config = config or ScannerConfig()

        self.eligible_symbols: List[str] = []
        self.cycles = 0
        self.is_scanning = False
        self.last_scan_time: Optional[datetime] = None
        self.last_scan_duration: Optional[float] = None
        self.last_error: Optional[str] = None
        self.status_message = ''

    async def refresh_symbols(self) -> List[str]:
        """Reload the eligible symbol universe"""
        symbols = await self.client.list_eligible_symbols(
            quote_asset=self.config.quote_asset,
            min_volume_24h=self.config.min_volume_24h,
            excluded_suffixes=self.config.excluded_suffixes,
        )
        self.eligible_symbols = sorted(symbols)
        return self.eligible_symbols

    def _needs_higher_timeframe(
        self,
        symbol: str,
        timeframe: Timeframe,
        candles: List[Candle]
    ) -> bool:
        """
        Higher timeframe candles only matter for symbols that have a live
        setup or could create one this cycle (RSI already oversold).
        """
        if self.detector.get_setup(symbol, timeframe) is not None:
            return True

        if len(candles) < MIN_CANDLES:
            return False

        rsi = get_current_rsi(candles, self.detector.config.rsi_period)
        return rsi is not None and rsi < self.detector.config.rsi_oversold_threshold

    async def scan_timeframe(
        self,
        timeframe: Timeframe,
        on_progress: Optional[Callable[[int, int], None]] = None
    ) -> List[SetupEvent]:
        """
        Scan all eligible symbols on one timeframe.

        Returns:
            Events for setups created, changing state, or played out
        """
        timeframe = Timeframe(timeframe)
        candles_by_symbol = await self.client.batch_get_klines(
            self.eligible_symbols,
            timeframe,
            limit=self.config.candles_to_fetch,
            on_progress=on_progress,
        )

        higher_tf_candles: Dict[str, List[Candle]] = {}
        if self.config.use_higher_timeframe and timeframe.higher is not None:
            candidates = [
                symbol for symbol, candles in candles_by_symbol.items()
                if self._needs_higher_timeframe(symbol, timeframe, candles)
            ]
            if candidates:
                higher_tf_candles = await self.client.batch_get_klines(
                    candidates,
                    timeframe.higher,
                    limit=self.config.candles_to_fetch,
                )

        events: List[SetupEvent] = []
        for symbol in sorted(candles_by_symbol):
            previous = self.detector.get_setup(symbol, timeframe)
            try:
                setup = self.detector.analyze_symbol(
                    symbol,
                    timeframe,
                    candles_by_symbol[symbol],
                    higher_tf_candles.get(symbol),
                )
            except Exception as e:
                logger.error(f"Error analyzing {symbol} {timeframe.value}: {e}", exc_info=True)
                continue

            event = classify_change(previous, setup)
            if event is not None:
                events.append(event)

        logger.info(
            f"Scanned {len(candles_by_symbol)}/{len(self.eligible_symbols)} symbols "
            f"on {timeframe.value}: {len(events)} changes"
        )
        return events

    async def scan_once(
        self,
        on_progress: Optional[Callable[[int, int, str], None]] = None
    ) -> List[SetupEvent]:
        """Run one full scan cycle over every configured timeframe"""
        start = time.monotonic()
        self.is_scanning = True

        try:
            refresh_every = max(1, self.config.symbol_refresh_cycles)
            if not self.eligible_symbols or self.cycles % refresh_every == 0:
                self.status_message = 'Loading symbols'
                await self.refresh_symbols()

            events: List[SetupEvent] = []
            for timeframe in self.config.timeframes:
                self.status_message = f"Scanning {Timeframe(timeframe).value}"
                progress = None
                if on_progress:
                    phase = self.status_message
                    progress = lambda done, total: on_progress(done, total, phase)
                events.extend(await self.scan_timeframe(timeframe, progress))

            self.cycles += 1
            self.last_error = None
            self.status_message = f"{len(events)} changes"
            return events

        finally:
            self.is_scanning = False
            self.last_scan_time = datetime.now()
            self.last_scan_duration = time.monotonic() - start

    async def run(
        self,
        stop_event: Optional[asyncio.Event] = None,
        on_events: Optional[Callable[[List[SetupEvent]], None]] = None,
        on_progress: Optional[Callable[[int, int, str], None]] = None
    ):
        """
        Scan repeatedly until `stop_event` is set.

        A failed cycle is logged and the loop carries on with the next one.
        """
        stop_event = stop_event or asyncio.Event()
        logger.info(
            f"Scanner started: timeframes={[Timeframe(tf).value for tf in self.config.timeframes]} "
            f"interval={self.config.scan_interval_seconds}s"
        )

        while not stop_event.is_set():
            started = time.monotonic()
            try:
                events = await self.scan_once(on_progress)
                if on_events:
                    on_events(events)
            except Exception as e:
                self.last_error = str(e)
                self.status_message = f"Scan failed: {e}"
                logger.error(f"Scan cycle failed: {e}", exc_info=True)

            wait = max(0.0, self.config.scan_interval_seconds - (time.monotonic() - started))
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=wait)
            except asyncio.TimeoutError:
                pass

        logger.info("Scanner stopped")

    def get_status(self) -> Dict:
        return {
            'eligible_symbols': len(self.eligible_symbols),
            'cycles': self.cycles,
            'is_scanning': self.is_scanning,
            'last_scan_time': self.last_scan_time.isoformat() if self.last_scan_time else None,
            'last_scan_duration_seconds': self.last_scan_duration,
            'last_error': self.last_error,
            'status_message': self.status_message,
            'pacing': self.client.limiter.get_statistics(),
        }


def classify_change(
    previous: Optional[SetupRecord],
    current: Optional[SetupRecord]
) -> Optional[SetupEvent]:
    """Turn a before/after pair of setup snapshots into an event (or None)"""
    if current is None:
        return None

    if previous is None:
        return SetupEvent(EVENT_NEW, current)

    if current.state == SetupState.PLAYED_OUT:
        return SetupEvent(EVENT_REMOVED, current)

    if current.state != previous.state:
        return SetupEvent(EVENT_UPDATED, current)

    return None
