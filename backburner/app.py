"""
FastAPI Backend for the Backburner Screener

Exposes the live setup set for dashboards and notifiers, plus manual
removal / clear-all for administration. When started with a scanner, the
scan loop runs as a background task for the lifetime of the app.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException

from .detector import BackburnerDetector
from .models import SetupState, Timeframe
from .scanner import Scanner

logger = logging.getLogger(__name__)


def create_app(
    detector: BackburnerDetector,
    scanner: Optional[Scanner] = None,
    run_scanner: bool = False
) -> FastAPI:
    """
    Build the API application.

    Args:
        detector: Detector whose live setups are served
        scanner: Optional scanner, reported in /api/stats
        run_scanner: Run scanner.run() in the background during the app lifespan
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown"""
        stop_event = asyncio.Event()
        scan_task: Optional[asyncio.Task] = None

        if scanner is not None and run_scanner:
            logger.info("Starting background scanner...")
            scan_task = asyncio.create_task(scanner.run(stop_event))

        yield

        logger.info("Shutting down application...")
        if scan_task is not None:
            stop_event.set()
            try:
                await scan_task
            except Exception as e:
                logger.error(f"Scanner task ended with error: {e}")
            await scanner.client.close()

    app = FastAPI(title="Backburner Screener", lifespan=lifespan)

    @app.get("/health")
    async def health():
        return {
            'status': 'ok',
            'active_setups': detector.get_active_setup_count(),
            'scanning': bool(scanner and scanner.is_scanning),
        }

    @app.get("/api/setups")
    async def list_setups(
        timeframe: Optional[Timeframe] = None,
        state: Optional[SetupState] = None
    ):
        """Live setups, optionally filtered by timeframe and/or state"""
        if timeframe is not None:
            setups = detector.get_setups_by_timeframe(timeframe)
        else:
            setups = detector.get_active_setups()

        if state is not None:
            setups = [s for s in setups if s.state == state]

        return {
            'count': len(setups),
            'setups': [s.to_dict() for s in setups],
        }

    @app.get("/api/setups/count")
    async def setup_count():
        return {'count': detector.get_active_setup_count()}

    @app.get("/api/setups/{symbol}/{timeframe}")
    async def get_setup(symbol: str, timeframe: Timeframe):
        setup = detector.get_setup(symbol.upper(), timeframe)
        if setup is None:
            raise HTTPException(status_code=404, detail=f"No active setup for {symbol} {timeframe.value}")
        return setup.to_dict()

    @app.delete("/api/setups/{symbol}/{timeframe}")
    async def remove_setup(symbol: str, timeframe: Timeframe):
        if not detector.remove_setup(symbol.upper(), timeframe):
            raise HTTPException(status_code=404, detail=f"No active setup for {symbol} {timeframe.value}")
        return {'removed': True, 'symbol': symbol.upper(), 'timeframe': timeframe.value}

    @app.delete("/api/setups")
    async def clear_setups():
        count = detector.get_active_setup_count()
        detector.clear_all_setups()
        return {'cleared': count}

    @app.get("/api/stats")
    async def stats():
        return {
            'detector': detector.get_statistics(),
            'scanner': scanner.get_status() if scanner else None,
        }

    return app
