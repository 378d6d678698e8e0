"""
MEXC Market Data Client

Async REST client for MEXC spot market data: exchange info, 24h tickers,
klines and prices. Every HTTP attempt goes through one shared RateLimiter;
failed attempts are retried with linear backoff, longer for rate limits (429).

Responses are validated here so the detector only ever sees well-formed,
ascending candle series.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

import aiohttp

from .config import ApiConfig
from .models import Candle, Timeframe
from .pacing import RateLimiter

logger = logging.getLogger(__name__)

EXCHANGE_INFO = '/api/v3/exchangeInfo'
TICKER_24H = '/api/v3/ticker/24hr'
KLINES = '/api/v3/klines'
TICKER_PRICE = '/api/v3/ticker/price'

CANDLES_TO_FETCH = 100
ENABLED_STATUSES = {'1', 'ENABLED', 'TRADING'}


class MarketDataError(Exception):
    """Base class for market data acquisition failures"""


class HTTPStatusError(MarketDataError):
    """Non-2xx response"""

    def __init__(self, status: int, message: str = ''):
        self.status = status
        super().__init__(f"HTTP {status}: {message}" if message else f"HTTP {status}")


class RateLimitError(HTTPStatusError):
    """HTTP 429 from the exchange"""

    def __init__(self, message: str = 'Too Many Requests'):
        super().__init__(429, message)


@dataclass
class SymbolInfo:
    symbol: str
    base_asset: str
    quote_asset: str
    status: str
    is_spot_trading_allowed: bool
    is_margin_trading_allowed: bool


async def request_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args,
    max_retries: int = 3,
    rate_limit_delay: float = 1.0,
    error_delay: float = 0.5,
    **kwargs
) -> Any:
    """
    Execute a request with linear backoff retry logic.

    Args:
        func: Async function to call
        *args: Positional arguments for func
        max_retries: Total number of attempts
        rate_limit_delay: Base delay after a 429, multiplied by the attempt number
        error_delay: Base delay after any other failure, multiplied by the attempt number
        **kwargs: Keyword arguments for func

    Returns:
        Result from func

    Raises:
        The last exception if every attempt fails
    """
    last_error: Optional[Exception] = None

    for attempt in range(1, max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except RateLimitError as e:
            last_error = e
            delay = rate_limit_delay * attempt
            logger.warning(f"Rate limited (attempt {attempt}/{max_retries}), backing off {delay:.1f}s")

        except Exception as e:
            last_error = e
            delay = error_delay * attempt
            logger.debug(f"Request failed (attempt {attempt}/{max_retries}): {e}")

        if attempt < max_retries:
            await asyncio.sleep(delay)

    logger.error(f"Request failed after {max_retries} attempts: {last_error}")
    if last_error is None:
        raise MarketDataError("Failed after retries")
    raise last_error


def parse_klines(symbol: str, data: Any) -> List[Candle]:
    """
    Convert a raw klines payload into validated candles.

    Raises:
        MarketDataError if the payload is not a list of well-formed,
        strictly ascending OHLCV rows
    """
    if not isinstance(data, list):
        raise MarketDataError(f"Invalid kline response for {symbol}")

    candles: List[Candle] = []
    for row in data:
        if not isinstance(row, (list, tuple)) or len(row) < 6:
            raise MarketDataError(f"Malformed kline row for {symbol}: {row!r}")

        try:
            candle = Candle(
                timestamp=int(row[0]),
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
                volume=float(row[5]),
            )
        except (TypeError, ValueError) as e:
            raise MarketDataError(f"Non-numeric kline row for {symbol}: {row!r}") from e

        if not (candle.low <= min(candle.open, candle.close)
                and max(candle.open, candle.close) <= candle.high):
            raise MarketDataError(f"Inconsistent OHLC for {symbol} at {candle.timestamp}")
        if candle.volume < 0:
            raise MarketDataError(f"Negative volume for {symbol} at {candle.timestamp}")
        if candles and candle.timestamp <= candles[-1].timestamp:
            raise MarketDataError(f"Klines for {symbol} are not strictly ascending")

        candles.append(candle)

    return candles


class MEXCClient:
    """
    Rate-limited MEXC spot market data client.

    Usage:
        async with MEXCClient(ApiConfig()) as client:
            candles = await client.get_klines('BTCUSDT', Timeframe.M5)
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        limiter: Optional[RateLimiter] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.config = config or ApiConfig()
        self.limiter = limiter or RateLimiter(
            max_concurrent=self.config.max_concurrent,
            min_delay_ms=self.config.min_delay_ms,
        )
        self._session = session
        self._owns_session = session is None

        self.stats = {
            'requests_failed': 0,
            'symbols_fetched': 0,
            'symbols_failed': 0,
        }

    async def __aenter__(self) -> 'MEXCClient':
        self._get_session()
        return self

    async def __aexit__(self, *args):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self):
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    # ── HTTP ──

    async def _fetch_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        """Single HTTP GET attempt"""
        url = f"{self.config.base_url}{path}"
        session = self._get_session()

        async with session.get(url, params=params) as response:
            if response.status == 429:
                raise RateLimitError()
            if response.status >= 400:
                raise HTTPStatusError(response.status, response.reason or '')
            return await response.json(content_type=None)

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        """GET with pacing on every attempt and retry on failure"""
        try:
            return await request_with_retry(
                self.limiter.execute,
                self._fetch_json,
                path,
                params,
                max_retries=self.config.max_retries,
                rate_limit_delay=self.config.rate_limit_delay,
                error_delay=self.config.error_delay,
            )
        except Exception:
            self.stats['requests_failed'] += 1
            raise

    # ── Endpoints ──

    async def get_exchange_info(self) -> List[SymbolInfo]:
        """Get all trading symbols listed on MEXC"""
        data = await self._get_json(EXCHANGE_INFO)

        if not isinstance(data, dict) or not isinstance(data.get('symbols'), list):
            raise MarketDataError("Invalid exchangeInfo response")

        return [
            SymbolInfo(
                symbol=str(s.get('symbol', '')),
                base_asset=str(s.get('baseAsset', '')),
                quote_asset=str(s.get('quoteAsset', '')),
                status=str(s.get('status', '')),
                is_spot_trading_allowed=bool(s.get('isSpotTradingAllowed', False)),
                is_margin_trading_allowed=bool(s.get('isMarginTradingAllowed', False)),
            )
            for s in data['symbols']
        ]

    async def get_24h_tickers(self) -> List[Dict[str, Any]]:
        """Get 24hr ticker data for volume filtering"""
        data = await self._get_json(TICKER_24H)
        if not isinstance(data, list):
            raise MarketDataError("Invalid 24hr ticker response")
        return data

    async def get_klines(
        self,
        symbol: str,
        timeframe: Timeframe,
        limit: int = CANDLES_TO_FETCH
    ) -> List[Candle]:
        """Get kline/candlestick data for a symbol, oldest first"""
        timeframe = Timeframe(timeframe)
        params = {
            'symbol': symbol,
            'interval': timeframe.mexc_interval,
            'limit': str(limit),
        }
        data = await self._get_json(KLINES, params)
        return parse_klines(symbol, data)

    async def get_higher_timeframe_klines(
        self,
        symbol: str,
        timeframe: Timeframe,
        limit: int = CANDLES_TO_FETCH
    ) -> List[Candle]:
        """Get klines one timeframe up from `timeframe` (empty for 1d)"""
        higher = Timeframe(timeframe).higher
        if higher is None:
            return []
        return await self.get_klines(symbol, higher, limit)

    async def get_current_price(self, symbol: str) -> float:
        data = await self._get_json(TICKER_PRICE, {'symbol': symbol})
        try:
            return float(data['price'])
        except (TypeError, KeyError, ValueError) as e:
            raise MarketDataError(f"Invalid price response for {symbol}") from e

    # ── Batch / universe ──

    async def batch_get_klines(
        self,
        symbols: Iterable[str],
        timeframe: Timeframe,
        limit: int = CANDLES_TO_FETCH,
        on_progress: Optional[Callable[[int, int], None]] = None
    ) -> Dict[str, List[Candle]]:
        """
        Fetch klines for many symbols concurrently.

        Symbols that fail after retries are logged and left out of the
        result; the batch itself never fails because of one symbol.
        """
        symbols = list(symbols)
        results: Dict[str, List[Candle]] = {}
        completed = 0

        async def fetch_one(symbol: str):
            nonlocal completed
            try:
                results[symbol] = await self.get_klines(symbol, timeframe, limit)
                self.stats['symbols_fetched'] += 1
            except Exception as e:
                self.stats['symbols_failed'] += 1
                logger.error(f"Failed to fetch {symbol} {Timeframe(timeframe).value}: {e}")
            finally:
                completed += 1
                if on_progress:
                    on_progress(completed, len(symbols))

        await asyncio.gather(*(fetch_one(s) for s in symbols))
        return results

    async def list_eligible_symbols(
        self,
        quote_asset: str = 'USDT',
        min_volume_24h: float = 0.0,
        excluded_suffixes: Iterable[str] = ()
    ) -> Set[str]:
        """
        Symbols worth scanning.

        Keeps enabled spot pairs quoted in `quote_asset`, drops leveraged
        tokens matching `excluded_suffixes`, and requires a 24h quote volume
        of at least `min_volume_24h`.
        """
        infos, tickers = await asyncio.gather(
            self.get_exchange_info(),
            self.get_24h_tickers(),
        )

        volumes: Dict[str, float] = {}
        for ticker in tickers:
            try:
                volumes[ticker['symbol']] = float(ticker.get('quoteVolume') or 0)
            except (TypeError, KeyError, ValueError):
                continue

        suffixes = tuple(excluded_suffixes)
        eligible = {
            info.symbol
            for info in infos
            if info.quote_asset == quote_asset
            and info.status in ENABLED_STATUSES
            and info.is_spot_trading_allowed
            and not (suffixes and info.symbol.endswith(suffixes))
            and volumes.get(info.symbol, 0.0) >= min_volume_24h
        }

        logger.info(f"{len(eligible)} eligible {quote_asset} symbols (of {len(infos)} listed)")
        return eligible
