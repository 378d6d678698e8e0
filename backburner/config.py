"""
Configuration for the Backburner screener

Detector thresholds are immutable once constructed and shared read-only by
every evaluation. Scanner/API settings come from config.yaml at the repo root,
with MEXC_BASE_URL overridable from the environment.
"""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from .indicators.base import validate_period
from .models import Timeframe

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'config.yaml'


@dataclass(frozen=True)
class DetectorConfig:
    """Numeric parameters of the Backburner rules"""
    rsi_period: int = 14
    rsi_oversold_threshold: float = 30.0
    rsi_deep_oversold_threshold: float = 20.0
    min_impulse_percent: float = 5.0
    lookback_period: int = 50

    def __post_init__(self):
        validate_period(self.rsi_period, min_period=2)
        validate_period(self.lookback_period, min_period=2)

        if not 0 <= self.rsi_deep_oversold_threshold <= self.rsi_oversold_threshold <= 100:
            raise ValueError(
                "RSI thresholds must satisfy 0 <= deep oversold <= oversold <= 100, "
                f"got deep={self.rsi_deep_oversold_threshold}, "
                f"oversold={self.rsi_oversold_threshold}"
            )

        if self.min_impulse_percent <= 0:
            raise ValueError(
                f"min_impulse_percent must be > 0, got {self.min_impulse_percent}"
            )

    def with_overrides(self, **overrides) -> 'DetectorConfig':
        """Return a copy with the given fields replaced"""
        return replace(self, **overrides)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DetectorConfig':
        return cls(**_known_fields(cls, data))


@dataclass(frozen=True)
class ApiConfig:
    """MEXC REST API and request pacing settings"""
    base_url: str = 'https://api.mexc.com'
    request_timeout: float = 10.0
    max_concurrent: int = 10
    min_delay_ms: float = 50.0
    max_retries: int = 3
    rate_limit_delay: float = 1.0
    error_delay: float = 0.5

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ApiConfig':
        values = _known_fields(cls, data)
        env_url = os.getenv('MEXC_BASE_URL')
        if env_url:
            values['base_url'] = env_url
        return cls(**values)


@dataclass(frozen=True)
class ScannerConfig:
    """Scan cadence and symbol universe"""
    timeframes: List[Timeframe] = field(
        default_factory=lambda: [Timeframe.M5, Timeframe.M15, Timeframe.H1]
    )
    candles_to_fetch: int = 100
    scan_interval_seconds: float = 60.0
    symbol_refresh_cycles: int = 30
    use_higher_timeframe: bool = True
    quote_asset: str = 'USDT'
    min_volume_24h: float = 1_000_000.0
    excluded_suffixes: List[str] = field(
        default_factory=lambda: ['3LUSDT', '3SUSDT', '5LUSDT', '5SUSDT']
    )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ScannerConfig':
        values = _known_fields(cls, data)
        if 'timeframes' in values:
            values['timeframes'] = [Timeframe(tf) for tf in values['timeframes']]
        return cls(**values)


@dataclass(frozen=True)
class AppConfig:
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    server: Dict[str, Any] = field(default_factory=lambda: {
        'host': '127.0.0.1',
        'port': 8000,
        'log_level': 'info',
    })
    log_level: str = 'INFO'


def _known_fields(cls, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Keep only keys that are fields of cls, warning about the rest"""
    if not data:
        return {}

    names = {f.name for f in fields(cls)}
    unknown = set(data) - names
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")

    return {k: v for k, v in data.items() if k in names}


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load configuration from YAML.

    Args:
        path: Path to config file (default: config.yaml at repo root)

    Returns:
        AppConfig with defaults filled in for anything not in the file
    """
    load_dotenv()

    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    raw: Dict[str, Any] = {}

    if config_path.exists():
        with open(config_path, 'r') as f:
            raw = yaml.safe_load(f) or {}
    elif path:
        raise FileNotFoundError(f"Configuration file not found at {config_path}")
    else:
        logger.warning(f"No config file at {config_path}, using defaults")

    defaults = AppConfig()
    server = dict(defaults.server)
    server.update(raw.get('server') or {})

    return AppConfig(
        detector=DetectorConfig.from_dict(raw.get('detector')),
        api=ApiConfig.from_dict(raw.get('api')),
        scanner=ScannerConfig.from_dict(raw.get('scanner')),
        server=server,
        log_level=str((raw.get('logging') or {}).get('level', defaults.log_level)).upper(),
    )
