"""
Configuration for the DLMM liquidity engine

Settings are read from environment variables after loading the .env file
next to the package. A malformed value raises ConfigurationError when its
section is built; an unset or empty variable takes the default.

Environment variables:
    AGGREGATOR_URL, AGGREGATOR_TIMEOUT, AGGREGATOR_DEPTH, AGGREGATOR_PROVIDERS
    ZAP_MAX_REMAIN_RATE, ZAP_SWAP_OUT_BUFFER
    RETRY_MAX_RETRIES, RETRY_DELAY
    LOG_FILE, LOG_LEVEL, LOG_CONSOLE, LOG_MODULE_LEVELS

Example .env:
    AGGREGATOR_URL=https://router.example.com
    LOG_LEVEL=INFO
    LOG_MODULE_LEVELS=modules.zap=DEBUG,infra.retry=WARNING
"""

import os
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, List, Optional, TypeVar

from dotenv import load_dotenv

from .errors import ConfigurationError

T = TypeVar("T")

ENV_FILE = Path(__file__).parent.parent / ".env"

PACKAGE_LOGGER = "dlmm_adapter"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _load_env_file():
    if ENV_FILE.exists():
        load_dotenv(ENV_FILE)


_load_env_file()


def _env(key: str, parse: Callable[[str], T], default: T) -> T:
    """Parse an environment variable, default when unset or blank"""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    try:
        return parse(value.strip())
    except (ValueError, ArithmeticError) as e:
        raise ConfigurationError.invalid(key, f"cannot parse '{value}': {e}")


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise ValueError("expected true/false")


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_level(value: str) -> str:
    level = value.strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"expected one of {', '.join(LOG_LEVELS)}")
    return level


def _parse_module_levels(value: str) -> Dict[str, str]:
    """'modules.zap=DEBUG,infra.retry=WARNING' -> {'modules.zap': 'DEBUG', ...}"""
    levels = {}
    for item in _parse_list(value):
        module, sep, level = item.partition("=")
        if not sep or not module.strip():
            raise ValueError(f"expected module=LEVEL, got '{item}'")
        levels[module.strip()] = _parse_level(level)
    return levels


def _check(ok: bool, key: str, reason: str):
    if not ok:
        raise ConfigurationError.invalid(key, reason)


@dataclass
class AggregatorConfig:
    """Swap router used for live quotes (AggregatorAPI requires base_url)"""
    base_url: str = field(default_factory=lambda: _env("AGGREGATOR_URL", str, ""))
    timeout: float = field(default_factory=lambda: _env("AGGREGATOR_TIMEOUT", float, 30.0))
    # Maximum route depth requested from the router
    depth: int = field(default_factory=lambda: _env("AGGREGATOR_DEPTH", int, 3))
    # Restrict routing to these liquidity providers (empty = all)
    providers: List[str] = field(default_factory=lambda: _env("AGGREGATOR_PROVIDERS", _parse_list, []))

    def __post_init__(self):
        _check(self.timeout > 0, "AGGREGATOR_TIMEOUT", "must be positive")
        _check(self.depth >= 1, "AGGREGATOR_DEPTH", "must be at least 1")


@dataclass
class ZapConfig:
    """Single-coin deposit balancer parameters"""
    # Largest acceptable leftover of the swapped token, as a fraction of swap output
    max_remain_rate: Decimal = field(default_factory=lambda: _env("ZAP_MAX_REMAIN_RATE", Decimal, Decimal("0.02")))
    # Haircut applied to a quote before depositing the whole output on one side
    swap_out_buffer: Decimal = field(default_factory=lambda: _env("ZAP_SWAP_OUT_BUFFER", Decimal, Decimal("0.001")))

    def __post_init__(self):
        self.max_remain_rate = Decimal(self.max_remain_rate)
        self.swap_out_buffer = Decimal(self.swap_out_buffer)
        _check(0 < self.max_remain_rate < 1, "ZAP_MAX_REMAIN_RATE", "must lie in (0, 1)")
        _check(0 <= self.swap_out_buffer < 1, "ZAP_SWAP_OUT_BUFFER", "must lie in [0, 1)")


@dataclass
class RetryConfig:
    """Caller-side retry for quote requests (see infra.retry)"""
    max_retries: int = field(default_factory=lambda: _env("RETRY_MAX_RETRIES", int, 3))
    retry_delay: float = field(default_factory=lambda: _env("RETRY_DELAY", float, 1.0))

    def __post_init__(self):
        _check(self.max_retries >= 1, "RETRY_MAX_RETRIES", "must be at least 1")
        _check(self.retry_delay >= 0, "RETRY_DELAY", "must not be negative")


@dataclass
class LoggingConfig:
    """
    Package logging

    log_file empty means console only. module_levels overrides the level of
    single engine modules, keyed by their path below the package
    (e.g. "protocols.dlmm.strategy").
    """
    log_file: str = field(default_factory=lambda: _env("LOG_FILE", str, ""))
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", _parse_level, "INFO"))
    console_output: bool = field(default_factory=lambda: _env("LOG_CONSOLE", _parse_bool, True))
    module_levels: Dict[str, str] = field(
        default_factory=lambda: _env("LOG_MODULE_LEVELS", _parse_module_levels, {})
    )

    def __post_init__(self):
        try:
            self.log_level = _parse_level(self.log_level)
            self.module_levels = {name: _parse_level(level) for name, level in self.module_levels.items()}
        except ValueError as e:
            raise ConfigurationError.invalid("LOG_LEVEL", str(e))

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level)


@dataclass
class Config:
    """
    Main configuration container

    Usage:
        from dlmm_adapter.config import config

        print(config.aggregator.base_url)
        print(config.zap.max_remain_rate)
    """
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    zap: ZapConfig = field(default_factory=ZapConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Reload configuration from environment"""
        _load_env_file()
        return cls()


# Global config instance
config = Config()


def get_config() -> Config:
    """Get global configuration instance"""
    return config


def reload_config() -> Config:
    """Reload and return new configuration"""
    global config
    config = Config.reload()
    return config


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Attach handlers to the package logger

    Every engine module logs through logging.getLogger(__name__), so handlers
    on the package logger see all of them. Calling again replaces the
    handlers.

    Args:
        log_config: Logging configuration (uses global config if None)
        logger_name: Root logger of the engine

    Returns:
        Configured package logger
    """
    if log_config is None:
        log_config = config.logging

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    if log_config.log_file:
        log_path = Path(log_config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if log_config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # Records from a child propagate to these handlers regardless of the package level
    for module, level in log_config.module_levels.items():
        logging.getLogger(f"{logger_name}.{module}").setLevel(getattr(logging, level))

    logger.debug(
        f"Logging initialized: file={log_config.log_file or '-'}, level={log_config.log_level}, "
        f"overrides={log_config.module_levels}"
    )
    return logger
