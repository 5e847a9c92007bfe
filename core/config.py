"""Configuration loader -- reads config.yaml + .env, validates with Pydantic.

Resolves ${ENV_VAR} references in YAML values from environment variables.
Fails fast with clear errors if the config is malformed.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from core.duration import duration_seconds

logger = logging.getLogger(__name__)

# Default home directory for all state files
DEFAULT_HOME = Path.home() / ".nowmarket"


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} references in config values."""
    if isinstance(value, str):
        pattern = re.compile(r"\$\{(\w+)\}")
        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                logger.warning("Environment variable %s not set", var_name)
                return match.group(0)  # leave unresolved
            return env_value
        return pattern.sub(replacer, value)
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Config models (Pydantic)
# ---------------------------------------------------------------------------

class ServerConfig(BaseModel):
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8321


class MarketConfig(BaseModel):
    """Clock, cadence and catalog settings for one market session."""

    tick_interval: str = "1s"
    # Slower virtual timers, expressed in fast ticks
    snapshot_every: int = Field(default=5, ge=1)
    clock_every: int = Field(default=1, ge=1)
    autosave_every: int = Field(default=60, ge=0)
    backfill_refresh_every: int = Field(default=3600, ge=0)

    history_limit: int = Field(default=60, ge=2)
    news_limit: int = Field(default=15, ge=1)
    open_hour: int = 9
    open_minute: int = 30
    close_hour: int = 16
    pre_open_minutes: int = Field(default=0, ge=0)
    week_length_days: int = Field(default=5, ge=1)

    starting_cash: float = 10_000.0
    seed: int | None = None
    # Calendar date used for earnings/dividend matching; None means "today"
    calendar_date: str | None = None

    @property
    def tick_seconds(self) -> float:
        return duration_seconds(self.tick_interval)


class SimulationConfig(BaseModel):
    """Tunable constants of the price model."""

    market_trend_weight: float = 0.6
    sector_random_weight: float = 0.4
    sentiment_weight: float = 0.7
    mood_weight: float = 0.3
    sector_weight: float = 0.4
    idiosyncratic_weight: float = 0.4
    trend_memory: float = 0.95
    pressure_factor: float = 0.15
    pressure_decay: float = Field(default=0.995, gt=0.0, lt=1.0)
    blend_weight: float = 0.5
    trend_weight: float = 0.3
    pressure_weight: float = 0.2
    circuit_breaker: float = Field(default=0.09, gt=0.0)
    trend_dead_zone: float = 0.0025
    index_dead_zone: float = 0.001
    composite_dead_zone: float = 0.08
    composite_scale: float = 100.0
    market_news_probability: float = 0.05
    company_news_probability: float = 0.01
    dividend_bump: float = 0.003
    buy_pressure_per_share: float = 5.0
    counter_pressure_per_share: float = 2.0
    ownership_threshold: float = 0.51
    market_move_news_threshold: float = 1.5


class BackfillConfig(BaseModel):
    enabled: bool = True
    provider: str = "yahoo_finance"
    days: int = Field(default=30, ge=1)
    cache_ttl: str = "1h"
    timeout: str = "10s"
    batch_size: int = Field(default=5, ge=1)
    batch_delay: str = "1500ms"
    user_agent: str = "nowmarket/0.1"

    @property
    def cache_ttl_seconds(self) -> float:
        return duration_seconds(self.cache_ttl)

    @property
    def timeout_seconds(self) -> float:
        return duration_seconds(self.timeout)

    @property
    def batch_delay_seconds(self) -> float:
        return duration_seconds(self.batch_delay)


class PersistenceConfig(BaseModel):
    snapshot_file: str = "market_state.json"
    restore_on_start: bool = True
    save_on_shutdown: bool = True


class LoggingConfig(BaseModel):
    level: str = "INFO"
    audit_events: bool = False
    # Also audit per-tick price events (large files)
    audit_ticks: bool = False


class AppConfig(BaseModel):
    """Top-level application configuration."""

    home_dir: str = str(DEFAULT_HOME)
    server: ServerConfig = Field(default_factory=ServerConfig)
    market: MarketConfig = Field(default_factory=MarketConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    backfill: BackfillConfig = Field(default_factory=BackfillConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def home_path(self) -> Path:
        """Resolved home directory as a Path."""
        return Path(self.home_dir).expanduser()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Load configuration from YAML + .env files.

    1. Load .env into environment variables
    2. Load config.yaml and resolve ${ENV_VAR} references
    3. Validate against Pydantic models
    4. Create home directory structure if needed
    """
    home = Path(os.environ.get("NOWMARKET_HOME", str(DEFAULT_HOME))).expanduser()

    if env_path is None:
        env_path = home / ".env"
    if config_path is None:
        config_path = home / "config.yaml"

    env_path = Path(env_path)
    config_path = Path(config_path)

    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from %s", env_path)
    else:
        logger.debug("No .env file at %s", env_path)

    raw_config: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", config_path)
    else:
        logger.warning("No config file at %s, using defaults", config_path)

    resolved = _resolve_env_vars(raw_config)

    if "NOWMARKET_HOME" in os.environ:
        resolved["home_dir"] = os.environ["NOWMARKET_HOME"]

    config = AppConfig(**resolved)

    # Malformed durations raise here, not on first use
    for duration in (
        config.market.tick_interval,
        config.backfill.cache_ttl,
        config.backfill.timeout,
        config.backfill.batch_delay,
    ):
        duration_seconds(duration)

    _ensure_directories(config.home_path)

    return config


def _ensure_directories(home: Path) -> None:
    """Create the state directory structure if it doesn't exist."""
    dirs = [
        home,
        home / "events",
        home / "snapshots",
    ]
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)
