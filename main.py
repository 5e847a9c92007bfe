"""NOW Market entrypoint -- wires all components together and starts the server.

Usage:
    python main.py
    python main.py --config /path/to/config.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from aiohttp import web

from core.bus import AsyncIOBus
from core.config import AppConfig, load_config
from core.data.store import Store
from core.protocols import HistoryProvider
from ledger.cash import Wallet
from market.backfill import BackfillService
from market.engine import MarketEngine
from scheduler.runner import MarketScheduler
from server import create_app


def setup_logging(level: str) -> None:
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Quiet down noisy libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="NOW Market simulation server")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config.yaml (default: ~/.nowmarket/config.yaml)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Path to .env file (default: ~/.nowmarket/.env)",
    )
    return parser.parse_args()


def _load_history_provider(config: AppConfig) -> HistoryProvider | None:
    """Build the configured backfill provider, or None for synthetic-only history."""
    logger = logging.getLogger("nowmarket.plugins")
    if not config.backfill.enabled:
        return None

    if config.backfill.provider == "yahoo_finance":
        from plugins.market_data.yahoo_finance import YahooFinanceProvider
        provider = YahooFinanceProvider(
            timeout=config.backfill.timeout_seconds,
            user_agent=config.backfill.user_agent,
        )
        logger.info("Loaded history provider: %s", provider.name)
        return provider

    logger.warning("Unknown history provider %r; using synthetic history", config.backfill.provider)
    return None


async def run(config_path: str | None = None, env_path: str | None = None) -> None:
    """Initialize all components and start the server."""
    # Load configuration
    config = load_config(config_path=config_path, env_path=env_path)
    logging.getLogger().setLevel(config.logging.level.upper())
    logger = logging.getLogger("nowmarket")
    logger.info("Configuration loaded from %s", config.home_path)

    # Initialize core infrastructure
    store = Store(config.home_path)
    bus = AsyncIOBus(
        events_dir=config.home_path / "events" if config.logging.audit_events else None,
        audit_ticks=config.logging.audit_ticks,
    )

    wallet = Wallet(config.market.starting_cash)
    engine = MarketEngine(config.market, config.simulation, wallet)

    if config.persistence.restore_on_start:
        restored = store.load_snapshot(config.persistence.snapshot_file)
        if restored is not None:
            engine.restore(restored)

    # Backfill results go back through the scheduler inbox
    async def deliver_backfill(result) -> None:
        await scheduler.post_backfill(result)

    backfill: BackfillService | None = None
    if config.backfill.enabled:
        backfill = BackfillService(
            provider=_load_history_provider(config),
            config=config.backfill,
            on_result=deliver_backfill,
            store=store,
        )

    scheduler = MarketScheduler(
        engine=engine,
        bus=bus,
        config=config.market,
        store=store,
        backfill=backfill,
        snapshot_file=config.persistence.snapshot_file,
    )

    # Start scheduler
    await scheduler.start()

    # Start server
    runner: web.AppRunner | None = None
    if config.server.enabled:
        app = create_app(config=config, bus=bus, scheduler=scheduler)
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, config.server.host, config.server.port)
        await site.start()
        logger.info(
            "NOW Market running at http://%s:%d",
            config.server.host,
            config.server.port,
        )
    logger.info("State directory: %s", config.home_path)

    # Run until interrupted
    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        logger.info("Shutting down...")
        await scheduler.stop()

        if config.persistence.save_on_shutdown:
            path = store.save_snapshot(engine.state, config.persistence.snapshot_file)
            logger.info("Saved market state to %s", path)

        store.close()
        if runner is not None:
            await runner.cleanup()
        logger.info("Shutdown complete")


def main() -> None:
    args = parse_args()
    setup_logging("INFO")
    try:
        asyncio.run(run(config_path=args.config, env_path=args.env))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
