"""Market scheduler -- one asyncio inbox, one worker, every state change serialized.

A timer task posts Tick every `tick_interval`. Player actions and backfill
results are posted into the same inbox, so a trade can never interleave
with a tick. Slower periodic work runs off cadence counters on the tick
count:
1. Clock step every `clock_every` ticks
2. Direction snapshot every `snapshot_every` ticks
3. Autosave every `autosave_every` ticks
4. Backfill refresh every `backfill_refresh_every` ticks
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from core.config import MarketConfig
from core.data.store import Store
from core.models.events import Event, EventTypes
from core.models.ledger import TradeResult
from core.protocols import EventBus
from market.backfill import BackfillResult, BackfillService
from market.engine import MarketEngine, TickReport

logger = logging.getLogger(__name__)

SOURCE = "scheduler"


# ---------------------------------------------------------------------------
# Inbox messages
# ---------------------------------------------------------------------------

@dataclass
class Tick:
    pass


@dataclass
class ApplyBackfill:
    result: BackfillResult


@dataclass
class Buy:
    stock_id: str
    shares: int
    future: asyncio.Future | None = field(default=None, repr=False)


@dataclass
class Sell:
    stock_id: str
    shares: int
    future: asyncio.Future | None = field(default=None, repr=False)


@dataclass
class ToggleWatch:
    stock_id: str
    future: asyncio.Future | None = field(default=None, repr=False)


@dataclass
class CompanyAction:
    stock_id: str
    future: asyncio.Future | None = field(default=None, repr=False)


@dataclass
class Save:
    future: asyncio.Future | None = field(default=None, repr=False)


Message = Tick | ApplyBackfill | Buy | Sell | ToggleWatch | CompanyAction | Save


class MarketScheduler:
    """Serialized driver for a MarketEngine.

    Usage:
        scheduler = MarketScheduler(engine, bus, config.market, store=store)
        await scheduler.start()
        result = await scheduler.buy("MSOFT", 10)
        await scheduler.stop()
    """

    def __init__(
        self,
        engine: MarketEngine,
        bus: EventBus,
        config: MarketConfig,
        store: Store | None = None,
        backfill: BackfillService | None = None,
        snapshot_file: str = "market_state.json",
    ) -> None:
        self._engine = engine
        self._bus = bus
        self._config = config
        self._store = store
        self._backfill = backfill
        self._snapshot_file = snapshot_file

        self._inbox: asyncio.Queue[Message] = asyncio.Queue()
        self._ticks = 0
        self._worker: asyncio.Task | None = None
        self._timer: asyncio.Task | None = None

    @property
    def engine(self) -> MarketEngine:
        return self._engine

    @property
    def running(self) -> bool:
        return self._worker is not None

    @property
    def ticks(self) -> int:
        return self._ticks

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the worker and the tick timer."""
        if self._worker is not None:
            return
        self._worker = asyncio.create_task(self._work(), name="market-worker")
        self._timer = asyncio.create_task(self._tick_timer(), name="market-timer")
        if self._backfill is not None:
            self._backfill.start()
            self.request_backfill()
        logger.info("Scheduler started (tick every %.2fs)", self._config.tick_seconds)

    async def stop(self) -> None:
        """Cancel the timer and worker individually."""
        for task in (self._timer, self._worker):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._timer = None
        self._worker = None
        if self._backfill is not None:
            await self._backfill.stop()
        logger.info("Scheduler stopped after %d ticks", self._ticks)

    async def _tick_timer(self) -> None:
        interval = self._config.tick_seconds
        while True:
            await asyncio.sleep(interval)
            self.post(Tick())

    async def _work(self) -> None:
        while True:
            message = await self._inbox.get()
            try:
                await self.process(message)
            except Exception as exc:
                logger.exception("Error applying %s; skipped", type(message).__name__)
                future = getattr(message, "future", None)
                if future is not None and not future.done():
                    future.set_exception(exc)
            finally:
                self._inbox.task_done()

    # ------------------------------------------------------------------
    # Public facade (awaits the worker)
    # ------------------------------------------------------------------

    async def buy(self, stock_id: str, shares: int) -> TradeResult:
        return await self._call(Buy(stock_id, shares))

    async def sell(self, stock_id: str, shares: int) -> TradeResult:
        return await self._call(Sell(stock_id, shares))

    async def toggle_watch(self, stock_id: str) -> TradeResult:
        return await self._call(ToggleWatch(stock_id))

    async def take_company_action(self, stock_id: str) -> TradeResult:
        return await self._call(CompanyAction(stock_id))

    async def save(self) -> None:
        await self._call(Save())

    def post(self, message: Message) -> None:
        """Queue a message without waiting for it to be applied."""
        self._inbox.put_nowait(message)

    async def drain(self) -> None:
        """Wait until every queued message has been applied."""
        await self._inbox.join()

    async def post_backfill(self, result: BackfillResult) -> None:
        """Callback for the backfill service: merge happens on the worker."""
        await self._inbox.put(ApplyBackfill(result))

    def request_backfill(self) -> int:
        """Queue a refresh for every instrument. Returns how many were queued."""
        if self._backfill is None:
            return 0
        queued = 0
        for inst in self._engine.state.instruments:
            if self._backfill.request(inst.id, inst.sector):
                queued += 1
        logger.debug("Queued %d backfill request(s)", queued)
        return queued

    async def _call(self, message: Buy | Sell | ToggleWatch | CompanyAction | Save):
        if self._worker is None:
            # Not started: apply inline, nothing else can be running
            message.future = asyncio.get_running_loop().create_future()
            await self.process(message)
            return message.future.result()

        message.future = asyncio.get_running_loop().create_future()
        await self._inbox.put(message)
        return await message.future

    # ------------------------------------------------------------------
    # Message handlers
    # ------------------------------------------------------------------

    async def process(self, message: Message) -> None:
        """Apply one message to the engine. Called only from the worker."""
        if isinstance(message, Tick):
            await self._on_tick()
        elif isinstance(message, ApplyBackfill):
            await self._on_backfill(message.result)
        elif isinstance(message, (Buy, Sell)):
            await self._on_trade(message)
        elif isinstance(message, ToggleWatch):
            result = self._engine.toggle_watch(message.stock_id)
            if result.success:
                await self._publish(EventTypes.WATCHLIST_CHANGED, {
                    "stock_id": message.stock_id,
                    "watchlist": self._engine.watchlist(),
                })
            _resolve(message.future, result)
        elif isinstance(message, CompanyAction):
            result = self._engine.take_company_action(message.stock_id)
            if result.success:
                await self._publish(EventTypes.COMPANY_ACTION, {
                    "stock_id": message.stock_id,
                    "message": result.message,
                })
            _resolve(message.future, result)
        elif isinstance(message, Save):
            await self._save()
            _resolve(message.future, None)
        else:
            raise TypeError(f"Unknown scheduler message: {message!r}")

    async def _on_tick(self) -> None:
        self._ticks += 1
        report = self._engine.tick()
        if report.ticked:
            await self._publish_tick(report)

        if self._ticks % self._config.clock_every == 0:
            step = self._engine.advance_clock()
            clock = self._engine.state.clock
            if step.closed:
                await self._publish(EventTypes.MARKET_DAY_CLOSED, {"day": clock.day, "label": clock.label})
            if step.opened:
                await self._publish(EventTypes.MARKET_DAY_OPENED, {"day": clock.day, "label": clock.label})

        if self._ticks % self._config.snapshot_every == 0:
            moved = self._engine.record_snapshot()
            await self._publish(EventTypes.MARKET_SNAPSHOT, {"moved": moved})

        autosave = self._config.autosave_every
        if autosave and self._ticks % autosave == 0:
            await self._save()

        refresh = self._config.backfill_refresh_every
        if refresh and self._ticks % refresh == 0:
            self.request_backfill()

    async def _publish_tick(self, report: TickReport) -> None:
        state = self._engine.state
        await self._publish(EventTypes.MARKET_TICK, {
            "tick": state.tick_count,
            "clock": state.clock.label,
            "composite": report.composite_value,
            "percent_change": report.composite_change,
            "mood": state.mood.value,
            "prices": {inst.id: inst.current_price for inst in state.instruments},
        })
        for item in report.news:
            await self._publish(EventTypes.MARKET_NEWS, item.model_dump(mode="json"))
        for stock_id, amount in report.dividends:
            await self._publish(EventTypes.DIVIDEND_PAID, {"stock_id": stock_id, "amount": amount})

    async def _on_trade(self, message: Buy | Sell) -> None:
        if isinstance(message, Buy):
            result = self._engine.buy(message.stock_id, message.shares)
        else:
            result = self._engine.sell(message.stock_id, message.shares)

        if result.success:
            await self._publish(EventTypes.TRADE_EXECUTED, result.model_dump(mode="json"))
        else:
            logger.info("Trade rejected: %s", result.message)
            await self._publish(EventTypes.TRADE_REJECTED, {
                "stock_id": message.stock_id,
                "shares": message.shares,
                "side": "buy" if isinstance(message, Buy) else "sell",
                "message": result.message,
            })
        _resolve(message.future, result)

    async def _on_backfill(self, result: BackfillResult) -> None:
        if self._engine.apply_backfill(result.stock_id, result.ticker, result.closes):
            await self._publish(EventTypes.BACKFILL_COMPLETED, {
                "stock_id": result.stock_id,
                "ticker": result.ticker,
                "points": len(result.closes),
                "source": result.source,
            })

    async def _save(self) -> None:
        if self._store is None:
            return
        # Off the loop; nothing mutates state while the worker awaits the write
        path = await asyncio.to_thread(self._store.save_snapshot, self._engine.state, self._snapshot_file)
        logger.debug("Saved market snapshot to %s", path)
        await self._publish(EventTypes.SNAPSHOT_SAVED, {"path": str(path)})

    async def _publish(self, event_type: str, payload: dict) -> None:
        await self._bus.publish(Event(type=event_type, source=SOURCE, payload=payload))


def _resolve(future: asyncio.Future | None, value) -> None:
    if future is not None and not future.done():
        future.set_result(value)
