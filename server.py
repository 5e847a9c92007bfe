"""Lightweight aiohttp server -- the market's HTTP API.

Read routes return JSON snapshots. Write routes go through the scheduler so
they are serialized with ticks. No framework magic, no middleware stack.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

from aiohttp import web

from core.models.events import Event

if TYPE_CHECKING:
    from core.bus import AsyncIOBus
    from core.config import AppConfig
    from core.models.ledger import TradeResult
    from scheduler.runner import MarketScheduler

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig,
    bus: AsyncIOBus,
    scheduler: MarketScheduler,
) -> web.Application:
    """Create and configure the aiohttp application."""
    app = web.Application()

    # Store references for route handlers
    app["config"] = config
    app["bus"] = bus
    app["scheduler"] = scheduler

    # Register routes
    app.router.add_get("/health", handle_health)
    app.router.add_get("/events", handle_stream_events)
    app.router.add_get("/state", handle_get_state)
    app.router.add_get("/state/instruments", handle_get_instruments)
    app.router.add_get("/state/instruments/{stock_id}", handle_get_instrument)
    app.router.add_get("/state/indices", handle_get_indices)
    app.router.add_get("/state/composite", handle_get_composite)
    app.router.add_get("/state/holdings", handle_get_holdings)
    app.router.add_get("/state/portfolio", handle_get_portfolio)
    app.router.add_get("/state/transactions", handle_get_transactions)
    app.router.add_get("/state/news", handle_get_news)
    app.router.add_get("/state/clock", handle_get_clock)
    app.router.add_get("/state/mood", handle_get_mood)
    app.router.add_get("/state/watchlist", handle_get_watchlist)
    app.router.add_get("/state/cash", handle_get_cash)
    app.router.add_post("/orders/buy", handle_buy)
    app.router.add_post("/orders/sell", handle_sell)
    app.router.add_post("/watchlist/{stock_id}", handle_toggle_watch)
    app.router.add_post("/companies/{stock_id}/action", handle_company_action)

    return app


def _dump_all(items: list) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------

async def handle_health(request: web.Request) -> web.Response:
    """GET /health -- health check."""
    scheduler: MarketScheduler = request.app["scheduler"]
    clock = scheduler.engine.state.clock
    return web.json_response({
        "status": "ok",
        "running": scheduler.running,
        "ticks": scheduler.ticks,
        "clock": clock.label,
        "phase": clock.phase,
    })


async def handle_stream_events(request: web.Request) -> web.StreamResponse:
    """GET /events -- Server-Sent Events stream for real-time updates.

    Streams every bus event, or one family with ?family=trade.
    """
    bus: AsyncIOBus = request.app["bus"]
    family = request.query.get("family")
    pattern = f"{family}.*" if family else "*"

    response = web.StreamResponse(
        status=200,
        reason="OK",
        headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
    await response.prepare(request)

    queue: asyncio.Queue[Event] = asyncio.Queue()

    async def forward_event(event: Event) -> None:
        await queue.put(event)

    bus.subscribe(pattern, forward_event)

    try:
        while True:
            event = await queue.get()
            data = event.model_dump_json()
            await response.write(f"event: {event.type}\ndata: {data}\n\n".encode())
    except (asyncio.CancelledError, ConnectionResetError):
        pass
    finally:
        bus.unsubscribe(pattern, forward_event)

    return response


async def handle_get_state(request: web.Request) -> web.Response:
    """GET /state -- the whole market snapshot."""
    scheduler: MarketScheduler = request.app["scheduler"]
    return web.json_response(scheduler.engine.snapshot().model_dump(mode="json"))


async def handle_get_instruments(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    return web.json_response(_dump_all(scheduler.engine.instruments()))


async def handle_get_instrument(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    stock_id = request.match_info["stock_id"]
    inst = scheduler.engine.instrument(stock_id)
    if inst is None:
        return web.json_response({"error": f"Unknown stock: {stock_id}"}, status=404)
    return web.json_response(inst.model_dump(mode="json"))


async def handle_get_indices(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    return web.json_response(_dump_all(scheduler.engine.indices()))


async def handle_get_composite(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    return web.json_response(scheduler.engine.composite().model_dump(mode="json"))


async def handle_get_holdings(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    return web.json_response(_dump_all(scheduler.engine.holdings()))


async def handle_get_portfolio(request: web.Request) -> web.Response:
    """GET /state/portfolio -- holdings valued at current prices."""
    scheduler: MarketScheduler = request.app["scheduler"]
    return web.json_response(scheduler.engine.portfolio().model_dump(mode="json"))


async def handle_get_transactions(request: web.Request) -> web.Response:
    """GET /state/transactions[?limit=N] -- newest first."""
    scheduler: MarketScheduler = request.app["scheduler"]
    limit_param = request.query.get("limit")
    limit = None
    if limit_param is not None:
        try:
            limit = int(limit_param)
        except ValueError:
            return web.json_response({"error": "limit must be an integer"}, status=400)
    return web.json_response(_dump_all(scheduler.engine.transactions(limit)))


async def handle_get_news(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    return web.json_response(_dump_all(scheduler.engine.news()))


async def handle_get_clock(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    clock = scheduler.engine.clock()
    return web.json_response({**clock.model_dump(mode="json"), "label": clock.label})


async def handle_get_mood(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    state = scheduler.engine.state
    return web.json_response({
        **scheduler.engine.mood().model_dump(mode="json"),
        "market_status": state.market_status,
    })


async def handle_get_watchlist(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    return web.json_response(scheduler.engine.watchlist())


async def handle_get_cash(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    return web.json_response({"balance": scheduler.engine.cash.balance})


# ---------------------------------------------------------------------------
# Player actions
# ---------------------------------------------------------------------------

async def _read_order(request: web.Request) -> tuple[str, int] | web.Response:
    """Parse {"stock_id": ..., "shares": ...} or return an error response."""
    try:
        body = await request.json()
    except json.JSONDecodeError:
        return web.json_response({"error": "Invalid JSON"}, status=400)

    if not isinstance(body, dict) or "stock_id" not in body or "shares" not in body:
        return web.json_response(
            {"error": "Missing required fields: stock_id, shares"},
            status=400,
        )

    shares = body["shares"]
    if isinstance(shares, bool) or not isinstance(shares, int):
        return web.json_response({"error": "shares must be an integer"}, status=400)

    return str(body["stock_id"]), shares


def _trade_response(result: TradeResult) -> web.Response:
    # Rejections are normal outcomes, reported with a 400 and the reason
    return web.json_response(result.model_dump(mode="json"), status=200 if result.success else 400)


async def handle_buy(request: web.Request) -> web.Response:
    """POST /orders/buy -- body: {"stock_id": "MSOFT", "shares": 10}"""
    order = await _read_order(request)
    if isinstance(order, web.Response):
        return order

    scheduler: MarketScheduler = request.app["scheduler"]
    return _trade_response(await scheduler.buy(*order))


async def handle_sell(request: web.Request) -> web.Response:
    """POST /orders/sell -- body: {"stock_id": "MSOFT", "shares": 10}"""
    order = await _read_order(request)
    if isinstance(order, web.Response):
        return order

    scheduler: MarketScheduler = request.app["scheduler"]
    return _trade_response(await scheduler.sell(*order))


async def handle_toggle_watch(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    result = await scheduler.toggle_watch(request.match_info["stock_id"])
    if not result.success:
        return web.json_response(result.model_dump(mode="json"), status=404)
    return web.json_response({**result.model_dump(mode="json"), "watchlist": scheduler.engine.watchlist()})


async def handle_company_action(request: web.Request) -> web.Response:
    scheduler: MarketScheduler = request.app["scheduler"]
    return _trade_response(await scheduler.take_company_action(request.match_info["stock_id"]))
