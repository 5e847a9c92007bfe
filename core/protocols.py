"""Core protocols -- the seams between the simulation and its collaborators.

The engine imports these protocols. Collaborators implement them.
All protocols use Python's structural subtyping (typing.Protocol):
if your class has the right methods, it implements the protocol.
No inheritance required.
"""

from __future__ import annotations

from typing import Any, Callable, Coroutine, Protocol, Sequence, TypeVar, runtime_checkable

from core.models.events import Event

T = TypeVar("T")


# ---------------------------------------------------------------------------
# 1. EventBus -- observers of the simulation
# ---------------------------------------------------------------------------

@runtime_checkable
class EventBus(Protocol):
    """Publish/subscribe event bus.

    Default implementation: AsyncIOBus (in-process pub/sub, optional JSONL audit).
    """

    async def publish(self, event: Event) -> None:
        """Publish an event to all subscribers of its type."""
        ...

    def subscribe(self, event_type: str, callback: Callable[[Event], Coroutine[Any, Any, None]]) -> None:
        """Register a callback for an event type, a "family.*" or "*"."""
        ...

    def unsubscribe(self, event_type: str, callback: Callable[[Event], Coroutine[Any, Any, None]]) -> None:
        """Remove a previously registered callback."""
        ...


# ---------------------------------------------------------------------------
# 2. CashLedger -- the player's money, owned by the surrounding game
# ---------------------------------------------------------------------------

@runtime_checkable
class CashLedger(Protocol):
    """External cash balance the engine debits and credits.

    The engine never assigns the balance directly. It checks `balance`
    as a precondition and moves money only through debit/credit.

    A signed "adjust by amount" call is split in two here: debit() for
    negative adjustments and credit() for positive ones, each taking an
    unsigned amount. Implementations reject negative amounts.
    """

    @property
    def balance(self) -> float:
        ...

    def debit(self, amount: float) -> None:
        """Remove `amount` (>= 0) from the balance."""
        ...

    def credit(self, amount: float) -> None:
        """Add `amount` (>= 0) to the balance."""
        ...


# ---------------------------------------------------------------------------
# 3. HistoryProvider -- external daily close series for backfill
# ---------------------------------------------------------------------------

@runtime_checkable
class HistoryProvider(Protocol):
    """Fetches historical daily closes for a real-world ticker.

    Implementations may raise on network or parse errors; the backfill
    service catches everything and substitutes synthetic data.
    """

    @property
    def name(self) -> str:
        """Unique provider name, e.g. 'yahoo_finance'."""
        ...

    async def fetch_closes(self, ticker: str, days: int) -> list[float]:
        """Return up to `days` daily closes, oldest first."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...


# ---------------------------------------------------------------------------
# 4. RandomSource -- every stochastic draw in the price model
# ---------------------------------------------------------------------------

@runtime_checkable
class RandomSource(Protocol):
    """Random draws used by the simulator.

    random.Random satisfies this protocol; tests substitute scripted sources.
    """

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        ...

    def uniform(self, a: float, b: float) -> float:
        """Uniform float in [a, b]."""
        ...

    def choice(self, seq: Sequence[T]) -> T:
        """One element of a non-empty sequence."""
        ...
