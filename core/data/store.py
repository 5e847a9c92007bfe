"""File + SQLite storage layer.

The whole simulation state is saved as one JSON snapshot file.
SQLite keeps backfilled daily closes; the backfill service reads them back
while they are fresh, so a restart within the cache TTL does not refetch.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from core.models.market import MarketData
from core.models.state import MarketState

logger = logging.getLogger(__name__)


class Store:
    """Unified storage layer for snapshot files + SQLite.

    All paths are relative to the home directory (~/.nowmarket/).
    """

    def __init__(self, home: Path) -> None:
        self._home = home
        self._home.mkdir(parents=True, exist_ok=True)
        self._db_path = home / "db.sqlite"
        self._db: sqlite3.Connection | None = None
        self._init_sqlite()

    # ------------------------------------------------------------------
    # SQLite
    # ------------------------------------------------------------------

    def _init_sqlite(self) -> None:
        """Initialize SQLite database and create tables if needed."""
        self._db = sqlite3.connect(str(self._db_path))
        self._db.row_factory = sqlite3.Row
        self._db.execute("PRAGMA journal_mode=WAL")

        self._db.executescript("""
            CREATE TABLE IF NOT EXISTS market_data (
                ticker TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                close REAL NOT NULL,
                source TEXT DEFAULT '',
                fetched_at TEXT DEFAULT '',
                PRIMARY KEY (ticker, timestamp, source)
            );

            CREATE INDEX IF NOT EXISTS idx_market_ticker
                ON market_data(ticker, timestamp);
        """)
        self._db.commit()
        logger.info("SQLite initialized at %s", self._db_path)

    @property
    def db(self) -> sqlite3.Connection:
        if self._db is None:
            raise RuntimeError("Store not initialized")
        return self._db

    def close(self) -> None:
        """Close the SQLite connection."""
        if self._db:
            self._db.close()
            self._db = None

    # ------------------------------------------------------------------
    # Backfilled closes (SQLite)
    # ------------------------------------------------------------------

    def save_market_data(self, data: list[MarketData]) -> int:
        """Insert backfilled rows into SQLite. Returns count of rows inserted."""
        if not data:
            return 0

        fetched_at = datetime.now(timezone.utc).isoformat()
        inserted = 0
        for d in data:
            try:
                self.db.execute(
                    """INSERT OR REPLACE INTO market_data
                       (ticker, timestamp, close, source, fetched_at)
                       VALUES (?, ?, ?, ?, ?)""",
                    (d.ticker, d.timestamp.isoformat(), d.close, d.source, fetched_at),
                )
                inserted += 1
            except sqlite3.Error:
                logger.exception("Failed to insert market data for %s", d.ticker)

        self.db.commit()
        return inserted

    def query_market_data(self, ticker: str, limit: int = 30) -> list[MarketData]:
        """Most recent `limit` closes for a ticker, oldest first."""
        rows = self.db.execute(
            """SELECT * FROM market_data
               WHERE ticker = ?
               ORDER BY timestamp DESC LIMIT ?""",
            (ticker, limit),
        ).fetchall()

        records = [
            MarketData(
                ticker=row["ticker"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
                close=row["close"],
                source=row["source"] or "",
            )
            for row in rows
        ]
        records.reverse()
        return records

    def load_recent_closes(
        self,
        ticker: str,
        days: int,
        max_age: timedelta,
    ) -> tuple[list[float], str] | None:
        """Closes fetched within `max_age`, oldest first, with their source.

        Returns None when nothing fresh is stored for the ticker.
        """
        cutoff = (datetime.now(timezone.utc) - max_age).isoformat()
        rows = self.db.execute(
            """SELECT close, source FROM market_data
               WHERE ticker = ? AND fetched_at >= ?
               ORDER BY timestamp DESC LIMIT ?""",
            (ticker, cutoff, days),
        ).fetchall()
        if not rows:
            return None
        return [row["close"] for row in reversed(rows)], rows[0]["source"] or ""

    def save_closes(self, ticker: str, closes: list[float], source: str) -> int:
        """Store a bare oldest-first close series, one row per trailing day."""
        now = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        count = len(closes)
        rows = [
            MarketData(
                ticker=ticker,
                timestamp=now - timedelta(days=count - 1 - i),
                close=close,
                source=source,
            )
            for i, close in enumerate(closes)
        ]
        return self.save_market_data(rows)

    # ------------------------------------------------------------------
    # Snapshot blob (JSON file)
    # ------------------------------------------------------------------

    def save_snapshot(self, state: MarketState, filename: str = "market_state.json") -> Path:
        """Write the whole market state atomically."""
        path = self._home / "snapshots" / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(state.model_dump_json(indent=2))
        tmp.replace(path)
        return path

    def load_snapshot(self, filename: str = "market_state.json") -> MarketState | None:
        """Load a previously saved market state, or None if absent/corrupt."""
        path = self._home / "snapshots" / filename
        if not path.exists():
            return None
        try:
            return MarketState.model_validate_json(path.read_text())
        except (ValidationError, ValueError):
            logger.exception("Failed to read snapshot %s", path)
            return None

