"""Market clock -- PRE_OPEN -> OPEN -> CLOSED -> (next day) PRE_OPEN state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.config import MarketConfig
from core.models.state import MarketClock

logger = logging.getLogger(__name__)


@dataclass
class ClockStep:
    """Transitions that happened during one clock step."""

    opened: bool = False
    closed: bool = False
    rolled_over: bool = False
    new_week: bool = False


def _minutes(hour: int, minute: int) -> int:
    return hour * 60 + minute


def is_session_open(hour: int, minute: int, config: MarketConfig) -> bool:
    """True within [open, close)."""
    now = _minutes(hour, minute)
    return _minutes(config.open_hour, config.open_minute) <= now < _minutes(config.close_hour, 0)


def opening_clock(config: MarketConfig, day: int = 1) -> MarketClock:
    """Clock positioned at the open of `day`."""
    return MarketClock(day=day, hour=config.open_hour, minute=config.open_minute, open=True, phase="OPEN")


def advance_clock(clock: MarketClock, config: MarketConfig) -> ClockStep:
    """Move the clock one step forward and report any session transition."""
    step = ClockStep()

    if clock.phase == "CLOSED":
        _roll_over(clock, config, step)
        return step

    clock.minute += 1
    if clock.minute >= 60:
        clock.minute = 0
        clock.hour += 1
    if clock.hour >= 24:
        clock.hour = 0

    if clock.phase == "OPEN":
        if not is_session_open(clock.hour, clock.minute, config):
            clock.open = False
            clock.phase = "CLOSED"
            step.closed = True
            logger.info("Session closed: %s", clock.label)
    elif is_session_open(clock.hour, clock.minute, config):
        clock.open = True
        clock.phase = "OPEN"
        step.opened = True
        logger.info("Session opened: %s", clock.label)

    return step


def _roll_over(clock: MarketClock, config: MarketConfig, step: ClockStep) -> None:
    clock.day += 1
    step.rolled_over = True
    step.new_week = (clock.day - 1) % config.week_length_days == 0

    open_at = _minutes(config.open_hour, config.open_minute) - config.pre_open_minutes
    clock.hour, clock.minute = divmod(max(open_at, 0), 60)

    if config.pre_open_minutes > 0:
        clock.open = False
        clock.phase = "PRE_OPEN"
        logger.info("Day %d pre-open at %02d:%02d", clock.day, clock.hour, clock.minute)
    else:
        clock.open = True
        clock.phase = "OPEN"
        step.opened = True
        logger.info("Session opened: %s", clock.label)
