from __future__ import annotations

from datetime import date
from typing import Protocol


class Clock(Protocol):
    def today(self) -> date: ...


class SystemClock:
    """Local calendar date, sampled on every call."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    def __init__(self, day: date) -> None:
        self._day = day

    def today(self) -> date:
        return self._day

    def __repr__(self) -> str:
        return f"FixedClock({self._day.isoformat()})"


def resolve_today(clock: Clock | None) -> date:
    return (clock or SystemClock()).today()
