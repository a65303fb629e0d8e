"""
Data Models
-----------
Immutable records passed between the engine, the aggregator and callers.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Literal, Union

Label = Union[str, int]


@dataclass(frozen=True)
class Event:
    """One historical occurrence of the studied event."""

    label: Label
    date: dt.date

    def __post_init__(self) -> None:
        # YAML hands us either a date or an ISO string
        d = self.date
        if isinstance(d, dt.datetime):
            d = d.date()
        elif isinstance(d, str):
            try:
                d = dt.date.fromisoformat(d.strip())
            except ValueError as exc:
                raise ValueError(
                    f"Configuration Error: event {self.label!r} has invalid date {self.date!r}"
                ) from exc
        elif not isinstance(d, dt.date):
            raise ValueError(
                f"Configuration Error: event {self.label!r} has invalid date {self.date!r}"
            )
        object.__setattr__(self, "date", d)


@dataclass(frozen=True)
class SessionOffset:
    """Signed distance in trading sessions from the event session (0 = itself)."""

    label: str
    sessions: int

    def __post_init__(self) -> None:
        if isinstance(self.sessions, bool) or not isinstance(self.sessions, int):
            raise ValueError(
                f"Configuration Error: offset {self.label!r} sessions must be an int, "
                f"got {self.sessions!r}"
            )


@dataclass(frozen=True)
class ReturnObservation:
    label: Label
    ret: float


@dataclass(frozen=True)
class SummaryStats:
    mean: float
    stdev: float
    win_rate: float


@dataclass(frozen=True)
class SummaryRow:
    """A per-event return or one of the trailing Avg/StDev/WinRate aggregates."""

    label: Label
    value: float
    kind: Literal["event", "aggregate"] = "event"
