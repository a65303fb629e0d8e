"""
Run Controller
--------------
Drives the idle -> loading -> success | error cycle for interactive callers.
Every submit gets a monotonically increasing generation id; a run that
finishes after a newer one was submitted (or after reset) is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from .engine import BacktestEngine, BacktestResult, OffsetLike
from .errors import BacktestError
from .models import Event

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class RunState:
    status: RunStatus = RunStatus.IDLE
    generation: int = 0
    result: BacktestResult | None = None
    error: str | None = None

    @property
    def in_flight(self) -> bool:
        return self.status is RunStatus.LOADING


class RunController:
    """Owns the latest RunState of one engine; notifies on_change on every applied transition."""

    def __init__(
        self,
        engine: BacktestEngine,
        on_change: Callable[[RunState], None] | None = None,
    ):
        self.engine = engine
        self.on_change = on_change
        self._generation = 0
        self._state = RunState()

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state.in_flight

    def _apply(self, state: RunState) -> None:
        self._state = state
        if self.on_change is not None:
            self.on_change(state)

    async def submit(
        self,
        events: Sequence[Event],
        entry_offset: OffsetLike,
        exit_offset: OffsetLike,
    ) -> RunState:
        """
        Runs a backtest and returns its final state.
        The returned state is only applied when no newer run superseded it.
        """
        self._generation += 1
        gen = self._generation
        self._apply(RunState(RunStatus.LOADING, gen))

        try:
            result = await self.engine.run_summary(events, entry_offset, exit_offset)
        except BacktestError as exc:
            final = RunState(RunStatus.ERROR, gen, error=str(exc))
        except asyncio.CancelledError:
            if gen == self._generation:
                self._apply(RunState(RunStatus.IDLE, gen))
            raise
        except Exception as exc:
            logger.exception("run %d failed unexpectedly", gen)
            final = RunState(RunStatus.ERROR, gen, error=str(exc) or type(exc).__name__)
        else:
            final = RunState(RunStatus.SUCCESS, gen, result=result)

        if gen != self._generation:
            logger.info("discarding stale run %d (current %d)", gen, self._generation)
            return final

        self._apply(final)
        return final

    def reset(self) -> RunState:
        """Back to idle; any run still in flight becomes stale."""
        self._generation += 1
        self._apply(RunState(RunStatus.IDLE, self._generation))
        return self._state
