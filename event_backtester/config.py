"""
Configuration Schemas
---------------------
Dataclasses describing a study: the symbol, the event calendar, the
enumerated entry/exit offsets and the price-source settings.
Loaded from YAML, validated strictly, and defaulting to the WWDC study.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass, field, is_dataclass
from pathlib import Path
from typing import Any

import yaml

from .models import Event, SessionOffset
from .validator import list_item_type, validate_keys

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart"
PROVIDER_KINDS = ("yahoo", "file")


def _wwdc_events() -> list[Event]:
    # WWDC day one, six most recent before 2025
    return [
        Event(2019, "2019-06-03"),
        Event(2020, "2020-06-22"),
        Event(2021, "2021-06-07"),
        Event(2022, "2022-06-06"),
        Event(2023, "2023-06-05"),
        Event(2024, "2024-06-10"),
    ]


def _entry_offsets() -> list[SessionOffset]:
    return [
        SessionOffset("5 sessions before", -5),
        SessionOffset("1 session before", -1),
        SessionOffset("Open day-of", 0),
    ]


def _exit_offsets() -> list[SessionOffset]:
    return [
        SessionOffset("Close day-of", 0),
        SessionOffset("5 sessions after", 5),
        SessionOffset("20 sessions after", 20),
    ]


@dataclass
class EngineCfg:
    """Fetch window and fan-out of the backtest engine."""

    window_days: int = 40
    max_concurrency: int = 4

    def __post_init__(self) -> None:
        if self.window_days <= 0:
            raise ValueError("Configuration Error: engine.window_days must be > 0")
        if self.max_concurrency <= 0:
            raise ValueError("Configuration Error: engine.max_concurrency must be > 0")


@dataclass
class ProviderCfg:
    """Where daily closes come from."""

    kind: str = "yahoo"
    base_url: str = YAHOO_CHART_URL
    timeout_s: float = 30.0
    retries: int = 1
    data_path: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in PROVIDER_KINDS:
            raise ValueError(
                f"Configuration Error: provider.kind must be one of {PROVIDER_KINDS}, "
                f"got {self.kind!r}"
            )
        if self.timeout_s <= 0:
            raise ValueError("Configuration Error: provider.timeout_s must be > 0")
        if self.retries < 0:
            raise ValueError("Configuration Error: provider.retries must be >= 0")


def _check_unique(labels: list[Any], what: str) -> None:
    # labels are compared as text; 2019 and "2019" key the same output row
    seen: set[str] = set()
    dupes: set[str] = set()
    for x in labels:
        key = str(x)
        if key in seen:
            dupes.add(key)
        seen.add(key)
    if dupes:
        raise ValueError(f"Configuration Error: duplicate {what} labels {sorted(dupes)}")


def _pick_offset(
    options: list[SessionOffset], choice: str | int, kind: str
) -> SessionOffset:
    """Matches a choice by label first, then by session count."""
    if isinstance(choice, str):
        for o in options:
            if o.label == choice:
                return o
        try:
            choice = int(choice.strip())
        except ValueError:
            choice = None  # type: ignore[assignment]
    if isinstance(choice, int):
        for o in options:
            if o.sessions == choice:
                return o
    allowed = ", ".join(f"{o.label!r} ({o.sessions:+d})" for o in options)
    raise ValueError(f"Unknown {kind} offset {choice!r}; choose one of: {allowed}")


@dataclass
class Config:
    """Root configuration object."""

    symbol: str = "AAPL"
    events: list[Event] = field(default_factory=_wwdc_events)
    entry_offsets: list[SessionOffset] = field(default_factory=_entry_offsets)
    exit_offsets: list[SessionOffset] = field(default_factory=_exit_offsets)
    default_entry: str = "1 session before"
    default_exit: str = "Close day-of"
    engine: EngineCfg = field(default_factory=EngineCfg)
    provider: ProviderCfg = field(default_factory=ProviderCfg)

    def __post_init__(self) -> None:
        if not self.symbol or not str(self.symbol).strip():
            raise ValueError("Configuration Error: symbol must be non-empty")
        if not self.events:
            raise ValueError("Configuration Error: at least one event is required")
        if not self.entry_offsets or not self.exit_offsets:
            raise ValueError(
                "Configuration Error: entry_offsets and exit_offsets must be non-empty"
            )

        _check_unique([e.label for e in self.events], "event")
        _check_unique([o.label for o in self.entry_offsets], "entry offset")
        _check_unique([o.label for o in self.exit_offsets], "exit offset")

        if self.default_entry not in {o.label for o in self.entry_offsets}:
            raise ValueError(
                f"Configuration Error: default_entry {self.default_entry!r} "
                "is not one of entry_offsets"
            )
        if self.default_exit not in {o.label for o in self.exit_offsets}:
            raise ValueError(
                f"Configuration Error: default_exit {self.default_exit!r} "
                "is not one of exit_offsets"
            )

    def entry_offset(self, choice: str | int | None = None) -> SessionOffset:
        return _pick_offset(
            self.entry_offsets, self.default_entry if choice is None else choice, "entry"
        )

    def exit_offset(self, choice: str | int | None = None) -> SessionOffset:
        return _pick_offset(
            self.exit_offsets, self.default_exit if choice is None else choice, "exit"
        )


def _from_dict(cls: type[Any], data: dict[str, Any]) -> Any:
    """Builds a dataclass from a validated mapping, recursing into nested schemas."""
    hints = typing.get_type_hints(cls)
    kwargs: dict[str, Any] = {}
    for k, v in data.items():
        tp = hints.get(k)
        item_tp = list_item_type(tp)
        if is_dataclass(tp) and isinstance(v, dict):
            kwargs[k] = _from_dict(typing.cast(type, tp), v)
        elif is_dataclass(item_tp) and isinstance(v, list):
            kwargs[k] = [_from_dict(typing.cast(type, item_tp), x) for x in v]
        else:
            kwargs[k] = v
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ValueError(f"Config Error: cannot build {cls.__name__}: {exc}") from exc


def load_config(path: str | Path) -> Config:
    """
    Loads a study configuration from YAML.
    Unknown keys are rejected; omitted keys keep the WWDC defaults.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(p, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    validate_keys(data, Config)
    return _from_dict(Config, data)
