"""
Event Backtester CLI

Glue layer: config -> provider -> engine -> summary table -> artifacts.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import Config, load_config
from .engine import BacktestEngine, BacktestResult
from .errors import BacktestError
from .metrics import rows_frame
from .providers import make_provider
from .run_meta import build_run_meta, write_run_meta

logger = logging.getLogger(__name__)


# -----------------------------
# Helpers
# -----------------------------
def _now_run_id() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def _default(x: Any) -> Any:
    if is_dataclass(x) and not isinstance(x, type):
        return asdict(x)
    if hasattr(x, "isoformat"):
        return x.isoformat()
    return str(x)


def _write_json(path: Path, obj: Any) -> None:
    path.write_text(json.dumps(obj, indent=2, default=_default), encoding="utf-8")


def _print_compact_json(obj: Any) -> None:
    print(json.dumps(obj, default=_default, separators=(",", ":")))


def _summary_dict(cfg: Config, result: BacktestResult) -> dict[str, Any]:
    return {
        "symbol": cfg.symbol,
        "entry": {"label": result.entry.label, "sessions": result.entry.sessions},
        "exit": {"label": result.exit.label, "sessions": result.exit.sessions},
        "events": len(result.observations),
        "mean": result.stats.mean,
        "stdev": result.stats.stdev,
        "win_rate": result.stats.win_rate,
        "returns": {str(o.label): o.ret for o in result.observations},
    }


def build_engine(cfg: Config, data_path: str | None = None) -> BacktestEngine:
    return BacktestEngine(
        make_provider(cfg.provider, data_path),
        cfg.symbol,
        window_days=cfg.engine.window_days,
        max_concurrency=cfg.engine.max_concurrency,
    )


# -----------------------------
# Commands
# -----------------------------
def cmd_backtest(
    config_path: str,
    *,
    entry: str | None = None,
    exit_: str | None = None,
    symbol: str | None = None,
    data_path: str | None = None,
    out_dir: str = "outputs/backtest",
    run_id: str | None = None,
    write_returns: bool = True,
    argv: list[str] | None = None,
) -> dict[str, Any]:
    cfg = load_config(config_path)
    if symbol:
        cfg.symbol = symbol

    entry_offset = cfg.entry_offset(entry)
    exit_offset = cfg.exit_offset(exit_)

    engine = build_engine(cfg, data_path)
    result = engine.run_summary_sync(cfg.events, entry_offset, exit_offset)
    summary = _summary_dict(cfg, result)

    run_id = run_id or _now_run_id()
    root = Path(out_dir) / run_id
    root.mkdir(parents=True, exist_ok=True)

    _write_json(root / "summary.json", summary)

    if write_returns:
        table = rows_frame(result.rows)
        table.to_csv(root / "returns.csv", index=False)
        table.to_parquet(root / "returns.parquet", index=False)

    meta = build_run_meta(
        cmd="backtest",
        argv=argv or [],
        run_id=run_id,
        outputs_dir=root,
        config_path=config_path,
        config_obj=cfg,
        data_path=data_path or cfg.provider.data_path,
        observations=result.observations,
    )
    meta.update(
        {
            "symbol": cfg.symbol,
            "entry_offset": asdict(entry_offset),
            "exit_offset": asdict(exit_offset),
            "write_returns": write_returns,
        }
    )
    write_run_meta(root, meta)
    logger.info("wrote artifacts to %s", root)

    _print_compact_json({"run_id": run_id, "artifacts_dir": str(root), **summary})
    return summary


def cmd_offsets(config_path: str) -> dict[str, Any]:
    cfg = load_config(config_path)
    out = {
        "entry": [asdict(o) for o in cfg.entry_offsets],
        "exit": [asdict(o) for o in cfg.exit_offsets],
        "default_entry": cfg.default_entry,
        "default_exit": cfg.default_exit,
    }
    _print_compact_json(out)
    return out


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(description="Event-relative return backtester")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # ---------------- backtest ----------------
    p_bt = sub.add_parser("backtest", help="Run an event backtest")
    p_bt.add_argument("--config", required=True)
    p_bt.add_argument("--entry", default=None, help="Entry offset label or session count")
    p_bt.add_argument("--exit", dest="exit_", default=None, help="Exit offset label or session count")
    p_bt.add_argument("--symbol", default=None)
    p_bt.add_argument("--data", default=None, help="Daily CSV/Parquet instead of the web provider")
    p_bt.add_argument("--out-dir", default="outputs/backtest")
    p_bt.add_argument("--run-id", default=None)
    p_bt.add_argument(
        "--write-returns", action=argparse.BooleanOptionalAction, default=True
    )

    # ---------------- offsets ----------------
    p_off = sub.add_parser("offsets", help="List the configured entry/exit offsets")
    p_off.add_argument("--config", required=True)

    args = p.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    argv_list = list(argv) if argv is not None else []

    if args.cmd == "backtest":
        try:
            cmd_backtest(
                args.config,
                entry=args.entry,
                exit_=args.exit_,
                symbol=args.symbol,
                data_path=args.data,
                out_dir=args.out_dir,
                run_id=args.run_id,
                write_returns=bool(args.write_returns),
                argv=argv_list,
            )
        except (BacktestError, ValueError) as exc:
            raise SystemExit(f"error: {exc}") from exc
        return

    if args.cmd == "offsets":
        cmd_offsets(args.config)
        return


if __name__ == "__main__":
    main()
