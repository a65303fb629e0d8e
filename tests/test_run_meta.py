"""
Tests for event_backtester.run_meta
-----------------------------------
Coverage:
- Observation fingerprints (identity across runs).
- Config and data provenance.
"""

from pathlib import Path

from event_backtester.config import Config
from event_backtester.models import ReturnObservation
from event_backtester.run_meta import (
    build_run_meta,
    fingerprint,
    sha256_file,
    write_run_meta,
)


def test_fingerprint_identity():
    a = [ReturnObservation(2019, 2.0), ReturnObservation(2020, -1.0)]
    b = [ReturnObservation(2019, 2.0), ReturnObservation(2020, -1.0)]
    assert fingerprint(a) == fingerprint(b)
    assert fingerprint(a) != fingerprint(list(reversed(a)))
    assert fingerprint(a) != fingerprint([ReturnObservation(2019, 2.01), a[1]])


def test_build_run_meta_provenance(tmp_path: Path, daily_csv: Path) -> None:
    meta = build_run_meta(
        cmd="pytest",
        argv=["backtest"],
        run_id="t",
        outputs_dir=tmp_path,
        config_obj=Config(),
        data_path=str(daily_csv),
        observations=[ReturnObservation(2019, 2.0)],
    )
    assert meta["data_sha256"] == sha256_file(daily_csv)
    assert meta["data_size_bytes"] == daily_csv.stat().st_size
    assert meta["config_dump"]["events"][0] == {"label": 2019, "date": "2019-06-03"}
    assert meta["n_observations"] == 1
    assert "git_sha" in meta


def test_config_dump_hash_is_stable(tmp_path: Path) -> None:
    kw = dict(cmd="x", argv=[], run_id="r", outputs_dir=tmp_path, config_obj=Config())
    assert build_run_meta(**kw)["config_dump_sha256"] == build_run_meta(**kw)["config_dump_sha256"]


def test_write_run_meta(tmp_path: Path) -> None:
    path = write_run_meta(tmp_path / "nested", {"run_id": "r"})
    assert path.name == "run_meta.json"
    assert path.read_text(encoding="utf-8").strip().startswith("{")
