"""
Run Metadata
------------
Provenance for a backtest run: git revision, environment, config hash and a
fingerprint of the observations so two runs can be compared for identity.
"""

from __future__ import annotations

import hashlib
import json
import platform
import subprocess
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .models import ReturnObservation


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _json_default(x: Any) -> Any:
    if is_dataclass(x) and not isinstance(x, type):
        return asdict(x)
    if hasattr(x, "isoformat"):
        return x.isoformat()
    return str(x)


def stable_json_dumps(obj: Any) -> str:
    """Sorted, compact JSON used for hashing."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=_json_default
    )


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def sha256_file(path: str | Path, *, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha256()
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def fingerprint(observations: Sequence[ReturnObservation]) -> str:
    """sha256 over (label, ret) pairs; equal for bit-identical runs."""
    payload = [[str(o.label), repr(float(o.ret))] for o in observations]
    return sha256_text(stable_json_dumps(payload))


def try_git_sha() -> Optional[str]:
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return out.decode("utf-8").strip()


def env_info() -> Dict[str, Any]:
    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }


def build_run_meta(
    *,
    cmd: str,
    argv: list[str],
    run_id: str,
    outputs_dir: str | Path,
    config_path: Optional[str] = None,
    config_obj: Optional[Any] = None,
    data_path: Optional[str] = None,
    observations: Optional[Sequence[ReturnObservation]] = None,
) -> Dict[str, Any]:
    """Collects provenance for one run into a JSON-serialisable dict."""
    meta: Dict[str, Any] = {
        "cmd": cmd,
        "run_id": run_id,
        "argv": argv,
        "outputs_dir": str(Path(outputs_dir)),
        "timestamp_utc": utc_now_iso(),
        "git_sha": try_git_sha(),
        "env": env_info(),
    }

    if config_path:
        meta["config_path"] = config_path
        meta["config_sha256"] = sha256_file(config_path)

    if config_obj is not None:
        dump = json.loads(stable_json_dumps(config_obj))
        meta["config_dump"] = dump
        meta["config_dump_sha256"] = sha256_text(stable_json_dumps(dump))

    if data_path:
        p = Path(data_path)
        meta["data_path"] = data_path
        if p.is_file():
            meta["data_size_bytes"] = p.stat().st_size
            meta["data_sha256"] = sha256_file(p)

    if observations is not None:
        meta["n_observations"] = len(observations)
        meta["observations_sha256"] = fingerprint(observations)

    return meta


def write_run_meta(outputs_dir: str | Path, meta: Dict[str, Any]) -> Path:
    out_dir = Path(outputs_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "run_meta.json"
    path.write_text(json.dumps(meta, indent=2, default=_json_default), encoding="utf-8")
    return path
