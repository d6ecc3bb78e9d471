"""Metrics sinks for training runs."""

from __future__ import annotations

import csv
import json
import math
import subprocess
from pathlib import Path
from typing import Mapping


def _git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except Exception:  # pragma: no cover - git may be unavailable in tests
        return "unknown"


def _finite(value: float) -> float | None:
    value = float(value)
    return value if math.isfinite(value) else None


def _numeric(metrics: Mapping[str, float]) -> dict[str, float | None]:
    """Numeric entries of ``metrics``; NaN and inf become ``None``."""

    return {k: _finite(v) for k, v in metrics.items() if isinstance(v, (int, float))}


class JsonlSink:
    """Append-only JSONL writer for metrics."""

    def __init__(
        self,
        path: str | Path,
        *,
        split: str = "train",
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split
        self.seed = seed
        self.sha = sha or _git_sha()

    def _write(self, step: int, split: str, metrics: Mapping[str, float]) -> None:
        record = {
            "step": int(step),
            "split": split,
            "seed": self.seed,
            "sha": self.sha,
        }
        record.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, allow_nan=False) + "\n")

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        self._write(step, self.split, metrics)

    def on_epoch(self, step: int, metrics: Mapping[str, float]) -> None:
        self._write(step, "test", metrics)

    __call__ = on_step


class CsvSink:
    """Write metrics to CSV with a stable schema."""

    def __init__(self, path: str | Path, *, split: str = "train") -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split

    def _write(self, step: int, split: str, metrics: Mapping[str, float]) -> None:
        row = {"step": int(step), "split": split}
        row.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            fieldnames = sorted(row.keys())
            writer = csv.DictWriter(handle, fieldnames=fieldnames)
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        self._write(step, self.split, metrics)

    def on_epoch(self, step: int, metrics: Mapping[str, float]) -> None:
        self._write(step, "test", metrics)


__all__ = ["CsvSink", "JsonlSink"]
