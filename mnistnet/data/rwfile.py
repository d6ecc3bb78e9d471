"""Whole-file reads for dataset loaders."""

from __future__ import annotations

import gzip
from pathlib import Path


class DatasetLoadError(OSError):
    """Raised when a dataset file is missing, unreadable, truncated or malformed."""


def read_file(path: str | Path) -> bytes:
    """Return the full contents of ``path``.

    ``.gz`` files are decompressed.  Empty or short-read files are treated as
    failures, like unopenable ones.
    """

    path = Path(path)
    try:
        expected = path.stat().st_size
        if path.suffix == ".gz":
            with gzip.open(path, "rb") as handle:
                payload = handle.read()
            expected = len(payload)
        else:
            with path.open("rb") as handle:
                payload = handle.read()
    except (OSError, EOFError) as exc:
        raise DatasetLoadError(f"cannot read {path}: {exc}") from exc
    if expected <= 0 or not payload:
        raise DatasetLoadError(f"{path} is empty")
    if len(payload) != expected:
        raise DatasetLoadError(
            f"short read on {path}: expected {expected} bytes, got {len(payload)}"
        )
    return payload


__all__ = ["DatasetLoadError", "read_file"]
