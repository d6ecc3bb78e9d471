"""Core typing contracts for mnistnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

import numpy as np

Array = np.ndarray
Shape = Tuple[int, int]


class DimensionError(ValueError):
    """Raised when matrix operands have incompatible shapes."""

    def __init__(self, op: str, left: Shape, right: Shape | None = None) -> None:
        self.op = op
        self.left = left
        self.right = right
        if right is None:
            message = f"{op}: invalid shape {left[0]}x{left[1]}"
        else:
            message = (
                f"{op}: incompatible shapes {left[0]}x{left[1]} "
                f"and {right[0]}x{right[1]}"
            )
        super().__init__(message)


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :meth:`mnistnet.training.trainer.Trainer.run`."""

    steps: int
    train_accuracy: float
    test_accuracy: float
    metrics_path: str = ""
    manifest_path: str = ""


@dataclass
class History:
    """Accuracy/loss values recorded at each evaluation point."""

    steps: list[int] = field(default_factory=list)
    metrics: list[Dict[str, float]] = field(default_factory=list)

    def append(self, step: int, metrics: Dict[str, float]) -> None:
        self.steps.append(int(step))
        self.metrics.append(dict(metrics))

    def series(self, name: str) -> list[float]:
        return [m[name] for m in self.metrics if name in m]
