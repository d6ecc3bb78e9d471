"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple


class PlotAdapter:
    """Collect accuracy/loss per evaluation step and optionally plot them."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_step(self, step: int, metrics):
        if not self.enable_plots:
            return
        accuracy = float(metrics.get("accuracy", 0.0))
        loss = float(metrics.get("loss", 0.0))
        self._history.append((step, accuracy, loss))

    def close(self) -> None:
        if not self.enable_plots or not self._history:
            return
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        steps, accuracies, losses = zip(*self._history)
        fig, (ax_acc, ax_loss) = plt.subplots(2, 1, sharex=True)
        ax_acc.plot(steps, accuracies)
        ax_acc.set_ylabel("Accuracy")
        ax_acc.set_ylim(0.0, 1.0)
        ax_loss.plot(steps, losses)
        ax_loss.set_xlabel("Iteration")
        ax_loss.set_ylabel("Loss")
        ax_acc.set_title("Training Curve")
        fig.savefig(self.run_dir / "training.png")
        plt.close(fig)

    __call__ = on_step
