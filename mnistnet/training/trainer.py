"""Minibatch SGD training driver."""

from __future__ import annotations

from typing import Mapping, Sequence

from ..core.types import History, RunResult
from ..data.utils import IndexWalker, full_batch, make_batch, seed_everything
from .network import Network


class Trainer:
    """Run a fixed number of SGD iterations and evaluate on the holdout set.

    Every ``eval_every`` iterations the accuracy on the current minibatch is
    printed as ``[train N] <accuracy>`` and passed to each callback's
    ``on_step``.  After the loop the whole test set is scored, printed as
    ``[<test_label>] <accuracy>`` and passed to ``on_epoch``.
    """

    def __init__(
        self,
        network: Network,
        *,
        iterations: int = 1000,
        batch_size: int = 100,
        lr: float = 0.2,
        eval_every: int = 100,
        seed: int | None = None,
        callbacks: Sequence[object] | None = None,
        test_label: str = "t10k",
        verbose: bool = True,
    ) -> None:
        if iterations < 0:
            raise ValueError("iterations must be non-negative")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.network = network
        self.iterations = int(iterations)
        self.batch_size = int(batch_size)
        self.lr = float(lr)
        self.eval_every = max(1, int(eval_every))
        self.seed = seed
        self.callbacks = list(callbacks or [])
        self.test_label = test_label
        self.verbose = verbose
        self.history = History()

    def run(self, train_set, test_set=None) -> RunResult:
        rng = seed_everything(self.seed if self.seed is not None else 0)
        walker = IndexWalker(train_set.size(), rng)

        train_accuracy = float("nan")
        test_accuracy = float("nan")
        try:
            for i in range(self.iterations):
                x_batch, t_batch = make_batch(train_set, walker.next_indices(self.batch_size))
                self.network.train(x_batch, t_batch, self.lr)

                step = i + 1
                if step % self.eval_every == 0:
                    metrics = self.network.evaluate(x_batch, t_batch)
                    train_accuracy = metrics["accuracy"]
                    self.history.append(step, metrics)
                    self._log(f"[train {step}] {train_accuracy:f}")
                    self._emit("on_step", step, metrics)

            if test_set is not None:
                x_test, t_test = full_batch(test_set)
                metrics = self.network.evaluate(x_test, t_test)
                test_accuracy = metrics["accuracy"]
                self._log(f"[{self.test_label}] {test_accuracy:f}")
                self._emit("on_epoch", self.iterations, metrics)
        finally:
            for callback in self.callbacks:
                if hasattr(callback, "close"):
                    callback.close()  # type: ignore[attr-defined]

        return RunResult(
            steps=self.iterations,
            train_accuracy=train_accuracy,
            test_accuracy=test_accuracy,
        )

    def _emit(self, hook: str, step: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, hook):
                getattr(callback, hook)(step, metrics)
            elif hook == "on_step" and callable(callback):
                callback(step, metrics)

    def _log(self, line: str) -> None:
        if self.verbose:
            print(line, flush=True)


__all__ = ["Trainer"]
