"""Ordered layer pipeline with backpropagation and SGD updates."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

import numpy as np

from ..core.layers import LAYER_TYPES, Affine, Layer, Softmax
from ..core.matrix import Matrix
from ..core.types import DimensionError


class Network:
    """Feed-forward network that exclusively owns its layers."""

    def __init__(self, layers: Iterable[Layer]) -> None:
        self.layers: List[Layer] = list(layers)
        if not self.layers:
            raise ValueError("Network requires at least one layer")
        self._check_dims()

    @classmethod
    def build(
        cls,
        dims: Sequence[int],
        rng: np.random.Generator,
        *,
        activation: str = "sigmoid",
        init_scale: float = 0.1,
    ) -> "Network":
        """Build ``Affine -> act -> ... -> Affine -> Softmax`` for ``dims``."""

        if len(dims) < 2:
            raise ValueError(f"Need at least input and output dims, got {list(dims)}")
        if activation not in LAYER_TYPES or activation in {"affine", "softmax"}:
            raise ValueError(f"Unknown activation: {activation}")
        act_cls = LAYER_TYPES[activation]
        layers: List[Layer] = []
        last = len(dims) - 2
        for idx, (n_in, n_out) in enumerate(zip(dims[:-1], dims[1:])):
            layers.append(Affine.initialise(int(n_in), int(n_out), rng, scale=init_scale))
            layers.append(act_cls() if idx < last else Softmax())
        return cls(layers)

    def _check_dims(self) -> None:
        width = None
        for layer in self.affine_layers():
            if width is not None and layer.n_in != width:
                raise DimensionError(
                    "Network layers", (1, width), (layer.n_in, layer.n_out)
                )
            width = layer.n_out

    def affine_layers(self) -> List[Affine]:
        return [layer for layer in self.layers if isinstance(layer, Affine)]

    @property
    def dims(self) -> List[int]:
        affines = self.affine_layers()
        if not affines:
            return []
        return [affines[0].n_in] + [layer.n_out for layer in affines]

    def parameter_count(self) -> int:
        return sum(layer.parameter_count() for layer in self.affine_layers())

    @property
    def loss(self) -> float:
        """Mean cross-entropy recorded by the output layer, if any."""

        for layer in reversed(self.layers):
            if isinstance(layer, Softmax):
                return layer.loss
        return float("nan")

    def predict(self, x: Matrix) -> Matrix:
        y = x
        for layer in self.layers:
            y = layer.forward(y)
        return y

    def accuracy(self, x: Matrix, t: Matrix) -> float:
        """Fraction of rows whose predicted argmax matches the target argmax."""

        rows = min(x.rows, t.rows)
        if rows == 0:
            return 0.0
        return _match_fraction(self.predict(x), t, rows)

    def evaluate(self, x: Matrix, t: Matrix) -> Dict[str, float]:
        """Accuracy and mean cross-entropy of one prediction pass."""

        rows = min(x.rows, t.rows)
        if rows == 0:
            return {"accuracy": 0.0, "loss": float("nan")}
        y = self.predict(x)
        loss = float("nan")
        if y.shape == t.shape:
            loss = float(np.mean(y.cross_entropy_error(t).data))
        return {"accuracy": _match_fraction(y, t, rows), "loss": loss}

    def gradient(self, x: Matrix, t: Matrix) -> None:
        """Run forward then backward so every layer holds fresh gradients."""

        for layer in self.layers:
            layer.reset(t)
        y = x
        for layer in self.layers:
            y = layer.forward(y)
        for layer in reversed(self.layers):
            y = layer.backward(y)

    def train(self, x: Matrix, t: Matrix, rate: float) -> None:
        """One SGD step on batch ``(x, t)``."""

        self.gradient(x, t)
        for layer in self.layers:
            layer.learn(rate)


def _match_fraction(y: Matrix, t: Matrix, rows: int) -> float:
    predicted = y.argmax_rows()[:rows]
    expected = t.argmax_rows()[:rows]
    return float(np.count_nonzero(predicted == expected)) / rows


__all__ = ["Network"]
