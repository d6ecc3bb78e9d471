"""Layer protocol and the closed set of layer variants."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Protocol, Type

import numpy as np

from .activations import sigmoid_deriv_from_output
from .matrix import Matrix
from .types import DimensionError


class Layer(Protocol):
    """Protocol implemented by every layer in a :class:`Network`."""

    def reset(self, target: Matrix) -> None:
        """Clear per-iteration state before a gradient computation."""

    def forward(self, x: Matrix) -> Matrix:
        """Return the activation for batch ``x``."""

    def backward(self, dy: Matrix) -> Matrix:
        """Return dL/dx given dL/dy for the last forward pass."""

    def learn(self, rate: float) -> None:
        """Apply the gradients from the last backward pass."""


@dataclass
class Affine:
    """Learnable linear transform ``Y = X.W + B``."""

    W: Matrix
    B: Matrix
    X: Matrix = field(default_factory=Matrix, repr=False)
    dW: Matrix = field(default_factory=Matrix, repr=False)
    dB: Matrix = field(default_factory=Matrix, repr=False)

    def __post_init__(self) -> None:
        if self.B.rows != 1 or self.B.cols != self.W.cols:
            raise DimensionError("Affine bias", self.W.shape, self.B.shape)

    @classmethod
    def initialise(
        cls,
        n_in: int,
        n_out: int,
        rng: np.random.Generator,
        scale: float = 0.1,
    ) -> "Affine":
        """Weights drawn from N(0, scale), zero bias."""

        W = Matrix.from_numpy(rng.normal(0.0, scale, size=(n_in, n_out)))
        B = Matrix(1, n_out)
        return cls(W=W, B=B)

    @property
    def n_in(self) -> int:
        return self.W.rows

    @property
    def n_out(self) -> int:
        return self.W.cols

    def reset(self, target: Matrix) -> None:
        self.X = Matrix()
        self.dW = Matrix()
        self.dB = Matrix()

    def forward(self, x: Matrix) -> Matrix:
        self.X = x.copy()
        return x.dot(self.W).add(self.B)

    def backward(self, dy: Matrix) -> Matrix:
        dx = dy.dot(self.W.transpose())
        self.dW = self.X.transpose().dot(dy)
        self.dB = dy.sum()
        return dx

    def learn(self, rate: float) -> None:
        if self.dW.is_empty:
            return
        self.W = self.W.sub(self.dW.mul(rate))
        self.B = self.B.sub(self.dB.mul(rate))

    def parameter_count(self) -> int:
        return self.W.size + self.B.size


@dataclass
class Sigmoid:
    """Elementwise logistic activation."""

    Y: Matrix = field(default_factory=Matrix, repr=False)

    def reset(self, target: Matrix) -> None:
        self.Y = Matrix()

    def forward(self, x: Matrix) -> Matrix:
        self.Y = x.sigmoid()
        return self.Y.copy()

    def backward(self, dy: Matrix) -> Matrix:
        if dy.shape != self.Y.shape:
            raise DimensionError("Sigmoid.backward", self.Y.shape, dy.shape)
        deriv = Matrix(self.Y.rows, self.Y.cols, sigmoid_deriv_from_output(self.Y.data))
        return deriv.mul(dy)

    def learn(self, rate: float) -> None:
        pass


@dataclass
class Softmax:
    """Softmax output with an implicit cross-entropy loss.

    ``backward`` ignores its argument and returns the combined
    softmax/cross-entropy gradient ``(Y - T) / batch``.  The mean loss of
    the forward pass that follows :meth:`reset` is kept in :attr:`loss` for
    reporting only; later prediction passes leave it untouched.
    """

    T: Matrix = field(default_factory=Matrix, repr=False)
    Y: Matrix = field(default_factory=Matrix, repr=False)
    loss: float = float("nan")
    _scoring: bool = field(default=False, repr=False)

    def reset(self, target: Matrix) -> None:
        self.T = target.copy()
        self.Y = Matrix()
        self.loss = float("nan")
        self._scoring = True

    def forward(self, x: Matrix) -> Matrix:
        self.Y = x.softmax()
        # Only the first pass after reset() is scored against T.
        scoring, self._scoring = self._scoring, False
        if scoring and self.T.shape == self.Y.shape and not self.Y.is_empty:
            self.loss = float(np.mean(self.Y.cross_entropy_error(self.T).data))
        return self.Y.copy()

    def backward(self, dy: Matrix) -> Matrix:
        if self.T.is_empty:
            raise RuntimeError("Softmax.backward called before reset() set a target")
        if self.T.shape != self.Y.shape:
            raise DimensionError("Softmax.backward", self.Y.shape, self.T.shape)
        return self.Y.sub(self.T).div(self.Y.rows)

    def learn(self, rate: float) -> None:
        pass


LAYER_TYPES: Dict[str, Type] = {
    "affine": Affine,
    "sigmoid": Sigmoid,
    "softmax": Softmax,
}


__all__ = ["Affine", "Layer", "LAYER_TYPES", "Sigmoid", "Softmax"]
