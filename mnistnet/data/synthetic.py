"""Tiny separable dataset exposing the same interface as the IDX loader."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ..core.matrix import Matrix


@dataclass
class SyntheticDataSet:
    """Gaussian clusters, one per class, with centres spread over [0.2, 0.8].

    Labels cycle through the classes so every class has the same number of
    samples (up to one).  Features are clipped to [0, 1] like pixel values.
    """

    n_samples: int = 20
    n_features: int = 4
    num_classes: int = 2
    spread: float = 0.05
    seed: int = 0
    labels: np.ndarray = field(init=False, repr=False)
    features: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.num_classes < 2:
            raise ValueError("num_classes must be at least 2")
        rng = np.random.default_rng(self.seed)
        centres = np.linspace(0.2, 0.8, self.num_classes)
        self.labels = np.arange(self.n_samples, dtype=np.int64) % self.num_classes
        noise = rng.normal(0.0, self.spread, size=(self.n_samples, self.n_features))
        self.features = np.clip(centres[self.labels][:, None] + noise, 0.0, 1.0)

    @property
    def num_features(self) -> int:
        return self.n_features

    def size(self) -> int:
        return self.n_samples

    def __len__(self) -> int:
        return self.n_samples

    def _check(self, index: int) -> int:
        if not 0 <= index < self.n_samples:
            raise IndexError(f"sample {index} out of range for {self.n_samples} samples")
        return int(index)

    def image_to_matrix(self, index: int) -> Matrix:
        return Matrix.from_numpy(self.features[self._check(index)])

    def label_to_matrix(self, index: int) -> Matrix:
        out = Matrix(1, self.num_classes)
        out[0, self.label(index)] = 1.0
        return out

    def label(self, index: int) -> int:
        return int(self.labels[self._check(index)])


__all__ = ["SyntheticDataSet"]
