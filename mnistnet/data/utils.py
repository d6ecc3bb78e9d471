"""Batch assembly helpers shared by the trainer and tests."""

from __future__ import annotations

import random
from typing import Iterable

import numpy as np

from ..core.matrix import Matrix

# Upper bound of the per-sample offset drawn by :class:`IndexWalker`.
_WALK_STEP_MAX = 2**31 - 1


def seed_everything(seed: int) -> np.random.Generator:
    """Seed Python and NumPy RNGs and return a generator."""

    random.seed(seed)
    np.random.seed(seed % (2**32 - 1))
    return np.random.default_rng(seed)


def make_batch(dataset, indices: Iterable[int]) -> tuple[Matrix, Matrix]:
    """Stack the samples at ``indices`` into ``(images, one_hot_labels)``."""

    x_batch = Matrix()
    t_batch = Matrix()
    for index in indices:
        x_batch.add_rows(dataset.image_to_matrix(index))
        t_batch.add_rows(dataset.label_to_matrix(index))
    return x_batch, t_batch


def full_batch(dataset) -> tuple[Matrix, Matrix]:
    return make_batch(dataset, range(dataset.size()))


class IndexWalker:
    """Random walk over sample indices: ``k = (k + offset) % n``."""

    def __init__(self, n: int, rng: np.random.Generator, start: int = 0) -> None:
        if n <= 0:
            raise ValueError("Cannot sample from an empty dataset")
        self.n = int(n)
        self.rng = rng
        self.position = int(start) % self.n

    def next_indices(self, count: int) -> list[int]:
        out: list[int] = []
        for offset in self.rng.integers(0, _WALK_STEP_MAX, size=count):
            self.position = (self.position + int(offset)) % self.n
            out.append(self.position)
        return out


__all__ = ["IndexWalker", "full_batch", "make_batch", "seed_everything"]
