"""MNIST IDX file parser.

Labels files (``idx1``) carry a big-endian ``magic, count`` header followed
by one byte per sample; images files (``idx3``) carry ``magic, count, rows,
cols`` followed by ``rows * cols`` bytes per sample.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from ..core.matrix import Matrix
from .rwfile import DatasetLoadError, read_file

LABELS_MAGIC = 2049
IMAGES_MAGIC = 2051
NUM_CLASSES = 10


def parse_labels(payload: bytes, source: str = "<labels>") -> np.ndarray:
    if len(payload) < 8:
        raise DatasetLoadError(f"{source}: truncated labels header")
    magic, count = struct.unpack(">II", payload[:8])
    if magic != LABELS_MAGIC:
        raise DatasetLoadError(f"{source}: bad labels magic {magic}")
    body = payload[8:]
    if len(body) < count:
        raise DatasetLoadError(f"{source}: expected {count} labels, found {len(body)}")
    labels = np.frombuffer(body, dtype=np.uint8, count=count)
    if labels.size and int(labels.max()) >= NUM_CLASSES:
        raise DatasetLoadError(f"{source}: label {int(labels.max())} out of range")
    return labels


def parse_images(payload: bytes, source: str = "<images>") -> tuple[np.ndarray, int, int]:
    if len(payload) < 16:
        raise DatasetLoadError(f"{source}: truncated images header")
    magic, count, rows, cols = struct.unpack(">IIII", payload[:16])
    if magic != IMAGES_MAGIC:
        raise DatasetLoadError(f"{source}: bad images magic {magic}")
    pixels = rows * cols
    body = payload[16:]
    if len(body) < count * pixels:
        raise DatasetLoadError(
            f"{source}: expected {count * pixels} pixel bytes, found {len(body)}"
        )
    images = np.frombuffer(body, dtype=np.uint8, count=count * pixels)
    return images.reshape(count, pixels), rows, cols


@dataclass(frozen=True)
class DataSet:
    """Decoded images and labels of one IDX file pair."""

    labels: np.ndarray
    images: np.ndarray
    image_rows: int
    image_cols: int
    num_classes: int = NUM_CLASSES

    @classmethod
    def load(cls, labels_path: str | Path, images_path: str | Path) -> "DataSet":
        labels = parse_labels(read_file(labels_path), str(labels_path))
        images, rows, cols = parse_images(read_file(images_path), str(images_path))
        if labels.shape[0] != images.shape[0]:
            raise DatasetLoadError(
                f"{labels_path} has {labels.shape[0]} labels but "
                f"{images_path} has {images.shape[0]} images"
            )
        return cls(labels=labels, images=images, image_rows=rows, image_cols=cols)

    @property
    def image_shape(self) -> tuple[int, int]:
        return (self.image_rows, self.image_cols)

    @property
    def num_features(self) -> int:
        return self.image_rows * self.image_cols

    def size(self) -> int:
        return int(self.labels.shape[0])

    def __len__(self) -> int:
        return self.size()

    def _check(self, index: int) -> int:
        if not 0 <= index < self.size():
            raise IndexError(f"sample {index} out of range for {self.size()} samples")
        return int(index)

    def image_to_matrix(self, index: int) -> Matrix:
        """Return sample ``index`` as a ``1 x pixels`` matrix scaled to [0, 1]."""

        index = self._check(index)
        return Matrix(1, self.num_features, self.images[index] / 255.0)

    def label_to_matrix(self, index: int) -> Matrix:
        out = Matrix(1, self.num_classes)
        out[0, self.label(index)] = 1.0
        return out

    def label(self, index: int) -> int:
        return int(self.labels[self._check(index)])


__all__ = ["DataSet", "IMAGES_MAGIC", "LABELS_MAGIC", "parse_images", "parse_labels"]
