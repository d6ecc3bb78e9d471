"""Dataset registry returning train/test pairs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, MutableMapping, Protocol

from ..core.matrix import Matrix
from .idx import DataSet
from .synthetic import SyntheticDataSet

TRAIN_LABELS = "train-labels-idx1-ubyte"
TRAIN_IMAGES = "train-images-idx3-ubyte"
TEST_LABELS = "t10k-labels-idx1-ubyte"
TEST_IMAGES = "t10k-images-idx3-ubyte"


class SampleSource(Protocol):
    """Indexable source of single-sample image/label matrices."""

    num_classes: int

    @property
    def num_features(self) -> int: ...

    def size(self) -> int: ...

    def image_to_matrix(self, index: int) -> Matrix: ...

    def label_to_matrix(self, index: int) -> Matrix: ...

    def label(self, index: int) -> int: ...


@dataclass(frozen=True)
class DatasetPair:
    """Training and holdout sets of one registered dataset."""

    name: str
    train: SampleSource
    test: SampleSource
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def d_in(self) -> int:
        return int(self.train.num_features)

    @property
    def d_out(self) -> int:
        return int(self.train.num_classes)


DatasetFactory = Callable[..., DatasetPair]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(name: str) -> Callable[[DatasetFactory], DatasetFactory]:
    """Decorator registering ``func`` under ``name``."""

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[name] = func
        return func

    return _decorator


def get_dataset(name: str, **options: Any) -> DatasetPair:
    """Build the :class:`DatasetPair` for ``name``."""

    if name not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown dataset {name!r}. Available datasets: {available}")
    pair = _REGISTRY[name](**options)
    _validate(pair)
    return pair


def available_datasets() -> Iterable[str]:
    return sorted(_REGISTRY)


def _validate(pair: DatasetPair) -> None:
    if pair.train.size() == 0:
        raise ValueError(f"Dataset {pair.name!r} has an empty training split")
    if pair.train.num_features != pair.test.num_features:
        raise ValueError(
            f"Dataset {pair.name!r}: train has {pair.train.num_features} features "
            f"but test has {pair.test.num_features}"
        )
    if pair.train.num_classes != pair.test.num_classes:
        raise ValueError(f"Dataset {pair.name!r}: class count differs between splits")


@register_dataset("mnist")
def build_mnist(*, data_dir: str | Path = ".", **_: object) -> DatasetPair:
    """Load the four MNIST IDX files from ``data_dir``."""

    root = Path(data_dir)
    train = DataSet.load(root / TRAIN_LABELS, root / TRAIN_IMAGES)
    test = DataSet.load(root / TEST_LABELS, root / TEST_IMAGES)
    provenance = {
        "source": "idx",
        "data_dir": str(root),
        "train_size": train.size(),
        "test_size": test.size(),
        "image_shape": list(train.image_shape),
    }
    return DatasetPair(name="mnist", train=train, test=test, provenance=provenance)


@register_dataset("synthetic")
def build_synthetic(
    *,
    n_samples: int = 20,
    n_features: int = 4,
    num_classes: int = 2,
    spread: float = 0.05,
    seed: int = 0,
    **_: object,
) -> DatasetPair:
    train = SyntheticDataSet(n_samples, n_features, num_classes, spread, seed)
    test = SyntheticDataSet(n_samples, n_features, num_classes, spread, seed + 1)
    provenance = {
        "source": "synthetic",
        "n_samples": n_samples,
        "n_features": n_features,
        "num_classes": num_classes,
        "spread": spread,
        "seed": seed,
    }
    return DatasetPair(name="synthetic", train=train, test=test, provenance=provenance)


__all__ = [
    "DatasetPair",
    "SampleSource",
    "available_datasets",
    "build_mnist",
    "build_synthetic",
    "get_dataset",
    "register_dataset",
]
