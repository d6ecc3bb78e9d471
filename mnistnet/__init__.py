"""mnistnet public API."""

from .core import activations  # noqa: F401
from .core.layers import Affine, Sigmoid, Softmax
from .core.matrix import Matrix
from .core.types import DimensionError, RunResult
from .data import DataSet, DatasetLoadError, get_dataset
from .training.network import Network
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "Affine",
    "DataSet",
    "DatasetLoadError",
    "DimensionError",
    "Matrix",
    "Network",
    "RunResult",
    "Sigmoid",
    "Softmax",
    "Trainer",
    "activations",
    "get_dataset",
    "load_preset",
    "presets",
    "run_pipeline",
]
