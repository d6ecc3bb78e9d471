"""Dataset adapters for mnistnet."""

from .idx import DataSet
from .registry import DatasetPair, available_datasets, get_dataset, register_dataset
from .rwfile import DatasetLoadError, read_file
from .synthetic import SyntheticDataSet

__all__ = [
    "DataSet",
    "DatasetLoadError",
    "DatasetPair",
    "SyntheticDataSet",
    "available_datasets",
    "get_dataset",
    "read_file",
    "register_dataset",
]
