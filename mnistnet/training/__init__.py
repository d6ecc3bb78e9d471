"""Network pipeline and training driver."""

from .network import Network
from .pipelines import load_preset, presets, run_pipeline
from .trainer import Trainer

__all__ = ["Network", "Trainer", "load_preset", "presets", "run_pipeline"]
