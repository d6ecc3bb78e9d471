"""Core numerical primitives for mnistnet."""

from . import activations, layers, matrix, types

__all__ = ["activations", "layers", "matrix", "types"]
