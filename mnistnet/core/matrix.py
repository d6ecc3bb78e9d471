"""Dense 2-D matrix with copy-on-write shared storage.

A :class:`Matrix` behaves like a value: ``copy.copy(m)`` or ``m.copy()`` is
O(1) and shares the underlying buffer with ``m``.  The buffer is reference
counted and every mutating accessor detaches from it first when it is
shared, so a write through one holder is never visible through another.

All operations that can receive operands of the wrong shape raise
:class:`~mnistnet.core.types.DimensionError` instead of returning an empty
result.
"""

from __future__ import annotations

import operator
from numbers import Real
from typing import Iterable, Sequence

import numpy as np

from . import activations
from .types import Array, DimensionError, Shape

DTYPE = np.float64


class _Storage:
    """Flat buffer shared by one or more matrices.

    ``buf`` may be longer than the logical size of its owners; the spare
    capacity lets :meth:`Matrix.add_rows` grow without reallocating on
    every call.
    """

    __slots__ = ("buf", "refs")

    def __init__(self, buf: Array) -> None:
        self.buf = buf
        self.refs = 1


class Matrix:
    """Row-major ``rows x cols`` matrix of float64 values."""

    __slots__ = ("_rows", "_cols", "_storage")

    def __init__(
        self,
        rows: int = 0,
        cols: int = 0,
        data: Iterable[float] | Array | None = None,
    ) -> None:
        self._rows = 0
        self._cols = 0
        self._storage: _Storage | None = None
        self.make(rows, cols, data)

    # ------------------------------------------------------------------
    # Construction and storage management

    def make(
        self,
        rows: int,
        cols: int,
        data: Iterable[float] | Array | None = None,
    ) -> "Matrix":
        """Allocate a fresh ``rows x cols`` buffer, zero-filled or from ``data``.

        Any sharing with other matrices is broken.  Returns ``self``.
        """

        rows, cols = int(rows), int(cols)
        if rows < 0 or cols < 0:
            raise DimensionError("make", (rows, cols))
        size = rows * cols
        if data is None:
            buf = np.zeros(size, dtype=DTYPE)
        else:
            buf = np.array(data, dtype=DTYPE, copy=True).reshape(-1)
            if buf.size != size:
                raise DimensionError("make", (rows, cols), (1, int(buf.size)))
        self._release()
        self._storage = _Storage(buf)
        self._rows = rows
        self._cols = cols
        return self

    @classmethod
    def from_numpy(cls, array: Array) -> "Matrix":
        """Return a matrix holding a private copy of a 1-D or 2-D array."""

        array = np.asarray(array, dtype=DTYPE)
        if array.ndim == 1:
            array = array.reshape(1, -1)
        if array.ndim != 2:
            raise ValueError(f"Expected a 1-D or 2-D array, got {array.ndim}-D")
        return cls(array.shape[0], array.shape[1], array)

    @classmethod
    def _adopt(cls, array: Array) -> "Matrix":
        # ``array`` must be freshly allocated and not referenced elsewhere.
        out = cls.__new__(cls)
        out._rows, out._cols = (int(n) for n in array.shape)
        out._storage = _Storage(np.ascontiguousarray(array, dtype=DTYPE).reshape(-1))
        return out

    def copy(self) -> "Matrix":
        """Return a logical copy sharing this matrix's buffer."""

        out = Matrix.__new__(Matrix)
        out._rows = self._rows
        out._cols = self._cols
        out._storage = self._storage
        if self._storage is not None:
            self._storage.refs += 1
        return out

    __copy__ = copy

    def __deepcopy__(self, memo: dict) -> "Matrix":
        return Matrix._adopt(self._grid().copy())

    def _release(self) -> None:
        storage = getattr(self, "_storage", None)
        if storage is not None:
            storage.refs -= 1
        self._storage = None

    def __del__(self) -> None:
        self._release()

    def _detach(self) -> Array:
        """Return the writable flat buffer, copying it first if shared."""

        storage = self._storage
        if storage is None:
            raise RuntimeError("Matrix has no storage")
        if storage.refs > 1:
            storage.refs -= 1
            storage = _Storage(storage.buf[: self.size].copy())
            self._storage = storage
        return storage.buf

    @property
    def is_shared(self) -> bool:
        return self._storage is not None and self._storage.refs > 1

    # ------------------------------------------------------------------
    # Shape and element access

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def shape(self) -> Shape:
        return (self._rows, self._cols)

    @property
    def size(self) -> int:
        return self._rows * self._cols

    @property
    def is_empty(self) -> bool:
        return self.size == 0

    def __len__(self) -> int:
        return self._rows

    @property
    def data(self) -> Array:
        """Read-only flat view of the values in row-major order."""

        view = self._storage.buf[: self.size].view()
        view.flags.writeable = False
        return view

    def _grid(self) -> Array:
        return self.data.reshape(self._rows, self._cols)

    def to_numpy(self) -> Array:
        """Return a private ``rows x cols`` copy of the values."""

        return self._grid().copy()

    def _check_index(self, key: tuple[int, int]) -> tuple[int, int]:
        r, c = operator.index(key[0]), operator.index(key[1])
        if not (0 <= r < self._rows and 0 <= c < self._cols):
            raise IndexError(
                f"index ({r}, {c}) out of range for {self._rows}x{self._cols} matrix"
            )
        return r, c

    def __getitem__(self, key: tuple[int, int]) -> float:
        r, c = self._check_index(key)
        return float(self._storage.buf[r * self._cols + c])

    def __setitem__(self, key: tuple[int, int], value: float) -> None:
        r, c = self._check_index(key)
        buf = self._detach()
        buf[r * self._cols + c] = value

    def at(self, r: int, c: int) -> float:
        return self[r, c]

    def row(self, index: int) -> "Matrix":
        if not 0 <= index < self._rows:
            raise IndexError(f"row {index} out of range for {self._rows} rows")
        return Matrix._adopt(self._grid()[index : index + 1].copy())

    def argmax_rows(self) -> Array:
        """Column index of each row's maximum; the first maximum wins ties."""

        if self._cols == 0:
            raise DimensionError("argmax_rows", self.shape)
        return np.argmax(self._grid(), axis=1)

    # ------------------------------------------------------------------
    # Linear algebra

    def transpose(self) -> "Matrix":
        return Matrix._adopt(self._grid().T.copy())

    def dot(self, other: "Matrix") -> "Matrix":
        if self._cols != other._rows:
            raise DimensionError("dot", self.shape, other.shape)
        return Matrix._adopt(self._grid() @ other._grid())

    def _broadcast_operand(self, op: str, other: "Matrix") -> Array:
        if other.shape == self.shape:
            return other._grid()
        if other._rows == 1 and self._rows > 1 and other._cols == self._cols:
            return other._grid()
        raise DimensionError(op, self.shape, other.shape)

    def add(self, other: "Matrix") -> "Matrix":
        """Elementwise sum; a single-row ``other`` is added to every row."""

        rhs = self._broadcast_operand("add", other)
        return Matrix._adopt(self._grid() + rhs)

    def sub(self, other: "Matrix") -> "Matrix":
        """Elementwise difference; a single-row ``other`` is broadcast."""

        rhs = self._broadcast_operand("sub", other)
        return Matrix._adopt(self._grid() - rhs)

    def mul(self, other: "Matrix | float") -> "Matrix":
        """Hadamard product with a same-shape matrix, or scale by a scalar."""

        if isinstance(other, Matrix):
            if other.shape != self.shape:
                raise DimensionError("mul", self.shape, other.shape)
            return Matrix._adopt(self._grid() * other._grid())
        if not isinstance(other, Real):
            raise TypeError(f"Cannot multiply Matrix by {type(other).__name__}")
        return Matrix._adopt(self._grid() * float(other))

    def div(self, scalar: float) -> "Matrix":
        if not isinstance(scalar, Real):
            raise TypeError(f"Cannot divide Matrix by {type(scalar).__name__}")
        return Matrix._adopt(self._grid() / float(scalar))

    def sum(self) -> "Matrix":
        """Column sums as a ``1 x cols`` matrix."""

        return Matrix._adopt(self._grid().sum(axis=0, keepdims=True))

    __add__ = add
    __sub__ = sub
    __mul__ = mul
    __truediv__ = div
    __matmul__ = dot

    def __rmul__(self, other: float) -> "Matrix":
        return self.mul(other)

    # ------------------------------------------------------------------
    # Activations

    def sigmoid(self) -> "Matrix":
        return Matrix._adopt(activations.sigmoid(self._grid()))

    def softmax(self) -> "Matrix":
        return Matrix._adopt(activations.softmax(self._grid()))

    def cross_entropy_error(self, target: "Matrix") -> "Matrix":
        """Per-row cross entropy of ``self`` (probabilities) against ``target``."""

        if target.shape != self.shape:
            raise DimensionError("cross_entropy_error", self.shape, target.shape)
        return Matrix._adopt(
            activations.cross_entropy_error(self._grid(), target._grid())
        )

    # ------------------------------------------------------------------
    # Growth

    def add_rows(self, other: "Matrix") -> "Matrix":
        """Append ``other``'s rows below the existing rows, in place.

        An empty matrix takes on ``other``'s column count.  Returns ``self``.
        """

        if other.is_empty:
            if self._rows and other._cols and other._cols != self._cols:
                raise DimensionError("add_rows", self.shape, other.shape)
            return self
        if self._rows == 0:
            # Sharing is enough; the first write below detaches.
            self._release()
            self._storage = other._storage
            self._storage.refs += 1
            self._rows, self._cols = other.shape
            return self
        if other._cols != self._cols:
            raise DimensionError("add_rows", self.shape, other.shape)

        start = self.size
        needed = start + other.size
        incoming = other.data
        storage = self._storage
        if storage.refs > 1 or storage.buf.size < needed:
            capacity = max(needed, 2 * storage.buf.size)
            buf = np.empty(capacity, dtype=DTYPE)
            buf[:start] = storage.buf[:start]
            self._release()
            storage = self._storage = _Storage(buf)
        storage.buf[start:needed] = incoming
        self._rows += other._rows
        return self

    # ------------------------------------------------------------------
    # Comparison and display

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(
            np.array_equal(self.data, other.data)
        )

    __hash__ = None  # type: ignore[assignment]

    def allclose(self, other: "Matrix", rtol: float = 1e-7, atol: float = 1e-9) -> bool:
        return self.shape == other.shape and bool(
            np.allclose(self.data, other.data, rtol=rtol, atol=atol)
        )

    def __repr__(self) -> str:
        return f"Matrix({self._rows}x{self._cols}, shared={self.is_shared})"


__all__ = ["DTYPE", "Matrix"]
