"""Accumulation targets for the global Jacobian."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from scipy import sparse

from .errors import ConfigurationError


class Matrix(ABC):
    """Square matrix supporting zeroing and accumulating writes."""

    def __init__(self, size: int):
        if size < 0:
            raise ConfigurationError(f"Matrix size must be non-negative, got {size}")
        self.size = int(size)

    def _check_index(self, row: int, col: int) -> None:
        if not (0 <= row < self.size and 0 <= col < self.size):
            raise IndexError(f"Entry ({row}, {col}) outside {self.size}x{self.size} matrix")

    @abstractmethod
    def zero(self) -> None:
        pass

    @abstractmethod
    def add(self, row: int, col: int, value: float) -> None:
        """Add value at (row, col), accumulating with any existing entry."""
        pass

    @abstractmethod
    def to_dense(self) -> np.ndarray:
        pass

    def to_csr(self) -> sparse.csr_matrix:
        return sparse.csr_matrix(self.to_dense())

    def get(self, row: int, col: int) -> float:
        self._check_index(row, col)
        return float(self.to_dense()[row, col])

    @property
    def shape(self) -> tuple[int, int]:
        return (self.size, self.size)


class DenseMatrix(Matrix):
    """N x N NumPy array."""

    def __init__(self, size: int):
        super().__init__(size)
        self.A = np.zeros((self.size, self.size))

    def zero(self) -> None:
        self.A[:] = 0.0

    def add(self, row: int, col: int, value: float) -> None:
        self._check_index(row, col)
        self.A[row, col] += value

    def get(self, row: int, col: int) -> float:
        self._check_index(row, col)
        return float(self.A[row, col])

    def to_dense(self) -> np.ndarray:
        return self.A.copy()


class CooMatrix(Matrix):
    """Coordinate list; duplicate (row, col) entries are summed on conversion."""

    def __init__(self, size: int):
        super().__init__(size)
        self.rows: list[int] = []
        self.cols: list[int] = []
        self.data: list[float] = []

    def zero(self) -> None:
        self.rows.clear()
        self.cols.clear()
        self.data.clear()

    def add(self, row: int, col: int, value: float) -> None:
        self._check_index(row, col)
        self.rows.append(row)
        self.cols.append(col)
        self.data.append(value)

    @property
    def nnz_entries(self) -> int:
        """Number of stored triplets (before duplicates are summed)."""
        return len(self.data)

    def to_coo(self) -> sparse.coo_matrix:
        return sparse.coo_matrix(
            (np.asarray(self.data, dtype=np.float64),
             (np.asarray(self.rows, dtype=np.int64), np.asarray(self.cols, dtype=np.int64))),
            shape=self.shape,
        )

    def to_csr(self) -> sparse.csr_matrix:
        # csr conversion sums duplicates
        return self.to_coo().tocsr()

    def to_dense(self) -> np.ndarray:
        return self.to_csr().toarray()


MATRIX_TYPES = {
    "dense": DenseMatrix,
    "coo": CooMatrix,
}


def create_matrix(kind: str, size: int) -> Matrix:
    """Create a zero matrix of the given kind ("dense" or "coo")."""
    try:
        cls = MATRIX_TYPES[kind]
    except KeyError:
        raise ConfigurationError(
            f"Unknown matrix type '{kind}', expected one of {sorted(MATRIX_TYPES)}"
        ) from None
    return cls(size)
