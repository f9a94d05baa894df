"""Sparse Jacobian rows filled in increasing column order."""

from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np
from scipy import sparse


class OrderedJacobianRow:
    """One Jacobian row with room for ``non_zeros`` entries.

    Entries must be appended with strictly increasing column indices.
    """

    def __init__(self, non_zeros: int) -> None:
        if non_zeros < 0:
            raise ValueError("a row cannot hold a negative number of entries")
        self.max_non_zero = non_zeros
        self.indices: List[int] = []
        self.values: List[float] = []
        self._slots: Dict[int, int] = {}

    def append(self, index: int, value: float) -> None:
        """Add ``value`` at column ``index``, after every column already present."""
        if self.indices and index <= self.indices[-1]:
            raise ValueError(
                f"column {index} does not follow column {self.indices[-1]}"
            )
        if len(self.indices) >= self.max_non_zero:
            raise IndexError(f"row is full with {self.max_non_zero} entries")
        self._slots[index] = len(self.indices)
        self.indices.append(index)
        self.values.append(float(value))

    def add_to(self, index: int, value: float, weight: float) -> None:
        """Add an unweighted ``value`` to the weighted entry at ``index``."""
        try:
            slot = self._slots[index]
        except KeyError:
            raise KeyError(f"row has no entry in column {index}") from None
        self.values[slot] = (self.values[slot] / weight + value) * weight

    def non_zeros(self) -> int:
        return len(self.indices)

    def __repr__(self) -> str:
        entries = ", ".join(f"{i}: {v:g}" for i, v in zip(self.indices, self.values))
        return f"OrderedJacobianRow({{{entries}}})"


class Jacobian:
    """A list of ordered rows over a fixed number of columns."""

    def __init__(self) -> None:
        self.rows: List[OrderedJacobianRow] = []
        self._columns = 0

    def assign(self, rows: Sequence[OrderedJacobianRow], columns: int) -> None:
        """Replace the rows and the column count."""
        for row in rows:
            if row.indices and (row.indices[0] < 0 or row.indices[-1] >= columns):
                raise ValueError(f"row entries fall outside {columns} columns")
        self.rows = list(rows)
        self._columns = columns

    def cols(self) -> int:
        return self._columns

    def non_zero(self) -> int:
        return sum(row.non_zeros() for row in self.rows)

    def to_csr(self) -> sparse.csr_matrix:
        """The Jacobian as a compressed sparse row matrix."""
        indptr = np.zeros(len(self.rows) + 1, dtype=np.int64)
        np.cumsum([row.non_zeros() for row in self.rows], out=indptr[1:])
        indices = np.fromiter(
            (i for row in self.rows for i in row.indices), dtype=np.int64, count=int(indptr[-1])
        )
        data = np.fromiter(
            (v for row in self.rows for v in row.values), dtype=np.float64, count=int(indptr[-1])
        )
        return sparse.csr_matrix(
            (data, indices, indptr), shape=(len(self.rows), self._columns)
        )