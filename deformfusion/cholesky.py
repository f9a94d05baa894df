"""Sparse normal-equation solver with a reusable fill-reducing ordering."""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import ArrayLike
from scipy.sparse import csgraph
from scipy.sparse.linalg import splu

from .jacobian import Jacobian


class CholeskyDecomp:
    """Solves ``(J^T J) delta = J^T r`` for a sparse Jacobian ``J``.

    The first solve of a sequence analyses the sparsity pattern and keeps
    the resulting ordering; later solves reuse it until :meth:`free_factor`.
    """

    def __init__(self) -> None:
        self._ordering: Optional[np.ndarray] = None

    @property
    def analysed(self) -> bool:
        return self._ordering is not None

    def free_factor(self) -> None:
        """Drop the stored analysis."""
        if self._ordering is None:
            raise RuntimeError("there is no factor to free")
        self._ordering = None

    def solve(self, jacobian: Jacobian, residual: ArrayLike, first_run: bool) -> np.ndarray:
        rhs = np.asarray(residual, dtype=np.float64).reshape(-1)
        if rhs.size != len(jacobian.rows):
            raise ValueError(
                f"residual has {rhs.size} entries for {len(jacobian.rows)} Jacobian rows"
            )

        j = jacobian.to_csr()
        normal = (j.T @ j).tocsr()
        n = normal.shape[0]

        if first_run:
            if self._ordering is not None:
                raise RuntimeError("the sparsity pattern has already been analysed")
            self._ordering = np.asarray(
                csgraph.reverse_cuthill_mckee(normal, symmetric_mode=True), dtype=np.int64
            )
        elif self._ordering is None:
            raise RuntimeError("solve with first_run=True before reusing the analysis")

        perm = self._ordering
        if perm.size != n:
            raise ValueError(
                f"analysis was made for {perm.size} unknowns, Jacobian has {n}"
            )

        gradient = j.T @ rhs
        permuted = normal[perm][:, perm].tocsc()
        try:
            factor = splu(permuted, permc_spec="NATURAL", diag_pivot_thresh=0.0)
        except RuntimeError as exc:
            raise np.linalg.LinAlgError(f"normal matrix cannot be factorised: {exc}") from exc

        solution = factor.solve(gradient[perm])
        delta = np.empty(n)
        delta[perm] = solution
        return delta