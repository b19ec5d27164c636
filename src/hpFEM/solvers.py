"""Direct linear solvers: solve(matrix, rhs) with rhs overwritten by the solution."""

from __future__ import annotations

import logging
import warnings

import numpy as np
import scipy.linalg as la
import scipy.sparse.linalg as spla

from .errors import SingularSystemError
from .matrix import CooMatrix, DenseMatrix, Matrix

log = logging.getLogger(__name__)


def _solve_dense(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    n = A.shape[0]
    with warnings.catch_warnings():
        # singularity is reported below as SingularSystemError
        warnings.simplefilter("ignore", la.LinAlgWarning)
        lu, piv = la.lu_factor(A, check_finite=False)
    pivots = np.abs(np.diag(lu))
    if not np.all(np.isfinite(pivots)) or pivots.min() <= n * np.finfo(float).eps * pivots.max():
        raise SingularSystemError(f"Singular matrix: smallest LU pivot {pivots.min():.3e}")
    return la.lu_solve((lu, piv), b, check_finite=False)


def _solve_sparse(matrix: Matrix, b: np.ndarray) -> np.ndarray:
    A = matrix.to_csr().tocsc()
    try:
        lu = spla.splu(A)
    except RuntimeError as exc:
        raise SingularSystemError(f"Sparse LU factorization failed: {exc}") from exc
    return lu.solve(b)


def solve_linear_system(matrix: Matrix, rhs: np.ndarray) -> None:
    """
    Solve matrix @ x = rhs in place.

    Parameters
    ----------
    matrix : Matrix
        Assembled system (DenseMatrix uses LAPACK LU, sparse types use SuperLU)
    rhs : ndarray (n,)
        Right-hand side; overwritten with the solution

    Raises
    ------
    SingularSystemError
        If the factorization fails or the solution is not finite
    """
    n = matrix.size
    if rhs.shape != (n,):
        raise ValueError(f"Right-hand side has shape {rhs.shape}, expected ({n},)")
    if n == 0:
        return

    if isinstance(matrix, DenseMatrix):
        x = _solve_dense(matrix.A, rhs)
    elif isinstance(matrix, CooMatrix):
        x = _solve_sparse(matrix, rhs)
    else:
        x = _solve_dense(matrix.to_dense(), rhs)

    if not np.all(np.isfinite(x)):
        raise SingularSystemError("Linear solve produced non-finite values")

    log.debug(f"Solved {n}x{n} system ({type(matrix).__name__})")
    rhs[:] = x
