"""Hierarchic Lobatto shape functions on the reference element [-1, 1].

Index 0 and 1 are the vertex functions (1 - x)/2 and (1 + x)/2. Index k >= 2 is
the bubble l_k = (P_k - P_{k-2}) / sqrt(2(2k - 1)), which vanishes at both
endpoints, so C0 continuity only has to be enforced on the vertex functions.
"""

from __future__ import annotations

import numpy as np
from numba import njit

from .datastructures import MAX_POLY_ORDER
from .errors import QuadratureCapacityError


@njit
def _legendre_core(x, n):
    """Legendre polynomials P_0..P_n at points x via the three-term recurrence."""
    n_pts = len(x)
    P = np.empty((n + 1, n_pts))
    for i in range(n_pts):
        P[0, i] = 1.0
    if n >= 1:
        for i in range(n_pts):
            P[1, i] = x[i]
    for k in range(1, n):
        for i in range(n_pts):
            P[k + 1, i] = ((2 * k + 1) * x[i] * P[k, i] - k * P[k - 1, i]) / (k + 1)
    return P


@njit
def _lobatto_core(x, p):
    n_pts = len(x)
    vals = np.empty((p + 1, n_pts))
    ders = np.empty((p + 1, n_pts))
    P = _legendre_core(x, max(p, 1))
    for i in range(n_pts):
        vals[0, i] = 0.5 * (1.0 - x[i])
        vals[1, i] = 0.5 * (1.0 + x[i])
        ders[0, i] = -0.5
        ders[1, i] = 0.5
    for k in range(2, p + 1):
        scale = 1.0 / np.sqrt(2.0 * (2 * k - 1))
        dscale = np.sqrt((2 * k - 1) / 2.0)
        for i in range(n_pts):
            vals[k, i] = scale * (P[k, i] - P[k - 2, i])
            ders[k, i] = dscale * P[k - 1, i]
    return vals, ders


def _check_degree(p: int) -> None:
    if p < 1 or p > MAX_POLY_ORDER:
        raise QuadratureCapacityError(
            f"Polynomial degree {p} outside supported range 1..{MAX_POLY_ORDER}"
        )


def lobatto_table(x, p: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Values and derivatives of shape functions 0..p at reference points.

    Parameters
    ----------
    x : array_like
        Reference coordinates in [-1, 1]
    p : int
        Polynomial degree

    Returns
    -------
    values, derivatives : ndarray (p + 1, n_pts)
    """
    _check_degree(p)
    xs = np.array(x, dtype=np.float64, ndmin=1)
    return _lobatto_core(xs, p)


def lobatto_fn(k: int, x) -> np.ndarray:
    """Value of shape function k at x."""
    if k < 0:
        raise IndexError(f"Shape function index must be non-negative, got {k}")
    vals, _ = lobatto_table(x, max(k, 1))
    return vals[k]


def lobatto_der(k: int, x) -> np.ndarray:
    """Derivative of shape function k at x."""
    if k < 0:
        raise IndexError(f"Shape function index must be non-negative, got {k}")
    _, ders = lobatto_table(x, max(k, 1))
    return ders[k]
