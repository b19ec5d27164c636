"""Gauss-Lobatto quadrature on the reference element [-1, 1]."""

from __future__ import annotations

from functools import lru_cache

import numpy as np
from numpy.polynomial.legendre import Legendre

from .datastructures import MAX_POLY_ORDER, MAX_QUAD_PTS
from .errors import QuadratureCapacityError

# Extra order on top of 2p to absorb non-polynomial coefficients in forms
QUAD_EXTRA_ORDER = 4


def jacobi_poly(xs: np.ndarray, alpha: float, beta: float, N: int) -> np.ndarray:
    """Compute Jacobi polynomial P_N^{(alpha,beta)}(x) using recurrence."""
    if N == 0:
        return np.ones_like(xs)
    if N == 1:
        return 0.5 * (alpha - beta + (alpha + beta + 2) * xs)

    jpm2, jpm1 = np.ones_like(xs), 0.5 * (alpha - beta + (alpha + beta + 2) * xs)
    for n in range(2, N + 1):
        am1 = (2 * ((n-1) + alpha) * ((n-1) + beta)) / ((2*(n-1) + alpha + beta + 1) * (2*(n-1) + alpha + beta))
        a0 = (alpha**2 - beta**2) / ((2*(n-1) + alpha + beta + 2) * (2*(n-1) + alpha + beta))
        ap1 = (2 * ((n-1) + 1) * ((n-1) + alpha + beta + 1)) / ((2*(n-1) + alpha + beta + 2) * (2*(n-1) + alpha + beta + 1))
        jpm2, jpm1 = jpm1, ((a0 + xs) * jpm1 - am1 * jpm2) / ap1
    return jpm1


def _check_num_nodes(num_nodes: int) -> None:
    if num_nodes < 2:
        raise QuadratureCapacityError(f"Gauss-Lobatto rule needs at least 2 points, got {num_nodes}")
    if num_nodes > MAX_QUAD_PTS:
        raise QuadratureCapacityError(
            f"Requested {num_nodes} quadrature points, limit is MAX_QUAD_PTS={MAX_QUAD_PTS}"
        )


def legendre_gauss_lobatto_nodes(num_nodes: int) -> np.ndarray:
    """Compute LGL nodes on [-1, 1]."""
    _check_num_nodes(num_nodes)
    degree = num_nodes - 1
    roots = Legendre.basis(degree).deriv().roots()
    return np.sort(np.concatenate(([-1.0], np.real(roots), [1.0])))


def legendre_gauss_lobatto_weights(num_nodes: int) -> np.ndarray:
    """Compute LGL quadrature weights (sum to 2)."""
    _check_num_nodes(num_nodes)
    N = num_nodes - 1
    nodes = legendre_gauss_lobatto_nodes(num_nodes)
    P_N = jacobi_poly(nodes, 0.0, 0.0, N)
    return 2.0 / (N * (N + 1) * P_N**2)


@lru_cache(maxsize=None)
def _cached_rule(num_nodes: int) -> tuple[np.ndarray, np.ndarray]:
    nodes = legendre_gauss_lobatto_nodes(num_nodes)
    weights = legendre_gauss_lobatto_weights(num_nodes)
    nodes.flags.writeable = False
    weights.flags.writeable = False
    return nodes, weights


def num_points_for_order(order: int) -> int:
    """Smallest LGL point count exact for polynomials of degree ``order`` (2n - 3 >= order)."""
    if order < 0:
        raise QuadratureCapacityError(f"Quadrature order must be non-negative, got {order}")
    return max(2, -(-(order + 3) // 2))


def quadrature_rule(order: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Gauss-Lobatto rule exact for polynomials up to degree ``order``.

    Parameters
    ----------
    order : int
        Polynomial degree to integrate exactly

    Returns
    -------
    points, weights : ndarray
        Read-only reference points and weights on [-1, 1]

    Raises
    ------
    QuadratureCapacityError
        If the rule would need more than MAX_QUAD_PTS points
    """
    return _cached_rule(num_points_for_order(order))


def quadrature_order(p: int) -> int:
    """Quadrature order used on an element of degree ``p``."""
    if p < 1 or p > MAX_POLY_ORDER:
        raise QuadratureCapacityError(
            f"Polynomial degree {p} outside supported range 1..{MAX_POLY_ORDER}"
        )
    return 2 * p + QUAD_EXTRA_ORDER
