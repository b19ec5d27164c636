"""Tests for Gauss-Lobatto quadrature and Lobatto shape functions.

Run with: uv run pytest tests/test_basis.py -v
"""

import numpy as np
import pytest
from numpy.polynomial.legendre import legval

from hpFEM.quadrature import (
    legendre_gauss_lobatto_nodes,
    legendre_gauss_lobatto_weights,
    num_points_for_order,
    quadrature_rule,
    quadrature_order,
)
from hpFEM.basis import lobatto_table, lobatto_fn, lobatto_der
from hpFEM.datastructures import MAX_POLY_ORDER, MAX_QUAD_PTS
from hpFEM.errors import QuadratureCapacityError


def legendre(k, x):
    return legval(x, [0] * k + [1])


class TestQuadrature:
    """Test Gauss-Lobatto rules on [-1, 1]."""

    def test_lgl_nodes_endpoints(self):
        """LGL nodes should include -1 and 1."""
        for n in [2, 3, 5, 8, 10]:
            nodes = legendre_gauss_lobatto_nodes(n)
            assert len(nodes) == n
            assert np.isclose(nodes[0], -1.0)
            assert np.isclose(nodes[-1], 1.0)
            assert np.all(np.diff(nodes) > 0)

    def test_lgl_weights_sum(self):
        """LGL weights should sum to 2 (length of [-1,1])."""
        for n in [2, 3, 5, 8, 10]:
            weights = legendre_gauss_lobatto_weights(n)
            assert np.isclose(np.sum(weights), 2.0)
            assert np.all(weights > 0)

    def test_lgl_quadrature_exactness(self):
        """An n-point rule is exact for polynomials up to degree 2n-3."""
        n = 5
        nodes = legendre_gauss_lobatto_nodes(n)
        weights = legendre_gauss_lobatto_weights(n)
        for k in range(2 * n - 2):
            numerical = np.sum(weights * nodes**k)
            exact = 2.0 / (k + 1) if k % 2 == 0 else 0.0
            assert np.isclose(numerical, exact, atol=1e-13), f"Failed for x^{k}"

    def test_rule_for_order(self):
        """quadrature_rule(order) integrates x^order exactly with the fewest points."""
        for order in [0, 1, 2, 7, 12, 24]:
            pts, wts = quadrature_rule(order)
            assert len(pts) == num_points_for_order(order)
            assert 2 * len(pts) - 3 >= order
            exact = 2.0 / (order + 1) if order % 2 == 0 else 0.0
            assert np.isclose(np.sum(wts * pts**order), exact, atol=1e-12)

    def test_rule_is_read_only(self):
        pts, wts = quadrature_rule(6)
        with pytest.raises(ValueError):
            pts[0] = 0.0
        with pytest.raises(ValueError):
            wts[0] = 0.0

    def test_element_order(self):
        """Element rules use 2p + 4 and stay within MAX_QUAD_PTS up to MAX_POLY_ORDER."""
        assert quadrature_order(1) == 6
        pts, _ = quadrature_rule(quadrature_order(MAX_POLY_ORDER))
        assert len(pts) <= MAX_QUAD_PTS

    def test_capacity_errors(self):
        with pytest.raises(QuadratureCapacityError):
            legendre_gauss_lobatto_nodes(1)
        with pytest.raises(QuadratureCapacityError):
            legendre_gauss_lobatto_nodes(MAX_QUAD_PTS + 1)
        with pytest.raises(QuadratureCapacityError):
            quadrature_rule(2 * MAX_QUAD_PTS)
        with pytest.raises(QuadratureCapacityError):
            quadrature_order(MAX_POLY_ORDER + 1)
        with pytest.raises(QuadratureCapacityError):
            quadrature_order(0)


class TestLobattoBasis:
    """Test hierarchic Lobatto shape functions."""

    x = np.linspace(-1, 1, 41)

    def test_vertex_functions(self):
        assert np.allclose(lobatto_fn(0, self.x), (1 - self.x) / 2)
        assert np.allclose(lobatto_fn(1, self.x), (1 + self.x) / 2)
        assert np.allclose(lobatto_der(0, self.x), -0.5)
        assert np.allclose(lobatto_der(1, self.x), 0.5)

    def test_bubbles_vanish_at_endpoints(self):
        vals, _ = lobatto_table([-1.0, 1.0], 10)
        assert np.allclose(vals[2:], 0.0, atol=1e-13)

    def test_bubble_values(self):
        """l_k = (P_k - P_{k-2}) / sqrt(2(2k-1))."""
        vals, _ = lobatto_table(self.x, 8)
        for k in range(2, 9):
            expected = (legendre(k, self.x) - legendre(k - 2, self.x)) / np.sqrt(2 * (2 * k - 1))
            assert np.allclose(vals[k], expected, atol=1e-12), f"Failed for k={k}"

    def test_bubble_derivatives(self):
        """l_k' = sqrt((2k-1)/2) P_{k-1}."""
        _, ders = lobatto_table(self.x, 8)
        for k in range(2, 9):
            expected = np.sqrt((2 * k - 1) / 2) * legendre(k - 1, self.x)
            assert np.allclose(ders[k], expected, atol=1e-12), f"Failed for k={k}"

    def test_bubble_derivatives_orthonormal(self):
        """Derivatives of bubbles are orthonormal in L2(-1, 1)."""
        p = 6
        pts, wts = quadrature_rule(2 * p)
        _, ders = lobatto_table(pts, p)
        gram = (ders[2:] * wts) @ ders[2:].T
        assert np.allclose(gram, np.eye(p - 1), atol=1e-12)

    def test_hierarchic(self):
        """Rows 0..p of a higher-degree table match the degree-p table."""
        v3, d3 = lobatto_table(self.x, 3)
        v7, d7 = lobatto_table(self.x, 7)
        assert np.array_equal(v3, v7[:4])
        assert np.array_equal(d3, d7[:4])

    def test_table_accepts_read_only_input(self):
        pts, _ = quadrature_rule(8)
        vals, ders = lobatto_table(pts, 4)
        assert vals.shape == (5, len(pts))
        assert ders.shape == (5, len(pts))

    def test_invalid_degree(self):
        with pytest.raises(QuadratureCapacityError):
            lobatto_table(self.x, MAX_POLY_ORDER + 1)
        with pytest.raises(QuadratureCapacityError):
            lobatto_table(self.x, 0)
        with pytest.raises(IndexError):
            lobatto_fn(-1, self.x)
