"""Sampling of the hp solution for output and error measurement."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import numpy as np
from numba import njit
from numpy.typing import NDArray

from .basis import lobatto_table
from .datastructures import PLOTTING_ELEM_SUBDIVISION, Eliminated, Free, slots_to_arrays
from .errors import ConfigurationError
from .mesh import Mesh
from .quadrature import quadrature_order, quadrature_rule

log = logging.getLogger(__name__)


@njit
def _sample_core(x_left, x_right, idx, lift, y, vals, x_ref):
    """Numba-accelerated evaluation of the expansion at x_ref on every element."""
    n_elem, n_loc = idx.shape
    n_s = len(x_ref)
    xs = np.empty(n_elem * n_s)
    us = np.empty(n_elem * n_s)

    for e in range(n_elem):
        a, b = x_left[e], x_right[e]
        for s in range(n_s):
            val = 0.0
            for k in range(n_loc):
                if idx[e, k] >= 0:
                    val += y[idx[e, k]] * vals[k, s]
                else:
                    val += lift[e, k] * vals[k, s]
            xs[e * n_s + s] = (a + b) / 2 + x_ref[s] * (b - a) / 2
            us[e * n_s + s] = val

    return xs, us


class Linearizer:
    """Evaluates the coefficient vector y through the Lobatto basis on a mesh."""

    def __init__(self, mesh: Mesh):
        self.mesh = mesh

    def _check(self, y, eq: int) -> NDArray[np.float64]:
        n_dof = self.mesh.require_dofs()
        y = np.asarray(y, dtype=np.float64)
        if y.shape != (n_dof,):
            raise ConfigurationError(f"Coefficient vector has shape {y.shape}, expected ({n_dof},)")
        if not 0 <= eq < self.mesh.n_eq:
            raise ConfigurationError(f"Equation index {eq} out of range 0..{self.mesh.n_eq - 1}")
        return y

    def eval_approx(self, e: int, x_ref: float, y, eq: int = 0) -> tuple[float, float]:
        """Physical coordinate and solution value at reference point x_ref of element e."""
        y = self._check(y, eq)
        elem = self.mesh.elements[e]
        vals, _ = lobatto_table([x_ref], elem.p)
        val = 0.0
        for k, slot in enumerate(elem.dof[eq]):
            if isinstance(slot, Free):
                val += y[slot.index] * vals[k, 0]
            elif isinstance(slot, Eliminated):
                val += slot.value * vals[k, 0]
        a, b = self.mesh.element_coordinates(e)
        x_phys = (a + b) / 2 + x_ref * (b - a) / 2
        return x_phys, val

    def sample(
        self, y, subdivision: int = PLOTTING_ELEM_SUBDIVISION, eq: int = 0
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Sample component eq at subdivision + 1 uniform reference points per element.

        Returns
        -------
        x, values : ndarray (n_elem * (subdivision + 1),)
            In element order; shared vertices appear twice
        """
        y = self._check(y, eq)
        if subdivision < 1:
            raise ConfigurationError(f"Plot subdivision must be >= 1, got {subdivision}")

        mesh = self.mesh
        p_max = max(elem.p for elem in mesh.elements)
        idx = -np.ones((mesh.n_elem, p_max + 1), dtype=np.int64)
        lift = np.zeros((mesh.n_elem, p_max + 1))
        for e, elem in enumerate(mesh.elements):
            idx[e, : elem.p + 1], lift[e, : elem.p + 1] = slots_to_arrays(elem.dof[eq])

        # hierarchic basis: rows 0..p of the p_max table are the degree-p functions
        x_ref = -1.0 + np.arange(subdivision + 1) * (2.0 / subdivision)
        vals, _ = lobatto_table(x_ref, p_max)

        VX = mesh.VX
        return _sample_core(VX[:-1].copy(), VX[1:].copy(), idx, lift, y, vals, x_ref)

    def plot_solution(
        self, out_filename: str | Path, y, subdivision: int = PLOTTING_ELEM_SUBDIVISION
    ) -> Path:
        """
        Write the solution in gnuplot format.

        One line per sample, "x value" (one value column per equation),
        formatted with %g, subdivision + 1 lines per element in element order.
        """
        columns = []
        x = None
        for eq in range(self.mesh.n_eq):
            x, vals = self.sample(y, subdivision, eq)
            columns.append(vals)

        filepath = Path(out_filename)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        fmt = " ".join(["%g"] * (len(columns) + 1)) + "\n"
        with open(filepath, "w", newline="\n") as f:
            for row in zip(x, *columns):
                f.write(fmt % row)
        log.info(f"Saved solution to {filepath}")
        return filepath


def vertex_values(mesh: Mesh, y, eq: int = 0) -> NDArray[np.float64]:
    """Solution values at the mesh vertices (bubbles vanish there)."""
    lin = Linearizer(mesh)
    y = lin._check(y, eq)
    out = np.empty(mesh.n_elem + 1)
    for e in range(mesh.n_elem):
        _, out[e] = lin.eval_approx(e, -1.0, y, eq)
    _, out[-1] = lin.eval_approx(mesh.n_elem - 1, 1.0, y, eq)
    return out


def l2_error(mesh: Mesh, y, u_exact: Callable, eq: int = 0) -> float:
    """||u_h - u_exact||_L2 over the whole interval, by element quadrature."""
    y = Linearizer(mesh)._check(y, eq)
    error_sq = 0.0
    for e, elem in enumerate(mesh.elements):
        a, b = mesh.element_coordinates(e)
        pts, wts = quadrature_rule(quadrature_order(elem.p) + 4)
        vals, _ = lobatto_table(pts, elem.p)
        idx, lift = slots_to_arrays(elem.dof[eq])
        coeff = lift.copy()
        free = idx >= 0
        coeff[free] = y[idx[free]]
        jac = 0.5 * (b - a)
        diff = coeff @ vals - np.asarray(u_exact(0.5 * (a + b) + jac * pts))
        error_sq += jac * np.sum(wts * diff**2)
    return float(np.sqrt(error_sq))
