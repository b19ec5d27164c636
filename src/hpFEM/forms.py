"""Weak-form interfaces and the registry consumed by the assembler.

A matrix form contributes to the Jacobian block (i, j): test functions of
equation i against trial functions of solution component j. A vector form
contributes to the residual of equation i. Volume forms integrate over an
element (they receive arrays at quadrature points and must apply the weights
themselves); surface forms are evaluated at a domain end point.

Example
-------
>>> reg = WeakFormRegistry(n_eq=1)
>>> reg.add_matrix_form(0, 0, lambda c: np.sum(c.dudx * c.dvdx * c.weights))
>>> reg.add_vector_form(0, lambda c: np.sum(c.du_prevdx[0] * c.dvdx * c.weights))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import numpy as np
from numpy.typing import NDArray

from .datastructures import LEFT, RIGHT, SIDE_NAMES, NewtonBC
from .errors import ConfigurationError

if TYPE_CHECKING:
    from .mesh import Mesh


@dataclass
class VolumeContext:
    """
    Quadrature data on one element.

    Attributes
    ----------
    x : ndarray (n_pts,)
        Physical quadrature points
    weights : ndarray (n_pts,)
        Physical quadrature weights (reference weights times h/2)
    u, dudx : ndarray (n_pts,) or None
        Trial function and derivative (None for vector forms)
    v, dvdx : ndarray (n_pts,)
        Test function and derivative
    u_prev, du_prevdx : ndarray (n_eq, n_pts)
        Current iterate and its derivative, per solution component
    element : int
        Element index
    """

    x: NDArray[np.float64]
    weights: NDArray[np.float64]
    u: NDArray[np.float64] | None
    dudx: NDArray[np.float64] | None
    v: NDArray[np.float64]
    dvdx: NDArray[np.float64]
    u_prev: NDArray[np.float64]
    du_prevdx: NDArray[np.float64]
    element: int = 0


@dataclass
class SurfaceContext:
    """Point data at a domain end point (all scalars except u_prev/du_prevdx of shape (n_eq,))."""

    x: float
    u: float | None
    dudx: float | None
    v: float
    dvdx: float
    u_prev: NDArray[np.float64]
    du_prevdx: NDArray[np.float64]
    side: int = LEFT


class MatrixForm(ABC):
    """Bilinear form contributing one Jacobian entry per (test, trial) pair."""

    name = "matrix_form"

    @abstractmethod
    def evaluate(self, ctx) -> float:
        pass


class VectorForm(ABC):
    """Linear form contributing one residual entry per test function."""

    name = "vector_form"

    @abstractmethod
    def evaluate(self, ctx) -> float:
        pass


class CallableMatrixForm(MatrixForm):
    """Adapter turning a plain function ``f(ctx) -> float`` into a MatrixForm."""

    def __init__(self, fun: Callable):
        self.fun = fun
        self.name = getattr(fun, "__name__", repr(fun))

    def evaluate(self, ctx) -> float:
        return self.fun(ctx)


class CallableVectorForm(VectorForm):
    """Adapter turning a plain function ``f(ctx) -> float`` into a VectorForm."""

    def __init__(self, fun: Callable):
        self.fun = fun
        self.name = getattr(fun, "__name__", repr(fun))

    def evaluate(self, ctx) -> float:
        return self.fun(ctx)


def _as_matrix_form(form) -> MatrixForm:
    if isinstance(form, MatrixForm):
        return form
    if callable(form):
        return CallableMatrixForm(form)
    raise ConfigurationError(f"Matrix form must be a MatrixForm or callable, got {type(form).__name__}")


def _as_vector_form(form) -> VectorForm:
    if isinstance(form, VectorForm):
        return form
    if callable(form):
        return CallableVectorForm(form)
    raise ConfigurationError(f"Vector form must be a VectorForm or callable, got {type(form).__name__}")


class WeakFormRegistry:
    """Forms keyed by equation indices (and boundary side for surface forms)."""

    def __init__(self, n_eq: int):
        if n_eq < 1:
            raise ConfigurationError(f"Number of equations must be positive, got {n_eq}")
        self.n_eq = n_eq
        self.matrix_forms: dict[tuple[int, int], list[MatrixForm]] = defaultdict(list)
        self.vector_forms: dict[int, list[VectorForm]] = defaultdict(list)
        self.matrix_forms_surf: dict[tuple[int, int, int], list[MatrixForm]] = defaultdict(list)
        self.vector_forms_surf: dict[tuple[int, int], list[VectorForm]] = defaultdict(list)

    def _check_eq(self, *eqs: int) -> None:
        for eq in eqs:
            if not 0 <= eq < self.n_eq:
                raise ConfigurationError(f"Equation index {eq} out of range 0..{self.n_eq - 1}")

    @staticmethod
    def _check_side(side: int) -> None:
        if side not in SIDE_NAMES:
            raise ConfigurationError(f"Unknown boundary side: {side}")

    def add_matrix_form(self, i: int, j: int, form) -> None:
        self._check_eq(i, j)
        self.matrix_forms[(i, j)].append(_as_matrix_form(form))

    def add_vector_form(self, i: int, form) -> None:
        self._check_eq(i)
        self.vector_forms[i].append(_as_vector_form(form))

    def add_matrix_form_surf(self, i: int, j: int, form, side: int) -> None:
        self._check_eq(i, j)
        self._check_side(side)
        self.matrix_forms_surf[(i, j, side)].append(_as_matrix_form(form))

    def add_vector_form_surf(self, i: int, form, side: int) -> None:
        self._check_eq(i)
        self._check_side(side)
        self.vector_forms_surf[(i, side)].append(_as_vector_form(form))

    def surface_equations(self, side: int) -> set[int]:
        """Test equations with any surface form on ``side``."""
        eqs = {i for (i, _, s) in self.matrix_forms_surf if s == side}
        eqs.update(i for (i, s) in self.vector_forms_surf if s == side)
        return eqs

    def is_empty(self) -> bool:
        return not (self.matrix_forms or self.vector_forms
                    or self.matrix_forms_surf or self.vector_forms_surf)


class NewtonMatrixForm(MatrixForm):
    """Surface Jacobian u v / alpha of the Robin condition alpha du/dn + u + beta = 0."""

    name = "newton_bc_matrix"

    def __init__(self, alpha: float):
        self.alpha = alpha

    def evaluate(self, ctx: SurfaceContext) -> float:
        return ctx.u * ctx.v / self.alpha


class NewtonVectorForm(VectorForm):
    """Surface residual (u_prev + beta) v / alpha of the same Robin condition."""

    name = "newton_bc_vector"

    def __init__(self, alpha: float, beta: float, eq: int = 0):
        self.alpha = alpha
        self.beta = beta
        self.eq = eq

    def evaluate(self, ctx: SurfaceContext) -> float:
        return (ctx.u_prev[self.eq] + self.beta) * ctx.v / self.alpha


def newton_bc_forms(alpha: float, beta: float, eq: int = 0) -> tuple[NewtonMatrixForm, NewtonVectorForm]:
    """
    Surface forms realizing alpha * du/dn + u + beta = 0 for the operator -u''.

    The boundary term of the weak form of -u'' is -du/dn v, which the Robin
    relation turns into (u + beta) v / alpha.
    """
    if alpha == 0:
        raise ConfigurationError("Newton boundary condition requires alpha != 0")
    return NewtonMatrixForm(alpha), NewtonVectorForm(alpha, beta, eq)


def register_newton_bcs(registry: WeakFormRegistry, mesh: "Mesh") -> int:
    """Register Robin surface forms for every NewtonBC recorded on the mesh. Returns the count."""
    if registry.n_eq != mesh.n_eq:
        raise ConfigurationError(
            f"Registry has {registry.n_eq} equations but mesh has {mesh.n_eq}"
        )
    count = 0
    for eq in range(mesh.n_eq):
        for side in (LEFT, RIGHT):
            bc = mesh.get_bc(eq, side)
            if isinstance(bc, NewtonBC):
                mat, vec = newton_bc_forms(bc.alpha, bc.beta, eq)
                registry.add_matrix_form_surf(eq, eq, mat, side)
                registry.add_vector_form_surf(eq, vec, side)
                count += 1
    return count
