"""Reference problems: weak forms for three model systems with known solutions.

Each builder returns a :class:`ReferenceProblem` whose ``problem`` is ready for
the Newton solver (mesh built, boundary conditions set, dofs assigned, forms
registered).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from .assembly import DiscreteProblem
from .forms import MatrixForm, VectorForm, VolumeContext, register_newton_bcs
from .mesh import Mesh, line_mesh


@dataclass
class ReferenceProblem:
    """A configured problem plus the exact solution of each component (if known)."""

    name: str
    problem: DiscreteProblem
    exact: list[Callable] = field(default_factory=list)

    @property
    def mesh(self) -> Mesh:
        return self.problem.mesh


# =============================================================================
# Shared form bodies
# =============================================================================


def stiffness(c: VolumeContext) -> float:
    return np.sum(c.dudx * c.dvdx * c.weights)


def mass(c: VolumeContext) -> float:
    return np.sum(c.u * c.v * c.weights)


def advection(c: VolumeContext) -> float:
    return np.sum(c.dudx * c.v * c.weights)


class ScaledForm(MatrixForm):
    """coeff times another matrix form body."""

    def __init__(self, coeff: float, body: Callable):
        self.coeff = coeff
        self.body = body
        self.name = f"{coeff:g}*{body.__name__}"

    def evaluate(self, ctx: VolumeContext) -> float:
        return self.coeff * self.body(ctx)


class SourceForm(VectorForm):
    """-∫ f v dx."""

    def __init__(self, f: Callable):
        self.f = f
        self.name = f"source({getattr(f, '__name__', 'f')})"

    def evaluate(self, ctx: VolumeContext) -> float:
        return -np.sum(self.f(ctx.x) * ctx.v * ctx.weights)


# =============================================================================
# System u' - v = 0, k^2 u + v' = 0  (u'' + k^2 u = 0)
# =============================================================================


def system_sin(n_elem: int = 20, p: int = 2, k: float = 1.0) -> ReferenceProblem:
    """
    First-order system on (0, 2pi) with u(0) = 0, v(0) = k.

    Exact solution u = sin(kx), v = k cos(kx).
    """
    mesh = line_mesh(0.0, 2 * np.pi, n_elem, p, n_eq=2)
    mesh.set_bc_left_dirichlet(0, 0.0)
    mesh.set_bc_left_dirichlet(1, k)
    mesh.assign_dofs()

    def residual_0(c):
        return np.sum((c.du_prevdx[0] - c.u_prev[1]) * c.v * c.weights)

    def residual_1(c):
        return np.sum((k**2 * c.u_prev[0] + c.du_prevdx[1]) * c.v * c.weights)

    dp = DiscreteProblem(mesh)
    dp.add_matrix_form(0, 0, advection)
    dp.add_matrix_form(0, 1, ScaledForm(-1.0, mass))
    dp.add_matrix_form(1, 0, ScaledForm(k**2, mass))
    dp.add_matrix_form(1, 1, advection)
    dp.add_vector_form(0, residual_0)
    dp.add_vector_form(1, residual_1)

    return ReferenceProblem(
        "system_sin", dp,
        exact=[lambda x: np.sin(k * x), lambda x: k * np.cos(k * x)],
    )


# =============================================================================
# System -u'' + v - f0 = 0, -v'' + u - f1 = 0
# =============================================================================


def _f_system(x):
    return np.sin(x) + np.cos(x)


def system_laplace(n_elem: int = 3, p: int = 2, A: float = 0.0, B: float = 1.0) -> ReferenceProblem:
    """
    Coupled Poisson system with Dirichlet data taken from u = sin x, v = cos x.

    The interval must not have length n*pi, where (sin, -sin) is a null mode.
    """
    mesh = line_mesh(A, B, n_elem, p, n_eq=2)
    mesh.set_bc_left_dirichlet(0, np.sin(A))
    mesh.set_bc_right_dirichlet(0, np.sin(B))
    mesh.set_bc_left_dirichlet(1, np.cos(A))
    mesh.set_bc_right_dirichlet(1, np.cos(B))
    mesh.assign_dofs()

    def residual_0(c):
        return np.sum((c.du_prevdx[0] * c.dvdx + c.u_prev[1] * c.v) * c.weights)

    def residual_1(c):
        return np.sum((c.du_prevdx[1] * c.dvdx + c.u_prev[0] * c.v) * c.weights)

    dp = DiscreteProblem(mesh)
    dp.add_matrix_form(0, 0, stiffness)
    dp.add_matrix_form(0, 1, mass)
    dp.add_matrix_form(1, 0, mass)
    dp.add_matrix_form(1, 1, stiffness)
    dp.add_vector_form(0, residual_0)
    dp.add_vector_form(0, SourceForm(_f_system))
    dp.add_vector_form(1, residual_1)
    dp.add_vector_form(1, SourceForm(_f_system))

    return ReferenceProblem("system_laplace", dp, exact=[np.sin, np.cos])


# =============================================================================
# Poisson -u'' - f = 0 with Newton (Robin) conditions at both ends
# =============================================================================


def laplace_bc_newton(
    n_elem: int = 3,
    p: int = 3,
    alpha_left: float = 2.0,
    beta_left: float = -2.0,
    alpha_right: float = 1.0,
    beta_right: float = 1.0,
) -> ReferenceProblem:
    """
    -u'' = sin x on (0, 2pi) with alpha du/dn + u + beta = 0 at both ends.

    Exact solution u = sin x + C x + D with C, D fixed by the two conditions.
    """
    B = 2 * np.pi
    mesh = line_mesh(0.0, B, n_elem, p)
    mesh.set_bc_left_newton(0, alpha_left, beta_left)
    mesh.set_bc_right_newton(0, alpha_right, beta_right)
    mesh.assign_dofs()

    def residual_vol(c):
        return np.sum(c.du_prevdx[0] * c.dvdx * c.weights)

    dp = DiscreteProblem(mesh)
    dp.add_matrix_form(0, 0, stiffness)
    dp.add_vector_form(0, residual_vol)
    dp.add_vector_form(0, SourceForm(np.sin))
    register_newton_bcs(dp.registry, mesh)

    # left:  -alpha_l (1 + C) + D + beta_l = 0
    # right:  alpha_r (cos B + C) + sin B + C B + D + beta_r = 0
    lhs = np.array([[-alpha_left, 1.0], [alpha_right + B, 1.0]])
    rhs = np.array([alpha_left - beta_left, -alpha_right * np.cos(B) - np.sin(B) - beta_right])
    C, D = np.linalg.solve(lhs, rhs)

    return ReferenceProblem(
        "laplace_bc_newton", dp, exact=[lambda x: np.sin(x) + C * x + D]
    )


PROBLEMS = {
    "system_sin": system_sin,
    "system_laplace": system_laplace,
    "laplace_bc_newton": laplace_bc_newton,
}
