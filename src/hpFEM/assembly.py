"""Global assembly of the Jacobian and residual from registered weak forms."""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray

from .basis import lobatto_table
from .datastructures import LEFT, RIGHT, SIDE_NAMES, DirichletBC, DofSlot, Eliminated, Free
from .errors import ConfigurationError, FormEvaluationError
from .forms import SurfaceContext, VolumeContext, WeakFormRegistry
from .matrix import Matrix, create_matrix
from .mesh import Mesh
from .quadrature import quadrature_order, quadrature_rule

log = logging.getLogger(__name__)


def _coefficients(slots: list[DofSlot], y: NDArray[np.float64]) -> NDArray[np.float64]:
    """Expansion coefficients of one component on one element (Dirichlet lift included)."""
    coeff = np.empty(len(slots))
    for k, slot in enumerate(slots):
        if isinstance(slot, Free):
            coeff[k] = y[slot.index]
        elif isinstance(slot, Eliminated):
            coeff[k] = slot.value
        else:
            raise ConfigurationError("Unassigned dof slot; call assign_dofs() first")
    return coeff


def _checked(value, form, key, where: str) -> float:
    val = float(value)
    if not np.isfinite(val):
        raise FormEvaluationError(f"Form '{form.name}' {key} returned {val} on {where}")
    return val


class DiscreteProblem:
    """
    Mesh plus weak forms; assembles the Newton system J(y) dy = -F(y).

    The assembler only knows how to turn local form evaluations into global
    entries. Rows belong to test functions of equation i, columns to trial
    functions of component j. Entries touching an ``Eliminated`` slot are
    skipped; the eliminated value still enters u_prev through the lift.

    Parameters
    ----------
    mesh : Mesh
        Mesh with assigned dofs
    registry : WeakFormRegistry, optional
        Forms to assemble; an empty registry is created if omitted
    """

    def __init__(self, mesh: Mesh, registry: WeakFormRegistry | None = None):
        if registry is None:
            registry = WeakFormRegistry(mesh.n_eq)
        if registry.n_eq != mesh.n_eq:
            raise ConfigurationError(
                f"Registry has {registry.n_eq} equations but mesh has {mesh.n_eq}"
            )
        self.mesh = mesh
        self.registry = registry
        self._warned: set = set()

    # Registration pass-throughs
    def add_matrix_form(self, i: int, j: int, form) -> None:
        self.registry.add_matrix_form(i, j, form)

    def add_vector_form(self, i: int, form) -> None:
        self.registry.add_vector_form(i, form)

    def add_matrix_form_surf(self, i: int, j: int, form, side: int) -> None:
        self.registry.add_matrix_form_surf(i, j, form, side)

    def add_vector_form_surf(self, i: int, form, side: int) -> None:
        self.registry.add_vector_form_surf(i, form, side)

    @property
    def n_dof(self) -> int:
        return self.mesh.require_dofs()

    # =========================================================================
    # Public assembly entry points
    # =========================================================================

    def assemble_matrix_and_vector(
        self, matrix: Matrix, residual: NDArray[np.float64], y_prev: NDArray[np.float64]
    ) -> None:
        """Zero and fill both the Jacobian and the residual at iterate y_prev."""
        y = self._prepare(y_prev, matrix, residual)
        self._assemble(matrix, residual, y)

    def assemble_matrix(self, matrix: Matrix, y_prev: NDArray[np.float64]) -> None:
        y = self._prepare(y_prev, matrix, None)
        self._assemble(matrix, None, y)

    def assemble_vector(self, residual: NDArray[np.float64], y_prev: NDArray[np.float64]) -> None:
        y = self._prepare(y_prev, None, residual)
        self._assemble(None, residual, y)

    def assemble(
        self, y_prev: NDArray[np.float64], matrix_type: str = "dense"
    ) -> tuple[Matrix, NDArray[np.float64]]:
        """Allocate and return (Jacobian, residual) at y_prev."""
        matrix = create_matrix(matrix_type, self.n_dof)
        residual = np.zeros(self.n_dof)
        self.assemble_matrix_and_vector(matrix, residual, y_prev)
        return matrix, residual

    # =========================================================================
    # Internals
    # =========================================================================

    def _prepare(self, y_prev, matrix: Matrix | None, residual) -> NDArray[np.float64]:
        n_dof = self.n_dof
        y = np.asarray(y_prev, dtype=np.float64)
        if y.shape != (n_dof,):
            raise ConfigurationError(f"Iterate has shape {y.shape}, expected ({n_dof},)")
        if matrix is not None:
            if matrix.size != n_dof:
                raise ConfigurationError(f"Matrix size {matrix.size} does not match n_dof={n_dof}")
            matrix.zero()
        if residual is not None:
            if residual.shape != (n_dof,):
                raise ConfigurationError(f"Residual has shape {residual.shape}, expected ({n_dof},)")
            residual[:] = 0.0
        self._warn_surface_on_dirichlet()
        return y

    def _warn_surface_on_dirichlet(self) -> None:
        for side in (LEFT, RIGHT):
            for eq in self.registry.surface_equations(side):
                key = (eq, side)
                if key not in self._warned and isinstance(self.mesh.get_bc(eq, side), DirichletBC):
                    self._warned.add(key)
                    log.warning(
                        f"Surface form registered for equation {eq} on the {SIDE_NAMES[side]} "
                        f"boundary, which carries a Dirichlet condition; it has no effect there"
                    )

    def _element_quadrature(self, e: int):
        """Physical points, weights, shape values and physical derivatives on element e."""
        elem = self.mesh.elements[e]
        a, b = self.mesh.element_coordinates(e)
        pts, wts = quadrature_rule(quadrature_order(elem.p))
        vals, ders = lobatto_table(pts, elem.p)
        jac = 0.5 * (b - a)
        x = 0.5 * (a + b) + jac * pts
        return x, wts * jac, vals, ders / jac

    def _prev_values(self, e: int, y, vals, dphi):
        """u_prev and du_prevdx of every component, shape (n_eq, n_pts)."""
        elem = self.mesh.elements[e]
        n_eq = self.mesh.n_eq
        u_prev = np.empty((n_eq, vals.shape[1]))
        du_prevdx = np.empty((n_eq, vals.shape[1]))
        for c in range(n_eq):
            coeff = _coefficients(elem.dof[c], y)
            u_prev[c] = coeff @ vals
            du_prevdx[c] = coeff @ dphi
        return u_prev, du_prevdx

    def _assemble(self, matrix: Matrix | None, residual, y) -> None:
        reg = self.registry
        for e, elem in enumerate(self.mesh.elements):
            x, w, vals, dphi = self._element_quadrature(e)
            u_prev, du_prevdx = self._prev_values(e, y, vals, dphi)
            where = f"element {e}"

            if matrix is not None:
                for (i, j), forms in reg.matrix_forms.items():
                    for jj, test in enumerate(elem.dof[i]):
                        if isinstance(test, Eliminated):
                            continue
                        for ii, trial in enumerate(elem.dof[j]):
                            if isinstance(trial, Eliminated):
                                continue
                            ctx = VolumeContext(
                                x=x, weights=w,
                                u=vals[ii], dudx=dphi[ii],
                                v=vals[jj], dvdx=dphi[jj],
                                u_prev=u_prev, du_prevdx=du_prevdx, element=e,
                            )
                            for form in forms:
                                val = _checked(form.evaluate(ctx), form, (i, j), where)
                                matrix.add(test.index, trial.index, val)

            if residual is not None:
                for i, forms in reg.vector_forms.items():
                    for jj, test in enumerate(elem.dof[i]):
                        if isinstance(test, Eliminated):
                            continue
                        ctx = VolumeContext(
                            x=x, weights=w, u=None, dudx=None,
                            v=vals[jj], dvdx=dphi[jj],
                            u_prev=u_prev, du_prevdx=du_prevdx, element=e,
                        )
                        for form in forms:
                            residual[test.index] += _checked(form.evaluate(ctx), form, (i,), where)

        self._assemble_surface(matrix, residual, y, LEFT)
        self._assemble_surface(matrix, residual, y, RIGHT)

    def _assemble_surface(self, matrix: Matrix | None, residual, y, side: int) -> None:
        """Surface contributions at a domain end point (interior vertices get none)."""
        reg = self.registry
        e = 0 if side == LEFT else self.mesh.n_elem - 1
        x_ref = -1.0 if side == LEFT else 1.0
        elem = self.mesh.elements[e]
        a, b = self.mesh.element_coordinates(e)
        jac = 0.5 * (b - a)
        vals, ders = lobatto_table([x_ref], elem.p)
        vals, dphi = vals[:, 0], ders[:, 0] / jac
        x = a if side == LEFT else b

        u_prev = np.empty(self.mesh.n_eq)
        du_prevdx = np.empty(self.mesh.n_eq)
        for c in range(self.mesh.n_eq):
            coeff = _coefficients(elem.dof[c], y)
            u_prev[c] = coeff @ vals
            du_prevdx[c] = coeff @ dphi
        where = f"{SIDE_NAMES[side]} boundary"

        if matrix is not None:
            for (i, j, s), forms in reg.matrix_forms_surf.items():
                if s != side:
                    continue
                for jj, test in enumerate(elem.dof[i]):
                    if isinstance(test, Eliminated):
                        continue
                    for ii, trial in enumerate(elem.dof[j]):
                        if isinstance(trial, Eliminated):
                            continue
                        ctx = SurfaceContext(
                            x=x, u=vals[ii], dudx=dphi[ii], v=vals[jj], dvdx=dphi[jj],
                            u_prev=u_prev, du_prevdx=du_prevdx, side=side,
                        )
                        for form in forms:
                            val = _checked(form.evaluate(ctx), form, (i, j), where)
                            matrix.add(test.index, trial.index, val)

        if residual is not None:
            for (i, s), forms in reg.vector_forms_surf.items():
                if s != side:
                    continue
                for jj, test in enumerate(elem.dof[i]):
                    if isinstance(test, Eliminated):
                        continue
                    ctx = SurfaceContext(
                        x=x, u=None, dudx=None, v=vals[jj], dvdx=dphi[jj],
                        u_prev=u_prev, du_prevdx=du_prevdx, side=side,
                    )
                    for form in forms:
                        residual[test.index] += _checked(form.evaluate(ctx), form, (i,), where)
