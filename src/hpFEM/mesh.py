"""1D hp mesh: vertex/element arenas, boundary conditions and dof numbering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from .datastructures import (
    LEFT,
    RIGHT,
    SIDE_NAMES,
    MAX_POLY_ORDER,
    BoundaryCondition,
    DirichletBC,
    DofSlot,
    Element,
    Eliminated,
    Free,
    NaturalBC,
    NewtonBC,
    Vertex,
)
from .errors import ConfigurationError

log = logging.getLogger(__name__)


@dataclass
class Mesh:
    """
    Equidistant 1D mesh on [A, B] carrying ``n_eq`` coupled solution components.

    Elements refer to vertices by index into ``vertices``; the mesh owns all
    storage. Degrees are unset after construction and must be fixed with
    ``set_poly_order`` or ``set_uniform_poly_order`` before ``assign_dofs``.

    Parameters
    ----------
    A, B : float
        Interval end points (A < B)
    n_elem : int
        Number of elements (>= 1)
    n_eq : int
        Number of coupled equations (>= 1)
    """

    A: float
    B: float
    n_elem: int
    n_eq: int = 1

    vertices: list[Vertex] = field(init=False, repr=False)
    elements: list[Element] = field(init=False, repr=False)
    bc_left: list[BoundaryCondition] = field(init=False)
    bc_right: list[BoundaryCondition] = field(init=False)
    n_dof: int | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        if int(self.n_eq) != self.n_eq or self.n_eq < 1:
            raise ConfigurationError(f"Number of equations must be a positive integer, got {self.n_eq}")
        self.bc_left = [NaturalBC() for _ in range(self.n_eq)]
        self.bc_right = [NaturalBC() for _ in range(self.n_eq)]
        self.create(self.A, self.B, self.n_elem)

    # =========================================================================
    # Geometry and degrees
    # =========================================================================

    def create(self, A: float, B: float, n_elem: int) -> None:
        """Build n_elem + 1 equally spaced vertices and n_elem elements with unset degree."""
        if int(n_elem) != n_elem or n_elem < 1:
            raise ConfigurationError(f"Number of elements must be a positive integer, got {n_elem}")
        if not A < B:
            raise ConfigurationError(f"Interval end points must satisfy A < B, got A={A}, B={B}")

        self.A, self.B, self.n_elem = float(A), float(B), int(n_elem)
        h = (self.B - self.A) / self.n_elem
        self.vertices = [Vertex(self.A + i * h) for i in range(self.n_elem + 1)]
        self.elements = [Element(v1=i, v2=i + 1) for i in range(self.n_elem)]
        self.n_dof = None

    def set_poly_order(self, element: int, p: int) -> None:
        """Fix the degree of one element and allocate its dof slots."""
        if not 0 <= element < self.n_elem:
            raise ConfigurationError(f"Element index {element} out of range 0..{self.n_elem - 1}")
        if int(p) != p or p < 1 or p > MAX_POLY_ORDER:
            raise ConfigurationError(f"Polynomial degree must be in 1..{MAX_POLY_ORDER}, got {p}")
        elem = self.elements[element]
        elem.p = int(p)
        elem.dof = [[None] * (elem.p + 1) for _ in range(self.n_eq)]
        self.n_dof = None

    def set_uniform_poly_order(self, p: int) -> None:
        """Set the same degree on every element."""
        for e in range(self.n_elem):
            self.set_poly_order(e, p)

    # =========================================================================
    # Boundary conditions
    # =========================================================================

    def _set_bc(self, side: int, eq: int, bc: BoundaryCondition) -> None:
        if self.n_dof is not None:
            raise ConfigurationError(
                "Boundary conditions must be set before assign_dofs()"
            )
        if not 0 <= eq < self.n_eq:
            raise ConfigurationError(f"Equation index {eq} out of range 0..{self.n_eq - 1}")
        if side == LEFT:
            self.bc_left[eq] = bc
        elif side == RIGHT:
            self.bc_right[eq] = bc
        else:
            raise ConfigurationError(f"Unknown boundary side: {side}")

    @staticmethod
    def _newton(alpha: float, beta: float) -> NewtonBC:
        if alpha == 0:
            raise ConfigurationError("Newton boundary condition requires alpha != 0")
        return NewtonBC(float(alpha), float(beta))

    def set_bc_left_dirichlet(self, eq: int, value: float) -> None:
        self._set_bc(LEFT, eq, DirichletBC(float(value)))

    def set_bc_right_dirichlet(self, eq: int, value: float) -> None:
        self._set_bc(RIGHT, eq, DirichletBC(float(value)))

    def set_bc_left_natural(self, eq: int) -> None:
        self._set_bc(LEFT, eq, NaturalBC())

    def set_bc_right_natural(self, eq: int) -> None:
        self._set_bc(RIGHT, eq, NaturalBC())

    def set_bc_left_newton(self, eq: int, alpha: float, beta: float) -> None:
        self._set_bc(LEFT, eq, self._newton(alpha, beta))

    def set_bc_right_newton(self, eq: int, alpha: float, beta: float) -> None:
        self._set_bc(RIGHT, eq, self._newton(alpha, beta))

    def get_bc(self, eq: int, side: int) -> BoundaryCondition:
        if not 0 <= eq < self.n_eq:
            raise ConfigurationError(f"Equation index {eq} out of range 0..{self.n_eq - 1}")
        if side not in SIDE_NAMES:
            raise ConfigurationError(f"Unknown boundary side: {side}")
        return self.bc_left[eq] if side == LEFT else self.bc_right[eq]

    # =========================================================================
    # Degrees of freedom
    # =========================================================================

    def assign_dofs(self) -> int:
        """
        Number all free unknowns and return their count.

        Equations are numbered one after another. Within an equation, vertex
        dofs are numbered left to right (a Dirichlet end becomes an
        ``Eliminated`` slot carrying the boundary value), followed by the
        bubble dofs element by element. Shared vertices receive one id that is
        written into both adjacent elements.
        """
        for e, elem in enumerate(self.elements):
            if elem.p is None:
                raise ConfigurationError(
                    f"Element {e} has no polynomial degree; call set_poly_order() first"
                )

        count = 0
        for eq in range(self.n_eq):
            count = self._assign_vertex_dofs(eq, count)
            count = self._assign_bubble_dofs(eq, count)

        self.n_dof = count
        log.debug(f"Assigned {count} dofs on {self.n_elem} elements, {self.n_eq} equation(s)")
        if log.isEnabledFor(logging.DEBUG):
            self.log_dof_map()
        return count

    def _end_slot(self, bc: BoundaryCondition, count: int) -> tuple[DofSlot, int]:
        if isinstance(bc, DirichletBC):
            return Eliminated(bc.value), count
        return Free(count), count + 1

    def _assign_vertex_dofs(self, eq: int, count: int) -> int:
        first, last = self.elements[0], self.elements[-1]

        first.dof[eq][0], count = self._end_slot(self.bc_left[eq], count)

        for left, right in zip(self.elements[:-1], self.elements[1:]):
            shared = Free(count)
            left.dof[eq][1] = shared
            right.dof[eq][0] = shared
            count += 1

        last.dof[eq][1], count = self._end_slot(self.bc_right[eq], count)
        return count

    def _assign_bubble_dofs(self, eq: int, count: int) -> int:
        for elem in self.elements:
            for k in range(2, elem.p + 1):
                elem.dof[eq][k] = Free(count)
                count += 1
        return count

    def require_dofs(self) -> int:
        """Return n_dof, raising if dofs have not been assigned."""
        if self.n_dof is None:
            raise ConfigurationError("Dofs not assigned; call assign_dofs() first")
        return self.n_dof

    def element_dofs(self, e: int, eq: int = 0) -> list[DofSlot]:
        self.require_dofs()
        return self.elements[e].dof[eq]

    def element_coordinates(self, e: int) -> tuple[float, float]:
        elem = self.elements[e]
        return self.vertices[elem.v1].x, self.vertices[elem.v2].x

    def element_sizes(self) -> np.ndarray:
        return np.diff(self.VX)

    @property
    def VX(self) -> np.ndarray:
        """Vertex coordinates."""
        return np.array([v.x for v in self.vertices])

    def dof_map(self) -> tuple:
        """Immutable snapshot of all element slot arrays."""
        self.require_dofs()
        return tuple(
            tuple(tuple(slots) for slots in elem.dof) for elem in self.elements
        )

    def log_dof_map(self) -> None:
        """Print element connectivities at debug level."""
        log.debug(f"Elements = {self.n_elem}, DOF = {self.n_dof}")
        for e, elem in enumerate(self.elements):
            for eq, slots in enumerate(elem.dof):
                text = ", ".join(
                    str(s.index) if isinstance(s, Free) else f"D({s.value:g})" for s in slots
                )
                log.debug(f"Element[{e}] eq {eq}: {text}")


def line_mesh(A: float, B: float, n_elem: int, p: int, n_eq: int = 1) -> Mesh:
    """Create a mesh on [A, B] with uniform degree p (dofs not yet assigned)."""
    mesh = Mesh(A, B, n_elem, n_eq)
    mesh.set_uniform_poly_order(p)
    return mesh
