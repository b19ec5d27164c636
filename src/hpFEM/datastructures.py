"""Core data structures: vertices, elements, dof slots and boundary records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

import numpy as np
from numpy.typing import NDArray

# Boundary side constants
LEFT, RIGHT = 0, 1
SIDE_NAMES = {LEFT: "left", RIGHT: "right"}

# Table limits (checked, see quadrature.py)
MAX_POLY_ORDER = 20
MAX_QUAD_PTS = 64

# Samples per element in plot output
PLOTTING_ELEM_SUBDIVISION = 50


@dataclass(frozen=True)
class Vertex:
    """Mesh vertex on the real line."""

    x: float


@dataclass(frozen=True)
class Free:
    """Slot carrying a free unknown with global index ``index``."""

    index: int


@dataclass(frozen=True)
class Eliminated:
    """Slot fixed by a Dirichlet condition to ``value``."""

    value: float = 0.0


DofSlot = Union[Free, Eliminated]


@dataclass
class Element:
    """
    1D element between two vertices of the mesh arena.

    Attributes
    ----------
    v1, v2 : int
        Indices of the left and right vertex in ``Mesh.vertices``
    p : int or None
        Polynomial degree (None until set)
    dof : list of list of DofSlot
        ``dof[eq][k]`` is the slot of local shape function ``k`` for equation ``eq``.
        Local 0 = left vertex, 1 = right vertex, 2..p = bubbles.
    """

    v1: int
    v2: int
    p: int | None = None
    dof: list[list[DofSlot | None]] = field(default_factory=list)

    @property
    def n_local(self) -> int:
        return 0 if self.p is None else self.p + 1


@dataclass(frozen=True)
class DirichletBC:
    """Essential condition u = value."""

    value: float = 0.0


@dataclass(frozen=True)
class NaturalBC:
    """Zero-flux condition, no surface term."""


@dataclass(frozen=True)
class NewtonBC:
    """Robin condition alpha * du/dn + u + beta = 0, imposed by surface forms."""

    alpha: float
    beta: float


BoundaryCondition = Union[DirichletBC, NaturalBC, NewtonBC]


def slots_to_arrays(slots: list[DofSlot]) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
    """
    Split a slot list into index and lift arrays.

    Free slots give their index and a zero lift; eliminated slots give -1 and
    their Dirichlet value. Used only by vectorized kernels.
    """
    idx = np.empty(len(slots), dtype=np.int64)
    lift = np.zeros(len(slots), dtype=np.float64)
    for k, slot in enumerate(slots):
        if isinstance(slot, Free):
            idx[k] = slot.index
        elif isinstance(slot, Eliminated):
            idx[k] = -1
            lift[k] = slot.value
        else:
            raise TypeError(f"Unassigned dof slot at local index {k}")
    return idx, lift
