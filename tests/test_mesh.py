"""Tests for the 1D hp mesh and dof numbering."""

import logging

import numpy as np
import pytest

from hpFEM.mesh import Mesh, line_mesh
from hpFEM.datastructures import (
    LEFT,
    RIGHT,
    DirichletBC,
    Eliminated,
    Free,
    NaturalBC,
    NewtonBC,
    slots_to_arrays,
)
from hpFEM.errors import ConfigurationError


def free_indices(mesh):
    out = set()
    for elem in mesh.elements:
        for slots in elem.dof:
            out.update(s.index for s in slots if isinstance(s, Free))
    return out


class TestMeshGeometry:
    """Test vertex and element construction."""

    def test_equidistant_vertices(self):
        mesh = Mesh(0.0, 2.0, 4)
        assert np.allclose(mesh.VX, [0.0, 0.5, 1.0, 1.5, 2.0])
        assert np.allclose(mesh.element_sizes(), 0.5)
        assert mesh.element_coordinates(3) == (1.5, 2.0)

    def test_elements_reference_vertices(self):
        mesh = Mesh(-1.0, 1.0, 3)
        for e, elem in enumerate(mesh.elements):
            assert (elem.v1, elem.v2) == (e, e + 1)
            assert elem.p is None

    def test_defaults_are_natural(self):
        mesh = Mesh(0.0, 1.0, 2, n_eq=2)
        for eq in range(2):
            assert mesh.get_bc(eq, LEFT) == NaturalBC()
            assert mesh.get_bc(eq, RIGHT) == NaturalBC()

    @pytest.mark.parametrize("A, B, n_elem", [(0.0, 1.0, 0), (1.0, 1.0, 3), (2.0, 1.0, 3)])
    def test_invalid_geometry(self, A, B, n_elem):
        with pytest.raises(ConfigurationError):
            Mesh(A, B, n_elem)

    def test_invalid_n_eq(self):
        with pytest.raises(ConfigurationError):
            Mesh(0.0, 1.0, 2, n_eq=0)

    @pytest.mark.parametrize("p", [0, 21])
    def test_invalid_degree(self, p):
        mesh = Mesh(0.0, 1.0, 2)
        with pytest.raises(ConfigurationError):
            mesh.set_poly_order(0, p)

    def test_set_poly_order_range(self):
        mesh = Mesh(0.0, 1.0, 2)
        with pytest.raises(ConfigurationError):
            mesh.set_poly_order(2, 3)


class TestBoundaryConditions:
    """Test boundary condition records."""

    def test_setters(self):
        mesh = line_mesh(0.0, 1.0, 2, 2, n_eq=2)
        mesh.set_bc_left_dirichlet(0, 1.5)
        mesh.set_bc_right_newton(1, 2.0, -1.0)
        assert mesh.get_bc(0, LEFT) == DirichletBC(1.5)
        assert mesh.get_bc(1, RIGHT) == NewtonBC(2.0, -1.0)
        assert mesh.get_bc(1, LEFT) == NaturalBC()

    def test_newton_requires_nonzero_alpha(self):
        mesh = line_mesh(0.0, 1.0, 2, 2)
        with pytest.raises(ConfigurationError):
            mesh.set_bc_left_newton(0, 0.0, 1.0)

    def test_equation_out_of_range(self):
        mesh = line_mesh(0.0, 1.0, 2, 2)
        with pytest.raises(ConfigurationError):
            mesh.set_bc_left_dirichlet(1, 0.0)
        with pytest.raises(ConfigurationError):
            mesh.get_bc(0, 5)

    def test_bc_after_assign_rejected(self):
        mesh = line_mesh(0.0, 1.0, 2, 2)
        mesh.assign_dofs()
        with pytest.raises(ConfigurationError):
            mesh.set_bc_right_dirichlet(0, 0.0)


class TestDofAssignment:
    """Test global numbering of unknowns."""

    @pytest.mark.parametrize("n_elem, p", [(1, 1), (3, 2), (5, 4), (2, 7)])
    def test_count_dirichlet_both_ends(self, n_elem, p):
        mesh = line_mesh(0.0, 1.0, n_elem, p)
        mesh.set_bc_left_dirichlet(0, 0.0)
        mesh.set_bc_right_dirichlet(0, 0.0)
        assert mesh.assign_dofs() == n_elem * p - 1

    @pytest.mark.parametrize("n_elem, p", [(1, 1), (3, 2), (5, 4)])
    def test_count_natural(self, n_elem, p):
        mesh = line_mesh(0.0, 1.0, n_elem, p)
        assert mesh.assign_dofs() == n_elem * (p + 1) - (n_elem - 1)

    def test_count_variable_degree(self):
        mesh = Mesh(0.0, 1.0, 3)
        for e, p in enumerate([1, 3, 2]):
            mesh.set_poly_order(e, p)
        mesh.set_bc_left_dirichlet(0, 0.0)
        # 4 vertices - 1 Dirichlet + bubbles (0 + 2 + 1)
        assert mesh.assign_dofs() == 6

    def test_indices_contiguous(self):
        mesh = line_mesh(0.0, 1.0, 4, 3, n_eq=2)
        mesh.set_bc_left_dirichlet(0, 0.0)
        mesh.set_bc_right_dirichlet(1, 0.0)
        n = mesh.assign_dofs()
        assert free_indices(mesh) == set(range(n))

    def test_shared_vertex_continuity(self):
        mesh = line_mesh(0.0, 1.0, 5, 3, n_eq=2)
        mesh.assign_dofs()
        for left, right in zip(mesh.elements[:-1], mesh.elements[1:]):
            for eq in range(2):
                assert left.dof[eq][1] == right.dof[eq][0]
                assert isinstance(left.dof[eq][1], Free)

    def test_dirichlet_slots_carry_value(self):
        mesh = line_mesh(0.0, 1.0, 3, 2)
        mesh.set_bc_left_dirichlet(0, 2.5)
        mesh.set_bc_right_dirichlet(0, -1.0)
        mesh.assign_dofs()
        assert mesh.elements[0].dof[0][0] == Eliminated(2.5)
        assert mesh.elements[-1].dof[0][1] == Eliminated(-1.0)
        idx, lift = slots_to_arrays(mesh.elements[0].dof[0])
        assert idx[0] == -1 and lift[0] == 2.5

    def test_equation_major_ordering(self):
        """All unknowns of equation 0 come before those of equation 1."""
        mesh = line_mesh(0.0, 1.0, 3, 3, n_eq=2)
        mesh.assign_dofs()
        eq0 = {s.index for el in mesh.elements for s in el.dof[0]}
        eq1 = {s.index for el in mesh.elements for s in el.dof[1]}
        assert max(eq0) < min(eq1)

    def test_vertices_before_bubbles(self):
        mesh = line_mesh(0.0, 1.0, 3, 2)
        mesh.assign_dofs()
        vertex_ids = [mesh.elements[0].dof[0][0].index] + [el.dof[0][1].index for el in mesh.elements]
        bubble_ids = [el.dof[0][2].index for el in mesh.elements]
        assert vertex_ids == [0, 1, 2, 3]
        assert bubble_ids == [4, 5, 6]

    def test_assign_idempotent(self):
        mesh = line_mesh(0.0, 1.0, 4, 3, n_eq=2)
        mesh.set_bc_left_dirichlet(1, 1.0)
        n1 = mesh.assign_dofs()
        map1 = mesh.dof_map()
        n2 = mesh.assign_dofs()
        assert n1 == n2
        assert mesh.dof_map() == map1

    def test_requires_degree(self):
        mesh = Mesh(0.0, 1.0, 2)
        with pytest.raises(ConfigurationError):
            mesh.assign_dofs()

    def test_require_dofs(self):
        mesh = line_mesh(0.0, 1.0, 2, 2)
        with pytest.raises(ConfigurationError):
            mesh.require_dofs()
        mesh.assign_dofs()
        assert mesh.require_dofs() == 5

    def test_degree_change_invalidates_numbering(self):
        mesh = line_mesh(0.0, 1.0, 2, 2)
        mesh.assign_dofs()
        mesh.set_poly_order(0, 4)
        assert mesh.n_dof is None
        assert mesh.assign_dofs() == 7

    def test_debug_dump(self, caplog):
        mesh = line_mesh(0.0, 1.0, 2, 2)
        mesh.set_bc_left_dirichlet(0, 1.0)
        with caplog.at_level(logging.DEBUG, logger="hpFEM.mesh"):
            mesh.assign_dofs()
        assert "Element[0] eq 0: D(1)" in caplog.text
