"""Tests for the weak-form registry and Robin surface forms."""

import numpy as np
import pytest

from hpFEM.forms import (
    CallableMatrixForm,
    CallableVectorForm,
    MatrixForm,
    NewtonMatrixForm,
    NewtonVectorForm,
    SurfaceContext,
    WeakFormRegistry,
    newton_bc_forms,
    register_newton_bcs,
)
from hpFEM.datastructures import LEFT, RIGHT
from hpFEM.mesh import line_mesh
from hpFEM.errors import ConfigurationError


def jacobian(c):
    return 1.0


class TestRegistry:
    """Test form registration."""

    def test_empty(self):
        reg = WeakFormRegistry(2)
        assert reg.is_empty()
        reg.add_vector_form(1, lambda c: 0.0)
        assert not reg.is_empty()

    def test_callables_are_wrapped(self):
        reg = WeakFormRegistry(1)
        reg.add_matrix_form(0, 0, jacobian)
        reg.add_vector_form(0, jacobian)
        form = reg.matrix_forms[(0, 0)][0]
        assert isinstance(form, CallableMatrixForm)
        assert form.name == "jacobian"
        assert isinstance(reg.vector_forms[0][0], CallableVectorForm)

    def test_multiple_forms_per_block(self):
        reg = WeakFormRegistry(2)
        reg.add_matrix_form(0, 1, jacobian)
        reg.add_matrix_form(0, 1, jacobian)
        assert len(reg.matrix_forms[(0, 1)]) == 2
        assert (1, 0) not in reg.matrix_forms

    def test_surface_keys(self):
        reg = WeakFormRegistry(2)
        reg.add_matrix_form_surf(1, 0, jacobian, RIGHT)
        reg.add_vector_form_surf(0, jacobian, LEFT)
        assert reg.surface_equations(RIGHT) == {1}
        assert reg.surface_equations(LEFT) == {0}

    def test_invalid_registration(self):
        reg = WeakFormRegistry(2)
        with pytest.raises(ConfigurationError):
            reg.add_matrix_form(0, 2, jacobian)
        with pytest.raises(ConfigurationError):
            reg.add_vector_form(-1, jacobian)
        with pytest.raises(ConfigurationError):
            reg.add_vector_form_surf(0, jacobian, 3)
        with pytest.raises(ConfigurationError):
            reg.add_matrix_form(0, 0, "not a form")
        with pytest.raises(ConfigurationError):
            WeakFormRegistry(0)

    def test_matrix_form_subclass(self):
        class Two(MatrixForm):
            name = "two"

            def evaluate(self, ctx):
                return 2.0

        reg = WeakFormRegistry(1)
        form = Two()
        reg.add_matrix_form(0, 0, form)
        assert reg.matrix_forms[(0, 0)][0] is form


class TestNewtonBoundaryForms:
    """Test forms realizing alpha du/dn + u + beta = 0."""

    def ctx(self, u_prev):
        return SurfaceContext(
            x=0.0, u=0.5, dudx=0.0, v=2.0, dvdx=0.0,
            u_prev=np.array([u_prev]), du_prevdx=np.array([0.0]),
        )

    def test_values(self):
        mat, vec = newton_bc_forms(alpha=2.0, beta=-1.0)
        assert isinstance(mat, NewtonMatrixForm)
        assert isinstance(vec, NewtonVectorForm)
        ctx = self.ctx(u_prev=3.0)
        assert np.isclose(mat.evaluate(ctx), 0.5 * 2.0 / 2.0)
        assert np.isclose(vec.evaluate(ctx), (3.0 - 1.0) * 2.0 / 2.0)

    def test_zero_alpha(self):
        with pytest.raises(ConfigurationError):
            newton_bc_forms(0.0, 1.0)

    def test_register_from_mesh(self):
        mesh = line_mesh(0.0, 1.0, 2, 2, n_eq=2)
        mesh.set_bc_left_newton(0, 1.0, 0.0)
        mesh.set_bc_right_newton(1, 2.0, 1.0)
        mesh.set_bc_right_dirichlet(0, 0.0)
        reg = WeakFormRegistry(2)
        assert register_newton_bcs(reg, mesh) == 2
        assert set(reg.matrix_forms_surf) == {(0, 0, LEFT), (1, 1, RIGHT)}
        assert set(reg.vector_forms_surf) == {(0, LEFT), (1, RIGHT)}
        assert reg.vector_forms_surf[(1, RIGHT)][0].eq == 1

    def test_register_size_mismatch(self):
        mesh = line_mesh(0.0, 1.0, 2, 2, n_eq=2)
        with pytest.raises(ConfigurationError):
            register_newton_bcs(WeakFormRegistry(1), mesh)
