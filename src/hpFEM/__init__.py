"""hpFEM package for 1D hp-adaptive finite element methods.

This package implements a Galerkin finite element engine on an interval with
hierarchic Lobatto shape functions of per-element polynomial degree, solving
systems of (possibly nonlinear) equations by Newton's method.

Main components:
- Mesh, line_mesh: Elements, polynomial degrees, boundary conditions and dof numbering
- WeakFormRegistry: Volume and surface weak forms per equation block
- DiscreteProblem: Assembly of the Jacobian and residual
- NewtonSolver, solve_newton: Newton iteration with dense or sparse linear solves
- Linearizer: Sampling of the solution and gnuplot output
"""

from .datastructures import (
    LEFT,
    RIGHT,
    MAX_POLY_ORDER,
    MAX_QUAD_PTS,
    PLOTTING_ELEM_SUBDIVISION,
    Vertex,
    Element,
    Free,
    Eliminated,
    DirichletBC,
    NaturalBC,
    NewtonBC,
)
from .errors import (
    FEMError,
    ConfigurationError,
    QuadratureCapacityError,
    SingularSystemError,
    FormEvaluationError,
    NonConvergenceError,
)
from .quadrature import (
    legendre_gauss_lobatto_nodes,
    legendre_gauss_lobatto_weights,
    quadrature_rule,
    quadrature_order,
)
from .basis import lobatto_table, lobatto_fn, lobatto_der
from .mesh import Mesh, line_mesh
from .forms import (
    VolumeContext,
    SurfaceContext,
    MatrixForm,
    VectorForm,
    WeakFormRegistry,
    newton_bc_forms,
    register_newton_bcs,
)
from .matrix import Matrix, DenseMatrix, CooMatrix, create_matrix
from .solvers import solve_linear_system
from .assembly import DiscreteProblem
from .newton import NewtonParameters, NewtonMetrics, NewtonSolver, NewtonState, solve_newton
from .linearizer import Linearizer, vertex_values, l2_error
from .problems import ReferenceProblem, system_sin, system_laplace, laplace_bc_newton, PROBLEMS

__all__ = [
    # Constants and mesh records
    "LEFT",
    "RIGHT",
    "MAX_POLY_ORDER",
    "MAX_QUAD_PTS",
    "PLOTTING_ELEM_SUBDIVISION",
    "Vertex",
    "Element",
    "Free",
    "Eliminated",
    "DirichletBC",
    "NaturalBC",
    "NewtonBC",
    # Errors
    "FEMError",
    "ConfigurationError",
    "QuadratureCapacityError",
    "SingularSystemError",
    "FormEvaluationError",
    "NonConvergenceError",
    # Quadrature and basis
    "legendre_gauss_lobatto_nodes",
    "legendre_gauss_lobatto_weights",
    "quadrature_rule",
    "quadrature_order",
    "lobatto_table",
    "lobatto_fn",
    "lobatto_der",
    # Mesh
    "Mesh",
    "line_mesh",
    # Forms
    "VolumeContext",
    "SurfaceContext",
    "MatrixForm",
    "VectorForm",
    "WeakFormRegistry",
    "newton_bc_forms",
    "register_newton_bcs",
    # Linear algebra
    "Matrix",
    "DenseMatrix",
    "CooMatrix",
    "create_matrix",
    "solve_linear_system",
    # Assembly and Newton
    "DiscreteProblem",
    "NewtonParameters",
    "NewtonMetrics",
    "NewtonSolver",
    "NewtonState",
    "solve_newton",
    # Output
    "Linearizer",
    "vertex_values",
    "l2_error",
    # Reference problems
    "ReferenceProblem",
    "system_sin",
    "system_laplace",
    "laplace_bc_newton",
    "PROBLEMS",
]
