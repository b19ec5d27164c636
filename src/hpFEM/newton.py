"""Newton iteration driving assembly and linear solves to convergence."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from .assembly import DiscreteProblem
from .errors import ConfigurationError, NonConvergenceError, SingularSystemError
from .matrix import MATRIX_TYPES, create_matrix
from .solvers import solve_linear_system

log = logging.getLogger(__name__)


class NewtonState(Enum):
    ITERATING = "iterating"
    CONVERGED = "converged"
    FAILED = "failed"


@dataclass
class NewtonParameters:
    """Newton solver configuration."""

    tolerance: float = 1e-5
    max_iterations: int = 50
    matrix_type: str = "dense"

    def __post_init__(self):
        if not self.tolerance > 0:
            raise ConfigurationError(f"Tolerance must be positive, got {self.tolerance}")
        if self.max_iterations < 0:
            raise ConfigurationError(f"max_iterations must be non-negative, got {self.max_iterations}")
        if self.matrix_type not in MATRIX_TYPES:
            raise ConfigurationError(
                f"Unknown matrix type '{self.matrix_type}', expected one of {sorted(MATRIX_TYPES)}"
            )


@dataclass
class NewtonMetrics:
    """Results of a Newton run."""

    iterations: int = 0
    converged: bool = False
    final_residual: float = float("inf")
    residual_history: list[float] = field(default_factory=list)
    wall_time_seconds: float = 0.0


class NewtonSolver:
    """
    Newton's method for F(y) = 0 on a DiscreteProblem.

    Each step assembles J and F at the current iterate, stops if ||F||_2 is
    below the tolerance, otherwise solves J dy = -F and updates y += dy. The
    iteration count is capped; hitting the cap raises NonConvergenceError.

    Parameters
    ----------
    problem : DiscreteProblem
        Problem with assigned dofs and registered forms
    params : NewtonParameters, optional
        If not provided, kwargs are used to create params
    """

    def __init__(self, problem: DiscreteProblem, params: NewtonParameters | None = None, **kwargs):
        if params is None:
            params = NewtonParameters(**kwargs)
        self.problem = problem
        self.params = params
        self.metrics = NewtonMetrics()
        self.state = NewtonState.ITERATING
        self.y: NDArray[np.float64] | None = None

    def solve(self, y_prev: NDArray[np.float64] | None = None) -> NDArray[np.float64]:
        """
        Run Newton's method and return the converged coefficient vector.

        Parameters
        ----------
        y_prev : ndarray (n_dof,), optional
            Initial guess (zero if omitted). Updated in place when given.

        Raises
        ------
        NonConvergenceError
            If max_iterations steps do not reach the tolerance
        SingularSystemError
            If a Jacobian cannot be factorized
        """
        n_dof = self.problem.n_dof
        y = np.zeros(n_dof) if y_prev is None else y_prev
        if not isinstance(y, np.ndarray) or y.dtype != np.float64 or y.shape != (n_dof,):
            raise ConfigurationError(
                f"Initial guess must be a float64 array of shape ({n_dof},)"
            )

        self.y = y
        self.state = NewtonState.ITERATING
        self.metrics = NewtonMetrics()
        residual = np.zeros(n_dof)
        matrix = create_matrix(self.params.matrix_type, n_dof)
        time_start = time.time()

        it = 0
        while self.state is NewtonState.ITERATING:
            self.problem.assemble_matrix_and_vector(matrix, residual, y)

            res_norm = float(np.linalg.norm(residual))
            self.metrics.residual_history.append(res_norm)
            log.info(f"Iteration {it}: residual L2 norm = {res_norm:.6e}")

            if res_norm < self.params.tolerance:
                self.state = NewtonState.CONVERGED
                break

            if it >= self.params.max_iterations:
                self.state = NewtonState.FAILED
                break

            residual *= -1
            try:
                solve_linear_system(matrix, residual)
            except SingularSystemError:
                self.state = NewtonState.FAILED
                self._finish(it, res_norm, time_start)
                log.error(f"Singular Jacobian at Newton iteration {it}")
                raise

            y += residual
            it += 1

        self._finish(it, res_norm, time_start)

        if self.state is NewtonState.FAILED:
            raise NonConvergenceError(
                f"Newton did not converge in {self.params.max_iterations} iterations "
                f"(residual {res_norm:.6e}, tolerance {self.params.tolerance:g})",
                metrics=self.metrics,
            )

        log.info(f"Converged after {it} Newton iteration(s)")
        return y

    def _finish(self, it: int, res_norm: float, time_start: float) -> None:
        self.metrics.iterations = it
        self.metrics.final_residual = res_norm
        self.metrics.converged = self.state is NewtonState.CONVERGED
        self.metrics.wall_time_seconds = time.time() - time_start


def solve_newton(
    problem: DiscreteProblem,
    y_prev: NDArray[np.float64] | None = None,
    **kwargs,
) -> tuple[NDArray[np.float64], NewtonMetrics]:
    """Run Newton on problem; kwargs go to NewtonParameters. Returns (y, metrics)."""
    solver = NewtonSolver(problem, **kwargs)
    y = solver.solve(y_prev)
    return y, solver.metrics
