"""Exception hierarchy for the hp-FEM engine.

Every error raised by mesh setup, assembly or the Newton driver derives from
:class:`FEMError`, so callers can catch the whole family at once. Each kind also
derives from the builtin exception it specializes.
"""

from __future__ import annotations


class FEMError(Exception):
    """Base class for all hpFEM errors."""


class ConfigurationError(FEMError, ValueError):
    """Invalid mesh, degree, boundary condition or form registration."""


class QuadratureCapacityError(FEMError, ValueError):
    """Requested degree or point count exceeds the provisioned tables."""


class SingularSystemError(FEMError, ArithmeticError):
    """The assembled matrix could not be factorized."""


class FormEvaluationError(FEMError, ArithmeticError):
    """A weak form returned NaN or Inf."""


class NonConvergenceError(FEMError, RuntimeError):
    """Newton iteration hit its iteration cap without meeting the tolerance."""

    def __init__(self, message: str, metrics=None):
        super().__init__(message)
        self.metrics = metrics
