"""Build problems and solver parameters from Hydra/OmegaConf configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from .datastructures import PLOTTING_ELEM_SUBDIVISION
from .errors import ConfigurationError
from .newton import NewtonParameters
from .problems import PROBLEMS, ReferenceProblem

log = logging.getLogger(__name__)


@dataclass
class ProblemConfig:
    name: str = "system_sin"
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NewtonConfig:
    tolerance: float = 1e-5
    max_iterations: int = 50
    matrix_type: str = "dense"


@dataclass
class OutputConfig:
    filename: str = "solution.gp"
    subdivision: int = PLOTTING_ELEM_SUBDIVISION
    figure: Optional[str] = None


@dataclass
class RunConfig:
    """Schema of conf/config.yaml."""

    problem: ProblemConfig = field(default_factory=ProblemConfig)
    newton: NewtonConfig = field(default_factory=NewtonConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def load_config(cfg: DictConfig | dict | None = None) -> DictConfig:
    """Merge cfg over the RunConfig defaults and validate field types."""
    schema = OmegaConf.structured(RunConfig)
    if cfg is None:
        return schema
    if not isinstance(cfg, DictConfig):
        cfg = OmegaConf.create(cfg)
    try:
        return OmegaConf.merge(schema, cfg)
    except OmegaConfBaseException as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def build_from_config(cfg: DictConfig | dict | None = None) -> tuple[ReferenceProblem, NewtonParameters]:
    """
    Create the configured reference problem and Newton parameters.

    Parameters
    ----------
    cfg : DictConfig or dict, optional
        Configuration with ``problem``, ``newton`` and ``output`` groups

    Returns
    -------
    ref, params : ReferenceProblem, NewtonParameters
    """
    cfg = load_config(cfg)
    name = cfg.problem.name
    if name not in PROBLEMS:
        raise ConfigurationError(f"Unknown problem '{name}', expected one of {sorted(PROBLEMS)}")

    kwargs = OmegaConf.to_container(cfg.problem.params, resolve=True)
    log.info(f"Building problem '{name}' with {kwargs}")
    try:
        ref = PROBLEMS[name](**kwargs)
    except TypeError as exc:
        raise ConfigurationError(f"Bad parameters for problem '{name}': {exc}") from exc

    params = NewtonParameters(**OmegaConf.to_container(cfg.newton, resolve=True))
    return ref, params
