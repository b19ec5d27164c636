"""
Main solver driver using Hydra for configuration.

    python run_solver.py problem=laplace_bc_newton newton=sparse output.subdivision=20
"""

import logging

import hydra
from omegaconf import DictConfig, OmegaConf

from hpFEM.config import build_from_config, load_config
from hpFEM.errors import FEMError
from hpFEM.linearizer import Linearizer, l2_error
from hpFEM.newton import NewtonSolver
from hpFEM.plot_style import plot_solution_figure, save_figure

log = logging.getLogger(__name__)


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig):
    cfg = load_config(cfg)
    log.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    ref, params = build_from_config(cfg)
    log.info(f"Problem {ref.name}: {ref.mesh.n_elem} elements, {ref.problem.n_dof} dofs")

    solver = NewtonSolver(ref.problem, params)
    try:
        y = solver.solve()
    except FEMError as exc:
        log.error(f"Solve failed: {exc}")
        raise

    m = solver.metrics
    log.info(
        f"Newton: {m.iterations} iteration(s), residual {m.final_residual:.3e}, "
        f"{m.wall_time_seconds:.3f} s"
    )

    for eq, u_exact in enumerate(ref.exact):
        log.info(f"Component {eq}: L2 error = {l2_error(ref.mesh, y, u_exact, eq):.6e}")

    lin = Linearizer(ref.mesh)
    lin.plot_solution(cfg.output.filename, y, cfg.output.subdivision)

    if cfg.output.figure:
        fig, _ = plot_solution_figure(lin, y, cfg.output.subdivision, exact=ref.exact)
        path = save_figure(fig, cfg.output.figure)
        log.info(f"Saved figure to {path}")


if __name__ == "__main__":
    main()
