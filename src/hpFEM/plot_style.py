import logging
from pathlib import Path

import matplotlib.pyplot as plt

log = logging.getLogger(__name__)

SOLUTION_RC = {
    "figure.figsize": (7.0, 4.0),
    "axes.grid": True,
    "grid.alpha": 0.3,
    "lines.linewidth": 1.5,
    "legend.frameon": False,
    "savefig.dpi": 150,
}


def setup_style():
    """Apply shared matplotlib style for solution plots."""
    plt.rcParams.update(SOLUTION_RC)


def save_figure(fig, filename: str | Path) -> Path:
    """
    Save figure to the specified path, creating parent directories.
    """
    filepath = Path(filename)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(filepath, bbox_inches="tight")
    log.info(f"Saved: {filepath}")
    return filepath


def plot_solution_figure(linearizer, y, subdivision: int = 50, exact=None, labels=None):
    """
    Plot every solution component sampled by the linearizer.

    Parameters
    ----------
    linearizer : Linearizer
    y : ndarray
        Coefficient vector
    exact : list of callables, optional
        Exact solutions drawn as dashed reference lines
    labels : list of str, optional
        Legend labels per component

    Returns
    -------
    fig, ax
    """
    setup_style()
    mesh = linearizer.mesh
    labels = labels or [f"u{c}" for c in range(mesh.n_eq)]
    fig, ax = plt.subplots()
    for c in range(mesh.n_eq):
        x, u = linearizer.sample(y, subdivision, eq=c)
        ax.plot(x, u, label=labels[c])
        if exact is not None and c < len(exact):
            ax.plot(x, exact[c](x), "k--", linewidth=0.8)
    # element boundaries
    ax.plot(mesh.VX, 0 * mesh.VX, "k|", markersize=8)
    ax.set_xlabel("x")
    ax.legend()
    return fig, ax
