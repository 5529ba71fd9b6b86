"""Models backed by scipy.stats distributions."""

from typing import Any

import numpy as np


class DistributionModel:
    """Target model wrapping a frozen ``scipy.stats`` distribution.

    Parameters
    ----------
    dist : frozen scipy.stats distribution
        Univariate (e.g. ``stats.norm(0, 1)``) or multivariate
        (e.g. ``stats.multivariate_normal(mean, cov)``).
    param_names : list[str] or None, optional
        Names of the coordinates; defaults to ``x0, x1, ...``.
    name : str or None, optional
        Model name used in results; defaults to the distribution's name.

    Examples
    --------
    >>> from scipy import stats
    >>> model = DistributionModel(stats.norm(0.0, 2.0))
    >>> model.log_density(np.array([0.0]))  # doctest: +ELLIPSIS
    -1.61...
    """

    def __init__(
        self,
        dist: Any,
        param_names: list[str] | None = None,
        name: str | None = None,
    ):
        self.dist = dist
        self.dim = int(getattr(dist, "dim", 1))
        if param_names is None:
            param_names = [f"x{i}" for i in range(self.dim)]
        if len(param_names) != self.dim:
            raise ValueError(
                f"Expected {self.dim} parameter names, got {len(param_names)}"
            )
        self.param_names = tuple(param_names)
        if name is None:
            inner = getattr(dist, "dist", None)
            name = getattr(inner, "name", None) or type(dist).__name__
        self.name = name

    def log_density(self, x: np.ndarray) -> float:
        """Log density of the distribution at ``x``."""
        x = np.asarray(x, dtype=float)
        if self.dim > 1:
            return float(self.dist.logpdf(x))
        return float(np.sum(self.dist.logpdf(x)))

    def sample(self, rng: np.random.Generator) -> np.ndarray:
        """One exact draw from the distribution."""
        return np.atleast_1d(np.asarray(self.dist.rvs(random_state=rng), dtype=float))

    def initial_position(self, rng: np.random.Generator) -> np.ndarray:
        """Starting point for Markov chain samplers (a draw from the distribution)."""
        return self.sample(rng)

    def __repr__(self) -> str:
        return f"DistributionModel(name={self.name!r}, dim={self.dim})"
