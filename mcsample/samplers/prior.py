"""Independent sampling from the model."""

import numpy as np

from mcsample.samplers.base import AbstractSampler
from mcsample.transitions import Transition


class PriorSampler(AbstractSampler):
    """Draw independent samples directly from the model.

    The model must provide ``sample(rng)`` and ``log_density(x)``. Each step
    ignores the previous transition, so the chain is i.i.d.

    Example:
        >>> model = get_model("normal", loc=0.0, scale=1.0)
        >>> chains = sample(model, PriorSampler(), 100, seed=1, progress=False)
    """

    name = "prior"

    def init(self, rng, model, n, **options):
        self.n_steps = 0

    def _draw(self, rng: np.random.Generator, model) -> Transition:
        draw = np.atleast_1d(np.asarray(model.sample(rng), dtype=float))
        self._count_step()
        return Transition(draw=draw, log_density=float(model.log_density(draw)))

    def step_first(self, rng, model, n, **options):
        return self._draw(rng, model)

    def step_next(self, rng, model, n, prior, **options):
        return self._draw(rng, model)

    def finalize(self, rng, model, n, transitions, **options):
        pass
