"""Gaussian random-walk Metropolis sampler."""

import logging

import numpy as np

from mcsample.samplers.base import AbstractSampler
from mcsample.transitions import Transition

logger = logging.getLogger(__name__)


class RandomWalkMetropolis(AbstractSampler):
    """Random-walk Metropolis with an isotropic Gaussian proposal.

    Persistent state: the current step size and the number of accepted
    proposals. With ``adapt=True`` the step size is tuned during the run by
    a Robbins-Monro update towards ``target_accept``.

    Parameters
    ----------
    step_size : float
        Standard deviation of the proposal.
    adapt : bool
        Whether to tune the step size while sampling.
    target_accept : float
        Target acceptance probability of the adaptation, in (0, 1).

    Notes
    -----
    The model must provide ``log_density(x)``. The starting point comes from
    the ``initial_position`` option when given, otherwise from
    ``model.initial_position(rng)``.
    """

    name = "random_walk"

    def __init__(
        self, step_size: float = 1.0, adapt: bool = False, target_accept: float = 0.234
    ):
        super().__init__()
        if step_size <= 0:
            raise ValueError(f"step_size must be > 0, got {step_size}")
        if not 0 < target_accept < 1:
            raise ValueError(f"target_accept must be in (0, 1), got {target_accept}")
        self.step_size = float(step_size)
        self.adapt = adapt
        self.target_accept = target_accept
        self.n_accepted = 0
        self.acceptance_rate = float("nan")
        self._start = None
        self._start_log_density = None

    def init(self, rng, model, n, initial_position=None, **options):
        if initial_position is None:
            initial_position = model.initial_position(rng)
        start = np.atleast_1d(np.asarray(initial_position, dtype=float))
        log_density = float(model.log_density(start))
        if not np.isfinite(log_density):
            raise ValueError(
                f"Initial position {start} has non-finite log density {log_density}"
            )
        self._start = start
        self._start_log_density = log_density
        self.n_steps = 0
        self.n_accepted = 0
        self.acceptance_rate = float("nan")

    def _transition(self, rng, model, position, log_density) -> Transition:
        proposal = position + self.step_size * rng.standard_normal(position.shape)
        proposal_log_density = float(model.log_density(proposal))

        if np.isfinite(proposal_log_density):
            log_ratio = proposal_log_density - log_density
            accept_prob = float(np.exp(min(0.0, log_ratio)))
        else:
            accept_prob = 0.0
        accepted = bool(rng.uniform() < accept_prob)

        stats = {"accept_prob": accept_prob, "step_size": self.step_size}
        self._count_step()
        if accepted:
            self.n_accepted += 1
            position, log_density = proposal, proposal_log_density
        if self.adapt:
            self._adapt_step_size(accept_prob)

        return Transition(
            draw=position, log_density=log_density, accepted=accepted, stats=stats
        )

    def _adapt_step_size(self, accept_prob: float) -> None:
        gain = 1.0 / (self.n_steps + 1) ** 0.6
        self.step_size *= float(np.exp(gain * (accept_prob - self.target_accept)))

    def step_first(self, rng, model, n, **options):
        return self._transition(rng, model, self._start, self._start_log_density)

    def step_next(self, rng, model, n, prior, **options):
        return self._transition(
            rng, model, np.asarray(prior.draw, dtype=float), prior.log_density
        )

    def finalize(self, rng, model, n, transitions, **options):
        self.acceptance_rate = self.n_accepted / n if n else float("nan")
        logger.debug(
            "RandomWalkMetropolis acceptance rate %.3f (step size %.4g)",
            self.acceptance_rate,
            self.step_size,
        )

    def summary(self):
        return {
            "n_steps": self.n_steps,
            "n_accepted": self.n_accepted,
            "acceptance_rate": self.acceptance_rate,
            "step_size": self.step_size,
        }
