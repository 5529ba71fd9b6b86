"""
Helpers for the random source and run arguments.

Functions
---------
make_rng(seed=None) -> np.random.Generator
    Create the generator of a run from a seed (or pass a generator through).

spawn_rngs(seed, n_chains) -> list[np.random.Generator]
    Create statistically independent generators for independent runs.

validate_n_steps(n) -> int
    Check the number of steps of a run.
"""

import numbers

import numpy as np


def make_rng(
    seed: int | np.random.SeedSequence | np.random.Generator | None = None,
) -> np.random.Generator:
    """Create the random generator for a run.

    A generator is created once, at the call site, and then threaded
    through every operation of the run.

    Args:
        seed: An integer seed, a SeedSequence, an existing Generator
            (returned unchanged) or None for fresh OS entropy

    Returns:
        A numpy Generator
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def spawn_rngs(
    seed: int | np.random.SeedSequence | None, n_chains: int
) -> list[np.random.Generator]:
    """Create ``n_chains`` independent generators from one seed.

    Intended for running several independent chains, each with its own
    model/sampler/generator triple.
    """
    if n_chains < 1:
        raise ValueError(f"n_chains must be >= 1, got {n_chains}")
    seed_seq = (
        seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
    )
    return [np.random.default_rng(child) for child in seed_seq.spawn(n_chains)]


def validate_n_steps(n) -> int:
    """Validate the number of steps of a run.

    Raises:
        ValueError: If ``n`` is not a non-negative integer
    """
    if isinstance(n, bool) or not isinstance(n, numbers.Integral):
        raise ValueError(f"Number of steps must be an integer, got {n!r}")
    if n < 0:
        raise ValueError(f"Number of steps must be >= 0, got {n}")
    return int(n)
