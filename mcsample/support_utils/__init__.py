from mcsample.support_utils.utils import make_rng, spawn_rngs, validate_n_steps

__all__ = ["make_rng", "spawn_rngs", "validate_n_steps"]
