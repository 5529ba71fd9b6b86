"""Reference samplers for the sampling driver."""

from mcsample.samplers.base import AbstractSampler
from mcsample.samplers.metropolis import RandomWalkMetropolis
from mcsample.samplers.prior import PriorSampler
from mcsample.samplers.registry import get_sampler, list_samplers, register_sampler

register_sampler("prior")(PriorSampler)
register_sampler("random_walk")(RandomWalkMetropolis)

__all__ = [
    "AbstractSampler",
    "PriorSampler",
    "RandomWalkMetropolis",
    "register_sampler",
    "get_sampler",
    "list_samplers",
]
