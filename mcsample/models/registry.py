"""Named model factories.

Examples
--------
>>> from mcsample.models import get_model, list_models
>>> model = get_model("normal", loc=1.0, scale=0.5)
>>> "student_t" in list_models()
True

Register a custom model factory:

>>> @register_model("banana")
... def banana(curvature=0.1):
...     return MyBananaModel(curvature)
"""

import numpy as np
from scipy import stats

from mcsample.models.base import DistributionModel

_model_registry = {}


def register_model(name: str):
    def decorator(func):
        if name in _model_registry:
            raise ValueError(f"Model '{name}' already registered")
        _model_registry[name] = func
        return func

    return decorator


def get_model(name: str, **params):
    try:
        factory = _model_registry[name]
    except KeyError:
        raise ValueError(
            f"No model found for '{name}'. Available models: {list_models()}"
        )
    return factory(**params)


def list_models():
    return sorted(_model_registry)


@register_model("normal")
def normal(loc: float = 0.0, scale: float = 1.0) -> DistributionModel:
    if scale <= 0:
        raise ValueError(f"scale must be > 0, got {scale}")
    return DistributionModel(stats.norm(loc=loc, scale=scale), name="normal")


@register_model("multivariate_normal")
def multivariate_normal(mean=(0.0, 0.0), cov=None) -> DistributionModel:
    mean = np.asarray(mean, dtype=float)
    if cov is None:
        cov = np.eye(mean.size)
    return DistributionModel(
        stats.multivariate_normal(mean=mean, cov=np.asarray(cov, dtype=float)),
        name="multivariate_normal",
    )


@register_model("student_t")
def student_t(df: float = 3.0, loc: float = 0.0, scale: float = 1.0) -> DistributionModel:
    if df <= 0:
        raise ValueError(f"df must be > 0, got {df}")
    return DistributionModel(stats.t(df=df, loc=loc, scale=scale), name="student_t")
