"""Reference target models."""

from mcsample.models.base import DistributionModel
from mcsample.models.registry import get_model, list_models, register_model

__all__ = ["DistributionModel", "get_model", "list_models", "register_model"]
