"""Base class for samplers driven by the sampling loop."""

from abc import ABC
from collections.abc import Sequence
from typing import Any

import numpy as np

from mcsample.errors import ExtensionNotImplementedError


class AbstractSampler(ABC):
    """Base class for samplers.

    Any persistent state of a sampling algorithm (tuning parameters,
    counters, internal chains) belongs on a subclass of this class. The
    driver calls the four extension points below; none of them has a
    silent default. An operation a subclass does not override raises
    :class:`~mcsample.errors.ExtensionNotImplementedError`, which the driver
    reports as the error of the corresponding phase.

    Subclasses typically override all of:

    - ``init``: reset per-run state before the first step
    - ``step_first``: produce the first transition
    - ``step_next``: produce a transition from the previous one
    - ``finalize``: consolidate after the last step

    ``n_steps`` counts the transitions produced in the current run and is
    maintained by subclasses through :meth:`_count_step`.
    """

    name = "abstract"

    def __init__(self):
        self.n_steps = 0

    def init(
        self, rng: np.random.Generator, model: Any, n: int, **options: Any
    ) -> None:
        raise ExtensionNotImplementedError("init", self, model)

    def step_first(
        self, rng: np.random.Generator, model: Any, n: int, **options: Any
    ) -> Any:
        raise ExtensionNotImplementedError("step_first", self, model)

    def step_next(
        self,
        rng: np.random.Generator,
        model: Any,
        n: int,
        prior: Any,
        **options: Any,
    ) -> Any:
        raise ExtensionNotImplementedError("step_next", self, model)

    def finalize(
        self,
        rng: np.random.Generator,
        model: Any,
        n: int,
        transitions: Sequence[Any],
        **options: Any,
    ) -> None:
        raise ExtensionNotImplementedError("finalize", self, model)

    def progress_sink(
        self, rng: np.random.Generator, model: Any, n: int, **options: Any
    ) -> Any:
        """Progress sink for this sampler/model pair, or None.

        Called once per run after ``init``. Any setting accepted by
        :func:`~mcsample.progress.make_progress_sink` may be returned; None
        keeps the progress setting of the driver.
        """
        return None

    def summary(self) -> dict[str, Any]:
        """Final sampler state to attach to the result of a run."""
        return {"n_steps": self.n_steps}

    def _count_step(self) -> None:
        self.n_steps += 1

    def __repr__(self) -> str:
        attrs = []
        for key, value in self.__dict__.items():
            if not key.startswith("_"):
                attrs.append(f"{key}={value!r}")
        return f"{self.__class__.__name__}({', '.join(attrs)})"
