"""Protocols for the components the sampling driver works with.

This module defines the interfaces (protocols) for:
- Models: the target the sampler operates against (opaque to the driver)
- Samplers: persistent algorithm state plus the four extension points
- Transitions: the self-contained output of one step
- Progress sinks: receive one notification per completed step
- Result assemblers: turn the ordered transitions into the final result

The driver only ever calls the operations listed here, so any object with
matching methods can be plugged in without inheriting from a base class.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

import numpy as np


class ModelProtocol(Protocol):
    """Marker protocol for models.

    The driver never calls a model; it forwards it unchanged to every
    sampler operation and to the result assembler.
    """


class TransitionProtocol(Protocol):
    """Marker protocol for transitions.

    A transition only has to be storable. It must not hold a reference to
    the transition it was computed from.
    """


class SamplerProtocol(Protocol):
    """Protocol for samplers driven by :class:`mcsample.driver.Driver`.

    A sampler holds the algorithm's persistent state (tuning parameters,
    counters, ...) and may mutate it in any operation. The driver holds it
    exclusively for the duration of a run.

    A sampler may also define ``progress_sink(rng, model, n, **options)``
    returning its own progress sink (or None to keep the driver's).

    Options are passed as keyword arguments and therefore may not reuse the
    parameter names of these operations (``rng``, ``model``, ``n``,
    ``prior``, ``transitions``).
    """

    def init(
        self, rng: np.random.Generator, model: Any, n: int, **options: Any
    ) -> None:
        """Prepare the sampler for a run of ``n`` steps.

        Called exactly once, before any step.
        """
        ...

    def step_first(
        self, rng: np.random.Generator, model: Any, n: int, **options: Any
    ) -> Any:
        """Produce the transition of step 1."""
        ...

    def step_next(
        self,
        rng: np.random.Generator,
        model: Any,
        n: int,
        prior: Any,
        **options: Any,
    ) -> Any:
        """Produce the transition of step i > 1 from the transition of step i - 1."""
        ...

    def finalize(
        self,
        rng: np.random.Generator,
        model: Any,
        n: int,
        transitions: Sequence[Any],
        **options: Any,
    ) -> None:
        """Consolidate after the last step.

        Called exactly once, after the last transition is stored and before
        the result is assembled.
        """
        ...


@runtime_checkable
class ProgressSinkProtocol(Protocol):
    """Protocol for progress reporting widgets.

    Sinks have no failure channel: reporting is best effort. A sink may
    also define ``close()``, which the driver calls once when the run ends.
    """

    def init(self, total: int) -> None:
        """Prepare to report ``total`` steps."""
        ...

    def advance(self) -> None:
        """Record one completed step."""
        ...


class ResultAssemblerProtocol(Protocol):
    """Protocol for building the result of a run.

    Called once, after ``finalize``, with the complete ordered list of
    transitions. The list is handed over: the driver keeps no reference.
    """

    def build(
        self,
        rng: np.random.Generator,
        model: Any,
        sampler: Any,
        n: int,
        transitions: list[Any],
        **options: Any,
    ) -> Any:
        """Build the result value.

        Returns
        -------
        Any
            The result of the run (e.g. :class:`mcsample.assembly.Chains`).
        """
        ...
