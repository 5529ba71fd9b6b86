"""
Sampling driver.

This module runs the generic sampling loop. Given a random generator, a
model, a sampler and a number of steps ``n``, :meth:`Driver.run`:

1. calls ``sampler.init`` once,
2. allocates a :class:`~mcsample.transitions.TransitionBuffer` of length n,
3. initializes progress reporting, using the sink returned by the
   sampler's optional ``progress_sink`` operation when it provides one,
4. calls ``sampler.step_first`` for step 1 and ``sampler.step_next`` with
   the transition of step i - 1 for every step i > 1, storing each
   transition and advancing progress once per step,
5. calls ``sampler.finalize`` once with all transitions,
6. hands the transitions to the result assembler and returns its result.

Any failure aborts the run with the matching
:class:`~mcsample.errors.SamplingError` subclass; no partial result is ever
built. The same generator instance is used for every call of the run, so a
run is reproducible from (seed, model, sampler state, n).
"""

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

import numpy as np

from mcsample.assembly import as_assembler
from mcsample.errors import (
    AssemblyError,
    ExtensionNotImplementedError,
    FinalizeError,
    InitError,
    SamplingCancelled,
    SamplingError,
    StepError,
)
from mcsample.progress import ProgressController, make_progress_sink
from mcsample.support_utils import make_rng, validate_n_steps
from mcsample.transitions import TransitionBuffer

logger = logging.getLogger(__name__)

# Bound by the signatures of Driver.run and the extension points
EXTENSION_ARGUMENT_NAMES = frozenset(
    {"rng", "model", "sampler", "n", "prior", "transitions", "cancel"}
)
# Keyword arguments of sample()
SAMPLE_ARGUMENT_NAMES = frozenset({"rng", "seed", "progress", "assembler", "cancel"})
RESERVED_OPTION_NAMES = EXTENSION_ARGUMENT_NAMES | SAMPLE_ARGUMENT_NAMES


class CancellationToken:
    """Thread-safe request to stop a run early.

    The driver checks the token before every step. A cancelled run raises
    :class:`~mcsample.errors.SamplingCancelled`; ``finalize`` is not called
    and no result is built.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _call_extension(
    sampler: Any,
    operation: str,
    error_cls: type[SamplingError],
    step: int | None,
    model: Any,
    args: tuple,
    options: dict[str, Any],
) -> Any:
    """Call one extension point of the sampler, mapping failures to ``error_cls``."""
    method = getattr(sampler, operation, None)
    if not callable(method):
        missing = ExtensionNotImplementedError(operation, sampler, model)
        raise error_cls(str(missing), step=step) from missing
    try:
        return method(*args, **options)
    except (error_cls, SamplingCancelled):
        raise
    except Exception as e:
        raise error_cls(
            f"{type(sampler).__name__}.{operation}() failed: {e}", step=step
        ) from e


class Driver:
    """Runs a sampler against a model for a fixed number of steps.

    Parameters
    ----------
    assembler : object, callable or None, optional
        Result assembler (see :class:`~mcsample.protocols.ResultAssemblerProtocol`).
        Defaults to :class:`~mcsample.assembly.ChainsAssembler`.
    progress : bool, str or progress sink, optional
        Progress reporting, resolved with
        :func:`~mcsample.progress.make_progress_sink`. Defaults to a tqdm bar.

    Examples
    --------
    >>> rng = make_rng(42)
    >>> chains = Driver(progress=False).run(rng, model, sampler, 1000)
    """

    def __init__(self, assembler: Any = None, progress: Any = True):
        self.assembler = as_assembler(assembler)
        self.progress = progress
        # Resolve eagerly so bad settings fail before any sampler state changes
        make_progress_sink(progress)

    def run(
        self,
        rng: np.random.Generator,
        model: Any,
        sampler: Any,
        n: int,
        cancel: CancellationToken | None = None,
        **options: Any,
    ) -> Any:
        """Run ``n`` steps of ``sampler`` against ``model`` and build the result.

        Parameters
        ----------
        rng : np.random.Generator
            The single random generator of the run.
        model : Any
            Forwarded unchanged to every sampler operation.
        sampler : Any
            Object implementing :class:`~mcsample.protocols.SamplerProtocol`.
        n : int
            Number of steps (0 is allowed and produces an empty result).
        cancel : CancellationToken or None, optional
            Checked before every step.
        **options
            Forwarded unchanged to every extension point.

        Returns
        -------
        Any
            The value built by the result assembler.

        Raises
        ------
        ValueError
            If ``n`` or ``rng`` is invalid, or an option uses a name in
            ``EXTENSION_ARGUMENT_NAMES``.
        InitError, StepError, FinalizeError, AssemblyError
            If the corresponding phase fails.
        SamplingCancelled
            If ``cancel`` was triggered before the last step started.
        """
        n = validate_n_steps(n)
        if rng is None:
            raise ValueError(
                "A random generator is required; create one with make_rng(seed)"
            )
        clashing = sorted(EXTENSION_ARGUMENT_NAMES & options.keys())
        if clashing:
            raise ValueError(
                f"Options {clashing} clash with arguments of the sampler operations"
            )

        start = time.perf_counter()
        try:
            result = self._run(rng, model, sampler, n, cancel, options)
        except SamplingError as e:
            logger.error("Sampling aborted during %s: %s", e.phase, e)
            raise
        except SamplingCancelled as e:
            logger.info("%s", e)
            raise

        logger.info(
            "Sampled %d steps with %s in %.2fs",
            n,
            type(sampler).__name__,
            time.perf_counter() - start,
        )
        return result

    def _progress_sink(self, rng, model, sampler, n, options):
        """Resolve the sink of a run; a sampler may supply its own."""
        if not callable(getattr(sampler, "progress_sink", None)):
            return make_progress_sink(self.progress)
        setting = _call_extension(
            sampler, "progress_sink", InitError, None, model, (rng, model, n), options
        )
        if setting is None:
            return make_progress_sink(self.progress)
        try:
            return make_progress_sink(setting)
        except ValueError as e:
            raise InitError(
                f"{type(sampler).__name__}.progress_sink() returned an invalid sink: {e}"
            ) from e

    def _run(self, rng, model, sampler, n, cancel, options):
        logger.debug("Initializing %s for %d steps", type(sampler).__name__, n)
        _call_extension(
            sampler, "init", InitError, None, model, (rng, model, n), options
        )

        buffer = TransitionBuffer(n)
        controller = ProgressController(
            self._progress_sink(rng, model, sampler, n, options)
        )
        controller.init(n)
        try:
            for i in range(1, n + 1):
                if cancel is not None and cancel.cancelled:
                    raise SamplingCancelled(completed_steps=i - 1, n_steps=n)

                if i == 1:
                    transition = _call_extension(
                        sampler, "step_first", StepError, i, model,
                        (rng, model, n), options,
                    )
                else:
                    transition = _call_extension(
                        sampler, "step_next", StepError, i, model,
                        (rng, model, n, buffer.last), options,
                    )

                buffer.store(i - 1, transition)
                controller.advance()
        finally:
            controller.close()

        logger.debug("Finalizing %s after %d steps", type(sampler).__name__, n)
        _call_extension(
            sampler, "finalize", FinalizeError, None, model,
            (rng, model, n, buffer.view()), options,
        )

        try:
            return self.assembler.build(
                rng, model, sampler, n, buffer.release(), **options
            )
        except AssemblyError:
            raise
        except Exception as e:
            raise AssemblyError(
                f"{type(self.assembler).__name__}.build() failed: {e}"
            ) from e


def sample(
    model: Any,
    sampler: Any,
    n: int,
    *,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
    progress: Any = True,
    assembler: Any = None,
    cancel: CancellationToken | None = None,
    **options: Any,
) -> Any:
    """Draw ``n`` samples from ``model`` with ``sampler``.

    Convenience wrapper around :meth:`Driver.run`. When ``rng`` is not
    given, one generator is created from ``seed`` with
    :func:`~mcsample.support_utils.make_rng` and used for the whole run.

    Args:
        model: The target model
        sampler: The sampler (see SamplerProtocol)
        n: Number of steps
        rng: Random generator of the run (mutually exclusive with seed)
        seed: Seed used to create the generator when rng is None
        progress: Progress setting (see make_progress_sink)
        assembler: Result assembler or callable; defaults to ChainsAssembler
        cancel: Optional CancellationToken
        **options: Forwarded unchanged to every extension point

    Returns:
        The result of the run (a Chains object with the default assembler)
    """
    if rng is not None and seed is not None:
        raise ValueError("Pass either rng or seed, not both")
    if rng is None:
        rng = make_rng(seed)
    driver = Driver(assembler=assembler, progress=progress)
    return driver.run(rng, model, sampler, n, cancel=cancel, **options)


class SampleStatus(enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SampleOutcome:
    """Tagged outcome of :func:`try_sample`.

    Exactly one of ``result`` (COMPLETED) or ``error`` (FAILED, CANCELLED)
    is set.
    """

    status: SampleStatus
    result: Any = None
    error: SamplingError | SamplingCancelled | None = None

    @property
    def ok(self) -> bool:
        return self.status is SampleStatus.COMPLETED


def try_sample(model: Any, sampler: Any, n: int, **kwargs: Any) -> SampleOutcome:
    """Like :func:`sample`, but report failure and cancellation as a value.

    Invalid arguments still raise ``ValueError``.
    """
    try:
        result = sample(model, sampler, n, **kwargs)
    except SamplingCancelled as e:
        return SampleOutcome(status=SampleStatus.CANCELLED, error=e)
    except SamplingError as e:
        return SampleOutcome(status=SampleStatus.FAILED, error=e)
    return SampleOutcome(status=SampleStatus.COMPLETED, result=result)
