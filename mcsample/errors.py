"""Exceptions raised by the sampling driver.

Every failure of an extension point aborts the run and reaches the caller as
one of the phase errors below:

- InitError: ``sampler.init`` failed
- StepError: ``sampler.step_first`` / ``sampler.step_next`` failed
- FinalizeError: ``sampler.finalize`` failed
- AssemblyError: the result assembler failed

Cancellation is reported with :class:`SamplingCancelled`, which is not a
:class:`SamplingError` because no component failed.
"""


class SamplingError(Exception):
    """Base class for failures of a sampling run.

    Parameters
    ----------
    message : str
        Human readable description of the failure.
    step : int or None, optional
        1-based index of the step that failed, if the failure happened
        inside the step loop.
    """

    phase = "run"

    def __init__(self, message: str, step: int | None = None):
        super().__init__(message)
        self.step = step


class InitError(SamplingError):
    """Sampler initialization failed; no step was executed."""

    phase = "init"


class StepError(SamplingError):
    """A single step failed; the transitions produced so far are discarded."""

    phase = "step"


class FinalizeError(SamplingError):
    """Post-loop consolidation failed; no result was built."""

    phase = "finalize"


class AssemblyError(SamplingError):
    """Building the result from the transitions failed."""

    phase = "assembly"


class ExtensionNotImplementedError(NotImplementedError):
    """An extension point has no implementation for this sampler/model pair."""

    def __init__(self, operation: str, sampler, model=None):
        self.operation = operation
        sampler_type = type(sampler).__name__
        if model is None:
            message = f"No {operation}() has been implemented for {sampler_type}"
        else:
            message = (
                f"No {operation}() has been implemented for objects of types "
                f"{sampler_type} and {type(model).__name__}"
            )
        super().__init__(message)


class SamplingCancelled(Exception):
    """The run was stopped by an external cancellation request.

    Attributes
    ----------
    completed_steps : int
        Number of steps that finished before the request was observed.
    """

    def __init__(self, completed_steps: int, n_steps: int):
        super().__init__(
            f"Sampling cancelled after {completed_steps} of {n_steps} steps"
        )
        self.completed_steps = completed_steps
        self.n_steps = n_steps
