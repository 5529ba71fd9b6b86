# import importlib.metadata
__version__ = "0.1.0"  # importlib.metadata.version(__package__ or __name__)

from mcsample.assembly import Chains, ChainsAssembler, FunctionAssemblerAdapter
from mcsample.driver import (
    CancellationToken,
    Driver,
    SampleOutcome,
    SampleStatus,
    sample,
    try_sample,
)
from mcsample.errors import (
    AssemblyError,
    ExtensionNotImplementedError,
    FinalizeError,
    InitError,
    SamplingCancelled,
    SamplingError,
    StepError,
)
from mcsample.progress import (
    LoggingProgress,
    NullProgress,
    ProgressController,
    TqdmProgress,
    make_progress_sink,
)
from mcsample.samplers import AbstractSampler
from mcsample.support_utils import make_rng, spawn_rngs
from mcsample.transitions import Transition, TransitionBuffer

__all__ = [
    # Driver
    "Driver",
    "sample",
    "try_sample",
    "SampleOutcome",
    "SampleStatus",
    "CancellationToken",
    # Errors
    "SamplingError",
    "InitError",
    "StepError",
    "FinalizeError",
    "AssemblyError",
    "ExtensionNotImplementedError",
    "SamplingCancelled",
    # Transitions
    "Transition",
    "TransitionBuffer",
    # Progress
    "ProgressController",
    "NullProgress",
    "TqdmProgress",
    "LoggingProgress",
    "make_progress_sink",
    # Results
    "Chains",
    "ChainsAssembler",
    "FunctionAssemblerAdapter",
    # Samplers and random source
    "AbstractSampler",
    "make_rng",
    "spawn_rngs",
]
