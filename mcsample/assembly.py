"""Result assembly: turning the ordered transitions of a run into a result."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class Chains:
    """Result of a sampling run.

    Attributes
    ----------
    draws : np.ndarray
        Array of shape (n_samples, ...) with one row per step, in step order.
    log_density : np.ndarray or None
        Log density of each draw, when the transitions carry one.
    transitions : tuple
        The transitions as produced by the sampler.
    n_samples : int
        Number of steps of the run.
    param_names : tuple[str, ...]
        Column names used by ``to_dataframe``.
    sampler_name : str
        Name of the sampler that produced the run.
    model_name : str
        Name of the model the sampler ran against.
    info : dict
        Final sampler state, as reported by ``sampler.summary()``.
    options : dict
        The keyword options forwarded during the run.
    """

    draws: np.ndarray
    log_density: np.ndarray | None
    transitions: tuple
    n_samples: int
    param_names: tuple[str, ...] = ()
    sampler_name: str = ""
    model_name: str = ""
    info: dict = field(default_factory=dict)
    options: dict = field(default_factory=dict)

    def __len__(self) -> int:
        return self.n_samples

    def to_numpy(self) -> np.ndarray:
        """Return the draws as a 2D array of shape (n_samples, n_params)."""
        draws = np.asarray(self.draws)
        if draws.ndim == 1:
            return draws[:, None]
        return draws.reshape(draws.shape[0], -1)

    def to_dataframe(self) -> pd.DataFrame:
        """Return the draws as a DataFrame indexed by step (starting at 1).

        Returns
        -------
        pd.DataFrame
            One column per parameter, plus ``log_density`` when available.
        """
        values = self.to_numpy()
        names = list(self.param_names)
        if len(names) != values.shape[1]:
            names = [f"x{i}" for i in range(values.shape[1])]
        df = pd.DataFrame(values, columns=names)
        if self.log_density is not None:
            df["log_density"] = self.log_density
        df.index = pd.RangeIndex(1, len(df) + 1, name="step")
        return df


def _object_name(obj: Any) -> str:
    name = getattr(obj, "name", None)
    if isinstance(name, str) and name:
        return name
    return type(obj).__name__


class ChainsAssembler:
    """Default result assembler producing :class:`Chains`.

    Transitions with a ``draw`` attribute contribute their draw (and their
    ``log_density`` when every transition has one); any other payload is
    used as the draw itself.
    """

    def build(
        self,
        rng: np.random.Generator,
        model: Any,
        sampler: Any,
        n: int,
        transitions: list[Any],
        **options: Any,
    ) -> Chains:
        if len(transitions) != n:
            raise ValueError(
                f"Expected {n} transitions, got {len(transitions)}"
            )

        draws = [getattr(t, "draw", t) for t in transitions]
        # numpy raises ValueError for ragged draws
        draws_array = np.asarray(draws) if draws else np.empty((0,))

        log_density = None
        if transitions and all(hasattr(t, "log_density") for t in transitions):
            log_density = np.asarray(
                [t.log_density for t in transitions], dtype=float
            )

        param_names = tuple(getattr(model, "param_names", None) or ())
        summary = getattr(sampler, "summary", None)
        info = dict(summary()) if callable(summary) else {}

        return Chains(
            draws=draws_array,
            log_density=log_density,
            transitions=tuple(transitions),
            n_samples=n,
            param_names=param_names,
            sampler_name=_object_name(sampler),
            model_name=_object_name(model),
            info=info,
            options=dict(options),
        )


class FunctionAssemblerAdapter:
    """Adapter to wrap a plain function as a result assembler.

    Example:
        def as_list(rng, model, sampler, n, transitions, **options):
            return list(transitions)

        result = sample(model, sampler, 10, assembler=as_list)
    """

    def __init__(self, func: Callable[..., Any], name: str | None = None):
        self.func = func
        self.name = name or getattr(func, "__name__", "custom")

    def build(self, rng, model, sampler, n, transitions, **options):
        return self.func(rng, model, sampler, n, transitions, **options)

    def __repr__(self):
        return f"FunctionAssemblerAdapter('{self.name}')"


def as_assembler(assembler: Any = None):
    """Resolve the ``assembler`` argument of the driver.

    Args:
        assembler: None (use ChainsAssembler), an object with a ``build``
            method, or a callable with the same signature as ``build``

    Returns:
        An object satisfying ResultAssemblerProtocol

    Raises:
        TypeError: If the argument is neither an assembler nor callable
    """
    if assembler is None:
        return ChainsAssembler()
    if callable(getattr(assembler, "build", None)):
        return assembler
    if callable(assembler):
        return FunctionAssemblerAdapter(assembler)
    raise TypeError(
        f"assembler must have a build() method or be callable, got {type(assembler).__name__}"
    )
