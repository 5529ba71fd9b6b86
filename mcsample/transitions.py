"""Transition storage for a single sampling run."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import numpy as np

_EMPTY = object()


@dataclass(frozen=True, eq=False)
class Transition:
    """Result of a single step of a sampler.

    Concrete samplers may use this class or any other object as their
    transition payload. It stores one draw and is self-contained: it does
    not reference the transition it was computed from.
    Transitions compare by identity.

    Attributes
    ----------
    draw : np.ndarray or float
        The sampled parameter values.
    log_density : float
        Log density of the model at ``draw``.
    accepted : bool
        Whether the proposal of this step was accepted.
    stats : Mapping[str, Any]
        Per-step diagnostics (e.g. acceptance probability).
    """

    draw: Any
    log_density: float = float("nan")
    accepted: bool = True
    stats: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the stats mapping so the transition stays immutable
        object.__setattr__(self, "stats", MappingProxyType(dict(self.stats)))
        if isinstance(self.draw, np.ndarray):
            draw = self.draw.copy()
            draw.flags.writeable = False
            object.__setattr__(self, "draw", draw)


class TransitionBuffer:
    """Preallocated, left-to-right filled sequence of transitions.

    The buffer is allocated once with ``capacity`` slots. Slot ``i`` is
    filled if and only if step ``i + 1`` completed: ``store`` only accepts
    the next free slot, so there are no holes and nothing is overwritten.

    Examples
    --------
    >>> buffer = TransitionBuffer(2)
    >>> buffer.store(0, "a")
    >>> buffer.store(1, "b")
    >>> buffer.is_full
    True
    >>> buffer.release()
    ['a', 'b']
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self._slots: list[Any] | None = [_EMPTY] * capacity
        self._capacity = capacity
        self._filled = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return self._filled == self._capacity

    @property
    def released(self) -> bool:
        return self._slots is None

    def _check_not_released(self) -> list[Any]:
        if self._slots is None:
            raise RuntimeError("TransitionBuffer has already been released")
        return self._slots

    def store(self, index: int, transition: Any) -> None:
        """Store ``transition`` in slot ``index`` (0-based).

        Raises
        ------
        IndexError
            If ``index`` is not the next free slot.
        """
        slots = self._check_not_released()
        if index != self._filled:
            raise IndexError(
                f"Transitions must be stored in order: expected slot "
                f"{self._filled}, got {index}"
            )
        if index >= self._capacity:
            raise IndexError(
                f"TransitionBuffer is full (capacity {self._capacity})"
            )
        slots[index] = transition
        self._filled += 1

    @property
    def last(self) -> Any:
        """The most recently stored transition."""
        slots = self._check_not_released()
        if self._filled == 0:
            raise IndexError("TransitionBuffer is empty")
        return slots[self._filled - 1]

    def view(self) -> tuple[Any, ...]:
        """Read-only snapshot of the filled slots."""
        slots = self._check_not_released()
        return tuple(slots[: self._filled])

    def release(self) -> list[Any]:
        """Move the transitions out of the buffer.

        The buffer is unusable afterwards.
        """
        slots = self._check_not_released()
        self._slots = None
        return slots[: self._filled]

    def __len__(self) -> int:
        return self._filled

    def __getitem__(self, index: int) -> Any:
        slots = self._check_not_released()
        if index < 0:
            index += self._filled
        if not 0 <= index < self._filled:
            raise IndexError(f"Slot {index} is not filled")
        return slots[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.view())

    def __repr__(self) -> str:
        state = "released" if self.released else f"{self._filled}/{self._capacity}"
        return f"TransitionBuffer({state})"
