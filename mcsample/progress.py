"""Progress reporting for sampling runs.

The driver reports progress through a :class:`ProgressController`, which
wraps any object satisfying :class:`mcsample.protocols.ProgressSinkProtocol`.
Built-in sinks:

- NullProgress: reports nothing
- TqdmProgress: a ``tqdm`` progress bar
- LoggingProgress: periodic log messages
"""

import logging
from typing import Any

import tqdm

from mcsample.protocols import ProgressSinkProtocol

logger = logging.getLogger(__name__)


class NullProgress:
    """Progress sink that discards every notification."""

    def init(self, total: int) -> None:
        pass

    def advance(self) -> None:
        pass

    def close(self) -> None:
        pass


class TqdmProgress:
    """Progress sink backed by a ``tqdm`` progress bar.

    Args:
        desc: Label shown in front of the bar
        **tqdm_kwargs: Extra keyword arguments forwarded to ``tqdm.tqdm``
    """

    def __init__(self, desc: str = "Sampling", **tqdm_kwargs: Any):
        self.desc = desc
        self.tqdm_kwargs = tqdm_kwargs
        self._bar = None

    def init(self, total: int) -> None:
        self.close()
        self._bar = tqdm.tqdm(
            total=total, desc=self.desc, unit="step", **self.tqdm_kwargs
        )

    def advance(self) -> None:
        if self._bar is not None:
            self._bar.update(1)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


class LoggingProgress:
    """Progress sink that writes a log record every ``every`` steps.

    Args:
        every: Reporting interval in steps (the final step is always reported)
        level: Logging level of the records
    """

    def __init__(self, every: int = 100, level: int = logging.INFO):
        if every < 1:
            raise ValueError(f"every must be >= 1, got {every}")
        self.every = every
        self.level = level
        self._total = 0
        self._count = 0

    def init(self, total: int) -> None:
        self._total = total
        self._count = 0

    def advance(self) -> None:
        self._count += 1
        if self._count % self.every == 0 or self._count == self._total:
            logger.log(self.level, "step %d/%d", self._count, self._total)

    def close(self) -> None:
        pass


def make_progress_sink(progress: Any = True) -> ProgressSinkProtocol:
    """Resolve a progress setting to a progress sink.

    Args:
        progress: One of
            - True or "tqdm": TqdmProgress
            - False, None or "none": NullProgress
            - "log": LoggingProgress
            - an object with init and advance methods (returned as is);
              ``close`` is optional

    Returns:
        A progress sink

    Raises:
        ValueError: If the setting is not recognized
    """
    if progress is True:
        return TqdmProgress()
    if progress is False or progress is None:
        return NullProgress()
    if isinstance(progress, str):
        key = progress.lower()
        if key == "tqdm":
            return TqdmProgress()
        if key == "none":
            return NullProgress()
        if key == "log":
            return LoggingProgress()
        raise ValueError(
            f"Unknown progress setting '{progress}'. "
            "Use one of: 'tqdm', 'log', 'none'"
        )
    if isinstance(progress, ProgressSinkProtocol):
        return progress
    raise ValueError(
        f"Progress sink {progress!r} must define init(total) and advance()"
    )


class ProgressController:
    """Per-run wrapper around a progress sink.

    ``init`` is called once before the loop, ``advance`` once per completed
    step and the sink's optional ``close`` once when the run ends. The
    controller never sees transition content.

    Sink errors do not fail the run: the first exception is logged and the
    sink is not called again for the rest of the run.
    """

    def __init__(self, sink: ProgressSinkProtocol):
        self.sink = sink
        self.total = 0
        self.completed = 0
        self._disabled = False

    def _call(self, method: str, *args, force: bool = False) -> None:
        if self._disabled and not force:
            return
        try:
            getattr(self.sink, method)(*args)
        except Exception as e:
            logger.warning(
                "Progress sink %r failed in %s(); progress reporting disabled: %s",
                self.sink,
                method,
                e,
            )
            self._disabled = True

    def init(self, total: int) -> None:
        self.total = total
        self.completed = 0
        self._call("init", total)

    def advance(self) -> None:
        self.completed += 1
        self._call("advance")

    def close(self) -> None:
        # Sinks without close() hold nothing to release
        if callable(getattr(self.sink, "close", None)):
            self._call("close", force=True)
