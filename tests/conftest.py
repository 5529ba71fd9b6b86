"""Pytest configuration for the mcsample test suite."""

from dataclasses import dataclass

import pytest


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-statistical",
        action="store_true",
        default=False,
        help="Run long statistical accuracy tests of the reference samplers",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "statistical: mark test as a statistical accuracy test (skipped unless --run-statistical is passed)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip statistical tests unless the corresponding flag is passed."""
    if config.getoption("--run-statistical"):
        return
    skip_statistical = pytest.mark.skip(reason="need --run-statistical option to run")
    for item in items:
        if "statistical" in item.keywords:
            item.add_marker(skip_statistical)


@dataclass(frozen=True)
class Count:
    """Toy transition payload."""

    value: int


class CountingSampler:
    """Toy sampler whose transition payload is previous value + 1, starting from 0.

    Records every call in the shared ``events`` list. ``fail_next_at``
    makes the n-th call of step_next raise.
    """

    def __init__(self, events, fail_next_at=None):
        self.events = events
        self.fail_next_at = fail_next_at
        self.next_calls = 0
        self.priors = []
        self.produced = []
        self.rngs = []
        self.options = []

    def _record(self, rng, options):
        self.rngs.append(rng)
        self.options.append(options)

    def init(self, rng, model, n, **options):
        self._record(rng, options)
        self.events.append(("init", n))

    def step_first(self, rng, model, n, **options):
        self._record(rng, options)
        self.events.append(("step_first",))
        transition = Count(1)
        self.produced.append(transition)
        return transition

    def step_next(self, rng, model, n, prior, **options):
        self._record(rng, options)
        self.next_calls += 1
        if self.fail_next_at is not None and self.next_calls == self.fail_next_at:
            raise RuntimeError("numerical failure")
        self.priors.append(prior)
        self.events.append(("step_next", prior.value))
        transition = Count(prior.value + 1)
        self.produced.append(transition)
        return transition

    def finalize(self, rng, model, n, transitions, **options):
        self._record(rng, options)
        self.events.append(("finalize", [t.value for t in transitions]))


class RecordingProgress:
    """Progress sink recording its calls in the shared ``events`` list."""

    def __init__(self, events, on_advance=None):
        self.events = events
        self.on_advance = on_advance
        self.advances = 0
        self.closed = 0

    def init(self, total):
        self.events.append(("progress_init", total))

    def advance(self):
        self.advances += 1
        self.events.append(("advance", self.advances))
        if self.on_advance is not None:
            self.on_advance(self.advances)

    def close(self):
        self.closed += 1


class RecordingAssembler:
    """Result assembler returning the payload values of the transitions."""

    def __init__(self, events):
        self.events = events
        self.calls = []

    def build(self, rng, model, sampler, n, transitions, **options):
        self.calls.append((rng, model, sampler, n, transitions, options))
        values = [t.value for t in transitions]
        self.events.append(("build", values))
        return values


@pytest.fixture
def events():
    return []


@pytest.fixture
def counting_sampler(events):
    return CountingSampler(events)


@pytest.fixture
def recording_progress(events):
    return RecordingProgress(events)


@pytest.fixture
def recording_assembler(events):
    return RecordingAssembler(events)


@pytest.fixture
def make_counting_sampler(events):
    def _make(**kwargs):
        return CountingSampler(events, **kwargs)

    return _make


@pytest.fixture
def make_recording_progress(events):
    def _make(**kwargs):
        return RecordingProgress(events, **kwargs)

    return _make
