"""Tests for the sampling driver loop."""

import logging

import numpy as np
import pytest

from mcsample.assembly import Chains
from mcsample.driver import (
    CancellationToken,
    Driver,
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
    StepError,
)
from mcsample.models import get_model
from mcsample.samplers import AbstractSampler, RandomWalkMetropolis
from mcsample.support_utils import make_rng

MODEL = object()


def run(sampler, n, progress, assembler, **kwargs):
    return Driver(assembler=assembler, progress=progress).run(
        make_rng(0), MODEL, sampler, n, **kwargs
    )


class TestLoopOrder:
    def test_three_steps(
        self, events, counting_sampler, recording_progress, recording_assembler
    ):
        result = run(counting_sampler, 3, recording_progress, recording_assembler)

        assert result == [1, 2, 3]
        assert recording_progress.advances == 3
        assert events == [
            ("init", 3),
            ("progress_init", 3),
            ("step_first",),
            ("advance", 1),
            ("step_next", 1),
            ("advance", 2),
            ("step_next", 2),
            ("advance", 3),
            ("finalize", [1, 2, 3]),
            ("build", [1, 2, 3]),
        ]
        assert recording_progress.closed == 1

    def test_step_next_receives_previous_transition(
        self, counting_sampler, recording_progress, recording_assembler
    ):
        run(counting_sampler, 4, recording_progress, recording_assembler)

        # Each prior is the very object produced by the previous step
        for prior, produced in zip(counting_sampler.priors, counting_sampler.produced):
            assert prior is produced
        assert len(counting_sampler.priors) == 3

    def test_assembler_gets_transitions_in_step_order(
        self, counting_sampler, recording_assembler
    ):
        run(counting_sampler, 5, False, recording_assembler)

        _, model, sampler, n, transitions, _ = recording_assembler.calls[0]
        assert model is MODEL
        assert sampler is counting_sampler
        assert n == 5
        assert list(transitions) == counting_sampler.produced

    def test_zero_steps(
        self, events, counting_sampler, recording_progress, recording_assembler
    ):
        result = run(counting_sampler, 0, recording_progress, recording_assembler)

        assert result == []
        assert recording_progress.advances == 0
        assert events == [
            ("init", 0),
            ("progress_init", 0),
            ("finalize", []),
            ("build", []),
        ]

    def test_single_step_never_calls_step_next(
        self, counting_sampler, recording_assembler
    ):
        result = run(counting_sampler, 1, False, recording_assembler)

        assert result == [1]
        assert counting_sampler.next_calls == 0


class TestRandomSourceAndOptions:
    def test_same_generator_reaches_every_call(self, counting_sampler):
        rng = make_rng(1)
        Driver(progress=False, assembler=lambda *a, **k: None).run(
            rng, MODEL, counting_sampler, 4
        )

        assert len(counting_sampler.rngs) == 1 + 4 + 1
        assert all(r is rng for r in counting_sampler.rngs)

    def test_options_forwarded_unchanged(self, counting_sampler, recording_assembler):
        run(
            counting_sampler,
            3,
            False,
            recording_assembler,
            thinning=2,
            label="chain-a",
        )

        expected = {"thinning": 2, "label": "chain-a"}
        assert all(options == expected for options in counting_sampler.options)
        assert recording_assembler.calls[0][5] == expected

    def test_options_named_like_driver_arguments(self, counting_sampler):
        # Options may share names with internal arguments of the driver
        result = sample(
            MODEL,
            counting_sampler,
            2,
            seed=0,
            progress=False,
            assembler=lambda rng, model, sampler, n, transitions, **options: options,
            operation="x",
            step=3,
            args=(),
        )

        assert result == {"operation": "x", "step": 3, "args": ()}

    def test_seeded_runs_are_reproducible(self):
        model = get_model("normal", loc=1.0, scale=2.0)

        first = sample(model, RandomWalkMetropolis(step_size=0.5), 200, seed=7, progress=False)
        second = sample(model, RandomWalkMetropolis(step_size=0.5), 200, seed=7, progress=False)
        other = sample(model, RandomWalkMetropolis(step_size=0.5), 200, seed=8, progress=False)

        np.testing.assert_array_equal(first.draws, second.draws)
        assert not np.array_equal(first.draws, other.draws)

    def test_rng_and_seed_are_exclusive(self, counting_sampler):
        with pytest.raises(ValueError, match="either rng or seed"):
            sample(MODEL, counting_sampler, 1, rng=make_rng(0), seed=0)


class TestInvalidArguments:
    @pytest.mark.parametrize("n", [-1, 2.5, True, "3", None])
    def test_invalid_n(self, counting_sampler, n):
        with pytest.raises(ValueError):
            Driver(progress=False).run(make_rng(0), MODEL, counting_sampler, n)
        assert counting_sampler.events == []

    def test_numpy_integer_n(self, counting_sampler, recording_assembler):
        result = run(counting_sampler, np.int64(2), False, recording_assembler)
        assert result == [1, 2]

    def test_missing_rng(self, counting_sampler):
        with pytest.raises(ValueError, match="random generator"):
            Driver(progress=False).run(None, MODEL, counting_sampler, 3)
        assert counting_sampler.events == []

    def test_invalid_progress_setting(self):
        with pytest.raises(ValueError, match="Unknown progress setting"):
            Driver(progress="fancy")

    def test_invalid_assembler(self):
        with pytest.raises(TypeError):
            Driver(assembler=42)


class TestFailures:
    def test_step_next_failure(
        self, events, make_counting_sampler, recording_progress, recording_assembler
    ):
        sampler = make_counting_sampler(fail_next_at=3)

        with pytest.raises(StepError) as excinfo:
            run(sampler, 5, recording_progress, recording_assembler)

        assert excinfo.value.step == 4
        assert excinfo.value.phase == "step"
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert recording_progress.advances == 3
        assert recording_progress.closed == 1
        assert not any(event[0] in ("finalize", "build") for event in events)
        assert recording_assembler.calls == []

    def test_step_first_failure(self, recording_assembler):
        class BrokenFirst(AbstractSampler):
            def init(self, rng, model, n, **options):
                pass

            def step_first(self, rng, model, n, **options):
                raise FloatingPointError("overflow")

        with pytest.raises(StepError) as excinfo:
            run(BrokenFirst(), 3, False, recording_assembler)

        assert excinfo.value.step == 1
        assert isinstance(excinfo.value.__cause__, FloatingPointError)
        assert recording_assembler.calls == []

    def test_init_failure(self, recording_progress, recording_assembler):
        class BrokenInit(AbstractSampler):
            def init(self, rng, model, n, **options):
                raise KeyError("missing")

        with pytest.raises(InitError) as excinfo:
            run(BrokenInit(), 3, recording_progress, recording_assembler)

        assert excinfo.value.step is None
        assert isinstance(excinfo.value.__cause__, KeyError)
        assert recording_progress.events == []

    def test_finalize_failure(self, events, recording_assembler):
        class BrokenFinalize:
            def init(self, rng, model, n, **options):
                pass

            def step_first(self, rng, model, n, **options):
                return 0

            def step_next(self, rng, model, n, prior, **options):
                return prior + 1

            def finalize(self, rng, model, n, transitions, **options):
                raise RuntimeError("cannot consolidate")

        with pytest.raises(FinalizeError) as excinfo:
            Driver(progress=False, assembler=recording_assembler).run(
                make_rng(0), MODEL, BrokenFinalize(), 2
            )

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert recording_assembler.calls == []

    def test_assembly_failure(self, counting_sampler):
        def broken(rng, model, sampler, n, transitions, **options):
            raise RuntimeError("no space left")

        with pytest.raises(AssemblyError) as excinfo:
            run(counting_sampler, 2, False, broken)

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert ("finalize", [1, 2]) in counting_sampler.events

    def test_phase_error_from_sampler_passes_through(self):
        original = StepError("custom failure", step=1)

        class Raising(AbstractSampler):
            def init(self, rng, model, n, **options):
                pass

            def step_first(self, rng, model, n, **options):
                raise original

        with pytest.raises(StepError) as excinfo:
            run(Raising(), 2, False, None)

        assert excinfo.value is original

    def test_failure_is_logged(self, make_counting_sampler, caplog):
        sampler = make_counting_sampler(fail_next_at=1)

        with caplog.at_level(logging.ERROR, logger="mcsample.driver"):
            with pytest.raises(StepError):
                run(sampler, 3, False, None)

        assert "Sampling aborted during step" in caplog.text


class TestMissingExtensionPoints:
    def test_bare_abstract_sampler(self, recording_assembler):
        with pytest.raises(InitError) as excinfo:
            run(AbstractSampler(), 3, False, recording_assembler)

        assert isinstance(excinfo.value.__cause__, ExtensionNotImplementedError)
        assert "init()" in str(excinfo.value)

    def test_missing_step_next(self):
        class FirstOnly:
            def init(self, rng, model, n, **options):
                pass

            def step_first(self, rng, model, n, **options):
                return 1

            def finalize(self, rng, model, n, transitions, **options):
                pass

        with pytest.raises(StepError) as excinfo:
            run(FirstOnly(), 3, False, None)

        assert excinfo.value.step == 2
        assert isinstance(excinfo.value.__cause__, ExtensionNotImplementedError)
        assert "FirstOnly" in str(excinfo.value)

    def test_missing_step_next_is_fine_for_one_step(self):
        class FirstOnly:
            def init(self, rng, model, n, **options):
                pass

            def step_first(self, rng, model, n, **options):
                return 1

            def finalize(self, rng, model, n, transitions, **options):
                pass

        assert run(FirstOnly(), 1, False, lambda *a, **k: list(a[4])) == [1]

    def test_missing_finalize(self):
        class NoFinalize(AbstractSampler):
            def init(self, rng, model, n, **options):
                pass

            def step_first(self, rng, model, n, **options):
                return 1

            def step_next(self, rng, model, n, prior, **options):
                return prior + 1

        with pytest.raises(FinalizeError) as excinfo:
            run(NoFinalize(), 2, False, None)

        assert isinstance(excinfo.value.__cause__, ExtensionNotImplementedError)


class TestCancellation:
    def test_cancel_mid_run(
        self, events, counting_sampler, make_recording_progress, recording_assembler
    ):
        token = CancellationToken()

        def cancel_after_two(advances):
            if advances == 2:
                token.cancel()

        progress = make_recording_progress(on_advance=cancel_after_two)

        with pytest.raises(SamplingCancelled) as excinfo:
            run(counting_sampler, 5, progress, recording_assembler, cancel=token)

        assert excinfo.value.completed_steps == 2
        assert excinfo.value.n_steps == 5
        assert progress.closed == 1
        assert not any(event[0] in ("finalize", "build") for event in events)

    def test_cancel_before_run(self, counting_sampler, recording_assembler):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(SamplingCancelled) as excinfo:
            run(counting_sampler, 3, False, recording_assembler, cancel=token)

        assert excinfo.value.completed_steps == 0
        assert counting_sampler.produced == []

    def test_token_state(self):
        token = CancellationToken()
        assert not token.cancelled
        token.cancel()
        assert token.cancelled


class TestTrySample:
    def test_completed(self, counting_sampler):
        outcome = try_sample(MODEL, counting_sampler, 2, seed=0, progress=False)

        assert outcome.ok
        assert outcome.status is SampleStatus.COMPLETED
        assert isinstance(outcome.result, Chains)
        assert outcome.error is None

    def test_failed(self, make_counting_sampler):
        outcome = try_sample(
            MODEL, make_counting_sampler(fail_next_at=1), 3, seed=0, progress=False
        )

        assert not outcome.ok
        assert outcome.status is SampleStatus.FAILED
        assert isinstance(outcome.error, StepError)
        assert outcome.result is None

    def test_cancelled(self, counting_sampler):
        token = CancellationToken()
        token.cancel()

        outcome = try_sample(
            MODEL, counting_sampler, 3, seed=0, progress=False, cancel=token
        )

        assert outcome.status is SampleStatus.CANCELLED
        assert isinstance(outcome.error, SamplingCancelled)

    def test_invalid_arguments_still_raise(self, counting_sampler):
        with pytest.raises(ValueError):
            try_sample(MODEL, counting_sampler, -3, progress=False)


class TestProgressIsolation:
    def test_failing_sink_does_not_fail_run(self, counting_sampler, caplog):
        class Exploding:
            def __init__(self):
                self.advance_calls = 0
                self.closed = False

            def init(self, total):
                pass

            def advance(self):
                self.advance_calls += 1
                raise OSError("terminal gone")

            def close(self):
                self.closed = True

        sink = Exploding()
        with caplog.at_level(logging.WARNING, logger="mcsample.progress"):
            result = run(counting_sampler, 4, sink, lambda *a, **k: len(a[4]))

        assert result == 4
        assert sink.advance_calls == 1
        assert sink.closed
        assert "progress reporting disabled" in caplog.text


class TestReservedOptions:
    @pytest.mark.parametrize("option", ["prior", "transitions"])
    def test_clashing_option_rejected_before_init(self, counting_sampler, option):
        with pytest.raises(ValueError, match="clash"):
            Driver(progress=False).run(
                make_rng(0), MODEL, counting_sampler, 3, **{option: "flat"}
            )
        assert counting_sampler.events == []

    def test_clashing_option_rejected_for_single_step(self, counting_sampler):
        with pytest.raises(ValueError, match="prior"):
            sample(MODEL, counting_sampler, 1, seed=0, progress=False, prior="flat")


class TestSamplerProgressSink:
    def test_sampler_sink_replaces_driver_setting(self, events, make_recording_progress):
        sink = make_recording_progress()

        class WithSink(AbstractSampler):
            def init(self, rng, model, n, **options):
                events.append(("init", n))

            def progress_sink(self, rng, model, n, **options):
                events.append(("progress_sink", n))
                return sink

            def step_first(self, rng, model, n, **options):
                return 0

            def step_next(self, rng, model, n, prior, **options):
                return prior + 1

            def finalize(self, rng, model, n, transitions, **options):
                pass

        result = Driver(progress=False, assembler=lambda *a, **k: list(a[4])).run(
            make_rng(0), MODEL, WithSink(), 3
        )

        assert result == [0, 1, 2]
        assert sink.advances == 3
        assert sink.closed == 1
        assert events[:3] == [("init", 3), ("progress_sink", 3), ("progress_init", 3)]

    def test_sampler_returning_none_keeps_driver_sink(self, recording_progress):
        class Plain(AbstractSampler):
            def init(self, rng, model, n, **options):
                pass

            def step_first(self, rng, model, n, **options):
                return 0

            def step_next(self, rng, model, n, prior, **options):
                return prior + 1

            def finalize(self, rng, model, n, transitions, **options):
                pass

        Driver(progress=recording_progress, assembler=lambda *a, **k: None).run(
            make_rng(0), MODEL, Plain(), 2
        )

        assert recording_progress.advances == 2

    def test_invalid_sampler_sink(self):
        class BadSink(AbstractSampler):
            def init(self, rng, model, n, **options):
                pass

            def progress_sink(self, rng, model, n, **options):
                return "fancy"

        with pytest.raises(InitError, match="invalid sink") as excinfo:
            run(BadSink(), 2, False, None)

        assert isinstance(excinfo.value.__cause__, ValueError)


def test_sink_without_close(counting_sampler, recording_assembler):
    class AdvanceOnly:
        def __init__(self):
            self.total = None
            self.advances = 0

        def init(self, total):
            self.total = total

        def advance(self):
            self.advances += 1

    sink = AdvanceOnly()
    result = run(counting_sampler, 3, sink, recording_assembler)

    assert result == [1, 2, 3]
    assert sink.total == 3
    assert sink.advances == 3
