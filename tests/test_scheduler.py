"""
Test suite for the audio generation task queue scheduler.

The synthesis client is replaced by a fake that hands out
concurrent.futures.Future objects, either already resolved or left pending,
so most tests are deterministic and need no network or threads. One test
drives a real SpeechSynthesisClient over a slow mocked session.
"""

import tempfile
import time
from concurrent.futures import Future
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests

from cerebrum.audio.errors import (
    ERROR_KIND_CANCELLED,
    ERROR_KIND_NETWORK,
    ERROR_KIND_TIMEOUT,
    ERROR_KIND_WRITE,
    ConfigurationError,
)
from cerebrum.audio.scheduler import (
    CancellationToken,
    GenerationSummary,
    SchedulerState,
    TaskFailure,
    TaskQueueScheduler,
)
from cerebrum.audio.tasks import AudioGenerationTask, TaskKind, build_test_game_tasks
from cerebrum.data.test_game import TestCategory, TestClue, TestGameConfig
from cerebrum.synthesis.synthesis_client import (
    SpeechSynthesisClient,
    SynthesisConfig,
    SynthesisResult,
)


class FakeSynthesisClient:
    """Records submitted texts and returns futures."""

    def __init__(
        self, failures=None, pending=False, running=False, config_error=None, submit_error=None
    ):
        self.failures = failures or {}
        self.pending = pending
        self.running = running
        self.config_error = config_error
        self.submit_error = submit_error
        self.requests = []
        self.futures = []

    def validate_config(self):
        if self.config_error is not None:
            raise self.config_error

    def submit(self, text):
        if self.submit_error is not None:
            raise self.submit_error
        self.requests.append(text)
        future = Future()
        if self.running:
            # Picked up by a worker: cancel() no longer succeeds
            future.set_running_or_notify_cancel()
        elif not self.pending:
            if text in self.failures:
                future.set_result(self.failures[text])
            else:
                future.set_result(SynthesisResult.ok(f"audio:{text}".encode()))
        self.futures.append(future)
        return future


def make_tasks(directory, count):
    return [
        AudioGenerationTask(
            text=f"text {i}",
            destination=Path(directory) / f"phrase_{i}.mp3",
            kind=TaskKind.PHRASE,
            phrase_id=f"phrase_{i}",
        )
        for i in range(1, count + 1)
    ]


def no_sleep(_seconds):
    pass


class TestSchedulerRuns:
    """Test complete runs driven by run()."""

    def test_skip_existing(self):
        """Test that an existing destination is skipped without a request."""
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 3)
            tasks[1].destination.write_bytes(b"existing")
            client = FakeSynthesisClient()

            summary = TaskQueueScheduler(client, tasks).run(sleep=no_sleep)

            assert summary.generated_count == 2
            assert summary.skipped_count == 1
            assert summary.failed_count == 0
            assert summary.requests_issued == 2
            assert client.requests == ["text 1", "text 3"]
            assert tasks[1].destination.read_bytes() == b"existing"
            assert tasks[0].destination.read_bytes() == b"audio:text 1"

    def test_failure_does_not_stop_queue(self):
        """Test that a failed task is recorded and the queue reaches DONE."""
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 3)
            client = FakeSynthesisClient(
                failures={"text 1": SynthesisResult.failure("TTS API Error: 500 - boom", ERROR_KIND_NETWORK, 500)}
            )
            scheduler = TaskQueueScheduler(client, tasks)

            summary = scheduler.run(sleep=no_sleep)

            assert scheduler.state == SchedulerState.DONE
            assert summary.failed_count == 1
            assert summary.generated_count == 2
            failure = summary.failed[0]
            assert failure.task_id == "phrase_1"
            assert "TTS API Error: 500 - boom" in failure.message
            assert failure.error_kind == ERROR_KIND_NETWORK
            assert not tasks[0].destination.exists()

    def test_force_regenerate_overwrites(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 3)
            tasks[1].destination.write_bytes(b"old")
            client = FakeSynthesisClient()

            summary = TaskQueueScheduler(client, tasks, skip_existing=False).run(sleep=no_sleep)

            assert summary.generated_count == 3
            assert summary.skipped_count == 0
            assert summary.requests_issued == 3
            assert tasks[1].destination.read_bytes() == b"audio:text 2"

    def test_resume_is_convergent(self):
        """Test that a second run over finished output issues no requests."""
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 3)
            TaskQueueScheduler(FakeSynthesisClient(), tasks).run(sleep=no_sleep)

            client = FakeSynthesisClient()
            summary = TaskQueueScheduler(client, tasks).run(sleep=no_sleep)

            assert summary.skipped_count == 3
            assert client.requests == []

    def test_write_error_is_task_failure(self):
        """Test that a failure to save audio is recorded, not raised."""
        with tempfile.TemporaryDirectory() as temp_dir:
            blocker = Path(temp_dir) / "blocker"
            blocker.write_text("not a directory")
            tasks = [
                AudioGenerationTask("blocked", blocker / "a.mp3", TaskKind.PHRASE, phrase_id="a"),
                AudioGenerationTask("fine", Path(temp_dir) / "b.mp3", TaskKind.PHRASE, phrase_id="b"),
            ]

            summary = TaskQueueScheduler(FakeSynthesisClient(), tasks).run(sleep=no_sleep)

            assert summary.generated == ["b"]
            assert summary.failed[0].task_id == "a"
            assert summary.failed[0].error_kind == ERROR_KIND_WRITE
            assert summary.failed[0].message.startswith("save error:")

    def test_future_exception_is_task_failure(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 1)
            client = FakeSynthesisClient(pending=True)
            scheduler = TaskQueueScheduler(client, tasks)
            scheduler.start()
            scheduler.tick()
            client.futures[0].set_exception(requests.exceptions.ConnectionError("down"))

            scheduler.tick()

            assert scheduler.summary.failed[0].error_kind == ERROR_KIND_NETWORK
            assert scheduler.state == SchedulerState.RUNNING

    def test_externally_cancelled_future_is_task_failure(self):
        """Test a future cancelled by the client, e.g. on shutdown."""
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 2)
            client = FakeSynthesisClient(pending=True)
            scheduler = TaskQueueScheduler(client, tasks)
            scheduler.start()
            scheduler.tick()
            client.futures[0].cancel()

            scheduler.tick()

            assert scheduler.summary.failed[0].error_kind == ERROR_KIND_CANCELLED
            assert scheduler.summary.failed[0].task_id == "phrase_1"
            assert scheduler.state == SchedulerState.RUNNING

    def test_submit_error_is_task_failure(self):
        """Test that a client refusing new work fails the task instead of raising."""
        with tempfile.TemporaryDirectory() as temp_dir:
            client = FakeSynthesisClient(
                submit_error=RuntimeError("cannot schedule new futures after shutdown")
            )
            scheduler = TaskQueueScheduler(client, make_tasks(temp_dir, 2))

            summary = scheduler.run(sleep=no_sleep)

            assert scheduler.state == SchedulerState.DONE
            assert [f.task_id for f in summary.failed] == ["phrase_1", "phrase_2"]
            assert summary.failed[0].message.startswith("submit error:")
            assert summary.requests_issued == 0

    def test_restart_after_cancel_resumes(self):
        """Test that a cancelled run can be started again and finishes the queue."""
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 3)
            client = FakeSynthesisClient()
            scheduler = TaskQueueScheduler(client, tasks)
            scheduler.start()
            scheduler.tick()
            scheduler.tick()
            scheduler.cancel()
            assert scheduler.tick() == SchedulerState.CANCELLED

            summary = scheduler.run(sleep=no_sleep)

            assert scheduler.state == SchedulerState.DONE
            assert not summary.cancelled
            assert summary.skipped == ["phrase_1"]
            assert summary.generated == ["phrase_2", "phrase_3"]
            assert client.requests == ["text 1", "text 2", "text 3"]
            assert all(task.destination.exists() for task in tasks)

    def test_run_sleeps_only_while_waiting(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 3)
            tasks[0].destination.write_bytes(b"existing")
            sleeps = []
            progress = []

            TaskQueueScheduler(FakeSynthesisClient(), tasks).run(
                poll_interval=0.5, sleep=sleeps.append, on_progress=progress.append
            )

            assert sleeps == [0.5, 0.5]
            assert progress[-1].status == "Complete"
            assert progress[-1].total == 3

    def test_empty_task_list(self):
        summary = TaskQueueScheduler(FakeSynthesisClient(), []).run(sleep=no_sleep)
        assert summary.completed_count == 0
        assert not summary.cancelled

    def test_test_game_tasks_in_order(self):
        """Test that test game audio lands at the deterministic paths."""
        with tempfile.TemporaryDirectory() as temp_dir:
            config = TestGameConfig(
                categories=[
                    TestCategory("ANIMALS", [TestClue(200, "It barks", "What is a dog?")]),
                    TestCategory("COLORS", [TestClue(200, "Sky color", "What is blue?")]),
                ]
            )
            tasks = build_test_game_tasks(config, temp_dir)
            client = FakeSynthesisClient()

            TaskQueueScheduler(client, tasks).run(sleep=no_sleep)

            assert client.requests == [
                "ANIMALS", "COLORS", "It barks", "Sky color", "What is a dog?", "What is blue?"
            ]
            root = Path(temp_dir)
            assert (root / "Categories" / "cat1.mp3").exists()
            assert (root / "Clues" / "cat0_clue0.mp3").read_bytes() == b"audio:It barks"
            assert (root / "Answers" / "cat1_answer0.mp3").exists()


class TestSchedulerTicks:
    """Test the state machine one tick at a time."""

    def test_start_validates_configuration(self):
        """Test that a configuration error stops the run before any dequeue."""
        with tempfile.TemporaryDirectory() as temp_dir:
            client = FakeSynthesisClient(config_error=ConfigurationError("no key"))
            scheduler = TaskQueueScheduler(client, make_tasks(temp_dir, 2))

            with pytest.raises(ConfigurationError):
                scheduler.start()
            with pytest.raises(ConfigurationError):
                scheduler.run(sleep=no_sleep)

            assert scheduler.state == SchedulerState.IDLE
            assert client.requests == []
            assert scheduler.progress.current_index == 0

    def test_tick_before_start_does_nothing(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            client = FakeSynthesisClient()
            scheduler = TaskQueueScheduler(client, make_tasks(temp_dir, 1))

            assert scheduler.tick() == SchedulerState.IDLE
            assert client.requests == []

    def test_start_twice_rejected(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            scheduler = TaskQueueScheduler(FakeSynthesisClient(), make_tasks(temp_dir, 1))
            scheduler.start()
            with pytest.raises(RuntimeError):
                scheduler.start()

    def test_one_step_per_tick(self):
        """Test the sequence of states and progress for a short queue."""
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 2)
            tasks[0].destination.write_bytes(b"existing")
            client = FakeSynthesisClient()
            scheduler = TaskQueueScheduler(client, tasks)
            scheduler.start()

            assert scheduler.tick() == SchedulerState.RUNNING
            assert scheduler.summary.skipped == ["phrase_1"]
            assert scheduler.progress.current_index == 1
            assert scheduler.progress.status.startswith("Skipped")

            assert scheduler.tick() == SchedulerState.WAITING
            assert client.requests == ["text 2"]
            assert scheduler.progress.current_label.startswith("phrase_2")

            assert scheduler.tick() == SchedulerState.RUNNING
            assert scheduler.summary.generated == ["phrase_2"]

            assert scheduler.tick() == SchedulerState.DONE
            assert scheduler.tick() == SchedulerState.DONE
            assert scheduler.is_finished

    def test_single_request_in_flight(self):
        """Test that no second request is issued while one is pending."""
        with tempfile.TemporaryDirectory() as temp_dir:
            client = FakeSynthesisClient(pending=True)
            scheduler = TaskQueueScheduler(client, make_tasks(temp_dir, 3))
            scheduler.start()

            for _ in range(5):
                assert scheduler.tick() == SchedulerState.WAITING
            assert len(client.requests) == 1

            client.futures[0].set_result(SynthesisResult.ok(b"late"))
            assert scheduler.tick() == SchedulerState.RUNNING
            assert scheduler.tick() == SchedulerState.WAITING
            assert len(client.requests) == 2

    def test_cancel_after_first_resolves(self):
        """Test that cancelling after 1 of 5 tasks stops further requests."""
        with tempfile.TemporaryDirectory() as temp_dir:
            client = FakeSynthesisClient()
            scheduler = TaskQueueScheduler(client, make_tasks(temp_dir, 5))
            scheduler.start()
            scheduler.tick()
            scheduler.tick()
            assert scheduler.summary.completed_count == 1

            scheduler.cancel()
            assert scheduler.tick() == SchedulerState.CANCELLED
            assert scheduler.tick() == SchedulerState.CANCELLED

            summary = scheduler.summary
            assert summary.cancelled
            assert summary.completed_count == 1
            assert len(client.requests) == 1
            assert summary.requests_issued == 1

    def test_cancel_discards_pending_request(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 3)
            client = FakeSynthesisClient(pending=True)
            scheduler = TaskQueueScheduler(client, tasks)
            scheduler.start()
            scheduler.tick()

            scheduler.cancel()
            scheduler.tick()

            assert scheduler.state == SchedulerState.CANCELLED
            assert client.futures[0].cancelled()
            assert scheduler.summary.completed_count == 0
            assert not tasks[0].destination.exists()

    def test_cancel_applies_resolved_result(self):
        """Test that a result already available at cancel time is still recorded."""
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 3)
            client = FakeSynthesisClient()
            scheduler = TaskQueueScheduler(client, tasks)
            scheduler.start()
            scheduler.tick()

            scheduler.cancel()
            scheduler.tick()

            assert scheduler.state == SchedulerState.CANCELLED
            assert scheduler.summary.generated == ["phrase_1"]
            assert tasks[0].destination.exists()
            assert len(client.requests) == 1

    def test_shared_cancellation_token(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            token = CancellationToken()
            client = FakeSynthesisClient()
            token.cancel()

            summary = TaskQueueScheduler(client, make_tasks(temp_dir, 2), cancel_token=token).run(
                sleep=no_sleep
            )

            assert summary.cancelled
            assert client.requests == []

    def test_request_deadline(self):
        """Test that a request exceeding its deadline is recorded as a timeout."""
        with tempfile.TemporaryDirectory() as temp_dir:
            now = [100.0]
            client = FakeSynthesisClient(pending=True)
            scheduler = TaskQueueScheduler(
                client,
                make_tasks(temp_dir, 2),
                request_deadline_seconds=30,
                clock=lambda: now[0],
            )
            scheduler.start()
            scheduler.tick()

            now[0] = 120.0
            assert scheduler.tick() == SchedulerState.WAITING

            now[0] = 131.0
            assert scheduler.tick() == SchedulerState.RUNNING
            assert client.futures[0].cancelled()
            failure = scheduler.summary.failed[0]
            assert failure.task_id == "phrase_1"
            assert failure.error_kind == ERROR_KIND_TIMEOUT

            assert scheduler.tick() == SchedulerState.WAITING
            assert len(client.requests) == 2

    def test_deadline_waits_for_running_request(self):
        """Test that the next task is not submitted while a timed-out request runs."""
        with tempfile.TemporaryDirectory() as temp_dir:
            now = [100.0]
            tasks = make_tasks(temp_dir, 2)
            client = FakeSynthesisClient(running=True)
            scheduler = TaskQueueScheduler(
                client, tasks, request_deadline_seconds=30, clock=lambda: now[0]
            )
            scheduler.start()
            scheduler.tick()

            now[0] = 131.0
            assert scheduler.tick() == SchedulerState.WAITING
            assert scheduler.summary.failed[0].error_kind == ERROR_KIND_TIMEOUT
            assert scheduler.progress.status.startswith("Waiting for timed-out request")

            now[0] = 500.0
            assert scheduler.tick() == SchedulerState.WAITING
            assert len(client.requests) == 1
            assert scheduler.summary.failed_count == 1

            client.futures[0].set_result(SynthesisResult.ok(b"late"))
            assert scheduler.tick() == SchedulerState.RUNNING
            assert not tasks[0].destination.exists()
            assert scheduler.summary.generated == []

            assert scheduler.tick() == SchedulerState.WAITING
            assert client.requests == ["text 1", "text 2"]

            # The second request's deadline starts at its own submission
            now[0] = 520.0
            client.futures[1].set_result(SynthesisResult.ok(b"audio"))
            assert scheduler.tick() == SchedulerState.RUNNING
            assert scheduler.summary.generated == ["phrase_2"]

    def test_restart_waits_for_request_left_running(self):
        """Test that a restart after cancel lets the old request finish first."""
        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = make_tasks(temp_dir, 2)
            client = FakeSynthesisClient(running=True)
            scheduler = TaskQueueScheduler(client, tasks)
            scheduler.start()
            scheduler.tick()
            scheduler.cancel()
            assert scheduler.tick() == SchedulerState.CANCELLED

            scheduler.start()
            assert scheduler.state == SchedulerState.WAITING
            assert scheduler.tick() == SchedulerState.WAITING
            assert len(client.requests) == 1

            client.futures[0].set_result(SynthesisResult.ok(b"old"))
            assert scheduler.tick() == SchedulerState.RUNNING
            assert not tasks[0].destination.exists()
            assert scheduler.tick() == SchedulerState.WAITING
            assert client.requests == ["text 1", "text 1"]


class TestSchedulerWithClient:
    """Test the scheduler against a real client and a slow mocked session."""

    def test_timed_out_request_does_not_fail_later_tasks(self):
        durations = {"t1": 0.6, "t2": 0.1, "t3": 0.1, "t4": 0.1}

        def slow_post(url, json=None, headers=None, timeout=None):
            time.sleep(durations[json["input"]])
            response = Mock()
            response.status_code = 200
            response.content = f"audio:{json['input']}".encode()
            response.text = ""
            return response

        session = Mock()
        session.post.side_effect = slow_post
        config = SynthesisConfig(api_key="sk-test-0123456789abcdef", max_attempts=1)

        with tempfile.TemporaryDirectory() as temp_dir:
            tasks = [
                AudioGenerationTask(
                    f"t{i}", Path(temp_dir) / f"t{i}.mp3", TaskKind.PHRASE, phrase_id=f"t{i}"
                )
                for i in range(1, 5)
            ]

            with SpeechSynthesisClient(config, session=session) as client:
                scheduler = TaskQueueScheduler(client, tasks, request_deadline_seconds=0.3)
                summary = scheduler.run(poll_interval=0.01)

            assert [f.task_id for f in summary.failed] == ["t1"]
            assert summary.failed[0].error_kind == ERROR_KIND_TIMEOUT
            assert summary.generated == ["t2", "t3", "t4"]
            assert not tasks[0].destination.exists()
            assert tasks[3].destination.read_bytes() == b"audio:t4"


class TestGenerationSummary:
    def test_format_report(self):
        summary = GenerationSummary(
            total=4,
            generated=["a", "b"],
            skipped=["c"],
            failed=[TaskFailure("d", "save error: disk full", ERROR_KIND_WRITE)],
            requests_issued=3,
        )

        report = summary.format_report()
        assert report.startswith("Complete! Generated: 2, Skipped: 1, Failed: 1")
        assert "(4/4 tasks, 3 requests)" in report
        assert "d (save error: disk full)" in report

    def test_cancelled_report(self):
        summary = GenerationSummary(total=5, generated=["a"], cancelled=True)
        assert summary.format_report().startswith("Cancelled!")
