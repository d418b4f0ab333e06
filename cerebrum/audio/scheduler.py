"""
Task Queue Scheduler for audio generation.

Drives a list of AudioGenerationTask to completion against the speech
synthesis client with exactly one request in flight at a time. The scheduler
is advanced by repeated tick() calls from the host; each tick does at most
one step of work and never blocks waiting for the network.

State machine:
    IDLE      -> start() -> RUNNING
    RUNNING   -> tick(): dequeue next task
                   queue empty              -> DONE
                   destination exists       -> record skipped, stay RUNNING
                   otherwise submit request -> WAITING
    WAITING   -> tick(): poll the in-flight future
                   not done, within deadline -> stay WAITING
                   resolved                  -> save + record, RUNNING
                   deadline exceeded         -> record timeout; RUNNING once
                                                the abandoned request frees the
                                                worker, WAITING until then
    any state -> cancel signal observed on tick -> CANCELLED
    DONE, CANCELLED -> start() -> RUNNING (a new run over the same tasks)

Tasks resolve strictly in enqueue order. Failures are recorded per task and
never stop the queue. Only configuration problems raise, from start().
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, List, Optional, Sequence

from .errors import (
    ERROR_KIND_CANCELLED,
    ERROR_KIND_TIMEOUT,
    ERROR_KIND_UNKNOWN,
    ERROR_KIND_WRITE,
    classify_synthesis_exception,
)
from .tasks import AudioGenerationTask

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    WAITING = "waiting"
    DONE = "done"
    CANCELLED = "cancelled"


TERMINAL_STATES = {SchedulerState.DONE, SchedulerState.CANCELLED}


class CancellationToken:
    """Cancel flag that can be shared with a signal handler or another thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class TaskFailure:
    task_id: str
    message: str
    error_kind: str = ERROR_KIND_UNKNOWN

    def __str__(self) -> str:
        return f"{self.task_id} ({self.message})"


@dataclass
class GenerationSummary:
    """Outcome lists and counters for one generation run."""

    total: int = 0
    generated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[TaskFailure] = field(default_factory=list)
    cancelled: bool = False
    requests_issued: int = 0

    @property
    def generated_count(self) -> int:
        return len(self.generated)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def completed_count(self) -> int:
        return self.generated_count + self.skipped_count + self.failed_count

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def format_report(self) -> str:
        """Multi-line text report of the run."""
        status = "Cancelled" if self.cancelled else "Complete"
        lines = [
            f"{status}! Generated: {self.generated_count}, "
            f"Skipped: {self.skipped_count}, Failed: {self.failed_count} "
            f"({self.completed_count}/{self.total} tasks, "
            f"{self.requests_issued} requests)"
        ]
        if self.failed:
            lines.append(f"Failed ({self.failed_count}):")
            lines.extend(f"  {failure}" for failure in self.failed)
        return "\n".join(lines)


@dataclass(frozen=True)
class Progress:
    """Snapshot for host-side progress display."""

    current_index: int
    total: int
    current_label: str
    status: str

    @property
    def fraction(self) -> float:
        return self.current_index / self.total if self.total else 0.0


class TaskQueueScheduler:
    """
    Single-flight, in-order executor of audio generation tasks.

    Args:
        client: Object with validate_config() and submit(text) -> Future
            resolving to a SynthesisResult
        tasks: Tasks in the order they must be processed
        skip_existing: Leave tasks whose destination exists untouched
        request_deadline_seconds: Give up on a request after this long
            (None waits as long as the transport does)
        clock: Monotonic time source used for the deadline
        cancel_token: Shared cancellation flag
    """

    def __init__(
        self,
        client,
        tasks: Sequence[AudioGenerationTask],
        skip_existing: bool = True,
        request_deadline_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.client = client
        self.tasks = list(tasks)
        self.skip_existing = skip_existing
        self.request_deadline_seconds = request_deadline_seconds
        self.clock = clock
        self.cancel_token = cancel_token or CancellationToken()

        self._state = SchedulerState.IDLE
        self._queue: Deque[AudioGenerationTask] = deque()
        self._current: Optional[AudioGenerationTask] = None
        self._in_flight: Optional[Future] = None
        self._in_flight_started = 0.0
        self._abandoned = False
        self._draining: Optional[Future] = None
        self._current_index = 0
        self._status = "Idle"
        self.summary = GenerationSummary(total=len(self.tasks))

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_finished(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def progress(self) -> Progress:
        label = self._current.label if self._current is not None else ""
        return Progress(
            current_index=self._current_index,
            total=len(self.tasks),
            current_label=label,
            status=self._status,
        )

    def start(self):
        """
        Reset counters and begin a run.

        A finished or cancelled scheduler can be started again; the new run
        walks the same task list, so with skip_existing it resumes where the
        previous run stopped.

        Raises:
            ConfigurationError: If the client cannot run (nothing is dequeued)
            RuntimeError: If a run is already in progress
        """
        if self._state in (SchedulerState.RUNNING, SchedulerState.WAITING):
            raise RuntimeError("Generation run already in progress")

        self.client.validate_config()

        if self._state in TERMINAL_STATES:
            self.cancel_token.reset()

        self._queue = deque(self.tasks)
        self._current = None
        self._in_flight = None
        self._abandoned = False
        self._current_index = 0
        self.summary = GenerationSummary(total=len(self.tasks))
        self._state = SchedulerState.RUNNING
        self._status = "Starting"

        # A request left running by the previous run still holds the worker
        if self._draining is not None and not self._draining.done():
            self._in_flight = self._draining
            self._abandoned = True
            self._state = SchedulerState.WAITING
        self._draining = None

        mode = "skip existing" if self.skip_existing else "regenerate all"
        logger.info(f"GENERATION_START: {len(self.tasks)} tasks ({mode})")

    def cancel(self):
        """Request cancellation; observed on the next tick."""
        self.cancel_token.cancel()

    def tick(self) -> SchedulerState:
        """Advance the run by at most one step and return the new state."""
        if self._state == SchedulerState.IDLE or self.is_finished:
            return self._state

        if self.cancel_token.is_cancelled:
            self._handle_cancel()
        elif self._state == SchedulerState.WAITING:
            self._poll_in_flight()
        else:
            self._dequeue()

        return self._state

    def run(
        self,
        poll_interval: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: Optional[Callable[[Progress], None]] = None,
    ) -> GenerationSummary:
        """
        Tick until the run finishes, sleeping only while a request is pending.

        Starts the run first if it is not already in progress.
        """
        if self._state == SchedulerState.IDLE or self.is_finished:
            self.start()

        while not self.is_finished:
            state = self.tick()
            if on_progress is not None:
                on_progress(self.progress)
            if state == SchedulerState.WAITING:
                sleep(poll_interval)

        return self.summary

    def _dequeue(self):
        if not self._queue:
            self._finish()
            return

        task = self._queue.popleft()
        self._current = task
        self._current_index += 1

        if self.skip_existing and task.destination.exists():
            self.summary.skipped.append(task.task_id)
            self._status = f"Skipped (exists): {task.label}"
            logger.debug(f"Skipping {task.task_id}, {task.destination} exists")
            return

        try:
            self._in_flight = self.client.submit(task.text)
        except Exception as e:
            self._record_failure(
                task, f"submit error: {e}", classify_synthesis_exception(e)
            )
            return
        self._in_flight_started = self.clock()
        self.summary.requests_issued += 1
        self._state = SchedulerState.WAITING
        self._status = f"Generating: {task.label}"
        logger.info(f"[{self._current_index}/{len(self.tasks)}] Generating {task.label}")

    def _poll_in_flight(self):
        future = self._in_flight
        if self._abandoned:
            # Timed-out request: drop its result once the worker is free
            if future.done():
                logger.debug("Timed-out request finished, worker is free")
                self._abandoned = False
                self._clear_in_flight()
            return

        if future.done():
            self._resolve(future)
            return

        if self.request_deadline_seconds is None:
            return

        elapsed = self.clock() - self._in_flight_started
        if elapsed >= self.request_deadline_seconds:
            self._record_failure(
                self._current,
                f"no response after {elapsed:.1f}s",
                ERROR_KIND_TIMEOUT,
            )
            if future.cancel() or future.done():
                self._clear_in_flight()
            else:
                self._abandoned = True
                self._status = f"Waiting for timed-out request: {self._current.label}"

    def _resolve(self, future: Future):
        task = self._current
        try:
            result = future.result()
        except CancelledError:
            self._record_failure(task, "request was cancelled", ERROR_KIND_CANCELLED)
            self._clear_in_flight()
            return
        except Exception as e:
            self._record_failure(task, str(e) or type(e).__name__, classify_synthesis_exception(e))
            self._clear_in_flight()
            return

        if result.success:
            self._save(task, result.audio_bytes)
        else:
            self._record_failure(
                task, result.error or "synthesis failed", result.error_kind or ERROR_KIND_UNKNOWN
            )
        self._clear_in_flight()

    def _save(self, task: AudioGenerationTask, audio_bytes: bytes):
        try:
            task.destination.parent.mkdir(parents=True, exist_ok=True)
            task.destination.write_bytes(audio_bytes)
        except OSError as e:
            self._record_failure(task, f"save error: {e}", ERROR_KIND_WRITE)
            return

        self.summary.generated.append(task.task_id)
        self._status = f"Generated: {task.label}"
        logger.debug(f"Saved {len(audio_bytes)} bytes to {task.destination}")

    def _record_failure(self, task: AudioGenerationTask, message: str, error_kind: str):
        failure = TaskFailure(task_id=task.task_id, message=message, error_kind=error_kind)
        self.summary.failed.append(failure)
        self._status = f"Failed: {task.label}"
        logger.error(f"Failed to generate {failure}")

    def _clear_in_flight(self):
        self._in_flight = None
        self._state = SchedulerState.RUNNING

    def _handle_cancel(self):
        future = self._in_flight
        if future is not None:
            if future.done() and not self._abandoned:
                self._resolve(future)
            elif not future.done():
                if not future.cancel():
                    self._draining = future
                if self._current is not None and not self._abandoned:
                    logger.info(f"Discarded pending request for {self._current.task_id}")
        self._in_flight = None
        self._abandoned = False
        self._queue.clear()

        self.summary.cancelled = True
        self._state = SchedulerState.CANCELLED
        self._status = "Cancelled"
        logger.info(
            f"GENERATION_CANCELLED: Generated: {self.summary.generated_count}, "
            f"Skipped: {self.summary.skipped_count}, Failed: {self.summary.failed_count}"
        )

    def _finish(self):
        self._current = None
        self._state = SchedulerState.DONE
        self._status = "Complete"
        logger.info(
            f"GENERATION_COMPLETE: Generated: {self.summary.generated_count}, "
            f"Skipped: {self.summary.skipped_count}, Failed: {self.summary.failed_count}"
        )
