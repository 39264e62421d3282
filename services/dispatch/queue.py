# services/dispatch/queue.py
from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Iterable, Optional, Set

from services.scanner.records import CandidateRecord

logger = logging.getLogger(__name__)

Worker = Callable[[CandidateRecord], Awaitable[Any]]


class TaskState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Completion:
    """Outcome of one dispatched record: either `result` or `error` is set."""

    record: CandidateRecord
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DispatchTask:
    record: CandidateRecord
    future: "asyncio.Future[Completion]"
    state: TaskState = TaskState.QUEUED
    seq: int = field(default=0)


class BoundedDispatcher:
    """
    Runs `worker(record)` for submitted records, at most `concurrency` at a time.

    - backlog is unbounded and FIFO; submit() never blocks or pushes back
    - completions are reported first-to-finish
    - a failing task (rejected or raising before it awaits) resolves its own
      future with Completion(error=...) and leaves siblings alone
    - no timeout and no cancellation of its own: a hung worker keeps its slot;
      a worker cancelled from outside frees it and reports Completion(error=CancelledError)
    """

    def __init__(self, worker: Worker, *, concurrency: int = 2) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.worker = worker
        self.concurrency = int(concurrency)
        self._backlog: Deque[DispatchTask] = deque()
        self._running = 0
        self._seq = 0
        self._idle: Optional[asyncio.Event] = None
        self._inflight: Set["asyncio.Task[None]"] = set()

    @property
    def running(self) -> int:
        return self._running

    @property
    def pending(self) -> int:
        return len(self._backlog)

    def submit(self, record: CandidateRecord) -> "asyncio.Future[Completion]":
        """Queue a record. The returned future is the completion channel; ignoring it is fine."""
        loop = asyncio.get_running_loop()
        self._seq += 1
        task = DispatchTask(record=record, future=loop.create_future(), seq=self._seq)
        self._backlog.append(task)
        self._pump()
        return task.future

    def discard(self, futures: Iterable["asyncio.Future[Completion]"]) -> int:
        """
        Drop still-queued tasks whose future is in `futures` and cancel those futures.
        Running tasks are left alone. Returns how many were dropped.
        """
        targets = set(futures)
        kept: Deque[DispatchTask] = deque()
        dropped = 0
        for task in self._backlog:
            if task.future in targets:
                task.state = TaskState.FAILED
                task.future.cancel()
                dropped += 1
            else:
                kept.append(task)
        self._backlog = kept
        self._notify_idle()
        return dropped

    async def join(self) -> None:
        """Wait until nothing is queued or running."""
        while self._backlog or self._running:
            if self._idle is None or self._idle.is_set():
                self._idle = asyncio.Event()
            await self._idle.wait()

    def _pump(self) -> None:
        while self._backlog and self._running < self.concurrency:
            task = self._backlog.popleft()
            self._running += 1
            task.state = TaskState.RUNNING
            runner = asyncio.get_running_loop().create_task(self._execute(task))
            self._inflight.add(runner)
            runner.add_done_callback(self._inflight.discard)

    def _notify_idle(self) -> None:
        if not self._backlog and not self._running and self._idle is not None:
            self._idle.set()

    async def _execute(self, task: DispatchTask) -> None:
        completion: Optional[Completion] = None
        try:
            result = await self.worker(task.record)
        except Exception as e:
            task.state = TaskState.FAILED
            logger.warning("Verification of %s failed: %s", task.record.code, e)
            completion = Completion(record=task.record, error=e)
        else:
            task.state = TaskState.SUCCEEDED
            completion = Completion(record=task.record, result=result)
        finally:
            # also runs on cancellation: the slot is freed and the backlog keeps moving
            self._running -= 1
            if completion is None:
                task.state = TaskState.FAILED
                completion = Completion(record=task.record, error=asyncio.CancelledError("verification cancelled"))
            if not task.future.done():
                task.future.set_result(completion)
            self._pump()
            self._notify_idle()
