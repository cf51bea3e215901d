"""
Persistent worker processes.

:class:`WorkerPool` spawns a fixed number of long-lived worker processes in
listen mode and feeds them :class:`WorkItem` requests, one at a time per
worker, from a single shared queue. Requests and responses are JSON lines on
the worker's stdin and stdout; anything the worker writes to stderr is
logged.

All bookkeeping happens in reactor callbacks, so the queue, the slots and the
response counter are never touched concurrently.
"""

from __future__ import annotations

import json
import logging
import os
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from twisted.internet import defer
from twisted.internet.defer import Deferred
from twisted.internet.error import ProcessExitedAlready
from twisted.internet.protocol import ProcessProtocol
from twisted.python.failure import Failure

from typestester.exceptions import (
    InsufficientWorkError,
    ResponseDecodeError,
    WorkerCrashed,
)
from typestester.results import SUCCESS_STATUS, Response, decode_response

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkItem:
    """One package to test.

    ``unit_id`` is the package path relative to the worker's working
    directory. ``only_test_ts_next`` restricts the worker to the next
    TypeScript version, which is enough for packages that are only tested
    because something they depend on changed.
    """

    unit_id: str
    only_test_ts_next: bool = False

    def to_message(self) -> dict[str, Any]:
        return {"path": self.unit_id, "onlyTestTsNext": self.only_test_ts_next}


class WorkerSlot(ProcessProtocol):
    """One live worker process and the item it is working on."""

    def __init__(self, pool: WorkerPool, index: int):
        self.pool = pool
        self.index = index
        self.pid: int | None = None
        self.current: WorkItem | None = None
        self.retired: bool = False
        self.ended: bool = False
        self._buffer: bytes = b""

    def __repr__(self) -> str:
        return f"<WorkerSlot index={self.index} pid={self.pid} current={self.current}>"

    def connectionMade(self) -> None:
        self.pid = self.transport.pid
        logger.debug(
            "Worker %(index)d started (pid %(pid)s)",
            {"index": self.index, "pid": self.pid},
        )

    def assign(self, item: WorkItem) -> None:
        assert self.current is None, f"{self!r} is busy"
        self.current = item
        self.transport.write(json.dumps(item.to_message()).encode("utf-8") + b"\n")

    def retire(self) -> None:
        """Stop the worker once it has no more work to do."""
        self.retired = True
        self.current = None
        self.transport.closeStdin()
        self.kill("TERM")

    def kill(self, signal: str = "KILL") -> None:
        if self.ended:
            return
        try:
            self.transport.signalProcess(signal)
        except ProcessExitedAlready:
            pass

    def outReceived(self, data: bytes) -> None:
        self._buffer += data
        *lines, self._buffer = self._buffer.split(b"\n")
        for line in lines:
            if line.strip():
                self.pool.line_received(self, line)

    def errReceived(self, data: bytes) -> None:
        for line in data.decode("utf-8", errors="replace").splitlines():
            logger.debug(
                "Worker %(index)d: %(line)s", {"index": self.index, "line": line}
            )

    def processEnded(self, status: Failure) -> None:
        self.ended = True
        self.pool.slot_ended(self, status)


class WorkerPool:
    """Run work items on ``nprocesses`` persistent worker processes.

    Each worker is started as ``command + extra_args`` in ``cwd`` and must
    answer every request line with exactly one response line.
    """

    def __init__(
        self,
        command: Sequence[str],
        nprocesses: int,
        cwd: str | os.PathLike[str] | None = None,
        *,
        extra_args: Sequence[str] = ("--listen",),
        success_status: str = SUCCESS_STATUS,
    ):
        if not command:
            raise ValueError("A worker command is required")
        self.command: list[str] = [str(a) for a in command]
        self.nprocesses: int = nprocesses
        self.cwd: str | None = str(cwd) if cwd is not None else None
        self.extra_args: list[str] = [str(a) for a in extra_args]
        self.success_status: str = success_status

        self.slots: list[WorkerSlot] = []
        self.running: bool = False
        self._queue: deque[WorkItem] = deque()
        self._on_response: Callable[[Response], Any] | None = None
        self._expected: int = 0
        self._received: int = 0
        self._finished: Deferred[None] | None = None

    @property
    def args(self) -> list[str]:
        return [*self.command, *self.extra_args]

    @property
    def remaining(self) -> int:
        return len(self._queue)

    @property
    def in_flight(self) -> int:
        return sum(1 for slot in self.slots if slot.current is not None)

    def dispatch(
        self,
        items: Sequence[WorkItem],
        on_response: Callable[[Response], Any],
    ) -> Deferred[None]:
        """Test every item and call ``on_response`` once per response.

        The returned Deferred fires once every item got its response and the
        workers have exited. It fails with
        :exc:`~typestester.exceptions.InsufficientWorkError` before any
        process is spawned when there are fewer items than processes, and as
        soon as a worker crashes or sends a malformed response.
        """
        if self.running:
            raise RuntimeError("WorkerPool.dispatch() is already running")
        items = list(items)
        if self.nprocesses < 1:
            return defer.fail(
                ValueError(f"nprocesses must be at least 1, got {self.nprocesses}")
            )
        if len(items) < self.nprocesses:
            return defer.fail(InsufficientWorkError(len(items), self.nprocesses))
        if len({item.unit_id for item in items}) != len(items):
            return defer.fail(ValueError("Work item ids must be unique"))

        self.running = True
        self._queue = deque(items)
        self._on_response = on_response
        self._expected = len(items)
        self._received = 0
        self._finished = Deferred()
        finished = self._finished

        logger.info(
            "Starting %(n)d workers for %(items)d items: %(command)s",
            {"n": self.nprocesses, "items": len(items), "command": " ".join(self.args)},
        )
        self.slots = [self._spawn(index) for index in range(self.nprocesses)]
        for slot in self.slots:
            if not self.running:
                break
            slot.assign(self._queue.popleft())
        return finished

    def _spawn(self, index: int) -> WorkerSlot:
        from twisted.internet import reactor

        slot = WorkerSlot(self, index)
        reactor.spawnProcess(
            slot, self.args[0], self.args, env=os.environ.copy(), path=self.cwd
        )
        return slot

    def line_received(self, slot: WorkerSlot, line: bytes) -> None:
        if not self.running:
            return
        try:
            response = decode_response(line, self.success_status)
        except ResponseDecodeError:
            self._abort(Failure())
            return
        if slot.current is None or response.unit_id != slot.current.unit_id:
            expected = slot.current.unit_id if slot.current else None
            self._abort(
                Failure(
                    ResponseDecodeError(
                        f"worker {slot.index} answered for {response.unit_id!r}"
                        f" while assigned {expected!r}",
                        line,
                    )
                )
            )
            return

        slot.current = None
        self._received += 1
        assert self._on_response is not None
        try:
            self._on_response(response)
        except Exception:
            self._abort(Failure())
            return

        if self._queue:
            slot.assign(self._queue.popleft())
        else:
            slot.retire()
        self._maybe_finish()

    def slot_ended(self, slot: WorkerSlot, status: Failure) -> None:
        if not self.running:
            return
        if not slot.retired:
            value = status.value
            error = WorkerCrashed(
                slot.index,
                slot.pid,
                getattr(value, "exitCode", None),
                getattr(value, "signal", None),
                slot.current.unit_id if slot.current else None,
            )
            self._abort(Failure(error))
            return
        logger.debug(
            "Worker %(index)d (pid %(pid)s) exited", {"index": slot.index, "pid": slot.pid}
        )
        self._maybe_finish()

    def _maybe_finish(self) -> None:
        if self._received < self._expected:
            return
        if not all(slot.ended for slot in self.slots):
            return
        logger.info(
            "All %(count)d items tested by %(n)d workers",
            {"count": self._received, "n": len(self.slots)},
        )
        self._finish(None)

    def _abort(self, failure: Failure) -> None:
        logger.error(
            "Aborting test run: %(error)s", {"error": failure.getErrorMessage()}
        )
        for slot in self.slots:
            slot.kill()
        self._finish(failure)

    def _finish(self, result: Failure | None) -> None:
        self.running = False
        self._queue.clear()
        finished, self._finished = self._finished, None
        assert finished is not None
        if isinstance(result, Failure):
            finished.errback(result)
        else:
            finished.callback(None)
