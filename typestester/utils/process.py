"""Running external commands under the Twisted reactor"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from twisted.internet.defer import Deferred
from twisted.internet.error import ProcessTerminated
from twisted.internet.protocol import ProcessProtocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from twisted.python.failure import Failure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    args: tuple[str, ...]
    exitcode: int | None
    signal: int | None
    out: str
    err: str
    cwd: str | None = None

    @property
    def ok(self) -> bool:
        return self.exitcode == 0 and self.signal is None


class CommandProcessProtocol(ProcessProtocol):
    """Collects the output of a child process and fires ``deferred`` with
    itself once the process has ended."""

    def __init__(self) -> None:
        self.deferred: Deferred[CommandProcessProtocol] = Deferred()
        self.out: bytes = b""
        self.err: bytes = b""
        self.exitcode: int | None = None
        self.signal: int | None = None

    def outReceived(self, data: bytes) -> None:
        self.out += data

    def errReceived(self, data: bytes) -> None:
        self.err += data

    def processEnded(self, status: Failure) -> None:
        # ProcessDone carries exitCode 0, ProcessTerminated a non-zero code or
        # the signal that killed the process.
        value = cast(ProcessTerminated, status.value)
        self.exitcode = value.exitCode
        self.signal = getattr(value, "signal", None)
        self.deferred.callback(self)


def run_command(
    args: Sequence[str],
    cwd: str | os.PathLike[str] | None = None,
) -> Deferred[ProcessResult]:
    """Run ``args`` as a child process and return a Deferred that fires with
    its :class:`ProcessResult` once it exits.

    A non-zero exit status is not an error here; callers decide what a
    failure means for them. The child inherits the current environment.
    """
    from twisted.internet import reactor

    args = tuple(str(a) for a in args)
    path = str(cwd) if cwd is not None else None
    logger.debug("Running %(command)r in %(cwd)s", {"command": " ".join(args), "cwd": path or "."})
    pp = CommandProcessProtocol()
    reactor.spawnProcess(pp, args[0], args, env=os.environ.copy(), path=path)
    return pp.deferred.addCallback(_to_result, args, path)


def _to_result(
    pp: CommandProcessProtocol, args: tuple[str, ...], cwd: str | None
) -> ProcessResult:
    return ProcessResult(
        args=args,
        exitcode=pp.exitcode,
        signal=pp.signal,
        out=pp.out.decode("utf-8", errors="replace"),
        err=pp.err.decode("utf-8", errors="replace"),
        cwd=cwd,
    )
