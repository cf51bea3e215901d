"""
typestester core exceptions

Fatal errors abort a whole run and subclass :class:`FatalError`. A failing
test unit is not an exception: it is reported as a
:class:`~typestester.results.Failed` result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence


class NotConfigured(Exception):
    """Indicates a missing configuration situation"""


# Commands


class UsageError(Exception):
    """To indicate a command-line usage error"""

    def __init__(self, *a: Any, **kw: Any):
        self.print_help = kw.pop("print_help", True)
        super().__init__(*a, **kw)


# Run


class FatalError(Exception):
    """Base class for errors that abort the whole run"""


class CommandError(FatalError):
    """An external command exited with a non-zero status or was killed"""

    def __init__(
        self,
        args: Sequence[str],
        exitcode: int | None,
        out: str = "",
        err: str = "",
        cwd: str | None = None,
    ):
        self.command = list(args)
        self.exitcode = exitcode
        self.out = out
        self.err = err
        self.cwd = cwd
        where = f" in {cwd}" if cwd else ""
        message = f"Command {' '.join(self.command)!r}{where} failed (exit code {exitcode})"
        for label, output in (("stdout", out), ("stderr", err)):
            if output.strip():
                message += f"\n>>> {label} <<<\n{output.rstrip()}"
        super().__init__(message)


class InstallError(CommandError):
    """A dependency install operation failed"""


class InsufficientWorkError(FatalError, ValueError):
    """More worker processes were requested than there are work items"""

    def __init__(self, items: int, nprocesses: int):
        self.items = items
        self.nprocesses = nprocesses
        super().__init__(
            f"Cannot run {nprocesses} worker processes for only {items} work items"
        )


class WorkerCrashed(FatalError):
    """A worker process ended while it still had work to do"""

    def __init__(
        self,
        index: int,
        pid: int | None,
        exitcode: int | None,
        signal: int | None = None,
        unit_id: str | None = None,
    ):
        self.index = index
        self.pid = pid
        self.exitcode = exitcode
        self.signal = signal
        self.unit_id = unit_id
        status = f"signal {signal}" if signal else f"exit code {exitcode}"
        message = f"Worker {index} (pid {pid}) died with {status}"
        if unit_id is not None:
            message += f" while testing {unit_id}"
        super().__init__(message)


class ResponseDecodeError(FatalError):
    """A worker sent a message that is not a valid response"""

    def __init__(self, reason: str, payload: bytes | str = b""):
        self.reason = reason
        self.payload = payload
        super().__init__(f"Malformed worker response ({reason}): {payload!r}")
