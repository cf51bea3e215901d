"""
Worker responses and the failure aggregator.

Workers answer every request with one JSON line::

    {"path": "<unit id>", "status": "OK"}

where any status other than the success sentinel is the failure message.
:func:`decode_response` turns that line into a :class:`Response` holding a
:class:`Passed` or :class:`Failed` result, and :class:`FailureAggregator`
folds the responses of a run into its :class:`RunOutcome`.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from typestester.exceptions import ResponseDecodeError

if TYPE_CHECKING:
    from twisted.python.failure import Failure

SUCCESS_STATUS = "OK"


@dataclass(frozen=True)
class Passed:
    pass


@dataclass(frozen=True)
class Failed:
    message: str


UnitResult = Union[Passed, Failed]


@dataclass(frozen=True)
class Response:
    unit_id: str
    result: UnitResult

    @property
    def passed(self) -> bool:
        return isinstance(self.result, Passed)


@dataclass(frozen=True)
class FailureRecord:
    unit_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.unit_id}: {self.message}"


def decode_response(
    line: bytes | str, success_status: str = SUCCESS_STATUS
) -> Response:
    """Decode one response line sent by a worker.

    Raises :exc:`~typestester.exceptions.ResponseDecodeError` if the line is
    not a JSON object with a string ``path`` and a string ``status``.
    """
    try:
        message = json.loads(line)
    except ValueError as e:
        raise ResponseDecodeError(f"invalid JSON: {e}", line) from e
    if not isinstance(message, dict):
        raise ResponseDecodeError("expected a JSON object", line)
    unit_id = message.get("path")
    status = message.get("status")
    if not isinstance(unit_id, str) or not unit_id:
        raise ResponseDecodeError("missing or invalid 'path'", line)
    if not isinstance(status, str):
        raise ResponseDecodeError("missing or invalid 'status'", line)
    if status == success_status:
        return Response(unit_id, Passed())
    return Response(unit_id, Failed(status))


class RunStatus(enum.Enum):
    PASSED = "passed"
    TESTS_FAILED = "tests failed"
    ERROR = "error"


EXITCODES = {
    RunStatus.PASSED: 0,
    RunStatus.TESTS_FAILED: 1,
    RunStatus.ERROR: 3,
}


@dataclass
class RunOutcome:
    """The terminal verdict of a run.

    ``ERROR`` means the run was aborted by a fatal error (install phase,
    worker crash, ...) and is kept apart from ``TESTS_FAILED`` so that the
    exit code tells the two apart.
    """

    status: RunStatus
    failures: list[FailureRecord] = field(default_factory=list)
    passed: int = 0
    error: Failure | None = None

    @classmethod
    def from_error(cls, failure: Failure) -> RunOutcome:
        return cls(RunStatus.ERROR, error=failure)

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.PASSED

    @property
    def exitcode(self) -> int:
        return EXITCODES[self.status]


class FailureAggregator:
    """Collects the failing responses of a run, in arrival order."""

    def __init__(self) -> None:
        self.failures: list[FailureRecord] = []
        self.passed: int = 0

    def __len__(self) -> int:
        return self.passed + len(self.failures)

    def record(self, response: Response) -> FailureRecord | None:
        if isinstance(response.result, Failed):
            record = FailureRecord(response.unit_id, response.result.message)
            self.failures.append(record)
            return record
        self.passed += 1
        return None

    @property
    def failed_units(self) -> list[str]:
        return [f.unit_id for f in self.failures]

    def outcome(self) -> RunOutcome:
        status = RunStatus.TESTS_FAILED if self.failures else RunStatus.PASSED
        return RunOutcome(status, failures=list(self.failures), passed=self.passed)
