"""
Helper functions for dealing with Twisted deferreds
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from twisted.internet.defer import Deferred, DeferredList, maybeDeferred
from twisted.internet.task import Cooperator

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from twisted.python.failure import Failure

    # typing.Concatenate and typing.ParamSpec require Python 3.10
    from typing_extensions import Concatenate, ParamSpec

    _P = ParamSpec("_P")


_T = TypeVar("_T")


def parallel_failfast(
    iterable: Iterable[_T],
    count: int,
    callable: Callable[Concatenate[_T, _P], Any],
    *args: _P.args,
    **named: _P.kwargs,
) -> Deferred[None]:
    """Execute a callable over the objects in the given iterable, in parallel,
    using no more than ``count`` concurrent calls.

    ``count`` tasks share one work iterator and each one waits for the
    Deferred (if any) returned by its current call before pulling the next
    element, so at most ``count`` calls are in flight at any time.

    The returned Deferred fires with ``None`` once every element has been
    processed. The first call that fails makes it errback immediately with
    that failure, and no further calls are started. Calls already in flight
    are left to finish on their own.

    Based on: https://jcalderone.livejournal.com/24285.html
    """
    if count < 1:
        raise ValueError(f"count must be a positive integer, got {count!r}")

    failures: list[Failure] = []

    def _record(failure: Failure) -> Failure:
        failures.append(failure)
        return failure

    def _work() -> Iterator[Deferred[Any]]:
        for elem in iterable:
            if failures:
                return
            yield maybeDeferred(callable, elem, *args, **named).addErrback(_record)

    coop = Cooperator()
    work = _work()
    dl: Deferred[list[tuple[bool, Any]]] = DeferredList(
        [coop.coiterate(work) for _ in range(count)],
        fireOnOneErrback=True,
        consumeErrors=True,
    )

    def eb(failure: Failure) -> Failure:
        return failure.value.subFailure

    return dl.addCallbacks(lambda _: None, eb)
