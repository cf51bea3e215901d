from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from twisted.internet.defer import Deferred, maybeDeferred
from twisted.python.failure import Failure

if TYPE_CHECKING:
    from collections.abc import Callable

    # typing.ParamSpec requires Python 3.10
    from typing_extensions import ParamSpec

    _P = ParamSpec("_P")


_T = TypeVar("_T")


def run_until_complete(
    f: Callable[_P, Deferred[_T] | _T], *args: _P.args, **kw: _P.kwargs
) -> _T:
    """Start the reactor, call ``f`` once it is running and stop it when the
    Deferred returned by ``f`` fires.

    Returns the result of that Deferred, or raises its exception. This is a
    blocking call and, like ``reactor.run()``, it can only be made once per
    process.
    """
    from twisted.internet import reactor

    outcome: list[Any] = []

    def _start() -> None:
        d = maybeDeferred(f, *args, **kw)
        d.addBoth(outcome.append)
        d.addBoth(lambda _: reactor.stop())

    reactor.callWhenRunning(_start)
    reactor.run()  # blocking call

    if not outcome:
        raise RuntimeError("The reactor stopped before the run completed")
    result = outcome[0]
    if isinstance(result, Failure):
        result.raiseException()
    return result
