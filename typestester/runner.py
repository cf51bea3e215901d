"""
The test run: select packages, install their dependencies, then test them on
a pool of persistent workers.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from twisted.internet.defer import inlineCallbacks

from typestester import report
from typestester.exceptions import UsageError
from typestester.installer import Installer
from typestester.packages import AllPackages, select_packages
from typestester.results import FailureAggregator, RunOutcome
from typestester.workerpool import WorkerPool, WorkItem

if TYPE_CHECKING:
    from collections.abc import Generator

    from rich.console import Console
    from twisted.internet.defer import Deferred

    from typestester.packages import Affected, Selection
    from typestester.results import Response
    from typestester.settings import BaseSettings

logger = logging.getLogger(__name__)


def get_nprocesses(settings: BaseSettings) -> int:
    """Return the PROCESSES setting, or the number of CPUs when it is unset.

    Raises :exc:`~typestester.exceptions.UsageError` unless it is a positive
    integer.
    """
    value = settings.get("PROCESSES")
    if value in (None, ""):
        return os.cpu_count() or 1
    try:
        nprocesses = settings.getint("PROCESSES")
    except (TypeError, ValueError):
        nprocesses = 0
    if nprocesses < 1:
        raise UsageError(
            f"PROCESSES must be a positive integer, got {value!r}", print_help=False
        )
    return nprocesses


class SuiteRunner:
    """Runs the type tests of the packages in a checkout.

    Fatal errors (a failed install, a crashed worker, ...) make the Deferred
    returned by :meth:`run` errback. Failing packages do not: they end up in
    the :class:`~typestester.results.RunOutcome` it fires with.
    """

    def __init__(
        self,
        settings: BaseSettings,
        out: Console | None = None,
        err: Console | None = None,
    ):
        self.settings = settings
        self.out = out
        self.err = err

    @property
    def types_path(self) -> Path:
        return Path(self.settings["CHECKOUT_PATH"], self.settings["TYPES_DIR"])

    @property
    def nprocesses(self) -> int:
        return get_nprocesses(self.settings)

    @inlineCallbacks
    def select(
        self, selection: Selection
    ) -> Generator[Deferred[Any], Any, tuple[AllPackages, Affected]]:
        all_packages = AllPackages.read(self.types_path)
        affected = yield select_packages(all_packages, selection, self.settings)
        changed = affected.changed_packages
        dependent = affected.dependent_packages
        logger.info(
            "Testing %(count)d changed packages: %(packages)s",
            {"count": len(changed), "packages": ",".join(p.desc for p in changed)},
        )
        logger.info(
            "Testing %(count)d dependent packages: %(packages)s",
            {"count": len(dependent), "packages": ",".join(p.desc for p in dependent)},
        )
        return all_packages, affected

    def install(self, all_packages: AllPackages, affected: Affected) -> Deferred[None]:
        installer = Installer(self.settings, self.types_path)
        return installer.install_all(
            all_packages.all_dependencies(affected.all), self.nprocesses
        )

    @inlineCallbacks
    def run(self, selection: Selection) -> Generator[Deferred[Any], Any, RunOutcome]:
        all_packages, affected = yield self.select(selection)
        logger.info("Running with %(n)d processes.", {"n": self.nprocesses})
        yield self.install(all_packages, affected)
        logger.info("Testing...")
        outcome = yield self.run_tests(affected)
        return outcome

    @inlineCallbacks
    def run_tests(self, affected: Affected) -> Generator[Deferred[Any], Any, RunOutcome]:
        changed = {p.subdirectory_path for p in affected.changed_packages}
        items = [
            WorkItem(p.subdirectory_path, only_test_ts_next=p.subdirectory_path not in changed)
            for p in affected.all
        ]
        pool = WorkerPool(
            self.settings.getlist("WORKER_COMMAND"),
            self.nprocesses,
            self.types_path,
            extra_args=self.settings.getlist("WORKER_LISTEN_ARGS"),
            success_status=self.settings["WORKER_SUCCESS_STATUS"],
        )
        aggregator = FailureAggregator()

        def on_response(response: Response) -> None:
            aggregator.record(response)
            report.print_response(response, self.out, self.err)

        yield pool.dispatch(items, on_response)
        outcome = aggregator.outcome()
        report.print_failures(outcome.failures, self.err)
        return outcome
