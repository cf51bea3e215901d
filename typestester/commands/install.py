from __future__ import annotations

from typing import TYPE_CHECKING, Any

from twisted.internet.defer import inlineCallbacks

from typestester.commands import BaseSelectionCommand
from typestester.runner import SuiteRunner

if TYPE_CHECKING:
    import argparse
    from collections.abc import Generator

    from twisted.internet.defer import Deferred

    from typestester.packages import Selection


class Command(BaseSelectionCommand):
    def short_desc(self) -> str:
        return "Install the dependencies of the selected packages"

    def run(self, args: list[str], opts: argparse.Namespace) -> None:
        assert self.settings is not None
        runner = SuiteRunner(self.settings)
        outcome = self.run_to_outcome(self._install, runner, opts.selection)
        self.exitcode = outcome.exitcode

    @inlineCallbacks
    def _install(
        self, runner: SuiteRunner, selection: Selection
    ) -> Generator[Deferred[Any], Any, None]:
        all_packages, affected = yield runner.select(selection)
        yield runner.install(all_packages, affected)
