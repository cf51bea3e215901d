from __future__ import annotations

from typing import TYPE_CHECKING

from typestester import report
from typestester.commands import BaseSelectionCommand
from typestester.runner import SuiteRunner

if TYPE_CHECKING:
    import argparse


class Command(BaseSelectionCommand):
    def short_desc(self) -> str:
        return "Install dependencies and test the selected packages"

    def long_desc(self) -> str:
        return (
            "Install the dependencies of the selected packages, then test them on"
            " a pool of persistent worker processes. Exits with 1 when a package"
            " fails and with 3 when the run is aborted."
        )

    def run(self, args: list[str], opts: argparse.Namespace) -> None:
        assert self.settings is not None
        runner = SuiteRunner(self.settings)
        outcome = self.run_to_outcome(runner.run, opts.selection)
        report.print_summary(outcome)
        self.exitcode = outcome.exitcode
