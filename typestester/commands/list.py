from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.markup import escape
from twisted.internet.defer import inlineCallbacks

from typestester.commands import BaseSelectionCommand
from typestester.runner import SuiteRunner
from typestester.utils.console import get_console

if TYPE_CHECKING:
    import argparse
    from collections.abc import Generator

    from twisted.internet.defer import Deferred

    from typestester.packages import Selection


class Command(BaseSelectionCommand):
    default_settings = {"LOG_LEVEL": "WARNING"}

    def short_desc(self) -> str:
        return "List the selected packages"

    def run(self, args: list[str], opts: argparse.Namespace) -> None:
        assert self.settings is not None
        runner = SuiteRunner(self.settings)
        outcome = self.run_to_outcome(self._list, runner, opts.selection)
        self.exitcode = outcome.exitcode

    @inlineCallbacks
    def _list(
        self, runner: SuiteRunner, selection: Selection
    ) -> Generator[Deferred[Any], Any, None]:
        _, affected = yield runner.select(selection)
        console = get_console(use_stderr=False)
        for package in affected.changed_packages:
            console.print(f"[unit]{escape(package.subdirectory_path)}[/unit]")
        for package in affected.dependent_packages:
            console.print(
                f"[unit]{escape(package.subdirectory_path)}[/unit] [info](dependent)[/info]"
            )
