"""
Base class for typestester commands
"""

from __future__ import annotations

import argparse
import builtins
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

from twisted.python import failure
from twisted.python.failure import Failure

from typestester.exceptions import UsageError
from typestester.packages import parse_selection
from typestester.results import RunOutcome, RunStatus
from typestester.runner import get_nprocesses
from typestester.utils.conf import arglist_to_dict
from typestester.utils.log import failure_to_exc_info, log_reactor_info, log_tester_info
from typestester.utils.reactor import run_until_complete

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from twisted.internet.defer import Deferred

    from typestester.settings import Settings

logger = logging.getLogger(__name__)


class TesterCommand(ABC):
    """
    Base class for typestester commands.

    Subclasses live in a module named after the command and implement
    :meth:`short_desc` and :meth:`run`. ``default_settings`` override the
    global defaults for that command only, and ``exitcode`` is the status the
    process exits with once :meth:`run` returns.
    """

    # default settings to be used for this command instead of global defaults
    default_settings: dict[str, Any] = {}

    exitcode: int = 0

    def __init__(self) -> None:
        self.settings: Settings | None = None  # set in typestester.cmdline

    def syntax(self) -> str:
        """
        Command syntax (preferably one-line). Do not include command name.
        """
        return ""

    @abstractmethod
    def short_desc(self) -> str:
        """
        A short description of the command
        """
        return ""

    def long_desc(self) -> str:
        """A long description of the command. Return short description when not
        available. It cannot contain newlines since contents will be formatted
        by optparser which removes newlines and wraps text.
        """
        return self.short_desc()

    def help(self) -> str:
        """An extensive help for the command. It will be shown when using the
        "help" command. It can contain newlines since no post-formatting will
        be applied to its contents.
        """
        return self.long_desc()

    def add_options(self, parser: argparse.ArgumentParser) -> None:
        """
        Populate option parse with options available for this command
        """
        assert self.settings is not None
        group = parser.add_argument_group(title="Global Options")
        group.add_argument(
            "--logfile", metavar="FILE", help="log file. if omitted stderr will be used"
        )
        group.add_argument(
            "-L",
            "--loglevel",
            metavar="LEVEL",
            default=None,
            help=f"log level (default: {self.settings['LOG_LEVEL']})",
        )
        group.add_argument(
            "--nolog", action="store_true", help="disable logging completely"
        )
        group.add_argument(
            "--profile",
            metavar="FILE",
            default=None,
            help="write python cProfile stats to FILE",
        )
        group.add_argument("--pidfile", metavar="FILE", help="write process ID to FILE")
        group.add_argument(
            "-s",
            "--set",
            action="append",
            default=[],
            metavar="NAME=VALUE",
            help="set/override setting (may be repeated)",
        )
        group.add_argument("--pdb", action="store_true", help="enable pdb on failure")

    def process_options(self, args: list[str], opts: argparse.Namespace) -> None:
        assert self.settings is not None
        try:
            self.settings.setdict(arglist_to_dict(opts.set), priority="cmdline")
        except ValueError:
            raise UsageError("Invalid -s value, use -s NAME=VALUE", print_help=False)

        if opts.logfile:
            self.settings.set("LOG_ENABLED", True, priority="cmdline")
            self.settings.set("LOG_FILE", opts.logfile, priority="cmdline")

        if opts.loglevel:
            self.settings.set("LOG_ENABLED", True, priority="cmdline")
            self.settings.set("LOG_LEVEL", opts.loglevel, priority="cmdline")

        if opts.nolog:
            self.settings.set("LOG_ENABLED", False, priority="cmdline")

        if opts.pidfile:
            Path(opts.pidfile).write_text(
                str(os.getpid()) + os.linesep, encoding="utf-8"
            )

        if opts.pdb:
            failure.startDebugMode()

    @abstractmethod
    def run(self, args: list[str], opts: argparse.Namespace) -> None:
        """
        Entry point for running commands
        """
        raise NotImplementedError


class BaseSelectionCommand(TesterCommand):
    """
    The common ground of the commands that work on a selection of packages:
    ``all``, ``affected`` (the default) or a regular expression matched
    against package names.
    """

    def syntax(self) -> str:
        return "[options] [all|affected|PATTERN]"

    def add_options(self, parser: argparse.ArgumentParser) -> None:
        super().add_options(parser)
        parser.add_argument(
            "--all",
            dest="all",
            action="store_true",
            help="select every package (same as the 'all' argument)",
        )
        parser.add_argument(
            "-j",
            "--nProcesses",
            dest="nprocesses",
            metavar="N",
            default=None,
            help="number of concurrent installs and worker processes"
            " (default: number of CPUs)",
        )
        parser.add_argument(
            "--run-from-definitely-typed",
            "--runFromDefinitelyTyped",
            dest="run_from_definitely_typed",
            action="store_true",
            help="use the current directory as the checkout instead of CHECKOUT_PATH",
        )

    def process_options(self, args: list[str], opts: argparse.Namespace) -> None:
        super().process_options(args, opts)
        assert self.settings is not None
        if len(args) > 1:
            raise UsageError("Expected at most one selection argument")
        if opts.all and args and args[0] != "all":
            raise UsageError(f"--all cannot be combined with {args[0]!r}")
        opts.selection = parse_selection("all" if opts.all else (args[0] if args else None))

        if opts.nprocesses is not None:
            try:
                nprocesses = int(opts.nprocesses, 10)
            except ValueError:
                raise UsageError("Expected nProcesses to be a number.", print_help=False)
            if nprocesses < 1:
                raise UsageError("Expected nProcesses to be at least 1.", print_help=False)
            self.settings.set("PROCESSES", nprocesses, priority="cmdline")

        if opts.run_from_definitely_typed:
            self.settings.set("CHECKOUT_PATH", os.getcwd(), priority="cmdline")

        get_nprocesses(self.settings)

    def run_to_outcome(
        self, f: Callable[..., Deferred[Any]], *args: Any
    ) -> RunOutcome:
        """Run ``f`` under the reactor until the Deferred it returns fires.

        A usage error is raised as is. Any other error aborts the run and ends
        up in the returned outcome. When ``f`` does not return an outcome
        itself, it succeeded.
        """
        assert self.settings is not None
        log_tester_info(self.settings)
        log_reactor_info()
        try:
            result = run_until_complete(f, *args)
        except UsageError:
            raise
        except Exception:
            outcome = RunOutcome.from_error(Failure())
            assert outcome.error is not None
            logger.error(
                "Run aborted: %(error)s",
                {"error": outcome.error.getErrorMessage()},
                exc_info=failure_to_exc_info(outcome.error),
            )
            return outcome
        if isinstance(result, RunOutcome):
            return result
        return RunOutcome(RunStatus.PASSED)


class TesterHelpFormatter(argparse.HelpFormatter):
    """
    Help Formatter for typestester command line help messages.
    """

    def __init__(
        self,
        prog: str,
        indent_increment: int = 2,
        max_help_position: int = 24,
        width: int | None = None,
    ):
        super().__init__(
            prog,
            indent_increment=indent_increment,
            max_help_position=max_help_position,
            width=width,
        )

    def _join_parts(self, part_strings: Iterable[str]) -> str:
        # typestester.commands.list shadows builtins.list
        parts = self.format_part_strings(builtins.list(part_strings))
        return super()._join_parts(parts)

    def format_part_strings(self, part_strings: list[str]) -> list[str]:
        """
        Underline and title case command line help message headers.
        """
        if part_strings and part_strings[0].startswith("usage: "):
            part_strings[0] = "Usage\n=====\n  " + part_strings[0][len("usage: ") :]
        headings = [
            i for i in range(len(part_strings)) if part_strings[i].endswith(":\n")
        ]
        for index in headings[::-1]:
            char = "-" if "Global Options" in part_strings[index] else "="
            part_strings[index] = part_strings[index][:-2].title()
            underline = "".join(["\n", (char * len(part_strings[index])), "\n"])
            part_strings.insert(index + 1, underline)
        return part_strings
