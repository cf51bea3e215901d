import argparse

from rich.table import Table

import typestester
from typestester.commands import TesterCommand
from typestester.utils.console import get_console
from typestester.utils.versions import get_versions


class Command(TesterCommand):
    default_settings = {"LOG_ENABLED": False}

    def syntax(self) -> str:
        return "[-v]"

    def short_desc(self) -> str:
        return "Print typestester version"

    def add_options(self, parser: argparse.ArgumentParser) -> None:
        super().add_options(parser)
        parser.add_argument(
            "--verbose",
            "-v",
            dest="verbose",
            action="store_true",
            help="also display twisted/rich/python/platform info",
        )

    def run(self, args: list[str], opts: argparse.Namespace) -> None:
        console = get_console(use_stderr=False)

        if opts.verbose:
            table = Table(title="Software Versions", show_header=True, header_style="bold magenta")
            table.add_column("Package", style="cyan", no_wrap=True)
            table.add_column("Version", style="green")
            for name, version in get_versions():
                table.add_row(name, str(version))
            console.print(table)
        else:
            console.print(
                f"[typestester]typestester[/typestester] {typestester.__version__}",
                highlight=False,
            )
