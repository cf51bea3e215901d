import argparse
import json

from typestester.commands import TesterCommand
from typestester.utils.console import get_console


class Command(TesterCommand):
    default_settings = {"LOG_ENABLED": False}

    def syntax(self) -> str:
        return "[options]"

    def short_desc(self) -> str:
        return "Get settings values"

    def add_options(self, parser: argparse.ArgumentParser) -> None:
        super().add_options(parser)
        parser.add_argument(
            "--get", dest="get", metavar="SETTING", help="print raw setting value"
        )
        parser.add_argument(
            "--getbool",
            dest="getbool",
            metavar="SETTING",
            help="print setting value, interpreted as a boolean",
        )
        parser.add_argument(
            "--getint",
            dest="getint",
            metavar="SETTING",
            help="print setting value, interpreted as an integer",
        )
        parser.add_argument(
            "--getlist",
            dest="getlist",
            metavar="SETTING",
            help="print setting value, interpreted as a list",
        )

    def run(self, args: list[str], opts: argparse.Namespace) -> None:
        assert self.settings is not None
        settings = self.settings
        console = get_console(use_stderr=False)

        if opts.get:
            s = settings.get(opts.get)
            if isinstance(s, (list, tuple, dict)):
                console.print(json.dumps(s), markup=False, highlight=False)
            else:
                console.print(str(s), markup=False, highlight=False)
        elif opts.getbool:
            console.print(str(settings.getbool(opts.getbool)), highlight=False)
        elif opts.getint:
            console.print(str(settings.getint(opts.getint)), highlight=False)
        elif opts.getlist:
            console.print(
                json.dumps(settings.getlist(opts.getlist)), markup=False, highlight=False
            )
