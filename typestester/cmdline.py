from __future__ import annotations

import argparse
import cProfile
import inspect
import sys
from importlib.metadata import entry_points
from typing import TYPE_CHECKING

import typestester
from typestester.commands import BaseSelectionCommand, TesterCommand, TesterHelpFormatter
from typestester.exceptions import UsageError
from typestester.utils.log import configure_logging
from typestester.utils.misc import walk_modules
from typestester.utils.project import get_project_settings
from typestester.utils.python import garbage_collect

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    # typing.ParamSpec requires Python 3.10
    from typing_extensions import ParamSpec

    from typestester.settings import BaseSettings, Settings

    _P = ParamSpec("_P")


def _iter_command_classes(module_name: str) -> Iterable[type[TesterCommand]]:
    for module in walk_modules(module_name):
        for obj in vars(module).values():
            if (
                inspect.isclass(obj)
                and issubclass(obj, TesterCommand)
                and obj.__module__ == module.__name__
                and obj not in (TesterCommand, BaseSelectionCommand)
            ):
                yield obj


def _get_commands_from_module(module: str) -> dict[str, TesterCommand]:
    d: dict[str, TesterCommand] = {}
    for cmd in _iter_command_classes(module):
        cmdname = cmd.__module__.split(".")[-1]
        d[cmdname] = cmd()
    return d


def _get_commands_from_entry_points(
    group: str = "typestester.commands",
) -> dict[str, TesterCommand]:
    cmds: dict[str, TesterCommand] = {}
    if sys.version_info >= (3, 10):
        eps = entry_points(group=group)
    else:
        eps = entry_points().get(group, ())
    for entry_point in eps:
        obj = entry_point.load()
        if inspect.isclass(obj):
            cmds[entry_point.name] = obj()
        else:
            raise Exception(f"Invalid entry point {entry_point.name}")
    return cmds


def _get_commands_dict(settings: BaseSettings) -> dict[str, TesterCommand]:
    cmds = _get_commands_from_module("typestester.commands")
    cmds.update(_get_commands_from_entry_points())
    cmds_module = settings["COMMANDS_MODULE"]
    if cmds_module:
        cmds.update(_get_commands_from_module(cmds_module))
    return cmds


def _pop_command_name(argv: list[str]) -> str | None:
    for i, arg in enumerate(argv[1:], start=1):
        if not arg.startswith("-"):
            del argv[i]
            return arg
    return None


def _print_header() -> None:
    print(f"typestester {typestester.__version__}\n")


def _print_commands(settings: BaseSettings) -> None:
    _print_header()
    print("Usage:")
    print("  typestester <command> [options] [args]\n")
    print("Available commands:")
    cmds = _get_commands_dict(settings)
    for cmdname, cmdclass in sorted(cmds.items()):
        print(f"  {cmdname:<13} {cmdclass.short_desc()}")
    print()
    print('Use "typestester <command> -h" to see more info about a command')


def _print_unknown_command(cmdname: str) -> None:
    _print_header()
    print(f"Unknown command: {cmdname}\n")
    print('Use "typestester" to see available commands')


def _run_print_help(
    parser: argparse.ArgumentParser,
    func: Callable[_P, None],
    *a: _P.args,
    **kw: _P.kwargs,
) -> None:
    try:
        func(*a, **kw)
    except UsageError as e:
        if e.print_help:
            parser.print_help(sys.stderr)
        if str(e):
            parser.error(str(e))
        sys.exit(2)


def execute(argv: list[str] | None = None, settings: Settings | None = None) -> None:
    if argv is None:
        argv = sys.argv

    if settings is None:
        settings = get_project_settings()

    cmds = _get_commands_dict(settings)
    cmdname = _pop_command_name(argv)
    if not cmdname:
        _print_commands(settings)
        sys.exit(0)
    elif cmdname not in cmds:
        _print_unknown_command(cmdname)
        sys.exit(2)

    cmd = cmds[cmdname]
    parser = argparse.ArgumentParser(
        formatter_class=TesterHelpFormatter,
        usage=f"typestester {cmdname} {cmd.syntax()}",
        conflict_handler="resolve",
        description=cmd.long_desc(),
    )
    settings.setdict(cmd.default_settings, priority="command")
    cmd.settings = settings
    cmd.add_options(parser)
    opts, args = parser.parse_known_args(args=argv[1:])
    _run_print_help(parser, cmd.process_options, args, opts)

    configure_logging(settings)
    _run_print_help(parser, _run_command, cmd, args, opts)
    sys.exit(cmd.exitcode)


def _run_command(cmd: TesterCommand, args: list[str], opts: argparse.Namespace) -> None:
    if opts.profile:
        _run_command_profiled(cmd, args, opts)
    else:
        cmd.run(args, opts)


def _run_command_profiled(
    cmd: TesterCommand, args: list[str], opts: argparse.Namespace
) -> None:
    sys.stderr.write(f"typestester: writing cProfile stats to {opts.profile!r}\n")
    loc = locals()
    p = cProfile.Profile()
    p.runctx("cmd.run(args, opts)", globals(), loc)
    p.dump_stats(opts.profile)


if __name__ == "__main__":
    try:
        execute()
    finally:
        # Twisted prints errors in DebugInfo.__del__, but PyPy does not run gc.collect() on exit:
        # http://doc.pypy.org/en/latest/cpython_differences.html
        # ?highlight=gc.collect#differences-related-to-garbage-collection-strategies
        garbage_collect()
