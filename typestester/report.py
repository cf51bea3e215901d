"""User-facing output of a test run, printed through the themed consoles."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape

from typestester.results import Failed
from typestester.utils.console import get_console

if TYPE_CHECKING:
    from rich.console import Console

    from typestester.results import FailureRecord, Response, RunOutcome


def print_response(
    response: Response, out: Console | None = None, err: Console | None = None
) -> None:
    """Print the one line (or block, for failures) that tells a unit is done."""
    if out is None:
        out = get_console(use_stderr=False)
    if err is None:
        err = get_console()
    result = response.result
    if isinstance(result, Failed):
        err.print(f"[unit]{escape(response.unit_id)}[/unit] [error]failing:[/error]")
        err.print(escape(result.message), highlight=False, soft_wrap=True)
    else:
        out.print(f"[unit]{escape(response.unit_id)}[/unit] [success]OK[/success]")


def print_failures(failures: list[FailureRecord], err: Console | None = None) -> None:
    if not failures:
        return
    if err is None:
        err = get_console()
    err.print()
    err.print("[error]=== ERRORS ===[/error]")
    for failure in failures:
        err.print()
        err.print(f"[error]Error in[/error] [unit]{escape(failure.unit_id)}[/unit]")
        err.print(escape(failure.message), highlight=False, soft_wrap=True)
    err.print()
    err.print(
        "The following packages had errors: "
        + ", ".join(escape(f.unit_id) for f in failures),
        highlight=False,
        soft_wrap=True,
    )


def print_summary(outcome: RunOutcome, err: Console | None = None) -> None:
    if err is None:
        err = get_console()
    total = outcome.passed + len(outcome.failures)
    if outcome.ok:
        err.print(f"[success]All {total} packages passed.[/success]")
    elif outcome.failures:
        err.print(
            f"[error]{len(outcome.failures)} of {total} packages failed.[/error]"
        )
