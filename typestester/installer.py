"""
The dependency install phase.

Every package that ships an install manifest gets its own install command,
at most ``concurrency`` of them at a time. The first failing install aborts
the phase: the tests of everything downstream would be meaningless. Once all
installs succeeded, the worker command runs once more to finalize the
installation for all packages.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from twisted.internet.defer import inlineCallbacks

from typestester.exceptions import InstallError
from typestester.utils.defer import parallel_failfast
from typestester.utils.process import run_command

if TYPE_CHECKING:
    from collections.abc import Generator, Iterable

    from twisted.internet.defer import Deferred

    from typestester.packages import PackageRef
    from typestester.settings import BaseSettings

logger = logging.getLogger(__name__)


class Installer:
    def __init__(self, settings: BaseSettings, types_path: str | Path):
        self.settings = settings
        self.types_path = Path(types_path)
        self.manifest: str = settings["INSTALL_MANIFEST"]
        self.install_command: list[str] = settings.getlist("INSTALL_COMMAND")
        self.finalize_command: list[str] = [
            *settings.getlist("WORKER_COMMAND"),
            *settings.getlist("INSTALL_FINALIZE_ARGS"),
        ]

    def has_manifest(self, directory: str | Path) -> bool:
        return Path(directory, self.manifest).is_file()

    @inlineCallbacks
    def run_install(self, directory: str | Path) -> Generator[Deferred[Any], Any, str]:
        """Run the install command in ``directory`` and return its output.

        Raises :exc:`~typestester.exceptions.InstallError` if it fails.
        """
        cwd = str(directory)
        logger.info(
            "  %(cwd)s: %(command)s",
            {"cwd": cwd, "command": " ".join(self.install_command)},
        )
        result = yield run_command(self.install_command, cwd=cwd)
        if not result.ok:
            raise InstallError(
                result.args, result.exitcode or result.signal, result.out, result.err, cwd
            )
        if result.out.strip():
            # These run in parallel, so say where the output comes from.
            logger.info(
                " from %(cwd)s: %(stdout)s", {"cwd": cwd, "stdout": result.out.rstrip()}
            )
        return result.out

    def install_package(self, package: PackageRef) -> Deferred[str] | None:
        directory = package.directory_path(self.types_path)
        if not self.has_manifest(directory):
            return None
        return self.run_install(directory)

    @inlineCallbacks
    def finalize_install(self) -> Generator[Deferred[Any], Any, None]:
        logger.info("Running: %(command)s", {"command": " ".join(self.finalize_command)})
        result = yield run_command(self.finalize_command)
        if result.out.strip():
            logger.info(result.out.rstrip())
        if result.err.strip():
            logger.error(result.err.rstrip())
        if not result.ok:
            raise InstallError(
                result.args, result.exitcode or result.signal, result.out, result.err
            )

    @inlineCallbacks
    def install_all(
        self, packages: Iterable[PackageRef], concurrency: int
    ) -> Generator[Deferred[Any], Any, None]:
        """Install the dependencies of ``packages``, ``concurrency`` at a
        time, then finalize."""
        logger.info("Installing dependencies...")
        yield parallel_failfast(packages, concurrency, self.install_package)
        yield self.finalize_install()
