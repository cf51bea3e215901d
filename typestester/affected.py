"""
Default implementation of the "affected" package selection.

A package is changed when a file below its directory differs from
``AFFECTED_BASE_REF``; its dependents are tested too. Point the
``AFFECTED_PACKAGES_FUNCTION`` setting elsewhere to use a different policy.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

from twisted.internet.defer import inlineCallbacks

from typestester.exceptions import CommandError
from typestester.packages import Affected
from typestester.utils.process import run_command

if TYPE_CHECKING:
    from collections.abc import Generator, Iterable

    from twisted.internet.defer import Deferred

    from typestester.packages import AllPackages, PackageRef
    from typestester.settings import BaseSettings

logger = logging.getLogger(__name__)


def changed_packages_from_paths(
    all_packages: AllPackages, paths: Iterable[str], types_dir: str
) -> list[PackageRef]:
    """Map paths relative to the checkout root to the packages owning them."""
    changed: dict[str, PackageRef] = {}
    for path in paths:
        parts = PurePosixPath(path.strip()).parts
        if len(parts) < 3 or parts[0] != types_dir:
            continue
        package = None
        if len(parts) >= 4:
            package = all_packages.get_by_path(f"{parts[1]}/{parts[2]}")
        if package is None:
            package = all_packages.get_by_path(parts[1])
        if package is not None:
            changed.setdefault(package.subdirectory_path, package)
    return list(changed.values())


@inlineCallbacks
def get_affected_packages(
    all_packages: AllPackages, settings: BaseSettings
) -> Generator[Deferred[Any], Any, Affected]:
    checkout = Path(settings["CHECKOUT_PATH"])
    base_ref = settings["AFFECTED_BASE_REF"]
    result = yield run_command(
        ["git", "diff", "--name-only", base_ref], cwd=checkout
    )
    if not result.ok:
        raise CommandError(result.args, result.exitcode, result.out, result.err, result.cwd)
    changed = changed_packages_from_paths(
        all_packages, result.out.splitlines(), settings["TYPES_DIR"]
    )
    dependent = all_packages.dependents_of(changed)
    logger.debug(
        "%(changed)d packages changed since %(ref)s, %(dependent)d depend on them",
        {"changed": len(changed), "ref": base_ref, "dependent": len(dependent)},
    )
    return Affected(changed, dependent)
