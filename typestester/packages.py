"""
The package tree and package selection.

A package is a directory directly under the types directory, named after
the package. Older major versions live in ``v<N>`` subdirectories of the
package and are packages of their own.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Union

from twisted.internet import defer

from typestester.exceptions import NotConfigured, UsageError
from typestester.utils.misc import load_object

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from twisted.internet.defer import Deferred

    from typestester.settings import BaseSettings

logger = logging.getLogger(__name__)

Selection = Union[str, "re.Pattern[str]"]

_VERSION_DIR_RE = re.compile(r"^v\d+(\.\d+)?$")
_TYPES_SCOPE = "@types/"


@dataclass(frozen=True)
class PackageRef:
    name: str
    subdirectory_path: str
    dependencies: tuple[str, ...] = ()

    @property
    def desc(self) -> str:
        if self.subdirectory_path == self.name:
            return self.name
        return f"{self.name} {self.subdirectory_path.rsplit('/', 1)[-1]}"

    def directory_path(self, types_path: str | Path) -> Path:
        return Path(types_path, self.subdirectory_path)


@dataclass
class Affected:
    changed_packages: list[PackageRef] = field(default_factory=list)
    dependent_packages: list[PackageRef] = field(default_factory=list)

    @property
    def all(self) -> list[PackageRef]:
        return [*self.changed_packages, *self.dependent_packages]


def _read_dependencies(directory: Path) -> list[str]:
    manifest = directory / "package.json"
    if not manifest.is_file():
        return []
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except ValueError as e:
        logger.warning(
            "Ignoring invalid %(manifest)s: %(error)s",
            {"manifest": manifest, "error": e},
        )
        return []
    if not isinstance(data, dict):
        logger.warning(
            "Ignoring invalid %(manifest)s: expected an object, got %(type)s",
            {"manifest": manifest, "type": type(data).__name__},
        )
        return []
    names: list[str] = []
    for key in ("dependencies", "devDependencies"):
        dependencies = data.get(key)
        if not isinstance(dependencies, dict):
            continue
        for name in dependencies:
            if name.startswith(_TYPES_SCOPE):
                names.append(name[len(_TYPES_SCOPE) :])
    return names


class AllPackages:
    """Index of every package in a types directory."""

    def __init__(self, packages: Iterable[PackageRef]):
        self._packages: dict[str, PackageRef] = {}
        self._by_name: dict[str, PackageRef] = {}
        for package in packages:
            self._packages[package.subdirectory_path] = package
            # the latest version wins the bare name
            if package.subdirectory_path == package.name or package.name not in self._by_name:
                self._by_name[package.name] = package

    @classmethod
    def read(cls, types_path: str | Path) -> AllPackages:
        types_path = Path(types_path)
        if not types_path.is_dir():
            raise NotConfigured(f"Types directory not found: {types_path}")
        found: list[tuple[str, str, list[str]]] = []
        for directory in sorted(types_path.iterdir()):
            if not directory.is_dir() or directory.name.startswith("."):
                continue
            found.append((directory.name, directory.name, _read_dependencies(directory)))
            for subdirectory in sorted(directory.iterdir()):
                if subdirectory.is_dir() and _VERSION_DIR_RE.match(subdirectory.name):
                    found.append(
                        (
                            directory.name,
                            f"{directory.name}/{subdirectory.name}",
                            _read_dependencies(subdirectory),
                        )
                    )
        names = {name for name, _, _ in found}
        packages = [
            PackageRef(name, path, tuple(d for d in deps if d in names and d != name))
            for name, path, deps in found
        ]
        logger.debug(
            "Read %(count)d packages from %(path)s",
            {"count": len(packages), "path": types_path},
        )
        return cls(packages)

    def __len__(self) -> int:
        return len(self._packages)

    def all_typings(self) -> list[PackageRef]:
        return list(self._packages.values())

    def get(self, name: str) -> PackageRef | None:
        """Return the latest version of the package called ``name``."""
        return self._by_name.get(name)

    def get_by_path(self, subdirectory_path: str) -> PackageRef | None:
        return self._packages.get(subdirectory_path)

    def direct_dependencies(self, package: PackageRef) -> Iterator[PackageRef]:
        for name in package.dependencies:
            dependency = self.get(name)
            if dependency is not None:
                yield dependency

    def all_dependencies(self, packages: Iterable[PackageRef]) -> list[PackageRef]:
        """Return ``packages`` followed by everything they depend on,
        transitively, each package once."""
        seen: dict[str, PackageRef] = {}
        stack = list(packages)[::-1]
        while stack:
            package = stack.pop()
            if package.subdirectory_path in seen:
                continue
            seen[package.subdirectory_path] = package
            stack.extend(reversed(list(self.direct_dependencies(package))))
        return list(seen.values())

    def dependents_of(self, packages: Iterable[PackageRef]) -> list[PackageRef]:
        """Return the packages that depend on any of ``packages``, directly or
        not, excluding ``packages`` themselves."""
        targets = {p.subdirectory_path for p in packages}
        dependents: list[PackageRef] = []
        for package in self.all_typings():
            if package.subdirectory_path in targets:
                continue
            closure = self.all_dependencies([package])[1:]
            if any(d.subdirectory_path in targets for d in closure):
                dependents.append(package)
        return dependents


def parse_selection(value: str | None) -> Selection:
    """Turn the selection argument of the command line into a selection:
    ``"all"``, ``"affected"`` or a compiled package name pattern."""
    if not value or value == "affected":
        return "affected"
    if value == "all":
        return "all"
    try:
        return re.compile(value)
    except re.error as e:
        raise UsageError(f"Invalid package pattern {value!r}: {e}", print_help=False)


def select_packages(
    all_packages: AllPackages, selection: Selection, settings: BaseSettings
) -> Deferred[Affected]:
    if selection == "all":
        return defer.succeed(Affected(all_packages.all_typings(), []))
    if selection == "affected":
        get_affected = load_object(settings["AFFECTED_PACKAGES_FUNCTION"])
        return defer.maybeDeferred(get_affected, all_packages, settings)
    if isinstance(selection, str):
        raise ValueError(f"Unknown selection {selection!r}")
    changed = [p for p in all_packages.all_typings() if selection.search(p.name)]
    return defer.succeed(Affected(changed, []))
