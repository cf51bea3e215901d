from __future__ import annotations

import platform
import sys
from importlib.metadata import version

from typestester.settings.default_settings import LOG_VERSIONS

_DEFAULT_SOFTWARE = ["typestester", *LOG_VERSIONS]


def _version(item: str) -> str:
    lowercase_item = item.lower()
    if lowercase_item == "platform":
        return platform.platform()
    if lowercase_item == "python":
        return sys.version.replace("\n", "- ")
    if lowercase_item == "typestester":
        from typestester import __version__

        return __version__
    return version(item)


def get_versions(
    software: list[str] | None = None,
) -> list[tuple[str, str]]:
    software = software or _DEFAULT_SOFTWARE
    return [(item, _version(item)) for item in software]
