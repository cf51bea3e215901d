"""
This module contains some assorted functions used in tests
"""

from __future__ import annotations

import os
from importlib import import_module
from pathlib import Path


def get_pythonpath() -> str:
    """Return a PYTHONPATH suitable to use in processes so that they find this
    installation of typestester"""
    typestester_path = import_module("typestester").__path__[0]
    return str(Path(typestester_path).parent) + os.pathsep + os.environ.get("PYTHONPATH", "")


def get_testenv() -> dict[str, str]:
    """Return a OS environment dict suitable to fork processes that need to import
    this installation of typestester, instead of a system installed one.
    """
    env = os.environ.copy()
    env["PYTHONPATH"] = get_pythonpath()
    return env
