from __future__ import annotations

import shutil
from pathlib import Path

import pytest


def _py_files(folder):
    return (str(p) for p in Path(folder).rglob("*.py"))


collect_ignore = [
    # not a test, but looks like a test
    "typestester/utils/test.py",
    "typestester/commands/test.py",
    # scripts run as child processes by the tests
    *_py_files("tests/workers"),
]


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "requires_git: skip the test when git is not installed"
    )


def pytest_runtest_setup(item):
    # Skip tests requiring optional executables
    for executable in ("git",):
        if item.get_closest_marker(f"requires_{executable}") and not shutil.which(executable):
            pytest.skip(f"{executable} is not installed")
