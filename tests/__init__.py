"""
tests: this package contains all typestester unittests

Run them with ``pytest tests`` after ``pip install -e .[test]``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from typestester.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

workers_dir = Path(__file__).parent.resolve() / "workers"
LISTEN_WORKER = str(workers_dir / "listen_worker.py")
FAKE_INSTALL = str(workers_dir / "fake_install.py")


def make_types_tree(
    checkout: Path, packages: Mapping[str, Iterable[str] | None]
) -> Path:
    """Create ``<checkout>/types`` holding one directory per package.

    ``packages`` maps subdirectory paths (``"foo"``, ``"foo/v1"``) to the
    names of the packages they depend on, or to ``None`` for a package
    without a ``package.json``.
    """
    types_path = checkout / "types"
    for path, dependencies in packages.items():
        directory = types_path / path
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "index.d.ts").write_text("export {};\n", encoding="utf-8")
        if dependencies is not None:
            manifest = {
                "private": True,
                "dependencies": {f"@types/{d}": "*" for d in dependencies},
            }
            (directory / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
    return types_path


def get_tester_settings(checkout: Path, **overrides: Any) -> Settings:
    """Settings running the test workers instead of npm and dtslint"""
    settings = Settings(
        {
            "CHECKOUT_PATH": str(checkout),
            "INSTALL_COMMAND": [sys.executable, FAKE_INSTALL],
            "WORKER_COMMAND": [sys.executable, LISTEN_WORKER],
            "PROCESSES": 2,
        }
    )
    settings.setdict(overrides, priority="cmdline")
    return settings
