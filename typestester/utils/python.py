"""
This module contains essential stuff that should've come with Python itself ;)
"""

from __future__ import annotations

import gc
import platform

if platform.python_implementation() == "PyPy":

    def garbage_collect() -> None:
        # Collecting weakreferences can take two collections on PyPy.
        gc.collect()
        gc.collect()

else:

    def garbage_collect() -> None:
        gc.collect()
