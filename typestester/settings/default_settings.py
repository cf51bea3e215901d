"""This module contains the default values for all settings used by typestester.

When adding a setting here:

* add it in alphabetical order, with the exception that enabling flags and
  other high-level settings for a group should come first in their group
* group similar settings without leaving blank lines
"""

__all__ = [
    "AFFECTED_BASE_REF",
    "AFFECTED_PACKAGES_FUNCTION",
    "CHECKOUT_PATH",
    "COMMANDS_MODULE",
    "INSTALL_COMMAND",
    "INSTALL_FINALIZE_ARGS",
    "INSTALL_MANIFEST",
    "LOG_DATEFORMAT",
    "LOG_ENABLED",
    "LOG_ENCODING",
    "LOG_FILE",
    "LOG_FILE_APPEND",
    "LOG_FORMAT",
    "LOG_LEVEL",
    "LOG_SHORT_NAMES",
    "LOG_VERSIONS",
    "PROCESSES",
    "TYPES_DIR",
    "WORKER_COMMAND",
    "WORKER_LISTEN_ARGS",
    "WORKER_SUCCESS_STATUS",
]

AFFECTED_BASE_REF = "origin/master"
AFFECTED_PACKAGES_FUNCTION = "typestester.affected.get_affected_packages"

CHECKOUT_PATH = "../DefinitelyTyped"

COMMANDS_MODULE = ""

INSTALL_COMMAND = [
    "npm",
    "install",
    "--ignore-scripts",
    "--no-shrinkwrap",
    "--no-package-lock",
    "--no-bin-links",
]
INSTALL_FINALIZE_ARGS = ["--installAll"]
INSTALL_MANIFEST = "package.json"

LOG_ENABLED = True
LOG_DATEFORMAT = "%Y-%m-%d %H:%M:%S"
LOG_ENCODING = "utf-8"
LOG_FILE = None
LOG_FILE_APPEND = True
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
LOG_LEVEL = "INFO"
LOG_SHORT_NAMES = False
LOG_VERSIONS = [
    "twisted",
    "rich",
    "python",
    "platform",
]

# None means one worker process per CPU
PROCESSES = None

TYPES_DIR = "types"

WORKER_COMMAND = ["dtslint"]
WORKER_LISTEN_ARGS = ["--listen"]
WORKER_SUCCESS_STATUS = "OK"
