from __future__ import annotations

import logging
import pprint
import sys
from logging.config import dictConfig
from typing import TYPE_CHECKING, Any

from twisted.python import log as twisted_log
from twisted.python.failure import Failure

from typestester.settings import Settings, overridden_settings
from typestester.utils.versions import get_versions

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


def failure_to_exc_info(
    failure: Failure,
) -> tuple[type[BaseException], BaseException, TracebackType | None] | None:
    """Extract exc_info from Failure instances"""
    if isinstance(failure, Failure):
        assert failure.type
        assert failure.value
        return (
            failure.type,
            failure.value,
            failure.getTracebackObject(),
        )
    return None


class TopLevelFormatter(logging.Filter):
    """Keep only top level loggers' name (direct children from root) from
    records.

    This filter will replace typestester loggers' names with 'typestester'.
    This mimics the old behavior of printing only the package name in log
    lines instead of full module paths.

    Since it can't be set for just one logger (it won't propagate for its
    children), it's going to be set in the root handler, with a parametrized
    ``loggers`` list where it should act.
    """

    def __init__(self, loggers: list[str] | None = None):
        super().__init__()
        self.loggers: list[str] = loggers or []

    def filter(self, record: logging.LogRecord) -> bool:
        if any(record.name.startswith(logger + ".") for logger in self.loggers):
            record.name = record.name.split(".", 1)[0]
        return True


DEFAULT_LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "loggers": {
        "typestester": {
            "level": "DEBUG",
        },
        "twisted": {
            "level": "ERROR",
        },
    },
}


def configure_logging(
    settings: Settings | dict[str, Any] | None = None,
    install_root_handler: bool = True,
) -> None:
    """
    Initialize logging defaults for typestester.

    :param settings: settings used to create and configure a handler for the
        root logger (default: None).
    :type settings: dict, :class:`~typestester.settings.Settings` object or ``None``

    :param install_root_handler: whether to install root logging handler
        (default: True)
    :type install_root_handler: bool

    This function does:

    - Route warnings and twisted logging through Python standard logging
    - Assign DEBUG and ERROR level to typestester and Twisted loggers
      respectively
    - Create a handler for the root logger according to given settings
    """
    if not sys.warnoptions:
        # Route warnings through python logging
        logging.captureWarnings(True)

    observer = twisted_log.PythonLoggingObserver("twisted")
    observer.start()

    dictConfig(DEFAULT_LOGGING)

    if isinstance(settings, dict) or settings is None:
        settings = Settings(settings)

    if install_root_handler:
        install_root_log_handler(settings)


_root_handler: logging.Handler | None = None


def install_root_log_handler(settings: Settings) -> None:
    global _root_handler  # noqa: PLW0603

    _uninstall_root_log_handler()
    logging.root.setLevel(logging.NOTSET)
    _root_handler = _get_handler(settings)
    logging.root.addHandler(_root_handler)


def _uninstall_root_log_handler() -> None:
    global _root_handler  # noqa: PLW0603

    if _root_handler is not None and _root_handler in logging.root.handlers:
        logging.root.removeHandler(_root_handler)
    _root_handler = None


def get_root_log_handler() -> logging.Handler | None:
    return _root_handler


def _get_handler(settings: Settings) -> logging.Handler:
    """Return a log handler object according to settings"""
    filename = settings.get("LOG_FILE")
    handler: logging.Handler
    if filename:
        mode = "a" if settings.getbool("LOG_FILE_APPEND") else "w"
        encoding = settings.get("LOG_ENCODING")
        handler = logging.FileHandler(filename, mode=mode, encoding=encoding)
    elif settings.getbool("LOG_ENABLED"):
        handler = logging.StreamHandler()
    else:
        handler = logging.NullHandler()

    formatter = logging.Formatter(
        fmt=settings.get("LOG_FORMAT"), datefmt=settings.get("LOG_DATEFORMAT")
    )
    handler.setFormatter(formatter)
    handler.setLevel(settings.get("LOG_LEVEL"))
    if settings.getbool("LOG_SHORT_NAMES"):
        handler.addFilter(TopLevelFormatter(["typestester"]))
    return handler


def log_tester_info(settings: Settings) -> None:
    from typestester import __version__

    logger.info("typestester %(version)s started", {"version": __version__})
    software = settings.getlist("LOG_VERSIONS")
    if software:
        versions = pprint.pformat(dict(get_versions(software)), sort_dicts=False)
        logger.debug(f"Versions:\n{versions}")
    d = dict(overridden_settings(settings))
    if d:
        logger.info("Overridden settings:\n%(settings)s", {"settings": pprint.pformat(d)})


def log_reactor_info() -> None:
    from twisted.internet import reactor

    logger.debug(
        "Using reactor: %s.%s", reactor.__module__, reactor.__class__.__name__
    )
