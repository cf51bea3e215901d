from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from importlib import import_module
from typing import TYPE_CHECKING, Any, Union

from typestester.settings import default_settings

_SettingsKeyT = Union[bool, float, int, str, None]

if TYPE_CHECKING:
    from types import ModuleType

    from _typeshed import SupportsItems

    _SettingsInputT = Union[SupportsItems[_SettingsKeyT, Any], None]


SETTINGS_PRIORITIES: dict[str, int] = {
    "default": 0,
    "command": 10,
    "project": 20,
    "cmdline": 40,
}


def get_settings_priority(priority: int | str) -> int:
    """
    Return the numerical value of ``priority``, looking up names such as
    ``"cmdline"`` in :attr:`~typestester.settings.SETTINGS_PRIORITIES`.
    """
    if isinstance(priority, str):
        return SETTINGS_PRIORITIES[priority]
    return priority


class SettingsAttribute:
    """A setting value and the priority it was set with."""

    def __init__(self, value: Any, priority: int):
        self.value: Any = value
        self.priority: int = priority

    def set(self, value: Any, priority: int) -> None:
        """Sets value if priority is higher or equal than current priority."""
        if priority >= self.priority:
            self.value = value
            self.priority = priority

    def __repr__(self) -> str:
        return f"<SettingsAttribute value={self.value!r} priority={self.priority}>"


class BaseSettings(MutableMapping[_SettingsKeyT, Any]):
    """
    A mapping of setting names to values where every value remembers the
    priority it was set with. A value set with a lower priority than the
    current one is ignored, so ``-s PROCESSES=4`` on the command line wins
    over a project settings module, which wins over the defaults.

    Missing settings read as ``None``. The typed getters convert values that
    come from the command line as strings.
    """

    def __init__(self, values: _SettingsInputT = None, priority: int | str = "project"):
        self.attributes: dict[_SettingsKeyT, SettingsAttribute] = {}
        if values:
            self.update(values, priority)

    def __getitem__(self, opt_name: _SettingsKeyT) -> Any:
        if opt_name not in self:
            return None
        return self.attributes[opt_name].value

    def __contains__(self, name: Any) -> bool:
        return name in self.attributes

    def get(self, name: _SettingsKeyT, default: Any = None) -> Any:
        return self[name] if self[name] is not None else default

    def getbool(self, name: _SettingsKeyT, default: bool = False) -> bool:
        """
        Get a setting value as a boolean.

        ``1``, ``'1'``, ``True``, ``'True'`` and ``'true'`` return ``True``;
        ``0``, ``'0'``, ``False``, ``'False'``, ``'false'`` and ``None`` return
        ``False``.
        """
        got = self.get(name, default)
        try:
            return bool(int(got))
        except ValueError:
            if got in ("True", "true"):
                return True
            if got in ("False", "false"):
                return False
            raise ValueError(
                "Supported values for boolean settings "
                "are 0/1, True/False, '0'/'1', "
                "'True'/'False' and 'true'/'false'"
            )

    def getint(self, name: _SettingsKeyT, default: int = 0) -> int:
        return int(self.get(name, default))

    def getlist(
        self, name: _SettingsKeyT, default: list[Any] | None = None
    ) -> list[Any]:
        """
        Get a setting value as a list. Strings are split on ``,`` so a command
        passed as ``-s WORKER_COMMAND=node,dtslint`` reads as
        ``['node', 'dtslint']``. Lists are copied.
        """
        value = self.get(name, default or [])
        if not value:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return list(value)

    def getpriority(self, name: _SettingsKeyT) -> int | None:
        if name not in self:
            return None
        return self.attributes[name].priority

    def __setitem__(self, name: _SettingsKeyT, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: _SettingsKeyT) -> None:
        del self.attributes[name]

    def set(
        self, name: _SettingsKeyT, value: Any, priority: int | str = "project"
    ) -> None:
        priority = get_settings_priority(priority)
        if name not in self:
            self.attributes[name] = SettingsAttribute(value, priority)
        else:
            self.attributes[name].set(value, priority)

    def setdict(self, values: _SettingsInputT, priority: int | str = "project") -> None:
        self.update(values, priority)

    def setmodule(
        self, module: ModuleType | str, priority: int | str = "project"
    ) -> None:
        """
        Set every uppercase global of ``module`` (a module or its import path)
        with the given priority.
        """
        if isinstance(module, str):
            module = import_module(module)
        for key in dir(module):
            if key.isupper():
                self.set(key, getattr(module, key), priority)

    # BaseSettings.update() doesn't support all inputs that MutableMapping.update() supports
    def update(self, values: _SettingsInputT, priority: int | str = "project") -> None:  # type: ignore[override]
        if values is not None:
            for name, value in values.items():
                self.set(name, value, priority)

    def __iter__(self) -> Iterator[_SettingsKeyT]:
        return iter(self.attributes)

    def __len__(self) -> int:
        return len(self.attributes)


class Settings(BaseSettings):
    """
    The settings of a typestester run: the checkout location, the install
    phase, the worker pool and logging. The defaults from
    :mod:`typestester.settings.default_settings` are loaded with the
    ``default`` priority.
    """

    def __init__(self, values: _SettingsInputT = None, priority: int | str = "project"):
        super().__init__()
        self.setmodule(default_settings, "default")
        self.update(values, priority)


def iter_default_settings() -> Iterable[tuple[str, Any]]:
    """Return the default settings as an iterator of (name, value) tuples"""
    for name in dir(default_settings):
        if name.isupper():
            yield name, getattr(default_settings, name)


def overridden_settings(
    settings: Mapping[_SettingsKeyT, Any],
) -> Iterable[tuple[str, Any]]:
    """Return an iterable of the settings that have been overridden"""
    for name, defvalue in iter_default_settings():
        value = settings[name]
        if value != defvalue:
            yield name, value
