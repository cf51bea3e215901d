import pytest

from typestester.settings import (
    SETTINGS_PRIORITIES,
    BaseSettings,
    Settings,
    SettingsAttribute,
    get_settings_priority,
    iter_default_settings,
    overridden_settings,
)
from typestester.utils.project import ENVVAR, get_project_settings

from . import default_settings


class TestSettingsGlobalFuncs:
    def test_get_settings_priority(self):
        for prio_str, prio_num in SETTINGS_PRIORITIES.items():
            assert get_settings_priority(prio_str) == prio_num
        assert get_settings_priority(99) == 99

    def test_overridden_settings(self):
        settings = Settings({"PROCESSES": 4, "TYPES_DIR": "types"})
        assert dict(overridden_settings(settings)) == {"PROCESSES": 4}

    def test_iter_default_settings(self):
        defaults = dict(iter_default_settings())
        assert defaults["WORKER_LISTEN_ARGS"] == ["--listen"]
        assert defaults["INSTALL_FINALIZE_ARGS"] == ["--installAll"]
        assert defaults["CHECKOUT_PATH"] == "../DefinitelyTyped"


class TestSettingsAttribute:
    def setup_method(self):
        self.attribute = SettingsAttribute("value", 10)

    def test_set_greater_priority(self):
        self.attribute.set("value2", 20)
        assert self.attribute.value == "value2"
        assert self.attribute.priority == 20

    def test_set_equal_priority(self):
        self.attribute.set("value2", 10)
        assert self.attribute.value == "value2"
        assert self.attribute.priority == 10

    def test_set_less_priority(self):
        self.attribute.set("value2", 0)
        assert self.attribute.value == "value"
        assert self.attribute.priority == 10


class TestBaseSettings:
    def setup_method(self):
        self.settings = BaseSettings()

    def test_set_and_priority(self):
        self.settings.set("PROCESSES", 2, "default")
        self.settings.set("PROCESSES", 8, "cmdline")
        self.settings.set("PROCESSES", 4, "project")
        assert self.settings["PROCESSES"] == 8
        assert self.settings.getpriority("PROCESSES") == SETTINGS_PRIORITIES["cmdline"]

    def test_setmodule_only_load_uppercase_vars(self):
        self.settings.setmodule(default_settings, 10)
        assert "WORKER_COMMAND" in self.settings
        assert "not_a_setting" not in self.settings

    def test_setmodule_by_path(self):
        self.settings.setmodule("tests.test_settings.default_settings", "project")
        assert self.settings["WORKER_COMMAND"] == ["node", "dtslint.js"]

    def test_update(self):
        self.settings.update({"PROCESSES": 3, "WORKER_COMMAND": ["dtslint"]}, "cmdline")
        assert self.settings["PROCESSES"] == 3
        assert self.settings.getpriority("WORKER_COMMAND") == SETTINGS_PRIORITIES["cmdline"]
        self.settings.update({"PROCESSES": 5}, "project")
        assert self.settings["PROCESSES"] == 3

    def test_get(self):
        test_configuration = {
            "TEST_ENABLED1": "1",
            "TEST_ENABLED2": True,
            "TEST_ENABLED3": 1,
            "TEST_DISABLED1": "0",
            "TEST_DISABLED2": False,
            "TEST_DISABLED3": 0,
            "TEST_INT1": 123,
            "TEST_INT2": "123",
            "TEST_LIST1": ["one", "two"],
            "TEST_LIST2": "one,two",
            "TEST_STR": "value",
        }
        settings = self.settings
        settings.attributes = {
            key: SettingsAttribute(value, 0) for key, value in test_configuration.items()
        }

        assert settings.getbool("TEST_ENABLED1")
        assert settings.getbool("TEST_ENABLED2")
        assert settings.getbool("TEST_ENABLED3")
        assert not settings.getbool("TEST_ENABLEDx")
        assert settings.getbool("TEST_ENABLEDx", True)
        assert not settings.getbool("TEST_DISABLED1")
        assert not settings.getbool("TEST_DISABLED2")
        assert not settings.getbool("TEST_DISABLED3")
        assert settings.getint("TEST_INT1") == 123
        assert settings.getint("TEST_INT2") == 123
        assert settings.getint("TEST_INTx") == 0
        assert settings.getint("TEST_INTx", 45) == 45
        assert settings.getlist("TEST_LIST1") == ["one", "two"]
        assert settings.getlist("TEST_LIST2") == ["one", "two"]
        assert settings.getlist("TEST_LISTx") == []
        assert settings.getlist("TEST_LISTx", ["default"]) == ["default"]
        assert settings["TEST_STR"] == "value"
        assert settings.get("TEST_STR") == "value"
        assert settings["TEST_STRx"] is None
        assert settings.get("TEST_STRx") is None
        assert settings.get("TEST_STRx", "default") == "default"
        with pytest.raises(ValueError):
            settings.getint("TEST_STR")
        with pytest.raises(ValueError):
            settings.getbool("TEST_STR")

    def test_delitem(self):
        settings = BaseSettings({"PROCESSES": 2})
        del settings["PROCESSES"]
        assert "PROCESSES" not in settings
        assert settings["PROCESSES"] is None
        assert len(settings) == 0


class TestSettings:
    def test_initial_defaults(self):
        settings = Settings()
        assert len(settings) > 0
        assert settings["WORKER_SUCCESS_STATUS"] == "OK"
        assert settings.getpriority("WORKER_SUCCESS_STATUS") == SETTINGS_PRIORITIES["default"]

    def test_initial_values(self):
        settings = Settings({"PROCESSES": 3}, 10)
        assert settings["PROCESSES"] == 3
        assert settings.getpriority("PROCESSES") == 10

    def test_project_settings(self, monkeypatch):
        monkeypatch.setenv(ENVVAR, "tests.test_settings.default_settings")
        settings = get_project_settings()
        assert settings["WORKER_COMMAND"] == ["node", "dtslint.js"]
        assert settings.getpriority("WORKER_COMMAND") == SETTINGS_PRIORITIES["project"]

    def test_project_settings_without_module(self, monkeypatch):
        monkeypatch.delenv(ENVVAR, raising=False)
        assert get_project_settings()["WORKER_COMMAND"] == ["dtslint"]
