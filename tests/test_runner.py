from __future__ import annotations

import json
import os
import re
from io import StringIO
from typing import TYPE_CHECKING, Any

import pytest
from rich.console import Console
from testfixtures import LogCapture
from twisted.internet.defer import inlineCallbacks

from tests import get_tester_settings, make_types_tree
from typestester.exceptions import (
    InstallError,
    InsufficientWorkError,
    NotConfigured,
    UsageError,
)
from typestester.packages import Affected
from typestester.results import RunStatus
from typestester.runner import SuiteRunner
from typestester.utils.console import TESTER_THEME

if TYPE_CHECKING:
    from collections.abc import Generator

    from twisted.internet.defer import Deferred


def changed_foo(all_packages, settings):
    changed = [all_packages.get("foo")]
    return Affected(changed, all_packages.dependents_of(changed))


def make_console() -> Console:
    return Console(file=StringIO(), theme=TESTER_THEME, width=200)


@pytest.fixture
def logs(tmp_path, monkeypatch):
    install_log = tmp_path / "installs.log"
    request_log = tmp_path / "requests.log"
    monkeypatch.setenv("FAKE_INSTALL_LOG", str(install_log))
    monkeypatch.setenv("LISTEN_WORKER_LOG", str(request_log))
    return install_log, request_log


@pytest.fixture
def checkout(tmp_path):
    checkout = tmp_path / "DefinitelyTyped"
    make_types_tree(
        checkout,
        {"foo": [], "bar": None, "baz": ["foo"], "qux": [], "quux": ["baz"]},
    )
    return checkout


class TestSuiteRunner:
    def get_runner(self, checkout, **overrides):
        self.out = make_console()
        self.err = make_console()
        return SuiteRunner(get_tester_settings(checkout, **overrides), self.out, self.err)

    def output(self) -> tuple[str, str]:
        return self.out.file.getvalue(), self.err.file.getvalue()

    def test_paths(self, checkout):
        runner = self.get_runner(checkout)
        assert runner.types_path == checkout / "types"
        assert runner.nprocesses == 2

    def test_default_nprocesses(self, checkout):
        runner = self.get_runner(checkout, PROCESSES=None)
        assert runner.nprocesses == (os.cpu_count() or 1)

    @inlineCallbacks
    def test_failing_package(
        self, checkout, logs, monkeypatch
    ) -> Generator[Deferred[Any], Any, None]:
        monkeypatch.setenv("LISTEN_WORKER_FAILURES", json.dumps({"foo": "type error X"}))
        install_log, request_log = logs
        runner = self.get_runner(checkout)

        outcome = yield runner.run("all")

        assert outcome.status is RunStatus.TESTS_FAILED
        assert outcome.exitcode == 1
        assert [str(f) for f in outcome.failures] == ["foo: type error X"]
        assert outcome.passed == 4

        # bar has no package.json: not installed, still tested
        assert sorted(install_log.read_text(encoding="utf-8").split()) == [
            "baz",
            "foo",
            "quux",
            "qux",
        ]
        requests = [line.split("\t") for line in request_log.read_text().splitlines()]
        assert sorted(path for _, path, _ in requests) == ["bar", "baz", "foo", "quux", "qux"]
        assert len({pid for pid, _, _ in requests}) == 2

        out, err = self.output()
        assert sorted(out.splitlines()) == ["bar OK", "baz OK", "quux OK", "qux OK"]
        assert "foo failing:\ntype error X\n" in err
        report = err[err.index("=== ERRORS ===") :]
        assert "Error in foo\ntype error X\n" in report
        assert report.rstrip().endswith("The following packages had errors: foo")

    @inlineCallbacks
    def test_all_passing(self, checkout, logs) -> Generator[Deferred[Any], Any, None]:
        runner = self.get_runner(checkout)
        outcome = yield runner.run("all")
        assert outcome.ok
        assert outcome.exitcode == 0
        assert outcome.passed == 5
        out, err = self.output()
        assert len(out.splitlines()) == 5
        assert "=== ERRORS ===" not in err

    @inlineCallbacks
    def test_dependents_only_test_next_version(
        self, checkout, logs
    ) -> Generator[Deferred[Any], Any, None]:
        install_log, request_log = logs
        runner = self.get_runner(
            checkout, AFFECTED_PACKAGES_FUNCTION=f"{__name__}.changed_foo"
        )
        outcome = yield runner.run("affected")
        assert outcome.ok
        requests = {
            path: flag
            for _, path, flag in (
                line.split("\t") for line in request_log.read_text().splitlines()
            )
        }
        assert requests == {"foo": "False", "baz": "True", "quux": "True"}
        assert sorted(install_log.read_text(encoding="utf-8").split()) == [
            "baz",
            "foo",
            "quux",
        ]

    @inlineCallbacks
    def test_pattern(self, checkout, logs) -> Generator[Deferred[Any], Any, None]:
        install_log, request_log = logs
        runner = self.get_runner(checkout, PROCESSES=1)
        outcome = yield runner.run(re.compile("^qu"))
        assert outcome.passed == 2
        # quux depends on baz, which depends on foo
        assert sorted(install_log.read_text(encoding="utf-8").split()) == [
            "baz",
            "foo",
            "quux",
            "qux",
        ]

    @inlineCallbacks
    def test_nothing_selected(
        self, checkout, logs
    ) -> Generator[Deferred[Any], Any, None]:
        install_log, request_log = logs
        runner = self.get_runner(checkout, PROCESSES=1)
        with LogCapture() as log:
            with pytest.raises(InsufficientWorkError) as excinfo:
                yield runner.run(re.compile("^nothing"))
        assert excinfo.value.items == 0
        assert excinfo.value.nprocesses == 1
        # the install phase still ran, with nothing to install
        messages = [r.getMessage() for r in log.records]
        assert "Installing dependencies..." in messages
        assert any(m.startswith("Running: ") for m in messages)
        assert not install_log.exists()
        assert not request_log.exists()

    @pytest.mark.parametrize("value", [0, -1, "many"])
    def test_invalid_nprocesses(self, checkout, value):
        runner = self.get_runner(checkout, PROCESSES=value)
        with pytest.raises(UsageError, match="PROCESSES must be a positive integer"):
            runner.nprocesses

    def test_nprocesses_from_string(self, checkout):
        assert self.get_runner(checkout, PROCESSES="3").nprocesses == 3

    @inlineCallbacks
    def test_install_failure_aborts(
        self, checkout, logs, monkeypatch
    ) -> Generator[Deferred[Any], Any, None]:
        monkeypatch.setenv("FAKE_INSTALL_FAIL", "qux")
        install_log, request_log = logs
        runner = self.get_runner(checkout)
        with pytest.raises(InstallError):
            yield runner.run("all")
        assert not request_log.exists()

    @inlineCallbacks
    def test_more_processes_than_packages(
        self, checkout, logs
    ) -> Generator[Deferred[Any], Any, None]:
        install_log, request_log = logs
        runner = self.get_runner(checkout, PROCESSES=4)
        with pytest.raises(InsufficientWorkError):
            yield runner.run(re.compile("^qu"))
        assert not request_log.exists()

    @inlineCallbacks
    def test_missing_checkout(self, tmp_path) -> Generator[Deferred[Any], Any, None]:
        runner = self.get_runner(tmp_path / "nowhere")
        with pytest.raises(NotConfigured):
            yield runner.run("all")
