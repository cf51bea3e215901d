import pstats
import tempfile
from io import StringIO
from pathlib import Path

from tests.utils.cmdline import proc
from typestester.utils.project import ENVVAR


class TestCmdline:
    def test_no_command(self):
        code, out, _ = proc()
        assert code == 0
        assert "Usage:" in out
        for cmdname in ("install", "list", "settings", "test", "version"):
            assert f"  {cmdname} " in out

    def test_unknown_command(self):
        code, out, _ = proc("nosuchcommand")
        assert code == 2
        assert "Unknown command: nosuchcommand" in out

    def test_command_help(self):
        code, out, _ = proc("test", "-h")
        assert code == 0
        assert "--nProcesses" in out
        assert "Global Options" in out

    def test_default_settings(self):
        _, out, _ = proc("settings", "--get", "WORKER_SUCCESS_STATUS")
        assert out.strip() == "OK"

    def test_override_settings_using_set_arg(self):
        _, out, _ = proc("settings", "--get", "TYPES_DIR", "-s", "TYPES_DIR=typings")
        assert out.strip() == "typings"

    def test_list_setting(self):
        _, out, _ = proc("settings", "--getlist", "WORKER_COMMAND", "-s", "WORKER_COMMAND=node,dtslint")
        assert out.strip() == '["node", "dtslint"]'

    def test_project_settings_module(self):
        _, out, _ = proc(
            "settings",
            "--get",
            "WORKER_COMMAND",
            env={ENVVAR: "tests.test_settings.default_settings"},
        )
        assert out.strip() == '["node", "dtslint.js"]'

    def test_invalid_set_value(self):
        code, _, err = proc("settings", "-s", "NOEQUALSIGN")
        assert code == 2
        assert "Invalid -s value, use -s NAME=VALUE" in err

    def test_profiling(self):
        path = Path(tempfile.mkdtemp())
        filename = path / "res.prof"
        proc("version", "--profile", str(filename))
        assert filename.exists()
        out = StringIO()
        stats = pstats.Stats(str(filename), stream=out)
        stats.print_stats()
        out.seek(0)
        stats = out.read()
        assert str(Path("typestester", "commands", "version.py")) in stats
        assert "tottime" in stats
