"""
Tests for CLI commands — render, install, compat, config, status, activate.
"""

import json
import textwrap
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from conftest import attempt_id_from, exactly, result_block
from remote_bootstrap.adapters.base import CommandResult
from remote_bootstrap.adapters.mock import MockTransport
from remote_bootstrap.core.persistence.state_file import StateStore
from remote_bootstrap.main import cli


@pytest.fixture
def paths(tmp_path: Path) -> tuple[Path, Path]:
    config = tmp_path / "remote-bootstrap.yml"
    config.write_text(textwrap.dedent("""\
        server:
          version: 1.96.4
          commit: abc123def
          release: "25037"
    """))
    return config, tmp_path / ".state" / "remote-bootstrap.json"


def _invoke(paths, *args):
    config, state = paths
    return CliRunner().invoke(cli, ["--config", str(config), "--state", str(state), *args])


def _install_responder(command: str) -> CommandResult:
    text = result_block(
        attempt_id_from(command),
        exitCode="0",
        errorMsg="",
        listeningOn="40123",
        connectionToken="secret-token",
        logFile="/home/u/.vscodium-server/.abc123def.log",
        platform="linux",
        arch="x64",
    )
    return CommandResult(stdout=text, exit_status=0)


@pytest.fixture
def fake_host(monkeypatch) -> list[MockTransport]:
    """Route every session the CLI opens to a scripted Linux host."""
    opened: list[MockTransport] = []

    def _open_session(target, *, accept_unknown_hosts=False):
        mock = MockTransport().connect()
        mock.set_stdout(exactly("uname -s"), "Linux\n")
        mock.add_response(exactly("ldd --version"), CommandResult(stdout="ldd (GNU libc) 2.17\n", exit_status=0))
        mock.set_stdout("GLIBCXX", "GLIBCXX_3.4.19\n")
        mock.add_response(": start", _install_responder)
        mock.target = target
        opened.append(mock)
        return mock

    monkeypatch.setattr("remote_bootstrap.core.use_cases.bootstrap.open_session", _open_session)
    return opened


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Remote server bootstrap" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestRender:
    def test_bash(self, paths):
        result = _invoke(paths, "render")
        assert result.exit_code == 0, result.output
        assert "print_install_results_and_exit" in result.output
        assert 'DISTRO_COMMIT="abc123def"' in result.output

    def test_powershell(self, paths):
        result = _invoke(paths, "render", "--dialect", "powershell")
        assert result.exit_code == 0, result.output
        assert "printInstallResults" in result.output

    def test_cmd_command(self, paths):
        result = _invoke(paths, "render", "--dialect", "cmd", "--command")
        assert result.exit_code == 0, result.output
        assert "%USERPROFILE%" in result.output

    def test_overrides(self, paths):
        result = _invoke(paths, "render", "--version", "2.0.0", "--commit", "fff")
        assert 'DISTRO_VERSION="2.0.0"' in result.output
        assert 'DISTRO_COMMIT="fff"' in result.output

    def test_bad_extension(self, paths):
        result = _invoke(paths, "render", "--extension", "$(reboot)")
        assert result.exit_code == 1
        assert "Could not generate install script" in result.output

    def test_missing_identity(self, tmp_path: Path):
        empty = tmp_path / "empty.yml"
        empty.write_text("{}\n")
        result = _invoke((empty, tmp_path / "s.json"), "render")
        assert result.exit_code == 1
        assert "server.version" in result.output


class TestInstall:
    def test_install_remembers_target(self, paths, fake_host):
        result = _invoke(paths, "install", "alice@dev.example", "--port", "2222")
        assert result.exit_code == 0, result.output
        assert "40123" in result.output
        assert "secret-token" not in result.output
        assert fake_host[0].target.user == "alice"
        assert fake_host[0].target.port == 2222
        assert fake_host[0].closed

        stored = StateStore(paths[1]).get("lastTarget")
        assert stored["host"] == "dev.example"

    def test_install_json_with_token(self, paths, fake_host):
        result = _invoke(paths, "install", "dev.example", "--json", "--show-token")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["listening_on"] == 40123
        assert data["connection_token"] == "secret-token"

    def test_local_does_not_remember(self, paths, fake_host):
        result = _invoke(paths, "install", "--local")
        assert result.exit_code == 0, result.output
        assert fake_host[0].target is None
        assert StateStore(paths[1]).get("lastTarget") is None

    def test_host_required(self, paths):
        result = _invoke(paths, "install")
        assert result.exit_code == 2
        assert "HOST is required" in result.output

    def test_transport_failure(self, paths, monkeypatch):
        from remote_bootstrap.core.errors import TransportError

        def _refuse(target, *, accept_unknown_hosts=False):
            raise TransportError("ssh:dev.example: connection failed: refused")

        monkeypatch.setattr("remote_bootstrap.core.use_cases.bootstrap.open_session", _refuse)
        result = _invoke(paths, "install", "dev.example")
        assert result.exit_code == 1
        assert "Could not reach host" in result.output


class TestUninstall:
    def test_removes_data_folder(self, paths, fake_host):
        result = _invoke(paths, "uninstall", "dev.example", "--yes")
        assert result.exit_code == 0, result.output
        assert fake_host[0].call_log == ['rm -rf "$HOME/.vscodium-server"']


class TestCompat:
    def test_check(self, paths, fake_host):
        result = _invoke(paths, "compat", "check", "dev.example", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["system_version"] == "2.17"
        assert data["strategy"] == "download"

    def test_fix_skip(self, paths, fake_host):
        result = _invoke(paths, "compat", "fix", "dev.example", "--strategy", "skip")
        assert result.exit_code == 0, result.output
        assert "skip" in result.output

    def test_fix_container_missing_runtime(self, paths, fake_host):
        result = _invoke(paths, "compat", "fix", "dev.example", "--strategy", "container")
        assert result.exit_code == 1
        assert "no container runtime" in result.output


class TestConfigAndReinstall:
    def test_show(self, paths):
        result = _invoke(paths, "config", "show", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["settings"]["server.commit"] == "abc123def"
        assert data["settings"]["remote.SSH.enableCustomGlibc"] is False

    def test_set_marks_dirty(self, paths):
        result = _invoke(paths, "config", "set", "remote.SSH.enableCustomGlibc", "true")
        assert result.exit_code == 0, result.output
        assert "reinstalled on next activation" in result.output

        saved = yaml.safe_load(paths[0].read_text())
        assert saved["remote"]["SSH"]["enableCustomGlibc"] is True

        status = json.loads(_invoke(paths, "status", "--json").output)
        assert status["phase"] == "dirty"
        assert status["needs_reinstall"] is True

    def test_set_unrelated_key_stays_clean(self, paths):
        _invoke(paths, "config", "set", "server.quality", "insider")
        status = json.loads(_invoke(paths, "status", "--json").output)
        assert status["phase"] == "clean"

    def test_set_invalid_value(self, paths):
        result = _invoke(paths, "config", "set", "remote.SSH.containerMarkerSource", "moon")
        assert result.exit_code == 1
        assert "Invalid settings" in result.output

    def test_rejected_value_does_not_arm_reinstall(self, paths):
        before = paths[0].read_text()
        result = _invoke(paths, "config", "set", "remote.SSH.enableCustomGlibc", "notabool")
        assert result.exit_code == 1
        assert "Invalid settings" in result.output
        assert paths[0].read_text() == before

        status = json.loads(_invoke(paths, "status", "--json").output)
        assert status["phase"] == "clean"
        assert status["last_snapshot"] is None

    def test_failed_save_does_not_arm_reinstall(self, paths, monkeypatch):
        def _disk_full(store, path=None):
            raise OSError("No space left on device")

        monkeypatch.setattr("remote_bootstrap.core.config.loader.save_settings", _disk_full)
        result = _invoke(paths, "config", "set", "remote.SSH.enableCustomGlibc", "true")
        assert result.exit_code == 1
        assert "No space left on device" in result.output
        assert isinstance(result.exception, SystemExit)

        status = json.loads(_invoke(paths, "status", "--json").output)
        assert status["phase"] == "clean"

    def test_same_value_is_unchanged(self, paths):
        result = _invoke(paths, "config", "set", "server.commit", "abc123def")
        assert result.exit_code == 0, result.output
        assert "unchanged" in result.output

    def test_activate_without_target(self, paths):
        _invoke(paths, "config", "set", "remote.SSH.enableCustomGlibc", "true")
        result = _invoke(paths, "activate")
        assert result.exit_code == 0, result.output
        assert "no previous target" in result.output
        status = json.loads(_invoke(paths, "status", "--json").output)
        assert status["phase"] == "dirty"

    def test_activate_reinstalls(self, paths, fake_host):
        assert _invoke(paths, "install", "dev.example").exit_code == 0
        _invoke(paths, "config", "set", "remote.SSH.customGlibcUrl", "https://deps.example/g.tgz")

        result = _invoke(paths, "activate")
        assert result.exit_code == 0, result.output
        assert "reinstalled" in result.output
        reinstall_host = fake_host[-1]
        assert reinstall_host.call_log[0] == 'rm -rf "$HOME/.vscodium-server"'

        status = json.loads(_invoke(paths, "status", "--json").output)
        assert status["phase"] == "clean"

    def test_activate_nothing_pending(self, paths):
        result = _invoke(paths, "activate")
        assert result.exit_code == 0
        assert "up to date" in result.output

    def test_status_human(self, paths):
        result = _invoke(paths, "status")
        assert result.exit_code == 0, result.output
        assert "clean" in result.output
        assert "(none yet)" in result.output
