"""
Tests for script rendering — template engine, bash, PowerShell, and
command wrapping.
"""

import re

import pytest

from remote_bootstrap.core.errors import FailureKind, ScriptGenerationError, classify_failure
from remote_bootstrap.core.models.install import InstallOptions, RemediationBundle
from remote_bootstrap.core.services.server_install.data.constants import (
    CMD_MAX_COMMAND_LENGTH,
    DEFAULT_DOWNLOAD_URL_TEMPLATE,
)
from remote_bootstrap.core.services.server_install.scripts.bash_script import (
    arch_case_arms,
    linker_case_arms,
    render_bash_script,
    render_compile_script,
    render_remediation_block,
    render_runtime_fix_script,
)
from remote_bootstrap.core.services.server_install.scripts.commands import (
    cmd_escape_script,
    posix_command,
    windows_command,
    windows_install_paths,
)
from remote_bootstrap.core.services.server_install.scripts.powershell_script import (
    render_powershell_script,
)
from remote_bootstrap.core.services.server_install.scripts.template import (
    check_unsubstituted,
    load_template,
    process_template,
)

BUNDLE = RemediationBundle(
    enabled=True,
    glibc_url="https://deps.example/glibc-2.39.tar.gz",
    gcc_url="https://deps.example/gcc-14.2.0.tar.gz",
    patchelf_url="https://deps.example/patchelf",
)


def _options(**overrides) -> InstallOptions:
    values = {
        "version": "1.96.4",
        "commit": "abc123def",
        "release": "25037",
        "download_url_template": DEFAULT_DOWNLOAD_URL_TEMPLATE,
    }
    values.update(overrides)
    return InstallOptions(**values)


# ── Template engine ──────────────────────────────────────────────────


class TestTemplateEngine:
    def test_feature_blocks(self):
        content = (
            "a\n"
            "# __IF_FEATURE_x__\n"
            "with x\n"
            "# __ENDIF__\n"
            "# __IF_NOT_FEATURE_x__\n"
            "without x\n"
            "# __ENDIF__\n"
            "b\n"
        )
        assert process_template(content, {"x": True}, {}) == "a\nwith x\nb\n"
        assert process_template(content, {}, {}) == "a\nwithout x\nb\n"

    def test_slots_single_pass(self):
        out = process_template("v=__A__ w=__B__\n", {}, {"A": "__B__", "B": "2"})
        assert out == "v=__B__ w=2\n"

    def test_unfilled_slot_raises(self):
        with pytest.raises(ScriptGenerationError, match="MISSING"):
            process_template("x=__MISSING__\n", {}, {})

    def test_slot_inside_disabled_block_not_required(self):
        content = "# __IF_FEATURE_x__\n__ONLY_X__\n# __ENDIF__\nok\n"
        assert process_template(content, {}, {}) == "ok\n"

    def test_check_unsubstituted(self):
        assert check_unsubstituted("__A__ __B__ __A__", {"A": "1"}) == ["B"]

    def test_missing_template(self):
        with pytest.raises(ScriptGenerationError, match="not found"):
            load_template("nope.sh")


# ── Bash ─────────────────────────────────────────────────────────────


class TestBashScript:
    def test_result_markers_use_attempt_id(self):
        options = _options()
        script = render_bash_script(options)
        assert f'echo "{options.id}: start"' in script
        assert f'echo "{options.id}: end"' in script

    def test_no_slot_left(self):
        script = render_bash_script(_options(use_socket_path=True, remediation=BUNDLE))
        assert check_unsubstituted(script, {}) == []

    def test_token_not_in_script_text(self):
        script = render_bash_script(_options())
        assert "SERVER_CONNECTION_TOKEN=\n" in script
        assert "/proc/sys/kernel/random/uuid" in script

    def test_port_mode(self):
        script = render_bash_script(_options())
        assert 'SERVER_LISTEN_FLAG="--port=0"' in script
        assert "--socket-path" not in script

    def test_socket_mode_uses_attempt_id(self):
        options = _options(use_socket_path=True)
        script = render_bash_script(options)
        assert f"vscode-server-sock-{options.id}" in script
        assert "--port=0" not in script

    def test_url_placeholders_left_for_host(self):
        script = render_bash_script(_options())
        assert "1.96.4.25037" in script
        assert "vscodium-reh-\\${os}-\\${arch}" in script
        assert "OS_PLACEHOLDER='${os}'" in script

    def test_explicit_url_skips_host_substitution(self):
        script = render_bash_script(_options(download_url="https://mirror/server.tgz"))
        assert 'SERVER_DOWNLOAD_URL="https://mirror/server.tgz"' in script
        assert "OS_PLACEHOLDER" not in script

    def test_extensions_and_env(self):
        script = render_bash_script(
            _options(extension_ids=("ms-python.python", "foo.bar"), env_variables=("DISPLAY",))
        )
        assert "--install-extension ms-python.python --install-extension foo.bar" in script
        assert 'echo "DISPLAY==$DISPLAY=="' in script

    def test_hostile_extension_rejected(self):
        with pytest.raises(ScriptGenerationError):
            render_bash_script(_options(extension_ids=("x; reboot",)))

    def test_hostile_url_is_escaped(self):
        script = render_bash_script(_options(download_url='https://x/"$(reboot)"'))
        assert 'SERVER_DOWNLOAD_URL="https://x/\\"\\$(reboot)\\""' in script

    def test_unknown_template_placeholder(self):
        with pytest.raises(ScriptGenerationError, match="placeholder"):
            render_bash_script(_options(download_url_template="https://x/${platform}"))

    def test_arch_table_in_script(self):
        script = render_bash_script(_options())
        assert arch_case_arms() in script
        assert "x86_64 | amd64)" in script
        assert 'fail "Error architecture not supported: $ARCH"' in script

    def test_remediation_disabled_by_default(self):
        script = render_bash_script(_options())
        assert "VSCODE_SERVER_CUSTOM_GLIBC_LINKER" not in script

    def test_remediation_runs_before_start(self):
        script = render_bash_script(_options(remediation=BUNDLE))
        linker = script.index("VSCODE_SERVER_CUSTOM_GLIBC_LINKER")
        assert script.index("PLATFORM=$OS_RELEASE_ID") < linker
        assert linker < script.index('"$SERVER_SCRIPT" --start-server')
        assert 'GLIBC_URL="https://deps.example/glibc-2.39.tar.gz"' in script


class TestRemediationScripts:
    def test_block_exports_runtime_paths(self):
        block = render_remediation_block(BUNDLE)
        assert "export VSCODE_SERVER_CUSTOM_GLIBC_LINKER=" in block
        assert "export VSCODE_SERVER_CUSTOM_GLIBC_PATH=" in block
        assert "export VSCODE_SERVER_PATCHELF_PATH=" in block
        assert 'DEPS_DIR="$HOME/.vscode-server-deps"' in block

    def test_linker_only_for_bundled_arches(self):
        arms = linker_case_arms()
        assert 'GLIBC_LINKER="ld-linux-x86-64.so.2"' in arms
        assert 'GLIBC_LINKER="ld-linux-aarch64.so.1"' in arms
        assert "armv7l" not in arms

    def test_fix_script_reports_status(self):
        script = render_runtime_fix_script(BUNDLE)
        assert 'echo "fixStatus==ok=="' in script
        assert 'echo "changed==$DEPS_CHANGED=="' in script
        assert check_unsubstituted(script, {}) == []

    def test_compile_script(self):
        script = render_compile_script("https://ftp.example/glibc-2.39.tar.gz")
        assert "https://ftp.example/glibc-2.39.tar.gz" in script
        assert check_unsubstituted(script, {}) == []

    @pytest.mark.parametrize(
        "render",
        [lambda: render_compile_script(), lambda: render_runtime_fix_script(BUNDLE)],
        ids=["compile", "fix"],
    )
    def test_runtime_failures_classified_as_remediation(self, render):
        messages = re.findall(r'fail "([^"]+)"', render())
        assert messages
        for message in messages:
            assert classify_failure(message) is FailureKind.REMEDIATION_FAILED, message


# ── PowerShell ───────────────────────────────────────────────────────


class TestPowerShellScript:
    def test_markers_and_resolved_url(self):
        options = _options()
        script = render_powershell_script(options)
        assert f'"{options.id}: start"' in script
        assert f'"{options.id}: end"' in script
        assert "vscodium-reh-win32-x64-1.96.4.25037.tar.gz" in script
        assert "${os}" not in script

    def test_no_slot_left(self):
        script = render_powershell_script(_options(use_socket_path=True))
        assert check_unsubstituted(script, {}) == []

    def test_env_lines(self):
        script = render_powershell_script(_options(env_variables=("USERPROFILE",)))
        assert '"USERPROFILE==$env:USERPROFILE=="' in script

    def test_arm64_served_by_x64_build(self):
        script = render_powershell_script(_options())
        assert '($ARCH -eq "ARM64")' in script

    def test_remediation_ignored(self):
        script = render_powershell_script(_options(remediation=BUNDLE))
        assert "GLIBC" not in script


# ── Command wrapping ─────────────────────────────────────────────────


class TestCommands:
    def test_posix_command(self):
        assert posix_command("echo 'hi'") == "bash -c 'echo '\\''hi'\\'''"

    def test_windows_paths(self):
        install_dir, path = windows_install_paths(".vscodium-server", "abc")
        assert install_dir == "$HOME\\.vscodium-server\\install"
        assert path == "$HOME\\.vscodium-server\\install\\abc.ps1"

    def test_powershell_here_string(self):
        cmd = windows_command("Write-Output 'x'", "powershell", ".srv", "abc")
        assert "echo @'\nWrite-Output 'x'\n'@ | Set-Content $HOME\\.srv\\install\\abc.ps1" in cmd
        assert cmd.endswith('powershell -ExecutionPolicy ByPass -File "$HOME\\.srv\\install\\abc.ps1"')

    def test_bash_on_windows(self):
        cmd = windows_command("echo 'x'", "bash", ".srv", "abc")
        assert cmd.startswith("mkdir -p $HOME/.srv/install && ")
        assert "echo '\necho '\"'\"'x'\"'\"'\n' > $HOME/.srv/install/abc.ps1" in cmd

    def test_cmd_uses_userprofile(self):
        cmd = windows_command("$x = 1\n# comment\n  Write-Output $x\n", "cmd", ".srv", "abc")
        assert "%USERPROFILE%\\.srv\\install\\abc.ps1" in cmd
        assert "# comment" not in cmd

    def test_cmd_escape(self):
        assert cmd_escape_script("a 'b' \"c\" > d\n  e") == "a ''b'' \"\"\"c\"\"\" ^> d'`n'e"

    def test_cmd_length_limit(self):
        script = "\n".join(f"Write-Output {i}" for i in range(CMD_MAX_COMMAND_LENGTH // 10))
        with pytest.raises(ScriptGenerationError, match="too long"):
            windows_command(script, "cmd", ".srv", "abc")

    def test_real_script_fits_cmd(self):
        script = render_powershell_script(_options())
        cmd = windows_command(script, "cmd", ".vscodium-server", "abc123def")
        assert len(cmd) <= CMD_MAX_COMMAND_LENGTH

    def test_unknown_shell(self):
        with pytest.raises(ScriptGenerationError, match="Not supported shell"):
            windows_command("x", "fish", ".srv", "abc")
