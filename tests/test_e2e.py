"""
End-to-end tests — the real generated bash script against this machine.

The host side is real (bash, tar, ps, /proc); the download tool is a
stub ``wget`` on ``PATH`` that serves a local tarball holding a fake
server, which just prints the listening line and sleeps.  A stub
``uname`` can pose as another kernel or machine.
"""

import os
import platform
import shutil
import signal
import tarfile
from pathlib import Path

import pytest

from remote_bootstrap.adapters.shell.local import LocalTransport
from remote_bootstrap.core.errors import FailureKind, RemoteExecutionFailure
from remote_bootstrap.core.models.install import InstallOptions, ServerIdentity
from remote_bootstrap.core.services.server_install.data.constants import (
    ARCH_LABELS,
    DEFAULT_DOWNLOAD_URL_TEMPLATE,
)
from remote_bootstrap.core.services.server_install.domain.output_parser import (
    extract_result_block,
)
from remote_bootstrap.core.services.server_install.orchestration.orchestrator import (
    build_install_command,
    install_server,
)

pytestmark = pytest.mark.skipif(
    platform.system() != "Linux"
    or not all(shutil.which(tool) for tool in ("bash", "tar", "ps", "grep", "sed", "uname")),
    reason="needs a Linux host with bash, tar and ps",
)

SERVER = ServerIdentity(version="1.2.3", commit="e2ecommit", release="4")
PORT = 43210

FAKE_SERVER = f"""#!/bin/sh
echo "Extension host agent started."
echo "Extension host agent listening on {PORT}"
sleep 60 &
trap 'kill $! 2>/dev/null; exit 0' TERM
wait
"""

STUB_WGET = """#!/bin/sh
out=""
url=""
while [ $# -gt 0 ]; do
    case "$1" in
        -O) out="$2"; shift 2 ;;
        -*) shift ;;
        *) url="$1"; shift ;;
    esac
done
echo "$url" >> "$HOME/requested-urls"
if [ -n "$STUB_WGET_FAIL" ]; then
    exit 8
fi
cp "$STUB_TARBALL" "$out"
"""

STUB_UNAME = """#!/bin/sh
case "$1" in
    -s) if [ -n "$STUB_UNAME_S" ]; then echo "$STUB_UNAME_S"; exit 0; fi ;;
    -m) if [ -n "$STUB_UNAME_M" ]; then echo "$STUB_UNAME_M"; exit 0; fi ;;
esac
exec {real} "$@"
"""


@pytest.fixture
def host(tmp_path: Path):
    """A fake home directory, a stub wget, and a server tarball."""
    home = tmp_path / "home"
    home.mkdir()

    payload = tmp_path / "payload" / "server" / "bin"
    payload.mkdir(parents=True)
    script = payload / "codium-server"
    script.write_text(FAKE_SERVER)
    script.chmod(0o755)

    tarball = tmp_path / "server.tar.gz"
    with tarfile.open(tarball, "w:gz") as tar:
        tar.add(tmp_path / "payload" / "server", arcname="server")

    stubs = tmp_path / "stubs"
    stubs.mkdir()
    wget = stubs / "wget"
    wget.write_text(STUB_WGET)
    wget.chmod(0o755)
    uname = stubs / "uname"
    uname.write_text(STUB_UNAME.format(real=shutil.which("uname")))
    uname.chmod(0o755)

    env = {
        "HOME": str(home),
        "PATH": f"{stubs}:{os.environ.get('PATH', '/usr/bin:/bin')}",
        "STUB_TARBALL": str(tarball),
        "XDG_RUNTIME_DIR": str(tmp_path),
    }
    yield home, env

    pidfile = home / ".vscodium-server" / f".{SERVER.commit}.pid"
    if pidfile.is_file():
        try:
            os.kill(int(pidfile.read_text().strip()), signal.SIGTERM)
        except (ValueError, ProcessLookupError):
            pass


def _install(env, **kwargs):
    with LocalTransport(env_overrides=env, timeout=120) as transport:
        return install_server(transport, server=SERVER, **kwargs)


@pytest.mark.skipif(platform.machine() not in ARCH_LABELS, reason="no server build for this machine")
class TestLocalInstall:
    def test_fresh_install_then_reuse(self, host):
        home, env = host

        result = _install(env, env_variables=["HOME"])

        assert result.listening_on == PORT
        assert result.connection_token
        assert result.platform in ("linux", "alpine")
        assert result.arch == ARCH_LABELS[platform.machine()]
        assert result.env == {"HOME": str(home)}
        assert Path(result.log_file).is_file()

        token_file = home / ".vscodium-server" / f".{SERVER.commit}.token"
        assert token_file.read_text().strip() == result.connection_token
        assert oct(token_file.stat().st_mode & 0o777) == "0o600"

        [url] = (home / "requested-urls").read_text().splitlines()
        assert f"-{result.platform}-{result.arch}-1.2.3.4.tar.gz" in url

        again = _install(env)
        assert again.listening_on == PORT
        assert again.connection_token == result.connection_token
        assert len((home / "requested-urls").read_text().splitlines()) == 1

    def test_download_failure(self, host):
        home, env = host
        env = dict(env, STUB_WGET_FAIL="1")
        with pytest.raises(RemoteExecutionFailure) as info:
            _install(env, download_url="https://mirror.example/server.tgz")
        assert info.value.kind is FailureKind.DOWNLOAD_FAILED
        assert "https://mirror.example/server.tgz" in info.value.error_message


def _host_release_id() -> str:
    for path in ("/etc/os-release", "/usr/lib/os-release"):
        try:
            for line in Path(path).read_text().splitlines():
                if line.upper().startswith("ID="):
                    return line[3:].strip().strip('"')
        except OSError:
            continue
    return "unknown"


def _run_script(env, kernel: str, machine: str) -> tuple[dict[str, str], str]:
    """Run the rendered script with a stub ``uname``; downloads always fail.

    Returns the result block fields and the URL the script asked for.
    """
    options = InstallOptions.for_server(SERVER, download_url_template=DEFAULT_DOWNLOAD_URL_TEMPLATE)
    _, command = build_install_command(options, platform="posix", shell="bash")
    env = dict(env, STUB_UNAME_S=kernel, STUB_UNAME_M=machine, STUB_WGET_FAIL="1")
    with LocalTransport(env_overrides=env, timeout=60) as transport:
        output = transport.execute(command)
    requested = Path(env["HOME"]) / "requested-urls"
    url = requested.read_text().strip() if requested.is_file() else ""
    return extract_result_block(output.stdout, options.id), url


class TestScriptPlatformDetection:
    @pytest.mark.parametrize(
        "machine, label",
        [
            ("x86_64", "x64"),
            ("amd64", "x64"),
            ("aarch64", "arm64"),
            ("armv7l", "armhf"),
            ("ppc64le", "ppc64le"),
            ("riscv64", "riscv64"),
            ("loongarch64", "loong64"),
            ("s390x", "s390x"),
        ],
    )
    def test_linux_architectures(self, host, machine, label):
        _, env = host
        fields, url = _run_script(env, "Linux", machine)
        expected_platform = "alpine" if _host_release_id() == "alpine" else "linux"

        assert fields["arch"] == label
        assert fields["platform"] == expected_platform
        assert f"-{expected_platform}-{label}-" in url
        assert "download" in fields["errorMsg"].lower()

    def test_unknown_architecture(self, host):
        home, env = host
        fields, url = _run_script(env, "Linux", "i686")
        assert fields["exitCode"] == "1"
        assert fields["errorMsg"] == "Error architecture not supported: i686"
        assert url == ""
        assert not (home / ".vscodium-server" / "bin").exists()

    def test_unknown_kernel(self, host):
        _, env = host
        fields, _ = _run_script(env, "SunOS", "x86_64")
        assert fields["exitCode"] == "1"
        assert fields["errorMsg"] == "Error platform not supported: SunOS"

    def test_unknown_architecture_through_the_installer(self, host):
        _, env = host
        env = dict(env, STUB_UNAME_S="Linux", STUB_UNAME_M="mips")
        with LocalTransport(env_overrides=env, timeout=60) as transport:
            with pytest.raises(RemoteExecutionFailure) as info:
                install_server(transport, server=SERVER, platform="linux")
        assert info.value.kind is FailureKind.UNSUPPORTED_ARCH

    def test_simulated_x86_64_install(self, host):
        """A full install on any Linux machine posing as x86_64."""
        home, env = host
        env = dict(env, STUB_UNAME_S="Linux", STUB_UNAME_M="x86_64")
        with LocalTransport(env_overrides=env, timeout=120) as transport:
            result = install_server(transport, server=SERVER)
        assert result.arch == "x64"
        assert result.platform == ("alpine" if _host_release_id() == "alpine" else "linux")
        assert result.listening_on == PORT
