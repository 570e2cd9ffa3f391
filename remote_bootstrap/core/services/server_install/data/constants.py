"""
L0 Data — Module-level constants.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

# Placeholders accepted in a download URL template.
URL_PLACEHOLDERS: tuple[str, ...] = ("quality", "version", "commit", "os", "arch", "release")

DEFAULT_DOWNLOAD_URL_TEMPLATE = (
    "https://github.com/VSCodium/vscodium/releases/download/"
    "${version}.${release}/vscodium-reh-${os}-${arch}-${version}.${release}.tar.gz"
)

# Line the server prints once it accepts connections.
LISTENING_MARKER = "Extension host agent listening on "

# Log polling inside the generated scripts.
LISTEN_POLL_ATTEMPTS = 5
LISTEN_POLL_INTERVAL_S = 0.5

# Download tool settings inside the generated scripts.
DOWNLOAD_RETRIES = 3
DOWNLOAD_CONNECT_TIMEOUT_S = 10
POWERSHELL_DOWNLOAD_TIMEOUT_S = 20

# Server launch flags shared by every dialect.
SERVER_START_FLAGS = (
    "--start-server --host=127.0.0.1"
)
SERVER_TAIL_FLAGS = (
    "--telemetry-level off --enable-remote-auto-shutdown --accept-server-license-terms"
)

# cmd.exe refuses command lines longer than this (documented limit).
CMD_MAX_COMMAND_LENGTH = 8191

# ── Platform / architecture ─────────────────────────────────────

# ``uname -s`` → server platform label
KERNEL_PLATFORMS: dict[str, str] = {
    "Darwin": "darwin",
    "Linux": "linux",
    "FreeBSD": "freebsd",
    "DragonFly": "dragonfly",
}

# Platforms with downloadable server builds (others need manual install)
DOWNLOADABLE_PLATFORMS: tuple[str, ...] = ("darwin", "linux", "alpine")

# ``uname -m`` spellings → canonical server architecture label
ARCH_LABELS: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "armv7l": "armhf",
    "armv8l": "armhf",
    "arm64": "arm64",
    "aarch64": "arm64",
    "ppc64le": "ppc64le",
    "riscv64": "riscv64",
    "loongarch64": "loong64",
    "s390x": "s390x",
}

# ``$env:PROCESSOR_ARCHITECTURE`` values served by the x64 Windows build
# (ARM64 runs it under emulation).
WINDOWS_X64_ARCHES: tuple[str, ...] = ("AMD64", "IA64", "ARM64")

# ── ABI remediation ─────────────────────────────────────────────

# Runtime versions shipped by the remediation bundle
CUSTOM_GLIBC_VERSION = "2.39"
CUSTOM_GCC_VERSION = "14.2.0"

# Per-user directory (under $HOME) holding the alternate runtime
DEPS_FOLDER_NAME = ".vscode-server-deps"

# Dynamic linker file name per architecture label
GLIBC_LINKERS: dict[str, str] = {
    "x64": "ld-linux-x86-64.so.2",
    "arm64": "ld-linux-aarch64.so.1",
}

# glibc required by current server builds, and the oldest glibc the
# downloadable runtime bundle can be grafted onto.
REQUIRED_GLIBC_VERSION = "2.28"
DOWNLOAD_STRATEGY_FLOOR = "2.17"

# libstdc++ ABI tags the server's native modules link against
REQUIRED_ABI_SYMBOLS: tuple[str, ...] = (
    "GLIBCXX_3.4.25",
    "CXXABI_1.3.11",
)

# Upstream glibc source tarball for the compile-on-target strategy
GLIBC_SOURCE_URL = f"https://ftp.gnu.org/gnu/glibc/glibc-{CUSTOM_GLIBC_VERSION}.tar.gz"

# Container runtimes accepted by the run-in-container strategy
CONTAINER_RUNTIMES: tuple[str, ...] = ("docker", "podman")
