"""
L2 Rendering — POSIX (bash) install and runtime-fix scripts.

Every value reaching a template slot is validated or escaped here for
the double-quoted bash context it lands in. The rendered text never
contains the connection token: the script generates it on the host.
"""

from __future__ import annotations

from remote_bootstrap.core.models.install import InstallOptions, RemediationBundle
from remote_bootstrap.core.services.server_install.data.constants import (
    ARCH_LABELS,
    CUSTOM_GCC_VERSION,
    CUSTOM_GLIBC_VERSION,
    DEPS_FOLDER_NAME,
    DOWNLOAD_CONNECT_TIMEOUT_S,
    DOWNLOAD_RETRIES,
    DOWNLOADABLE_PLATFORMS,
    GLIBC_LINKERS,
    GLIBC_SOURCE_URL,
    KERNEL_PLATFORMS,
    LISTEN_POLL_ATTEMPTS,
    LISTEN_POLL_INTERVAL_S,
    LISTENING_MARKER,
    SERVER_START_FLAGS,
    SERVER_TAIL_FLAGS,
)
from remote_bootstrap.core.services.server_install.domain.quoting import (
    check_env_name,
    check_extension_id,
    check_folder_name,
    check_text,
    sh_double_quoted,
)
from remote_bootstrap.core.services.server_install.domain.url_template import (
    resolve_download_url,
)
from remote_bootstrap.core.services.server_install.scripts.template import (
    render_template,
)


def _case_arms(mapping: dict[str, list[str]], variable: str) -> str:
    """Render ``case`` arms assigning ``variable`` for each group of spellings."""
    arms = []
    for value, spellings in mapping.items():
        arms.append(
            f"    {' | '.join(spellings)})\n"
            f'        {variable}="{value}"\n'
            f"        ;;"
        )
    return "\n".join(arms)


def _group_by_value(table: dict[str, str]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for key, value in table.items():
        grouped.setdefault(value, []).append(key)
    return grouped


def kernel_case_arms() -> str:
    return _case_arms(_group_by_value(KERNEL_PLATFORMS), "PLATFORM")


def arch_case_arms() -> str:
    return _case_arms(_group_by_value(ARCH_LABELS), "SERVER_ARCH")


def linker_case_arms() -> str:
    """``uname -m`` spellings → dynamic linker, for architectures with a runtime bundle."""
    grouped = _group_by_value(ARCH_LABELS)
    return _case_arms(
        {linker: grouped[label] for label, linker in GLIBC_LINKERS.items()},
        "GLIBC_LINKER",
    )


def _common_download_slots() -> dict[str, str]:
    return {
        "DOWNLOAD_RETRIES": str(DOWNLOAD_RETRIES),
        "CONNECT_TIMEOUT": str(DOWNLOAD_CONNECT_TIMEOUT_S),
        "DEPS_FOLDER": DEPS_FOLDER_NAME,
        "GLIBC_VERSION": CUSTOM_GLIBC_VERSION,
        "GCC_VERSION": CUSTOM_GCC_VERSION,
    }


def render_remediation_block(bundle: RemediationBundle) -> str:
    """Bash fragment installing glibc, the gcc runtime and patchelf.

    Components already present under ``$HOME/<deps dir>`` are skipped.
    The fragment calls ``fail`` on error, which the enclosing script
    must define, and sets ``DEPS_CHANGED`` to 1 when it installed
    anything.
    """
    slots = _common_download_slots()
    slots.update({
        "GLIBC_URL": sh_double_quoted(check_text(bundle.glibc_url, "glibc URL")),
        "GCC_URL": sh_double_quoted(check_text(bundle.gcc_url, "gcc URL")),
        "PATCHELF_URL": sh_double_quoted(check_text(bundle.patchelf_url, "patchelf URL")),
        "LINKER_CASES": linker_case_arms(),
    })
    return render_template("remediation.sh", {}, slots).strip("\n")


def render_runtime_fix_script(bundle: RemediationBundle) -> str:
    """Standalone script running only the remediation block."""
    return render_template(
        "fix_runtime.sh", {}, {"REMEDIATION_BLOCK": render_remediation_block(bundle)},
    )


def render_compile_script(source_url: str = GLIBC_SOURCE_URL) -> str:
    """Standalone script building glibc from source on the host."""
    slots = _common_download_slots()
    slots["SOURCE_URL"] = sh_double_quoted(check_text(source_url, "glibc source URL"))
    return render_template("compile_glibc.sh", {}, slots)


def _result_env_lines(env_variables: tuple[str, ...], indent: str = "    ") -> str:
    return "\n".join(
        f'{indent}echo "{name}==${name}=="' for name in map(check_env_name, env_variables)
    )


def render_bash_script(options: InstallOptions) -> str:
    """Render the self-contained POSIX install script for one attempt.

    Raises:
        ScriptGenerationError: On an invalid slot value or URL template.
    """
    extensions = " ".join(
        f"--install-extension {check_extension_id(ext)}" for ext in options.extension_ids
    )

    # os / arch are only known on the host; everything else is filled in now
    url = resolve_download_url(
        options.download_url_template,
        explicit_url=options.download_url,
        quality=options.quality,
        version=options.version,
        commit=options.commit,
        release=options.release,
    )
    check_text(url, "download URL")

    remediation = options.remediation.enabled
    features = {
        "socket_path": options.use_socket_path,
        "url_template": not options.download_url,
        "remediation": remediation,
    }

    slots = {
        "ATTEMPT_ID": options.id,
        "DISTRO_VERSION": sh_double_quoted(check_text(options.version, "version")),
        "DISTRO_COMMIT": sh_double_quoted(check_folder_name(options.commit)),
        "DISTRO_QUALITY": sh_double_quoted(check_text(options.quality, "quality")),
        "DISTRO_RELEASE": sh_double_quoted(check_text(options.release or "", "release")),
        "SERVER_APP_NAME": sh_double_quoted(check_folder_name(options.server_application_name)),
        "SERVER_INITIAL_EXTENSIONS": extensions,
        "SERVER_DATA_FOLDER": sh_double_quoted(check_folder_name(options.server_data_folder_name)),
        "DOWNLOAD_URL": sh_double_quoted(url),
        "RESULT_ENV_LINES": _result_env_lines(options.env_variables),
        "KERNEL_CASES": kernel_case_arms(),
        "ARCH_CASES": arch_case_arms(),
        "DOWNLOADABLE_PLATFORMS": " | ".join(DOWNLOADABLE_PLATFORMS),
        "DOWNLOAD_RETRIES": str(DOWNLOAD_RETRIES),
        "CONNECT_TIMEOUT": str(DOWNLOAD_CONNECT_TIMEOUT_S),
        "START_FLAGS": SERVER_START_FLAGS,
        "TAIL_FLAGS": SERVER_TAIL_FLAGS,
        "LISTENING_MARKER": LISTENING_MARKER,
        "LISTEN_POLL_ATTEMPTS": str(LISTEN_POLL_ATTEMPTS),
        "LISTEN_POLL_INTERVAL": str(LISTEN_POLL_INTERVAL_S),
        "REMEDIATION_BLOCK": render_remediation_block(options.remediation) if remediation else "",
    }
    return render_template("install.sh", features, slots)
