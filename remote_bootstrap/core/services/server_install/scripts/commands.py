"""
L2 Rendering — Wrapping a rendered script into one remote command line.

POSIX hosts get the script inline through ``bash -c``, which works
whatever the login shell is (fish has no heredocs). Windows hosts get
the script written to ``<data dir>\\install\\<commit>.ps1`` and run
from there, with the write step spelled for the detected shell.
"""

from __future__ import annotations

import re

from remote_bootstrap.core.errors import ScriptGenerationError
from remote_bootstrap.core.services.server_install.data.constants import (
    CMD_MAX_COMMAND_LENGTH,
)
from remote_bootstrap.core.services.server_install.domain.quoting import (
    check_folder_name,
    sh_single_quote_wrap,
)

WINDOWS_SHELLS: tuple[str, ...] = ("powershell", "bash", "cmd")


def posix_command(script: str, shell: str = "bash") -> str:
    """``bash -c '<script>'`` with inner single quotes rewritten."""
    return f"{shell} -c {sh_single_quote_wrap(script)}"


def windows_install_paths(data_folder_name: str, commit: str) -> tuple[str, str]:
    """Return ``(install_dir, script_path)`` in PowerShell ``$HOME`` form."""
    install_dir = f"$HOME\\{check_folder_name(data_folder_name)}\\install"
    return install_dir, f"{install_dir}\\{check_folder_name(commit)}.ps1"


def cmd_escape_script(script: str) -> str:
    """Squash a PowerShell script into a single ``powershell "echo '...'"`` argument."""
    text = script.strip()
    text = re.sub(r"^#.*$", "", text, flags=re.MULTILINE)   # comments
    text = re.sub(r"\n{2,}", "\n", text)                    # empty lines
    text = re.sub(r"^\s*", "", text, flags=re.MULTILINE)    # indentation
    text = text.replace('"', '"""')
    text = text.replace("'", "''")
    text = text.replace(">", "^>")
    return text.replace("\n", "'`n'")


def windows_command(script: str, shell: str, data_folder_name: str, commit: str) -> str:
    """Build the write-then-run command for a Windows host.

    Raises:
        ScriptGenerationError: For an unknown shell, or when the cmd
            command line would exceed cmd.exe's length limit.
    """
    install_dir, script_path = windows_install_paths(data_folder_name, commit)

    if shell == "powershell":
        return (
            f"md -Force {install_dir}; "
            f"echo @'\n{script}\n'@ | Set-Content {script_path}; "
            f'powershell -ExecutionPolicy ByPass -File "{script_path}"'
        )

    if shell == "bash":
        quoted = script.replace("'", "'\"'\"'")
        return (
            f"mkdir -p {install_dir.replace(chr(92), '/')} && "
            f"echo '\n{quoted}\n' > {script_path.replace(chr(92), '/')} && "
            f'powershell -ExecutionPolicy ByPass -File "{script_path}"'
        )

    if shell == "cmd":
        cmd_path = script_path.replace("$HOME", "%USERPROFILE%")
        command = (
            f'powershell "md -Force {install_dir}" && '
            f"powershell \"echo '{cmd_escape_script(script)}'\" > {cmd_path} && "
            f'powershell -ExecutionPolicy ByPass -File "{cmd_path}"'
        )
        if len(command) > CMD_MAX_COMMAND_LENGTH:
            raise ScriptGenerationError(
                f"Command line too long for cmd.exe "
                f"({len(command)} > {CMD_MAX_COMMAND_LENGTH} characters)"
            )
        return command

    raise ScriptGenerationError(f"Not supported shell: {shell}")
