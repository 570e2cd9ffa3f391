"""
L1 Domain — Install script result block parsing (pure).

The generated scripts print, anywhere in their output:

    <id>: start
    exitCode==0==
    listeningOn==43125==
    ...
    <id>: end

Only the block carrying the current attempt's id is considered, so
output from an earlier attempt (or unrelated noise) never leaks in.
No I/O, no subprocess.
"""

from __future__ import annotations

from remote_bootstrap.core.errors import ParseError, RemoteExecutionFailure
from remote_bootstrap.core.models.install import InstallResult

# Fields every successful result block must carry
REQUIRED_FIELDS: tuple[str, ...] = (
    "exitCode",
    "listeningOn",
    "connectionToken",
    "logFile",
)

# Fields mapped onto InstallResult attributes
_FIELD_MAP: dict[str, str] = {
    "listeningOn": "listening_on",
    "connectionToken": "connection_token",
    "logFile": "log_file",
    "osReleaseId": "os_release_id",
    "arch": "arch",
    "platform": "platform",
    "tmpDir": "tmp_dir",
}


def extract_result_block(stdout: str, attempt_id: str) -> dict[str, str]:
    """Return the ``key==value==`` pairs between this attempt's markers.

    Raises:
        ParseError: When either marker is missing.
    """
    start_marker = f"{attempt_id}: start"
    end_marker = f"{attempt_id}: end"

    start = stdout.find(start_marker)
    if start < 0:
        raise ParseError(f"Result block start marker not found for attempt {attempt_id}")
    body_start = start + len(start_marker)
    end = stdout.find(end_marker, body_start)
    if end < 0:
        raise ParseError(f"Result block end marker not found for attempt {attempt_id}")

    fields: dict[str, str] = {}
    for line in stdout[body_start:end].splitlines():
        line = line.strip()
        if "==" not in line:
            continue
        key, _, value = line.partition("==")
        if value.endswith("=="):
            value = value[:-2]
        fields[key.strip()] = value
    return fields


def parse_install_output(
    stdout: str,
    attempt_id: str,
    env_variables: list[str] | tuple[str, ...] = (),
) -> InstallResult:
    """Parse the result block of one install attempt.

    Raises:
        ParseError: Markers missing, a required field absent, or a
            successful block without a listening address.
        RemoteExecutionFailure: The block reports a non-zero exit code.
    """
    fields = extract_result_block(stdout, attempt_id)

    raw_code = fields.get("exitCode")
    if raw_code is None:
        raise ParseError("Result block has no exitCode")
    try:
        exit_code = int(raw_code.strip())
    except ValueError as e:
        raise ParseError(f"Result block has a non-numeric exitCode: {raw_code!r}") from e

    if exit_code != 0:
        raise RemoteExecutionFailure(exit_code, fields.get("errorMsg", "").strip())

    missing = [f for f in REQUIRED_FIELDS if f not in fields]
    if missing:
        raise ParseError(f"Result block is missing field(s): {', '.join(missing)}")

    listening_raw = fields["listeningOn"].strip()
    if not listening_raw:
        raise ParseError("Install reported success but no listening address")
    listening_on: int | str = int(listening_raw) if listening_raw.isdigit() else listening_raw

    values = {attr: fields.get(key, "").strip() for key, attr in _FIELD_MAP.items()}
    values["listening_on"] = listening_on

    env = {name: fields[name] for name in env_variables if name in fields}

    return InstallResult(exit_code=exit_code, env=env, **values)
