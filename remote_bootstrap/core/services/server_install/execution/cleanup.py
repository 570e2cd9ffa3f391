"""
L4 Execution — Server data directory teardown.

The teardown half of a reinstall: wipe every server data directory so
the next install starts from a fresh download.
"""

from __future__ import annotations

import logging

from remote_bootstrap.adapters.base import Transport
from remote_bootstrap.core.errors import ServerBootstrapError
from remote_bootstrap.core.services.server_install.domain.quoting import check_folder_name

logger = logging.getLogger(__name__)


def delete_remote_server_dirs(transport: Transport, folder_names: list[str] | tuple[str, ...]) -> list[str]:
    """Run ``rm -rf "$HOME/<folder>"`` for each folder.

    Failures are logged per folder and never raised, so one stuck
    directory does not block the rest.

    Returns:
        Folder names that were removed successfully.
    """
    removed: list[str] = []
    for folder in folder_names:
        try:
            cmd = f'rm -rf "$HOME/{check_folder_name(folder)}"'
            logger.info("%s: %s", transport.name, cmd)
            result = transport.execute(cmd)
        except ServerBootstrapError as e:
            logger.error("%s: failed to delete $HOME/%s: %s", transport.name, folder, e)
            continue

        if result.stdout:
            logger.debug("%s: [stdout] %s", transport.name, result.stdout.strip())
        if result.stderr:
            logger.debug("%s: [stderr] %s", transport.name, result.stderr.strip())
        if result.ok:
            removed.append(folder)
        else:
            logger.error(
                "%s: failed to delete $HOME/%s (exit %s)",
                transport.name, folder, result.exit_status,
            )
    return removed
