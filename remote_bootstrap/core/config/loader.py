"""
Configuration loader — reads remote-bootstrap.yml into a settings store.

Settings are a flat key/value space addressed by dotted names such as
``remote.SSH.enableCustomGlibc``. The YAML file may nest them
(``remote: {SSH: {enableCustomGlibc: true}}``) or spell them flat;
both load to the same keys. ``RemoteSettings`` is the typed view the
CLI hands to the installer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, ClassVar, Literal

import yaml
from pydantic import BaseModel, ValidationError

from remote_bootstrap.core.models.compat import ContainerMarkerPolicy
from remote_bootstrap.core.models.install import RemediationBundle, ServerIdentity

logger = logging.getLogger(__name__)

# Default config filename
SETTINGS_FILE = "remote-bootstrap.yml"

# Settings that decide whether a custom C runtime is grafted on the server
REMEDIATION_KEYS: tuple[str, ...] = (
    "remote.SSH.enableCustomGlibc",
    "remote.SSH.customGlibcUrl",
    "remote.SSH.customGccUrl",
    "remote.SSH.customPatchelfUrl",
    "remote.SSH.serverDownloadUrl",
)

SettingsListener = Callable[[str, Any, Any], None]

_DEFAULT_CONTAINER_POLICY = ContainerMarkerPolicy()


class ConfigError(Exception):
    """Raised when settings are invalid or missing."""


def flatten_settings(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys; lists stay values."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten_settings(value, name))
        else:
            flat[name] = value
    return flat


def nest_settings(flat: dict[str, Any]) -> dict[str, Any]:
    """Inverse of ``flatten_settings``, for writing YAML back."""
    nested: dict[str, Any] = {}
    for name, value in sorted(flat.items()):
        node = nested
        *parents, leaf = name.split(".")
        for part in parents:
            node = node.setdefault(part, {})
        node[leaf] = value
    return nested


class SettingsStore:
    """Flat settings with change notifications.

    Listeners are called as ``listener(key, old, new)`` after a value
    actually changed. A listener may watch every key or only some.
    """

    def __init__(self, values: dict[str, Any] | None = None, path: Path | None = None):
        self.path = path
        self._values: dict[str, Any] = dict(values or {})
        self._listeners: list[tuple[SettingsListener, frozenset[str] | None]] = []

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def subscribe(
        self,
        listener: SettingsListener,
        keys: Iterable[str] | None = None,
    ) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        entry = (listener, frozenset(keys) if keys is not None else None)
        self._listeners.append(entry)

        def _unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return _unsubscribe

    def set(self, key: str, value: Any) -> bool:
        """Set one key (``None`` removes it). Returns True if the value changed."""
        old = self._values.get(key)
        if old == value:
            return False
        if value is None:
            self._values.pop(key, None)
        else:
            self._values[key] = value
        logger.debug("Setting %s changed", key)
        for listener, keys in list(self._listeners):
            if keys is None or key in keys:
                listener(key, old, value)
        return True

    def update(self, values: dict[str, Any]) -> list[str]:
        """Set several keys; returns the ones that changed."""
        return [key for key, value in values.items() if self.set(key, value)]


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for remote-bootstrap.yml starting from ``start_dir``, walking up."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_settings(path: Path | None = None) -> SettingsStore:
    """Load settings from YAML.

    Args:
        path: Explicit file. If None, searches upward; no file at all
            yields an empty store bound to ``./remote-bootstrap.yml``.

    Raises:
        ConfigError: If the file is unreadable or not a YAML mapping.
    """
    if path is None:
        path = find_settings_file()
        if path is None:
            logger.debug("No %s found — using defaults", SETTINGS_FILE)
            return SettingsStore(path=Path.cwd() / SETTINGS_FILE)

    if not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    return SettingsStore(flatten_settings(data), path=path)


def save_settings(store: SettingsStore, path: Path | None = None) -> Path:
    """Write the store back as nested YAML."""
    target = path or store.path
    if target is None:
        raise ConfigError("No settings file path to save to")
    target.parent.mkdir(parents=True, exist_ok=True)
    content = yaml.safe_dump(nest_settings(store.as_dict()), default_flow_style=False, sort_keys=True)
    target.write_text(content, encoding="utf-8")
    logger.debug("Settings saved to %s", target)
    return target


def remediation_snapshot(store: SettingsStore) -> dict[str, Any]:
    """Current values of the remediation-relevant settings, keyed by short name."""
    return {key.rsplit(".", 1)[-1]: store.get(key) for key in REMEDIATION_KEYS}


class RemoteSettings(BaseModel):
    """Typed view over the settings the installer consumes."""

    enable_custom_glibc: bool = False
    custom_glibc_url: str = ""
    custom_gcc_url: str = ""
    custom_patchelf_url: str = ""
    server_download_url: str = ""
    server_download_url_template: str = ""
    container_marker: str = _DEFAULT_CONTAINER_POLICY.marker
    container_preference_files: tuple[str, ...] = _DEFAULT_CONTAINER_POLICY.preference_files
    container_marker_source: Literal["remote", "local", "both"] = "remote"
    required_glibc_version: str = "2.28"

    server_version: str = ""
    server_commit: str = ""
    server_quality: str = "stable"
    server_release: str = ""
    server_application_name: str = "codium-server"
    server_data_folder_name: str = ".vscodium-server"

    # field → settings key
    KEYS: ClassVar[dict[str, str]] = {
        "enable_custom_glibc": "remote.SSH.enableCustomGlibc",
        "custom_glibc_url": "remote.SSH.customGlibcUrl",
        "custom_gcc_url": "remote.SSH.customGccUrl",
        "custom_patchelf_url": "remote.SSH.customPatchelfUrl",
        "server_download_url": "remote.SSH.serverDownloadUrl",
        "server_download_url_template": "remote.SSH.serverDownloadUrlTemplate",
        "container_marker": "remote.SSH.containerMarker",
        "container_preference_files": "remote.SSH.containerPreferenceFiles",
        "container_marker_source": "remote.SSH.containerMarkerSource",
        "required_glibc_version": "remote.SSH.requiredGlibcVersion",
        "server_version": "server.version",
        "server_commit": "server.commit",
        "server_quality": "server.quality",
        "server_release": "server.release",
        "server_application_name": "server.applicationName",
        "server_data_folder_name": "server.dataFolderName",
    }

    @classmethod
    def from_store(cls, store: SettingsStore) -> RemoteSettings:
        """Build the typed view; unset or ``null`` keys fall back to defaults.

        Raises:
            ConfigError: If a value has the wrong type.
        """
        data = {
            field: store.get(key)
            for field, key in cls.KEYS.items()
            if store.get(key) is not None
        }
        for field in ("server_version", "server_commit", "server_release"):
            if field in data:
                data[field] = str(data[field])
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e

    def remediation_bundle(self) -> RemediationBundle:
        return RemediationBundle(
            enabled=self.enable_custom_glibc,
            glibc_url=self.custom_glibc_url,
            gcc_url=self.custom_gcc_url,
            patchelf_url=self.custom_patchelf_url,
        )

    def container_policy(self) -> ContainerMarkerPolicy:
        return ContainerMarkerPolicy(
            marker=self.container_marker,
            preference_files=tuple(self.container_preference_files),
            source=self.container_marker_source,
        )

    def server_identity(self) -> ServerIdentity:
        """Raises ConfigError when ``server.version`` / ``server.commit`` are unset."""
        if not self.server_version or not self.server_commit:
            raise ConfigError(
                "server.version and server.commit must be set in "
                f"{SETTINGS_FILE} (or passed on the command line)"
            )
        return ServerIdentity(
            version=self.server_version,
            commit=self.server_commit,
            quality=self.server_quality,
            release=self.server_release or None,
            application_name=self.server_application_name,
            data_folder_name=self.server_data_folder_name,
            download_url_template=self.server_download_url_template or None,
        )
