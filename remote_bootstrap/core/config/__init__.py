"""Configuration — settings file loading and typed views."""

from remote_bootstrap.core.config.loader import (  # noqa: F401
    REMEDIATION_KEYS,
    SETTINGS_FILE,
    ConfigError,
    RemoteSettings,
    SettingsStore,
    find_settings_file,
    flatten_settings,
    load_settings,
    nest_settings,
    remediation_snapshot,
    save_settings,
)
