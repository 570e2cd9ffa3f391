"""Remote Bootstrap — install and launch a remote extension-host server over SSH."""

__version__ = "0.1.0"
