"""
A local package-linking workflow for node packages.

Packages are published from their source directory into a shared local
store, added into consumer projects as copies or symlinks, and kept up to
date by pushing changes to every project that uses them.
"""

__all__ = [
    "add",
    "catalog",
    "check",
    "config",
    "exceptions",
    "lockfile",
    "manifest",
    "remove",
    "store",
    "sync_dir",
    "update",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
