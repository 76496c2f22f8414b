"""
The store module manages the shared local package store.

- `store.Store` locates published package versions.
- `installations` records which projects use which packages.
- `manager` provides read only listings and statistics of the store.
- `publish` copies a package from its source directory into the store.
"""

from .installations import Installation
from .manager import StorePackageInfo, StoreStats
from .store import Store

__all__ = [
    "Store",
    "Installation",
    "StorePackageInfo",
    "StoreStats",
]
