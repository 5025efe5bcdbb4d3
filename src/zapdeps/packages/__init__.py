"""Library discovery and indexing for Zapdeps.

This module scans library folders and maps header names to the libraries
that provide them.
"""

from .library import Library, LibraryScanError, load_library, scan_library_folders
from .library_index import HeaderResolver, LibraryIndex

__all__ = [
    "Library",
    "LibraryScanError",
    "load_library",
    "scan_library_folders",
    "LibraryIndex",
    "HeaderResolver",
]
