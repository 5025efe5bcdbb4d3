"""Library discovery for include resolution.

A library is a folder inside one of the configured library roots. Two layouts
are recognized:

- Modern (1.5) layout: library.properties plus a src/ folder. Headers and
  sources live under src/.
- Legacy layout: anything else. Headers live in the library root, with an
  optional utility/ folder that is also placed on the include path.

Libraries are immutable once scanned. Identity is the library folder, so a
user library may share a name with a bundled one.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Tuple

from ..config.library_properties import LibraryProperties, LibraryPropertiesError


HEADER_EXTENSIONS = frozenset({".h", ".hh", ".hpp", ".hxx"})

# Folders that never contain a library
EXCLUDED_DIRS = {".git", ".svn", "__pycache__", "node_modules"}

ALL_ARCHITECTURES = "*"


class LibraryScanError(Exception):
    """Raised when a library folder cannot be scanned."""
    pass


@dataclass(frozen=True, eq=False)
class Library:
    """A library that may provide headers to a sketch.

    Attributes:
        name: Library name, taken from the folder name
        root_folder: Library folder (identity)
        source_folder: Folder holding the library headers and sources
        utility_folder: Extra include folder for legacy libraries
        is_legacy: True when the library lacks the 1.5 layout
        provided_headers: Header file names directly under the source/utility folders
        architectures: Supported architectures, ("*",) for all
        search_root_index: Position of the library root this was found under
        properties: Raw library.properties values (empty for legacy)
    """

    name: str
    root_folder: Path
    source_folder: Path
    utility_folder: Optional[Path] = None
    is_legacy: bool = True
    provided_headers: FrozenSet[str] = frozenset()
    architectures: Tuple[str, ...] = (ALL_ARCHITECTURES,)
    search_root_index: int = 0
    properties: dict = field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Library):
            return NotImplemented
        return self.root_folder == other.root_folder

    def __hash__(self) -> int:
        return hash(self.root_folder)

    def __repr__(self) -> str:
        return f"Library(name={self.name!r}, root_folder={str(self.root_folder)!r})"

    @property
    def include_folders(self) -> List[Path]:
        """Folders this library contributes to the include path."""
        folders = [self.source_folder]
        if self.utility_folder is not None:
            folders.append(self.utility_folder)
        return folders

    @property
    def is_architecture_agnostic(self) -> bool:
        return ALL_ARCHITECTURES in self.architectures

    def architecture_rank(self, architecture: Optional[str]) -> Optional[int]:
        """
        Rank how well this library matches a target architecture.

        Args:
            architecture: Target architecture (e.g. "avr"), or None for any

        Returns:
            0 for an explicit match, 1 for an architecture-agnostic library,
            None if the library excludes the architecture
        """
        if architecture is None:
            return 0
        target = architecture.lower()
        if any(arch.lower() == target for arch in self.architectures):
            return 0
        if self.is_architecture_agnostic:
            return 1
        return None

    def provides(self, header_name: str) -> bool:
        return header_name in self.provided_headers


def load_library(folder: Path, search_root_index: int = 0) -> Library:
    """
    Load a single library from its folder.

    Args:
        folder: Library folder
        search_root_index: Priority of the root the folder belongs to

    Returns:
        Library instance

    Raises:
        LibraryScanError: If the folder does not exist or metadata is unreadable
    """
    folder = Path(folder).absolute()
    if not folder.is_dir():
        raise LibraryScanError(f"Library folder not found: {folder}")

    properties_file = folder / LibraryProperties.FILENAME
    src_folder = folder / "src"

    properties: Optional[LibraryProperties] = None
    if properties_file.is_file():
        try:
            properties = LibraryProperties.from_file(properties_file)
        except LibraryPropertiesError as e:
            raise LibraryScanError(f"Invalid library '{folder.name}': {e}") from e

    if properties is not None and src_folder.is_dir():
        source_folder = src_folder
        utility_folder = None
        is_legacy = False
    else:
        source_folder = folder
        utility = folder / "utility"
        utility_folder = utility if utility.is_dir() else None
        is_legacy = True

    headers = set(_find_headers(source_folder))
    if utility_folder is not None:
        headers.update(_find_headers(utility_folder))

    return Library(
        name=folder.name,
        root_folder=folder,
        source_folder=source_folder,
        utility_folder=utility_folder,
        is_legacy=is_legacy,
        provided_headers=frozenset(headers),
        architectures=tuple(properties.architectures) if properties else (ALL_ARCHITECTURES,),
        search_root_index=search_root_index,
        properties=dict(properties.values) if properties else {},
    )


def scan_library_folders(library_folders: Iterable[Path]) -> List[Library]:
    """
    Scan configured library roots for libraries.

    Roots are visited in the order given, and the subfolders of each root in
    lexical order, so the result never depends on filesystem enumeration.

    Args:
        library_folders: Library roots, highest priority first

    Returns:
        All libraries found, in scan order
    """
    libraries: List[Library] = []
    for index, root in enumerate(library_folders):
        root = Path(root)
        if not root.is_dir():
            logging.warning(f"Library folder does not exist, skipping: {root}")
            continue

        subfolders = sorted(
            (entry for entry in root.iterdir() if entry.is_dir()),
            key=lambda entry: entry.name
        )
        for subfolder in subfolders:
            if subfolder.name in EXCLUDED_DIRS or subfolder.name.startswith("."):
                continue
            libraries.append(load_library(subfolder, search_root_index=index))

        logging.debug(f"Scanned library root {root}")

    return libraries


def _find_headers(folder: Path) -> List[str]:
    """Header file names directly inside a folder."""
    return sorted(
        entry.name
        for entry in folder.iterdir()
        if entry.is_file() and entry.suffix.lower() in HEADER_EXTENSIONS
    )
