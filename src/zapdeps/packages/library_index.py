"""Header to library index and resolver.

The index is built once per run from the configured library roots and never
changes afterwards, so it can be shared between discovery runs for different
sketches. Candidate order for a header is fully determined by the priority
rules below, never by the order folders were enumerated in:

1. A library whose name matches the header stem (Servo/Servo.h) comes first
2. Libraries from earlier configured roots come before later ones
3. Remaining ties are broken by library folder path

The resolver adds per-run concerns on top: the target architecture, headers
already satisfied by the platform core, and libraries already imported.
"""

import logging
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .library import HEADER_EXTENSIONS, Library, scan_library_folders


def priority_key(header_name: str, library: Library) -> Tuple[int, int, str]:
    """
    Sort key ranking libraries that provide the same header.

    Args:
        header_name: Header being resolved (e.g., "Servo.h")
        library: Candidate library

    Returns:
        Tuple sorting best candidates first
    """
    stem = PurePosixPath(header_name).stem.lower()
    name_match = 0 if library.name.lower() == stem else 1
    return (name_match, library.search_root_index, str(library.root_folder))


class LibraryIndex:
    """Read-only catalog mapping header names to candidate libraries.

    Example usage:
        index = LibraryIndex.build([Path("~/Arduino/libraries"), Path("libraries")])
        index.candidates("Servo.h")   # (Library(name='Servo', ...), ...)
    """

    def __init__(self, libraries: Iterable[Library]):
        """
        Initialize the index.

        Args:
            libraries: Libraries to index, in any order
        """
        self._libraries: Tuple[Library, ...] = tuple(
            sorted(set(libraries), key=lambda lib: (lib.search_root_index, str(lib.root_folder)))
        )

        providers: Dict[str, List[Library]] = {}
        for library in self._libraries:
            for header in library.provided_headers:
                providers.setdefault(header, []).append(library)

        self._index: Mapping[str, Tuple[Library, ...]] = MappingProxyType({
            header: tuple(sorted(libs, key=lambda lib, h=header: priority_key(h, lib)))
            for header, libs in providers.items()
        })

    @classmethod
    def build(cls, library_folders: Sequence[Path]) -> "LibraryIndex":
        """
        Scan library roots and build an index.

        Args:
            library_folders: Library roots, highest priority first

        Returns:
            LibraryIndex instance
        """
        libraries = scan_library_folders(library_folders)
        index = cls(libraries)
        logging.info(
            f"Indexed {len(index)} libraries providing {len(index.headers)} headers"
        )
        return index

    @property
    def libraries(self) -> Tuple[Library, ...]:
        """All indexed libraries."""
        return self._libraries

    @property
    def headers(self) -> FrozenSet[str]:
        """All header names provided by some library."""
        return frozenset(self._index.keys())

    def candidates(self, header_name: str) -> Tuple[Library, ...]:
        """
        Get every library providing a header, best first.

        Args:
            header_name: Header file name

        Returns:
            Tuple of libraries in priority order (empty if none)
        """
        return self._index.get(header_name, ())

    def __len__(self) -> int:
        return len(self._libraries)

    def __contains__(self, header_name: object) -> bool:
        return header_name in self._index


class HeaderResolver:
    """Maps missing header names to libraries for one target.

    Example usage:
        resolver = HeaderResolver(index, architecture="avr",
                                  platform_folders=[core_dir, variant_dir])
        resolver.resolve("Servo.h", excluded_library_names=["Wire"])
    """

    def __init__(
        self,
        index: LibraryIndex,
        architecture: Optional[str] = None,
        platform_folders: Sequence[Path] = ()
    ):
        """
        Initialize header resolver.

        Args:
            index: Library index
            architecture: Target architecture (None accepts every library)
            platform_folders: Hardware core folders whose headers the toolchain
                already provides
        """
        self.index = index
        self.architecture = architecture
        self.platform_folders = [Path(folder) for folder in platform_folders]
        self.platform_headers = self._scan_platform_headers(self.platform_folders)

    def is_platform_header(self, header_name: str) -> bool:
        """True if the platform core already provides the header."""
        return header_name in self.platform_headers

    def resolve(
        self,
        header_name: str,
        excluded_library_names: Iterable[str] = ()
    ) -> List[Library]:
        """
        Find candidate libraries for a missing header.

        Libraries built for the target architecture come before
        architecture-agnostic ones; libraries excluding the architecture
        are never returned.

        Args:
            header_name: Header name as written in the #include
            excluded_library_names: Names of libraries that must not be returned

        Returns:
            Candidate libraries, best first (empty if none qualifies)
        """
        if self.is_platform_header(header_name):
            return []

        excluded = {name.lower() for name in excluded_library_names}
        ranked: List[Tuple[int, Library]] = []
        for library in self.index.candidates(header_name):
            if library.name.lower() in excluded:
                continue
            rank = library.architecture_rank(self.architecture)
            if rank is None:
                logging.debug(
                    f"Skipping {library.name} for {header_name}: "
                    f"does not support architecture {self.architecture}"
                )
                continue
            ranked.append((rank, library))

        # Stable sort keeps the index priority order within each tier
        ranked.sort(key=lambda item: item[0])
        return [library for _, library in ranked]

    @staticmethod
    def _scan_platform_headers(folders: Sequence[Path]) -> FrozenSet[str]:
        headers = set()
        for folder in folders:
            if not folder.is_dir():
                continue
            for entry in folder.iterdir():
                if entry.is_file() and entry.suffix.lower() in HEADER_EXTENSIONS:
                    headers.add(entry.name)
        return frozenset(headers)
