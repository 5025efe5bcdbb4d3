"""
Include discovery for sketches.

The include finder runs the compiler probe, maps every header it could not
find to a library, puts that library on the include path and probes again.
Newly added libraries are themselves scanned by the next probe, so the loop
computes the transitive closure of required libraries. It stops when the
compiler finds every header (success) or when a header cannot be provided
(failure).

Every iteration that does not finish the run imports at least one library,
so a pool of N libraries needs at most N + 1 probes.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from ..packages.library import Library
from ..packages.library_index import HeaderResolver
from .compiler_probe import ICompilerProbe
from .diagnostics import MissingHeader
from .errors import StalledResolutionError, UnresolvableHeaderError


class DiscoveryState(Enum):
    """States of a discovery run."""

    SCANNING = "scanning"
    RESOLVING = "resolving"
    STABLE = "stable"
    FAILED = "failed"


@dataclass
class ResolutionState:
    """Mutable state threaded through the discovery loop.

    Attributes:
        include_folders: Include folders in insertion order, no duplicates
        imported_libraries: Libraries pulled in, in first-discovered order
        queue: Libraries imported but not yet scanned by a probe
        includes: Resolved dependency paths and resolved header names
    """

    include_folders: List[Path] = field(default_factory=list)
    imported_libraries: List[Library] = field(default_factory=list)
    queue: List[Library] = field(default_factory=list)
    includes: List[str] = field(default_factory=list)

    def add_include_folder(self, folder: Path) -> bool:
        folder = Path(folder)
        if folder in self.include_folders:
            return False
        self.include_folders.append(folder)
        return True

    def add_include(self, include: str) -> None:
        if include not in self.includes:
            self.includes.append(include)

    def is_imported(self, library: Library) -> bool:
        return library in self.imported_libraries

    def import_library(self, library: Library) -> bool:
        """
        Import a library and put its folders on the include path.

        Returns:
            True if the library was not imported before
        """
        if self.is_imported(library):
            return False
        self.imported_libraries.append(library)
        self.queue.append(library)
        for folder in library.include_folders:
            self.add_include_folder(folder)
        return True

    def imported_provider(self, header_name: str) -> Optional[Library]:
        """Return the imported library providing a header, if any."""
        for library in self.imported_libraries:
            if library.provides(header_name):
                return library
        return None


@dataclass
class DiscoveryResult:
    """Result of a successful discovery run."""

    include_folders: List[Path]
    imported_libraries: List[Library]
    includes: List[str]
    iterations: int


class IncludeFinder:
    """
    Finds the libraries a sketch needs by probing the compiler.

    Example usage:
        finder = IncludeFinder(CompilerProbe(config), HeaderResolver(index, "avr"))
        result = finder.find(Path("build/sketch/Blink.ino.cpp"))
        for library in result.imported_libraries:
            print(library.name, library.source_folder)
    """

    def __init__(
        self,
        probe: ICompilerProbe,
        resolver: HeaderResolver,
        max_iterations: Optional[int] = None
    ):
        """
        Initialize include finder.

        Args:
            probe: Compiler probe to run each iteration
            resolver: Header resolver backed by the library index
            max_iterations: Override the iteration bound (default: pool size + 1)
        """
        self.probe = probe
        self.resolver = resolver
        self.max_iterations = max_iterations
        self.state = DiscoveryState.SCANNING

    def find(
        self,
        sketch_main_file: Path,
        initial_include_folders: Iterable[Path] = ()
    ) -> DiscoveryResult:
        """
        Run include discovery to a fixpoint.

        Args:
            sketch_main_file: Merged primary translation unit
            initial_include_folders: Folders always on the include path
                (e.g., the sketch build folder), kept first

        Returns:
            DiscoveryResult with include folders and imported libraries

        Raises:
            ProbeError: If the compiler fails for a reason other than missing headers
            ParseError: If the compiler's dependency output is malformed
            UnresolvableHeaderError: If no library provides a missing header
            StalledResolutionError: If an iteration makes no progress
        """
        sketch_main_file = Path(sketch_main_file)
        state = ResolutionState()
        for folder in initial_include_folders:
            state.add_include_folder(folder)

        limit = self.max_iterations
        if limit is None:
            limit = len(self.resolver.index) + 1

        iterations = 0
        self.state = DiscoveryState.SCANNING
        try:
            while True:
                if iterations >= limit:
                    raise StalledResolutionError(
                        [],
                        message=f"Include discovery did not converge within {limit} iterations"
                    )
                iterations += 1

                self.state = DiscoveryState.SCANNING
                logging.info(
                    f"Include discovery iteration {iterations}: "
                    f"{len(state.include_folders)} include folders"
                )
                result = self.probe.probe(list(state.include_folders), sketch_main_file)

                for path in result.dependency_paths:
                    state.add_include(str(path))
                state.queue.clear()

                if result.complete:
                    self.state = DiscoveryState.STABLE
                    logging.info(
                        f"Include discovery finished after {iterations} iterations: "
                        f"{len(state.imported_libraries)} libraries"
                    )
                    return DiscoveryResult(
                        include_folders=list(state.include_folders),
                        imported_libraries=list(state.imported_libraries),
                        includes=list(state.includes),
                        iterations=iterations
                    )

                self.state = DiscoveryState.RESOLVING
                self._resolve_missing(state, result.missing_headers, sketch_main_file)
        except Exception:
            self.state = DiscoveryState.FAILED
            raise

    def _resolve_missing(
        self,
        state: ResolutionState,
        missing_headers: List[MissingHeader],
        sketch_main_file: Path
    ) -> None:
        """Import a library for each missing header, in compiler order."""
        unsatisfied: List[str] = []

        for missing in missing_headers:
            header = missing.name

            provider = state.imported_provider(header)
            if provider is not None:
                if provider not in state.queue:
                    # Imported by an earlier iteration, yet still not found
                    unsatisfied.append(header)
                continue

            if self.resolver.is_platform_header(header):
                unsatisfied.append(header)
                continue

            excluded = [library.name for library in state.imported_libraries]
            candidates = self.resolver.resolve(header, excluded)
            if not candidates:
                including_file = missing.including_file or sketch_main_file
                logging.error(f"No library provides {header} (included from {including_file})")
                raise UnresolvableHeaderError(header, including_file)

            library = candidates[0]
            state.import_library(library)
            state.add_include(header)
            logging.info(f"Using library {library.name} in folder: {library.root_folder} for {header}")
            if len(candidates) > 1:
                logging.debug(
                    f"Multiple libraries were found for {header}; not used: "
                    + ", ".join(str(other.root_folder) for other in candidates[1:])
                )

        if not state.queue:
            raise StalledResolutionError(unsatisfied)
