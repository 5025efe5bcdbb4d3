"""Build context shared between build stages.

Each stage reads some fields and writes others. The fields are declared here
instead of living in a string-keyed dictionary, so a missing input is caught
when the pipeline starts a stage rather than deep inside it.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config.fqbn import FQBN
from ..packages.library import Library
from ..packages.library_index import LibraryIndex
from .compiler_probe import CompilerConfig


@dataclass
class BuildContext:
    """Inputs and outputs of the include discovery stages.

    Inputs:
        sketch_main_file: Merged primary translation unit
        hardware_folders: Platform core/variant folders (toolchain headers)
        library_folders: Library roots, highest priority first
        fqbn: Target board (provides the architecture)
        architecture: Target architecture, overrides the FQBN's
        compiler: Compiler invocation configuration
        diagnostics_dialect: Compiler diagnostic dialect ('gcc' or 'clang')
        sketch_include_folders: Folders always searched first

    Outputs:
        library_index: Index built from library_folders (may be pre-seeded)
        include_folders: Final ordered include folders
        imported_libraries: Libraries the sketch needs, first-discovered order
        includes: Resolved dependency paths and resolved header names
        iterations: Number of compiler probes the discovery took
    """

    sketch_main_file: Optional[Path] = None
    hardware_folders: List[Path] = field(default_factory=list)
    library_folders: List[Path] = field(default_factory=list)
    fqbn: Optional[FQBN] = None
    architecture: Optional[str] = None
    compiler: Optional[CompilerConfig] = None
    diagnostics_dialect: str = "gcc"
    sketch_include_folders: List[Path] = field(default_factory=list)

    library_index: Optional[LibraryIndex] = None
    include_folders: List[Path] = field(default_factory=list)
    imported_libraries: List[Library] = field(default_factory=list)
    includes: List[str] = field(default_factory=list)
    iterations: int = 0

    @property
    def target_architecture(self) -> Optional[str]:
        """Architecture used for library filtering."""
        if self.architecture:
            return self.architecture
        if self.fqbn is not None:
            return self.fqbn.architecture
        return None

    def missing_fields(self, names: List[str]) -> List[str]:
        """Return the names of fields that are unset (None)."""
        return [name for name in names if getattr(self, name) is None]
