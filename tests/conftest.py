"""
Shared fixtures for the Zapdeps test suite.
"""

import re
from pathlib import Path
from typing import List, Sequence

import pytest

from zapdeps.build.compiler_probe import ICompilerProbe, ProbeResult
from zapdeps.build.diagnostics import MissingHeader

INCLUDE_RE = re.compile(r'^\s*#\s*include\s*[<"]([^>"]+)[>"]', re.MULTILINE)


class FakeProbe(ICompilerProbe):
    """Emulates `gcc -M -MG` by following #include lines on disk.

    Headers are looked up next to the including file, then in the platform
    folders, then in the include folders in order. Headers that cannot be
    found are reported as missing, and scanning carries on like -MG does.
    """

    def __init__(self, platform_folders: Sequence[Path] = ()):
        self.platform_folders = [Path(folder) for folder in platform_folders]
        self.calls: List[List[Path]] = []

    def probe(self, include_folders, sketch_main_file):
        include_folders = [Path(folder) for folder in include_folders]
        self.calls.append(include_folders)

        sketch = Path(sketch_main_file)
        dependencies: List[Path] = []
        missing: List[MissingHeader] = []
        queue = [sketch]
        visited = {sketch}
        while queue:
            current = queue.pop(0)
            for name in INCLUDE_RE.findall(current.read_text()):
                found = self._locate(name, current.parent, include_folders)
                if found is None:
                    if all(header.name != name for header in missing):
                        missing.append(MissingHeader(name=name, including_file=current))
                    continue
                if found not in visited:
                    visited.add(found)
                    dependencies.append(found)
                    queue.append(found)

        return ProbeResult(missing_headers=missing, dependency_paths=dependencies)

    def _locate(self, name, current_dir, include_folders):
        for folder in [current_dir] + self.platform_folders + include_folders:
            candidate = folder / name
            if candidate.is_file():
                return candidate
        return None


class StubProbe(ICompilerProbe):
    """Reports the same missing headers on every call."""

    def __init__(self, missing_names: Sequence[str]):
        self.missing_names = list(missing_names)
        self.calls: List[List[Path]] = []

    def probe(self, include_folders, sketch_main_file):
        self.calls.append(list(include_folders))
        return ProbeResult(
            missing_headers=[MissingHeader(name=name) for name in self.missing_names],
            dependency_paths=[],
        )


def write_library(root: Path, name: str, headers: dict, properties: str = None, modern: bool = False) -> Path:
    """Create a library folder.

    Args:
        root: Library root folder
        name: Library folder name
        headers: Mapping of header file name to contents
        properties: library.properties text (None for none)
        modern: Put headers under src/ (1.5 layout)
    """
    folder = root / name
    source = folder / "src" if modern else folder
    source.mkdir(parents=True, exist_ok=True)
    for header, contents in headers.items():
        path = source / header
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(contents)
    if properties is not None:
        (folder / "library.properties").write_text(properties)
    return folder


@pytest.fixture
def fake_probe():
    """Factory for FakeProbe instances."""
    return FakeProbe


@pytest.fixture
def stub_probe():
    """Factory for StubProbe instances."""
    return StubProbe


@pytest.fixture
def make_library():
    """Factory creating library folders on disk."""
    return write_library
