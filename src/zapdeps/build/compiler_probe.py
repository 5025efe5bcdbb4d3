"""Compiler probe for include discovery.

This module runs the platform's preprocessor against the sketch's main
translation unit and reports which headers were found and which were not.

Design:
    - One subprocess per probe, always drained and waited on
    - Dependency-rule output (-M) with missing headers tolerated (-MG)
    - Include folders optionally passed through a response file
    - Diagnostics parsed by a swappable IDiagnosticParser
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..process_utils import kill_process_tree
from .dependency_parser import parse_dependency_output
from .diagnostics import GCCDiagnosticParser, IDiagnosticParser, MissingHeader
from .errors import ParseError, ProbeError


DEFAULT_DEPENDENCY_FLAGS = ["-M", "-MG"]


@dataclass
class CompilerConfig:
    """How to invoke the preprocessor for a target platform.

    Attributes:
        compiler_path: Compiler driver (e.g. avr-g++)
        flags: Base flags (defines, -mmcu, -std, ...)
        platform_include_folders: Core and variant include folders
        dependency_flags: Flags requesting dependency-rule output
        timeout: Optional seconds before the probe is abandoned
        response_file_dir: Write include flags to a response file here
    """

    compiler_path: Path
    flags: List[str] = field(default_factory=list)
    platform_include_folders: List[Path] = field(default_factory=list)
    dependency_flags: List[str] = field(default_factory=lambda: list(DEFAULT_DEPENDENCY_FLAGS))
    timeout: Optional[float] = None
    response_file_dir: Optional[Path] = None


@dataclass
class ProbeResult:
    """Outcome of one compiler probe."""

    missing_headers: List[MissingHeader]
    dependency_paths: List[Path]
    command: List[str] = field(default_factory=list)
    returncode: int = 0

    @property
    def complete(self) -> bool:
        """True when the compiler found every header."""
        return not self.missing_headers


class ICompilerProbe(ABC):
    """Interface for include probes."""

    @abstractmethod
    def probe(
        self,
        include_folders: Sequence[Path],
        sketch_main_file: Path
    ) -> ProbeResult:
        """Run one probe with the given include search path.

        Args:
            include_folders: Accumulated include folders, in order
            sketch_main_file: Merged primary translation unit

        Returns:
            ProbeResult with missing headers and resolved dependencies

        Raises:
            ProbeError: If the compiler fails for another reason
        """
        pass


class CompilerProbe(ICompilerProbe):
    """Runs the real compiler in dependency-output mode."""

    def __init__(
        self,
        config: CompilerConfig,
        diagnostic_parser: Optional[IDiagnosticParser] = None
    ):
        """
        Initialize compiler probe.

        Args:
            config: Compiler invocation configuration
            diagnostic_parser: Dialect parser (default: GCC)
        """
        self.config = config
        self.diagnostic_parser = diagnostic_parser or GCCDiagnosticParser()

    def build_command(
        self,
        include_folders: Sequence[Path],
        sketch_main_file: Path
    ) -> List[str]:
        """
        Build the probe command line.

        Args:
            include_folders: Library include folders discovered so far
            sketch_main_file: Translation unit to preprocess

        Returns:
            Command as a list of arguments
        """
        include_flags = [
            f"-I{self._format_path(folder)}"
            for folder in list(self.config.platform_include_folders) + list(include_folders)
        ]

        cmd = [self._compiler_command()]
        cmd.extend(self.config.flags)
        if self.config.response_file_dir is not None and include_flags:
            response_file = self._write_response_file(
                self.config.response_file_dir, include_flags
            )
            cmd.append(f"@{response_file}")
        else:
            cmd.extend(include_flags)
        cmd.extend(self.config.dependency_flags)
        cmd.append(str(sketch_main_file))
        return cmd

    def probe(
        self,
        include_folders: Sequence[Path],
        sketch_main_file: Path
    ) -> ProbeResult:
        sketch_main_file = Path(sketch_main_file).resolve()
        if not sketch_main_file.exists():
            raise ProbeError(f"Sketch file not found: {sketch_main_file}")

        cmd = self.build_command(include_folders, sketch_main_file)
        logging.debug(f"Probing includes: {' '.join(cmd)}")

        returncode, stdout, stderr = self._run(cmd, cwd=sketch_main_file.parent)

        if returncode != 0:
            missing = self.diagnostic_parser.parse_missing_headers(stderr)
            if not missing:
                raise ProbeError(
                    f"Compiler failed with exit code {returncode} while probing {sketch_main_file.name}",
                    command=cmd,
                    returncode=returncode,
                    stderr=stderr
                )
        else:
            missing = []

        try:
            prerequisites = parse_dependency_output(stdout)
        except ParseError:
            if returncode == 0:
                raise
            # A failed run may leave truncated rule output behind
            prerequisites = []

        dependencies, generated = self._split_dependencies(prerequisites, sketch_main_file)

        seen = {header.name for header in missing}
        for name in generated:
            if name not in seen:
                seen.add(name)
                missing.append(MissingHeader(name=name))

        return ProbeResult(
            missing_headers=missing,
            dependency_paths=dependencies,
            command=cmd,
            returncode=returncode
        )

    def _run(self, cmd: List[str], cwd: Path) -> Tuple[int, str, str]:
        """Run the compiler, draining both streams and always reaping it."""
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=str(cwd)
            )
        except OSError as e:
            raise ProbeError(
                f"Failed to start compiler {cmd[0]}: {e}. Ensure toolchain is installed.",
                command=cmd
            ) from e

        with process:
            try:
                stdout, stderr = process.communicate(timeout=self.config.timeout)
            except subprocess.TimeoutExpired:
                kill_process_tree(process.pid)
                process.communicate()
                raise ProbeError(
                    f"Compiler timed out after {self.config.timeout}s",
                    command=cmd
                )
            except KeyboardInterrupt:
                kill_process_tree(process.pid)
                process.communicate()
                raise

        return process.returncode, stdout, stderr

    def _split_dependencies(
        self,
        prerequisites: List[str],
        sketch_main_file: Path
    ) -> Tuple[List[Path], List[str]]:
        """
        Separate found files from headers the compiler could not locate.

        With -MG the compiler lists a missing header by the bare name used in
        the #include directive. Anything that does not exist on disk is such
        a name.

        Returns:
            Tuple of (absolute dependency paths, missing header names)
        """
        dependencies: List[Path] = []
        generated: List[str] = []
        for prerequisite in prerequisites:
            path = Path(prerequisite)
            if not path.is_absolute():
                candidate = sketch_main_file.parent / path
                if not candidate.exists():
                    generated.append(prerequisite.replace("\\", "/"))
                    continue
                path = candidate
            elif not path.exists():
                generated.append(prerequisite)
                continue

            path = path.resolve()
            if path == sketch_main_file:
                continue
            if path not in dependencies:
                dependencies.append(path)

        return dependencies, generated

    def _write_response_file(self, response_dir: Path, include_flags: List[str]) -> Path:
        """Write include flags to a response file.

        Response files avoid command line length limits when there are
        many include paths.
        """
        response_file = Path(response_dir) / "includes.rsp"
        response_file.parent.mkdir(parents=True, exist_ok=True)
        with open(response_file, "w", encoding="utf-8") as f:
            f.write("\n".join(include_flags))
        return response_file

    def _compiler_command(self) -> str:
        compiler = str(self.config.compiler_path)
        if "/" not in compiler and "\\" not in compiler:
            return compiler
        return str(Path(compiler).absolute())

    @staticmethod
    def _format_path(folder: Path) -> str:
        # The compiler runs from the sketch folder, so relative folders must be anchored here.
        return str(Path(folder).absolute()).replace("\\", "/")
