"""
Build stages for include discovery.

A pipeline is an ordered list of stages sharing one BuildContext. Each stage
declares the context fields it reads and writes; the pipeline checks the
reads before running the stage. Sketch merging, platform setup and the
compilation stages that consume the discovered libraries live outside this
package and plug in as further stages.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from .compiler_probe import CompilerProbe, ICompilerProbe
from .context import BuildContext
from .diagnostics import get_diagnostic_parser
from .include_finder import IncludeFinder
from ..packages.library_index import HeaderResolver, LibraryIndex


class PipelineError(Exception):
    """Raised when a stage is started without its inputs."""
    pass


class BuildStage(ABC):
    """One step of a build pipeline."""

    READS: Tuple[str, ...] = ()
    WRITES: Tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return type(self).__name__

    def required_fields(self) -> Tuple[str, ...]:
        """Context fields that must be set before the stage runs."""
        return self.READS

    @abstractmethod
    def run(self, context: BuildContext) -> None:
        """Run the stage, updating the fields listed in WRITES."""
        pass


class BuildLibraryIndexStage(BuildStage):
    """Scans the library roots unless an index was supplied."""

    READS = ("library_folders",)
    WRITES = ("library_index",)

    def run(self, context: BuildContext) -> None:
        if context.library_index is not None:
            logging.debug("Using pre-built library index")
            return
        context.library_index = LibraryIndex.build(context.library_folders)


class FindIncludesStage(BuildStage):
    """Discovers include folders and libraries by probing the compiler."""

    READS = ("sketch_main_file", "compiler", "library_index", "hardware_folders")
    WRITES = ("include_folders", "imported_libraries", "includes", "iterations")

    def __init__(self, probe: Optional[ICompilerProbe] = None):
        """
        Initialize the stage.

        Args:
            probe: Probe to use instead of running context.compiler
        """
        self.probe = probe

    def required_fields(self) -> Tuple[str, ...]:
        if self.probe is not None:
            return tuple(name for name in self.READS if name != "compiler")
        return self.READS

    def run(self, context: BuildContext) -> None:
        probe = self.probe
        if probe is None:
            probe = CompilerProbe(
                context.compiler,
                get_diagnostic_parser(context.diagnostics_dialect)
            )

        resolver = HeaderResolver(
            context.library_index,
            architecture=context.target_architecture,
            platform_folders=context.hardware_folders
        )
        finder = IncludeFinder(probe, resolver)
        result = finder.find(
            context.sketch_main_file,
            initial_include_folders=context.sketch_include_folders
        )

        context.include_folders = result.include_folders
        context.imported_libraries = result.imported_libraries
        context.includes = result.includes
        context.iterations = result.iterations


class BuildPipeline:
    """Runs stages in order against a shared context.

    Example usage:
        context = BuildContext(sketch_main_file=..., compiler=..., library_folders=[...])
        BuildPipeline.include_discovery().run(context)
        print(context.imported_libraries)
    """

    def __init__(self, stages: Sequence[BuildStage]):
        self.stages: List[BuildStage] = list(stages)

    @classmethod
    def include_discovery(cls, probe: Optional[ICompilerProbe] = None) -> "BuildPipeline":
        """Pipeline that indexes libraries and discovers includes."""
        return cls([BuildLibraryIndexStage(), FindIncludesStage(probe)])

    def run(self, context: BuildContext) -> BuildContext:
        """
        Run every stage.

        Args:
            context: Shared build context

        Returns:
            The same context, with every stage's outputs filled in

        Raises:
            PipelineError: If a stage's inputs are missing
        """
        for stage in self.stages:
            missing = context.missing_fields(list(stage.required_fields()))
            if missing:
                raise PipelineError(
                    f"{stage.name} requires {', '.join(missing)} to be set"
                )
            logging.debug(f"Running stage {stage.name}")
            stage.run(context)
        return context
