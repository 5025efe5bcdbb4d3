"""
Include discovery components for Zapdeps.

This module provides:
- Dependency-rule output parsing (-M)
- Compiler diagnostic parsing for missing headers
- The compiler probe
- The include finder fixpoint loop
- Build context and pipeline stages
"""

from .errors import (
    IncludeDiscoveryError,
    ParseError,
    ProbeError,
    StalledResolutionError,
    UnresolvableHeaderError,
)
from .dependency_parser import (
    DependencyParseError,
    DependencyRecord,
    parse_dependency_output,
    parse_dependency_records,
)
from .diagnostics import (
    ClangDiagnosticParser,
    GCCDiagnosticParser,
    IDiagnosticParser,
    MissingHeader,
    get_diagnostic_parser,
)
from .compiler_probe import CompilerConfig, CompilerProbe, ICompilerProbe, ProbeResult
from .include_finder import DiscoveryResult, DiscoveryState, IncludeFinder, ResolutionState
from .context import BuildContext
from .pipeline import (
    BuildLibraryIndexStage,
    BuildPipeline,
    BuildStage,
    FindIncludesStage,
    PipelineError,
)

__all__ = [
    'IncludeDiscoveryError',
    'ParseError',
    'ProbeError',
    'StalledResolutionError',
    'UnresolvableHeaderError',
    'DependencyParseError',
    'DependencyRecord',
    'parse_dependency_output',
    'parse_dependency_records',
    'ClangDiagnosticParser',
    'GCCDiagnosticParser',
    'IDiagnosticParser',
    'MissingHeader',
    'get_diagnostic_parser',
    'CompilerConfig',
    'CompilerProbe',
    'ICompilerProbe',
    'ProbeResult',
    'DiscoveryResult',
    'DiscoveryState',
    'IncludeFinder',
    'ResolutionState',
    'BuildContext',
    'BuildLibraryIndexStage',
    'BuildPipeline',
    'BuildStage',
    'FindIncludesStage',
    'PipelineError',
]
