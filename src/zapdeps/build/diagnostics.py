"""Missing-header extraction from compiler diagnostics.

Compilers only report missing includes as human readable text, and every
toolchain words it differently. Each dialect lives behind IDiagnosticParser
so the include finder never looks at raw diagnostic text itself.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Type


@dataclass(frozen=True)
class MissingHeader:
    """A header the compiler could not find."""

    name: str
    including_file: Optional[Path] = None


class IDiagnosticParser(ABC):
    """Interface for compiler-specific diagnostic parsers."""

    @abstractmethod
    def parse_missing_headers(self, diagnostics: str) -> List[MissingHeader]:
        """Extract missing headers from compiler diagnostics.

        Args:
            diagnostics: Captured stderr of a compiler run

        Returns:
            Missing headers in the order the compiler reported them,
            without duplicate names
        """
        pass


class RegexDiagnosticParser(IDiagnosticParser):
    """Diagnostic parser driven by a single regular expression.

    Subclasses set PATTERN with named groups 'file' and 'header'.
    """

    PATTERN: Pattern[str]

    def parse_missing_headers(self, diagnostics: str) -> List[MissingHeader]:
        headers: List[MissingHeader] = []
        seen = set()
        for match in self.PATTERN.finditer(diagnostics):
            name = match.group("header").strip()
            if not name or name in seen:
                continue
            seen.add(name)
            including_file = match.group("file").strip()
            headers.append(MissingHeader(
                name=name,
                including_file=Path(including_file) if including_file else None
            ))
        return headers


class GCCDiagnosticParser(RegexDiagnosticParser):
    """GCC style: ``file.cpp:1:10: fatal error: Foo.h: No such file or directory``."""

    PATTERN = re.compile(
        r"^(?P<file>.+?):\d+:(?:\d+:)?\s*(?:fatal\s+)?error:\s*"
        r"(?P<header>.+?):\s*No such file or directory\s*$",
        re.MULTILINE,
    )


class ClangDiagnosticParser(RegexDiagnosticParser):
    """Clang style: ``file.cpp:1:10: fatal error: 'Foo.h' file not found``."""

    PATTERN = re.compile(
        r"^(?P<file>.+?):\d+:(?:\d+:)?\s*(?:fatal\s+)?error:\s*"
        r"['\"<](?P<header>[^'\">]+)['\">]\s*file not found",
        re.MULTILINE,
    )


DIAGNOSTIC_DIALECTS: Dict[str, Type[IDiagnosticParser]] = {
    "gcc": GCCDiagnosticParser,
    "clang": ClangDiagnosticParser,
}


def get_diagnostic_parser(dialect: str = "gcc") -> IDiagnosticParser:
    """
    Create the diagnostic parser for a compiler dialect.

    Args:
        dialect: Dialect name ('gcc' or 'clang')

    Returns:
        Diagnostic parser instance

    Raises:
        ValueError: If the dialect is unknown
    """
    try:
        return DIAGNOSTIC_DIALECTS[dialect.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown compiler dialect: {dialect}. "
            + f"Supported dialects: {', '.join(DIAGNOSTIC_DIALECTS.keys())}"
        ) from None
