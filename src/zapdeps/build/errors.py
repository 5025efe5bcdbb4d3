"""Exceptions raised by include discovery.

Every failure aborts the discovery run. No partial library set is ever
returned, so callers only need to catch IncludeDiscoveryError.
"""

from pathlib import Path
from typing import List, Optional


class IncludeDiscoveryError(Exception):
    """Base exception for include discovery failures."""
    pass


class ParseError(IncludeDiscoveryError):
    """Raised when compiler dependency output cannot be parsed."""
    pass


class ProbeError(IncludeDiscoveryError):
    """Raised when the compiler fails for a reason other than missing headers."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = ""
    ):
        """
        Initialize probe error.

        Args:
            message: Human readable description
            command: Compiler command line that was executed
            returncode: Compiler exit code (None if it never ran)
            stderr: Captured diagnostic output
        """
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr
        if stderr:
            message = f"{message}\n{stderr.rstrip()}"
        super().__init__(message)


class UnresolvableHeaderError(IncludeDiscoveryError):
    """Raised when a missing header is not provided by any library."""

    def __init__(self, header: str, including_file: Optional[Path] = None):
        self.header = header
        self.including_file = including_file
        if including_file is not None:
            message = f"{including_file}: {header}: No such file or directory"
        else:
            message = f"{header}: No such file or directory"
        super().__init__(message)


class StalledResolutionError(IncludeDiscoveryError):
    """Raised when an iteration makes no progress but headers are still missing."""

    def __init__(self, missing_headers: List[str], message: Optional[str] = None):
        self.missing_headers = list(missing_headers)
        if message is None:
            message = (
                "Include discovery stalled: the compiler still cannot find "
                f"{', '.join(self.missing_headers)} although every providing "
                "library is already on the include path"
            )
        super().__init__(message)
