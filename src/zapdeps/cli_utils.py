"""CLI utility functions for Zapdeps.

This module provides common utilities used across CLI commands including:
- Logging setup
- Error handling and formatting
- Path validation
"""

import logging
import sys
from pathlib import Path
from typing import Iterable

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Setup logging for CLI runs.

    Args:
        verbose: Log discovery progress (DEBUG) instead of warnings only
    """
    logger = logging.getLogger()
    level = logging.DEBUG if verbose else logging.WARNING
    logger.setLevel(level)

    # Avoid stacking handlers when main() runs more than once in a process
    for handler in list(logger.handlers):
        if getattr(handler, "_zapdeps_handler", False):
            logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    console_handler._zapdeps_handler = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Include discovery failed!")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        """Print formatted success message.

        Args:
            message: Success message
        """
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        """Print formatted warning message.

        Args:
            message: Warning message
        """
        print()
        print(f"{ErrorFormatter.YELLOW}! {message}{ErrorFormatter.RESET}")

    @staticmethod
    def _describe_os_error(error: OSError) -> str:
        if error.filename is not None:
            return f"{error.filename}: {error.strerror or error}"
        return str(error)

    @staticmethod
    def handle_file_not_found(error: FileNotFoundError) -> None:
        """Report a sketch, library or compiler file that vanished mid-run."""
        ErrorFormatter.print_error("Missing file during include discovery", ErrorFormatter._describe_os_error(error))
        sys.exit(1)

    @staticmethod
    def handle_permission_error(error: PermissionError) -> None:
        """Report a sketch or library folder that cannot be read."""
        ErrorFormatter.print_error("Cannot read sketch or library files", ErrorFormatter._describe_os_error(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Report an interrupted run and exit with the SIGINT status."""
        ErrorFormatter.print_warning("Include discovery interrupted; no report written")
        sys.exit(130)

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Report an internal failure.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Internal error in zapdeps", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())
        else:
            print("Run again with --verbose for a traceback.")

        sys.exit(1)


class PathValidator:
    """Validates sketch and folder paths."""

    @staticmethod
    def validate_sketch_file(sketch: Path) -> None:
        """Validate that the sketch exists and is a file.

        Args:
            sketch: Path to validate

        Raises:
            SystemExit: If path doesn't exist or isn't a file
        """
        if not sketch.exists():
            print(
                f"{ErrorFormatter.RED}✗ Error: Sketch does not exist: {sketch}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
        if not sketch.is_file():
            print(
                f"{ErrorFormatter.RED}✗ Error: Sketch is not a file: {sketch}{ErrorFormatter.RESET}"
            )
            sys.exit(2)

    @staticmethod
    def validate_folders(folders: Iterable[Path], kind: str) -> None:
        """Validate that every configured folder is a directory.

        Args:
            folders: Folders to validate
            kind: Folder kind for the error message (e.g., "Library folder")

        Raises:
            SystemExit: If a path exists but isn't a directory
        """
        for folder in folders:
            if folder.exists() and not folder.is_dir():
                print(
                    f"{ErrorFormatter.RED}✗ Error: {kind} is not a directory: {folder}{ErrorFormatter.RESET}"
                )
                sys.exit(2)
