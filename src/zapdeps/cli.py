"""
Command-line interface for Zapdeps.

This module provides the `zapdeps` CLI tool for discovering the libraries a
sketch needs.
"""

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from zapdeps import __version__
from zapdeps.build import BuildContext, BuildPipeline, IncludeDiscoveryError, PipelineError
from zapdeps.cli_utils import ErrorFormatter, PathValidator, setup_logging
from zapdeps.config import (
    FQBN,
    DiscoveryConfig,
    DiscoveryConfigError,
    FQBNError,
)
from zapdeps.packages import LibraryScanError


@dataclass
class FindIncludesArgs:
    """Arguments for the find-includes command."""

    sketch: Optional[Path] = None
    config: Optional[Path] = None
    environment: Optional[str] = None
    library_dirs: List[Path] = field(default_factory=list)
    hardware_dirs: List[Path] = field(default_factory=list)
    include_dirs: List[Path] = field(default_factory=list)
    fqbn: Optional[str] = None
    architecture: Optional[str] = None
    compiler: Optional[Path] = None
    flags: List[str] = field(default_factory=list)
    dialect: Optional[str] = None
    timeout: Optional[float] = None
    json_output: bool = False
    verbose: bool = False


def _absolute(paths: List[Path]) -> List[Path]:
    return [path.expanduser().absolute() for path in paths]


def _resolve_compiler(compiler: Path) -> Path:
    """Anchor a path-like compiler to the working directory; bare names stay on PATH."""
    text = str(compiler)
    if "/" not in text and "\\" not in text:
        return compiler
    return compiler.expanduser().absolute()


def load_discovery_config(args: FindIncludesArgs) -> DiscoveryConfig:
    """Merge the optional INI configuration with command-line overrides.

    Command-line folders are searched before configured ones; scalar options
    replace configured values.

    Raises:
        DiscoveryConfigError: If the configuration is invalid or incomplete
    """
    if args.config is not None:
        config = DiscoveryConfig.from_ini(args.config, args.environment)
    else:
        config = DiscoveryConfig()

    if args.sketch is not None:
        config.sketch = args.sketch.absolute()
    if args.fqbn is not None:
        try:
            config.fqbn = FQBN.parse(args.fqbn)
        except FQBNError as e:
            raise DiscoveryConfigError(str(e)) from e
    if args.architecture is not None:
        config.architecture = args.architecture
    if args.compiler is not None:
        config.compiler = _resolve_compiler(args.compiler)
    if args.flags:
        config.compiler_flags = config.compiler_flags + list(args.flags)
    if args.dialect is not None:
        config.dialect = args.dialect
    if args.timeout is not None:
        config.timeout = args.timeout

    config.library_dirs = _absolute(args.library_dirs) + config.library_dirs
    config.hardware_dirs = _absolute(args.hardware_dirs) + config.hardware_dirs
    config.include_dirs = _absolute(args.include_dirs) + config.include_dirs

    if config.sketch is None:
        raise DiscoveryConfigError("No sketch given (pass SKETCH or set 'sketch' in the config)")
    if config.compiler is None:
        raise DiscoveryConfigError("No compiler given (pass --compiler or set 'compiler' in the config)")

    return config


def build_context(config: DiscoveryConfig) -> BuildContext:
    """Create the build context for a discovery run."""
    if config.sketch is None:
        raise DiscoveryConfigError("No sketch given")
    sketch = config.sketch.resolve()
    return BuildContext(
        sketch_main_file=sketch,
        hardware_folders=list(config.hardware_dirs),
        library_folders=list(config.library_dirs),
        fqbn=config.fqbn,
        architecture=config.architecture,
        compiler=config.compiler_config(),
        diagnostics_dialect=config.dialect,
        sketch_include_folders=[sketch.parent] + list(config.include_dirs),
    )


def print_report(context: BuildContext, json_output: bool = False) -> None:
    """Print the discovered include folders and libraries."""
    if json_output:
        report = {
            "include_folders": [str(folder) for folder in context.include_folders],
            "imported_libraries": [
                {
                    "name": library.name,
                    "root_folder": str(library.root_folder),
                    "source_folder": str(library.source_folder),
                }
                for library in context.imported_libraries
            ],
            "includes": list(context.includes),
            "iterations": context.iterations,
        }
        print(json.dumps(report, indent=2))
        return

    ErrorFormatter.print_success("Include discovery successful!")
    print()
    print(f"Libraries ({len(context.imported_libraries)}):")
    for library in context.imported_libraries:
        print(f"  {library.name:<24} {library.root_folder}")
    print()
    print(f"Include folders ({len(context.include_folders)}):")
    for folder in context.include_folders:
        print(f"  {folder}")
    print()
    print(f"Compiler probes: {context.iterations}")


def find_includes_command(args: FindIncludesArgs) -> None:
    """Discover the libraries a sketch needs.

    Examples:
        zapdeps find-includes build/sketch/Blink.ino.cpp --compiler avr-g++ -l libraries
        zapdeps find-includes -c zapdeps.ini -e leonardo
        zapdeps find-includes sketch.cpp --compiler g++ --fqbn arduino:avr:uno --json
    """
    if not args.json_output:
        print(f"Zapdeps Include Discovery v{__version__}")
        print()

    try:
        config = load_discovery_config(args)
        PathValidator.validate_sketch_file(config.sketch)
        PathValidator.validate_folders(config.library_dirs, "Library folder")
        PathValidator.validate_folders(config.hardware_dirs, "Hardware folder")

        context = build_context(config)

        if args.verbose and not args.json_output:
            print(f"Sketch: {context.sketch_main_file}")
            print(f"Architecture: {context.target_architecture or 'any'}")
            print(f"Library folders: {len(context.library_folders)}")
            print()

        BuildPipeline.include_discovery().run(context)

        print_report(context, args.json_output)
        sys.exit(0)

    except (DiscoveryConfigError, PipelineError, ValueError) as e:
        ErrorFormatter.print_error("Invalid configuration", str(e))
        sys.exit(2)
    except (IncludeDiscoveryError, LibraryScanError) as e:
        ErrorFormatter.print_error("Include discovery failed!", str(e))
        sys.exit(1)
    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def main() -> None:
    """Zapdeps - include discovery for embedded sketches."""
    parser = argparse.ArgumentParser(
        prog="zapdeps",
        description="Zapdeps - discover the libraries an embedded sketch needs",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"zapdeps {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    find_parser = subparsers.add_parser(
        "find-includes",
        help="Discover include folders and libraries for a sketch",
    )
    find_parser.add_argument(
        "sketch",
        nargs="?",
        type=Path,
        default=None,
        help="Merged sketch translation unit (default: from config)",
    )
    find_parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="INI configuration file",
    )
    find_parser.add_argument(
        "-e",
        "--environment",
        default=None,
        help="Configuration environment (default: default_env or first env)",
    )
    find_parser.add_argument(
        "-l",
        "--libraries",
        dest="library_dirs",
        action="append",
        type=Path,
        default=[],
        help="Library root folder, highest priority first (repeatable)",
    )
    find_parser.add_argument(
        "-H",
        "--hardware",
        dest="hardware_dirs",
        action="append",
        type=Path,
        default=[],
        help="Platform core/variant folder (repeatable)",
    )
    find_parser.add_argument(
        "-I",
        "--include",
        dest="include_dirs",
        action="append",
        type=Path,
        default=[],
        help="Extra include folder searched before libraries (repeatable)",
    )
    arch_group = find_parser.add_mutually_exclusive_group()
    arch_group.add_argument(
        "--fqbn",
        default=None,
        help="Fully qualified board name (e.g., arduino:avr:leonardo)",
    )
    arch_group.add_argument(
        "--arch",
        dest="architecture",
        default=None,
        help="Target architecture (e.g., avr)",
    )
    find_parser.add_argument(
        "--compiler",
        type=Path,
        default=None,
        help="Compiler driver used for probing (e.g., avr-g++)",
    )
    find_parser.add_argument(
        "--flag",
        dest="flags",
        action="append",
        default=[],
        help="Extra compiler flag (repeatable, e.g., --flag=-DARDUINO=10600)",
    )
    find_parser.add_argument(
        "--dialect",
        choices=["gcc", "clang"],
        default=None,
        help="Compiler diagnostic dialect (default: gcc)",
    )
    find_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds before a compiler probe is abandoned (default: none)",
    )
    find_parser.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print the result as JSON",
    )
    find_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show discovery progress",
    )

    # Parse arguments
    parsed_args = parser.parse_args()

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    if parsed_args.command == "find-includes":
        setup_logging(parsed_args.verbose)
        find_args = FindIncludesArgs(
            sketch=parsed_args.sketch,
            config=parsed_args.config,
            environment=parsed_args.environment,
            library_dirs=parsed_args.library_dirs,
            hardware_dirs=parsed_args.hardware_dirs,
            include_dirs=parsed_args.include_dirs,
            fqbn=parsed_args.fqbn,
            architecture=parsed_args.architecture,
            compiler=parsed_args.compiler,
            flags=parsed_args.flags,
            dialect=parsed_args.dialect,
            timeout=parsed_args.timeout,
            json_output=parsed_args.json_output,
            verbose=parsed_args.verbose,
        )
        find_includes_command(find_args)


if __name__ == "__main__":
    main()
