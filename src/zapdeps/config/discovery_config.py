"""
Discovery configuration parser.

Include discovery can be configured from an INI file with one section per
environment, in the same spirit as platformio.ini:

    [zapdeps]
    default_env = leonardo

    [env:leonardo]
    sketch = build/sketch/Blink.ino.cpp
    fqbn = arduino:avr:leonardo
    compiler = /opt/avr-gcc/bin/avr-g++
    compiler_flags = -mmcu=atmega32u4 -DF_CPU=16000000L -DARDUINO=10600
    library_dirs =
        ~/Arduino/libraries
        hardware/arduino/avr/libraries
    hardware_dirs =
        hardware/arduino/avr/cores/arduino
        hardware/arduino/avr/variants/leonardo

Relative paths are resolved against the INI file's folder.
"""

import configparser
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from .fqbn import FQBN, FQBNError

if TYPE_CHECKING:
    from ..build.compiler_probe import CompilerConfig


class DiscoveryConfigError(Exception):
    """Exception raised for discovery configuration errors."""

    pass


@dataclass
class DiscoveryConfig:
    """Everything needed to run include discovery for one environment."""

    sketch: Optional[Path] = None
    fqbn: Optional[FQBN] = None
    architecture: Optional[str] = None
    compiler: Optional[Path] = None
    compiler_flags: List[str] = field(default_factory=list)
    dependency_flags: Optional[List[str]] = None
    library_dirs: List[Path] = field(default_factory=list)
    hardware_dirs: List[Path] = field(default_factory=list)
    include_dirs: List[Path] = field(default_factory=list)
    dialect: str = "gcc"
    timeout: Optional[float] = None

    @property
    def target_architecture(self) -> Optional[str]:
        if self.architecture:
            return self.architecture
        if self.fqbn is not None:
            return self.fqbn.architecture
        return None

    def compiler_config(self) -> "CompilerConfig":
        """
        Build the compiler invocation configuration.

        Raises:
            DiscoveryConfigError: If no compiler is configured
        """
        from ..build.compiler_probe import CompilerConfig

        if self.compiler is None:
            raise DiscoveryConfigError("No compiler configured")
        config = CompilerConfig(
            compiler_path=self.compiler,
            flags=list(self.compiler_flags),
            platform_include_folders=list(self.hardware_dirs),
            timeout=self.timeout,
        )
        if self.dependency_flags is not None:
            config.dependency_flags = list(self.dependency_flags)
        return config

    @classmethod
    def from_ini(cls, ini_path: Path, env_name: Optional[str] = None) -> "DiscoveryConfig":
        """
        Load an environment from an INI file.

        Args:
            ini_path: Path to the INI file
            env_name: Environment to load (default: [zapdeps] default_env,
                else the first [env:...] section)

        Returns:
            DiscoveryConfig instance

        Raises:
            DiscoveryConfigError: If the file is missing, unparsable, or the
                environment is not defined
        """
        ini_path = Path(ini_path)
        if not ini_path.exists():
            raise DiscoveryConfigError(f"Configuration file not found: {ini_path}")

        parser = configparser.ConfigParser(
            allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
        )
        try:
            parser.read(ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise DiscoveryConfigError(f"Failed to parse {ini_path}: {e}") from e

        environments = [
            section.split(":", 1)[1]
            for section in parser.sections()
            if section.startswith("env:")
        ]
        if not environments:
            raise DiscoveryConfigError(f"No [env:...] sections found in {ini_path}")

        if env_name is None:
            env_name = parser.get("zapdeps", "default_env", fallback=None) or environments[0]

        section_name = f"env:{env_name}"
        if not parser.has_section(section_name):
            raise DiscoveryConfigError(
                f"Environment '{env_name}' not found in {ini_path}. "
                + f"Available environments: {', '.join(environments)}"
            )

        try:
            section = dict(parser.items(section_name))
        except configparser.Error as e:
            raise DiscoveryConfigError(f"Failed to read [{section_name}]: {e}") from e

        base_dir = ini_path.parent.resolve()
        return cls._from_section(section, base_dir)

    @classmethod
    def _from_section(cls, section: dict, base_dir: Path) -> "DiscoveryConfig":
        fqbn = None
        if section.get("fqbn"):
            try:
                fqbn = FQBN.parse(section["fqbn"])
            except FQBNError as e:
                raise DiscoveryConfigError(str(e)) from e

        timeout = None
        if section.get("timeout"):
            try:
                timeout = float(section["timeout"])
            except ValueError as e:
                raise DiscoveryConfigError(f"Invalid timeout: {section['timeout']!r}") from e

        config = cls(
            sketch=_resolve_path(section["sketch"], base_dir) if section.get("sketch") else None,
            fqbn=fqbn,
            architecture=section.get("architecture") or None,
            compiler=_resolve_compiler(section["compiler"], base_dir) if section.get("compiler") else None,
            compiler_flags=shlex.split(section.get("compiler_flags") or ""),
            library_dirs=[_resolve_path(p, base_dir) for p in _split_list(section.get("library_dirs"))],
            hardware_dirs=[_resolve_path(p, base_dir) for p in _split_list(section.get("hardware_dirs"))],
            include_dirs=[_resolve_path(p, base_dir) for p in _split_list(section.get("include_dirs"))],
            dialect=(section.get("dialect") or "gcc").lower(),
            timeout=timeout,
        )
        if section.get("dependency_flags"):
            config.dependency_flags = shlex.split(section["dependency_flags"])
        return config


def _split_list(value: Optional[str]) -> List[str]:
    """Split a newline or comma separated value."""
    if not value:
        return []
    items = []
    for line in value.splitlines():
        for item in line.split(","):
            item = item.strip()
            if item:
                items.append(item)
    return items


def _resolve_path(value: str, base_dir: Path) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


def _resolve_compiler(value: str, base_dir: Path) -> Path:
    """Bare executable names are left for PATH lookup."""
    if "/" not in value and "\\" not in value:
        return Path(value)
    return _resolve_path(value, base_dir)
