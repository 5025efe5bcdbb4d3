"""
library.properties parser.

Arduino 1.5+ libraries carry a library.properties file describing the
library. Only a few keys matter for include discovery (name, architectures),
but every key is kept so callers can inspect the rest.

Example library.properties:
    name=Bridge
    version=1.6.0
    architectures=*
"""

from pathlib import Path
from typing import Dict, List, Optional


class LibraryPropertiesError(Exception):
    """Exception raised when library.properties cannot be read."""

    pass


class LibraryProperties:
    """
    Parsed key=value pairs from a library.properties file.

    Usage:
        props = LibraryProperties.from_file(Path("Bridge/library.properties"))
        props.name             # "Bridge"
        props.architectures    # ["*"]
    """

    FILENAME = "library.properties"

    def __init__(self, values: Optional[Dict[str, str]] = None):
        """
        Initialize library properties.

        Args:
            values: Parsed key=value pairs
        """
        self.values = dict(values or {})

    @classmethod
    def from_file(cls, path: Path) -> "LibraryProperties":
        """
        Load properties from a library.properties file.

        Args:
            path: Path to library.properties

        Returns:
            LibraryProperties instance

        Raises:
            LibraryPropertiesError: If the file cannot be read
        """
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return cls.from_text(f.read())
        except OSError as e:
            raise LibraryPropertiesError(f"Failed to read {path}: {e}") from e

    @classmethod
    def from_text(cls, text: str) -> "LibraryProperties":
        """
        Parse properties from text.

        Blank lines and '#' comments are skipped; later keys override
        earlier ones.

        Args:
            text: Contents of a library.properties file

        Returns:
            LibraryProperties instance
        """
        values: Dict[str, str] = {}
        for line in text.splitlines():
            line = line.strip()

            # Skip comments and empty lines
            if not line or line.startswith("#"):
                continue

            # Parse key=value pairs
            if "=" not in line:
                continue

            key, value = line.split("=", 1)
            values[key.strip()] = value.strip()

        return cls(values)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a raw property value."""
        return self.values.get(key, default)

    @property
    def name(self) -> Optional[str]:
        """Declared library name, if any."""
        return self.values.get("name") or None

    @property
    def architectures(self) -> List[str]:
        """
        Architectures the library supports.

        Returns:
            List of architecture identifiers; ["*"] when unrestricted
        """
        raw = self.values.get("architectures", "")
        archs = [arch.strip() for arch in raw.split(",") if arch.strip()]
        return archs or ["*"]

    def __repr__(self) -> str:
        return f"LibraryProperties({self.values!r})"
