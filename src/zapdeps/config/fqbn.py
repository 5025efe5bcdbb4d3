"""
Fully Qualified Board Name parsing.

An FQBN identifies a board as package:architecture:board, optionally followed
by comma separated menu options, e.g. "arduino:avr:nano:cpu=atmega328old".
Include discovery only needs the architecture, which drives library
architecture filtering.
"""

from dataclasses import dataclass, field
from typing import Dict


class FQBNError(Exception):
    """Exception raised for malformed board names."""

    pass


@dataclass(frozen=True)
class FQBN:
    """A parsed Fully Qualified Board Name."""

    package: str
    architecture: str
    board_id: str
    options: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def parse(cls, fqbn: str) -> "FQBN":
        """
        Parse an FQBN string.

        Args:
            fqbn: Board name (e.g., "arduino:avr:leonardo")

        Returns:
            FQBN instance

        Raises:
            FQBNError: If the name has fewer than three parts or empty parts

        Example:
            FQBN.parse("arduino:avr:nano:cpu=atmega328old").architecture  # "avr"
        """
        parts = fqbn.strip().split(":", 3)
        if len(parts) < 3 or not all(part.strip() for part in parts[:3]):
            raise FQBNError(
                f"Invalid FQBN: {fqbn!r}. Expected format package:architecture:board"
            )

        options: Dict[str, str] = {}
        if len(parts) == 4:
            for option in parts[3].split(","):
                option = option.strip()
                if not option:
                    continue
                if "=" not in option:
                    raise FQBNError(f"Invalid FQBN option {option!r} in {fqbn!r}")
                key, value = option.split("=", 1)
                options[key.strip()] = value.strip()

        return cls(
            package=parts[0].strip(),
            architecture=parts[1].strip(),
            board_id=parts[2].strip(),
            options=options
        )

    def __str__(self) -> str:
        base = f"{self.package}:{self.architecture}:{self.board_id}"
        if self.options:
            return base + ":" + ",".join(f"{k}={v}" for k, v in self.options.items())
        return base
