"""Configuration parsing modules for Zapdeps."""

from .fqbn import FQBN, FQBNError
from .library_properties import LibraryProperties, LibraryPropertiesError
from .discovery_config import DiscoveryConfig, DiscoveryConfigError

__all__ = [
    "FQBN",
    "FQBNError",
    "LibraryProperties",
    "LibraryPropertiesError",
    "DiscoveryConfig",
    "DiscoveryConfigError",
]
