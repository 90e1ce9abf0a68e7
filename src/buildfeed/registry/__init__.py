"""Package registry probing (latest NuGet versions per registry)."""

from buildfeed.registry.probe import RegistryProbe

__all__ = [
    "RegistryProbe",
]
