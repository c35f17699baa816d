"""
Resolver module for the Ollama-LM-Studio bridge.

Directory discovery is an ordered list of independent probes (Strategy
Pattern). Each probe either finds a directory or misses; the engine takes
the first hit.
"""

from .base import ProbeStrategy, ProbeResult
from .strategies import (
    bounded_search,
    drive_roots,
    SourceOverrideProbe,
    ServiceAccountProbe,
    ServiceManagerProbe,
    SystemInstallProbe,
    HomeInstallProbe,
    DriveSearchProbe,
    HomeDotOllamaSearchProbe,
    HomeDefaultProbe,
    DestinationOverrideProbe,
    LMStudioDriveSearchProbe,
    CommonLocationsProbe,
    DefaultDestinationProbe,
    default_source_probes,
    default_destination_probes,
)
from .engine import DirectoryResolver, ResolvedDirectories

__all__ = [
    "ProbeStrategy",
    "ProbeResult",
    "bounded_search",
    "drive_roots",
    "SourceOverrideProbe",
    "ServiceAccountProbe",
    "ServiceManagerProbe",
    "SystemInstallProbe",
    "HomeInstallProbe",
    "DriveSearchProbe",
    "HomeDotOllamaSearchProbe",
    "HomeDefaultProbe",
    "DestinationOverrideProbe",
    "LMStudioDriveSearchProbe",
    "CommonLocationsProbe",
    "DefaultDestinationProbe",
    "default_source_probes",
    "default_destination_probes",
    "DirectoryResolver",
    "ResolvedDirectories",
]
