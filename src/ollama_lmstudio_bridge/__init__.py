"""
Ollama-LM-Studio Bridge - expose Ollama's downloaded models to LM Studio.

This package reads Ollama's local manifest and blob store and links each
model's weights into a directory layout LM Studio can browse:
- Resolver: ordered probes locating the Ollama store and the LM Studio folder
- Manifest: enumeration and parsing of manifests/{registry}/{namespace}/{model}/{tag}
- Blobs: digest to blob-path mapping and config blob metadata
- Linker: symbolic links (or copies) with overwrite / skip-existing policy
"""

__version__ = "1.2.4"

# Configuration
from .config import BridgeConfig, ConfigManager, get_config

# Errors
from .errors import BridgeError, ManifestError, PreconditionError

# Pipeline
from .blobs import BlobStore, ModelConfig
from .core import Bridge, ManifestOutcome, OutcomeStatus, RunSummary
from .linker import LinkMaterializer, LinkResult, RunLock, link_file_name, link_target
from .manifest import LayerRef, Manifest, MediaKind, enumerate_manifests, parse_manifest

# Resolver (Strategy Pattern)
from .resolver import DirectoryResolver, ProbeStrategy, ResolvedDirectories

__all__ = [
    # Config
    "BridgeConfig",
    "ConfigManager",
    "get_config",
    # Errors
    "BridgeError",
    "ManifestError",
    "PreconditionError",
    # Pipeline
    "BlobStore",
    "ModelConfig",
    "Bridge",
    "ManifestOutcome",
    "OutcomeStatus",
    "RunSummary",
    "LinkMaterializer",
    "LinkResult",
    "RunLock",
    "link_file_name",
    "link_target",
    "LayerRef",
    "Manifest",
    "MediaKind",
    "enumerate_manifests",
    "parse_manifest",
    # Resolver
    "DirectoryResolver",
    "ProbeStrategy",
    "ResolvedDirectories",
    # Version
    "__version__",
]
