"""
Exception hierarchy for the Ollama-LM-Studio bridge.

Errors fall into three classes:
- PreconditionError: fatal, aborts the whole run with a non-zero exit code
- ManifestError: recoverable, only the current manifest is skipped
- LayerError: recoverable, only the current layer of a manifest is skipped
"""

from pathlib import Path
from typing import Optional, Union


class BridgeError(Exception):
    """Base class for all bridge errors."""


# ============================================================
# Fatal preconditions
# ============================================================

class PreconditionError(BridgeError):
    """A fatal condition that must abort the run before or during setup."""

    exit_code: int = 1


class DirectoryNotFoundError(PreconditionError):
    """A required directory does not exist."""


class DirectoryAccessError(PreconditionError):
    """A required directory exists but cannot be read or created."""


class SymlinkUnsupportedError(PreconditionError):
    """Symbolic links cannot be created on a platform that should support them."""


class HomeDirectoryError(PreconditionError):
    """The current user's home directory cannot be determined."""


class UnsupportedPlatformError(PreconditionError):
    """The host operating system is not supported."""


class LockHeldError(PreconditionError):
    """Another bridge run already holds the destination lock."""


# ============================================================
# Per-manifest / per-layer recoverable errors
# ============================================================

class ManifestError(BridgeError):
    """A single manifest cannot be processed; the run continues."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = path


class ManifestMissingError(ManifestError):
    """The manifest file vanished between enumeration and parsing."""


class ManifestUnreadableError(ManifestError):
    """The manifest file exists but cannot be read."""


class ManifestFormatError(ManifestError):
    """The manifest content is not well-formed JSON or has the wrong shape."""


class ManifestPathError(ManifestError):
    """The manifest's location does not follow registry/namespace/model/tag."""


class ConfigBlobError(ManifestError):
    """The config blob referenced by a manifest cannot be read or decoded."""


class LayerError(ManifestError):
    """One layer entry of a manifest is malformed."""

    def __init__(self, message: str, index: int, path: Optional[Union[str, Path]] = None):
        super().__init__(message, path)
        self.index = index
