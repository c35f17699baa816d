"""
Directory resolution engine.

Runs the ordered source and destination probe lists and validates the
directories the rest of the pipeline depends on.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .base import ProbeStrategy
from .strategies import default_destination_probes, default_source_probes
from ..config import LMSTUDIO_SUBDIR, BridgeConfig
from ..console import StatusReporter
from ..errors import DirectoryAccessError, DirectoryNotFoundError
from ..utils import ensure_dir, is_readable_dir, is_writable_dir


@dataclass(frozen=True)
class ResolvedDirectories:
    """
    Directories a bridge run works with.

    Attributes:
        models_dir: Ollama models directory (parent of manifests/ and blobs/)
        manifest_root: Directory walked for manifest files
        blob_root: Flat directory of content-addressed blobs
        dest_root: LM Studio models directory
    """
    models_dir: Path
    manifest_root: Path
    blob_root: Path
    dest_root: Path

    @property
    def lmstudio_root(self) -> Path:
        """The subtree of dest_root owned by the bridge."""
        return self.dest_root / LMSTUDIO_SUBDIR


class DirectoryResolver:
    """
    Resolve source and destination directories from ordered probe lists.

    The first probe that finds a directory wins. Probes that do not apply to
    the host platform are skipped.

    Example:
        >>> resolver = DirectoryResolver(config, reporter)
        >>> dirs = resolver.resolve()
        >>> dirs.manifest_root
    """

    def __init__(
        self,
        config: BridgeConfig,
        reporter: Optional[StatusReporter] = None,
        source_probes: Optional[List[ProbeStrategy]] = None,
        destination_probes: Optional[List[ProbeStrategy]] = None,
    ):
        self.config = config
        self.reporter = reporter or StatusReporter(verbose=config.verbose, quiet=config.quiet)
        self.source_probes = source_probes if source_probes is not None else default_source_probes()
        self.destination_probes = (
            destination_probes if destination_probes is not None else default_destination_probes()
        )

    def _run_probes(self, probes: List[ProbeStrategy], label: str) -> Optional[Path]:
        for probe in probes:
            if not probe.applies_to(self.config.host):
                continue
            result = probe.probe(self.config)
            if result.found:
                self.reporter.debug(f"{label} [{probe.name}] {result.detail}")
                return result.path
            self.reporter.debug(f"{label} [{probe.name}] miss: {result.detail}")
        return None

    def find_source(self) -> Path:
        """
        Locate the Ollama models directory.

        Raises:
            DirectoryNotFoundError: If an explicit override does not exist or
                no probe matched
        """
        path = self._run_probes(self.source_probes, "source")
        if path is None:
            raise DirectoryNotFoundError("Could not find a valid Ollama models directory")
        return path

    def find_destination(self) -> Path:
        """
        Locate and create the LM Studio models directory.

        Raises:
            DirectoryNotFoundError: If no probe matched
            DirectoryAccessError: If the directory cannot be created or written
        """
        path = self._run_probes(self.destination_probes, "destination")
        if path is None:
            raise DirectoryNotFoundError("Could not find a valid LM Studio models directory")

        if not path.is_dir():
            self.reporter.info(f"Creating {path}")
            try:
                ensure_dir(path)
            except OSError as e:
                raise DirectoryAccessError(f"Failed to create LM Studio models directory {path}: {e}")

        if not is_writable_dir(path):
            raise DirectoryAccessError(f"LM Studio models directory is not writable: {path}")
        return path

    def resolve(self) -> ResolvedDirectories:
        """
        Resolve and validate every directory the run needs.

        Returns:
            ResolvedDirectories

        Raises:
            PreconditionError: On any missing or inaccessible directory
        """
        # Links store the blob path verbatim, so it must not be relative
        models_dir = self.find_source().resolve()
        manifest_root = models_dir / "manifests"
        blob_root = models_dir / "blobs"

        for path, kind in ((manifest_root, "Manifest"), (blob_root, "Blob")):
            if not path.is_dir():
                raise DirectoryNotFoundError(f"{kind} directory not found: {path}")
            if not is_readable_dir(path):
                raise DirectoryAccessError(f"Cannot read {kind.lower()} directory: {path}")

        dest_root = self.find_destination().resolve()

        return ResolvedDirectories(
            models_dir=models_dir,
            manifest_root=manifest_root,
            blob_root=blob_root,
            dest_root=dest_root,
        )
