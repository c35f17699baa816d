"""
Core module for the Ollama-LM-Studio bridge.

Contains the Bridge pipeline:
    resolve directories -> enumerate manifests -> parse -> resolve blobs -> materialise

Each manifest produces one ManifestOutcome; the run produces a RunSummary.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from .blobs import BlobStore, ModelConfig
from .config import BridgeConfig
from .console import StatusReporter
from .errors import ConfigBlobError, ManifestError
from .linker import LinkMaterializer, LinkResult, RunLock, link_target
from .manifest import Manifest, enumerate_manifests, parse_manifest
from .resolver import DirectoryResolver, ResolvedDirectories


class OutcomeStatus(Enum):
    """Final state of one manifest."""
    LINKED = "linked"
    COPIED = "copied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ManifestOutcome:
    """
    Result of processing one manifest.

    Attributes:
        manifest_path: The manifest file
        status: What happened
        name: Model name for display (registry/namespace/model)
        target: Destination entry, when one was computed
        reason: Why the manifest was skipped or failed
    """
    manifest_path: Path
    status: OutcomeStatus
    name: str = ""
    target: Optional[Path] = None
    reason: str = ""


@dataclass
class RunSummary:
    """Aggregate of every manifest outcome in a run."""
    dest_root: Optional[Path] = None
    outcomes: List[ManifestOutcome] = field(default_factory=list)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def linked(self) -> int:
        return self.count(OutcomeStatus.LINKED)

    @property
    def copied(self) -> int:
        return self.count(OutcomeStatus.COPIED)

    @property
    def skipped(self) -> int:
        return self.count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(OutcomeStatus.FAILED)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def stats(self) -> Dict[str, int]:
        return {status.value: self.count(status) for status in OutcomeStatus}


@dataclass
class ResolvedModel:
    """A parsed manifest with its blobs resolved."""
    manifest: Manifest
    config: ModelConfig
    model_blob: Optional[Path] = None
    template_blob: Optional[Path] = None
    params_blob: Optional[Path] = None


_LINK_STATUS = {
    LinkResult.LINKED: OutcomeStatus.LINKED,
    LinkResult.COPIED: OutcomeStatus.COPIED,
    LinkResult.SKIPPED: OutcomeStatus.SKIPPED,
}


class Bridge:
    """
    One-shot synchronisation of Ollama models into an LM Studio folder.

    Example:
        >>> config = BridgeConfig.build(verbose=True)
        >>> summary = Bridge(config).run()
        >>> summary.linked
    """

    def __init__(
        self,
        config: BridgeConfig,
        reporter: Optional[StatusReporter] = None,
        resolver: Optional[DirectoryResolver] = None,
        materializer: Optional[LinkMaterializer] = None,
    ):
        self.config = config
        self.reporter = reporter or StatusReporter(verbose=config.verbose, quiet=config.quiet)
        self.resolver = resolver or DirectoryResolver(config, self.reporter)
        self.materializer = materializer or LinkMaterializer(config, self.reporter)
        #: Name of the pipeline step currently running, for error reports
        self.step = "startup"

    def run(self) -> RunSummary:
        """
        Execute the whole pipeline.

        Returns:
            RunSummary with one outcome per manifest

        Raises:
            PreconditionError: On any fatal condition
        """
        self.step = "resolve directories"
        dirs = self.resolver.resolve()
        summary = RunSummary(dest_root=dirs.dest_root)

        self.reporter.info("Configuration:")
        self.reporter.info(f"Manifest Directory: {dirs.manifest_root}")
        self.reporter.info(f"Blob Directory: {dirs.blob_root}")
        self.reporter.info(f"Public Models Dir: {dirs.dest_root}")

        self.step = "check symlink capability"
        self.materializer.check_symlink_capability()

        self.step = "acquire lock"
        with RunLock(dirs.dest_root):
            self.step = "enumerate manifests"
            self.reporter.info(f"Scanning manifest directory: {dirs.manifest_root}")
            manifests = enumerate_manifests(dirs.manifest_root)
            if not manifests:
                self.reporter.warning(f"No manifest files found in {dirs.manifest_root}")
                self.step = "done"
                return summary

            self.reporter.info("Found manifest files:")
            for path in manifests:
                self.reporter.detail(str(path))

            self.step = "prepare destination"
            self.materializer.prepare_destination(dirs.lmstudio_root)

            self.step = "process manifests"
            store = BlobStore(dirs.blob_root)
            for path in manifests:
                summary.outcomes.append(self.process_manifest(path, dirs, store))

            self.step = "cleanup"
            self.materializer.cleanup_empty_dirs(dirs.lmstudio_root)

        self.step = "done"
        return summary

    def resolve_model(self, manifest: Manifest, store: BlobStore) -> ResolvedModel:
        """
        Resolve the blobs a manifest refers to and read its config blob.

        Raises:
            ConfigBlobError: If the config blob exists but is unreadable
        """
        if manifest.config_digest:
            config = store.load_model_config(manifest.config_digest)
        else:
            self.reporter.info(f"No config digest found in {manifest.path}")
            config = ModelConfig()

        def blob_for(layer) -> Optional[Path]:
            return store.blob_path(layer.digest) if layer is not None else None

        return ResolvedModel(
            manifest=manifest,
            config=config,
            model_blob=blob_for(manifest.model_layer),
            template_blob=blob_for(manifest.template_layer),
            params_blob=blob_for(manifest.params_layer),
        )

    def process_manifest(
        self,
        path: Path,
        dirs: ResolvedDirectories,
        store: BlobStore,
    ) -> ManifestOutcome:
        """
        Parse one manifest and materialise its model.

        Never raises for per-manifest problems; they become FAILED or
        SKIPPED outcomes.
        """
        try:
            manifest = parse_manifest(path, dirs.manifest_root)
        except ManifestError as e:
            self.reporter.warning(str(e))
            return ManifestOutcome(path, OutcomeStatus.FAILED, reason=str(e))

        name = manifest.full_name
        for layer_error in manifest.layer_errors:
            self.reporter.error(f"{layer_error} in {path}")

        self.reporter.info(f"Processing model: {name} from registry: {manifest.registry}")

        try:
            model = self.resolve_model(manifest, store)
        except ConfigBlobError as e:
            self.reporter.error(str(e))
            return ManifestOutcome(path, OutcomeStatus.FAILED, name, reason=str(e))

        self.reporter.detail(f"Quantization: {model.config.file_type}")
        self.reporter.detail(f"Format: {model.config.model_format}")
        self.reporter.detail(f"Training: {model.config.model_type}")
        if model.template_blob:
            self.reporter.debug(f"  Template: {model.template_blob}")
        if model.params_blob:
            self.reporter.debug(f"  Params: {model.params_blob}")

        if model.model_blob is None:
            self.reporter.warning(f"No model file found for {name}")
            return ManifestOutcome(path, OutcomeStatus.SKIPPED, name, reason="no model layer")

        if not model.model_blob.is_file():
            self.reporter.warning(f"No model file found for {name} (missing blob {model.model_blob})")
            return ManifestOutcome(path, OutcomeStatus.SKIPPED, name, reason="model blob missing")

        target = link_target(dirs.lmstudio_root, manifest, model.config)

        self.reporter.info(f"Creating symbolic link for {name}...")
        try:
            result = self.materializer.materialize(model.model_blob, target)
        except (OSError, NotImplementedError) as e:
            self.reporter.error(f"Failed to create link for {name}: {e}")
            return ManifestOutcome(path, OutcomeStatus.FAILED, name, target, reason=str(e))

        if result is LinkResult.SKIPPED:
            self.reporter.info(f"Skipping existing symlink for {name}")
            return ManifestOutcome(path, OutcomeStatus.SKIPPED, name, target, reason="already exists")

        self.reporter.success(f"Successfully linked {name}")
        return ManifestOutcome(path, _LINK_STATUS[result], name, target)
