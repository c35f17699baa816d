"""
Ollama manifest enumeration and parsing.

A manifest lives at manifests/{registry}/{namespace}/{model}/{tag} and looks like:

    {
        "config": {"digest": "sha256:..."},
        "layers": [
            {"mediaType": "application/vnd.ollama.image.model", "digest": "sha256:..."},
            {"mediaType": "application/vnd.ollama.image.template", "digest": "sha256:..."}
        ]
    }
"""

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import DEFAULT_REGISTRY
from .errors import (
    LayerError,
    ManifestFormatError,
    ManifestMissingError,
    ManifestPathError,
    ManifestUnreadableError,
)
from .utils import normalize_path


DIGEST_PREFIX = "sha256:"


class MediaKind(Enum):
    """Role of a layer, classified once from its media type."""
    MODEL = "model"
    TEMPLATE = "template"
    PARAMS = "params"
    UNKNOWN = "unknown"

    @classmethod
    def classify(cls, media_type: str) -> "MediaKind":
        """
        Classify a media type by its suffix (case-sensitive).

        Examples:
            application/vnd.ollama.image.model    -> MODEL
            application/vnd.ollama.image.template -> TEMPLATE
            application/vnd.ollama.image.license  -> UNKNOWN
        """
        for kind in (cls.MODEL, cls.TEMPLATE, cls.PARAMS):
            if media_type.endswith(kind.value):
                return kind
        return cls.UNKNOWN


@dataclass(frozen=True)
class LayerRef:
    """One content entry of a manifest."""
    media_type: str
    digest: str
    kind: MediaKind = MediaKind.UNKNOWN

    @classmethod
    def from_dict(cls, data: Any, index: int) -> "LayerRef":
        """
        Build a LayerRef from a raw manifest entry.

        Raises:
            LayerError: If the entry lacks a string mediaType or a sha256 digest
        """
        if not isinstance(data, dict):
            raise LayerError(f"Layer {index} is not an object", index)

        media_type = data.get("mediaType")
        if not isinstance(media_type, str):
            raise LayerError(f"Failed to parse mediaType for layer {index}", index)

        digest = data.get("digest")
        if not isinstance(digest, str) or not digest.startswith(DIGEST_PREFIX):
            raise LayerError(f"Failed to parse digest for layer {index}", index)

        return cls(media_type=media_type, digest=digest, kind=MediaKind.classify(media_type))


@dataclass
class Manifest:
    """
    A parsed manifest and its position in the manifests tree.

    Attributes:
        path: Absolute manifest file path
        relative_path: "/"-separated path below the manifests directory
        config_digest: Digest of the config blob, if the manifest names one
        layers: Well-formed layers in manifest order
        layer_errors: Layers that were skipped because they were malformed
    """
    path: Path
    relative_path: str
    config_digest: Optional[str] = None
    layers: List[LayerRef] = field(default_factory=list)
    layer_errors: List[LayerError] = field(default_factory=list)

    @property
    def parts(self) -> List[str]:
        return self.relative_path.split("/")

    @property
    def registry(self) -> str:
        return self.parts[0]

    @property
    def model_name(self) -> str:
        """Display name: the directory holding the manifest file."""
        return self.parts[-2]

    @property
    def tag(self) -> str:
        return self.parts[-1]

    @property
    def full_name(self) -> str:
        """registry/namespace/model, as logged."""
        return "/".join(self.parts[:-1])

    @property
    def destination_parts(self) -> List[str]:
        """
        Directory components below the lmstudio folder.

        The default registry host is dropped; other registries keep theirs.
        """
        if self.registry == DEFAULT_REGISTRY:
            return self.parts[1:]
        return self.parts

    def _last_of(self, kind: MediaKind) -> Optional[LayerRef]:
        # later layers override earlier ones of the same kind
        found = None
        for layer in self.layers:
            if layer.kind is kind:
                found = layer
        return found

    @property
    def model_layer(self) -> Optional[LayerRef]:
        return self._last_of(MediaKind.MODEL)

    @property
    def template_layer(self) -> Optional[LayerRef]:
        return self._last_of(MediaKind.TEMPLATE)

    @property
    def params_layer(self) -> Optional[LayerRef]:
        return self._last_of(MediaKind.PARAMS)


def enumerate_manifests(manifest_root: Path) -> List[Path]:
    """
    Walk the manifests directory and return every regular file below it.

    The result is sorted so repeated walks in a run see the same order.

    Args:
        manifest_root: The manifests directory

    Returns:
        Manifest file paths with "/" separators
    """
    found: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(manifest_root):
        dirnames.sort()
        for filename in filenames:
            file_path = Path(dirpath) / filename
            if file_path.is_file():
                found.append(Path(normalize_path(str(file_path))))
    return sorted(found, key=lambda p: p.as_posix())


def relative_manifest_path(manifest: Path, manifest_root: Path) -> str:
    """
    Path of a manifest below the manifests directory, "/"-separated.

    Raises:
        ManifestPathError: If the manifest is outside the root or the path is
            shorter than registry/model/tag
    """
    root = normalize_path(str(manifest_root))
    full = normalize_path(str(manifest))
    if not full.startswith(root + "/"):
        raise ManifestPathError(f"Manifest is outside {root}: {full}", manifest)

    relative = full[len(root) + 1:]
    if len(relative.split("/")) < 3:
        raise ManifestPathError(f"Invalid manifest path structure: {full}", manifest)
    return relative


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ManifestMissingError(f"Manifest file not found: {path}", path)

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ManifestMissingError(f"Manifest file not found: {path}", path)
    except OSError:
        raise ManifestUnreadableError(f"Cannot read manifest file: {path}", path)
    except UnicodeDecodeError:
        raise ManifestFormatError(f"Invalid JSON in manifest file: {path}", path)

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        raise ManifestFormatError(f"Invalid JSON in manifest file: {path}", path)

    if not isinstance(data, dict):
        raise ManifestFormatError(f"Manifest is not a JSON object: {path}", path)
    return data


def _extract_config_digest(data: Dict[str, Any]) -> Optional[str]:
    config = data.get("config")
    if isinstance(config, dict):
        digest = config.get("digest")
        if isinstance(digest, str) and digest:
            return digest
    return None


def _extract_layers(data: Dict[str, Any], path: Path) -> Tuple[List[LayerRef], List[LayerError]]:
    raw_layers = data.get("layers")
    if raw_layers is None:
        return [], []
    if not isinstance(raw_layers, list):
        raise ManifestFormatError(f"Failed to parse layers from {path}", path)

    layers: List[LayerRef] = []
    errors: List[LayerError] = []
    for index, raw in enumerate(raw_layers):
        try:
            layers.append(LayerRef.from_dict(raw, index))
        except LayerError as e:
            e.path = path
            errors.append(e)
    return layers, errors


def parse_manifest(path: Path, manifest_root: Path) -> Manifest:
    """
    Read and parse one manifest.

    Malformed layers do not fail the manifest; they are recorded in
    ``Manifest.layer_errors`` and the remaining layers are kept.

    Args:
        path: Manifest file path
        manifest_root: The manifests directory the file was found under

    Returns:
        Parsed Manifest

    Raises:
        ManifestMissingError: The file does not exist
        ManifestUnreadableError: The file cannot be read
        ManifestFormatError: The content is not a JSON object or layers is not a list
        ManifestPathError: The path does not follow registry/.../model/tag
    """
    data = _load_json(path)
    relative = relative_manifest_path(path, manifest_root)
    layers, layer_errors = _extract_layers(data, path)

    return Manifest(
        path=path,
        relative_path=relative,
        config_digest=_extract_config_digest(data),
        layers=layers,
        layer_errors=layer_errors,
    )
