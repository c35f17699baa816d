"""
Blob store access.

Ollama stores content-addressed blobs flat under blobs/, named
``sha256-<hex>`` for a digest ``sha256:<hex>``.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from .errors import ConfigBlobError
from .manifest import DIGEST_PREFIX


@dataclass(frozen=True)
class ModelConfig:
    """
    Descriptive fields read from a model's config blob.

    Missing fields are empty strings.

    Attributes:
        file_type: Quantisation label (e.g., "Q4_0")
        model_format: File extension to apply (e.g., "gguf")
        model_type: Base/training family label (e.g., "llama")
    """
    file_type: str = ""
    model_format: str = ""
    model_type: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelConfig":
        def text(key: str) -> str:
            value = data.get(key)
            return str(value) if value not in (None, "") else ""

        return cls(
            file_type=text("file_type"),
            model_format=text("model_format"),
            model_type=text("model_type"),
        )


class BlobStore:
    """
    Maps digests to blob paths and reads config blobs.

    Example:
        >>> store = BlobStore(Path("~/.ollama/models/blobs").expanduser())
        >>> store.blob_path("sha256:ABCDEF")
        PosixPath('/home/me/.ollama/models/blobs/sha256-ABCDEF')
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def blob_path(self, digest: str) -> Path:
        """
        Resolve a digest to its blob path. No existence check is made.

        Args:
            digest: Digest of the form ``sha256:<hex>``

        Returns:
            ``{root}/sha256-<hex>``

        Raises:
            ValueError: If the digest is not a sha256 digest
        """
        if not digest.startswith(DIGEST_PREFIX):
            raise ValueError(f"Unsupported digest: {digest}")
        return self.root / f"sha256-{digest[len(DIGEST_PREFIX):]}"

    def load_model_config(self, digest: str) -> ModelConfig:
        """
        Read the config blob for a digest.

        A blob that is absent yields an empty ModelConfig.

        Raises:
            ConfigBlobError: If the blob exists but cannot be read or decoded
        """
        try:
            path = self.blob_path(digest)
        except ValueError as e:
            raise ConfigBlobError(str(e))

        if not path.is_file():
            return ModelConfig()

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigBlobError(f"Failed to read model config file: {path} ({e})", path)
        except json.JSONDecodeError as e:
            raise ConfigBlobError(f"Invalid JSON in model config file: {path} ({e})", path)

        if not isinstance(data, dict):
            raise ConfigBlobError(f"Model config is not a JSON object: {path}", path)
        return ModelConfig.from_dict(data)
