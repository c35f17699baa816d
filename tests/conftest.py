"""Shared test fixtures for the Ollama-LM-Studio bridge."""

import io
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from rich.console import Console

from ollama_lmstudio_bridge.config import BridgeConfig
from ollama_lmstudio_bridge.console import StatusReporter
from ollama_lmstudio_bridge.utils import HostPlatform


MODEL_MEDIA = "application/vnd.ollama.image.model"
TEMPLATE_MEDIA = "application/vnd.ollama.image.template"
PARAMS_MEDIA = "application/vnd.ollama.image.params"


class FakeOllamaStore:
    """Builds an Ollama models directory (manifests/ + blobs/) on disk."""

    def __init__(self, root: Path):
        self.root = root
        self.manifests = root / "manifests"
        self.blobs = root / "blobs"
        self.manifests.mkdir(parents=True)
        self.blobs.mkdir(parents=True)

    def add_blob(self, hex_digest: str, content: bytes = b"weights") -> Path:
        path = self.blobs / f"sha256-{hex_digest}"
        path.write_bytes(content)
        return path

    def add_config_blob(self, hex_digest: str, data: Dict[str, Any]) -> Path:
        return self.add_blob(hex_digest, json.dumps(data).encode("utf-8"))

    def add_manifest(
        self,
        name: str,
        layers: List[Dict[str, Any]],
        config_digest: Optional[str] = None,
        registry: str = "registry.ollama.ai",
    ) -> Path:
        path = self.manifests / registry / name
        path.parent.mkdir(parents=True, exist_ok=True)
        data: Dict[str, Any] = {"schemaVersion": 2, "layers": layers}
        if config_digest is not None:
            data["config"] = {"digest": config_digest}
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def add_raw_manifest(self, name: str, text: str, registry: str = "registry.ollama.ai") -> Path:
        path = self.manifests / registry / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def add_llama3(self) -> Path:
        """The canonical happy-path model."""
        self.add_blob("aaaa", b"llama3 weights")
        self.add_config_blob("bbbb", {"file_type": "Q4_0", "model_format": "gguf", "model_type": "llama"})
        return self.add_manifest(
            "library/llama3/latest",
            [{"mediaType": MODEL_MEDIA, "digest": "sha256:aaaa"}],
            config_digest="sha256:bbbb",
        )


@pytest.fixture()
def store(tmp_path: Path) -> FakeOllamaStore:
    return FakeOllamaStore(tmp_path / "ollama" / "models")


@pytest.fixture()
def dest(tmp_path: Path) -> Path:
    return tmp_path / "lmstudio-models"


@pytest.fixture()
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture()
def make_config(store: FakeOllamaStore, dest: Path, home: Path):
    def _make(**overrides: Any) -> BridgeConfig:
        values: Dict[str, Any] = {
            "home": home,
            "host": HostPlatform.LINUX,
            "ollama_dir": store.root,
            "lmstudio_dir": dest,
        }
        values.update(overrides)
        return BridgeConfig(**values)

    return _make


@pytest.fixture()
def reporter() -> StatusReporter:
    console = Console(file=io.StringIO(), soft_wrap=True, highlight=False)
    return StatusReporter(verbose=True, console=console)


def captured(reporter: StatusReporter) -> str:
    return reporter.console.file.getvalue()
