"""
Tests for the manifest module.

Tests media-type classification, enumeration and parsing.
"""

import os
from pathlib import Path

import pytest

from ollama_lmstudio_bridge.errors import (
    LayerError,
    ManifestFormatError,
    ManifestMissingError,
    ManifestPathError,
    ManifestUnreadableError,
)
from ollama_lmstudio_bridge.manifest import (
    LayerRef,
    MediaKind,
    enumerate_manifests,
    parse_manifest,
    relative_manifest_path,
)

from conftest import MODEL_MEDIA, PARAMS_MEDIA, TEMPLATE_MEDIA


class TestMediaKind:
    """Tests for media type classification."""

    def test_classify_known_suffixes(self):
        """Test that model, template and params suffixes are recognised."""
        assert MediaKind.classify(MODEL_MEDIA) is MediaKind.MODEL
        assert MediaKind.classify(TEMPLATE_MEDIA) is MediaKind.TEMPLATE
        assert MediaKind.classify(PARAMS_MEDIA) is MediaKind.PARAMS

    def test_classify_unknown(self):
        """Test that other media types are unclassified."""
        assert MediaKind.classify("application/vnd.ollama.image.license") is MediaKind.UNKNOWN
        assert MediaKind.classify("application/vnd.ollama.image.system") is MediaKind.UNKNOWN

    def test_classify_is_case_sensitive(self):
        """Test that suffix matching does not ignore case."""
        assert MediaKind.classify("application/vnd.ollama.image.MODEL") is MediaKind.UNKNOWN

    def test_classify_projector_is_unknown(self):
        """Test that vision projector layers are not mistaken for the model."""
        assert MediaKind.classify("application/vnd.ollama.image.projector") is MediaKind.UNKNOWN


class TestLayerRef:
    """Tests for LayerRef.from_dict."""

    def test_from_dict(self):
        """Test building a layer from a manifest entry."""
        layer = LayerRef.from_dict({"mediaType": MODEL_MEDIA, "digest": "sha256:abc"}, 0)

        assert layer.media_type == MODEL_MEDIA
        assert layer.digest == "sha256:abc"
        assert layer.kind is MediaKind.MODEL

    def test_missing_media_type(self):
        """Test that a layer without mediaType is rejected."""
        with pytest.raises(LayerError) as exc_info:
            LayerRef.from_dict({"digest": "sha256:abc"}, 3)
        assert exc_info.value.index == 3

    def test_digest_without_prefix(self):
        """Test that non-sha256 digests are rejected."""
        with pytest.raises(LayerError):
            LayerRef.from_dict({"mediaType": MODEL_MEDIA, "digest": "md5:abc"}, 0)

    def test_not_an_object(self):
        """Test that a non-object layer entry is rejected."""
        with pytest.raises(LayerError):
            LayerRef.from_dict("sha256:abc", 0)


class TestEnumerateManifests:
    """Tests for enumerate_manifests."""

    def test_empty_directory(self, store):
        """Test that an empty manifests directory yields nothing."""
        assert enumerate_manifests(store.manifests) == []

    def test_finds_nested_files(self, store):
        """Test that files at any depth are returned."""
        store.add_manifest("library/llama3/latest", [])
        store.add_manifest("library/llama3/8b", [])
        store.add_manifest("user/phi/latest", [], registry="hf.co")

        found = enumerate_manifests(store.manifests)

        assert len(found) == 3
        assert all(p.is_file() for p in found)

    def test_order_is_stable(self, store):
        """Test that two walks return the same order."""
        for name in ("library/b/latest", "library/a/latest", "library/c/1"):
            store.add_manifest(name, [])

        first = enumerate_manifests(store.manifests)
        second = enumerate_manifests(store.manifests)

        assert first == second
        assert first == sorted(first, key=lambda p: p.as_posix())

    def test_paths_use_forward_slashes(self, store):
        """Test that returned paths are normalised."""
        store.add_manifest("library/llama3/latest", [])

        found = enumerate_manifests(store.manifests)

        assert "\\" not in str(found[0])

    def test_directories_are_not_returned(self, store):
        """Test that empty directories are not treated as manifests."""
        (store.manifests / "registry.ollama.ai" / "library" / "empty").mkdir(parents=True)
        assert enumerate_manifests(store.manifests) == []


class TestRelativeManifestPath:
    """Tests for relative_manifest_path."""

    def test_relative_path(self, store):
        """Test the path below the manifests directory."""
        path = store.add_manifest("library/llama3/latest", [])
        assert relative_manifest_path(path, store.manifests) == "registry.ollama.ai/library/llama3/latest"

    def test_too_short(self, store):
        """Test that registry/tag is rejected."""
        path = store.manifests / "registry.ollama.ai" / "latest"
        with pytest.raises(ManifestPathError):
            relative_manifest_path(path, store.manifests)

    def test_outside_root(self, tmp_path, store):
        """Test that a file outside the manifests directory is rejected."""
        with pytest.raises(ManifestPathError):
            relative_manifest_path(tmp_path / "elsewhere" / "a" / "b" / "c", store.manifests)


class TestParseManifest:
    """Tests for parse_manifest."""

    def test_parse_happy_path(self, store):
        """Test parsing a complete manifest."""
        path = store.add_manifest(
            "library/llama3/latest",
            [
                {"mediaType": MODEL_MEDIA, "digest": "sha256:aaaa"},
                {"mediaType": TEMPLATE_MEDIA, "digest": "sha256:cccc"},
                {"mediaType": PARAMS_MEDIA, "digest": "sha256:dddd"},
            ],
            config_digest="sha256:bbbb",
        )

        manifest = parse_manifest(path, store.manifests)

        assert manifest.config_digest == "sha256:bbbb"
        assert len(manifest.layers) == 3
        assert manifest.registry == "registry.ollama.ai"
        assert manifest.model_name == "llama3"
        assert manifest.tag == "latest"
        assert manifest.full_name == "registry.ollama.ai/library/llama3"
        assert manifest.model_layer.digest == "sha256:aaaa"
        assert manifest.template_layer.digest == "sha256:cccc"
        assert manifest.params_layer.digest == "sha256:dddd"
        assert manifest.layer_errors == []

    def test_missing_config_digest(self, store):
        """Test that a manifest without config is still parsed."""
        path = store.add_manifest("library/phi/latest", [{"mediaType": MODEL_MEDIA, "digest": "sha256:aa"}])

        manifest = parse_manifest(path, store.manifests)

        assert manifest.config_digest is None
        assert manifest.model_layer is not None

    def test_last_model_layer_wins(self, store):
        """Test that the last model layer in manifest order is primary."""
        path = store.add_manifest(
            "library/llava/latest",
            [
                {"mediaType": MODEL_MEDIA, "digest": "sha256:first"},
                {"mediaType": TEMPLATE_MEDIA, "digest": "sha256:tmpl"},
                {"mediaType": MODEL_MEDIA, "digest": "sha256:second"},
            ],
        )

        manifest = parse_manifest(path, store.manifests)

        assert manifest.model_layer.digest == "sha256:second"

    def test_bad_layer_skips_only_that_layer(self, store):
        """Test that a malformed layer does not drop the layers after it."""
        path = store.add_manifest(
            "library/qwen/latest",
            [
                {"mediaType": TEMPLATE_MEDIA, "digest": "sha256:tmpl"},
                {"mediaType": MODEL_MEDIA},
                {"mediaType": MODEL_MEDIA, "digest": "sha256:good"},
            ],
        )

        manifest = parse_manifest(path, store.manifests)

        assert [layer.digest for layer in manifest.layers] == ["sha256:tmpl", "sha256:good"]
        assert len(manifest.layer_errors) == 1
        assert manifest.layer_errors[0].index == 1
        assert manifest.model_layer.digest == "sha256:good"

    def test_missing_layers_key(self, store):
        """Test that a manifest without layers has no layers."""
        path = store.add_raw_manifest("library/empty/latest", '{"config": {"digest": "sha256:x"}}')

        manifest = parse_manifest(path, store.manifests)

        assert manifest.layers == []
        assert manifest.model_layer is None

    def test_layers_not_a_list(self, store):
        """Test that a non-list layers value is a format error."""
        path = store.add_raw_manifest("library/odd/latest", '{"layers": {"0": {}}}')

        with pytest.raises(ManifestFormatError):
            parse_manifest(path, store.manifests)

    def test_invalid_json(self, store):
        """Test that invalid JSON is a format error."""
        path = store.add_raw_manifest("library/broken/latest", "{not json")

        with pytest.raises(ManifestFormatError):
            parse_manifest(path, store.manifests)

    def test_json_not_an_object(self, store):
        """Test that a JSON array manifest is a format error."""
        path = store.add_raw_manifest("library/array/latest", "[1, 2, 3]")

        with pytest.raises(ManifestFormatError):
            parse_manifest(path, store.manifests)

    def test_missing_file(self, store):
        """Test that a vanished manifest raises ManifestMissingError."""
        path = store.manifests / "registry.ollama.ai" / "library" / "gone" / "latest"

        with pytest.raises(ManifestMissingError):
            parse_manifest(path, store.manifests)

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="permission bits are not enforced for root",
    )
    def test_unreadable_file(self, store):
        """Test that a manifest without read permission is reported as unreadable."""
        path = store.add_manifest("library/secret/latest", [])
        path.chmod(0)
        try:
            with pytest.raises(ManifestUnreadableError):
                parse_manifest(path, store.manifests)
        finally:
            path.chmod(0o644)

    def test_other_registry_keeps_host(self, store):
        """Test destination parts for a non-default registry."""
        path = store.add_manifest("bartowski/phi-gguf/Q4_K_M", [], registry="hf.co")

        manifest = parse_manifest(path, store.manifests)

        assert manifest.destination_parts == ["hf.co", "bartowski", "phi-gguf", "Q4_K_M"]
        assert manifest.model_name == "phi-gguf"

    def test_default_registry_is_dropped(self, store):
        """Test destination parts for registry.ollama.ai."""
        path = store.add_manifest("library/llama3/latest", [])

        manifest = parse_manifest(path, store.manifests)

        assert manifest.destination_parts == ["library", "llama3", "latest"]
