"""
Tests for the command-line interface.

Uses click's CliRunner against a fake Ollama store.
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from ollama_lmstudio_bridge import __version__
from ollama_lmstudio_bridge.cli import main


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def run_args(store, dest: Path, tmp_path: Path, *extra: str):
    return [
        "--run",
        "--ollama-dir", str(store.root),
        "--dir", str(dest),
        "--config", str(tmp_path / "no-config.json"),
        *extra,
    ]


class TestCommandSurface:
    """Tests for flags that do not run the bridge."""

    def test_version(self, runner):
        """Test --version prints the program name and version."""
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert f"Ollama-LM-Studio Bridge v{__version__}" in result.output

    def test_help_without_run(self, runner):
        """Test that omitting --run shows usage and changes nothing."""
        result = runner.invoke(main, [])

        assert result.exit_code == 0
        assert "--run" in result.output
        assert "--skip-existing" in result.output

    def test_short_help(self, runner):
        """Test -h is accepted."""
        result = runner.invoke(main, ["-h"])

        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_verbose_and_quiet_conflict(self, runner):
        """Test that --verbose with --quiet is a usage error."""
        result = runner.invoke(main, ["--run", "-v", "-q"])

        assert result.exit_code == 2
        assert "cannot be used together" in result.output

    def test_unknown_option(self, runner):
        """Test that an unknown option fails."""
        result = runner.invoke(main, ["--bogus"])
        assert result.exit_code != 0


class TestRun:
    """Tests for --run."""

    def test_happy_path(self, runner, store, dest, tmp_path):
        """Test a run links the model and prints the LM Studio hint."""
        store.add_llama3()

        result = runner.invoke(main, run_args(store, dest, tmp_path))

        assert result.exit_code == 0, result.output
        assert (dest / "lmstudio" / "library" / "llama3" / "latest" / "llama3-llama-Q4_0.gguf").is_symlink()
        assert "Set the Models Directory in LMStudio to:" in result.output
        assert str(dest) in result.output
        assert "Linked: 1" in result.output

    def test_quiet_hides_info(self, runner, store, dest, tmp_path):
        """Test that quiet mode drops INFO lines but keeps the summary."""
        store.add_llama3()

        result = runner.invoke(main, run_args(store, dest, tmp_path, "--quiet"))

        assert result.exit_code == 0, result.output
        assert "[INFO]" not in result.output
        assert "[SUCCESS]" not in result.output
        assert "Set the Models Directory in LMStudio to:" in result.output

    def test_quiet_keeps_warnings(self, runner, store, dest, tmp_path):
        """Test that warnings are shown even in quiet mode."""
        store.add_raw_manifest("library/broken/latest", "nope")

        result = runner.invoke(main, run_args(store, dest, tmp_path, "-q"))

        assert result.exit_code == 0
        assert "[WARNING]" in result.output

    def test_verbose_shows_debug(self, runner, store, dest, tmp_path):
        """Test that verbose mode adds probe diagnostics."""
        store.add_llama3()

        result = runner.invoke(main, run_args(store, dest, tmp_path, "--verbose"))

        assert result.exit_code == 0, result.output
        assert "[DEBUG]" in result.output

    def test_nothing_to_do(self, runner, store, dest, tmp_path):
        """Test that an empty store exits 0 and still prints the hint."""
        result = runner.invoke(main, run_args(store, dest, tmp_path))

        assert result.exit_code == 0
        assert "No manifest files found" in result.output
        assert "Set the Models Directory in LMStudio to:" in result.output

    def test_missing_ollama_dir(self, runner, dest, tmp_path):
        """Test that a missing --ollama-dir exits non-zero."""
        result = runner.invoke(
            main,
            ["--run", "-o", str(tmp_path / "missing"), "-d", str(dest), "--config", str(tmp_path / "c.json")],
        )

        assert result.exit_code == 1
        assert "[ERROR]" in result.output
        assert "does not exist" in result.output

    def test_config_file_supplies_defaults(self, runner, store, dest, tmp_path):
        """Test that directories can come from the persisted config file."""
        store.add_llama3()
        config_file = tmp_path / "config.json"
        config_file.write_text(
            '{"ollama_models": "%s", "lmstudio_models": "%s"}' % (store.root.as_posix(), dest.as_posix()),
            encoding="utf-8",
        )

        result = runner.invoke(main, ["--run", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert (dest / "lmstudio" / "library" / "llama3" / "latest").is_dir()

    def test_unexpected_error_reports_step(self, runner, store, dest, tmp_path, monkeypatch):
        """Test that an unexpected fault names the failing step and exits 2."""
        store.add_llama3()

        def boom(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr("ollama_lmstudio_bridge.core.enumerate_manifests", boom)

        result = runner.invoke(main, run_args(store, dest, tmp_path))

        assert result.exit_code == 2
        assert "enumerate manifests" in result.output
        assert "kaboom" in result.output
