"""
Configuration management for the Ollama-LM-Studio bridge.

Two layers:
- ConfigManager: persisted user defaults in ~/.config/ollama_lmstudio_bridge/config.json
- BridgeConfig: the immutable per-run configuration handed to every component
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .utils import HostPlatform, detect_platform, home_directory


# Default configuration file location
CONFIG_DIR = Path("~/.config/ollama_lmstudio_bridge").expanduser()
CONFIG_FILE = CONFIG_DIR / "config.json"

# Fixed locations used by the directory heuristics
SYSTEM_OLLAMA_MODELS = Path("/usr/share/ollama/.ollama/models")
OLLAMA_SERVICE_ACCOUNT = "ollama"
OLLAMA_SERVICE_UNIT = "ollama.service"
DEFAULT_REGISTRY = "registry.ollama.ai"
LMSTUDIO_SUBDIR = "lmstudio"


class ConfigManager:
    """
    Persisted user defaults for the bridge.

    Manages:
    - Ollama models directory override
    - LM Studio models directory override
    - Default skip-existing behaviour

    Example:
        >>> config = ConfigManager()
        >>> config.set_ollama_models("/data/ollama/models")
        >>> config.get_ollama_models()
    """

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = Path(config_file) if config_file else CONFIG_FILE
        self.config: Dict[str, Any] = self._load_config()

    def _default_config(self) -> Dict[str, Any]:
        """
        Return default configuration values.

        Returns:
            Default configuration dictionary
        """
        return {
            "ollama_models": None,  # Ollama models directory (manifests/ + blobs/)
            "lmstudio_models": None,  # LM Studio models directory
            "skip_existing": False,
        }

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from disk, merging with defaults.

        Returns:
            Configuration dictionary
        """
        if not self.config_file.exists():
            return self._default_config()

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                user_config = json.load(f)
            if not isinstance(user_config, dict):
                return self._default_config()
            # User config takes precedence
            return {**self._default_config(), **user_config}
        except (json.JSONDecodeError, OSError):
            return self._default_config()

    def save(self) -> None:
        """Save current configuration to disk."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self.config, f, indent=4, ensure_ascii=False)

    def set_ollama_models(self, path: str) -> None:
        """
        Set the Ollama models directory.

        Args:
            path: Path to the folder holding manifests/ and blobs/
        """
        self.config["ollama_models"] = str(Path(path).expanduser().resolve())
        self.save()

    def get_ollama_models(self) -> Optional[Path]:
        """Return the configured Ollama models directory, or None."""
        if self.config.get("ollama_models"):
            return Path(self.config["ollama_models"])
        return None

    def set_lmstudio_models(self, path: str) -> None:
        """
        Set the LM Studio models directory.

        Args:
            path: Path LM Studio is configured to read models from
        """
        self.config["lmstudio_models"] = str(Path(path).expanduser().resolve())
        self.save()

    def get_lmstudio_models(self) -> Optional[Path]:
        """Return the configured LM Studio models directory, or None."""
        if self.config.get("lmstudio_models"):
            return Path(self.config["lmstudio_models"])
        return None

    def reset(self) -> None:
        """Reset configuration to defaults."""
        self.config = self._default_config()
        self.save()


def get_config(config_file: Optional[Path] = None) -> ConfigManager:
    """
    Load the persisted user defaults.

    Args:
        config_file: Alternate config file (default location if None)

    Returns:
        ConfigManager instance
    """
    return ConfigManager(config_file)


@dataclass(frozen=True)
class BridgeConfig:
    """
    Immutable configuration for a single bridge run.

    Built once at startup from CLI flags and persisted defaults, then passed
    explicitly to the resolver, linker and pipeline.

    Attributes:
        home: Current user's home directory
        host: Host platform family
        verbose: Emit internal diagnostic detail
        quiet: Suppress informational and success output
        skip_existing: Keep existing destination links instead of overwriting
        ollama_dir: Explicit Ollama models directory override
        lmstudio_dir: Explicit LM Studio models directory override
    """
    home: Path
    host: HostPlatform
    verbose: bool = False
    quiet: bool = False
    skip_existing: bool = False
    ollama_dir: Optional[Path] = None
    lmstudio_dir: Optional[Path] = None

    @classmethod
    def build(
        cls,
        verbose: bool = False,
        quiet: bool = False,
        skip_existing: Optional[bool] = None,
        ollama_dir: Optional[str] = None,
        lmstudio_dir: Optional[str] = None,
        manager: Optional[ConfigManager] = None,
        host: Optional[HostPlatform] = None,
        home: Optional[Path] = None,
    ) -> "BridgeConfig":
        """
        Merge CLI options over persisted defaults.

        Raises:
            UnsupportedPlatformError: If the host OS is not supported
            HomeDirectoryError: If the home directory is unknown
        """
        manager = manager or get_config()

        if skip_existing is None:
            skip_existing = bool(manager.config.get("skip_existing", False))

        return cls(
            home=home or home_directory(),
            host=host or detect_platform(),
            verbose=verbose,
            quiet=quiet,
            skip_existing=skip_existing,
            ollama_dir=Path(ollama_dir).expanduser() if ollama_dir else manager.get_ollama_models(),
            lmstudio_dir=Path(lmstudio_dir).expanduser() if lmstudio_dir else manager.get_lmstudio_models(),
        )
