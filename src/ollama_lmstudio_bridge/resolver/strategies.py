"""
Concrete directory probes.

Source probes locate the Ollama models directory (the folder holding
manifests/ and blobs/). Destination probes locate the LM Studio models
directory.

Source order on Linux/macOS:
    override -> service account -> service manager -> system install -> home -> home default
Source order on Windows:
    override -> drive search -> home .ollama search -> AppData default
Destination order:
    override -> (Windows only) drive search -> common locations -> ~/.lmstudio/models
"""

import os
import shutil
import string
import subprocess
from collections import deque
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .base import POSIX_PLATFORMS, WINDOWS_PLATFORMS, ProbeResult, ProbeStrategy
from ..config import (
    DEFAULT_REGISTRY,
    OLLAMA_SERVICE_ACCOUNT,
    OLLAMA_SERVICE_UNIT,
    SYSTEM_OLLAMA_MODELS,
    BridgeConfig,
)
from ..errors import DirectoryNotFoundError
from ..utils import (
    current_user,
    is_readable_dir,
    is_writable_dir,
    to_msys_path,
    user_in_group,
)


# Depth bounds for the filesystem searches
SOURCE_SEARCH_DEPTH = 8
HOME_SEARCH_DEPTH = 4
DESTINATION_SEARCH_DEPTH = 5


# ============================================================
# Search Utilities
# ============================================================

def drive_roots() -> List[Path]:
    """
    List mounted Windows drive roots, C: through Z:.

    Under MSYS-style Pythons the drives are mounted as /c, /d, ...
    """
    roots = []
    for letter in string.ascii_uppercase[2:]:
        root = Path(f"{letter}:/") if os.name == "nt" else Path(f"/{letter.lower()}")
        if root.is_dir():
            roots.append(root)
    return roots


def bounded_search(
    roots: Iterable[Path],
    predicate: Callable[[Path], bool],
    max_depth: int,
) -> Optional[Path]:
    """
    Breadth-first search for the first directory matching a predicate.

    Symlinked directories are not followed and unreadable directories are
    skipped silently. Children of a root are at depth 1.

    Args:
        roots: Directories to start from, searched in order
        predicate: Match test applied to every directory visited
        max_depth: Deepest level to inspect

    Returns:
        First matching directory, or None
    """
    for root in roots:
        queue = deque([(Path(root), 0)])
        while queue:
            current, depth = queue.popleft()
            if depth > 0 and predicate(current):
                return current
            if depth >= max_depth:
                continue
            try:
                with os.scandir(current) as entries:
                    children = sorted(
                        entry.path for entry in entries
                        if entry.is_dir(follow_symlinks=False)
                    )
            except OSError:
                continue
            queue.extend((Path(child), depth + 1) for child in children)
    return None


def _host_path(config: BridgeConfig, path: Path) -> Path:
    """Translate a Windows drive path for MSYS-style Pythons."""
    if config.host.is_windows and os.name != "nt":
        return Path(to_msys_path(str(path)))
    return path


def systemd_service_active(unit: str = OLLAMA_SERVICE_UNIT) -> bool:
    """Return True if systemctl reports the unit as active."""
    if shutil.which("systemctl") is None:
        return False
    try:
        result = subprocess.run(
            ["systemctl", "is-active", "--quiet", unit],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return False
    return result.returncode == 0


# ============================================================
# Source Probes
# ============================================================

class SourceOverrideProbe(ProbeStrategy):
    """Use the directory given with --ollama-dir or the config file."""

    @property
    def name(self) -> str:
        return "override"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        if config.ollama_dir is None:
            return ProbeResult.miss("no override given")

        path = _host_path(config, config.ollama_dir)
        if config.host.is_windows:
            if not (path / "manifests" / DEFAULT_REGISTRY).is_dir():
                raise DirectoryNotFoundError(
                    f"Specified Ollama directory does not contain Ollama models: {path}"
                )
        elif not path.is_dir():
            raise DirectoryNotFoundError(f"Specified Ollama directory does not exist: {path}")

        return ProbeResult(path, f"Using specified Ollama directory: {path}")


class ServiceAccountProbe(ProbeStrategy):
    """Running as the ollama service account means the system-wide store."""

    platforms = POSIX_PLATFORMS

    def __init__(
        self,
        system_path: Path = SYSTEM_OLLAMA_MODELS,
        user_lookup: Callable[[], str] = current_user,
    ):
        self.system_path = system_path
        self.user_lookup = user_lookup

    @property
    def name(self) -> str:
        return "service-account"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        if self.user_lookup() == OLLAMA_SERVICE_ACCOUNT:
            return ProbeResult(self.system_path, f"Running as ollama user, using: {self.system_path}")
        return ProbeResult.miss("not running as the ollama user")


class ServiceManagerProbe(ProbeStrategy):
    """An active ollama systemd unit plus group membership or write access."""

    platforms = POSIX_PLATFORMS

    def __init__(
        self,
        system_path: Path = SYSTEM_OLLAMA_MODELS,
        service_active: Callable[[], bool] = systemd_service_active,
        in_group: Callable[[str], bool] = user_in_group,
    ):
        self.system_path = system_path
        self.service_active = service_active
        self.in_group = in_group

    @property
    def name(self) -> str:
        return "service-manager"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        if not self.service_active():
            return ProbeResult.miss(f"{OLLAMA_SERVICE_UNIT} is not active")
        if self.in_group(OLLAMA_SERVICE_ACCOUNT) or is_writable_dir(self.system_path):
            return ProbeResult(
                self.system_path,
                f"Found active ollama service with access, using: {self.system_path}",
            )
        return ProbeResult.miss(f"{OLLAMA_SERVICE_UNIT} is active but {self.system_path} is not accessible")


class SystemInstallProbe(ProbeStrategy):
    """The fixed system-wide store, writable preferred, readable accepted."""

    platforms = POSIX_PLATFORMS

    def __init__(
        self,
        system_path: Path = SYSTEM_OLLAMA_MODELS,
        in_group: Callable[[str], bool] = user_in_group,
    ):
        self.system_path = system_path
        self.in_group = in_group

    @property
    def name(self) -> str:
        return "system-install"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        if not self.system_path.is_dir():
            return ProbeResult.miss(f"{self.system_path} does not exist")
        if is_writable_dir(self.system_path) or self.in_group(OLLAMA_SERVICE_ACCOUNT):
            return ProbeResult(
                self.system_path,
                f"Found system-wide installation with access: {self.system_path}",
            )
        if is_readable_dir(self.system_path):
            return ProbeResult(
                self.system_path,
                f"Found readable system-wide installation: {self.system_path}",
            )
        return ProbeResult.miss(f"{self.system_path} is not readable")


class HomeInstallProbe(ProbeStrategy):
    """~/.ollama/models, used by Homebrew and the default installer."""

    platforms = POSIX_PLATFORMS

    @property
    def name(self) -> str:
        return "home"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        path = config.home / ".ollama" / "models"
        if path.is_dir():
            return ProbeResult(path, f"Found models in home directory: {path}")
        return ProbeResult.miss(f"{path} does not exist")


class DriveSearchProbe(ProbeStrategy):
    """Search drive roots for a manifests/registry.ollama.ai directory."""

    platforms = WINDOWS_PLATFORMS

    def __init__(
        self,
        roots: Callable[[], Iterable[Path]] = drive_roots,
        max_depth: int = SOURCE_SEARCH_DEPTH,
    ):
        self.roots = roots
        self.max_depth = max_depth

    @property
    def name(self) -> str:
        return "drive-search"

    @staticmethod
    def _is_registry_dir(path: Path) -> bool:
        return path.name == DEFAULT_REGISTRY and path.parent.name == "manifests"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        found = bounded_search(self.roots(), self._is_registry_dir, self.max_depth)
        if found is None:
            return ProbeResult.miss("no manifests directory found on any drive")
        models_dir = found.parent.parent
        return ProbeResult(models_dir, f"Found Ollama models at: {models_dir}")


class HomeDotOllamaSearchProbe(ProbeStrategy):
    """Search the home directory for a .ollama folder."""

    platforms = WINDOWS_PLATFORMS

    def __init__(self, max_depth: int = HOME_SEARCH_DEPTH):
        self.max_depth = max_depth

    @property
    def name(self) -> str:
        return "home-search"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        found = bounded_search([config.home], lambda p: p.name == ".ollama", self.max_depth)
        if found is None:
            return ProbeResult.miss(f"no .ollama directory under {config.home}")
        models_dir = found / "models"
        return ProbeResult(models_dir, f"Found potential Ollama directory at: {models_dir}")


class HomeDefaultProbe(ProbeStrategy):
    """Unconditional fallback under the home directory."""

    @property
    def name(self) -> str:
        return "home-default"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        if config.host.is_windows:
            path = config.home / "AppData" / "Local" / ".ollama" / "models"
        else:
            path = config.home / ".ollama" / "models"
        return ProbeResult(path, f"No existing installation found, defaulting to: {path}")


# ============================================================
# Destination Probes
# ============================================================

class DestinationOverrideProbe(ProbeStrategy):
    """Use the directory given with --dir or the config file."""

    @property
    def name(self) -> str:
        return "override"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        if config.lmstudio_dir is None:
            return ProbeResult.miss("no override given")
        path = _host_path(config, config.lmstudio_dir)
        return ProbeResult(path, f"Using specified LM Studio directory: {path}")


class LMStudioDriveSearchProbe(ProbeStrategy):
    """Search {drive}/Users for a models folder inside an LMStudio tree."""

    platforms = WINDOWS_PLATFORMS

    def __init__(
        self,
        roots: Callable[[], Iterable[Path]] = drive_roots,
        max_depth: int = DESTINATION_SEARCH_DEPTH,
    ):
        self.roots = roots
        self.max_depth = max_depth

    @property
    def name(self) -> str:
        return "drive-search"

    @staticmethod
    def _is_lmstudio_models(path: Path) -> bool:
        return path.name == "models" and "LMStudio" in path.as_posix()

    def probe(self, config: BridgeConfig) -> ProbeResult:
        user_roots = [root / "Users" for root in self.roots() if (root / "Users").is_dir()]
        found = bounded_search(user_roots, self._is_lmstudio_models, self.max_depth)
        if found is None:
            return ProbeResult.miss("no LM Studio directory found on any drive")
        return ProbeResult(found, f"Found LM Studio directory at: {found}")


class CommonLocationsProbe(ProbeStrategy):
    """First existing directory among the usual LM Studio locations."""

    platforms = WINDOWS_PLATFORMS

    RELATIVE_LOCATIONS = (
        (".lmstudio", "models"),
        ("AppData", "Local", "LMStudio", "models"),
        ("AppData", "Roaming", "LMStudio", "models"),
        ("Documents", ".lmstudio", "models"),
        ("Documents", "LMStudio", "models"),
    )

    @property
    def name(self) -> str:
        return "common-locations"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        for parts in self.RELATIVE_LOCATIONS:
            path = config.home.joinpath(*parts)
            if path.is_dir():
                return ProbeResult(path, f"Using LM Studio directory: {path}")
        return ProbeResult.miss("no common LM Studio directory exists")


class DefaultDestinationProbe(ProbeStrategy):
    """~/.lmstudio/models, created if missing."""

    @property
    def name(self) -> str:
        return "default"

    def probe(self, config: BridgeConfig) -> ProbeResult:
        path = config.home / ".lmstudio" / "models"
        return ProbeResult(path, f"Using default LM Studio directory: {path}")


def default_source_probes() -> List[ProbeStrategy]:
    """Source probes in evaluation order."""
    return [
        SourceOverrideProbe(),
        ServiceAccountProbe(),
        ServiceManagerProbe(),
        SystemInstallProbe(),
        HomeInstallProbe(),
        DriveSearchProbe(),
        HomeDotOllamaSearchProbe(),
        HomeDefaultProbe(),
    ]


def default_destination_probes() -> List[ProbeStrategy]:
    """Destination probes in evaluation order."""
    return [
        DestinationOverrideProbe(),
        LMStudioDriveSearchProbe(),
        CommonLocationsProbe(),
        DefaultDestinationProbe(),
    ]
