"""
Link materialisation for LM Studio.

Turns resolved blob paths into entries under {dest_root}/lmstudio:
symbolic links where the platform allows them, full copies otherwise.
"""

import os
import shutil
import subprocess
import tempfile
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .blobs import ModelConfig
from .config import BridgeConfig
from .console import StatusReporter
from .errors import DirectoryAccessError, LockHeldError, SymlinkUnsupportedError
from .manifest import Manifest
from .utils import ensure_dir, to_windows_path


LOCK_FILE_NAME = ".ollama-lmstudio-bridge.lock"


class LinkResult(Enum):
    """What materialize() did for one model."""
    LINKED = "linked"
    COPIED = "copied"
    SKIPPED = "skipped"


def link_file_name(model_name: str, config: ModelConfig) -> str:
    """
    Build the destination file name for a model.

    Format: ``{model}[-{model_type}][-{file_type}][.{model_format}]``

    Example:
        >>> link_file_name("llama3", ModelConfig("Q4_0", "gguf", "llama"))
        'llama3-llama-Q4_0.gguf'
    """
    name = model_name
    if config.model_type:
        name = f"{name}-{config.model_type}"
    if config.file_type:
        name = f"{name}-{config.file_type}"
    if config.model_format:
        name = f"{name}.{config.model_format}"
    return name


def link_target(lmstudio_root: Path, manifest: Manifest, config: ModelConfig) -> Path:
    """
    Deterministic destination path for a manifest.

    Example:
        registry.ollama.ai/library/llama3/latest
            -> {lmstudio_root}/library/llama3/latest/llama3-llama-Q4_0.gguf
    """
    directory = lmstudio_root.joinpath(*manifest.destination_parts)
    return directory / link_file_name(manifest.model_name, config)


def windows_mklink(source: Path, target: Path) -> bool:
    """Create a file symlink with cmd.exe's mklink. Returns True on success."""
    cmd = shutil.which("cmd.exe") or shutil.which("cmd")
    if cmd is None:
        return False
    try:
        result = subprocess.run(
            [cmd, "/c", "mklink", to_windows_path(str(target)), to_windows_path(str(source))],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=30,
        )
    except (OSError, subprocess.SubprocessError):
        return False
    return result.returncode == 0


class RunLock:
    """
    Advisory lock held on the destination for the duration of a run.

    Uses fcntl on POSIX and msvcrt on Windows. Acquisition does not wait:
    a second concurrent run fails immediately.
    """

    def __init__(self, directory: Path):
        self.lock_path = Path(directory) / LOCK_FILE_NAME
        self._lock_file = None

    def acquire(self) -> None:
        """
        Take the lock.

        Raises:
            LockHeldError: If another process holds it
        """
        self._lock_file = open(self.lock_path, "a+")
        try:
            if os.name == "nt":
                import msvcrt
                msvcrt.locking(self._lock_file.fileno(), msvcrt.LK_NBLCK, 1)
            else:
                import fcntl
                fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            self._lock_file.close()
            self._lock_file = None
            raise LockHeldError(
                f"Another bridge run is using {self.lock_path.parent} (lock file {self.lock_path})"
            )

    def release(self) -> None:
        """Release the lock."""
        if self._lock_file is None:
            return
        try:
            if os.name == "nt":
                import msvcrt
                msvcrt.locking(self._lock_file.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                import fcntl
                fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_file.close()
            self._lock_file = None

    @property
    def held(self) -> bool:
        return self._lock_file is not None

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class LinkMaterializer:
    """
    Creates destination entries and owns the lmstudio subtree.

    Lifecycle for a run:
    1. check_symlink_capability() once, before any destination change
    2. prepare_destination() to reset the lmstudio folder
    3. materialize() per model
    4. cleanup_empty_dirs() at the end

    Example:
        >>> materializer = LinkMaterializer(config, reporter)
        >>> materializer.check_symlink_capability()
        >>> materializer.materialize(blob, target)
    """

    def __init__(
        self,
        config: BridgeConfig,
        reporter: Optional[StatusReporter] = None,
        symlink: Callable[[Path, Path], None] = os.symlink,
        mklink: Optional[Callable[[Path, Path], bool]] = windows_mklink,
        copy: Callable[[Path, Path], object] = shutil.copyfile,
    ):
        self.config = config
        self.reporter = reporter or StatusReporter(verbose=config.verbose, quiet=config.quiet)
        self._symlink = symlink
        self._mklink = mklink
        self._copy = copy
        self.links_supported = True

    # ============================================================
    # Capability probe
    # ============================================================

    def check_symlink_capability(self) -> bool:
        """
        Create and discard a throwaway symlink in a scratch directory.

        Returns:
            True if symlinks work. On Windows a failure returns False and
            later links fall back to copies.

        Raises:
            SymlinkUnsupportedError: If the probe fails on Linux or macOS
        """
        with tempfile.TemporaryDirectory(prefix="ollama-lmstudio-bridge-") as scratch:
            source = Path(scratch) / "probe-source"
            source.write_bytes(b"")
            link = Path(scratch) / "__test_symlink__"
            try:
                self._symlink(source, link)
                self.links_supported = True
            except (OSError, NotImplementedError) as e:
                if not self.config.host.is_windows:
                    raise SymlinkUnsupportedError(f"Unable to create symbolic links: {e}")
                if self._mklink is not None and self._mklink(source, link):
                    self.reporter.info("Using Windows mklink command")
                    self.links_supported = True
                else:
                    self.reporter.warning("Native symlinks not available. Files will be copied instead.")
                    self.reporter.info("To enable native symlinks, either:")
                    self.reporter.detail("1. Run the bridge as Administrator, or")
                    self.reporter.detail("2. Enable Developer Mode in Windows settings")
                    self.links_supported = False

        if self.links_supported:
            self.reporter.debug("Symbolic link probe succeeded")
        return self.links_supported

    # ============================================================
    # Destination tree
    # ============================================================

    def prepare_destination(self, lmstudio_root: Path) -> None:
        """
        Reset the lmstudio folder for a full resynchronisation.

        The folder is deleted and recreated unless skip-existing is on, in
        which case existing entries are kept so they can be skipped.

        Raises:
            DirectoryAccessError: If the folder cannot be removed or created
        """
        if not self.config.skip_existing and (lmstudio_root.exists() or lmstudio_root.is_symlink()):
            self.reporter.info(f"Removing old {lmstudio_root}")
            try:
                if lmstudio_root.is_symlink() or not lmstudio_root.is_dir():
                    lmstudio_root.unlink()
                else:
                    shutil.rmtree(lmstudio_root)
            except OSError as e:
                raise DirectoryAccessError(f"Failed to remove old lmstudio directory: {e}")

        try:
            ensure_dir(lmstudio_root)
        except OSError as e:
            raise DirectoryAccessError(f"Failed to create lmstudio directory {lmstudio_root}: {e}")

    def cleanup_empty_dirs(self, lmstudio_root: Path) -> List[Path]:
        """
        Remove empty directories below the lmstudio folder, deepest first.

        Returns:
            Directories that were removed
        """
        removed: List[Path] = []
        if not lmstudio_root.is_dir():
            return removed

        for dirpath, _, _ in os.walk(lmstudio_root, topdown=False):
            path = Path(dirpath)
            if path == lmstudio_root:
                continue
            try:
                if not any(path.iterdir()):
                    path.rmdir()
                    removed.append(path)
            except OSError as e:
                self.reporter.debug(f"Could not remove {path}: {e}")

        for path in removed:
            self.reporter.debug(f"Removed empty directory {path}")
        return removed

    # ============================================================
    # Per-model
    # ============================================================

    def _copy_blob(self, source: Path, target: Path) -> LinkResult:
        # A partial copy never appears under the final name
        partial = target.with_name(f".{target.name}.partial")
        try:
            self._copy(source, partial)
            os.replace(partial, target)
        except OSError:
            if os.path.lexists(partial):
                partial.unlink()
            raise
        self.reporter.warning(
            f"Copied {source.name} to {target} instead of linking; this uses additional disk space"
        )
        return LinkResult.COPIED

    def materialize(self, source: Path, target: Path) -> LinkResult:
        """
        Link (or copy) a blob to its destination path.

        Any existing entry at the target is overwritten unless skip-existing
        is on.

        Args:
            source: Blob file
            target: Destination path

        Returns:
            LinkResult describing what happened

        Raises:
            OSError: If the directory, link or copy cannot be created
        """
        if self.config.skip_existing and os.path.lexists(target):
            return LinkResult.SKIPPED

        ensure_dir(target.parent)

        if os.path.lexists(target):
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()

        if not self.links_supported:
            return self._copy_blob(source, target)

        try:
            self._symlink(source, target)
            return LinkResult.LINKED
        except (OSError, NotImplementedError):
            if not self.config.host.is_windows:
                raise

        self.reporter.debug(f"Native symlink failed for {target}, trying mklink")
        if self._mklink is not None and self._mklink(source, target):
            return LinkResult.LINKED

        self.reporter.debug(f"Falling back to file copy for {target}")
        return self._copy_blob(source, target)
