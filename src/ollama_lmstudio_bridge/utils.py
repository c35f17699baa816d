"""
Utility functions for the Ollama-LM-Studio bridge.

Contains helpers for host detection, home-directory lookup, path
normalisation and access checks.
"""

import getpass
import os
import platform
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import HomeDirectoryError, UnsupportedPlatformError


class HostPlatform(Enum):
    """Host operating system families the bridge knows how to handle."""
    LINUX = "linux"
    DARWIN = "darwin"
    WINDOWS = "windows"

    @property
    def is_windows(self) -> bool:
        return self is HostPlatform.WINDOWS


def detect_platform(system: Optional[str] = None) -> HostPlatform:
    """
    Map the host OS name onto a supported platform family.

    MSYS, MinGW and Cygwin shells report their own names but run on Windows,
    so they are folded into the Windows family.

    Args:
        system: OS name as reported by ``platform.system()`` (detected if None)

    Returns:
        Platform family

    Raises:
        UnsupportedPlatformError: If the OS is not Linux, macOS or Windows
    """
    name = (system or platform.system()).lower()

    if name.startswith("linux"):
        return HostPlatform.LINUX
    if name.startswith("darwin"):
        return HostPlatform.DARWIN
    if name.startswith(("windows", "mingw", "msys", "cygwin")):
        return HostPlatform.WINDOWS

    raise UnsupportedPlatformError(f"Unsupported operating system: {system or platform.system()}")


def home_directory() -> Path:
    """
    Determine the current user's home directory.

    Falls back to the password database when ``HOME`` is unset.

    Returns:
        Home directory path

    Raises:
        HomeDirectoryError: If no home directory can be determined
    """
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        home = None

    if home is None or str(home) in ("", ".", "~"):
        try:
            import pwd
            home = Path(pwd.getpwnam(getpass.getuser()).pw_dir)
        except (ImportError, KeyError, OSError):
            raise HomeDirectoryError("Could not determine home directory")

    return home


def current_user() -> str:
    """Return the login name of the current process, or "" if unknown."""
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def user_in_group(group: str) -> bool:
    """
    Check whether the current process is a member of a Unix group.

    Always False on platforms without a group database.
    """
    try:
        import grp
    except ImportError:
        return False

    try:
        gid = grp.getgrnam(group).gr_gid
    except KeyError:
        return False

    return gid in os.getgroups() or os.getgid() == gid


def normalize_path(path: str) -> str:
    """
    Replace backslashes with forward slashes and drop any trailing slash.

    Args:
        path: Path string, possibly with mixed separators

    Returns:
        Path string using "/" only
    """
    normalized = path.replace("\\", "/")
    if len(normalized) > 1:
        normalized = normalized.rstrip("/") or "/"
    return normalized


def to_windows_path(path: str) -> str:
    """
    Convert an MSYS-style path (``/c/Users/me``) into Windows form (``c:\\Users\\me``).

    Paths that are not MSYS-absolute are returned unchanged.
    """
    if not path.startswith("/"):
        return path

    parts = path[1:].split("/", 1)
    drive = parts[0]
    rest = parts[1] if len(parts) > 1 else ""
    return f"{drive}:\\" + rest.replace("/", "\\")


def to_msys_path(path: str) -> str:
    """
    Convert a Windows drive path (``C:\\Users\\me``) into MSYS form (``/C/Users/me``).

    Paths without a drive letter are returned unchanged.
    """
    if len(path) >= 2 and path[0].isalpha() and path[1] == ":":
        return "/" + path[0] + normalize_path(path[2:])
    return path


def is_readable_dir(path: Path) -> bool:
    """Check that a path is an existing directory the process can list."""
    return path.is_dir() and os.access(path, os.R_OK | os.X_OK)


def is_writable_dir(path: Path) -> bool:
    """Check that a path is an existing directory the process can write into."""
    return path.is_dir() and os.access(path, os.W_OK | os.X_OK)


def ensure_dir(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path

    Returns:
        The path (for chaining)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
