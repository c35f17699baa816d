"""
Base classes for the resolver module.

Defines the abstract interface (ProbeStrategy) that every directory probe
implements. Probes are evaluated in order and the first hit wins.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Optional

from ..config import BridgeConfig
from ..utils import HostPlatform


ALL_PLATFORMS: FrozenSet[HostPlatform] = frozenset(HostPlatform)
POSIX_PLATFORMS: FrozenSet[HostPlatform] = frozenset({HostPlatform.LINUX, HostPlatform.DARWIN})
WINDOWS_PLATFORMS: FrozenSet[HostPlatform] = frozenset({HostPlatform.WINDOWS})


@dataclass(frozen=True)
class ProbeResult:
    """
    Outcome of a single probe.

    Attributes:
        path: The directory found, or None if the probe did not match
        detail: Human-readable explanation for verbose output
    """
    path: Optional[Path]
    detail: str = ""

    @property
    def found(self) -> bool:
        return self.path is not None

    @classmethod
    def miss(cls, detail: str = "") -> "ProbeResult":
        return cls(None, detail)


class ProbeStrategy(ABC):
    """
    Abstract base class for directory probes.

    Each probe answers one question ("is the bridge running as the ollama
    user?", "does ~/.ollama/models exist?") and either returns a directory or
    a miss. Probes never decide precedence; the DirectoryResolver evaluates
    them in list order.

    Example:
        class FixedProbe(ProbeStrategy):
            @property
            def name(self) -> str:
                return "fixed"

            def probe(self, config: BridgeConfig) -> ProbeResult:
                return ProbeResult(Path("/models"), "always /models")
    """

    #: Platforms on which this probe is consulted
    platforms: FrozenSet[HostPlatform] = ALL_PLATFORMS

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the name of this probe.

        Returns:
            Probe name (e.g., "override", "service-account", "home")
        """
        pass

    @abstractmethod
    def probe(self, config: BridgeConfig) -> ProbeResult:
        """
        Look for a directory.

        Args:
            config: Run configuration

        Returns:
            ProbeResult with the directory, or a miss

        Raises:
            PreconditionError: Only when the probe's failure must be fatal
                (e.g., an explicit override that does not exist)
        """
        pass

    def applies_to(self, host: HostPlatform) -> bool:
        """
        Check if this probe should run on the given host.

        Args:
            host: Host platform family

        Returns:
            True if the probe is relevant on this platform
        """
        return host in self.platforms
