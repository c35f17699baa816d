"""
Status output for the bridge.

Every line is severity-tagged and timestamped, rendered through rich:

    [INFO] 2026-01-01 12:00:00 Processing model: llama3
    [WARNING] 2026-01-01 12:00:01 No model file found for library/phi
"""

from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.markup import escape


_STYLES = {
    "DEBUG": "dim",
    "INFO": "blue",
    "SUCCESS": "green",
    "WARNING": "yellow",
    "ERROR": "red",
}


class StatusReporter:
    """
    Severity-aware status stream.

    Quiet mode drops INFO and SUCCESS lines; WARNING and ERROR are always
    shown. DEBUG lines only appear in verbose mode.

    Example:
        >>> reporter = StatusReporter(verbose=True)
        >>> reporter.info("Scanning manifests")
        >>> reporter.warning("No manifest files found")
    """

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
    ):
        self.verbose = verbose
        self.quiet = quiet
        self.console = console or Console(stderr=True, highlight=False, soft_wrap=True)
        self.warnings = 0
        self.errors = 0

    def _emit(self, level: str, message: str) -> None:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        style = _STYLES[level]
        self.console.print(f"[{style}]\\[{level}][/{style}] {timestamp} {escape(message)}")

    def debug(self, message: str) -> None:
        if self.verbose:
            self._emit("DEBUG", message)

    def info(self, message: str) -> None:
        if not self.quiet:
            self._emit("INFO", message)

    def success(self, message: str) -> None:
        if not self.quiet:
            self._emit("SUCCESS", message)

    def warning(self, message: str) -> None:
        self.warnings += 1
        self._emit("WARNING", message)

    def error(self, message: str) -> None:
        self.errors += 1
        self._emit("ERROR", message)

    def notice(self, message: str) -> None:
        """Print an untagged line regardless of quiet mode."""
        self.console.print(escape(message))

    def detail(self, message: str) -> None:
        """Print an untagged, indented line unless quiet."""
        if not self.quiet:
            self.console.print(f"  {escape(message)}")
