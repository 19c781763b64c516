"""Utility functions for still."""

from __future__ import annotations

import logging
import platform
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

# Initialize rich console
console = Console()
logger = logging.getLogger(__name__)

_LEVEL_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "bold red",
    "default": "",
}

_LEVEL_ICONS = {
    "info": "🔍",
    "success": "✅",
    "warning": "⚠️",
    "error": "❌",
    "default": "",
}

# macOS major version -> bottle codename, newest last
MACOS_CODENAMES = {
    11: "big_sur",
    12: "monterey",
    13: "ventura",
    14: "sonoma",
    15: "sequoia",
    26: "tahoe",
}

_ARCH_ALIASES = {
    "aarch64": "arm64",
    "arm64": "arm64",
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "x64": "x86_64",
}


def log(message: str, level: str = "default", icon: str | None = None) -> None:
    """Print a color-coded message to the console."""
    style = _LEVEL_STYLES.get(level, "")
    message = escape(message)
    if icon is None:
        icon = _LEVEL_ICONS.get(level, "")
    prefix = f"{icon} " if icon else ""
    if style:
        console.print(f"{prefix}[{style}]{message}[/{style}]")
    else:
        console.print(f"{prefix}{message}")


def setup_logging(verbose: bool = False) -> None:  # noqa: FBT001, FBT002
    """Configure logging level based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def normalize_arch(machine: str) -> str:
    """Map a machine name to the architecture used in bottle keys."""
    machine = machine.lower()
    return _ARCH_ALIASES.get(machine, machine)


def macos_codename(release: str) -> str:
    """Return the bottle codename for a macOS release such as ``14.5``."""
    try:
        major = int(release.split(".")[0])
    except ValueError:
        major = 0
    if major in MACOS_CODENAMES:
        return MACOS_CODENAMES[major]
    newest = max(MACOS_CODENAMES)
    logger.debug("Unknown macOS version %r, assuming %s", release, MACOS_CODENAMES[newest])
    return MACOS_CODENAMES[newest]


def current_platform_key() -> str:
    """Detect the bottle platform key for the running system.

    Examples are ``arm64_sonoma``, ``x86_64_linux`` and ``arm64_linux``.
    """
    arch = normalize_arch(platform.machine())
    if sys.platform == "darwin":
        return f"{arch}_{macos_codename(platform.mac_ver()[0])}"
    if sys.platform.startswith("linux"):
        return f"{arch}_linux"
    if sys.platform == "win32":
        return f"{arch}_windows"
    return f"{arch}_{sys.platform}"
