"""still - prebuilt tool installer.

Resolves ``name`` or ``name@version`` to a Homebrew bottle, downloads it
from the blob store with an anonymous pull token, verifies its SHA-256,
unpacks it under the tools directory and links the binary into a shared
bin directory.
"""

from __future__ import annotations

__version__ = "0.1.0"

from . import activate, bottle, cli, config, download, errors, extract, formula, utils
from .activate import find_binary
from .bottle import select_bottle
from .cli import main
from .config import OperatingSystem, StillConfig, SystemProfile
from .download import download_blob, fetch_token, parse_blob_url, sync_catalog, verify_sha256
from .errors import (
    ActivationWarning,
    ExtractionError,
    FilesystemError,
    IntegrityError,
    NetworkError,
    NoBottleAvailable,
    NotFoundError,
    ParseError,
    RegistryError,
    StillError,
)
from .extract import extract_bottle
from .formula import BottleFile, CatalogRegistry, FormulaRecord, LiveRegistry, resolve_formula
from .install import InstallResult, install_tool
from .specifier import ToolSpecifier, parse_tool_specifier
from .utils import current_platform_key, setup_logging

__all__ = [
    "ActivationWarning",
    "BottleFile",
    "CatalogRegistry",
    "ExtractionError",
    "FilesystemError",
    "FormulaRecord",
    "InstallResult",
    "IntegrityError",
    "LiveRegistry",
    "NetworkError",
    "NoBottleAvailable",
    "NotFoundError",
    "OperatingSystem",
    "ParseError",
    "RegistryError",
    "StillConfig",
    "StillError",
    "SystemProfile",
    "ToolSpecifier",
    "activate",
    "bottle",
    "cli",
    "config",
    "current_platform_key",
    "download",
    "download_blob",
    "errors",
    "extract",
    "extract_bottle",
    "fetch_token",
    "find_binary",
    "formula",
    "install_tool",
    "main",
    "parse_blob_url",
    "parse_tool_specifier",
    "resolve_formula",
    "select_bottle",
    "setup_logging",
    "sync_catalog",
    "utils",
    "verify_sha256",
]
