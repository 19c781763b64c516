"""The install pipeline: specifier in, activated tool out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .activate import activate
from .bottle import select_bottle
from .config import StillConfig
from .download import fetch_bottle
from .extract import extract_bottle
from .formula import FormulaRegistry, resolve_formula
from .specifier import ToolSpecifier, parse_tool_specifier
from .utils import log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallResult:
    """Outcome of one successful install."""

    tool_name: str
    version: str
    install_path: Path
    binary_path: Path | None = None


def install_tool(
    specifier: ToolSpecifier,
    config: StillConfig,
    registry: FormulaRegistry | None = None,
    platform_key: str | None = None,
) -> InstallResult:
    """Resolve, download, verify, extract and activate one tool.

    Every stage raises on failure and stops the pipeline, except a missing
    binary, which yields a result without ``binary_path``.
    """
    registry = registry or config.registry()
    platform_key = platform_key or config.resolve_platform_key()

    formula = resolve_formula(specifier.name, specifier.version, registry)
    bottle = select_bottle(formula.bottle_variants, platform_key)
    log(
        f"Installing {formula.name} {formula.stable_version} for {platform_key}",
        "info",
        "🔧",
    )

    data = fetch_bottle(bottle.url, formula.name, config)

    install_path = config.install_path(formula.name, formula.stable_version)
    extract_bottle(data, install_path)

    binary_path = activate(
        install_path,
        formula.name,
        Path(config.bin_dir),
        config.profile.exe_suffix,
    )
    return InstallResult(
        tool_name=formula.name,
        version=formula.stable_version,
        install_path=install_path,
        binary_path=binary_path,
    )


def install(
    text: str,
    config: StillConfig,
    registry: FormulaRegistry | None = None,
    platform_key: str | None = None,
) -> InstallResult:
    """Parse ``text`` as a tool specifier and install it."""
    return install_tool(parse_tool_specifier(text), config, registry, platform_key)
