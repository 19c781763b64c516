"""Command-line interface for still."""

from __future__ import annotations

import argparse
import concurrent.futures
import logging
import sys
import warnings
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import StillConfig
from .download import sync_catalog
from .errors import ActivationWarning, ParseError, StillError
from .install import InstallResult, install_tool
from .specifier import ToolSpecifier, parse_tool_specifier
from .utils import log, setup_logging

# Initialize rich console
console = Console()
logger = logging.getLogger(__name__)


def _parse_specifiers(texts: list[str]) -> list[ToolSpecifier]:
    """Parse every specifier up front so bad input aborts before any download."""
    specifiers = []
    for text in texts:
        try:
            specifiers.append(parse_tool_specifier(text))
        except ParseError as e:
            console.print(f"❌ [bold red]{escape(str(e))}[/bold red]")
            sys.exit(1)
    return specifiers


def _install_one(
    specifier: ToolSpecifier,
    config: StillConfig,
) -> tuple[ToolSpecifier, InstallResult | None]:
    """Install a single tool, reporting failures instead of raising."""
    try:
        return specifier, install_tool(specifier, config)
    except StillError as e:
        console.print(f"❌ [bold red]Failed to install {specifier}: {escape(str(e))}[/bold red]")
        return specifier, None


def _install_in_parallel(
    specifiers: list[ToolSpecifier],
    config: StillConfig,
) -> list[tuple[ToolSpecifier, InstallResult | None]]:
    """Run independent installs concurrently using ThreadPoolExecutor."""
    results = []
    with concurrent.futures.ThreadPoolExecutor(
        max_workers=min(8, len(specifiers) or 1),
    ) as executor:
        future_to_spec = {
            executor.submit(_install_one, specifier, config): specifier
            for specifier in specifiers
        }
        for future in concurrent.futures.as_completed(future_to_spec):
            results.append(future.result())
    return results


def _print_result(result: InstallResult) -> None:
    if result.binary_path is not None:
        console.print(f"🔗 [green]Binary installed at: {result.binary_path}[/green]")
    else:
        console.print(
            f"⚠️ [yellow]Warning: Could not find binary in {result.install_path}[/yellow]",
        )
    console.print(
        f"✅ [green]Successfully installed {result.tool_name}@{result.version}"
        f" to {result.install_path}[/green]",
    )


def install_tools(args: argparse.Namespace, config: StillConfig) -> None:
    """Install the tools named on the command line."""
    specifiers = _parse_specifiers(args.tools)
    if config.profile.needs_admin:
        log(
            f"Installing into {config.tools_dir} may require administrator rights",
            "warning",
        )

    results = _install_in_parallel(specifiers, config)
    failures = 0
    for _specifier, result in results:
        if result is None:
            failures += 1
        else:
            _print_result(result)

    console.print(
        f"\n🔄 [blue]Completed: {len(results) - failures}/{len(results)} tools installed[/blue]",
    )
    if failures:
        sys.exit(1)


def sync(_args: Any, config: StillConfig) -> None:
    """Refresh the cached formula catalog."""
    sync_catalog(config)


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="still - Install prebuilt tool bottles",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--config-file",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--tools-dir",
        type=str,
        help="Directory tools are installed into",
    )
    parser.add_argument(
        "--bin-dir",
        type=str,
        help="Directory binaries are linked into",
    )
    parser.add_argument(
        "--platform",
        help="Bottle platform key to install for (e.g. arm64_sonoma)",
    )
    parser.add_argument(
        "--catalog",
        action="store_true",
        help="Resolve formulae from the cached catalog instead of the API",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # install command
    install_parser = subparsers.add_parser("install", help="Install tools")
    install_parser.add_argument(
        "tools",
        nargs="+",
        help="Tools to install, as name or name@version",
    )
    install_parser.set_defaults(func=install_tools)

    # sync command
    sync_parser = subparsers.add_parser("sync", help="Download the formula catalog")
    sync_parser.set_defaults(func=sync)

    # version command
    version_parser = subparsers.add_parser("version", help="Print version information")
    version_parser.set_defaults(
        func=lambda _, __: console.print(f"[yellow]still[/] [bold]v{__version__}[/]"),
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main function to parse arguments and execute commands."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    # A missing binary is reported in the install summary.
    warnings.simplefilter("ignore", ActivationWarning)

    try:
        config = StillConfig.load_from_file(args.config_file).with_overrides(
            tools_dir=Path(args.tools_dir) if args.tools_dir else None,
            bin_dir=Path(args.bin_dir) if args.bin_dir else None,
            platform_key=args.platform,
            use_catalog=True if args.catalog else None,
        )

        if hasattr(args, "func"):
            args.func(args, config)
        else:
            parser.print_help()

    except StillError as e:
        console.print(f"❌ [bold red]Error: {escape(str(e))}[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
