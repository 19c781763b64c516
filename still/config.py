"""Configuration management for still."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console

from .formula import CatalogRegistry, FormulaRegistry, LiveRegistry
from .utils import current_platform_key

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/still/config.yaml")
CATALOG_FILENAME = "formula.json"


class OperatingSystem(str, Enum):
    """Operating systems with their own install layout."""

    MACOS = "macos"
    LINUX = "linux"
    WINDOWS = "windows"

    @classmethod
    def current(cls) -> OperatingSystem:
        """Return the running operating system; unknown Unixes count as Linux."""
        if sys.platform == "darwin":
            return cls.MACOS
        if sys.platform == "win32":
            return cls.WINDOWS
        return cls.LINUX


@dataclass(frozen=True)
class SystemProfile:
    """Where and how tools are installed on one operating system."""

    os: OperatingSystem
    tools_dir: Path
    bin_dir: Path
    cache_dir: Path
    needs_admin: bool = False
    exe_suffix: str = ""

    @classmethod
    def for_os(cls, os_name: OperatingSystem, home: Path | None = None) -> SystemProfile:
        """Return the default profile for ``os_name``."""
        home = home or Path.home()
        if os_name is OperatingSystem.WINDOWS:
            local_app_data = Path(os.environ.get("LOCALAPPDATA", home / "AppData" / "Local"))
            return cls(
                os=os_name,
                tools_dir=Path(r"C:\still\tools"),
                bin_dir=Path(r"C:\still\bin"),
                cache_dir=local_app_data / "still",
                needs_admin=True,
                exe_suffix=".exe",
            )
        return cls(
            os=os_name,
            tools_dir=home / ".still" / "tools",
            bin_dir=home / ".local" / "bin",
            cache_dir=home / ".cache" / "still",
        )

    @classmethod
    def detect(cls) -> SystemProfile:
        """Return the profile for the running operating system."""
        return cls.for_os(OperatingSystem.current())


@dataclass
class StillConfig:
    """Configuration for still."""

    profile: SystemProfile = field(default_factory=SystemProfile.detect)
    tools_dir: Path | None = None
    bin_dir: Path | None = None
    cache_dir: Path | None = None
    formula_api_url: str = "https://formulae.brew.sh/api/formula"
    catalog_url: str = "https://formulae.brew.sh/api/formula.json"
    token_url: str = "https://ghcr.io/token"
    registry_service: str = "ghcr.io"
    registry_namespace: str = "homebrew/core"
    timeout: float | None = 30
    use_catalog: bool = False
    platform_key: str | None = None

    def __post_init__(self) -> None:
        """Fill unset directories from the system profile."""
        self.tools_dir = _expand(self.tools_dir) or self.profile.tools_dir
        self.bin_dir = _expand(self.bin_dir) or self.profile.bin_dir
        self.cache_dir = _expand(self.cache_dir) or self.profile.cache_dir

    @property
    def catalog_path(self) -> Path:
        """Location of the cached bulk formula catalog."""
        return Path(self.cache_dir) / CATALOG_FILENAME

    def install_path(self, tool_name: str, version: str) -> Path:
        """Directory a given tool version is installed into."""
        return Path(self.tools_dir) / tool_name / version

    def resolve_platform_key(self) -> str:
        """The configured platform key, or the detected one."""
        return self.platform_key or current_platform_key()

    def registry(self) -> FormulaRegistry:
        """The formula registry selected by this configuration."""
        if self.use_catalog:
            return CatalogRegistry(self.catalog_path)
        return LiveRegistry(self.formula_api_url, timeout=self.timeout)

    def with_overrides(self, **overrides: Any) -> StillConfig:
        """Return a copy with the non-None ``overrides`` applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StillConfig:
        """Build a config from a mapping, reporting unknown keys."""
        known = {f.name for f in fields(cls)} - {"profile"}
        unknown = sorted(set(data) - known)
        for key in unknown:
            console.print(f"⚠️ [yellow]Unknown configuration key '{key}' ignored[/yellow]")
        return cls(**{key: value for key, value in data.items() if key in known})

    @classmethod
    def load_from_file(cls, config_path: str | Path | None = None) -> StillConfig:
        """Load configuration from YAML file."""
        explicit = config_path is not None
        path = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()

        try:
            with open(path) as file:
                config_data = yaml.safe_load(file) or {}
            if not isinstance(config_data, dict):
                msg = f"expected a mapping, got {type(config_data).__name__}"
                raise TypeError(msg)  # noqa: TRY301
            return cls.from_dict(config_data)

        except FileNotFoundError:
            if explicit:
                console.print(
                    f"⚠️ [yellow]Configuration file not found: {path}[/yellow]",
                )
            return cls()
        except yaml.YAMLError:
            console.print(
                f"❌ [bold red]Invalid YAML in configuration file: {path}[/bold red]",
            )
            console.print_exception()
            return cls()
        except (OSError, TypeError) as e:
            console.print(f"❌ [bold red]Error loading configuration: {e}[/bold red]")
            return cls()


def _expand(value: str | Path | None) -> Path | None:
    if value is None or value == "":
        return None
    return Path(os.path.expanduser(str(value)))
