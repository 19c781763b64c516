"""Formula metadata and the registries it is resolved from."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import requests
import semver

from .errors import NetworkError, NotFoundError, RegistryError
from .specifier import LATEST
from .utils import log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BottleFile:
    """A single platform-specific bottle of a formula."""

    url: str
    sha256: str
    cellar: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BottleFile:
        """Build a BottleFile from the registry's ``files`` entry."""
        url = data["url"]
        if not isinstance(url, str):
            msg = f"bottle url must be a string, got {type(url).__name__}"
            raise TypeError(msg)
        return cls(
            url=url,
            sha256=str(data.get("sha256", "")).lower(),
            cellar=str(data.get("cellar", "")),
        )


@dataclass(frozen=True)
class FormulaRecord:
    """Registry metadata for one tool."""

    name: str
    stable_version: str
    aliases: frozenset[str] = field(default_factory=frozenset)
    old_names: frozenset[str] = field(default_factory=frozenset)
    bottle_variants: dict[str, BottleFile] = field(default_factory=dict)

    def matches(self, name: str) -> bool:
        """Whether ``name`` is this formula's name, an alias or an old name."""
        return name == self.name or name in self.aliases or name in self.old_names

    @classmethod
    def from_dict(cls, data: Any) -> FormulaRecord:
        """Build a FormulaRecord from a Homebrew formula JSON object.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed.

        """
        if not isinstance(data, dict):
            msg = f"formula must be a JSON object, got {type(data).__name__}"
            raise TypeError(msg)

        name = data["name"]
        stable = data["versions"]["stable"]
        if not isinstance(name, str) or not name:
            msg = "formula name must be a non-empty string"
            raise ValueError(msg)
        if not isinstance(stable, str) or not stable:
            msg = f"formula {name} has no stable version"
            raise ValueError(msg)

        bottle = data.get("bottle") or {}
        files = (bottle.get("stable") or {}).get("files") or {}
        variants = {key: BottleFile.from_dict(value) for key, value in files.items()}

        return cls(
            name=name,
            stable_version=stable,
            aliases=frozenset(data.get("aliases") or ()),
            old_names=frozenset(data.get("oldnames") or ()),
            bottle_variants=variants,
        )


class FormulaRegistry(Protocol):
    """Anything that can look up a formula by name, alias or old name."""

    def lookup(self, name: str) -> FormulaRecord | None:
        """Return the matching formula, or None if there is none."""
        ...


class LiveRegistry:
    """Fetch formulae one at a time from the JSON API."""

    def __init__(self, api_url: str, timeout: float | None = 30) -> None:
        """Query ``<api_url>/<name>.json``, waiting at most ``timeout`` seconds."""
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def lookup(self, name: str) -> FormulaRecord | None:
        """Fetch the formula named ``name``.

        Returns None on a 404. Other HTTP or transport failures raise
        NetworkError, and a payload that is not a formula raises RegistryError.
        """
        url = f"{self.api_url}/{name}.json"
        log(f"Fetching formula from {url}", "info")
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            msg = f"Failed to fetch formula {name} from {url}: {e}"
            raise NetworkError(msg) from e

        if response.status_code == 404:  # noqa: PLR2004
            return None
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            msg = f"Failed to fetch formula {name}: {e}"
            raise NetworkError(msg) from e

        try:
            return FormulaRecord.from_dict(response.json())
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            msg = f"Malformed formula payload for {name} from {url}: {e!r}"
            raise RegistryError(msg) from e


class CatalogRegistry:
    """Scan a locally cached bulk formula catalog (a JSON array)."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> list[Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            msg = f"Formula catalog not found at {self.path}, run 'still sync' first"
            raise RegistryError(msg) from e
        except (OSError, ValueError) as e:
            msg = f"Could not read formula catalog {self.path}: {e}"
            raise RegistryError(msg) from e

        if not isinstance(data, list):
            msg = f"Formula catalog {self.path} must be a JSON array, got {type(data).__name__}"
            raise RegistryError(msg)
        return data

    def lookup(self, name: str) -> FormulaRecord | None:
        """Return the first record whose name, alias or old name is ``name``.

        Malformed records are logged and skipped.
        """
        skipped = 0
        for index, entry in enumerate(self._load()):
            try:
                record = FormulaRecord.from_dict(entry)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                skipped += 1
                log(f"Skipping formula at index {index}: {e!r}", "warning")
                continue
            if record.matches(name):
                return record
        if skipped:
            logger.debug("Scanned %s, skipped %d malformed entries", self.path, skipped)
        return None


def versions_match(requested: str, stable: str) -> bool:
    """Compare two versions as strings, then as SemVer if both parse."""
    if requested == stable:
        return True
    try:
        return semver.Version.parse(requested) == semver.Version.parse(stable)
    except ValueError:
        return False


def resolve_formula(
    name: str,
    version: str,
    registry: FormulaRegistry,
) -> FormulaRecord:
    """Look up the formula for ``name`` and check the requested version.

    Only the current stable bottle is ever published, so a request for a
    different version installs the stable one with a warning.

    Raises:
        NotFoundError: If no formula matches ``name``.

    """
    record = registry.lookup(name)
    if record is None:
        msg = f"No formula found for '{name}'"
        raise NotFoundError(msg)

    if record.name != name:
        log(f"Resolved '{name}' to formula '{record.name}'", "info")

    if version.lower() != LATEST and not versions_match(version, record.stable_version):
        log(
            f"Requested {name}@{version} but only {record.stable_version} is available,"
            f" installing {record.stable_version}",
            "warning",
        )
    return record
