"""Parse ``name`` / ``name@version`` tool specifiers."""

from __future__ import annotations

from dataclasses import dataclass

import semver

from .errors import ParseError

LATEST = "latest"

_EXAMPLES = (
    "Examples: bun@1.3.5, bun@latest, bun (defaults to latest), bun@ (defaults to latest)"
)


@dataclass(frozen=True)
class ToolSpecifier:
    """A validated tool name and requested version."""

    name: str
    version: str = LATEST

    @property
    def is_latest(self) -> bool:
        """Whether the newest available version was requested."""
        return self.version.lower() == LATEST

    def __str__(self) -> str:
        """Return the specifier in ``name@version`` form."""
        return f"{self.name}@{self.version}"


def _invalid_name_reason(name: str) -> str | None:
    """Return why ``name`` is not a valid tool name, or None if it is."""
    first = name[0]
    if not (first.isascii() and first.isalpha()):
        return f"tool name must start with a letter, got '{first}'"
    for char in name[1:]:
        if not (char.isascii() and (char.isalnum() or char in "_-")):
            return f"tool name contains invalid character '{char}'"
    return None


def _check_version(name: str, version: str) -> None:
    if version.lower() == LATEST:
        return
    try:
        semver.Version.parse(version)
    except ValueError as e:
        msg = (
            f'Invalid version "{version}" for tool "{name}": {e}. '
            f'Version must be SemVer (e.g. 1.2.3) or "latest". {_EXAMPLES}'
        )
        raise ParseError(msg) from e


def parse_tool_specifier(text: str) -> ToolSpecifier:
    """Parse user input into a ToolSpecifier.

    An absent or empty version (``bun``, ``bun@``) means ``latest``.

    Raises:
        ParseError: If the input is empty, has more than one ``@``, or
            contains an invalid tool name or version.

    """
    spec = text.strip()
    if not spec:
        msg = f"Tool spec cannot be empty. {_EXAMPLES}"
        raise ParseError(msg)

    if spec.count("@") > 1:
        msg = f"Invalid tool spec \"{spec}\": expected at most one '@'. {_EXAMPLES}"
        raise ParseError(msg)

    name, _, version = spec.partition("@")
    if not version:
        version = LATEST

    if not name:
        msg = (
            f"Invalid tool spec \"{spec}\": tool name cannot be empty (before '@'). "
            f"{_EXAMPLES}"
        )
        raise ParseError(msg)

    reason = _invalid_name_reason(name)
    if reason:
        msg = (
            f'Invalid tool name "{name}": {reason}. '
            "Tool names must match: [a-zA-Z][a-zA-Z0-9_-]*"
        )
        raise ParseError(msg)

    _check_version(name, version)
    return ToolSpecifier(name=name, version=version)
