"""Pick the bottle matching the current platform."""

from __future__ import annotations

import logging

from .errors import NoBottleAvailable
from .formula import BottleFile

logger = logging.getLogger(__name__)

ARCH_FAMILIES = ("arm64", "x86_64")


def arch_prefix(platform_key: str) -> str | None:
    """Return the ``<arch>_`` prefix of a platform key, if it has one."""
    for arch in ARCH_FAMILIES:
        if platform_key == arch or platform_key.startswith(f"{arch}_"):
            return f"{arch}_"
    return None


def select_bottle(variants: dict[str, BottleFile], platform_key: str) -> BottleFile:
    """Select the bottle for ``platform_key`` from a formula's variants.

    Tries, in order: the exact key, the architecture-independent ``all``
    bottle, then any bottle built for the same architecture family
    (e.g. ``arm64_ventura`` on ``arm64_tahoe``). Bottles are keyed by OS
    codename, so the last step keeps installs working on OS releases the
    registry has not caught up with yet.

    Raises:
        NoBottleAvailable: If none of the above match.

    """
    if platform_key in variants:
        return variants[platform_key]

    if "all" in variants:
        logger.debug("Using architecture-independent bottle for %s", platform_key)
        return variants["all"]

    prefix = arch_prefix(platform_key)
    if prefix:
        for key, bottle in variants.items():
            if key.startswith(prefix):
                logger.debug("Using bottle %s for %s", key, platform_key)
                return bottle

    raise NoBottleAvailable(platform_key, sorted(variants))
