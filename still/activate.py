"""Find the installed binary and link it into the shared bin directory."""

from __future__ import annotations

import logging
import os
import warnings
from pathlib import Path

from .errors import ActivationWarning, FilesystemError
from .extract import TEMP_PREFIX
from .utils import log

logger = logging.getLogger(__name__)

BINARY_MODE = 0o755


def is_exec(path: Path) -> bool:
    """Whether ``path`` is a regular file with any execute bit set."""
    try:
        return path.is_file() and path.stat().st_mode & 0o111 != 0
    except OSError:
        return False


def _candidate_in(bin_dir: Path, binary_name: str) -> Path | None:
    """Pick the binary from a ``bin`` directory.

    Prefers ``<bin_dir>/<binary_name>``, then the first executable file.
    """
    preferred = bin_dir / binary_name
    try:
        if preferred.is_file():
            return preferred
        entries = sorted(bin_dir.iterdir())
    except OSError as e:
        msg = f"Could not read binary directory {bin_dir}: {e}"
        raise FilesystemError(msg) from e
    for entry in entries:
        if is_exec(entry):
            return entry
    return None


def _raise_walk_error(e: OSError) -> None:
    msg = f"Could not search {e.filename} for binaries: {e}"
    raise FilesystemError(msg) from e


def find_binary(install_path: Path, tool_name: str, exe_suffix: str = "") -> Path | None:
    """Locate the runnable binary of an installed tool.

    Looks in ``<install_path>/bin`` when it exists; otherwise walks the tree
    for the first ``bin`` directory that holds a candidate. Temporary
    extraction directories left behind by an interrupted install are skipped.
    """
    binary_name = f"{tool_name}{exe_suffix}"
    root_bin = install_path / "bin"
    if root_bin.is_dir():
        return _candidate_in(root_bin, binary_name)

    for dirpath, dirnames, _ in os.walk(install_path, onerror=_raise_walk_error):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith(TEMP_PREFIX))
        if Path(dirpath).name != "bin" or Path(dirpath) == install_path:
            continue
        candidate = _candidate_in(Path(dirpath), binary_name)
        if candidate is not None:
            return candidate
    return None


def link_binary(binary_path: Path, bin_dir: Path) -> Path:
    """Create (or replace) ``<bin_dir>/<binary name>`` pointing at ``binary_path``."""
    link_path = bin_dir / binary_path.name
    target = Path(os.path.abspath(binary_path))
    try:
        bin_dir.mkdir(parents=True, exist_ok=True)
        if link_path.is_symlink() or link_path.exists():
            link_path.unlink()
        link_path.symlink_to(target)
    except OSError as e:
        msg = f"Could not link {link_path} -> {target}: {e}"
        raise FilesystemError(msg) from e
    log(f"Linked {link_path} -> {target}", "success", "🔗")
    return link_path


def activate(
    install_path: Path,
    tool_name: str,
    bin_dir: Path,
    exe_suffix: str = "",
) -> Path | None:
    """Make the installed binary executable and publish it in ``bin_dir``.

    Returns the binary's path, or None (with an ActivationWarning) when the
    tree has no recognisable binary; the install itself still succeeded.
    """
    binary_path = find_binary(install_path, tool_name, exe_suffix)
    if binary_path is None:
        warnings.warn(
            f"Could not find a binary for {tool_name} in {install_path}",
            ActivationWarning,
            stacklevel=2,
        )
        return None

    # Modes recorded in the archive are not trusted.
    try:
        binary_path.chmod(BINARY_MODE)
    except OSError as e:
        msg = f"Could not make {binary_path} executable: {e}"
        raise FilesystemError(msg) from e

    link_binary(binary_path, bin_dir)
    return binary_path
