"""Extract bottles into their install directory."""

from __future__ import annotations

import gzip
import io
import logging
import os
import shutil
import tarfile
import tempfile
import zlib
from pathlib import Path

from .errors import ExtractionError, FilesystemError
from .utils import log

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".tmp_extract"


def _decompress_gzip(data: bytes) -> bytes:
    """Decompress a complete gzip payload."""
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(data)) as gz:
            return gz.read()
    except (OSError, EOFError, zlib.error) as e:
        msg = f"Failed to decompress with gzip: {e}"
        raise ExtractionError(msg) from e


def _unpack_tar(tar_data: bytes, dest_dir: Path) -> None:
    """Unpack an uncompressed tar stream, keeping the recorded file modes.

    Uses the ``tar`` extraction filter: members that would land outside
    ``dest_dir`` are refused, and setuid/setgid bits and group/other write
    bits are cleared. The remaining permission bits are kept as archived.
    """
    try:
        with tarfile.open(fileobj=io.BytesIO(tar_data), mode="r:") as tar:
            tar.extractall(path=dest_dir, filter="tar")
    except (tarfile.TarError, EOFError) as e:
        msg = f"Failed to unpack tar archive: {e}"
        raise ExtractionError(msg) from e
    except OSError as e:
        msg = f"Failed to write archive contents to {dest_dir}: {e}"
        raise FilesystemError(msg) from e


def _remove(path: Path) -> None:
    """Remove a file, symlink or directory tree."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _copy(source: Path, target: Path) -> None:
    if source.is_dir() and not source.is_symlink():
        shutil.copytree(source, target, symlinks=True)
    else:
        shutil.copy2(source, target, follow_symlinks=False)


def move_entry(source: Path, target: Path) -> None:
    """Move ``source`` to ``target``, replacing whatever is already there.

    Tries an atomic rename first. If that fails (e.g. across filesystems)
    the entry is copied, and the source is removed only after the copy
    completed.
    """
    try:
        if target.exists() or target.is_symlink():
            _remove(target)
    except OSError as e:
        msg = f"Could not replace existing {target}: {e}"
        raise FilesystemError(msg) from e

    try:
        os.replace(source, target)
        return
    except OSError as e:
        logger.debug("Rename %s -> %s failed (%s), copying instead", source, target, e)

    try:
        _copy(source, target)
    except (OSError, shutil.Error) as e:
        msg = f"Failed to copy {source} to {target}: {e}"
        raise FilesystemError(msg) from e
    try:
        _remove(source)
    except OSError as e:
        msg = f"Copied {source} to {target} but could not remove the source: {e}"
        raise FilesystemError(msg) from e


def _list_dir(path: Path) -> list[Path]:
    try:
        return sorted(path.iterdir())
    except OSError as e:
        msg = f"Could not read extracted directory {path}: {e}"
        raise FilesystemError(msg) from e


def flatten_into(temp_dir: Path, destination: Path) -> None:
    """Move the extracted tree from ``temp_dir`` into ``destination``.

    Bottles usually wrap everything in one ``<name>-<version>/`` directory;
    in that case the wrapper's contents are promoted and the wrapper dropped.
    A lone file is moved as is, and anything else is moved unchanged.
    """
    children = _list_dir(temp_dir)

    if len(children) == 1 and children[0].is_dir() and not children[0].is_symlink():
        wrapper = children[0]
        logger.debug("Flattening single top-level directory %s", wrapper.name)
        for entry in _list_dir(wrapper):
            move_entry(entry, destination / entry.name)
        try:
            wrapper.rmdir()
        except OSError as e:
            msg = f"Could not remove {wrapper}: {e}"
            raise FilesystemError(msg) from e
        return

    for entry in children:
        move_entry(entry, destination / entry.name)


def extract_bottle(data: bytes, destination: Path) -> Path:
    """Extract a gzip-compressed tar bottle into ``destination``.

    The archive is unpacked in a temporary directory inside ``destination``
    first, so the final location never sees a half-written archive. The
    steps are not transactional: a crash can still leave the temporary
    directory behind next to a partially moved tree.

    The payload is decompressed before ``destination`` is created, so a
    download that is not gzip leaves nothing on disk.

    Raises:
        ExtractionError: If the payload is not a valid ``.tar.gz``.
        FilesystemError: If creating, moving or removing files fails.

    """
    destination = Path(destination)
    log(f"Extracting bottle to {destination}", "info", "📦")
    tar_data = _decompress_gzip(data)
    try:
        destination.mkdir(parents=True, exist_ok=True)
        temp_dir = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX, dir=destination))
    except OSError as e:
        msg = f"Could not create install directory {destination}: {e}"
        raise FilesystemError(msg) from e

    _unpack_tar(tar_data, temp_dir)
    flatten_into(temp_dir, destination)

    try:
        temp_dir.rmdir()
    except OSError as e:
        msg = f"Could not remove temporary directory {temp_dir}: {e}"
        raise FilesystemError(msg) from e

    log(f"Extracted bottle to {destination}", "success", "📦")
    return destination
