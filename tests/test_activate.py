"""Tests for still.activate."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import make_tarball

from still.activate import activate, find_binary, is_exec, link_binary
from still.errors import ActivationWarning, FilesystemError
from still.extract import TEMP_PREFIX, extract_bottle


def _write(path: Path, mode: int = 0o644, content: str = "#!/bin/sh\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(mode)
    return path


def test_is_exec(tmp_path: Path) -> None:
    assert is_exec(_write(tmp_path / "a", 0o755))
    assert is_exec(_write(tmp_path / "b", 0o610))
    assert is_exec(_write(tmp_path / "c", 0o601))
    assert not is_exec(_write(tmp_path / "d", 0o644))
    (tmp_path / "dir").mkdir()
    assert not is_exec(tmp_path / "dir")
    assert not is_exec(tmp_path / "missing")


def test_prefers_bin_named_after_tool(tmp_path: Path) -> None:
    _write(tmp_path / "bin" / "aaa", 0o755)
    expected = _write(tmp_path / "bin" / "ripgrep", 0o644)
    assert find_binary(tmp_path, "ripgrep") == expected


def test_falls_back_to_first_executable_in_bin(tmp_path: Path) -> None:
    _write(tmp_path / "bin" / "README", 0o644)
    expected = _write(tmp_path / "bin" / "rg", 0o755)
    _write(tmp_path / "bin" / "zz", 0o755)
    assert find_binary(tmp_path, "ripgrep") == expected


def test_root_bin_without_candidates_does_not_search_deeper(tmp_path: Path) -> None:
    (tmp_path / "bin").mkdir()
    _write(tmp_path / "libexec" / "bin" / "ripgrep", 0o755)
    assert find_binary(tmp_path, "ripgrep") is None


def test_searches_tree_when_root_has_no_bin(tmp_path: Path) -> None:
    (tmp_path / "a" / "bin").mkdir(parents=True)
    expected = _write(tmp_path / "b" / "bin" / "ripgrep", 0o644)
    assert find_binary(tmp_path, "ripgrep") == expected


def test_nested_bin_uses_executable_fallback(tmp_path: Path) -> None:
    expected = _write(tmp_path / "14.1.0" / "bin" / "rg", 0o755)
    assert find_binary(tmp_path, "ripgrep") == expected


def test_exe_suffix(tmp_path: Path) -> None:
    _write(tmp_path / "bin" / "aaa.dll", 0o755)
    expected = _write(tmp_path / "bin" / "tool.exe", 0o644)
    assert find_binary(tmp_path, "tool", ".exe") == expected


def test_nothing_found(tmp_path: Path) -> None:
    _write(tmp_path / "share" / "doc", 0o644)
    assert find_binary(tmp_path, "tool") is None


def test_activate_sets_mode_and_links(tmp_path: Path) -> None:
    install_path = tmp_path / "tools" / "ripgrep" / "14.1.0"
    binary = _write(install_path / "bin" / "ripgrep", 0o600)
    bin_dir = tmp_path / "shared-bin"

    result = activate(install_path, "ripgrep", bin_dir)

    assert result == binary
    assert binary.stat().st_mode & 0o777 == 0o755
    link = bin_dir / "ripgrep"
    assert link.is_symlink()
    assert Path(os.readlink(link)) == binary.absolute()
    assert Path(os.readlink(link)).is_absolute()


def test_activate_strips_extra_permission_bits(tmp_path: Path) -> None:
    binary = _write(tmp_path / "bin" / "tool", 0o777)
    activate(tmp_path, "tool", tmp_path / "links")
    assert binary.stat().st_mode & 0o777 == 0o755


def test_activate_replaces_existing_link(tmp_path: Path) -> None:
    bin_dir = tmp_path / "links"
    bin_dir.mkdir()
    (bin_dir / "tool").symlink_to(tmp_path / "old-target")
    binary = _write(tmp_path / "new" / "bin" / "tool", 0o755)

    activate(tmp_path / "new", "tool", bin_dir)

    assert Path(os.readlink(bin_dir / "tool")) == binary.absolute()


def test_link_binary_replaces_regular_file(tmp_path: Path) -> None:
    bin_dir = tmp_path / "links"
    _write(bin_dir / "tool", 0o755, "old copy")
    binary = _write(tmp_path / "bin" / "tool", 0o755)

    link = link_binary(binary, bin_dir)

    assert link.is_symlink()
    assert link.read_text() == "#!/bin/sh\n"


def test_activate_without_binary_warns(tmp_path: Path) -> None:
    _write(tmp_path / "share" / "man", 0o644)
    bin_dir = tmp_path / "links"
    with pytest.warns(ActivationWarning, match="Could not find a binary"):
        assert activate(tmp_path, "tool", bin_dir) is None
    assert not bin_dir.exists()


def test_tree_search_skips_leftover_extraction_dirs(tmp_path: Path) -> None:
    install_path = tmp_path / "ripgrep"
    _write(install_path / ".tmp_extractdead" / "ripgrep" / "bin" / "rg", 0o755)
    bottle = make_tarball(
        {"ripgrep/14.1.0/bin/rg": b"#!/bin/sh\n"},
        modes={"ripgrep/14.1.0/bin/rg": 0o755},
    )
    extract_bottle(bottle, install_path)

    binary = activate(install_path, "ripgrep", tmp_path / "links")

    assert binary == install_path / "14.1.0" / "bin" / "rg"
    assert TEMP_PREFIX not in os.readlink(tmp_path / "links" / "rg")


def test_unreadable_bin_dir_is_a_filesystem_error(tmp_path: Path) -> None:
    (tmp_path / "bin").mkdir()
    denied = PermissionError(13, "Permission denied", str(tmp_path / "bin"))
    with (
        patch.object(Path, "iterdir", side_effect=denied),
        pytest.raises(FilesystemError, match="Permission denied"),
    ):
        find_binary(tmp_path, "tool")


def test_unreadable_tree_is_a_filesystem_error(tmp_path: Path) -> None:
    (tmp_path / "libexec").mkdir()
    denied = PermissionError(13, "Permission denied", str(tmp_path / "libexec"))
    with (
        patch("still.activate.os.walk", side_effect=lambda *a, **kw: kw["onerror"](denied)),
        pytest.raises(FilesystemError, match="libexec"),
    ):
        find_binary(tmp_path, "tool")
