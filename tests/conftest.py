"""Configuration for pytest fixtures used in still tests."""

from __future__ import annotations

import gzip
import hashlib
import io
import json
import tarfile
from pathlib import Path
from typing import Any, Callable

import pytest
import requests

import still.cli
import still.config
import still.utils
from still.config import OperatingSystem, StillConfig, SystemProfile


def make_tarball(files: dict[str, bytes | None], modes: dict[str, int] | None = None) -> bytes:
    """Create a .tar.gz in memory.

    ``files`` maps archive names to contents; ``None`` marks a directory.
    """
    modes = modes or {}
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name=name)
            if content is None:
                info.type = tarfile.DIRTYPE
                info.mode = modes.get(name, 0o755)
                tar.addfile(info)
            else:
                info.size = len(content)
                info.mode = modes.get(name, 0o644)
                tar.addfile(info, io.BytesIO(content))
    return gzip.compress(buffer.getvalue())


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        content: bytes | None = None,
    ) -> None:
        self.status_code = status_code
        self._json = json_data
        if content is None and json_data is not None:
            content = json.dumps(json_data).encode()
        self.content = content or b""

    def json(self) -> Any:
        if self._json is None:
            return json.loads(self.content)
        return self._json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:  # noqa: PLR2004
            msg = f"{self.status_code} Error"
            raise requests.HTTPError(msg, response=self)  # type: ignore[arg-type]


def formula_json(
    name: str,
    version: str,
    files: dict[str, dict[str, str]],
    **extra: Any,
) -> dict[str, Any]:
    """Build a formula record shaped like the Homebrew API's."""
    return {
        "name": name,
        "full_name": name,
        "tap": "homebrew/core",
        "oldnames": extra.pop("oldnames", []),
        "aliases": extra.pop("aliases", []),
        "versions": {"stable": version, "head": None, "bottle": True},
        "bottle": {
            "stable": {
                "rebuild": 0,
                "root_url": "https://ghcr.io/v2/homebrew/core",
                "files": files,
            },
        },
        **extra,
    }


def bottle_entry(name: str, digest: str) -> dict[str, str]:
    return {
        "cellar": ":any_skip_relocation",
        "url": f"https://ghcr.io/v2/homebrew/core/{name}/blobs/sha256:{digest}",
        "sha256": digest,
    }


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep rich from wrapping long messages so tests can match substrings."""
    for console in (still.utils.console, still.cli.console, still.config.console):
        monkeypatch.setattr(console, "width", 1000)


@pytest.fixture
def config(tmp_path: Path) -> StillConfig:
    """A config whose directories all live under ``tmp_path``."""
    profile = SystemProfile.for_os(OperatingSystem.LINUX, home=tmp_path / "home")
    return StillConfig(
        profile=profile,
        tools_dir=tmp_path / "tools",
        bin_dir=tmp_path / "bin",
        cache_dir=tmp_path / "cache",
        formula_api_url="https://api.test/formula",
        catalog_url="https://api.test/formula.json",
        token_url="https://registry.test/token",
        registry_service="registry.test",
        platform_key="arm64_sonoma",
    )


@pytest.fixture
def fake_http() -> Callable[[dict[str, FakeResponse]], Callable[..., FakeResponse]]:
    """Build a ``requests.get`` replacement from a URL -> response table.

    The returned callable records every call in ``.calls``.
    """

    def _make(routes: dict[str, FakeResponse]) -> Callable[..., FakeResponse]:
        calls: list[tuple[str, dict[str, Any]]] = []

        def _get(url: str, **kwargs: Any) -> FakeResponse:
            calls.append((url, kwargs))
            if url in routes:
                return routes[url]
            return FakeResponse(status_code=404)

        _get.calls = calls  # type: ignore[attr-defined]
        return _get

    return _make
