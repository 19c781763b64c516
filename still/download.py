"""Download and verification functions for still."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import requests

from .errors import FilesystemError, IntegrityError, NetworkError, RegistryError
from .utils import log

if TYPE_CHECKING:
    from .config import StillConfig

logger = logging.getLogger(__name__)

DIGEST_MARKER = "sha256:"


def parse_blob_url(bottle_url: str) -> tuple[str, str]:
    """Split a bottle URL into the blob URL and its expected digest.

    Bottle URLs look like
    ``https://ghcr.io/v2/homebrew/core/go/blobs/sha256:abc123...``.
    """
    start = bottle_url.find(DIGEST_MARKER)
    if start == -1:
        msg = f"Invalid bottle URL format: {bottle_url}"
        raise RegistryError(msg)
    digest = bottle_url[start + len(DIGEST_MARKER) :]
    if not digest:
        msg = f"Bottle URL has an empty digest: {bottle_url}"
        raise RegistryError(msg)
    return bottle_url, digest.lower()


def repository_name(namespace: str, tool_name: str) -> str:
    """Return the blob repository for a formula (``openssl@3`` -> ``openssl/3``)."""
    image = tool_name.replace("@", "/").replace("+", "x")
    return f"{namespace.strip('/')}/{image}"


def _get(url: str, **kwargs: Any) -> requests.Response:
    """GET ``url`` and raise NetworkError on transport failure or bad status."""
    try:
        response = requests.get(url, **kwargs)
        response.raise_for_status()
    except requests.RequestException as e:
        msg = f"Request to {url} failed: {e}"
        raise NetworkError(msg) from e
    return response


def fetch_token(
    token_url: str,
    service: str,
    repository: str,
    timeout: float | None = 30,
) -> str:
    """Exchange for an anonymous pull token for ``repository``."""
    logger.debug("Requesting pull token for %s from %s", repository, token_url)
    response = _get(
        token_url,
        params={"service": service, "scope": f"repository:{repository}:pull"},
        timeout=timeout,
    )
    try:
        token = response.json()["token"]
    except (ValueError, KeyError, TypeError) as e:
        msg = f"Token response from {token_url} has no 'token' field"
        raise NetworkError(msg) from e
    if not isinstance(token, str) or not token:
        msg = f"Token response from {token_url} has an empty 'token' field"
        raise NetworkError(msg)
    return token


def download_blob(blob_url: str, token: str, timeout: float | None = 30) -> bytes:
    """Download a blob using a bearer token."""
    log(f"Downloading from {blob_url}", "info", "📥")
    response = _get(
        blob_url,
        headers={"Authorization": f"Bearer {token}"},
        timeout=timeout,
    )
    return response.content


def sha256_hex(data: bytes) -> str:
    """Return the lowercase hex SHA-256 of ``data``."""
    return hashlib.sha256(data).hexdigest()


def verify_sha256(data: bytes, expected: str) -> None:
    """Raise IntegrityError unless ``data`` hashes to ``expected``.

    A mismatch means corruption or tampering; callers must not extract the
    payload and should start over from the download.
    """
    actual = sha256_hex(data)
    if actual != expected.strip().lower():
        raise IntegrityError(expected, actual)
    logger.debug("Verified sha256 %s", actual)


def fetch_bottle(
    bottle_url: str,
    tool_name: str,
    config: StillConfig,
) -> bytes:
    """Fetch and verify the bottle at ``bottle_url``."""
    blob_url, expected = parse_blob_url(bottle_url)
    repository = repository_name(config.registry_namespace, tool_name)
    token = fetch_token(
        config.token_url,
        config.registry_service,
        repository,
        timeout=config.timeout,
    )
    data = download_blob(blob_url, token, timeout=config.timeout)
    verify_sha256(data, expected)
    log(f"Verified {len(data)} bytes for {tool_name}", "success")
    return data


def sync_catalog(config: StillConfig) -> Path:
    """Download the bulk formula catalog into the cache directory."""
    destination = config.catalog_path
    log(f"Downloading formula catalog from {config.catalog_url}", "info", "📥")
    response = _get(config.catalog_url, timeout=config.timeout)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=destination.parent, suffix=".json.tmp")
    except OSError as e:
        msg = f"Could not create {destination.parent}: {e}"
        raise FilesystemError(msg) from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(response.content)
        os.replace(tmp_name, destination)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        msg = f"Could not write formula catalog to {destination}: {e}"
        raise FilesystemError(msg) from e
    log(f"Formula catalog saved to {destination}", "success")
    return destination
