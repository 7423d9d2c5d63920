"""Version index files listing every promoted tarball/installer URL."""

from __future__ import annotations

import json
import posixpath
from typing import Dict, Tuple

from loguru import logger

from channel_publisher.config import StorageConfig
from channel_publisher.exceptions import ConfigurationError
from channel_publisher.storage.client import OperationStatus, StorageClient


def index_key(filename: str, storage: StorageConfig) -> str:
    """Key of the index file, e.g. versions/mycli-linux-x64-tar-gz.json."""

    json_name = f"{filename.replace('.', '-')}.json"
    return posixpath.join((storage.folder or "").rstrip("/"), "versions", json_name)


def public_url(original_url: str, storage: StorageConfig) -> str:
    if not storage.host:
        raise ConfigurationError("storage.host is required to write version indexes")
    if storage.bucket and original_url.startswith(storage.bucket):
        return storage.host.rstrip("/") + original_url[len(storage.bucket):]
    return original_url


def _version_key(version: str) -> Tuple:
    core, _, _build = version.partition("+")
    release, _, prerelease = core.partition("-")
    release_parts = tuple(int(part) if part.isdigit() else 0 for part in release.split("."))
    if not prerelease:
        return release_parts, 1, ()
    pre_parts = tuple((0, int(part), "") if part.isdigit() else (1, 0, part) for part in prerelease.split("."))
    return release_parts, 0, pre_parts


def sort_versions_desc(entries: Dict[str, str]) -> Dict[str, str]:
    return {version: entries[version] for version in sorted(entries, key=_version_key, reverse=True)}


def append_to_index(
    client: StorageClient,
    *,
    filename: str,
    original_url: str,
    version: str,
    cache_control: str,
    storage: StorageConfig,
    dry_run: bool = False,
) -> OperationStatus:
    """Add ``version -> url`` to the index named after ``filename``.

    Existing entries are kept. The index is created when it does not exist yet.
    Concurrent appends to the same index are not synchronized.
    """

    if not storage.bucket:
        raise ConfigurationError("storage.bucket is required for indexes")
    key = index_key(filename, storage)
    url = public_url(original_url, storage)

    existing: Dict[str, str] = {}
    raw = client.read_text(storage.bucket, key)
    if raw:
        try:
            existing = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Index {} is not valid JSON, starting a new one", key)
        if not isinstance(existing, dict):
            logger.warning("Index {} is not a version mapping, starting a new one", key)
            existing = {}
    else:
        logger.debug("No index at {}, creating it", key)

    updated = sort_versions_desc({**existing, version: url})
    client.put_text(
        storage.bucket,
        key,
        json.dumps(updated, indent=2),
        acl=storage.acl,
        cache_control=cache_control,
        content_type="application/json",
        dry_run=dry_run,
        namespace=posixpath.basename(key),
    )
    return OperationStatus.APPENDED
