"""Built-in short-key templates and storage directory helpers."""

from __future__ import annotations

import posixpath
from typing import Any, Dict

from channel_publisher.config import StorageConfig
from channel_publisher.exceptions import ConfigurationError, InvalidArchitectureError

TEMPLATES: Dict[str, str] = {
    "baseDir": "{bin}",
    "deb": "{bin}_{versionShaRevision}_{arch}.deb",
    "macos": "{bin}-v{version}-{sha}-{arch}.pkg",
    "manifest": "{bin}-v{version}-{sha}-{platform}-{arch}-buildmanifest",
    "unversioned": "{bin}-{platform}-{arch}{ext}",
    "versioned": "{bin}-v{version}-{sha}-{platform}-{arch}{ext}",
    "win32": "{bin}-v{version}-{sha}-{arch}.exe",
}

DEB_ARCHES: Dict[str, str] = {
    "x64": "amd64",
    "x86": "i386",
    "arm": "armel",
    "arm64": "arm64",
}

DEBIAN_REPOSITORY_FILES = ("Packages.gz", "Packages.xz", "Packages.bz2", "Release", "InRelease", "Release.gpg")


def render(template: str, params: Dict[str, Any], shape: str) -> str:
    try:
        return template.format(**params)
    except (KeyError, IndexError) as exc:
        raise ConfigurationError(
            f"Key template '{shape}' needs a value for {exc} that was not provided",
            {"shape": shape, "template": template},
        ) from exc


def template_short_key(shape: str, **params: Any) -> str:
    """Render a filename-only key for one of the built-in shapes."""

    if shape not in TEMPLATES:
        raise ConfigurationError(f"Unknown key shape '{shape}'", {"shape": shape})
    return render(TEMPLATES[shape], params, shape)


def deb_arch(arch: str) -> str:
    try:
        return DEB_ARCHES[arch]
    except KeyError:
        raise InvalidArchitectureError(arch) from None


def deb_version(version: str, sha: str) -> str:
    # debian_revision is always 1, see debian-policy controlfields
    return f"{version.split('-')[0]}.{sha}-1"


def strip_version(filename: str, version: str, sha: str) -> str:
    """Derive the unversioned filename by dropping the first -v<version>-<sha>."""

    return filename.replace(f"-v{version}-{sha}", "", 1)


def _storage_prefix(storage: StorageConfig) -> str:
    folder = (storage.folder or "").rstrip("/")
    return f"{folder}/" if folder else ""


def commit_dir(version: str, sha: str, storage: StorageConfig) -> str:
    return posixpath.join(_storage_prefix(storage), "versions", version, sha)


def channel_dir(channel: str, storage: StorageConfig) -> str:
    return posixpath.join(_storage_prefix(storage), "channels", channel)
