"""Key schemes mapping a release and its targets to storage keys.

Two interchangeable implementations exist. ``BuiltinScheme`` lays artifacts out
under ``versions/<version>/<sha>`` and ``channels/<channel>``. ``DelegatingScheme``
hands every computation to a template hook, which is how projects with custom
templates in their storage configuration get their own layout. The scheme is
chosen once, by :func:`build_key_scheme`; callers never check which one is in use.
"""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from channel_publisher.config import BuildTarget, StorageConfig
from channel_publisher.exceptions import ConfigurationError
from channel_publisher.keys.templates import (
    channel_dir,
    commit_dir,
    render,
    strip_version,
    template_short_key,
)

TemplateHook = Callable[..., str]


class KeyScheme(ABC):
    """Storage keys for one release (binary, version, sha)."""

    def __init__(self, bin: str, version: str, sha: str) -> None:
        self.bin = bin
        self.version = version
        self.sha = sha

    @abstractmethod
    def versioned(self, ext: str, target: BuildTarget) -> str:
        """Versioned tarball filename."""

    @abstractmethod
    def manifest(self, target: BuildTarget) -> str:
        """Versioned build manifest filename."""

    @abstractmethod
    def cloud_key(self, local_key: str) -> str:
        """Commit-scoped key for a short key."""

    @abstractmethod
    def channel_tarball(self, ext: str, target: BuildTarget, channel: str) -> str:
        """Channel-scoped key of the unversioned tarball."""

    @abstractmethod
    def channel_manifest(self, target: BuildTarget, channel: str) -> str:
        """Channel-scoped key of the unversioned build manifest."""

    @abstractmethod
    def index_filename(self, ext: str, target: BuildTarget, channel: str) -> str:
        """Name of the version index file for a channel tarball."""


class BuiltinScheme(KeyScheme):
    def __init__(self, bin: str, version: str, sha: str, storage: StorageConfig) -> None:
        super().__init__(bin, version, sha)
        self.storage = storage

    def _short(self, shape: str, target: BuildTarget, **extra: str) -> str:
        return template_short_key(
            shape,
            bin=self.bin,
            version=self.version,
            sha=self.sha,
            platform=target.platform,
            arch=target.arch,
            **extra,
        )

    def versioned(self, ext: str, target: BuildTarget) -> str:
        return self._short("versioned", target, ext=ext)

    def manifest(self, target: BuildTarget) -> str:
        return self._short("manifest", target)

    def cloud_key(self, local_key: str) -> str:
        return f"{commit_dir(self.version, self.sha, self.storage)}/{local_key}"

    def channel_tarball(self, ext: str, target: BuildTarget, channel: str) -> str:
        return f"{channel_dir(channel, self.storage)}/{self.index_filename(ext, target, channel)}"

    def channel_manifest(self, target: BuildTarget, channel: str) -> str:
        unversioned = strip_version(self.manifest(target), self.version, self.sha)
        return f"{channel_dir(channel, self.storage)}/{unversioned}"

    def index_filename(self, ext: str, target: BuildTarget, channel: str) -> str:
        return self._short("unversioned", target, ext=ext)


class DelegatingScheme(KeyScheme):
    """Returns whatever the hook renders, unchanged."""

    def __init__(self, bin: str, version: str, sha: str, hook: TemplateHook) -> None:
        super().__init__(bin, version, sha)
        self.hook = hook

    def _key(self, shape: str, target: BuildTarget, ext: Optional[str] = None, channel: Optional[str] = None) -> str:
        params: Dict[str, str] = {
            "bin": self.bin,
            "version": self.version,
            "sha": self.sha,
            "platform": target.platform,
            "arch": target.arch,
        }
        if ext is not None:
            params["ext"] = ext
        if channel is not None:
            params["channel"] = channel
        return self.hook(shape, **params)

    def versioned(self, ext: str, target: BuildTarget) -> str:
        return self._key("versioned", target, ext=ext)

    def manifest(self, target: BuildTarget) -> str:
        return self._key("manifest", target)

    def cloud_key(self, local_key: str) -> str:
        return local_key

    def channel_tarball(self, ext: str, target: BuildTarget, channel: str) -> str:
        return self._key("unversioned", target, ext=ext, channel=channel)

    def channel_manifest(self, target: BuildTarget, channel: str) -> str:
        return self._key("manifest", target, channel=channel)

    def index_filename(self, ext: str, target: BuildTarget, channel: str) -> str:
        return self._key("unversioned", target, ext=ext, channel=channel)


def template_hook(templates: Dict[str, str]) -> TemplateHook:
    """Build a hook that renders the configured custom templates."""

    def _render(shape: str, **params: str) -> str:
        template = templates.get(shape)
        if template is None:
            raise ConfigurationError(f"No custom template configured for '{shape}'", {"shape": shape})
        return render(template, params, shape)

    return _render


def build_key_scheme(
    storage: StorageConfig,
    bin: str,
    version: str,
    sha: str,
    hook: Optional[TemplateHook] = None,
) -> KeyScheme:
    if hook is None and not storage.has_custom_templates:
        return BuiltinScheme(bin, version, sha, storage)
    return DelegatingScheme(bin, version, sha, hook or template_hook(storage.templates or {}))


def channel_key(channel: str, storage: StorageConfig, short_key: str) -> str:
    return posixpath.join(channel_dir(channel, storage), short_key)


def commit_key(version: str, sha: str, storage: StorageConfig, short_key: str) -> str:
    return posixpath.join(commit_dir(version, sha, storage), short_key)
