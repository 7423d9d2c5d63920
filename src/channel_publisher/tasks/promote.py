"""Promote an uploaded release from its commit directory to a release channel."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Callable, List, Optional

from loguru import logger

from channel_publisher.config import BuildConfig, BuildTarget
from channel_publisher.exceptions import ConfigurationError
from channel_publisher.keys import (
    DEBIAN_REPOSITORY_FILES,
    KeyScheme,
    channel_key,
    commit_key,
    deb_arch,
    deb_version,
    strip_version,
    template_short_key,
)
from channel_publisher.storage.client import OperationResult, OperationStatus, StorageClient
from channel_publisher.storage.indexes import append_to_index
from channel_publisher.tasks.base import BaseTask, Operation


@dataclass(frozen=True)
class PromoteOptions:
    channel: str
    version: str
    sha: str
    xz: bool = False
    macos: bool = False
    win: bool = False
    deb: bool = False
    indexes: bool = False
    max_age: int = 86400
    ignore_missing: bool = False
    dry_run: bool = False
    max_workers: Optional[int] = None

    @property
    def cache_control(self) -> str:
        return f"max-age={self.max_age}"


class PromoteTask(BaseTask):
    """Copy versioned artifacts to their unversioned channel keys."""

    def __init__(
        self,
        build_config: BuildConfig,
        keys: KeyScheme,
        client: StorageClient,
        options: PromoteOptions,
    ) -> None:
        super().__init__(dry_run=options.dry_run, max_workers=options.max_workers)
        self.build_config = build_config
        self.keys = keys
        self.client = client
        self.options = options
        self.storage = build_config.storage

    def run(self) -> List[OperationResult]:
        if not self.storage.bucket:
            raise ConfigurationError("Cannot determine S3 bucket for promotion")
        if self.options.indexes and not self.storage.host:
            raise ConfigurationError("storage.host is required to append promoted urls to version indexes")

        operations = self.plan()
        logger.info(
            "Promoting v{} ({}) to {} channel", self.options.version, self.options.sha, self.options.channel
        )
        results = self._run_operations(operations, f"Promoting to {self.options.channel}")
        skipped = sum(1 for result in results if result.status is OperationStatus.SKIPPED)
        logger.success(
            "Promoted v{} ({}) to {}: {} copied, {} skipped",
            self.options.version,
            self.options.sha,
            self.options.channel,
            len(results) - skipped,
            skipped,
        )
        return results

    def plan(self) -> List[Operation]:
        """Compute every copy this promotion performs.

        Key computation happens here, before any operation is dispatched, so
        configuration errors abort the run without touching storage.
        """

        targets = self.build_config.targets
        operations: List[Operation] = []
        for target in targets:
            operations.append(self._manifest_operation(target))
            operations.append(self._tarball_operation(target, ".tar.gz"))
        if self.options.xz:
            operations.extend(self._tarball_operation(target, ".tar.xz") for target in targets)
        if self.options.macos:
            operations.extend(self._installer_operations("darwin", "macos"))
        if self.options.win:
            operations.extend(self._installer_operations("win32", "win32"))
        if self.options.deb:
            operations.extend(self._debian_operations())
        return operations

    def _copy(self, source_key: str, dest_key: str, namespace: str) -> OperationStatus:
        return self.client.copy_object(
            bucket=self.storage.bucket,
            source_key=source_key,
            dest_key=dest_key,
            acl=self.storage.acl,
            cache_control=self.options.cache_control,
            metadata_directive="REPLACE",
            dry_run=self.options.dry_run,
            ignore_missing=self.options.ignore_missing,
            namespace=namespace,
        )

    def _copy_and_index(self, source_key: str, dest_key: str, index_filename: str) -> Callable[[], OperationStatus]:
        def _promote() -> OperationStatus:
            status = self._copy(source_key, dest_key, index_filename)
            if self.options.indexes and status is not OperationStatus.SKIPPED:
                append_to_index(
                    self.client,
                    filename=index_filename,
                    original_url=f"{self.storage.bucket}/{source_key}",
                    version=self.options.version,
                    cache_control=self.options.cache_control,
                    storage=self.storage,
                    dry_run=self.options.dry_run,
                )
            return status

        return _promote

    def _manifest_operation(self, target: BuildTarget) -> Operation:
        source_key = self.keys.cloud_key(self.keys.manifest(target))
        dest_key = self.keys.channel_manifest(target, self.options.channel)
        namespace = posixpath.basename(dest_key)
        return Operation(
            namespace=namespace,
            action="copyObject",
            key=dest_key,
            run=lambda: self._copy(source_key, dest_key, namespace),
        )

    def _tarball_operation(self, target: BuildTarget, ext: str) -> Operation:
        source_key = self.keys.cloud_key(self.keys.versioned(ext, target))
        dest_key = self.keys.channel_tarball(ext, target, self.options.channel)
        index_filename = self.keys.index_filename(ext, target, self.options.channel)
        return Operation(
            namespace=index_filename,
            action="copyObject",
            key=dest_key,
            run=self._copy_and_index(source_key, dest_key, index_filename),
        )

    def _installer_operations(self, platform: str, shape: str) -> List[Operation]:
        arches = list(dict.fromkeys(t.arch for t in self.build_config.targets if t.platform == platform))
        operations = []
        for arch in arches:
            installer = template_short_key(
                shape, arch=arch, bin=self.build_config.bin, sha=self.options.sha, version=self.options.version
            )
            source_key = commit_key(self.options.version, self.options.sha, self.storage, installer)
            # version and sha are stripped so scripts can point at a static channel installer
            unversioned = strip_version(installer, self.options.version, self.options.sha)
            dest_key = channel_key(self.options.channel, self.storage, unversioned)
            operations.append(
                Operation(
                    namespace=unversioned,
                    action="copyObject",
                    key=dest_key,
                    run=self._copy_and_index(source_key, dest_key, unversioned),
                )
            )
        return operations

    def debian_artifacts(self) -> List[str]:
        # x86 builds are not published to the apt repository
        linux_arches = [t.arch for t in self.build_config.targets if t.platform == "linux" and "x86" not in t.arch]
        packages = [
            template_short_key(
                "deb",
                arch=deb_arch(arch),
                bin=self.build_config.bin,
                versionShaRevision=deb_version(self.options.version, self.options.sha),
            )
            for arch in dict.fromkeys(linux_arches)
        ]
        return packages + list(DEBIAN_REPOSITORY_FILES)

    def _debian_operations(self) -> List[Operation]:
        operations = []
        for artifact in self.debian_artifacts():
            source_key = commit_key(self.options.version, self.options.sha, self.storage, f"apt/{artifact}")
            apt_key = channel_key(self.options.channel, self.storage, f"apt/{artifact}")
            # apt resolves ../apt/dists/<channel>/<artifact> while the repository tool
            # writes apt/<artifact>; both locations are populated independently.
            compat_key = f"{channel_key(self.options.channel, self.storage, 'apt/')}./{artifact}"
            for dest_key in (apt_key, compat_key):
                operations.append(
                    Operation(
                        namespace=dest_key,
                        action="copyObject",
                        key=dest_key,
                        run=self._bind_copy(source_key, dest_key),
                    )
                )
        return operations

    def _bind_copy(self, source_key: str, dest_key: str) -> Callable[[], OperationStatus]:
        return lambda: self._copy(source_key, dest_key, dest_key)
