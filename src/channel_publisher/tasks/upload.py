"""Upload freshly packed tarballs and build manifests to their commit directory."""

from __future__ import annotations

from typing import List, Optional

from loguru import logger

from channel_publisher.config import BuildConfig, BuildTarget
from channel_publisher.exceptions import ConfigurationError, PreconditionError
from channel_publisher.keys import KeyScheme
from channel_publisher.storage.client import OperationResult, OperationStatus, StorageClient
from channel_publisher.tasks.base import BaseTask, Operation

TARBALL_CACHE_CONTROL = "max-age=604800"
MANIFEST_CACHE_CONTROL = "max-age=86400"
CONTENT_TYPES = {
    ".tar.gz": "application/gzip",
    ".tar.xz": "application/x-xz",
}


class UploadTask(BaseTask):
    """Upload every target's versioned tarball(s) plus its build manifest."""

    def __init__(
        self,
        build_config: BuildConfig,
        keys: KeyScheme,
        client: StorageClient,
        dry_run: bool = False,
        max_workers: Optional[int] = None,
    ) -> None:
        super().__init__(dry_run=dry_run, max_workers=max_workers)
        self.build_config = build_config
        self.keys = keys
        self.client = client

    @property
    def extensions(self) -> List[str]:
        return [".tar.gz", ".tar.xz"] if self.build_config.xz else [".tar.gz"]

    def run(self) -> List[OperationResult]:
        bucket = self.build_config.storage.bucket
        if not bucket:
            raise ConfigurationError("Cannot determine S3 bucket for upload")
        self.check_local_tarballs()

        operations: List[Operation] = []
        for target in self.build_config.targets:
            for ext in self.extensions:
                operations.append(self._tarball_operation(bucket, target, ext))
            operations.append(self._manifest_operation(bucket, target))

        if self.build_config.targets:
            logger.info("uploading targets")
        results = self._run_operations(operations, "Uploading tarballs")
        logger.success(
            "done uploading tarballs & manifests for v{}-{}", self.build_config.version, self.build_config.git_sha
        )
        return results

    def check_local_tarballs(self) -> None:
        """Fail before any network call when a target has not been packed."""

        for target in self.build_config.targets:
            for ext in self.extensions:
                tarball = self.build_config.dist(self.keys.versioned(ext, target))
                if not tarball.exists():
                    raise PreconditionError(
                        f"Cannot find a tarball {tarball} for {target}",
                        suggestions=[f"Run the packaging step for {target} before uploading"],
                        diagnostic_details={"target": str(target), "path": str(tarball)},
                    )

    def _tarball_operation(self, bucket: str, target: BuildTarget, ext: str) -> Operation:
        local_key = self.keys.versioned(ext, target)
        cloud_key = self.keys.cloud_key(local_key)

        def _upload() -> OperationStatus:
            return self.client.upload_file(
                self.build_config.dist(local_key),
                bucket=bucket,
                key=cloud_key,
                acl=self.build_config.storage.acl,
                cache_control=TARBALL_CACHE_CONTROL,
                content_type=CONTENT_TYPES[ext],
                dry_run=self.dry_run,
                namespace=local_key,
            )

        return Operation(namespace=local_key, action="upload", key=cloud_key, run=_upload)

    def _manifest_operation(self, bucket: str, target: BuildTarget) -> Operation:
        manifest = self.keys.manifest(target)
        cloud_key = self.keys.cloud_key(manifest)
        local = self.build_config.dist(manifest)

        def _maybe_upload() -> OperationStatus:
            logger.debug("checking for buildmanifest at {}", local)
            if not local.exists():
                logger.warning("Cannot find buildmanifest {}. CLI will not be able to update itself.", local)
                return OperationStatus.SKIPPED
            logger.info("uploading buildmanifest {}", manifest)
            return self.client.upload_file(
                local,
                bucket=bucket,
                key=cloud_key,
                acl=self.build_config.storage.acl,
                cache_control=MANIFEST_CACHE_CONTROL,
                content_type="application/json",
                dry_run=self.dry_run,
                namespace=manifest,
            )

        return Operation(namespace=manifest, action="upload", key=cloud_key, run=_maybe_upload)
