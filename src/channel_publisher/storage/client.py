"""Thin boto3 wrapper used by the upload and promote tasks."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError
from loguru import logger

from channel_publisher.exceptions import ObjectNotFoundError
from channel_publisher.logging import log_operation

NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}


class OperationStatus(str, Enum):
    UPLOADED = "uploaded"
    COPIED = "copied"
    APPENDED = "appended"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class OperationResult:
    """Terminal state of one storage operation."""

    namespace: str
    action: str
    status: OperationStatus
    key: str
    dry_run: bool = False
    error: Optional[BaseException] = None


def is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in NOT_FOUND_CODES


class StorageClient:
    """Object storage operations with dry-run and ignore-missing handling."""

    def __init__(self, client: Any = None, region: Optional[str] = None, endpoint_url: Optional[str] = None) -> None:
        self._client = client
        self._region = region
        self._endpoint_url = endpoint_url
        self._lock = threading.Lock()

    @property
    def s3(self) -> Any:
        # first access happens on worker threads; boto3 client creation is not thread-safe
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = boto3.client("s3", region_name=self._region, endpoint_url=self._endpoint_url)
        return self._client

    def upload_file(
        self,
        local_path: Path,
        *,
        bucket: str,
        key: str,
        acl: str,
        cache_control: str,
        content_type: str,
        dry_run: bool = False,
        namespace: Optional[str] = None,
    ) -> OperationStatus:
        log_operation(namespace or Path(key).name, "upload", str(local_path), f"s3://{bucket}/{key}", dry_run)
        if dry_run:
            return OperationStatus.UPLOADED
        self.s3.upload_file(
            str(local_path),
            bucket,
            key,
            ExtraArgs={"ACL": acl, "CacheControl": cache_control, "ContentType": content_type},
        )
        return OperationStatus.UPLOADED

    def copy_object(
        self,
        *,
        bucket: str,
        source_key: str,
        dest_key: str,
        acl: str,
        cache_control: str,
        metadata_directive: str = "REPLACE",
        dry_run: bool = False,
        ignore_missing: bool = False,
        namespace: Optional[str] = None,
    ) -> OperationStatus:
        namespace = namespace or Path(dest_key).name
        log_operation(namespace, "copyObject", f"{bucket}/{source_key}", f"{bucket}/{dest_key}", dry_run)
        if not self.exists(bucket, source_key):
            return self._missing(bucket, source_key, namespace, ignore_missing)
        if dry_run:
            return OperationStatus.COPIED
        try:
            self.s3.copy_object(
                Bucket=bucket,
                Key=dest_key,
                CopySource={"Bucket": bucket, "Key": source_key},
                ACL=acl,
                CacheControl=cache_control,
                MetadataDirective=metadata_directive,
            )
        except ClientError as exc:
            if not is_not_found(exc):
                raise
            return self._missing(bucket, source_key, namespace, ignore_missing)
        return OperationStatus.COPIED

    def exists(self, bucket: str, key: str) -> bool:
        try:
            self.s3.head_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            if is_not_found(exc):
                return False
            raise
        return True

    def read_text(self, bucket: str, key: str) -> Optional[str]:
        try:
            response = self.s3.get_object(Bucket=bucket, Key=key)
        except ClientError as exc:
            if is_not_found(exc):
                return None
            raise
        return response["Body"].read().decode("utf-8")

    def put_text(
        self,
        bucket: str,
        key: str,
        body: str,
        *,
        acl: str,
        cache_control: str,
        content_type: str,
        dry_run: bool = False,
        namespace: Optional[str] = None,
    ) -> OperationStatus:
        log_operation(namespace or Path(key).name, "putObject", f"{len(body)} bytes", f"s3://{bucket}/{key}", dry_run)
        if dry_run:
            return OperationStatus.UPLOADED
        self.s3.put_object(
            Bucket=bucket,
            Key=key,
            Body=body.encode("utf-8"),
            ACL=acl,
            CacheControl=cache_control,
            ContentType=content_type,
        )
        return OperationStatus.UPLOADED

    def _missing(self, bucket: str, key: str, namespace: str, ignore_missing: bool) -> OperationStatus:
        if ignore_missing:
            logger.warning("> {} {}/{} does not exist, skipping", namespace, bucket, key)
            return OperationStatus.SKIPPED
        raise ObjectNotFoundError(bucket, key)
