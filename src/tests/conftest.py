"""Shared fixtures: an in-memory S3 stand-in and a packed CLI project."""

import io
import threading
from pathlib import Path

import pytest
import yaml
from botocore.exceptions import ClientError

from channel_publisher.storage import StorageClient


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3:
    """Records calls and keeps objects in a dict keyed by (bucket, key)."""

    def __init__(self):
        self.objects = {}
        self.calls = []
        self.failures = {}
        self._lock = threading.Lock()

    def _record(self, name, **kwargs):
        with self._lock:
            self.calls.append((name, kwargs))

    def _maybe_fail(self, key, operation):
        if key in self.failures:
            raise _client_error(self.failures[key], operation)

    def put(self, bucket, key, body=b"", **meta):
        self.objects[(bucket, key)] = {"Body": body, **meta}

    def keys(self, bucket="releases"):
        return sorted(key for (b, key) in self.objects if b == bucket)

    def calls_named(self, name):
        return [kwargs for call, kwargs in self.calls if call == name]

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        self._record("upload_file", Filename=filename, Bucket=bucket, Key=key, ExtraArgs=ExtraArgs)
        self._maybe_fail(key, "PutObject")
        self.put(bucket, key, Path(filename).read_bytes(), **(ExtraArgs or {}))

    def head_object(self, Bucket, Key):
        self._record("head_object", Bucket=Bucket, Key=Key)
        if (Bucket, Key) not in self.objects:
            raise _client_error("404", "HeadObject")
        return {"ContentLength": len(self.objects[(Bucket, Key)]["Body"])}

    def copy_object(self, Bucket, Key, CopySource, **kwargs):
        self._record("copy_object", Bucket=Bucket, Key=Key, CopySource=CopySource, **kwargs)
        self._maybe_fail(Key, "CopyObject")
        source = (CopySource["Bucket"], CopySource["Key"])
        if source not in self.objects:
            raise _client_error("NoSuchKey", "CopyObject")
        self.put(Bucket, Key, self.objects[source]["Body"], **kwargs)
        return {}

    def get_object(self, Bucket, Key):
        self._record("get_object", Bucket=Bucket, Key=Key)
        if (Bucket, Key) not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)]["Body"])}

    def put_object(self, Bucket, Key, Body, **kwargs):
        self._record("put_object", Bucket=Bucket, Key=Key, **kwargs)
        self.put(Bucket, Key, Body, **kwargs)
        return {}


@pytest.fixture
def fake_s3():
    return FakeS3()


@pytest.fixture
def storage_client(fake_s3):
    return StorageClient(client=fake_s3)


def write_project(root: Path, storage=None, targets=None, xz=False, pack=True, manifests=True, **extra):
    """Create publish.yaml and (optionally) packed tarballs for a CLI named mycli."""

    root.mkdir(parents=True, exist_ok=True)
    targets = targets or ["linux-x64", "darwin-arm64"]
    payload = {
        "bin": "mycli",
        "version": "1.2.3",
        "targets": targets,
        "xz": xz,
        "storage": storage if storage is not None else {"bucket": "releases", "host": "https://cdn.example.com"},
        **extra,
    }
    (root / "publish.yaml").write_text(yaml.safe_dump(payload))
    dist = root / "dist"
    dist.mkdir(exist_ok=True)
    if pack:
        for target in targets:
            for ext in [".tar.gz", ".tar.xz"] if xz else [".tar.gz"]:
                (dist / f"mycli-v1.2.3-abc1234-{target}{ext}").write_bytes(b"tarball")
            if manifests:
                (dist / f"mycli-v1.2.3-abc1234-{target}-buildmanifest").write_text('{"version": "1.2.3"}')
    return root


@pytest.fixture
def project(tmp_path):
    return write_project(tmp_path / "project")


@pytest.fixture
def make_project(tmp_path):
    def _make(name="project", **kwargs):
        return write_project(tmp_path / name, **kwargs)

    return _make
