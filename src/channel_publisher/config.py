"""Configuration models and helpers for the publisher CLI."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Sequence

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from channel_publisher.exceptions import ConfigurationError

Platform = Literal["darwin", "linux", "win32", "aix", "freebsd", "openbsd", "sunos", "wsl"]
Architecture = Literal["x64", "x86", "arm", "arm64", "ppc", "ppc64", "s390x"]

PLATFORMS = ("darwin", "linux", "win32", "aix", "freebsd", "openbsd", "sunos", "wsl")
ARCHITECTURES = ("x64", "x86", "arm", "arm64", "ppc", "ppc64", "s390x")
DEFAULT_TARGETS = [
    "linux-x64",
    "linux-arm",
    "linux-arm64",
    "win32-x64",
    "win32-x86",
    "win32-arm64",
    "darwin-x64",
    "darwin-arm64",
]
DEFAULT_CONFIG_NAME = "publish.yaml"


class BuildTarget(BaseModel):
    """A platform/architecture pair a tarball is built for."""

    model_config = ConfigDict(frozen=True)

    platform: Platform
    arch: Architecture

    @classmethod
    def parse(cls, value: str) -> "BuildTarget":
        platform, sep, arch = value.strip().partition("-")
        if not sep or platform not in PLATFORMS or arch not in ARCHITECTURES:
            raise ConfigurationError(
                f"Invalid target '{value}'. Expected <platform>-<arch>, e.g. linux-x64.",
                {"target": value},
            )
        return cls(platform=platform, arch=arch)

    def __str__(self) -> str:
        return f"{self.platform}-{self.arch}"


class StorageConfig(BaseModel):
    """Where artifacts live in object storage."""

    bucket: Optional[str] = Field(default=None, description="Destination bucket.")
    folder: Optional[str] = Field(default=None, description="Optional prefix for every key.")
    acl: str = Field(default="public-read", description="Canned ACL applied to uploads and copies.")
    host: Optional[str] = Field(default=None, description="Public base URL written into index files.")
    region: Optional[str] = Field(default=None)
    endpoint_url: Optional[str] = Field(default=None, description="Override for S3-compatible endpoints.")
    templates: Optional[Dict[str, str]] = Field(
        default=None, description="Custom key templates. When set, they replace the built-in key scheme."
    )

    @field_validator("folder", mode="before")
    @classmethod
    def _blank_folder(cls, value: Any) -> Optional[str]:
        if value is None or str(value).strip() == "":
            return None
        return str(value)

    @field_validator("templates", mode="before")
    @classmethod
    def _empty_templates(cls, value: Any) -> Optional[Dict[str, str]]:
        return value or None

    @property
    def has_custom_templates(self) -> bool:
        return bool(self.templates)


class PublishConfig(BaseModel):
    """Root configuration read from publish.yaml."""

    bin: str = Field(..., description="Name of the CLI binary.")
    version: str = Field(..., description="Semantic version of the CLI being built.")
    dist_dir: Path = Field(default=Path("dist"), description="Directory holding packed tarballs.")
    xz: bool = Field(default=False, description="Also publish .tar.xz tarballs.")
    targets: List[BuildTarget] = Field(default_factory=lambda: [BuildTarget.parse(t) for t in DEFAULT_TARGETS])
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @field_validator("targets", mode="before")
    @classmethod
    def _parse_targets(cls, value: Any) -> List[Any]:
        if value is None:
            return [BuildTarget.parse(t) for t in DEFAULT_TARGETS]
        if isinstance(value, str):
            value = value.split(",")
        return [BuildTarget.parse(item) if isinstance(item, str) else item for item in value]

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> str:
        return str(value)


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_config(path: Path) -> PublishConfig:
    """Load a PublishConfig from a YAML file."""

    resolved = path.expanduser().resolve()
    if not resolved.exists():
        raise ConfigurationError(f"Publish configuration not found at {resolved}", {"path": str(resolved)})
    try:
        return PublishConfig.model_validate(_read_yaml(resolved))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid publish configuration {resolved}: {exc}") from exc


def parse_targets(values: Sequence[str]) -> List[BuildTarget]:
    """Parse platform-arch strings, dropping blanks and duplicates."""

    targets: List[BuildTarget] = []
    for raw in values:
        if not raw.strip():
            continue
        target = BuildTarget.parse(raw)
        if target not in targets:
            targets.append(target)
    return targets


def git_short_sha(root: Path) -> str:
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=root,
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        raise ConfigurationError(
            f"Cannot determine the git commit SHA in {root}; pass --sha explicitly.", {"root": str(root)}
        ) from exc
    return completed.stdout.strip()


@dataclass(frozen=True)
class BuildConfig:
    """Everything a single upload or promote run reads from configuration."""

    root: Path
    config: PublishConfig
    git_sha: str
    targets: List[BuildTarget]
    xz: bool

    @property
    def bin(self) -> str:
        return self.config.bin

    @property
    def version(self) -> str:
        return self.config.version

    @property
    def storage(self) -> StorageConfig:
        return self.config.storage

    def dist(self, name: str) -> Path:
        dist_dir = self.config.dist_dir
        if not dist_dir.is_absolute():
            dist_dir = self.root / dist_dir
        return dist_dir / name


def load_build_config(
    root: Path,
    sha: Optional[str] = None,
    targets: Optional[Sequence[str]] = None,
    xz: Optional[bool] = None,
    config_path: Optional[Path] = None,
) -> BuildConfig:
    """Resolve configuration, git SHA and target filters for one command run."""

    root = root.expanduser().resolve()
    config = load_config(config_path or root / DEFAULT_CONFIG_NAME)
    selected = parse_targets(targets) if targets else list(dict.fromkeys(config.targets))
    return BuildConfig(
        root=root,
        config=config,
        git_sha=sha or git_short_sha(root),
        targets=selected,
        xz=config.xz if xz is None else xz,
    )
