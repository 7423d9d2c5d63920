"""Tests for configuration helpers."""

import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest
import yaml

from channel_publisher import config as config_mod
from channel_publisher.config import (
    DEFAULT_TARGETS,
    BuildTarget,
    PublishConfig,
    StorageConfig,
    load_build_config,
    load_config,
    parse_targets,
)
from channel_publisher.exceptions import ConfigurationError


def test_build_target_parse_and_str():
    target = BuildTarget.parse("darwin-arm64")
    assert target.platform == "darwin"
    assert target.arch == "arm64"
    assert str(target) == "darwin-arm64"
    assert BuildTarget.parse("linux-x64") == BuildTarget(platform="linux", arch="x64")

    for bad in ("linux", "plan9-x64", "linux-mips", ""):
        with pytest.raises(ConfigurationError):
            BuildTarget.parse(bad)


def test_parse_targets_drops_blanks_and_duplicates():
    targets = parse_targets(["linux-x64", " ", "linux-x64", "win32-x86"])
    assert [str(t) for t in targets] == ["linux-x64", "win32-x86"]


def test_publish_config_defaults():
    cfg = PublishConfig(bin="mycli", version=1.2)
    assert cfg.version == "1.2"
    assert [str(t) for t in cfg.targets] == DEFAULT_TARGETS
    assert cfg.dist_dir == Path("dist")
    assert cfg.storage.acl == "public-read"
    assert cfg.storage.bucket is None
    assert not cfg.storage.has_custom_templates


def test_storage_config_normalizes_blank_values():
    storage = StorageConfig(folder="  ", templates={})
    assert storage.folder is None
    assert storage.templates is None
    assert StorageConfig(templates={"versioned": "{bin}"}).has_custom_templates


def test_targets_accept_comma_string():
    cfg = PublishConfig(bin="mycli", version="1.0.0", targets="linux-x64,darwin-x64")
    assert [str(t) for t in cfg.targets] == ["linux-x64", "darwin-x64"]


def test_load_config_from_yaml(tmp_path):
    cfg_path = tmp_path / "publish.yaml"
    cfg_path.write_text(
        yaml.safe_dump(
            {
                "bin": "mycli",
                "version": "2.0.0",
                "xz": True,
                "targets": ["linux-arm64"],
                "storage": {"bucket": "releases", "folder": "cli/"},
            }
        )
    )
    cfg = load_config(cfg_path)
    assert cfg.bin == "mycli"
    assert cfg.xz is True
    assert cfg.storage.folder == "cli/"
    assert [str(t) for t in cfg.targets] == ["linux-arm64"]


def test_load_config_missing_and_invalid(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "absent.yaml")

    broken = tmp_path / "broken.yaml"
    broken.write_text(yaml.safe_dump({"version": "1.0.0"}))
    with pytest.raises(ConfigurationError, match="Invalid publish configuration"):
        load_config(broken)

    bad_target = tmp_path / "bad-target.yaml"
    bad_target.write_text(yaml.safe_dump({"bin": "mycli", "version": "1.0.0", "targets": ["linux-mips"]}))
    with pytest.raises(ConfigurationError, match="Invalid target"):
        load_config(bad_target)


def test_load_build_config_overrides(make_project):
    root = make_project(targets=["linux-x64", "darwin-arm64"], xz=False)
    build = load_build_config(root, sha="abc1234", targets=["win32-x64"], xz=True)
    assert build.git_sha == "abc1234"
    assert [str(t) for t in build.targets] == ["win32-x64"]
    assert build.xz is True
    assert build.bin == "mycli"
    assert build.version == "1.2.3"
    assert build.storage.bucket == "releases"
    assert build.dist("file.tar.gz") == root.resolve() / "dist" / "file.tar.gz"


def test_load_build_config_uses_file_values(make_project):
    root = make_project(targets=["linux-x64"], xz=True)
    build = load_build_config(root, sha="abc1234")
    assert [str(t) for t in build.targets] == ["linux-x64"]
    assert build.xz is True


def test_absolute_dist_dir(make_project, tmp_path):
    dist = tmp_path / "elsewhere"
    root = make_project(dist_dir=str(dist))
    build = load_build_config(root, sha="abc1234")
    assert build.dist("x") == dist / "x"


def test_git_sha_resolution(monkeypatch, make_project):
    root = make_project()
    seen = {}

    def fake_run(cmd, cwd, capture_output, text, check):
        seen["cmd"] = cmd
        seen["cwd"] = cwd
        return SimpleNamespace(stdout="f00dcaf\n")

    monkeypatch.setattr(config_mod.subprocess, "run", fake_run)
    build = load_build_config(root)
    assert build.git_sha == "f00dcaf"
    assert seen["cmd"] == ["git", "rev-parse", "--short", "HEAD"]
    assert seen["cwd"] == root.resolve()


def test_git_sha_failure(monkeypatch, make_project):
    root = make_project()

    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(128, cmd)

    monkeypatch.setattr(config_mod.subprocess, "run", fake_run)
    with pytest.raises(ConfigurationError, match="--sha"):
        load_build_config(root)


def test_load_config_reads_edits_to_the_same_file(make_project):
    root = make_project()
    assert load_build_config(root, sha="abc1234").version == "1.2.3"

    payload = yaml.safe_load((root / "publish.yaml").read_text())
    payload["version"] = "1.3.0"
    (root / "publish.yaml").write_text(yaml.safe_dump(payload))
    assert load_build_config(root, sha="abc1234").version == "1.3.0"
