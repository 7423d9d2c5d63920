"""Storage key naming."""

from .schemes import (
    BuiltinScheme,
    DelegatingScheme,
    KeyScheme,
    build_key_scheme,
    channel_key,
    commit_key,
    template_hook,
)
from .templates import (
    DEBIAN_REPOSITORY_FILES,
    channel_dir,
    commit_dir,
    deb_arch,
    deb_version,
    strip_version,
    template_short_key,
)

__all__ = [
    "BuiltinScheme",
    "DelegatingScheme",
    "KeyScheme",
    "build_key_scheme",
    "channel_key",
    "commit_key",
    "template_hook",
    "DEBIAN_REPOSITORY_FILES",
    "channel_dir",
    "commit_dir",
    "deb_arch",
    "deb_version",
    "strip_version",
    "template_short_key",
]
