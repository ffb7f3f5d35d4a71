"""Lay out, index and sign apt repositories."""

from __future__ import annotations

from deb_publish.apt.layout import RepoLayout, resolve_layout
from deb_publish.apt.packages import build_indices, render_packages, scan_pool
from deb_publish.apt.publish import PublishConf, publish
from deb_publish.apt.release import build_release, write_release

__all__ = [
    "PublishConf",
    "RepoLayout",
    "build_indices",
    "build_release",
    "publish",
    "render_packages",
    "resolve_layout",
    "scan_pool",
    "write_release",
]
