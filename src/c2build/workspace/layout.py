# This file is part of c2build, an incremental build orchestrator for the C2 browser.
#
# Copyright 2025 The c2build Authors.
#
# SPDX-License-Identifier: GPL-3.0-only
#
# c2build is free software: you can redistribute it and/or modify it under
# the terms of the GNU General Public License version 3, as published by the
# Free Software Foundation.
#
# c2build is distributed in the hope that it will be useful, but WITHOUT
# ANY WARRANTY; without even the implied warranties of MERCHANTABILITY,
# SATISFACTORY QUALITY, or FITNESS FOR A PARTICULAR PURPOSE. See the GNU
# General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with
# c2build. If not, see <http://www.gnu.org/licenses/>.

"""Workspace layout and clean/reset semantics.

A workspace is the persistent directory tree of one build project:

    <root>/
      desktop/                      utilities repository (patches, lists, flags)
      flags.gn                      project GN override
      *.patch                       project-local patches
      build/
        src/                        source tree
        src/out/Default/            output directory
        .markers/                   one sentinel per completed phase
        download_cache/             retrieved archives
        .ccache/                    object-code cache
        .ccache-wrappers/           compiler wrapper shims
        domsubcache.tar.gz          domain substitution cache artifact

Paths never change during the lifetime of a project; only their contents do.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from c2build.core.context import LayoutNames
from c2build.core.exceptions import WorkspaceIOError
from c2build.workspace.markers import MarkerStore

logger = logging.getLogger(__name__)

# Source Tree Validity Predicate: a top-level build descriptor and a key
# subdirectory must both be present.
SOURCE_DESCRIPTOR = "BUILD.gn"
SOURCE_KEY_SUBDIR = "chrome"


@dataclass(frozen=True)
class Workspace:
    """Resolved paths of one build project."""

    root: Path
    main_repo: Path
    build_dir: Path
    src_dir: Path
    markers_dir: Path
    download_cache: Path
    ccache_dir: Path
    wrapper_dir: Path
    domsub_cache: Path
    output_dir: Path

    @classmethod
    def from_root(cls, root: Path, names: LayoutNames | None = None) -> Workspace:
        names = names or LayoutNames()
        root = Path(root)
        build_dir = root / names.build_dir
        src_dir = build_dir / names.src_dir
        return cls(
            root=root,
            main_repo=root / names.main_repo,
            build_dir=build_dir,
            src_dir=src_dir,
            markers_dir=build_dir / names.markers_dir,
            download_cache=build_dir / names.download_cache,
            ccache_dir=build_dir / names.ccache_dir,
            wrapper_dir=build_dir / names.wrapper_dir,
            domsub_cache=build_dir / names.domsub_cache,
            output_dir=src_dir / names.output_dir,
        )

    @property
    def args_gn(self) -> Path:
        return self.output_dir / "args.gn"

    @property
    def gn_binary(self) -> Path:
        return self.output_dir / "gn"


@dataclass
class ResetReport:
    """What a reset removed and what it deliberately kept."""

    removed: list[Path] = field(default_factory=list)
    preserved: list[Path] = field(default_factory=list)


class WorkspaceManager:
    """Owns the on-disk layout of a workspace."""

    def __init__(self, workspace: Workspace, markers: MarkerStore | None = None) -> None:
        self.workspace = workspace
        self.markers = markers or MarkerStore(workspace.markers_dir)

    def ensure_layout(self) -> None:
        """Create all required directories if absent. Safe to call every time."""
        ws = self.workspace
        for path in (ws.src_dir, ws.download_cache, ws.markers_dir, ws.output_dir):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise WorkspaceIOError(message=f"Cannot create {path}: {e}", path=str(path)) from e

    def reset(
        self,
        preserve_download_cache: bool = True,
        preserve_compiler_cache: bool = True,
    ) -> ResetReport:
        """Return the workspace to a clean state.

        Deletes the source tree, the domain substitution cache artifact and
        all markers. The download cache and the compiler cache survive unless
        the caller explicitly opts out, since re-downloading and re-warming
        them is the expensive part of a clean build.
        """
        ws = self.workspace
        report = ResetReport()

        targets: list[Path] = [ws.src_dir, ws.domsub_cache]
        caches = [
            (ws.download_cache, preserve_download_cache),
            (ws.ccache_dir, preserve_compiler_cache),
            (ws.wrapper_dir, preserve_compiler_cache),
        ]
        for path, preserve in caches:
            if preserve:
                if path.exists():
                    report.preserved.append(path)
            else:
                targets.append(path)

        for path in targets:
            if not (path.exists() or path.is_symlink()):
                continue
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except OSError as e:
                raise WorkspaceIOError(message=f"Cannot remove {path}: {e}", path=str(path)) from e
            report.removed.append(path)
            logger.debug("Removed %s", path)

        self.markers.clear_all()
        return report

    def is_source_valid(self) -> bool:
        """Apply the Source Tree Validity Predicate."""
        src = self.workspace.src_dir
        return (
            src.is_dir()
            and (src / SOURCE_DESCRIPTOR).is_file()
            and (src / SOURCE_KEY_SUBDIR).is_dir()
        )

    def wipe_source(self) -> None:
        """Remove any (partial) source tree and recreate it empty."""
        src = self.workspace.src_dir
        try:
            if src.exists():
                shutil.rmtree(src)
            src.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceIOError(message=f"Cannot reset source tree {src}: {e}", path=str(src)) from e

    def disk_usage(self) -> dict[str, int]:
        """Return sizes in bytes of the large workspace directories."""
        ws = self.workspace
        return {
            "src": get_dir_size(ws.src_dir),
            "download_cache": get_dir_size(ws.download_cache),
            "ccache": get_dir_size(ws.ccache_dir),
        }


def get_dir_size(path: Path) -> int:
    """Get total size of a directory in bytes, ignoring unreadable entries."""
    if not path.exists():
        return 0

    total = 0
    try:
        for file_path in path.rglob("*"):
            if file_path.is_file() and not file_path.is_symlink():
                try:
                    total += file_path.stat().st_size
                except OSError:
                    continue
    except OSError as e:
        logger.debug("Size scan of %s incomplete: %s", path, e)
    return total
