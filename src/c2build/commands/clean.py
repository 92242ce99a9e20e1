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

"""Clean command for c2build.

Resets a workspace without building:
- Source tree and domain substitution cache artifact
- Phase markers
- Download cache and compiler cache (only with --purge-caches)
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer

from c2build.config import load_config
from c2build.core.context import BuildRequest, BuildSettings, resolve_project_root
from c2build.core.exceptions import C2BuildError
from c2build.units import format_size
from c2build.workspace.layout import Workspace, WorkspaceManager, get_dir_size

# Size threshold for warnings (100GB)
SIZE_WARNING_THRESHOLD = 100 * 1024 * 1024 * 1024


def activity(phase: str, message: str) -> None:
    """Print a status message."""
    typer.echo(f"[{phase}] {message}")


def _size_of(path: Path) -> int:
    if path.is_file():
        return path.stat().st_size
    return get_dir_size(path)


def collect_items(workspace: Workspace, purge_caches: bool) -> list[tuple[str, Path, int]]:
    """Return (name, path, size) of everything a reset would remove."""
    candidates = [
        ("Source tree", workspace.src_dir),
        ("Domain substitution cache", workspace.domsub_cache),
        ("Phase markers", workspace.markers_dir),
    ]
    if purge_caches:
        candidates += [
            ("Download cache", workspace.download_cache),
            ("Compiler cache", workspace.ccache_dir),
            ("Compiler wrappers", workspace.wrapper_dir),
        ]

    items: list[tuple[str, Path, int]] = []
    for name, path in candidates:
        if path == workspace.markers_dir:
            if path.is_dir() and any(path.iterdir()):
                items.append((name, path, _size_of(path)))
        elif path.exists():
            items.append((name, path, _size_of(path)))
    return items


def clean(
    purge_caches: bool = typer.Option(False, "--purge-caches", help="Also remove download and compiler caches"),
    dry_run: bool = typer.Option(False, "-n", "--dry-run", help="Show what would be removed without removing"),
    force: bool = typer.Option(False, "-f", "--force", help="Skip confirmation prompts"),
    root: str = typer.Option("", "-r", "--root", help="Project root (default: config paths.project_root, then cwd)"),
) -> None:
    """Reset the workspace to a clean state without building.

    The download cache and the compiler cache are kept unless --purge-caches
    is given, so the next build only re-extracts and re-patches.

    Examples:
        c2build clean --dry-run          # Preview what would be removed
        c2build clean                    # Remove source tree and markers
        c2build clean --purge-caches -f  # Remove everything, no prompt
    """
    try:
        cfg = load_config()
        settings = BuildSettings.from_config(cfg)
        project_root = resolve_project_root(
            BuildRequest(project_root=Path(root) if root else None), cfg
        )
    except C2BuildError as e:
        activity("error", e.message)
        sys.exit(e.exit_code)

    workspace = Workspace.from_root(project_root, settings.layout)
    manager = WorkspaceManager(workspace)

    items = collect_items(workspace, purge_caches)
    if not items:
        activity("clean", "Nothing to clean")
        return

    total_size = sum(size for _, _, size in items)
    activity("clean", "Items to remove:")
    for name, path, size in items:
        activity("clean", f"  {name}: {path} ({format_size(size)})")
    activity("clean", f"Total size: {format_size(total_size)}")
    if not purge_caches:
        activity("clean", "Download cache and compiler cache are preserved")

    if total_size >= SIZE_WARNING_THRESHOLD:
        typer.secho(
            f"\nWarning: About to remove {format_size(total_size)} of data!",
            fg=typer.colors.YELLOW,
            bold=True,
        )

    if dry_run:
        activity("clean", "(dry-run) No files removed")
        return

    if not force:
        confirm = typer.confirm(f"Remove {len(items)} item(s)?")
        if not confirm:
            activity("clean", "Aborted")
            return

    try:
        report = manager.reset(
            preserve_download_cache=not purge_caches,
            preserve_compiler_cache=not purge_caches,
        )
    except C2BuildError as e:
        activity("error", e.message)
        sys.exit(e.exit_code)

    for path in report.removed:
        activity("clean", f"Removed: {path}")
    activity("clean", f"Cleaned {format_size(total_size)}")
