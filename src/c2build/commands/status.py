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

"""Implementation of `c2build status` command."""

from __future__ import annotations

import sys
from pathlib import Path

import typer

from c2build.config import load_config
from c2build.core.context import BuildRequest, BuildSettings, resolve_project_root
from c2build.core.exceptions import C2BuildError
from c2build.pipeline import GN_ARGS_UPDATED, PHASE_KEYS
from c2build.units import format_size
from c2build.workspace.layout import Workspace, WorkspaceManager


def activity(phase: str, message: str) -> None:
    """Print a status message."""
    typer.echo(f"[{phase}] {message}")


def phase_status(manager: WorkspaceManager) -> list[tuple[str, str]]:
    """Return (phase key, state) for every preparation phase in order."""
    present = set(manager.markers.present())
    rows = []
    for key in PHASE_KEYS:
        if key == GN_ARGS_UPDATED:
            state = "always runs"
        elif key in present:
            state = "done"
        else:
            state = "pending"
        rows.append((key, state))
    return rows


def status(
    root: str = typer.Option("", "-r", "--root", help="Project root (default: config paths.project_root, then cwd)"),
) -> None:
    """Show phase markers, source tree validity and disk usage."""
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

    activity("status", f"Project root: {workspace.root}")
    valid = manager.is_source_valid()
    activity("status", f"Source tree: {workspace.src_dir} ({'valid' if valid else 'missing or incomplete'})")

    activity("status", "Phases:")
    for key, state in phase_status(manager):
        activity("status", f"  {key}: {state}")

    unknown = sorted(set(manager.markers.present()) - set(PHASE_KEYS))
    if unknown:
        activity("status", f"  (unrecognised markers: {', '.join(unknown)})")

    usage = manager.disk_usage()
    activity("status", "Disk usage:")
    for name, size in usage.items():
        activity("status", f"  {name}: {format_size(size)}")
    activity("status", f"  Total: {format_size(sum(usage.values()))}")
