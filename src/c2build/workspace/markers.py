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

"""Durable phase markers.

A marker is a sentinel file named after a phase key inside the workspace's
marker directory. Only its presence matters; the YAML body (key and UTC
timestamp) is there for operators inspecting a workspace by hand.

The store keeps no in-memory state: every call goes to the filesystem, so
markers written or removed by another process (or by hand) are always seen.
Markers are created with write-to-temp-then-rename so that a crash while
setting one leaves either no marker or a complete one.
"""

from __future__ import annotations

import datetime
import logging
import os
import re
import tempfile
from pathlib import Path

import yaml

from c2build.core.exceptions import WorkspaceIOError

logger = logging.getLogger(__name__)

# Phase keys double as file names.
MARKER_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

# Temporary files from an interrupted set(); never treated as markers.
TEMP_PREFIX = ".tmp-"


def _validate_key(key: str) -> str:
    if not MARKER_KEY_PATTERN.match(key):
        raise ValueError(f"Invalid marker key: {key!r}")
    return key


class MarkerStore:
    """Presence/absence record of completed phases under one directory."""

    def __init__(self, markers_dir: Path) -> None:
        self.markers_dir = Path(markers_dir)

    def path_for(self, key: str) -> Path:
        return self.markers_dir / _validate_key(key)

    def has(self, key: str) -> bool:
        """Return True if the marker for key is set.

        A missing marker directory means no markers are set.
        """
        return self.path_for(key).is_file()

    def set(self, key: str) -> None:
        """Record that the phase `key` completed. Idempotent."""
        target = self.path_for(key)
        if target.is_file():
            return

        body = yaml.safe_dump(
            {
                "phase": key,
                "completed_utc": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            }
        )
        try:
            self.markers_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, dir=self.markers_dir)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(body)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise WorkspaceIOError(message=f"Cannot write marker {key}: {e}", path=str(target)) from e
        logger.debug("Marker set: %s", target)

    def clear(self, key: str) -> None:
        """Remove the marker for key if present."""
        target = self.path_for(key)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            raise WorkspaceIOError(message=f"Cannot remove marker {key}: {e}", path=str(target)) from e
        logger.debug("Marker cleared: %s", target)

    def clear_all(self) -> None:
        """Remove every marker (and any leftover temporary file)."""
        if not self.markers_dir.is_dir():
            return
        try:
            for entry in self.markers_dir.iterdir():
                if entry.is_file() or entry.is_symlink():
                    entry.unlink()
        except OSError as e:
            raise WorkspaceIOError(
                message=f"Cannot clear markers in {self.markers_dir}: {e}",
                path=str(self.markers_dir),
            ) from e
        logger.debug("All markers cleared in %s", self.markers_dir)

    def present(self) -> list[str]:
        """Return the sorted keys of all markers currently set."""
        if not self.markers_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.markers_dir.iterdir()
            if entry.is_file() and not entry.name.startswith(TEMP_PREFIX)
        )
