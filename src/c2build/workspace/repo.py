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

"""Utilities repository checkout.

The fetch, prune, patch and substitution tools all live in the utilities
repository (a git submodule of the project). When it has not been checked
out yet, initialise the submodules before any phase needs them.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import git

from c2build.core.exceptions import ConfigurationError
from c2build.run import activity

if TYPE_CHECKING:
    from c2build.run import RunContext


def is_checked_out(main_repo: Path) -> bool:
    """Return True if the utilities repository directory has any content."""
    return main_repo.is_dir() and any(main_repo.iterdir())


def ensure_main_repo(root: Path, main_repo: Path, run: RunContext | None = None) -> None:
    """Make sure the utilities repository is present.

    Raises:
        ConfigurationError: the repository is missing and the project root is
            not a git repository whose submodules could provide it.
    """
    if is_checked_out(main_repo):
        return

    try:
        repo = git.Repo(root)
    except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
        raise ConfigurationError(
            message=f"Utilities repository {main_repo} is missing and {root} is not a git repository"
        ) from e

    activity("setup", "Initializing git submodules...")
    if run is not None:
        run.log_event({"event": "submodule.update", "root": str(root)})
    try:
        repo.git.submodule("update", "--init", "--recursive")
    except git.GitCommandError as e:
        if run is not None:
            run.log_event({"event": "submodule.error", "error": str(e)})
        raise ConfigurationError(message=f"Failed to initialize git submodules: {e}") from e

    if not is_checked_out(main_repo):
        raise ConfigurationError(
            message=f"Utilities repository {main_repo} is still missing after submodule update"
        )
