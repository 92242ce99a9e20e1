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

"""c2build-specific exception types with associated exit codes."""

from __future__ import annotations

import signal
from dataclasses import dataclass, field


@dataclass
class C2BuildError(Exception):
    """Base class for c2build errors with an exit code."""

    message: str = "An error occurred"
    exit_code: int = field(default=1)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.message} (exit {self.exit_code})"


@dataclass
class ConfigurationError(C2BuildError):
    """Configuration could not be loaded or materialised."""

    exit_code: int = field(default=2)


@dataclass
class WorkspaceIOError(C2BuildError):
    """A workspace filesystem operation failed (directories, markers)."""

    exit_code: int = field(default=3)
    path: str = ""


@dataclass
class ValidationError(C2BuildError):
    """The source tree is structurally invalid after a fetch."""

    exit_code: int = field(default=4)


@dataclass
class ToolMissingError(C2BuildError):
    """A required executable is not available on PATH."""

    exit_code: int = field(default=5)
    missing: list[str] = field(default_factory=list)


@dataclass
class ExternalCommandError(C2BuildError):
    """An external collaborator exited with a nonzero status.

    The exit code is the command's own status so that it can be propagated
    to the caller unchanged. Processes killed by a signal report a negative
    return code; those are mapped to the shell convention of 128 + signal.
    """

    phase: str = ""
    command: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.exit_code = normalize_exit_code(self.exit_code)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.message} [phase {self.phase}] (exit {self.exit_code})"


def normalize_exit_code(returncode: int) -> int:
    """Map a subprocess return code to a process exit status."""
    if returncode < 0:
        return 128 + abs(returncode)
    return returncode


SIGINT_EXIT_CODE = 128 + signal.SIGINT.value
