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

"""External command execution.

Every collaborator (fetch and patch utilities, toolchain scripts, GN, ninja)
is an opaque executable with an exit-code contract. CommandRunner is the
single seam through which they are invoked, so tests can substitute a fake
that records commands and returns scripted exit statuses.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from c2build.core.exceptions import ExternalCommandError, normalize_exit_code

if TYPE_CHECKING:
    from c2build.run import RunContext

logger = logging.getLogger(__name__)


def run_command(
    cmd: Sequence[str],
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    capture: bool = True,
) -> tuple[int, str, str]:
    """Run a command and return exit code, stdout, stderr.

    Args:
        cmd: Command and arguments to run.
        cwd: Working directory for the command.
        env: Environment variables (merged with current env).
        capture: If True, capture output; otherwise inherit stdio.

    Returns:
        Tuple of (exit_code, stdout, stderr). A missing executable is
        reported as exit code 127, as a shell would.
    """
    run_env = os.environ.copy()
    if env:
        run_env.update(env)

    try:
        if capture:
            result = subprocess.run(
                list(cmd),
                cwd=cwd,
                env=run_env,
                capture_output=True,
                text=True,
            )
            return result.returncode, result.stdout, result.stderr
        result = subprocess.run(list(cmd), cwd=cwd, env=run_env)
        return result.returncode, "", ""
    except FileNotFoundError as e:
        return 127, "", str(e)
    except PermissionError as e:
        return 126, "", str(e)


class Runner(Protocol):
    """What phases and the build executor need from a command runner."""

    def run(
        self,
        phase: str,
        cmd: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None: ...

    def probe(
        self,
        cmd: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> tuple[int, str]: ...


class CommandRunner:
    """Runs collaborators synchronously with inherited stdio.

    `run` raises ExternalCommandError on a nonzero exit; `probe` captures
    output and returns the status for checks whose failure is expected.
    """

    def __init__(self, run: RunContext | None = None) -> None:
        self._run = run

    def _event(self, payload: dict) -> None:
        if self._run is not None:
            self._run.log_event(payload)

    def run(
        self,
        phase: str,
        cmd: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        argv = [str(c) for c in cmd]
        logger.debug("[%s] running %s (cwd=%s)", phase, argv, cwd)
        self._event({"event": "command.run", "phase": phase, "cmd": argv, "cwd": str(cwd or "")})
        returncode, _, stderr = run_command(argv, cwd=cwd, env=env, capture=False)
        self._event({"event": "command.exit", "phase": phase, "cmd": argv, "exit_code": returncode})
        if returncode != 0:
            detail = f": {stderr.strip()}" if stderr else ""
            raise ExternalCommandError(
                message=f"Command failed: {' '.join(argv)}{detail}",
                exit_code=normalize_exit_code(returncode),
                phase=phase,
                command=argv,
            )

    def probe(
        self,
        cmd: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> tuple[int, str]:
        argv = [str(c) for c in cmd]
        returncode, stdout, stderr = run_command(argv, cwd=cwd, env=env, capture=True)
        logger.debug("probe %s -> %d", argv, returncode)
        return returncode, stdout + stderr
