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

"""Build execution: GN bootstrap, build file generation and ninja.

GN is bootstrapped once (presence of the binary is the only check) while
`gn gen` runs on every invocation so that changes to args.gn are picked
up. Ninja's exit status is returned verbatim; nothing is retried.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from c2build.core.exceptions import ExternalCommandError, WorkspaceIOError
from c2build.pipeline.errors import log_phase_event
from c2build.run import activity
from c2build.units import format_elapsed

if TYPE_CHECKING:
    from c2build.build.ccache import CacheConfig
    from c2build.core.process import Runner
    from c2build.run import RunContext
    from c2build.workspace.layout import Workspace

logger = logging.getLogger(__name__)

# The source tree bundles its own Node.js location; the system one is used.
NODE_LINK = Path("third_party/node/linux/node-linux-x64/bin/node")
GN_BOOTSTRAP = Path("tools/gn/bootstrap/bootstrap.py")


@dataclass
class BuildOutcome:
    """Result of one ninja run."""

    exit_code: int
    elapsed: float
    targets: tuple[str, ...] = ()
    jobs: int = 1
    command: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class BuildExecutor:
    """Runs GN and ninja inside the source tree."""

    def __init__(
        self,
        workspace: Workspace,
        runner: Runner,
        run: RunContext | None = None,
        node_binary: str = "/usr/bin/node",
    ) -> None:
        self.workspace = workspace
        self.runner = runner
        self.run = run
        self.node_binary = node_binary

    @property
    def _out_rel(self) -> str:
        return os.path.relpath(self.workspace.output_dir, self.workspace.src_dir)

    def link_node(self) -> None:
        link = self.workspace.src_dir / NODE_LINK
        if link.is_symlink():
            return
        if link.exists():
            logger.debug("%s exists and is not a link; leaving it", link)
            return
        activity("build", "Linking system Node.js...")
        try:
            link.parent.mkdir(parents=True, exist_ok=True)
            link.symlink_to(self.node_binary)
        except OSError as e:
            raise WorkspaceIOError(message=f"Cannot link {link}: {e}", path=str(link)) from e

    def bootstrap_gn(self, env: Mapping[str, str]) -> bool:
        """Build the GN binary if absent. Returns True if it was built."""
        if self.workspace.gn_binary.is_file():
            return False
        activity("build", "Building GN...")
        src = self.workspace.src_dir
        self.runner.run(
            "gn_bootstrap",
            [
                str(src / GN_BOOTSTRAP),
                "-o",
                os.path.join(self._out_rel, "gn"),
                "--skip-generate-buildfiles",
            ],
            cwd=src,
            env=env,
        )
        return True

    def generate(self, env: Mapping[str, str]) -> None:
        activity("build", "Generating build files...")
        self.runner.run(
            "gn_gen",
            [str(self.workspace.gn_binary), "gen", self._out_rel, "--fail-on-unused-args"],
            cwd=self.workspace.src_dir,
            env=env,
        )

    def invoke(
        self,
        cache_config: CacheConfig,
        env: Mapping[str, str],
        jobs: int,
        targets: Sequence[str],
    ) -> BuildOutcome:
        """Prepare GN output and run ninja for the given targets.

        Raises:
            ExternalCommandError: GN bootstrap or generation failed.
        """
        self.link_node()
        self.bootstrap_gn(env)
        self.generate(env)

        cmd = ["ninja", "-C", self._out_rel, f"-j{jobs}", *targets]
        activity("build", f"Building {' '.join(targets)} with {jobs} jobs (incremental build)...")
        if self.run is not None:
            self.run.log_event(
                {
                    "event": "build.start",
                    "jobs": jobs,
                    "targets": list(targets),
                    "cache": cache_config.enabled,
                }
            )

        start = time.monotonic()
        try:
            self.runner.run("ninja", cmd, cwd=self.workspace.src_dir, env=env)
            exit_code = 0
        except ExternalCommandError as e:
            exit_code = e.exit_code
        elapsed = time.monotonic() - start

        outcome = BuildOutcome(
            exit_code=exit_code,
            elapsed=elapsed,
            targets=tuple(targets),
            jobs=jobs,
            command=cmd,
        )
        status = "completed" if outcome.success else f"failed (exit {exit_code})"
        log_phase_event(
            self.run,
            "build",
            f"Build {status} in {format_elapsed(elapsed)}",
            "build.complete",
            exit_code=exit_code,
            elapsed=round(elapsed, 3),
        )
        return outcome
