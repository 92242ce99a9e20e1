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

"""Orchestration of one incremental build.

    ensure utilities repo -> [reset] -> ensure layout -> phase pipeline
        -> compiler cache -> GN + ninja -> statistics

Errors raised outside the pipeline (configuration, missing tools, GN
failures) propagate as C2BuildError; a failing phase is reported through
the returned BuildReport with that phase's exit status.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from c2build.build.ccache import CacheConfig, CacheCoordinator
from c2build.build.executor import BuildExecutor, BuildOutcome
from c2build.build.toolchain import Toolchain
from c2build.build.tools import check_required_tools, get_missing_tools_message
from c2build.console import header, usage_table
from c2build.core.context import BuildRequest, BuildSettings, resolve_jobs
from c2build.core.exceptions import ToolMissingError
from c2build.core.process import CommandRunner, Runner
from c2build.pipeline import (
    EXIT_SUCCESS,
    Phase,
    PhaseContext,
    PhasePipeline,
    PipelineResult,
    default_phases,
    log_phase_event,
)
from c2build.run import RunContext, activity
from c2build.units import format_size
from c2build.workspace.layout import Workspace, WorkspaceManager
from c2build.workspace.markers import MarkerStore
from c2build.workspace.repo import ensure_main_repo


@dataclass
class BuildReport:
    """Final status of a build request."""

    exit_code: int
    pipeline: PipelineResult | None = None
    outcome: BuildOutcome | None = None
    cache: CacheConfig | None = None
    message: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == EXIT_SUCCESS


class Orchestrator:
    """Runs the preparation pipeline and the build for one workspace."""

    def __init__(
        self,
        request: BuildRequest,
        settings: BuildSettings,
        root: Path,
        runner: Runner | None = None,
        run: RunContext | None = None,
        phases: Sequence[Phase] | None = None,
        verify_tools: bool = True,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.request = request
        self.settings = settings
        self.run = run
        self.runner = runner if runner is not None else CommandRunner(run)
        self.verify_tools = verify_tools
        self.environ = environ
        self.workspace = Workspace.from_root(root, settings.layout)
        self.markers = MarkerStore(self.workspace.markers_dir)
        self.manager = WorkspaceManager(self.workspace, self.markers)
        self.pipeline = PhasePipeline(phases if phases is not None else default_phases())

    def phase_context(self) -> PhaseContext:
        return PhaseContext(
            workspace=self.workspace,
            manager=self.manager,
            markers=self.markers,
            settings=self.settings,
            request=self.request,
            runner=self.runner,
            run=self.run,
        )

    def check_tools(self) -> None:
        check = check_required_tools()
        if not check.is_complete():
            raise ToolMissingError(
                message=get_missing_tools_message(check.missing),
                missing=check.missing,
            )

    def reset(self) -> None:
        """Reset the workspace, keeping caches unless a purge was requested."""
        keep = not self.request.purge_caches
        log_phase_event(
            self.run,
            "clean",
            "Clean build requested. Removing build artifacts...",
            "workspace.reset",
            purge_caches=self.request.purge_caches,
        )
        report = self.manager.reset(
            preserve_download_cache=keep,
            preserve_compiler_cache=keep,
        )
        for path in report.preserved:
            activity("clean", f"Preserving {path}")
        if self.run is not None:
            self.run.log_event(
                {
                    "event": "workspace.reset.complete",
                    "removed": [str(p) for p in report.removed],
                    "preserved": [str(p) for p in report.preserved],
                }
            )

    def prepare(self) -> PipelineResult:
        """Bring the source tree to a buildable state."""
        ensure_main_repo(self.workspace.root, self.workspace.main_repo, self.run)
        if self.request.clean:
            self.reset()
        self.manager.ensure_layout()

        header("Preparing source tree")
        return self.pipeline.run(self.phase_context())

    def report_disk_usage(self) -> None:
        usage = self.manager.disk_usage()
        usage_table("Disk usage", {name: format_size(size) for name, size in usage.items()})
        if self.run is not None:
            self.run.log_event({"event": "workspace.disk_usage", **usage})

    def build(self) -> BuildReport:
        """Execute the full request and return its final status."""
        if self.verify_tools:
            self.check_tools()
        # Validated before any phase runs.
        jobs = resolve_jobs(self.request, self.settings, self.environ)

        result = self.prepare()
        if not result.success:
            return BuildReport(
                exit_code=result.exit_code,
                pipeline=result,
                message=f"Phase {result.failed_phase} failed: {result.message}",
            )

        header("Building")
        coordinator = CacheCoordinator(self.workspace, self.settings.cache, self.runner, self.run)
        cache = coordinator.configure()
        toolchain = Toolchain.locate(
            self.workspace.src_dir, self.settings.toolchain_dir, self.runner, self.run
        )
        coordinator.write_wrappers(cache, toolchain)
        env = coordinator.compiler_env(cache, toolchain, base=self.environ)

        executor = BuildExecutor(
            self.workspace, self.runner, self.run, node_binary=self.settings.node_binary
        )
        outcome = executor.invoke(cache, env, jobs, self.settings.targets)

        coordinator.show_stats(cache)
        self.report_disk_usage()

        if outcome.success:
            message = "Build completed"
        else:
            message = f"ninja exited with status {outcome.exit_code}"
        return BuildReport(
            exit_code=outcome.exit_code,
            pipeline=result,
            outcome=outcome,
            cache=cache,
            message=message,
        )
