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

"""Implementation of `c2build build` command."""

from __future__ import annotations

import sys
import traceback
from pathlib import Path
from typing import Any

import typer

from c2build.config import load_config
from c2build.core.context import BuildRequest, BuildSettings, resolve_project_root
from c2build.core.exceptions import SIGINT_EXIT_CODE, C2BuildError
from c2build.core.process import Runner
from c2build.orchestrator import Orchestrator
from c2build.pipeline import EXIT_SUCCESS, phase_error
from c2build.run import RunContext, activity
from c2build.units import format_elapsed

EXIT_UNEXPECTED = 1


def _stdin_is_tty() -> bool:
    try:
        return sys.stdin is not None and sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


def run_build(
    request: BuildRequest,
    yes: bool = False,
    runner: Runner | None = None,
    verify_tools: bool = True,
    cfg: dict[str, Any] | None = None,
) -> int:
    """Run a build request and return its exit code (without sys.exit)."""
    try:
        cfg = cfg if cfg is not None else load_config()
        settings = BuildSettings.from_config(cfg)
        root = resolve_project_root(request, cfg)
    except C2BuildError as e:
        activity("error", e.message)
        return e.exit_code

    # Prompt before the run context captures stdout.
    if request.clean and not yes:
        if not _stdin_is_tty():
            activity("build", "stdin is not a terminal; cleaning without confirmation")
        elif not typer.confirm(f"Remove the source tree and markers under {root}?"):
            activity("build", "Aborted")
            return EXIT_SUCCESS

    with RunContext("build", cfg) as run:
        run.log_event(
            {
                "event": "build.request",
                "root": str(root),
                "clean": request.clean,
                "clone": request.clone,
                "purge_caches": request.purge_caches,
                "jobs": request.jobs,
            }
        )
        try:
            orchestrator = Orchestrator(
                request,
                settings,
                root,
                runner=runner,
                run=run,
                verify_tools=verify_tools,
            )
            report = orchestrator.build()
        except C2BuildError as e:
            return phase_error(run, "error", e.message, e.exit_code, event_key="build.error")
        except KeyboardInterrupt:
            return phase_error(run, "build", "Interrupted", SIGINT_EXIT_CODE, event_key="build.interrupted")
        except Exception as e:
            activity("report", f"Build failed: {e}")
            for line in traceback.format_exc().splitlines():
                activity("report", f"  {line}")
            run.log_event(
                {"event": "build.exception", "error": str(e), "traceback": traceback.format_exc()}
            )
            return phase_error(run, "report", str(e) or type(e).__name__, EXIT_UNEXPECTED)

        if report.pipeline is not None and not report.pipeline.success:
            # The failing phase has already been reported.
            return report.exit_code
        if not report.success:
            return phase_error(run, "build", report.message, report.exit_code, event_key="build.failed")

        elapsed = report.outcome.elapsed if report.outcome else 0.0
        activity("report", f"Build completed in {format_elapsed(elapsed)}")
        run.write_summary(status="success", exit_code=EXIT_SUCCESS, elapsed=round(elapsed, 3))
        return EXIT_SUCCESS


def build(
    clean: bool = typer.Option(False, "-c", "--clean", help="Remove source tree and markers before building (caches kept)"),
    clone: bool = typer.Option(False, "-C", "--clone", help="Acquire sources with a direct checkout instead of archives"),
    purge_caches: bool = typer.Option(False, "--purge-caches", help="With --clean, also remove download and compiler caches"),
    jobs: int | None = typer.Option(None, "-j", "--jobs", help="Ninja worker count (default: NINJA_JOBS, config, CPU count)"),
    root: str = typer.Option("", "-r", "--root", help="Project root (default: config paths.project_root, then cwd)"),
    no_spinner: bool = typer.Option(False, "-q", "--no-spinner", help="Disable spinner output (quiet)"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmations"),
) -> None:
    """Prepare the source tree incrementally and build the browser.

    Every preparation phase whose marker is present is skipped; GN flags are
    rewritten and build files regenerated on every run.

    Exit codes:
      0 - Success
      1 - Unexpected error
      2 - Configuration error
      3 - Workspace I/O error
      4 - Source tree invalid after fetch
      5 - Required tools missing
      other - Exit status of the failing command (e.g. ninja)
    """
    request = BuildRequest(
        project_root=Path(root) if root else None,
        clean=clean,
        clone=clone,
        purge_caches=purge_caches,
        jobs=jobs,
        no_spinner=no_spinner,
    )
    sys.exit(run_build(request, yes=yes))
