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

"""The incremental phase state machine.

For each phase, in order:

    skip predicate holds   PENDING -> COMPLETED (no action)
    otherwise              PENDING -> RUNNING -> COMPLETED | FAILED

A marker is written only after the action returned. The first FAILED
phase halts the walk; later phases stay PENDING and their markers are
left untouched.
"""

from __future__ import annotations

import time
from collections.abc import Sequence

from c2build.console import activity_spinner
from c2build.core.exceptions import C2BuildError, WorkspaceIOError
from c2build.pipeline.errors import log_phase_event, phase_error
from c2build.pipeline.types import (
    Phase,
    PhaseContext,
    PhaseRecord,
    PhaseState,
    PipelineResult,
)


class PhasePipeline:
    """Walks an ordered list of phases against one workspace."""

    def __init__(self, phases: Sequence[Phase]) -> None:
        keys = [p.key for p in phases]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"Duplicate phase keys: {', '.join(duplicates)}")
        self.phases: list[Phase] = list(phases)

    @property
    def keys(self) -> list[str]:
        return [p.key for p in self.phases]

    def should_skip(self, phase: Phase, ctx: PhaseContext) -> bool:
        if phase.always_run:
            return False
        if phase.skip_when is not None:
            return phase.skip_when(ctx)
        return ctx.markers.has(phase.key)

    def run(self, ctx: PhaseContext) -> PipelineResult:
        records = [PhaseRecord(key=p.key) for p in self.phases]

        for index, phase in enumerate(self.phases):
            record = records[index]
            try:
                if self.should_skip(phase, ctx):
                    self._skip(phase, record, ctx)
                    continue
                self._execute(index, phase, record, ctx)
            except C2BuildError as e:
                return self._fail(phase, record, records, ctx, e)
            except OSError as e:
                err = WorkspaceIOError(
                    message=f"{phase.description} failed: {e}",
                    path=str(e.filename or ""),
                )
                return self._fail(phase, record, records, ctx, err)

        return PipelineResult.ok(records, message="All phases completed")

    def _skip(self, phase: Phase, record: PhaseRecord, ctx: PhaseContext) -> None:
        reason = "predicate" if phase.skip_when is not None else "marker"
        if phase.skip_when is not None:
            # Post-condition holds on disk; record it.
            ctx.markers.set(phase.key)
        record.state = PhaseState.COMPLETED
        record.skipped = True
        log_phase_event(
            ctx.run,
            phase.label,
            f"{phase.description}: already done, skipping",
            "phase.skip",
            phase=phase.key,
            reason=reason,
        )

    def _execute(self, index: int, phase: Phase, record: PhaseRecord, ctx: PhaseContext) -> None:
        record.state = PhaseState.RUNNING
        if phase.invalidates_downstream:
            for later in self.phases[index:]:
                ctx.markers.clear(later.key)

        if ctx.run is not None:
            ctx.run.log_event({"event": "phase.start", "phase": phase.key})

        start = time.monotonic()
        try:
            with activity_spinner(
                phase.label,
                phase.description,
                disable=phase.streams_output or not ctx.spinner,
            ):
                phase.action(ctx)
        finally:
            record.elapsed = time.monotonic() - start

        ctx.markers.set(phase.key)
        record.state = PhaseState.COMPLETED
        if ctx.run is not None:
            ctx.run.log_event(
                {"event": "phase.complete", "phase": phase.key, "elapsed": round(record.elapsed, 3)}
            )

    def _fail(
        self,
        phase: Phase,
        record: PhaseRecord,
        records: list[PhaseRecord],
        ctx: PhaseContext,
        error: C2BuildError,
    ) -> PipelineResult:
        record.state = PhaseState.FAILED
        record.exit_code = error.exit_code
        record.message = error.message
        phase_error(
            ctx.run,
            phase.label,
            f"{phase.key} failed (exit {error.exit_code}): {error.message}",
            error.exit_code,
            event_key="phase.error",
            phase=phase.key,
        )
        return PipelineResult.fail(phase.key, error.exit_code, error.message, records)
