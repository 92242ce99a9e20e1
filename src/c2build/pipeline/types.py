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

"""Type definitions for the phase pipeline.

Phases are data: an ordered list of Phase descriptors, each naming its
marker key, skip behaviour and action. The engine walks the list; tests
substitute fake actions and predicates per phase.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from c2build.core.context import BuildRequest, BuildSettings
    from c2build.core.process import Runner
    from c2build.run import RunContext
    from c2build.workspace.layout import Workspace, WorkspaceManager
    from c2build.workspace.markers import MarkerStore


class PhaseState(Enum):
    """Per-invocation state of a phase. Only markers persist across runs."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PhaseContext:
    """Everything a phase action or predicate may use.

    Attributes:
        workspace: Resolved workspace paths.
        manager: Workspace manager (validity predicate, source wipe).
        markers: Marker store of the workspace.
        settings: Settings from the configuration file.
        request: CLI request of this invocation.
        runner: Seam for external commands.
        run: RunContext for structured logging, if any.
    """

    workspace: Workspace
    manager: WorkspaceManager
    markers: MarkerStore
    settings: BuildSettings
    request: BuildRequest
    runner: Runner
    run: RunContext | None = None

    @property
    def spinner(self) -> bool:
        return self.settings.spinner and not self.request.no_spinner


@dataclass(frozen=True)
class Phase:
    """Descriptor of one ordered unit of preparation work.

    Attributes:
        key: Stable identifier, also the marker key.
        label: Short label for activity output (e.g., "fetch").
        description: Human-readable description of the action.
        action: Performs the work; raises C2BuildError on failure.
        skip_when: Structural skip predicate replacing the marker check.
            When it holds the marker is recorded without running the action.
        always_run: No skip predicate at all; the action runs every time.
        invalidates_downstream: Running this phase clears its own marker and
            those of every later phase before the action starts.
        streams_output: The action streams external command output to the
            terminal, so no spinner is drawn.
    """

    key: str
    label: str
    description: str
    action: Callable[[PhaseContext], None]
    skip_when: Callable[[PhaseContext], bool] | None = None
    always_run: bool = False
    invalidates_downstream: bool = False
    streams_output: bool = True


@dataclass
class PhaseRecord:
    """What happened to one phase during this invocation."""

    key: str
    state: PhaseState = PhaseState.PENDING
    skipped: bool = False
    exit_code: int = 0
    message: str = ""
    elapsed: float = 0.0


@dataclass
class PipelineResult:
    """Result of walking the pipeline.

    Attributes:
        success: Whether every phase reached COMPLETED.
        exit_code: Exit status of the failing phase (0 on success).
        failed_phase: Key of the phase that failed, if any.
        message: Human-readable status message.
        records: One record per phase, in pipeline order.
    """

    success: bool
    exit_code: int = 0
    failed_phase: str | None = None
    message: str = ""
    records: list[PhaseRecord] = field(default_factory=list)

    @classmethod
    def ok(cls, records: list[PhaseRecord], message: str = "") -> PipelineResult:
        return cls(success=True, exit_code=0, message=message, records=records)

    @classmethod
    def fail(
        cls, phase: str, exit_code: int, message: str, records: list[PhaseRecord]
    ) -> PipelineResult:
        return cls(
            success=False,
            exit_code=exit_code,
            failed_phase=phase,
            message=message,
            records=records,
        )

    def executed(self) -> list[str]:
        """Keys of phases whose action ran (successfully or not)."""
        return [
            r.key
            for r in self.records
            if not r.skipped and r.state in (PhaseState.COMPLETED, PhaseState.FAILED)
        ]

    def skipped(self) -> list[str]:
        return [r.key for r in self.records if r.skipped]

    def state_of(self, key: str) -> PhaseState:
        for record in self.records:
            if record.key == key:
                return record.state
        raise KeyError(key)
