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

"""Reporting helpers shared by pipeline phases and the build executor.

Every phase action reports through these so that the human-readable
activity line and the structured run event always agree.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from c2build.console import warn
from c2build.run import activity

if TYPE_CHECKING:
    from c2build.run import RunContext

EXIT_SUCCESS = 0


def log_phase_event(
    run: RunContext | None,
    label: str,
    message: str,
    event_key: str,
    **event_data: Any,
) -> None:
    """Log a phase activity message and structured event together.

    Args:
        run: RunContext for structured logging (None outside a run).
        label: Phase label for activity logging (e.g., "fetch", "patch").
        message: Human-readable message for activity output.
        event_key: Event key for structured logging (e.g., "phase.skip").
        **event_data: Additional data to include in the log event.
    """
    activity(label, message)
    if run is not None:
        run.log_event({"event": event_key, **event_data})


def phase_error(
    run: RunContext | None,
    label: str,
    message: str,
    exit_code: int,
    *,
    event_key: str | None = None,
    summary_error: str | None = None,
    **event_data: Any,
) -> int:
    """Log a phase error and write summary, returning the exit code.

    1. Log activity message with phase prefix
    2. Log structured event (default key "<label>.error")
    3. Write run summary with failed status
    4. Return exit code

    Returns:
        The exit_code parameter, for use in `return phase_error(...)`.
    """
    activity(label, f"ERROR: {message}")

    if run is not None:
        run.log_event(
            {
                "event": event_key or f"{label}.error",
                "message": message,
                "exit_code": exit_code,
                **event_data,
            }
        )
        run.write_summary(
            status="failed",
            error=summary_error or message,
            exit_code=exit_code,
        )

    return exit_code


def phase_warning(
    run: RunContext | None,
    label: str,
    message: str,
    *,
    event_key: str | None = None,
    **event_data: Any,
) -> None:
    """Log a phase warning without affecting exit status."""
    warn(label, message)

    if run is not None:
        run.log_event(
            {
                "event": event_key or f"{label}.warning",
                "message": message,
                **event_data,
            }
        )
