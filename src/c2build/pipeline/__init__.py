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

"""Phase pipeline for c2build.

Provides the marker-gated state machine that prepares a source tree for
compilation, and the concrete preparation phases.
"""

# Error handling and reporting
from c2build.pipeline.errors import (
    EXIT_SUCCESS,
    log_phase_event,
    phase_error,
    phase_warning,
)

# State machine
from c2build.pipeline.engine import PhasePipeline

# Phase definitions
from c2build.pipeline.phases import (
    DOMAIN_SUBSTITUTION_APPLIED,
    GN_ARGS_UPDATED,
    HOSTS_FIXED,
    LOCAL_PATCHES_APPLIED,
    PATCHES_APPLIED,
    PHASE_KEYS,
    SOURCE_FETCHED,
    TOOLS_SETUP,
    default_phases,
)

# Types
from c2build.pipeline.types import (
    Phase,
    PhaseContext,
    PhaseRecord,
    PhaseState,
    PipelineResult,
)

__all__ = [
    "DOMAIN_SUBSTITUTION_APPLIED",
    "EXIT_SUCCESS",
    "GN_ARGS_UPDATED",
    "HOSTS_FIXED",
    "LOCAL_PATCHES_APPLIED",
    "PATCHES_APPLIED",
    "PHASE_KEYS",
    "SOURCE_FETCHED",
    "TOOLS_SETUP",
    "Phase",
    "PhaseContext",
    "PhasePipeline",
    "PhaseRecord",
    "PhaseState",
    "PipelineResult",
    "default_phases",
    "log_phase_event",
    "phase_error",
    "phase_warning",
]
