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

"""External tool validation for c2build.

Validates presence of the executables the pipeline and the build executor
invoke directly (python3, patch, ninja). The object-code cache tool is
optional: its absence only disables caching.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ToolCheck:
    """Result of checking for required external tools."""

    tools: dict[str, Path | None] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)

    def is_complete(self) -> bool:
        """Return True if all required tools are available."""
        return len(self.missing) == 0


REQUIRED_TOOLS = [
    "python3",
    "patch",
    "ninja",
]

INSTALL_INSTRUCTIONS: dict[str, str] = {
    "python3": "apt install python3",
    "patch": "apt install patch",
    "ninja": "apt install ninja-build",
}

TOOL_PACKAGES: dict[str, str] = {
    "python3": "python3",
    "patch": "patch",
    "ninja": "ninja-build",
}


def find_tool(name: str) -> Path | None:
    """Find an executable tool in PATH.

    Returns:
        Path to the tool if found, None otherwise.
    """
    path = shutil.which(name)
    if path:
        return Path(path)
    return None


def check_required_tools() -> ToolCheck:
    """Check for required external tools."""
    result = ToolCheck()

    for tool in REQUIRED_TOOLS:
        path = find_tool(tool)
        result.tools[tool] = path
        if path is None:
            result.missing.append(tool)

    return result


def get_missing_tools_message(missing: list[str]) -> str:
    """Generate a user-friendly message for installing missing tools."""
    if not missing:
        return ""

    lines = ["The following required tools are missing:"]
    for tool in missing:
        instruction = INSTALL_INSTRUCTIONS.get(tool, f"Install {tool}")
        lines.append(f"  - {tool}: {instruction}")

    packages = [TOOL_PACKAGES[t] for t in missing if t in TOOL_PACKAGES]
    if packages:
        lines.append("")
        lines.append("Quick install:")
        lines.append(f"  sudo apt install {' '.join(packages)}")

    return "\n".join(lines)
