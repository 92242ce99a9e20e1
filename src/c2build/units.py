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

"""Size and elapsed-time parsing and formatting helpers."""

from __future__ import annotations

import re

# ccache-style size strings: number followed by an optional binary unit.
SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*([kmgt]?)i?b?$", re.IGNORECASE)

UNIT_BYTES: dict[str, int] = {
    "": 1,
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
    "t": 1024**4,
}


def parse_size(value: str) -> int:
    """Parse a size string into bytes.

    Supported formats:
        512     -> 512 bytes
        100M    -> 100 MiB
        50G     -> 50 GiB
        1.5T    -> 1.5 TiB

    Raises:
        ValueError: If the format is invalid.
    """
    match = SIZE_PATTERN.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid size format: '{value}'. Expected format like '50G', '500M'.")

    amount = float(match.group(1))
    unit = match.group(2).lower()
    return int(amount * UNIT_BYTES[unit])


def format_size(size_bytes: int) -> str:
    """Format a size in bytes as a human-readable string."""
    if size_bytes >= 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
    elif size_bytes >= 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    elif size_bytes >= 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes} bytes"


def format_elapsed(seconds: float) -> str:
    """Format an elapsed wall-clock duration as minutes and seconds."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes} minutes and {secs} seconds"
