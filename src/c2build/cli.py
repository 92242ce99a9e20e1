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

"""CLI application definition for c2build."""

from __future__ import annotations

from typer import Typer

from c2build.commands.build import build
from c2build.commands.clean import clean
from c2build.commands.status import status

app: Typer = Typer(
    name="c2build",
    help="An incremental build orchestrator for the C2 browser.",
    add_completion=False,
)

# Register commands
app.command(name="build")(build)
app.command(name="clean")(clean)
app.command(name="status")(status)
