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

"""Prebuilt clang toolchain shipped inside the source tree."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from c2build.pipeline.errors import phase_warning

if TYPE_CHECKING:
    from c2build.core.process import Runner
    from c2build.run import RunContext


@dataclass(frozen=True)
class Toolchain:
    """Paths of the prebuilt LLVM binaries and clang's resource directory."""

    bin_dir: Path
    resource_dir: str | None = None

    @property
    def clang(self) -> Path:
        return self.bin_dir / "clang"

    @property
    def clangxx(self) -> Path:
        return self.bin_dir / "clang++"

    @property
    def ar(self) -> Path:
        return self.bin_dir / "llvm-ar"

    @property
    def nm(self) -> Path:
        return self.bin_dir / "llvm-nm"

    def compiler_flags(self) -> str:
        """Flags pointing the compiler driver at the prebuilt toolchain."""
        if not self.resource_dir:
            return f"-B{self.bin_dir}"
        return f"-resource-dir={self.resource_dir} -B{self.bin_dir}"

    @classmethod
    def locate(
        cls,
        src_dir: Path,
        toolchain_dir: str,
        runner: Runner,
        run: RunContext | None = None,
    ) -> Toolchain:
        """Find the toolchain under the source tree and ask clang for its resource dir."""
        bin_dir = Path(src_dir) / toolchain_dir
        rc, output = runner.probe([str(bin_dir / "clang"), "--print-resource-dir"])
        lines = output.strip().splitlines()
        if rc != 0 or not lines:
            phase_warning(
                run,
                "toolchain",
                f"Cannot determine clang resource directory (exit {rc}); "
                "compiler flags will not pin it",
                event_key="toolchain.warning",
            )
            return cls(bin_dir=bin_dir)
        return cls(bin_dir=bin_dir, resource_dir=lines[0].strip())
