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

"""Object-code cache coordination.

GN hard-codes the compiler paths it is given through CC/CXX, so caching is
done with wrapper shims that exec the cache tool with the real compiler
rather than with a compiler launcher setting. The cache configuration is
recomputed on every invocation and never persisted.

An absent cache tool is not an error: the build proceeds uncached and a
warning is printed.
"""

from __future__ import annotations

import logging
import os
import shlex
import stat
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from c2build.build.tools import find_tool
from c2build.core.exceptions import WorkspaceIOError
from c2build.pipeline.errors import log_phase_event, phase_warning
from c2build.run import activity

if TYPE_CHECKING:
    from c2build.build.toolchain import Toolchain
    from c2build.core.context import CachePolicy
    from c2build.core.process import Runner
    from c2build.run import RunContext
    from c2build.workspace.layout import Workspace

logger = logging.getLogger(__name__)

WRAPPED_COMPILERS = ("clang", "clang++")

# Compiler flag variables extended with the toolchain's resource-dir flags.
FLAG_VARIABLES = ("CFLAGS", "CXXFLAGS", "CPPFLAGS")


@dataclass(frozen=True)
class CacheConfig:
    """Compiler cache settings for one invocation."""

    enabled: bool
    cache_dir: Path
    wrapper_dir: Path
    max_size: str = "50G"
    compress: bool = True
    compress_level: int = 6
    tool: Path | None = None


class CacheCoordinator:
    """Configures the compiler cache and derives the compiler environment."""

    def __init__(
        self,
        workspace: Workspace,
        policy: CachePolicy,
        runner: Runner,
        run: RunContext | None = None,
    ) -> None:
        self.workspace = workspace
        self.policy = policy
        self.runner = runner
        self.run = run

    def _disabled(self) -> CacheConfig:
        return CacheConfig(
            enabled=False,
            cache_dir=self.workspace.ccache_dir,
            wrapper_dir=self.workspace.wrapper_dir,
            max_size=self.policy.max_size,
            compress=self.policy.compress,
            compress_level=self.policy.compress_level,
        )

    def configure(self) -> CacheConfig:
        """Return the cache configuration, preparing the cache when usable."""
        if not self.policy.enabled:
            log_phase_event(
                self.run,
                "cache",
                "Compiler cache disabled by configuration",
                "cache.configured",
                enabled=False,
                reason="config",
            )
            return self._disabled()

        tool = find_tool(self.policy.tool)
        if tool is None:
            phase_warning(
                self.run,
                "cache",
                f"{self.policy.tool} not found. Consider installing it for faster rebuilds.",
                event_key="cache.unavailable",
                tool=self.policy.tool,
            )
            return self._disabled()

        config = CacheConfig(
            enabled=True,
            cache_dir=self.workspace.ccache_dir,
            wrapper_dir=self.workspace.wrapper_dir,
            max_size=self.policy.max_size,
            compress=self.policy.compress,
            compress_level=self.policy.compress_level,
            tool=tool,
        )

        try:
            config.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceIOError(
                message=f"Cannot create compiler cache {config.cache_dir}: {e}",
                path=str(config.cache_dir),
            ) from e

        rc, output = self.runner.probe(
            [str(tool), "-M", config.max_size], env=self.cache_env(config)
        )
        if rc != 0:
            phase_warning(
                self.run,
                "cache",
                f"Cannot set cache size to {config.max_size}: {output.strip()}",
                event_key="cache.warning",
            )

        log_phase_event(
            self.run,
            "cache",
            f"Using {tool} (dir={config.cache_dir}, max={config.max_size})",
            "cache.configured",
            enabled=True,
            tool=str(tool),
            cache_dir=str(config.cache_dir),
            max_size=config.max_size,
        )
        self.show_stats(config)
        return config

    def cache_env(self, config: CacheConfig) -> dict[str, str]:
        """Environment variables read by the cache tool itself."""
        if not config.enabled:
            return {}
        env = {
            "USE_CCACHE": "1",
            "CCACHE_DIR": str(config.cache_dir),
            "CCACHE_MAXSIZE": config.max_size,
            "CCACHE_COMPRESSLEVEL": str(config.compress_level),
        }
        if config.compress:
            env["CCACHE_COMPRESS"] = "1"
        else:
            env["CCACHE_NOCOMPRESS"] = "1"
        return env

    def write_wrappers(self, config: CacheConfig, toolchain: Toolchain) -> dict[str, Path]:
        """Write executable compiler shims that exec the cache tool.

        Returns:
            Mapping of compiler name to shim path; empty when caching is off.
        """
        if not config.enabled or config.tool is None:
            return {}

        real = {"clang": toolchain.clang, "clang++": toolchain.clangxx}
        shims: dict[str, Path] = {}
        try:
            config.wrapper_dir.mkdir(parents=True, exist_ok=True)
            for name in WRAPPED_COMPILERS:
                shim = config.wrapper_dir / name
                shim.write_text(
                    "#!/bin/bash\n"
                    f'exec {shlex.quote(str(config.tool))} {shlex.quote(str(real[name]))} "$@"\n'
                )
                mode = shim.stat().st_mode
                shim.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
                shims[name] = shim
        except OSError as e:
            raise WorkspaceIOError(
                message=f"Cannot write compiler wrappers in {config.wrapper_dir}: {e}",
                path=str(config.wrapper_dir),
            ) from e

        logger.debug("Compiler wrappers written: %s", shims)
        return shims

    def compiler_env(
        self,
        config: CacheConfig,
        toolchain: Toolchain,
        base: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        """Compiler-selection environment for GN and ninja.

        Existing CFLAGS/CXXFLAGS/CPPFLAGS from `base` (the process
        environment by default) are extended, not replaced. The returned
        mapping is passed explicitly to the build commands.
        """
        source = os.environ if base is None else base

        if config.enabled:
            cc = config.wrapper_dir / "clang"
            cxx = config.wrapper_dir / "clang++"
        else:
            cc = toolchain.clang
            cxx = toolchain.clangxx

        env = {
            "CC": str(cc),
            "CXX": str(cxx),
            "AR": str(toolchain.ar),
            "NM": str(toolchain.nm),
            "LLVM_BIN": str(toolchain.bin_dir),
        }
        env.update(self.cache_env(config))

        flags = toolchain.compiler_flags()
        for var in FLAG_VARIABLES:
            existing = source.get(var, "").strip()
            env[var] = f"{existing} {flags}".strip()
        return env

    def show_stats(self, config: CacheConfig) -> str | None:
        """Print cache statistics. Failures are reported as warnings."""
        if not config.enabled or config.tool is None:
            return None

        rc, output = self.runner.probe(
            [str(config.tool), "--show-stats"], env=self.cache_env(config)
        )
        if rc != 0:
            phase_warning(
                self.run,
                "cache",
                f"Cache statistics unavailable (exit {rc})",
                event_key="cache.warning",
            )
            return None

        activity("cache", "ccache statistics:")
        for line in output.rstrip().splitlines():
            activity("cache", line)
        if self.run is not None:
            self.run.log_event({"event": "cache.stats", "output": output})
        return output
