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

"""Context objects for c2build operations.

Immutable configs (frozen=True):
- BuildRequest: CLI inputs for one orchestrator invocation
- LayoutNames: directory and file names that make up a workspace
- CachePolicy: object-code cache policy
- BuildSettings: everything derived from the YAML configuration

Resolution helpers turn these into concrete values (project root, worker
count) and raise ConfigurationError on invalid input.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from c2build.core.exceptions import ConfigurationError
from c2build.units import parse_size

JOBS_ENV_VAR = "NINJA_JOBS"


@dataclass(frozen=True)
class BuildRequest:
    """Immutable request containing CLI inputs for a build.

    Attributes:
        project_root: --root option, or None to use config/cwd.
        clean: --clean flag; reset the workspace before the pipeline.
        clone: --clone flag; acquire sources with a direct checkout.
        purge_caches: --purge-caches; also drop download and compiler caches.
        jobs: --jobs option; overrides NINJA_JOBS and config.
        no_spinner: --no-spinner flag.
    """

    project_root: Path | None = None
    clean: bool = False
    clone: bool = False
    purge_caches: bool = False
    jobs: int | None = None
    no_spinner: bool = False


@dataclass(frozen=True)
class LayoutNames:
    """Names of the directories and files that make up a workspace."""

    main_repo: str = "desktop"
    build_dir: str = "build"
    src_dir: str = "src"
    markers_dir: str = ".markers"
    download_cache: str = "download_cache"
    ccache_dir: str = ".ccache"
    wrapper_dir: str = ".ccache-wrappers"
    domsub_cache: str = "domsubcache.tar.gz"
    output_dir: str = "out/Default"


@dataclass(frozen=True)
class CachePolicy:
    """Object-code cache policy."""

    enabled: bool = True
    tool: str = "ccache"
    max_size: str = "50G"
    compress: bool = True
    compress_level: int = 6


@dataclass(frozen=True)
class BuildSettings:
    """Settings derived from the merged YAML configuration.

    Relative paths in `source` are relative to the utilities repository;
    `local_patches` and `flags_file` (for the project override) are relative
    to the project root; `host_files` and `toolchain_dir` to the source tree.
    """

    layout: LayoutNames = field(default_factory=LayoutNames)
    downloads_ini: str = "downloads.ini"
    sysroot_arch: str = "amd64"
    pruning_list: str = "pruning.list"
    patches_dir: str = "patches"
    domain_regex: str = "domain_regex.list"
    domain_substitution: str = "domain_substitution.list"
    flags_file: str = "flags.gn"
    local_patches: tuple[str, ...] = ()
    host_replacements: tuple[tuple[str, str], ...] = ()
    host_files: tuple[str, ...] = ()
    cache: CachePolicy = field(default_factory=CachePolicy)
    targets: tuple[str, ...] = ("chrome", "chrome_sandbox", "chromedriver")
    jobs: int | None = None
    toolchain_dir: str = "third_party/llvm-build/Release+Asserts/bin"
    node_binary: str = "/usr/bin/node"
    spinner: bool = True

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> BuildSettings:
        """Build settings from a merged configuration mapping."""
        layout_cfg = dict(cfg.get("layout", {}))
        unknown = set(layout_cfg) - set(LayoutNames.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(message=f"Unknown layout keys: {', '.join(sorted(unknown))}")
        layout = LayoutNames(**{k: str(v) for k, v in layout_cfg.items()})

        source = cfg.get("source", {})
        hosts = cfg.get("hosts", {})
        cache_cfg = cfg.get("cache", {})
        build_cfg = cfg.get("build", {})

        replacements = hosts.get("replacements") or {}
        if not isinstance(replacements, Mapping):
            raise ConfigurationError(message="hosts.replacements must be a mapping")

        max_size = str(cache_cfg.get("max_size", "50G"))
        try:
            parse_size(max_size)
        except ValueError as e:
            raise ConfigurationError(message=f"cache.max_size: {e}") from e

        try:
            compress_level = int(cache_cfg.get("compress_level", 6))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(message="cache.compress_level must be an integer") from e

        jobs = build_cfg.get("jobs")
        if jobs is not None:
            jobs = _positive_int(jobs, "build.jobs")

        return cls(
            layout=layout,
            downloads_ini=str(source.get("downloads_ini", "downloads.ini")),
            sysroot_arch=str(source.get("sysroot_arch", "amd64")),
            pruning_list=str(source.get("pruning_list", "pruning.list")),
            patches_dir=str(source.get("patches_dir", "patches")),
            domain_regex=str(source.get("domain_regex", "domain_regex.list")),
            domain_substitution=str(source.get("domain_substitution", "domain_substitution.list")),
            flags_file=str(source.get("flags_file", "flags.gn")),
            local_patches=tuple(str(p) for p in cfg.get("patches", {}).get("local") or []),
            host_replacements=tuple((str(k), str(v)) for k, v in replacements.items()),
            host_files=tuple(str(f) for f in hosts.get("files") or []),
            cache=CachePolicy(
                enabled=bool(cache_cfg.get("enabled", True)),
                tool=str(cache_cfg.get("tool", "ccache")),
                max_size=max_size,
                compress=bool(cache_cfg.get("compress", True)),
                compress_level=compress_level,
            ),
            targets=tuple(str(t) for t in build_cfg.get("targets") or ()),
            jobs=jobs,
            toolchain_dir=str(build_cfg.get("toolchain_dir", cls.toolchain_dir)),
            node_binary=str(build_cfg.get("node_binary", cls.node_binary)),
            spinner=bool(cfg.get("behavior", {}).get("spinner", True)),
        )


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(str(value).strip())
    except ValueError as e:
        raise ConfigurationError(message=f"{name} must be a positive integer, got {value!r}") from e
    if number < 1:
        raise ConfigurationError(message=f"{name} must be a positive integer, got {value!r}")
    return number


def resolve_project_root(request: BuildRequest, cfg: Mapping[str, Any]) -> Path:
    """Resolve the project root: --root, then paths.project_root, then cwd."""
    if request.project_root is not None:
        return Path(request.project_root).expanduser().resolve()
    configured = cfg.get("paths", {}).get("project_root")
    if configured:
        return Path(str(configured)).expanduser().resolve()
    return Path.cwd().resolve()


def resolve_jobs(
    request: BuildRequest,
    settings: BuildSettings,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Resolve the ninja worker count.

    Precedence: --jobs, the NINJA_JOBS environment variable, build.jobs from
    the config file, then the host's processing-unit count.
    """
    env = os.environ if environ is None else environ
    if request.jobs is not None:
        return _positive_int(request.jobs, "--jobs")
    override = env.get(JOBS_ENV_VAR, "").strip()
    if override:
        return _positive_int(override, JOBS_ENV_VAR)
    if settings.jobs is not None:
        return settings.jobs
    return os.cpu_count() or 1
