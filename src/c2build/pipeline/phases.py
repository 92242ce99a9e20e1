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

"""Preparation phases of a C2 browser build.

Phases run in this order:

1. source_fetched              - download and unpack (or clone) the sources
2. patches_applied             - prune binaries, apply the patch series
3. domain_substitution_applied - rewrite domains across the tree
4. local_patches_applied       - apply the project's own patches
5. gn_args_updated             - materialise out/Default/args.gn (every run)
6. hosts_fixed                 - restore real download hosts in scripts
7. tools_setup                 - fetch prebuilt rust, clang and sysroot

The utilities of the main repository (downloads.py, patches.py, ...) and the
toolchain scripts of the source tree are run as external commands.
"""

from __future__ import annotations

import re

from c2build.core.exceptions import ConfigurationError, ValidationError, WorkspaceIOError
from c2build.pipeline.errors import log_phase_event, phase_warning
from c2build.pipeline.types import Phase, PhaseContext

SOURCE_FETCHED = "source_fetched"
PATCHES_APPLIED = "patches_applied"
DOMAIN_SUBSTITUTION_APPLIED = "domain_substitution_applied"
LOCAL_PATCHES_APPLIED = "local_patches_applied"
GN_ARGS_UPDATED = "gn_args_updated"
HOSTS_FIXED = "hosts_fixed"
TOOLS_SETUP = "tools_setup"

PHASE_KEYS: tuple[str, ...] = (
    SOURCE_FETCHED,
    PATCHES_APPLIED,
    DOMAIN_SUBSTITUTION_APPLIED,
    LOCAL_PATCHES_APPLIED,
    GN_ARGS_UPDATED,
    HOSTS_FIXED,
    TOOLS_SETUP,
)

USE_SYSROOT_PATTERN = re.compile(r"^\s*use_sysroot\s*=\s*true\b", re.MULTILINE)


def _utils(ctx: PhaseContext, name: str) -> str:
    return str(ctx.workspace.main_repo / "utils" / name)


def _main_repo_file(ctx: PhaseContext, name: str) -> str:
    return str(ctx.workspace.main_repo / name)


# =============================================================================
# source_fetched
# =============================================================================


def source_is_valid(ctx: PhaseContext) -> bool:
    return ctx.manager.is_source_valid()


def fetch_sources(ctx: PhaseContext) -> None:
    """Acquire a fresh source tree into the workspace."""
    ws = ctx.workspace
    ctx.manager.wipe_source()

    if ctx.request.clone:
        ctx.runner.run(
            "fetch",
            [_utils(ctx, "clone.py"), "--sysroot", ctx.settings.sysroot_arch, "-o", str(ws.src_dir)],
            cwd=ws.root,
        )
    else:
        ini = _main_repo_file(ctx, ctx.settings.downloads_ini)
        cache = str(ws.download_cache)
        ctx.runner.run(
            "fetch",
            [_utils(ctx, "downloads.py"), "retrieve", "-i", ini, "-c", cache],
            cwd=ws.root,
        )
        ctx.runner.run(
            "fetch",
            [_utils(ctx, "downloads.py"), "unpack", "-i", ini, "-c", cache, str(ws.src_dir)],
            cwd=ws.root,
        )

    if not ctx.manager.is_source_valid():
        raise ValidationError(
            message=f"Source tree {ws.src_dir} is incomplete after fetch "
            "(BUILD.gn or chrome/ missing)"
        )


# =============================================================================
# patches_applied
# =============================================================================


def apply_patches(ctx: PhaseContext) -> None:
    """Prune prebuilt binaries, then apply the patch series."""
    src = str(ctx.workspace.src_dir)
    ctx.runner.run(
        "patch",
        [_utils(ctx, "prune_binaries.py"), src, _main_repo_file(ctx, ctx.settings.pruning_list)],
        cwd=ctx.workspace.root,
    )
    ctx.runner.run(
        "patch",
        [_utils(ctx, "patches.py"), "apply", src, _main_repo_file(ctx, ctx.settings.patches_dir)],
        cwd=ctx.workspace.root,
    )


# =============================================================================
# domain_substitution_applied
# =============================================================================


def substitute_domains(ctx: PhaseContext) -> None:
    ws = ctx.workspace
    # domain_substitution.py refuses to overwrite an existing cache artifact.
    if ws.domsub_cache.exists():
        phase_warning(
            ctx.run,
            "domsub",
            f"Removing stale substitution cache {ws.domsub_cache} from an interrupted run",
            event_key="phase.warning",
            phase=DOMAIN_SUBSTITUTION_APPLIED,
        )
        ws.domsub_cache.unlink()

    ctx.runner.run(
        "domsub",
        [
            _utils(ctx, "domain_substitution.py"),
            "apply",
            "-r",
            _main_repo_file(ctx, ctx.settings.domain_regex),
            "-f",
            _main_repo_file(ctx, ctx.settings.domain_substitution),
            "-c",
            str(ws.domsub_cache),
            str(ws.src_dir),
        ],
        cwd=ws.root,
    )


# =============================================================================
# local_patches_applied
# =============================================================================


def apply_local_patches(ctx: PhaseContext) -> None:
    """Apply the project's own patches with patch(1).

    A patch that reverses cleanly is already in the tree (a previous run was
    interrupted after applying it) and is left alone.
    """
    src = ctx.workspace.src_dir
    for name in ctx.settings.local_patches:
        patch_file = ctx.workspace.root / name
        if not patch_file.is_file():
            raise ConfigurationError(message=f"Local patch not found: {patch_file}")

        rc, _ = ctx.runner.probe(
            ["patch", "-Rp1", "--dry-run", "--silent", "--force", "-i", str(patch_file)],
            cwd=src,
        )
        if rc == 0:
            log_phase_event(
                ctx.run,
                "local-patch",
                f"{name} already applied, skipping",
                "patch.already_applied",
                patch=name,
            )
            continue

        ctx.runner.run("local-patch", ["patch", "-Np1", "-i", str(patch_file)], cwd=src)


# =============================================================================
# gn_args_updated
# =============================================================================


def update_gn_args(ctx: PhaseContext) -> None:
    """Write args.gn from the base flags and the project's override flags.

    Runs on every invocation: the flag files change without any marker
    knowing about it.
    """
    ws = ctx.workspace
    base_path = ws.main_repo / ctx.settings.flags_file
    override_path = ws.root / ctx.settings.flags_file

    try:
        content = base_path.read_bytes()
    except OSError as e:
        raise ConfigurationError(message=f"Cannot read base GN flags {base_path}: {e}") from e

    if override_path.is_file():
        try:
            override = override_path.read_bytes()
        except OSError as e:
            raise ConfigurationError(
                message=f"Cannot read project GN flags {override_path}: {e}"
            ) from e
        if content and not content.endswith(b"\n"):
            content += b"\n"
        content += override
    else:
        phase_warning(
            ctx.run,
            "gn-args",
            f"No project GN flags at {override_path}; using base flags only",
            event_key="phase.warning",
            phase=GN_ARGS_UPDATED,
        )

    try:
        ws.output_dir.mkdir(parents=True, exist_ok=True)
        ws.args_gn.write_bytes(content)
    except OSError as e:
        raise ConfigurationError(message=f"Cannot write {ws.args_gn}: {e}") from e

    if not ws.args_gn.is_file():
        raise ConfigurationError(message=f"{ws.args_gn} was not produced")

    if ctx.run is not None:
        ctx.run.log_event(
            {"event": "gn_args.written", "path": str(ws.args_gn), "bytes": len(content)}
        )


# =============================================================================
# hosts_fixed
# =============================================================================


def fix_download_hosts(ctx: PhaseContext) -> None:
    """Replace obfuscated download hosts with the real ones."""
    src = ctx.workspace.src_dir
    for rel in ctx.settings.host_files:
        path = src / rel
        if not path.is_file():
            phase_warning(
                ctx.run,
                "hosts",
                f"{rel} not found in source tree; nothing to fix",
                event_key="phase.warning",
                phase=HOSTS_FIXED,
            )
            continue

        try:
            data = path.read_bytes()
        except OSError as e:
            raise WorkspaceIOError(message=f"Cannot read {path}: {e}", path=str(path)) from e
        fixed = data
        for old, new in ctx.settings.host_replacements:
            fixed = fixed.replace(old.encode(), new.encode())
        if fixed != data:
            try:
                path.write_bytes(fixed)
            except OSError as e:
                raise WorkspaceIOError(message=f"Cannot write {path}: {e}", path=str(path)) from e
            if ctx.run is not None:
                ctx.run.log_event({"event": "hosts.fixed", "file": rel})


# =============================================================================
# tools_setup
# =============================================================================


def sysroot_requested(ctx: PhaseContext) -> bool:
    """Return True if args.gn turns on use_sysroot."""
    try:
        args = ctx.workspace.args_gn.read_bytes().decode("utf-8", errors="replace")
    except OSError as e:
        raise ConfigurationError(message=f"Cannot read {ctx.workspace.args_gn}: {e}") from e
    return USE_SYSROOT_PATTERN.search(args) is not None


def setup_prebuilt_tools(ctx: PhaseContext) -> None:
    """Fetch prebuilt rust and clang, and a sysroot when args.gn asks for one."""
    src = ctx.workspace.src_dir
    ctx.runner.run("tools", [str(src / "tools/rust/update_rust.py")], cwd=src)
    # Linking against the rust libraries needs the matching prebuilt clang.
    ctx.runner.run("tools", [str(src / "tools/clang/scripts/update.py")], cwd=src)
    if sysroot_requested(ctx):
        ctx.runner.run(
            "tools",
            [
                str(src / "build/linux/sysroot_scripts/install-sysroot.py"),
                f"--arch={ctx.settings.sysroot_arch}",
            ],
            cwd=src,
        )


def default_phases() -> list[Phase]:
    """Return the preparation phases in their required order."""
    return [
        Phase(
            key=SOURCE_FETCHED,
            label="fetch",
            description="Fetching browser sources",
            action=fetch_sources,
            skip_when=source_is_valid,
            invalidates_downstream=True,
        ),
        Phase(
            key=PATCHES_APPLIED,
            label="patch",
            description="Pruning binaries and applying patches",
            action=apply_patches,
        ),
        Phase(
            key=DOMAIN_SUBSTITUTION_APPLIED,
            label="domsub",
            description="Applying domain substitution",
            action=substitute_domains,
        ),
        Phase(
            key=LOCAL_PATCHES_APPLIED,
            label="local-patch",
            description="Applying local patches",
            action=apply_local_patches,
        ),
        Phase(
            key=GN_ARGS_UPDATED,
            label="gn-args",
            description="Updating GN flags",
            action=update_gn_args,
            always_run=True,
            streams_output=False,
        ),
        Phase(
            key=HOSTS_FIXED,
            label="hosts",
            description="Fixing download hosts",
            action=fix_download_hosts,
            streams_output=False,
        ),
        Phase(
            key=TOOLS_SETUP,
            label="tools",
            description="Setting up prebuilt tools",
            action=setup_prebuilt_tools,
        ),
    ]
