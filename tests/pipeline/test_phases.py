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

"""Tests for c2build.pipeline.phases module."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from c2build.core.exceptions import ConfigurationError, ValidationError
from c2build.pipeline import phases
from c2build.pipeline.engine import PhasePipeline
from c2build.pipeline.types import PhaseContext

OBFUSCATED_HOST = "commondatastorage.9oo91eapis.qjz9zk"
REAL_HOST = "commondatastorage.googleapis.com"


def _make_tree(src: Path) -> None:
    src.mkdir(parents=True, exist_ok=True)
    (src / "BUILD.gn").write_text("")
    (src / "chrome").mkdir(exist_ok=True)


class TestDefaultPhases:
    """Tests for the phase table."""

    def test_order(self) -> None:
        keys = [p.key for p in phases.default_phases()]
        assert keys == list(phases.PHASE_KEYS)
        assert keys == [
            "source_fetched",
            "patches_applied",
            "domain_substitution_applied",
            "local_patches_applied",
            "gn_args_updated",
            "hosts_fixed",
            "tools_setup",
        ]

    def test_only_gn_args_always_runs(self) -> None:
        always = [p.key for p in phases.default_phases() if p.always_run]
        assert always == ["gn_args_updated"]

    def test_only_fetch_invalidates_downstream(self) -> None:
        fetch = phases.default_phases()[0]
        assert fetch.invalidates_downstream is True
        assert fetch.skip_when is phases.source_is_valid
        assert not any(p.invalidates_downstream for p in phases.default_phases()[1:])


class TestFetchSources:
    """Tests for the source_fetched action."""

    def test_download_mode(self, phase_ctx: PhaseContext, fake_runner) -> None:
        phases.fetch_sources(phase_ctx)

        cmds = fake_runner.commands("fetch")
        assert [Path(c[0]).name for c in cmds] == ["downloads.py", "downloads.py"]
        assert cmds[0][1] == "retrieve"
        assert cmds[1][1] == "unpack"
        assert cmds[1][-1] == str(phase_ctx.workspace.src_dir)
        assert str(phase_ctx.workspace.download_cache) in cmds[0]
        assert phase_ctx.manager.is_source_valid()

    def test_clone_mode(self, phase_ctx: PhaseContext, fake_runner) -> None:
        phase_ctx.request = replace(phase_ctx.request, clone=True)

        phases.fetch_sources(phase_ctx)

        (cmd,) = fake_runner.commands("fetch")
        assert Path(cmd[0]).name == "clone.py"
        assert cmd[1:3] == ["--sysroot", "amd64"]
        assert cmd[-1] == str(phase_ctx.workspace.src_dir)

    def test_wipes_partial_tree_first(self, phase_ctx: PhaseContext) -> None:
        leftover = phase_ctx.workspace.src_dir / "half-extracted.txt"
        leftover.write_text("partial")

        phases.fetch_sources(phase_ctx)

        assert not leftover.exists()

    def test_invalid_tree_after_fetch_raises(self, phase_ctx: PhaseContext, fake_runner) -> None:
        # Unpack "succeeds" but produces nothing.
        fake_runner.run = lambda phase, cmd, cwd=None, env=None: None

        with pytest.raises(ValidationError) as exc_info:
            phases.fetch_sources(phase_ctx)
        assert exc_info.value.exit_code == 4

    def test_skipped_when_tree_valid(self, phase_ctx: PhaseContext, fake_runner) -> None:
        _make_tree(phase_ctx.workspace.src_dir)

        result = PhasePipeline(phases.default_phases()[:1]).run(phase_ctx)

        assert result.skipped() == ["source_fetched"]
        assert fake_runner.calls == []
        assert phase_ctx.markers.has("source_fetched")


class TestApplyPatches:
    """Tests for the patches_applied action."""

    def test_prunes_then_patches(self, phase_ctx: PhaseContext, fake_runner) -> None:
        phases.apply_patches(phase_ctx)

        prune, patch = fake_runner.commands("patch")
        src = str(phase_ctx.workspace.src_dir)
        assert Path(prune[0]).name == "prune_binaries.py"
        assert prune[1:] == [src, str(phase_ctx.workspace.main_repo / "pruning.list")]
        assert Path(patch[0]).name == "patches.py"
        assert patch[1:] == ["apply", src, str(phase_ctx.workspace.main_repo / "patches")]

    def test_prune_failure_stops_before_patching(self, phase_ctx: PhaseContext, fake_runner) -> None:
        fake_runner.fail["prune_binaries.py"] = 2

        result = PhasePipeline(phases.default_phases()[1:2]).run(phase_ctx)

        assert result.exit_code == 2
        assert fake_runner.count("patches.py") == 0
        assert not phase_ctx.markers.has("patches_applied")


class TestSubstituteDomains:
    """Tests for the domain_substitution_applied action."""

    def test_command(self, phase_ctx: PhaseContext, fake_runner) -> None:
        phases.substitute_domains(phase_ctx)

        (cmd,) = fake_runner.commands("domsub")
        ws = phase_ctx.workspace
        assert Path(cmd[0]).name == "domain_substitution.py"
        assert cmd[1:] == [
            "apply",
            "-r",
            str(ws.main_repo / "domain_regex.list"),
            "-f",
            str(ws.main_repo / "domain_substitution.list"),
            "-c",
            str(ws.domsub_cache),
            str(ws.src_dir),
        ]

    def test_removes_stale_cache_artifact(self, phase_ctx: PhaseContext, fake_runner) -> None:
        stale = phase_ctx.workspace.domsub_cache
        stale.write_bytes(b"stale")

        phases.substitute_domains(phase_ctx)

        assert not stale.exists()
        assert len(fake_runner.commands("domsub")) == 1


class TestApplyLocalPatches:
    """Tests for the local_patches_applied action."""

    def test_applies_each_patch_in_source_tree(self, phase_ctx: PhaseContext, fake_runner) -> None:
        phases.apply_local_patches(phase_ctx)

        cmds = fake_runner.commands("local-patch")
        assert len(cmds) == len(phase_ctx.settings.local_patches)
        for cmd, name in zip(cmds, phase_ctx.settings.local_patches):
            assert cmd == ["patch", "-Np1", "-i", str(phase_ctx.workspace.root / name)]

    def test_already_applied_patch_is_left_alone(self, phase_ctx: PhaseContext, fake_runner) -> None:
        first = phase_ctx.settings.local_patches[0]
        fake_runner.probe_results[first] = (0, "")

        phases.apply_local_patches(phase_ctx)

        cmds = fake_runner.commands("local-patch")
        assert len(cmds) == len(phase_ctx.settings.local_patches) - 1
        assert all(first not in arg for cmd in cmds for arg in cmd)

    def test_missing_patch_file(self, phase_ctx: PhaseContext) -> None:
        (phase_ctx.workspace.root / phase_ctx.settings.local_patches[0]).unlink()

        with pytest.raises(ConfigurationError, match="Local patch not found"):
            phases.apply_local_patches(phase_ctx)


class TestUpdateGnArgs:
    """Tests for the gn_args_updated action."""

    def test_concatenates_base_and_override(self, phase_ctx: PhaseContext) -> None:
        phases.update_gn_args(phase_ctx)

        args = phase_ctx.workspace.args_gn.read_text()
        assert args == "is_official_build=true\nchrome_pgo_phase=0\nuse_sysroot=false\n"

    def test_picks_up_changed_flags(self, phase_ctx: PhaseContext) -> None:
        pipeline = PhasePipeline([p for p in phases.default_phases() if p.key == "gn_args_updated"])
        override = phase_ctx.workspace.root / "flags.gn"

        for value in ("false", "true", "false"):
            override.write_text(f"use_sysroot={value}\n")
            result = pipeline.run(phase_ctx)
            assert result.executed() == ["gn_args_updated"]
            assert phase_ctx.workspace.args_gn.read_text().endswith(f"use_sysroot={value}\n")

    def test_base_without_trailing_newline(self, phase_ctx: PhaseContext) -> None:
        (phase_ctx.workspace.main_repo / "flags.gn").write_text("a=1")

        phases.update_gn_args(phase_ctx)

        assert phase_ctx.workspace.args_gn.read_text() == "a=1\nuse_sysroot=false\n"

    def test_missing_base_flags(self, phase_ctx: PhaseContext) -> None:
        (phase_ctx.workspace.main_repo / "flags.gn").unlink()

        with pytest.raises(ConfigurationError) as exc_info:
            phases.update_gn_args(phase_ctx)
        assert exc_info.value.exit_code == 2

    def test_missing_override_uses_base_only(self, phase_ctx: PhaseContext) -> None:
        (phase_ctx.workspace.root / "flags.gn").unlink()

        phases.update_gn_args(phase_ctx)

        assert phase_ctx.workspace.args_gn.read_text() == "is_official_build=true\nchrome_pgo_phase=0\n"

    def test_recreates_output_dir(self, phase_ctx: PhaseContext) -> None:
        phase_ctx.manager.wipe_source()

        phases.update_gn_args(phase_ctx)

        assert phase_ctx.workspace.args_gn.is_file()

    def test_non_utf8_flags_copied_verbatim(self, phase_ctx: PhaseContext) -> None:
        base = b"# caf\xe9 build\r\nis_official_build=true\n"
        (phase_ctx.workspace.main_repo / "flags.gn").write_bytes(base)
        pipeline = PhasePipeline([p for p in phases.default_phases() if p.key == "gn_args_updated"])

        result = pipeline.run(phase_ctx)

        assert result.success is True
        assert phase_ctx.workspace.args_gn.read_bytes() == base + b"use_sysroot=false\n"


class TestFixDownloadHosts:
    """Tests for the hosts_fixed action."""

    def test_replaces_obfuscated_host(self, phase_ctx: PhaseContext) -> None:
        src = phase_ctx.workspace.src_dir
        target = src / "tools/clang/scripts/update.py"
        target.parent.mkdir(parents=True)
        target.write_text(f"URL = 'https://{OBFUSCATED_HOST}/x'\nOTHER = '{OBFUSCATED_HOST}'\n")

        phases.fix_download_hosts(phase_ctx)

        text = target.read_text()
        assert OBFUSCATED_HOST not in text
        assert text.count(REAL_HOST) == 2

    def test_missing_files_only_warn(self, phase_ctx: PhaseContext) -> None:
        result = PhasePipeline([p for p in phases.default_phases() if p.key == "hosts_fixed"]).run(
            phase_ctx
        )

        assert result.success is True
        assert phase_ctx.markers.has("hosts_fixed")

    def test_non_utf8_file_rewritten_byte_for_byte(self, phase_ctx: PhaseContext) -> None:
        target = phase_ctx.workspace.src_dir / "tools/clang/scripts/update.py"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"# \xff\r\nURL = 'https://" + OBFUSCATED_HOST.encode() + b"/x'\r\n")
        pipeline = PhasePipeline([p for p in phases.default_phases() if p.key == "hosts_fixed"])

        result = pipeline.run(phase_ctx)

        assert result.success is True
        assert target.read_bytes() == b"# \xff\r\nURL = 'https://" + REAL_HOST.encode() + b"/x'\r\n"


class TestSetupPrebuiltTools:
    """Tests for the tools_setup action."""

    def _write_args(self, ctx: PhaseContext, text: str) -> None:
        ctx.workspace.args_gn.parent.mkdir(parents=True, exist_ok=True)
        ctx.workspace.args_gn.write_text(text)

    def test_without_sysroot(self, phase_ctx: PhaseContext, fake_runner) -> None:
        self._write_args(phase_ctx, "use_sysroot=false\n")

        phases.setup_prebuilt_tools(phase_ctx)

        names = [Path(c[0]).name for c in fake_runner.commands("tools")]
        assert names == ["update_rust.py", "update.py"]

    def test_with_sysroot(self, phase_ctx: PhaseContext, fake_runner) -> None:
        self._write_args(phase_ctx, "is_debug=false\nuse_sysroot = true\n")

        phases.setup_prebuilt_tools(phase_ctx)

        cmds = fake_runner.commands("tools")
        assert Path(cmds[-1][0]).name == "install-sysroot.py"
        assert cmds[-1][1] == "--arch=amd64"

    def test_missing_args_gn(self, phase_ctx: PhaseContext) -> None:
        with pytest.raises(ConfigurationError):
            phases.setup_prebuilt_tools(phase_ctx)

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("use_sysroot=true\n", True),
            ("use_sysroot = true", True),
            ("use_sysroot=false\n", False),
            ("# use_sysroot=true\n", False),
            ("use_sysroot=trueish\n", False),
        ],
    )
    def test_sysroot_requested(self, phase_ctx: PhaseContext, text: str, expected: bool) -> None:
        self._write_args(phase_ctx, text)
        assert phases.sysroot_requested(phase_ctx) is expected
