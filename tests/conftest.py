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

"""Pytest fixtures and configuration for c2build tests."""

from __future__ import annotations

import tempfile
from collections.abc import Generator, Mapping, Sequence
from pathlib import Path
from unittest import mock

import pytest

from c2build.config import DEFAULT_CONFIG
from c2build.core.context import BuildRequest, BuildSettings
from c2build.core.exceptions import ExternalCommandError
from c2build.pipeline.types import PhaseContext
from c2build.workspace.layout import Workspace, WorkspaceManager
from c2build.workspace.markers import MarkerStore

OBFUSCATED_HOST = "commondatastorage.9oo91eapis.qjz9zk"


def make_source_tree(src: Path) -> None:
    """Populate a minimal source tree that satisfies the validity predicate."""
    src.mkdir(parents=True, exist_ok=True)
    (src / "BUILD.gn").write_text("# root build file\n")
    (src / "chrome").mkdir(exist_ok=True)
    sysroots = src / "build/linux/sysroot_scripts/sysroots.json"
    sysroots.parent.mkdir(parents=True, exist_ok=True)
    sysroots.write_text(f'{{"url": "https://{OBFUSCATED_HOST}/sysroots"}}\n')
    update = src / "tools/clang/scripts/update.py"
    update.parent.mkdir(parents=True, exist_ok=True)
    update.write_text(f'CDS_URL = "https://{OBFUSCATED_HOST}/chromium-browser-clang"\n')


class FakeRunner:
    """Records external commands instead of running them.

    Attributes:
        calls: (phase, argv) for every `run` call, in order.
        envs: Environment passed with every `run` call.
        probes: argv for every `probe` call.
        fail: program name or exact argument -> exit code to raise for
            matching commands.
        probe_results: argv substring -> (exit code, output) for probes.

    Fetch and GN bootstrap commands create the files the real tools would.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str]]] = []
        self.envs: list[Mapping[str, str] | None] = []
        self.probes: list[list[str]] = []
        self.fail: dict[str, int] = {}
        self.probe_results: dict[str, tuple[int, str]] = {}

    def run(
        self,
        phase: str,
        cmd: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        argv = [str(c) for c in cmd]
        self.calls.append((phase, argv))
        self.envs.append(env)

        for needle, rc in self.fail.items():
            if needle == Path(argv[0]).name or needle in argv:
                raise ExternalCommandError(
                    message=f"Command failed: {' '.join(argv)}",
                    exit_code=rc,
                    phase=phase,
                    command=argv,
                )

        tool = Path(argv[0]).name
        if tool == "downloads.py" and argv[1] == "unpack":
            make_source_tree(Path(argv[-1]))
        elif tool == "clone.py":
            make_source_tree(Path(argv[argv.index("-o") + 1]))
        elif tool == "bootstrap.py" and cwd is not None:
            gn = Path(cwd) / argv[argv.index("-o") + 1]
            gn.parent.mkdir(parents=True, exist_ok=True)
            gn.write_text("#!/bin/sh\n")

    def probe(
        self,
        cmd: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> tuple[int, str]:
        argv = [str(c) for c in cmd]
        self.probes.append(argv)
        for needle, result in self.probe_results.items():
            if any(needle in arg for arg in argv):
                return result
        if "--print-resource-dir" in argv:
            return 0, "/opt/llvm/lib/clang/19\n"
        if argv[0] == "patch":
            # Reverse dry-run fails: the patch is not applied yet.
            return 1, ""
        return 0, ""

    def commands(self, phase: str | None = None) -> list[list[str]]:
        return [argv for p, argv in self.calls if phase is None or p == phase]

    def count(self, needle: str) -> int:
        """Number of `run` calls with an argument containing needle."""
        return sum(1 for _, argv in self.calls if any(needle in arg for arg in argv))


@pytest.fixture
def temp_home(monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Create a temporary home directory and set HOME/XDG paths."""
    with tempfile.TemporaryDirectory() as tmpdir:
        home = Path(tmpdir)
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
        monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
        monkeypatch.delenv("NINJA_JOBS", raising=False)
        # Also patch Path.home() to return our temp home
        monkeypatch.setattr(Path, "home", lambda: home)
        yield home


@pytest.fixture
def mock_config(temp_home: Path) -> Path:
    """Create a minimal config file in the temp home."""
    config_dir = temp_home / ".config" / "c2build"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_file = config_dir / "config.yaml"
    config_file.write_text("""
paths:
  runs_root: "~/.cache/c2build/runs"
  project_root: ""

cache:
  enabled: true
  max_size: "50G"

build:
  jobs: 4

behavior:
  spinner: false
""")
    return config_file


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a project root with a populated utilities repository."""
    root = tmp_path / "c2-browser"
    main_repo = root / "desktop"
    (main_repo / "utils").mkdir(parents=True)
    (main_repo / "patches").mkdir()
    (main_repo / "flags.gn").write_text('is_official_build=true\nchrome_pgo_phase=0\n')
    (main_repo / "downloads.ini").write_text("[chromium]\n")
    root.joinpath("flags.gn").write_text("use_sysroot=false\n")
    for name in DEFAULT_CONFIG["patches"]["local"]:
        root.joinpath(name).write_text(f"--- a/{name}\n+++ b/{name}\n")
    return root


@pytest.fixture
def settings() -> BuildSettings:
    return BuildSettings.from_config(DEFAULT_CONFIG)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def workspace(project: Path, settings: BuildSettings) -> Workspace:
    return Workspace.from_root(project, settings.layout)


@pytest.fixture
def phase_ctx(
    workspace: Workspace,
    settings: BuildSettings,
    fake_runner: FakeRunner,
) -> PhaseContext:
    """A PhaseContext over the test project with an ensured layout."""
    markers = MarkerStore(workspace.markers_dir)
    manager = WorkspaceManager(workspace, markers)
    manager.ensure_layout()
    return PhaseContext(
        workspace=workspace,
        manager=manager,
        markers=markers,
        settings=settings,
        request=BuildRequest(project_root=workspace.root, no_spinner=True),
        runner=fake_runner,
    )


@pytest.fixture
def non_tty_stdout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock sys.__stdout__.isatty() to return False."""
    mock_stdout = mock.MagicMock()
    mock_stdout.isatty.return_value = False
    monkeypatch.setattr("sys.__stdout__", mock_stdout)
