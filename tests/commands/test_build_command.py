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


"""Tests for the build command."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from c2build.cli import app
from c2build.commands.build import run_build
from c2build.config import load_config
from c2build.core.context import BuildRequest
from c2build.pipeline import PHASE_KEYS

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_ccache():
    with patch("c2build.build.ccache.find_tool", return_value=None):
        yield


def _summary(temp_home: Path) -> dict:
    runs = sorted((temp_home / ".cache" / "c2build" / "runs").iterdir())
    assert len(runs) == 1
    return json.loads((runs[0] / "summary.json").read_text())


def _events(temp_home: Path) -> list[dict]:
    (run_dir,) = (temp_home / ".cache" / "c2build" / "runs").iterdir()
    lines = (run_dir / "logs" / "events.jsonl").read_text().splitlines()
    return [json.loads(line) for line in lines]


class TestRunBuild:
    """Tests for run_build."""

    def test_success(self, mock_config: Path, temp_home: Path, project: Path, fake_runner) -> None:
        request = BuildRequest(project_root=project, no_spinner=True)

        rc = run_build(request, runner=fake_runner, verify_tools=False)

        assert rc == 0
        assert fake_runner.commands("ninja")[0][3] == "-j4"
        summary = _summary(temp_home)
        assert summary["status"] == "success"
        assert summary["exit_code"] == 0
        markers = project / "build" / ".markers"
        assert sorted(p.name for p in markers.iterdir()) == sorted(PHASE_KEYS)

    def test_phase_failure_exit_code(
        self, mock_config: Path, temp_home: Path, project: Path, fake_runner
    ) -> None:
        fake_runner.fail["domain_substitution.py"] = 3
        request = BuildRequest(project_root=project, no_spinner=True)

        rc = run_build(request, runner=fake_runner, verify_tools=False)

        assert rc == 3
        assert fake_runner.commands("ninja") == []
        summary = _summary(temp_home)
        assert summary["status"] == "failed"
        assert summary["exit_code"] == 3
        errors = [e for e in _events(temp_home) if e["event"] == "phase.error"]
        assert errors[0]["phase"] == "domain_substitution_applied"

    def test_ninja_failure_exit_code(
        self, mock_config: Path, temp_home: Path, project: Path, fake_runner
    ) -> None:
        fake_runner.fail["ninja"] = 137
        request = BuildRequest(project_root=project, no_spinner=True)

        rc = run_build(request, runner=fake_runner, verify_tools=False)

        assert rc == 137
        assert _summary(temp_home)["status"] == "failed"
        assert any(e["event"] == "build.failed" for e in _events(temp_home))

    def test_missing_main_repo(self, mock_config: Path, temp_home: Path, tmp_path: Path, fake_runner) -> None:
        request = BuildRequest(project_root=tmp_path / "empty", no_spinner=True)

        rc = run_build(request, runner=fake_runner, verify_tools=False)

        assert rc == 2
        assert fake_runner.calls == []

    def test_invalid_config(self, temp_home: Path, project: Path, fake_runner) -> None:
        cfg = load_config()
        cfg["build"]["jobs"] = 0

        rc = run_build(BuildRequest(project_root=project), runner=fake_runner, cfg=cfg)

        assert rc == 2
        assert not (temp_home / ".cache" / "c2build" / "runs").exists()

    def test_clean_declined(self, mock_config: Path, temp_home: Path, project: Path, fake_runner) -> None:
        request = BuildRequest(project_root=project, clean=True, no_spinner=True)

        with (
            patch("c2build.commands.build._stdin_is_tty", return_value=True),
            patch("c2build.commands.build.typer.confirm", return_value=False) as confirm,
        ):
            rc = run_build(request, runner=fake_runner, verify_tools=False)

        assert rc == 0
        confirm.assert_called_once()
        assert fake_runner.calls == []
        assert not (temp_home / ".cache" / "c2build" / "runs").exists()

    def test_clean_with_yes_skips_prompt(
        self, mock_config: Path, temp_home: Path, project: Path, fake_runner
    ) -> None:
        request = BuildRequest(project_root=project, clean=True, no_spinner=True)

        with patch("c2build.commands.build.typer.confirm") as confirm:
            rc = run_build(request, yes=True, runner=fake_runner, verify_tools=False)

        assert rc == 0
        confirm.assert_not_called()

    def test_clean_without_terminal_skips_prompt(
        self, mock_config: Path, temp_home: Path, project: Path, fake_runner
    ) -> None:
        request = BuildRequest(project_root=project, clean=True, no_spinner=True)

        with (
            patch("c2build.commands.build._stdin_is_tty", return_value=False),
            patch("c2build.commands.build.typer.confirm") as confirm,
        ):
            rc = run_build(request, runner=fake_runner, verify_tools=False)

        assert rc == 0
        confirm.assert_not_called()
        assert fake_runner.calls != []
        assert _summary(temp_home)["status"] == "success"

    def test_interrupted(self, mock_config: Path, temp_home: Path, project: Path) -> None:
        request = BuildRequest(project_root=project, no_spinner=True)

        with patch("c2build.commands.build.Orchestrator.build", side_effect=KeyboardInterrupt):
            rc = run_build(request, verify_tools=False)

        assert rc == 130
        assert _summary(temp_home)["status"] == "failed"

    def test_unexpected_error(self, mock_config: Path, temp_home: Path, project: Path) -> None:
        request = BuildRequest(project_root=project, no_spinner=True)

        with patch("c2build.commands.build.Orchestrator.build", side_effect=RuntimeError("boom")):
            rc = run_build(request, verify_tools=False)

        assert rc == 1
        assert any(e["event"] == "build.exception" for e in _events(temp_home))


class TestBuildCommand:
    """Tests for the typer entry point."""

    def test_options_mapped_to_request(self, tmp_path: Path) -> None:
        with patch("c2build.commands.build.run_build", return_value=0) as mock_run:
            result = runner.invoke(
                app,
                ["build", "--clean", "--clone", "-j", "6", "--root", str(tmp_path), "-q", "-y"],
            )

        assert result.exit_code == 0
        request = mock_run.call_args.args[0]
        assert request.clean is True
        assert request.clone is True
        assert request.jobs == 6
        assert request.project_root == tmp_path
        assert request.no_spinner is True
        assert mock_run.call_args.kwargs["yes"] is True

    def test_exit_code_propagated(self) -> None:
        with patch("c2build.commands.build.run_build", return_value=137):
            result = runner.invoke(app, ["build"])

        assert result.exit_code == 137
