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

"""Terminal presentation: spinners, headers and disk-usage tables.

Everything here writes to the real terminal (sys.__stdout__) so it never
ends up in the run's captured log files. Rich is used when stdout is a TTY;
otherwise plain lines are printed.
"""

from __future__ import annotations

import contextlib
import sys
from collections.abc import Iterator, Mapping

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.spinner import Spinner
from rich.table import Table


def is_tty() -> bool:
    """Return True if stdout is a TTY."""
    try:
        if sys.__stdout__ is None:
            return False  # pragma: no cover
        return sys.__stdout__.isatty()
    except Exception:  # pragma: no cover
        return False


def _console() -> Console:
    return Console(file=sys.__stdout__, force_terminal=is_tty(), highlight=False)


@contextlib.contextmanager
def activity_spinner(phase: str, description: str, disable: bool = False) -> Iterator[None]:
    """Show a spinner while the wrapped block runs.

    Args:
        phase: Short phase label (e.g., "fetch", "patch").
        description: Human-readable description of current activity.
        disable: Force disable spinner even on TTY.

    Phases that stream the output of an external command pass disable=True
    so that command output is not interleaved with spinner frames.
    """
    text = f"[{phase}] {description}"

    if disable or not is_tty():
        with contextlib.suppress(Exception):  # pragma: no cover
            print(text, file=sys.__stdout__, flush=True)
        yield
        return

    spinner = Spinner("dots", text=escape(text))
    with Live(spinner, console=_console(), refresh_per_second=12, transient=True):
        yield

    with contextlib.suppress(Exception):  # pragma: no cover
        print(text, file=sys.__stdout__, flush=True)


def header(title: str) -> None:
    """Print a banner line separating the major stages of a run."""
    with contextlib.suppress(Exception):
        if is_tty():
            _console().rule(f"[bold blue]{escape(title)}")
        else:
            print(f"==== {title} ====", file=sys.__stdout__, flush=True)


def warn(phase: str, message: str) -> None:
    """Print a highlighted warning line."""
    with contextlib.suppress(Exception):
        if is_tty():
            label = escape(f"[{phase}]")
            _console().print(f"[yellow]{label} Warning:[/yellow] {escape(message)}")
        else:
            print(f"[{phase}] Warning: {message}", file=sys.__stdout__, flush=True)


def usage_table(title: str, sizes: Mapping[str, str]) -> None:
    """Render a name -> human-readable size table."""
    with contextlib.suppress(Exception):
        if not is_tty():
            print(f"{title}:", file=sys.__stdout__)
            for name, size in sizes.items():
                print(f"  - {name}: {size}", file=sys.__stdout__)
            sys.__stdout__.flush()
            return
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Directory")
        table.add_column("Size", justify="right")
        for name, size in sizes.items():
            table.add_row(escape(name), escape(size))
        _console().print(table)
