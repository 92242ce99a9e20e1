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

"""Configuration utilities for c2build."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from c2build.core.exceptions import ConfigurationError

DEFAULT_CONFIG: dict[str, Any] = {
    "paths": {
        "runs_root": "~/.cache/c2build/runs",
        # Empty means "current working directory" unless --root is given.
        "project_root": "",
    },
    "layout": {
        "main_repo": "desktop",
        "build_dir": "build",
        "src_dir": "src",
        "markers_dir": ".markers",
        "download_cache": "download_cache",
        "ccache_dir": ".ccache",
        "wrapper_dir": ".ccache-wrappers",
        "domsub_cache": "domsubcache.tar.gz",
        "output_dir": "out/Default",
    },
    "source": {
        "downloads_ini": "downloads.ini",
        "sysroot_arch": "amd64",
        "pruning_list": "pruning.list",
        "patches_dir": "patches",
        "domain_regex": "domain_regex.list",
        "domain_substitution": "domain_substitution.list",
        "flags_file": "flags.gn",
    },
    "patches": {
        "local": [
            "use-oauth2-client-switches-as-default.patch",
            "drop-nodejs-version-check.patch",
        ],
    },
    "hosts": {
        "replacements": {
            "commondatastorage.9oo91eapis.qjz9zk": "commondatastorage.googleapis.com",
        },
        "files": [
            "build/linux/sysroot_scripts/sysroots.json",
            "tools/clang/scripts/update.py",
        ],
    },
    "cache": {
        "enabled": True,
        "tool": "ccache",
        "max_size": "50G",
        "compress": True,
        "compress_level": 6,
    },
    "build": {
        "targets": ["chrome", "chrome_sandbox", "chromedriver"],
        "jobs": None,
        "toolchain_dir": "third_party/llvm-build/Release+Asserts/bin",
        "node_binary": "/usr/bin/node",
    },
    "behavior": {"spinner": True},
}


def get_config_path() -> Path:
    """Return the path to the config file."""
    return Path.home() / ".config" / "c2build" / "config.yaml"


def ensure_config_exists() -> None:
    """Create the config file with defaults if it does not exist."""
    cfg_path = get_config_path()
    cfg_dir = cfg_path.parent
    cfg_dir.mkdir(parents=True, exist_ok=True)
    if not cfg_path.exists():
        cfg_path.write_text(yaml.safe_dump(DEFAULT_CONFIG))


def load_config() -> dict[str, Any]:
    """Load configuration from disk and merge with defaults.

    The returned dictionary is a per-section merge of DEFAULT_CONFIG and
    values stored in the on-disk config file. A file that is not valid YAML,
    or whose top level is not a mapping, raises ConfigurationError.
    """
    ensure_config_exists()
    cfg_path = get_config_path()
    try:
        raw = yaml.safe_load(cfg_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(message=f"Invalid config file {cfg_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(message=f"Cannot read config file {cfg_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(message=f"Config file {cfg_path} must contain a mapping")

    merged: dict[str, Any] = {}
    for key, val in DEFAULT_CONFIG.items():
        if key in raw and isinstance(raw[key], dict) and isinstance(val, dict):
            merged[key] = {**val, **raw[key]}
        elif isinstance(val, dict):
            if raw.get(key) is not None:
                raise ConfigurationError(message=f"Config section '{key}' must be a mapping")
            # Copy so callers cannot modify DEFAULT_CONFIG
            merged[key] = dict(val)
        else:
            merged[key] = raw.get(key, val)

    for pkey, pval in merged.get("paths", {}).items():
        if pval:
            merged["paths"][pkey] = str(Path(pval).expanduser())

    return merged
