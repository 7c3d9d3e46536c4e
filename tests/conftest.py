from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from typing import Callable

import pytest


@pytest.fixture
def bin_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A directory of fake executables placed first on PATH."""
    d = tmp_path / "bin"
    d.mkdir()
    monkeypatch.setenv("PATH", f"{d}{os.pathsep}{os.environ.get('PATH', '')}")
    return d


@pytest.fixture
def make_script(bin_dir: Path) -> Callable[[str, str], Path]:
    """Write an executable ``/bin/sh`` script named *name* into ``bin_dir``."""

    def _make(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace with a package.json manifest."""
    ws = tmp_path / "workspace"
    ws.mkdir()
    (ws / "package.json").write_text(json.dumps({"name": "site", "scripts": {"dev": "vite"}}))
    return ws
