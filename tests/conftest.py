"""Shared fixtures. Points the workspace at a temp dir before pampam is imported."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Keep pampam.config from touching the real home directory
os.environ.setdefault("PAMPAM_HOME", tempfile.mkdtemp(prefix="pampam-test-"))

import pytest


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "pampam.db"
