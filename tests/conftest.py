from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "scripts"))

from helpers import build_overlay  # noqa: E402


@pytest.fixture
def overlay(tmp_path: Path) -> Path:
    return build_overlay(tmp_path / "overlay")


@pytest.fixture
def kustomize_root(tmp_path: Path) -> Path:
    """``<tmp>/kustomize`` with a ``default`` source overlay."""
    root = tmp_path / "kustomize"
    build_overlay(root / "overlay" / "default")
    return root
