from __future__ import annotations

import re
import shutil
from pathlib import Path
from uuid import uuid4

import pytest
import structlog


def _safe_node_name(name: str) -> str:
    # Windows-safe-ish: keep alnum, dash, underscore, dot.
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name or "test"


@pytest.fixture
def workspace_tmp_path(request: pytest.FixtureRequest) -> Path:
    """Temp dir rooted in the workspace (not system temp)."""
    root = Path.cwd() / ".pytest_tmp_workspace" / _safe_node_name(request.node.name) / uuid4().hex
    root.mkdir(parents=True, exist_ok=True)
    try:
        yield root
    finally:
        shutil.rmtree(root, ignore_errors=True)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """CLI tests configure structlog globally; undo that between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def write_csv(workspace_tmp_path: Path):
    """Write a transactions file from raw lines and return its path."""

    def _write(lines: list[str], name: str = "transactions.csv") -> Path:
        path = workspace_tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write
