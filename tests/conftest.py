"""Pytest bootstrap and shared fixtures.

Puts ``src/`` on ``sys.path`` so ``import promptpack`` resolves to the local
package even without an editable install.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from pathlib import Path

import pytest


SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
SRC_ROOT_STR = str(SRC_ROOT)

if SRC_ROOT_STR not in sys.path:
    sys.path.insert(0, SRC_ROOT_STR)


def write(root: Path, rel: str, content: str = "") -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _reset_promptpack_logger():
    yield
    logger = logging.getLogger("promptpack")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small source tree with the usual things a bundle should skip."""
    root = tmp_path / "project"
    write(root, "example.rs", 'fn main() {\n    println!("hi");\n}\n')
    write(root, "ignored.txt", "not wanted\n")
    write(root, "README", "readme without extension\n")
    write(root, "src/lib.py", "def f():\n    return 1\n")
    write(root, "src/notes.md", "# Notes\n")
    write(root, "build/out.rs", "// generated\n")
    write(root, "debug.log", "log line\n")
    write(root, ".env", "SECRET=1\n")
    write(root, ".hidden/inner.py", "x = 1\n")
    write(root, ".gitignore", "build/\n*.log\n")
    (root / "blob.bin").write_bytes(b"\xff\xfe\x00\x81binary")
    return root


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    if shutil.which("git") is None:
        pytest.skip("git is required for commit hash decoration tests")
    root = tmp_path / "repo"
    root.mkdir()
    subprocess.run(["git", "init", "-q"], cwd=root, check=True)
    subprocess.run(["git", "config", "user.email", "tests@example.com"], cwd=root, check=True)
    subprocess.run(["git", "config", "user.name", "Tests"], cwd=root, check=True)
    subprocess.run(["git", "config", "commit.gpgsign", "false"], cwd=root, check=True)
    write(root, "note.txt", "Example text file content\n")
    subprocess.run(["git", "add", "-A"], cwd=root, check=True)
    subprocess.run(["git", "commit", "-q", "-m", "initial"], cwd=root, check=True)
    return root
