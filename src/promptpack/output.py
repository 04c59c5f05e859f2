"""
Output destination: filename decoration and sink selection.
"""

from __future__ import annotations

import datetime
import logging
import subprocess
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, TextIO

from .core import OutputError, RepositoryError

log = logging.getLogger("promptpack")

SHORT_HASH_LENGTH = 7
GIT_TIMEOUT_SECONDS = 10.0


def _run_git(directory: Path, *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["git", "-C", str(directory), *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
        timeout=GIT_TIMEOUT_SECONDS,
    )


def read_head_hash(directory: Path) -> Optional[str]:
    """
    Return the full HEAD commit id of the repository rooted at *directory*.

    ``None`` means *directory* is not the top level of a git work tree (or
    git itself is unavailable). A repository whose HEAD cannot be resolved,
    e.g. one without commits, raises :class:`RepositoryError`.
    """
    try:
        top = _run_git(directory, "rev-parse", "--show-toplevel")
    except (OSError, subprocess.SubprocessError) as e:
        log.debug("git unavailable for %s: %s", directory, e)
        return None
    top_level = top.stdout.strip()
    if top.returncode != 0 or not top_level:
        return None
    if Path(top_level).resolve() != directory.resolve():
        return None

    try:
        head = _run_git(directory, "rev-parse", "--verify", "HEAD")
    except (OSError, subprocess.SubprocessError) as e:
        raise RepositoryError(f"Failed to get repository HEAD in '{directory}': {e}") from e
    commit = head.stdout.strip()
    if head.returncode != 0 or not commit:
        detail = head.stderr.strip() or "no commit"
        raise RepositoryError(f"Failed to get repository HEAD in '{directory}': {detail}")
    return commit


def decorate_output_path(
    path: Optional[Path],
    directory: Path,
    append_date: bool = False,
    append_git_hash: bool = False,
    today: Optional[datetime.date] = None,
    log: logging.Logger = log,
) -> Optional[Path]:
    """Insert ``_YYYYMMDD`` and/or ``_<short hash>`` before the file extension."""
    if path is None or not (append_date or append_git_hash):
        return path

    stem = path.stem
    if append_date:
        stem += "_" + (today or datetime.date.today()).strftime("%Y%m%d")
        log.info("Appending date to filename.")

    if append_git_hash:
        commit = read_head_hash(directory)
        if commit is None:
            log.warning("Not a git repository, cannot append git hash: %s", directory)
        else:
            stem += "_" + commit[:SHORT_HASH_LENGTH]
            log.info("Appending git hash to filename.")

    return path.with_name(stem + path.suffix)


@contextmanager
def open_sink(path: Optional[Path], log: logging.Logger = log) -> Iterator[TextIO]:
    """
    Yield the stream rendered blocks are written to.

    With no *path* this is ``sys.stdout``, flushed but left open on exit.
    Otherwise *path* is created or truncated; its parent directory must
    already exist.
    """
    if path is None:
        log.info("Output will be written to stdout.")
        try:
            yield sys.stdout
        finally:
            sys.stdout.flush()
        return

    if not path.parent.is_dir():
        raise OutputError(f"Output directory '{path.parent}' does not exist")
    try:
        out_fh = path.open("w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise OutputError(f"Failed to create output file '{path}': {e}") from e

    log.info("Output will be written to: %s", path)
    with out_fh:
        yield out_fh
