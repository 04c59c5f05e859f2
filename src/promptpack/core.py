"""
Core logic for promptpack: configuration, filtering, traversal and rendering.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePath
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

import pathspec

log = logging.getLogger("promptpack")

# Exceptions
class PromptPackError(Exception): ...
class SetupError(PromptPackError): ...
class InvalidRootError(SetupError): ...
class OutputError(SetupError): ...
class RepositoryError(SetupError): ...
class FileReadError(PromptPackError): ...


# Configuration
class OutputFormat(str, Enum):
    MARKDOWN = "markdown"
    TEXT = "text"
    CONSOLE = "console"


_FORMAT_BY_SUFFIX: Dict[str, OutputFormat] = {
    ".md": OutputFormat.MARKDOWN,
    ".txt": OutputFormat.TEXT,
}


def infer_format(fmt: OutputFormat, output: Optional[Path]) -> OutputFormat:
    """Upgrade the console default to match an ``.md`` or ``.txt`` output file."""
    if fmt is not OutputFormat.CONSOLE or output is None:
        return fmt
    return _FORMAT_BY_SUFFIX.get(output.suffix.lower(), fmt)


@dataclass(frozen=True)
class Config:
    directory: Path
    output: Optional[Path] = None
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    format: OutputFormat = OutputFormat.CONSOLE
    append_date: bool = False
    append_git_hash: bool = False
    line_numbers: bool = False
    ignore_hidden: bool = False
    respect_gitignore: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "directory", Path(self.directory))
        if self.output is not None:
            object.__setattr__(self, "output", Path(self.output))
        object.__setattr__(self, "include", tuple(self.include))
        object.__setattr__(self, "exclude", tuple(self.exclude))
        object.__setattr__(self, "format", OutputFormat(self.format))

    @property
    def include_active(self) -> bool:
        # ("",) is what an empty --include looks like after comma splitting
        return bool(self.include) and self.include != ("",)


# Ignore rules
class IgnoreRules:
    """
    Ordered ``.gitignore`` patterns compiled with :mod:`pathspec`.

    Patterns are evaluated in file order and the last one that matches
    decides, so a later ``!pattern`` re-includes what an earlier line
    ignored. A trailing ``/`` restricts a pattern to directories.
    """

    def __init__(self, lines: Iterable[str] = ()) -> None:
        self._spec = pathspec.PathSpec.from_lines("gitwildmatch", lines)
        self._patterns = [p for p in self._spec.patterns if p.include is not None]

    def __len__(self) -> int:
        return len(self._patterns)

    def match(self, rel_path: str, is_dir: bool) -> Optional[bool]:
        """
        Return ``True`` if *rel_path* is ignored, ``False`` if a negated
        pattern re-includes it, or ``None`` when no pattern matches.
        """
        candidate = rel_path.rstrip("/") + "/" if is_dir else rel_path
        verdict: Optional[bool] = None
        for pattern in self._patterns:
            if pattern.match_file(candidate) is not None:
                verdict = pattern.include
        return verdict

    def is_ignored(self, rel_path: str, is_dir: bool) -> bool:
        return self.match(rel_path, is_dir) is True


def load_gitignore(root: Path, log: logging.Logger = log) -> IgnoreRules:
    """Compile the root ``.gitignore``; a missing or unreadable file yields no rules."""
    gitignore_path = root / ".gitignore"
    if not gitignore_path.is_file():
        return IgnoreRules()
    try:
        with gitignore_path.open("r", encoding="utf-8") as fh:
            lines = fh.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        log.warning("Could not read %s, ignoring it: %s", gitignore_path, e)
        return IgnoreRules()
    rules = IgnoreRules(lines)
    log.debug("Loaded %d ignore patterns from %s", len(rules), gitignore_path)
    return rules


# Directory traversal
@dataclass(frozen=True)
class Entry:
    path: Path
    relative: Path
    is_dir: bool
    depth: int


def should_traverse(entry: Entry, rules: IgnoreRules, config: Config) -> bool:
    """Hidden-file and ignore-rule check; a rejected directory is never descended into."""
    if entry.depth == 0:
        return True
    if config.ignore_hidden and entry.path.name.startswith("."):
        return False
    if config.respect_gitignore and rules.is_ignored(entry.relative.as_posix(), entry.is_dir):
        return False
    return True


def _scan(directory: Path) -> List[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda e: e.name)


def walk_tree(
    root: Path,
    accept: Callable[[Entry], bool],
    log: logging.Logger = log,
) -> Iterator[Entry]:
    """
    Depth-first, pre-order walk of *root*, yielding the root entry first.

    *root* is checked eagerly so an unusable root raises
    :class:`InvalidRootError` here rather than on the first ``next()``.
    Entries rejected by *accept* are neither yielded nor descended into.
    Sub-directories that cannot be listed are logged and skipped.
    """
    if not root.exists():
        raise InvalidRootError(f"Root directory '{root}' does not exist")
    if not root.is_dir():
        raise InvalidRootError(f"Root path '{root}' is not a directory")
    try:
        children = _scan(root)
    except OSError as e:
        raise InvalidRootError(f"Could not scan directory '{root}': {e}") from e
    return _walk(root, children, accept, log)


def _walk(
    root: Path,
    children: List[os.DirEntry],
    accept: Callable[[Entry], bool],
    log: logging.Logger,
) -> Iterator[Entry]:
    top = Entry(path=root, relative=Path(), is_dir=True, depth=0)
    if not accept(top):
        return
    yield top
    yield from _walk_children(top, children, accept, log)


def _walk_children(
    parent: Entry,
    children: List[os.DirEntry],
    accept: Callable[[Entry], bool],
    log: logging.Logger,
) -> Iterator[Entry]:
    for child in children:
        try:
            is_dir = child.is_dir(follow_symlinks=False)
        except OSError as e:
            log.error("Failed to access entry %s: %s", child.path, e)
            continue
        entry = Entry(
            path=parent.path / child.name,
            relative=parent.relative / child.name,
            is_dir=is_dir,
            depth=parent.depth + 1,
        )
        if not accept(entry):
            continue
        yield entry
        if not is_dir:
            continue
        try:
            grandchildren = _scan(entry.path)
        except OSError as e:
            log.error("Failed to access entry %s: %s", entry.path, e)
            continue
        yield from _walk_children(entry, grandchildren, accept, log)


# Extension filter
def extension_of(path: PurePath) -> str:
    return path.suffix[1:]


def should_render(path: PurePath, config: Config) -> bool:
    ext = extension_of(path)
    if config.include_active and ext not in config.include:
        return False
    if ext in config.exclude:
        return False
    return True


# Reading
def read_source(path: Path) -> str:
    """Return the file's content as strict UTF-8, byte-for-byte (no newline translation)."""
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise FileReadError(f"Could not read '{path}': {e}") from e
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FileReadError(f"'{path}' is not valid UTF-8 text") from e


# Rendering
def _content_lines(content: str) -> List[str]:
    lines = content.split("\n")
    last = lines.pop()
    lines = [ln[:-1] if ln.endswith("\r") else ln for ln in lines]
    if last:
        lines.append(last)
    return lines


def number_lines(content: str) -> str:
    return "".join(
        f"{i:4} | {line}\n" for i, line in enumerate(_content_lines(content), start=1)
    )


def render_block(
    rel_path: PurePath,
    content: str,
    extension: str,
    config: Config,
) -> str:
    """
    Frame one file's content for the output stream.

    Markdown::

        ### `src/main.rs`

        ```rs
        <content>
        ```

    Text and console::

        ./src/main.rs
        ---
        <content>
        ---
    """
    body = number_lines(content) if config.line_numbers else content + "\n"
    shown = PurePath(rel_path).as_posix()
    if config.format is OutputFormat.MARKDOWN:
        return f"### `{shown}`\n\n```{extension}\n{body}```\n\n"
    return f"./{shown}\n---\n{body}---\n"
