"""
Pipeline driver: walk, filter, read, render and write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO

from .core import (
    Config,
    Entry,
    FileReadError,
    IgnoreRules,
    extension_of,
    load_gitignore,
    read_source,
    render_block,
    should_render,
    should_traverse,
    walk_tree,
)
from .output import decorate_output_path, open_sink

logger = logging.getLogger("promptpack")


@dataclass
class BundleReport:
    output: Optional[Path] = None
    files_written: int = 0
    files_skipped: int = 0
    chars_written: int = 0


def run(config: Config, log: Optional[logging.Logger] = None) -> BundleReport:
    """
    Bundle every qualifying file under ``config.directory`` into one stream.

    Only setup problems (unusable root, output file or repository HEAD)
    raise; anything that goes wrong with a single file is logged and the
    file skipped.
    """
    log = log or logger

    output_path = config.output
    if config.append_date or config.append_git_hash:
        output_path = decorate_output_path(
            output_path,
            config.directory,
            append_date=config.append_date,
            append_git_hash=config.append_git_hash,
            log=log,
        )

    rules = load_gitignore(config.directory, log=log) if config.respect_gitignore else IgnoreRules()
    entries = walk_tree(
        config.directory,
        lambda entry: should_traverse(entry, rules, config),
        log=log,
    )

    report = BundleReport(output=output_path)
    own_output = output_path.resolve() if output_path is not None else None
    with open_sink(output_path, log=log) as sink:
        for entry in entries:
            _bundle_entry(entry, sink, config, report, own_output, log)

    log.info(
        "File bundling complete: %d files written, %d skipped, %d characters.",
        report.files_written,
        report.files_skipped,
        report.chars_written,
    )
    return report


def _bundle_entry(
    entry: Entry,
    sink: TextIO,
    config: Config,
    report: BundleReport,
    own_output: Optional[Path],
    log: logging.Logger,
) -> None:
    path = entry.path
    try:
        if not path.is_file():
            return
        is_own_output = own_output is not None and path.resolve() == own_output
    except OSError as e:
        log.error("Failed to access entry %s: %s", path, e)
        return
    rel = entry.relative.as_posix()

    if not should_render(path, config):
        log.debug("Filtered out by extension: %s", rel)
        return
    if is_own_output:
        log.debug("Skipping the output file itself: %s", rel)
        return

    try:
        content = read_source(path)
    except FileReadError as e:
        log.warning("Skipping file: %s", e)
        report.files_skipped += 1
        return

    block = render_block(entry.relative, content, extension_of(path), config)
    try:
        sink.write(block)
    except (OSError, UnicodeEncodeError) as e:
        log.error("Failed to write file content for %s: %s", path, e)
        report.files_skipped += 1
        return

    report.files_written += 1
    report.chars_written += len(block)
    log.debug("Added %s", rel)
