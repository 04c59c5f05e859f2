"""
CLI entrypoint for promptpack package.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .bundle import run
from .core import Config, OutputFormat, PromptPackError, infer_format
from .logs import setup_logging


def _extension_list(value: str) -> List[str]:
    """Split ``"rs, .toml"`` into ``["rs", "toml"]``; ``""`` stays ``[""]``."""
    items = []
    for item in value.split(","):
        item = item.strip()
        if item.startswith("."):
            item = item[1:]
        items.append(item)
    return items


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="promptpack",
        description="Bundle the text files of a directory tree into one prompt-ready document.",
    )
    p.add_argument("directory", nargs="?", type=Path, default=Path("."), help="Directory to walk")
    p.add_argument("-o", "--output", type=Path, help="Output file (default: stdout)")
    p.add_argument(
        "-i",
        "--include",
        type=_extension_list,
        default=[],
        help="Comma-separated extensions to include, without dots (default: all)",
    )
    p.add_argument(
        "-e",
        "--exclude",
        type=_extension_list,
        default=[],
        help="Comma-separated extensions to exclude, without dots",
    )
    p.add_argument(
        "--format",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.CONSOLE.value,
        help="Output layout; console is upgraded to match a .md or .txt output file",
    )
    p.add_argument("--append-date", action="store_true", help="Insert _YYYYMMDD into the output filename")
    p.add_argument(
        "--append-git-hash",
        action="store_true",
        help="Insert the short HEAD commit id into the output filename",
    )
    p.add_argument("--line-numbers", action="store_true", help="Prefix every line with its number")
    p.add_argument("--ignore-hidden", action="store_true", help="Skip dotfiles and dot-directories")
    p.add_argument(
        "--respect-gitignore",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Honor the root .gitignore (default: on)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def build_config(ns: argparse.Namespace) -> Config:
    return Config(
        directory=ns.directory,
        output=ns.output,
        include=tuple(ns.include),
        exclude=tuple(ns.exclude),
        format=infer_format(OutputFormat(ns.format), ns.output),
        append_date=ns.append_date,
        append_git_hash=ns.append_git_hash,
        line_numbers=ns.line_numbers,
        ignore_hidden=ns.ignore_hidden,
        respect_gitignore=ns.respect_gitignore,
    )


def main(argv: Optional[List[str]] = None) -> None:
    try:
        ns = _parse_args(argv)
        log = setup_logging(ns.verbose)
        config = build_config(ns)

        try:
            run(config, log=log)
        except PromptPackError as e:
            log.error("Error: %s", e)
            sys.exit(1)

    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)

if __name__ == "__main__":
    main()
