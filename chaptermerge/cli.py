"""
Command-Line Interface (CLI) setup for Chapter Merge.

This module uses Python's `argparse` to define and parse the command-line
arguments that control the application's behavior.
"""
import argparse
from pathlib import Path
from typing import List, Optional

from .config.common import DEFAULT_MAX_WORKERS, TEMP_WORK_DIR


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chaptermerge",
        description=(
            "Convert every video under a directory to MP3 and merge the MP3s of each "
            "folder into one file with a chapter per original file."
        ),
    )
    parser.add_argument(
        "root", nargs="?", default=".",
        help="Directory to process recursively (default: current directory).",
    )
    parser.add_argument(
        "--no-merge", action="store_true", help="Only convert; do not merge folders."
    )
    parser.add_argument(
        "--processes", type=int, default=DEFAULT_MAX_WORKERS,
        help=f"Number of folders processed concurrently (default: {DEFAULT_MAX_WORKERS}).",
    )
    parser.add_argument(
        "--temp-work-dir", type=str, default=None,
        help="Directory for merge scratch files. By default they are written inside each folder.",
    )
    parser.add_argument(
        "--report", type=str, default=None,
        help="Write a YAML report of every file and folder outcome to this path.",
    )
    parser.add_argument(
        "--error-log-dir", type=str, default=None,
        help="Append failure records to error.txt in this directory.",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level."
    )
    parser.add_argument(
        "--debug", action="store_true", help="Shortcut for --log-level DEBUG; also logs every ffmpeg command."
    )
    return parser


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for Chapter Merge.

    Args:
        argv: The arguments to parse. Defaults to `sys.argv[1:]`.

    Returns:
        argparse.Namespace: The parsed arguments. Path options are converted to
                            `Path` objects; `temp_work_dir` falls back to the
                            `paths.temp_work_dir` value of config.user.yaml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.processes < 1:
        parser.error(f"--processes must be at least 1, got {args.processes}")

    args.root = Path(args.root)
    args.report = Path(args.report) if args.report else None
    args.error_log_dir = Path(args.error_log_dir) if args.error_log_dir else None

    temp_work_dir = Path(args.temp_work_dir) if args.temp_work_dir else TEMP_WORK_DIR
    if temp_work_dir:
        if not temp_work_dir.is_dir():
            try:
                temp_work_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                parser.error(f"The temporary working directory '{temp_work_dir}' could not be created: {e}")
        temp_work_dir = temp_work_dir.resolve()
    args.temp_work_dir = temp_work_dir

    if args.debug:
        args.log_level = "DEBUG"

    return args
