"""
Main entry point for the Chapter Merge application.

This module configures logging, parses the command line, checks ffmpeg and runs
the tree walker over the requested directory. The exit status is 1 only when
the directory does not exist; failures of individual files or folders are
logged and reported but do not change it.
"""

import signal
import sys
from typing import List, Optional

from loguru import logger

from .cli import get_args
from .config.common import LOGGER_FORMAT
from .domain.exceptions import InvalidRootException
from .pipeline.tree_walker import TreeWalker
from .services.transcoder import FFmpegTranscoder, Transcoder
from .utils.module_updater import Modules


def configure_logger(level: str = "INFO"):
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOGGER_FORMAT)


def _install_stop_handlers(walker: TreeWalker) -> dict:
    """Routes SIGINT/SIGTERM to `walker.request_stop()` and returns the previous handlers."""

    def handle_signal(signum, frame):
        logger.warning(f"Received signal {signum}.")
        walker.request_stop()

    previous = {}
    for sig in (signal.SIGINT, getattr(signal, "SIGTERM", None)):
        if sig is None:
            continue
        try:
            previous[sig] = signal.signal(sig, handle_signal)
        except ValueError:
            # Only the main thread may install handlers.
            logger.debug(f"Could not install handler for signal {sig}.")
    return previous


def _restore_handlers(previous: dict):
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def main(argv: Optional[List[str]] = None, transcoder: Optional[Transcoder] = None) -> int:
    """
    Runs the conversion and merge over the directory given on the command line.

    Args:
        argv: Command-line arguments, defaults to `sys.argv[1:]`.
        transcoder: The transcoder to use; an `FFmpegTranscoder` by default.

    Returns:
        The process exit status.
    """
    args = get_args(argv)
    configure_logger(args.log_level)
    logger.debug(f"Parsed arguments: {args}")

    if transcoder is None:
        Modules.verify_ffmpeg()
        transcoder = FFmpegTranscoder(error_log_dir=args.error_log_dir, show_cmd=args.debug)

    try:
        walker = TreeWalker(
            root=args.root,
            merge_enabled=not args.no_merge,
            transcoder=transcoder,
            max_workers=args.processes,
            temp_work_dir=args.temp_work_dir,
            report_path=args.report,
            error_log_dir=args.error_log_dir,
        )
    except InvalidRootException as e:
        logger.error(f"Error: {e}")
        return 1

    previous_handlers = _install_stop_handlers(walker)
    try:
        walker.run()
    finally:
        _restore_handlers(previous_handlers)

    if walker.stop_requested:
        logger.warning("Run stopped before all folders were processed.")
    else:
        logger.success("Conversion and merging complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
