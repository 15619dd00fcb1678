"""
This module provides the utility used to run ffmpeg and other external tools.

Commands are always passed as argument lists and executed without a shell, so
file names containing spaces, quotes or shell metacharacters reach ffmpeg
unchanged.
"""

import os
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..services.logging_service import ErrorLog


def format_cmd(cmd_list: List[str]) -> str:
    """Returns a copy-pasteable representation of a command list for logs."""
    if os.name == "nt":
        return subprocess.list2cmdline(cmd_list)
    return shlex.join(cmd_list)


def run_cmd(
    cmd_list: List[str],
    src_file_for_log: Path = Path(),
    error_log_dir_for_run_cmd: Optional[Path] = None,
    show_cmd: bool = False,
) -> Optional[subprocess.CompletedProcess]:
    """
    Executes an external command and captures its output.

    This is a wrapper around `subprocess.run` that adds logging and writes an
    `ErrorLog` record when the command cannot be started at all.

    Args:
        cmd_list: The command to execute as a list of arguments.
        src_file_for_log: The file being processed, used for logging context.
        error_log_dir_for_run_cmd: The directory where an error log should be
                                   written if the command cannot be executed.
        show_cmd: If True, the command is logged at DEBUG level before execution.

    Returns:
        A `subprocess.CompletedProcess` once the command ran, whatever its exit
        code. Returns `None` if the command could not be started (e.g. the
        executable was not found).
    """
    if not cmd_list:
        logger.error("run_cmd received an empty command list.")
        return None

    cmd_list = [str(part) for part in cmd_list]
    display_cmd_str = format_cmd(cmd_list)

    if show_cmd:
        logger.debug(f"Executing command: {display_cmd_str}")

    try:
        result = subprocess.run(
            cmd_list,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            shell=False,
        )

        if result.stdout and len(result.stdout) > 500:
            logger.trace(f"Command stdout (truncated): {result.stdout[:500]}...")
        elif result.stdout:
            logger.trace(f"Command stdout: {result.stdout}")

        # ffmpeg writes progress (-stats) to stderr even on success.
        if result.stderr and result.returncode != 0:
            logger.debug(f"Command stderr (error, rc={result.returncode}): {result.stderr}")
        elif result.stderr:
            logger.trace(f"Command stderr (non-error, rc={result.returncode}): {result.stderr}")

        return result
    except FileNotFoundError:
        logger.error(
            f"Error: Command not found ('{cmd_list[0]}'). Ensure it's in your system's PATH or configured in config.user.yaml."
        )
        if error_log_dir_for_run_cmd and src_file_for_log.name:
            ErrorLog(error_log_dir_for_run_cmd).write(
                f"Command execution error for: {src_file_for_log}",
                f"Command: {display_cmd_str}",
                "Error: Command not found (FileNotFoundError).",
            )
        return None
    except OSError as e:
        logger.error(f"Could not execute command for {src_file_for_log.name or 'N/A'}: {e}")
        if error_log_dir_for_run_cmd and src_file_for_log.name:
            ErrorLog(error_log_dir_for_run_cmd).write(
                f"Command execution error for: {src_file_for_log}",
                f"Command: {display_cmd_str}",
                f"Exception: {type(e).__name__} - {e}",
            )
        return None
