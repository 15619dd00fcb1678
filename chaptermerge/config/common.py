"""
Common configuration settings used throughout the application.

This module contains globally shared configuration settings and constants:
logging, worker pool sizing, scratch file naming and the outcome statuses
reported for every file and folder. It also handles the loading of
user-specific configuration from an external YAML file, so tool locations can
be customized without modifying the source code.
"""
import os
from pathlib import Path

import yaml
from loguru import logger

# --- User-Defined Path Configuration ---
# This block loads user-specific paths from a 'config.user.yaml' file located
# at the project root, or from the file named by CHAPTERMERGE_CONFIG.

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = Path(
    os.environ.get("CHAPTERMERGE_CONFIG", PROJECT_ROOT / "config.user.yaml")
)

# The directory containing the ffmpeg and ffprobe executables. If not provided,
# the executables are expected on the system's PATH.
MODULE_PATH: Path | None = None

# The directory where scratch files (concat manifest, chapter metadata) are
# written. None means each folder's scratch files live in that folder.
TEMP_WORK_DIR: Path | None = None

if USER_CONFIG_PATH.is_file():
    try:
        with USER_CONFIG_PATH.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
        if user_config and "paths" in user_config:
            paths_config = user_config.get("paths") or {}
            ffmpeg_dir_str = paths_config.get("ffmpeg_dir")
            temp_work_dir_str = paths_config.get("temp_work_dir")

            if ffmpeg_dir_str:
                MODULE_PATH = Path(ffmpeg_dir_str)
            if temp_work_dir_str:
                TEMP_WORK_DIR = Path(temp_work_dir_str)
    except Exception as e:
        logger.warning(f"Could not load or parse '{USER_CONFIG_PATH}': {e}")
else:
    logger.debug(f"User config '{USER_CONFIG_PATH}' not found. Relying on system PATH for executables.")


# --- Logging Configuration ---

# The format string for the Loguru logger. Thread name is included because
# folders are processed concurrently.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{thread.name} - <level>{message}</level>"
)


# --- Worker Pool ---

# ffmpeg already multithreads each call (-threads 0), so the folder-level pool
# stays small.
DEFAULT_MAX_WORKERS = max(1, min(4, os.cpu_count() or 1))


# --- Scratch Files ---
# Transient per-folder files handed to ffmpeg during a merge. They are removed
# before the folder's processing finishes, whatever the outcome.

MANIFEST_FILE_NAME = ".chaptermerge_files.txt"
CHAPTERS_FILE_NAME = ".chaptermerge_chapters.txt"

# Prefix for the merged output while ffmpeg is still writing it.
MERGE_TEMP_PREFIX = ".chaptermerge_merging_"

# Used as the merged file name when the folder has no name (filesystem root).
FALLBACK_MERGED_NAME = "merged"


# --- Report Files ---

ERROR_LOG_FILE_NAME = "error.txt"


# --- Outcome Status Constants ---
# Per-file conversion outcomes.

FILE_STATUS_CONVERTED = "converted"
FILE_STATUS_SKIPPED_EXISTING = "skipped_existing"
FILE_STATUS_SKIPPED_MERGED = "skipped_merged"  # Audio already lives in the folder's merged file.
FILE_STATUS_CONVERSION_FAILED = "conversion_failed"

# Per-folder merge outcomes.

MERGE_STATUS_COMPLETED = "merge_completed"
MERGE_STATUS_SKIPPED = "merge_skipped"  # Fewer than two tracks.
MERGE_STATUS_FAILED = "merge_failed"  # Probe or concatenation failure.
MERGE_STATUS_DISABLED = "merge_disabled"  # --no-merge.
MERGE_STATUS_ABORTED = "aborted"  # Stop requested before the merge stage.
