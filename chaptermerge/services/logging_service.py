"""
This module provides classes for writing report files next to console logging.

Errors are appended to a human-readable text file (ErrorLog), while the
outcome of every folder in a run can be written as a machine-readable YAML
report (ReportLog), so an operator can audit afterwards which files were
converted, skipped or failed and which folders were merged.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List

import yaml
from loguru import logger

from ..config.common import ERROR_LOG_FILE_NAME


class Log:
    """
    A base class for report files.

    It resolves the file location and makes sure its directory exists.
    """

    # Separator between entries of text-based logs.
    linesep_marker: str = "=" * 50

    def __init__(self, log_base_path: Path):
        """
        Args:
            log_base_path: A directory to create the log in, or the path of the
                           log file itself (its parent is then used).
        """
        self.log_file_path: Path
        if log_base_path.is_dir() or not log_base_path.suffix:
            self.log_dir: Path = log_base_path.resolve()
        else:
            self.log_dir: Path = log_base_path.parent.resolve()
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, *args, **kwargs):
        raise NotImplementedError("Subclasses must implement the write() method.")


class ErrorLog(Log):
    """
    Appends error records to a plain text file.

    Each call adds the given messages followed by a separator line, giving a
    chronological record of the failures of one or more runs.
    """

    def __init__(self, error_log_dir: Path, filename: str = ERROR_LOG_FILE_NAME):
        super().__init__(error_log_dir)
        self.log_file_path = self.log_dir / filename

    def write(self, *error_messages: str):
        """
        Writes one or more error messages to the log file.

        Args:
            *error_messages: The lines of the error record.
        """
        if not error_messages:
            return

        content_to_write = "\n".join(error_messages) + "\n" + self.linesep_marker + "\n"

        try:
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content_to_write)
        except OSError as e:
            # Fall back to the console so the record is not lost.
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            logger.error("Original error messages attempted to log:")
            for msg in error_messages:
                logger.error(f"  - {msg}")


class ReportLog(Log):
    """
    Structured YAML report of a run, one entry per folder.

    The file always holds a YAML list. Entries from earlier runs are kept, new
    entries get the next free `index`.
    """

    def __init__(self, report_path: Path):
        super().__init__(report_path)
        if report_path.suffix:
            self.log_file_path = report_path.resolve()
        else:
            self.log_file_path = self.log_dir / "chaptermerge_report.yaml"
        self.log_entries: List[Dict] = []

    def _load(self) -> List[Dict]:
        if not self.log_file_path.is_file():
            return []
        try:
            with self.log_file_path.open("r", encoding="utf-8") as f:
                loaded_entries = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error reading/parsing report {self.log_file_path}: {e}. Starting a new report.")
            return []
        if isinstance(loaded_entries, list):
            return loaded_entries
        if loaded_entries is not None:
            logger.warning(f"Report {self.log_file_path} contained unexpected data. Starting a new report.")
        return []

    def write(self, *new_entries: dict):
        """
        Appends entries to the report file.

        Each entry gets a sequential `index` and, unless it already has one, an
        `ended_datetime` timestamp.

        Args:
            *new_entries: Dictionaries describing one folder's outcome each.
        """
        if not new_entries:
            return

        self.log_entries = self._load()
        current_max_index = max(
            (entry.get("index", 0) for entry in self.log_entries if isinstance(entry, dict)),
            default=0,
        )
        now = datetime.now().isoformat(timespec="seconds")
        for offset, entry in enumerate(new_entries, start=1):
            if not isinstance(entry, dict):
                logger.error("ReportLog.write expects dictionaries as entries.")
                continue
            entry = {"index": current_max_index + offset, **entry}
            entry.setdefault("ended_datetime", now)
            self.log_entries.append(entry)

        try:
            with self.log_file_path.open("w", encoding="utf-8") as f:
                yaml.dump(
                    self.log_entries,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                    indent=4,
                    width=220,
                )
        except OSError as e:
            logger.error(f"Failed to write report {self.log_file_path}: {e}")
