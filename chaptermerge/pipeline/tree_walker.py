import concurrent.futures
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.common import (
    DEFAULT_MAX_WORKERS,
    FILE_STATUS_CONVERTED,
    MERGE_STATUS_ABORTED,
    MERGE_STATUS_COMPLETED,
    MERGE_STATUS_DISABLED,
    MERGE_STATUS_FAILED,
    MERGE_STATUS_SKIPPED,
)
from ..domain.exceptions import InvalidRootException, ProbeFailureException
from ..domain.models import FolderJob, FolderReport
from ..services.chapter_planner import ChapterPlanner
from ..services.folder_converter import FolderConverter
from ..services.logging_service import ErrorLog, ReportLog
from ..services.merger import Merger
from ..services.transcoder import FFmpegTranscoder, Transcoder
from ..utils.format_utils import format_timedelta


class TreeWalker:
    """
    Runs the convert, plan and merge stages for every directory under `root`.

    Directories are independent units of work, so they are processed
    concurrently on a thread pool of `max_workers` threads. Inside a directory
    the stages run one after another. A failure is confined to the directory it
    happened in.

    `request_stop()` (wired to SIGINT/SIGTERM by the entry point) keeps folders
    that have not started from starting. A folder already in progress finishes
    its current stage and skips the remaining ones.
    """

    def __init__(
        self,
        root: Path = Path("."),
        merge_enabled: bool = True,
        transcoder: Optional[Transcoder] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        temp_work_dir: Optional[Path] = None,
        report_path: Optional[Path] = None,
        error_log_dir: Optional[Path] = None,
    ):
        if not root.is_dir():
            raise InvalidRootException(f"'{root}' is not a valid directory.")
        self.root: Path = root.resolve()
        self.merge_enabled = merge_enabled
        self.transcoder: Transcoder = transcoder or FFmpegTranscoder(error_log_dir=error_log_dir)
        self.max_workers = max(1, max_workers)
        self.temp_work_dir = temp_work_dir
        self.report_path = report_path
        self.error_log_dir = error_log_dir
        self._stop_event = threading.Event()

    def request_stop(self):
        if not self._stop_event.is_set():
            logger.warning("Stop requested. Folders in progress will finish their current stage.")
        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def discover_directories(self) -> List[Path]:
        """Lists the root and every directory below it, each exactly once."""
        discovered = {self.root}
        for path in self.root.rglob("*"):
            if path.is_dir() and not path.is_symlink():
                discovered.add(path.resolve())
        return sorted(discovered)

    def process_folder(self, directory: Path) -> FolderReport:
        """Runs the stages for one directory and reports what happened."""
        report = FolderReport(directory=directory)
        if self.stop_requested:
            report.merge_status = MERGE_STATUS_ABORTED
            return report

        logger.info(f"Processing folder: {directory}")
        job = FolderJob(directory=directory, merge_enabled=self.merge_enabled)

        converter = FolderConverter(directory, self.transcoder)
        report.file_outcomes = converter.run()

        if not job.merge_enabled:
            logger.info(f"Skipping merging for folder: {directory}")
            report.merge_status = MERGE_STATUS_DISABLED
            return report

        if self.stop_requested:
            logger.warning(f"Stop requested, not merging folder: {directory}")
            report.merge_status = MERGE_STATUS_ABORTED
            return report

        planner = ChapterPlanner(job, self.transcoder)
        try:
            plan = planner.plan(known_tracks=converter.tracks)
        except ProbeFailureException as e:
            logger.error(f"Could not plan chapters for folder {directory}, merge aborted: {e}")
            report.merge_status = MERGE_STATUS_FAILED
            report.reason = str(e)
            return report

        if plan is None:
            report.merge_status = MERGE_STATUS_SKIPPED
            return report

        if self.stop_requested:
            logger.warning(f"Stop requested, not merging folder: {directory}")
            report.merge_status = MERGE_STATUS_ABORTED
            return report

        result = Merger(job, self.transcoder, temp_work_dir=self.temp_work_dir).merge(plan)
        if result.ok:
            report.merge_status = MERGE_STATUS_COMPLETED
            report.merged_path = result.output_path
            report.chapters = plan.chapters
        else:
            report.merge_status = MERGE_STATUS_FAILED
            report.reason = result.reason
        return report

    def _record_failures(self, report: FolderReport):
        if not self.error_log_dir or not report.has_failures:
            return
        messages = [f"Folder: {report.directory}"]
        for outcome in report.conversion_failures:
            messages.append(f"Conversion failed: {outcome.source} ({outcome.reason})")
        if report.merge_status == MERGE_STATUS_FAILED:
            messages.append(f"Merge failed: {report.reason}")
        ErrorLog(self.error_log_dir).write(*messages)

    def run(self) -> List[FolderReport]:
        """
        Processes every directory of the tree.

        Returns:
            One `FolderReport` per directory, in directory order. Errors never
            propagate out of this method.
        """
        started = datetime.now()
        directories = self.discover_directories()
        logger.info(f"Processing source directory: {self.root} ({len(directories)} folder(s))")
        if not self.merge_enabled:
            logger.info("Merging is disabled.")
        logger.debug(f"Using {self.max_workers} worker thread(s).")

        reports = {}
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="folder"
        ) as executor:
            futures = {
                executor.submit(self.process_folder, directory): directory
                for directory in directories
            }
            for future in concurrent.futures.as_completed(futures):
                directory = futures[future]
                try:
                    reports[directory] = future.result()
                except Exception as exc:
                    logger.opt(exception=exc).error(f"Unexpected error while processing folder {directory}")
                    reports[directory] = FolderReport(
                        directory=directory,
                        merge_status=MERGE_STATUS_FAILED,
                        reason=f"{type(exc).__name__}: {exc}",
                    )

        ordered_reports = [reports[directory] for directory in directories]
        for report in ordered_reports:
            self._record_failures(report)
        if self.report_path:
            ReportLog(self.report_path).write(*(report.to_dict() for report in ordered_reports))

        self._log_summary(ordered_reports, datetime.now() - started)
        return ordered_reports

    @staticmethod
    def _log_summary(reports: List[FolderReport], elapsed):
        converted = sum(1 for r in reports for o in r.file_outcomes if o.status == FILE_STATUS_CONVERTED)
        failed_files = sum(len(r.conversion_failures) for r in reports)
        merged = sum(1 for r in reports if r.merged)
        failed_merges = sum(1 for r in reports if r.merge_status == MERGE_STATUS_FAILED)
        logger.info(
            f"{len(reports)} folder(s): {converted} converted, {failed_files} conversion failure(s), "
            f"{merged} merged, {failed_merges} merge failure(s) in {format_timedelta(elapsed)}"
        )
