"""
Merges the audio tracks of a folder into a single chaptered file.

The merger writes two scratch files for ffmpeg (a concat manifest listing the
tracks in order, and an ffmetadata document with one chapter per track), asks
the transcoder to concatenate, and then decides what to clean up:

- on success, every track of the folder except the merged file is deleted;
- on failure, every track is left untouched.

The scratch files are removed in both cases. The merged file is written under
a temporary name first and renamed when complete, so an older merged file that
is itself one of the inputs is never truncated while ffmpeg reads it.
"""

import hashlib
import os
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.audio import CHAPTER_TIMEBASE, FFMETADATA_HEADER
from ..config.common import CHAPTERS_FILE_NAME, MANIFEST_FILE_NAME, MERGE_TEMP_PREFIX
from ..domain.exceptions import MergeFailureException
from ..domain.media import AudioTrack, merged_output_path
from ..domain.models import ChapterEntry, ChapterPlan, FolderJob, MergeResult
from ..utils.format_utils import formatted_size
from .chapter_planner import MIN_TRACKS_TO_MERGE
from .transcoder import Transcoder


def escape_manifest_path(path: Path) -> str:
    """Quotes a path for an ffmpeg concat manifest line (`file '...'`)."""
    return "'" + str(path).replace("'", "'\\''") + "'"


def escape_ffmetadata_value(value: str) -> str:
    """Escapes the characters the ffmetadata format treats specially."""
    escaped = []
    for char in value:
        if char in "=;#\\\n":
            escaped.append("\\")
        escaped.append(char)
    return "".join(escaped)


def render_manifest(manifest: List[Path]) -> str:
    return "".join(f"file {escape_manifest_path(path)}\n" for path in manifest)


def render_chapter_metadata(chapters: List[ChapterEntry]) -> str:
    lines = [FFMETADATA_HEADER]
    for chapter in chapters:
        lines.extend(
            [
                "",
                "[CHAPTER]",
                f"TIMEBASE={CHAPTER_TIMEBASE}",
                f"START={chapter.start}",
                f"END={chapter.end}",
                f"title={escape_ffmetadata_value(chapter.title)}",
            ]
        )
    return "\n".join(lines) + "\n"


class Merger:
    """
    Concatenates one folder's tracks into `<folder name>.mp3` in that folder.

    Attributes:
        job (FolderJob): The folder being merged.
        transcoder (Transcoder): Performs the concatenation.
        temp_work_dir (Path | None): Where scratch files go. When None they are
                                     written inside the folder itself.
    """

    def __init__(self, job: FolderJob, transcoder: Transcoder, temp_work_dir: Optional[Path] = None):
        self.job = job
        self.transcoder = transcoder
        self.temp_work_dir = temp_work_dir.resolve() if temp_work_dir else None

    @property
    def merged_output_path(self) -> Path:
        return merged_output_path(self.job.directory)

    @property
    def temp_output_path(self) -> Path:
        merged = self.merged_output_path
        return merged.with_name(f"{MERGE_TEMP_PREFIX}{merged.name}")

    def _scratch_dir_and_prefix(self):
        if self.temp_work_dir is None:
            return self.job.directory, ""
        # Folders share the work dir, so the names carry a digest of the folder path.
        digest = hashlib.md5(str(self.job.directory.resolve()).encode("utf-8")).hexdigest()
        return self.temp_work_dir, f"{digest}_"

    @property
    def manifest_path(self) -> Path:
        scratch_dir, prefix = self._scratch_dir_and_prefix()
        return scratch_dir / f"{prefix}{MANIFEST_FILE_NAME}"

    @property
    def chapters_path(self) -> Path:
        scratch_dir, prefix = self._scratch_dir_and_prefix()
        return scratch_dir / f"{prefix}{CHAPTERS_FILE_NAME}"

    def write_scratch_files(self, plan: ChapterPlan):
        if self.temp_work_dir is not None:
            self.temp_work_dir.mkdir(parents=True, exist_ok=True)
        self.manifest_path.write_text(render_manifest(plan.manifest), encoding="utf-8")
        self.chapters_path.write_text(render_chapter_metadata(plan.chapters), encoding="utf-8")

    def remove_scratch_files(self):
        for scratch_path in (self.manifest_path, self.chapters_path, self.temp_output_path):
            try:
                scratch_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove scratch file {scratch_path}: {e}")

    def delete_merged_tracks(self, tracks: List[AudioTrack], merged_path: Path) -> List[Path]:
        """
        Deletes the per-file tracks that now live in the merged file.

        The merged file is excluded by resolved path, so it is kept even if it
        was one of the inputs or is referenced through a different path form.
        """
        merged_resolved = merged_path.resolve()
        deleted = []
        for track in tracks:
            track_path = track.path.resolve()
            if track_path == merged_resolved:
                continue
            try:
                track_path.unlink()
                logger.info(f"Deleting {track_path}")
                deleted.append(track_path)
            except FileNotFoundError:
                logger.debug(f"Track already gone: {track_path}")
            except OSError as e:
                logger.error(f"Could not delete merged track {track_path}: {e}")
        return deleted

    def merge(self, plan: ChapterPlan) -> MergeResult:
        """
        Concatenates the planned tracks and cleans up according to the outcome.

        Returns:
            A successful `MergeResult` with the merged file path, or a failed one
            with the reason. Concatenation errors never propagate.

        Raises:
            ValueError: If the plan has fewer than two tracks.
        """
        if len(plan.tracks) < MIN_TRACKS_TO_MERGE:
            raise ValueError(f"A merge needs at least {MIN_TRACKS_TO_MERGE} tracks, got {len(plan.tracks)}")

        merged_path = self.merged_output_path
        temp_output = self.temp_output_path
        logger.info(f"Merging {len(plan.tracks)} tracks and adding chapters in folder: {self.job.directory}")

        try:
            self.write_scratch_files(plan)
            self.transcoder.concatenate(self.manifest_path, self.chapters_path, temp_output)
            os.replace(temp_output, merged_path)
        except (MergeFailureException, OSError) as e:
            logger.error(f"Error merging tracks in folder: {self.job.directory}: {e}")
            return MergeResult.failed(str(e))
        finally:
            self.remove_scratch_files()

        logger.info(f"Final merged output: {merged_path} ({formatted_size(merged_path.stat().st_size)})")
        self.delete_merged_tracks(plan.tracks, merged_path)
        return MergeResult.succeeded(merged_path)
