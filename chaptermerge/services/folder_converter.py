"""
Converts the videos of a single folder to audio tracks.

Only the folder itself is scanned, never its subfolders: the tree walker hands
every directory of the tree to its own converter. Conversion is idempotent, a
video whose audio track already exists is skipped and the existing track is
kept. So is a video whose audio is already a chapter of the folder's merged
file. A failed conversion is recorded for that file only and the converter
moves on to the next video.
"""

from pathlib import Path
from typing import List, Optional, Set

from loguru import logger

from ..config.audio import AUDIO_EXTENSION, AUDIO_FORMAT
from ..config.common import (
    FILE_STATUS_CONVERSION_FAILED,
    FILE_STATUS_CONVERTED,
    FILE_STATUS_SKIPPED_EXISTING,
    FILE_STATUS_SKIPPED_MERGED,
)
from ..domain.exceptions import ConversionFailureException, ProbeFailureException
from ..domain.media import AudioTrack, MediaFile, is_video_file, merged_output_path
from ..domain.models import FileOutcome
from .transcoder import Transcoder


class FolderConverter:
    """
    Converts every eligible video directly inside `directory`.

    Attributes:
        directory (Path): The folder to convert.
        transcoder (Transcoder): Performs the actual conversions.
        outcomes (List[FileOutcome]): One entry per video, filled by `run()`.
        tracks (List[AudioTrack]): The converted or pre-existing tracks, filled by `run()`.
    """

    def __init__(self, directory: Path, transcoder: Transcoder):
        self.directory = directory.resolve()
        self.transcoder = transcoder
        self.outcomes: List[FileOutcome] = []
        self.tracks: List[AudioTrack] = []
        self._merged_titles: Optional[Set[str]] = None

    @property
    def merged_path(self) -> Path:
        return merged_output_path(self.directory)

    def merged_titles(self) -> Set[str]:
        """
        The chapter titles of the folder's merged file, read once per run.

        Empty when there is no merged file or its chapters cannot be read, in
        which case every video without an audio track is converted.
        """
        if self._merged_titles is None:
            self._merged_titles = set()
            if self.merged_path.is_file():
                try:
                    chapters = self.transcoder.probe_chapters(self.merged_path)
                except ProbeFailureException as e:
                    logger.warning(f"Could not read chapters of {self.merged_path}: {e}")
                else:
                    self._merged_titles = {chapter.title for chapter in chapters}
        return self._merged_titles

    def already_merged(self, media_file: MediaFile) -> bool:
        """
        Tells whether the audio of `media_file` was merged by an earlier run.

        A successful merge deletes the per-file tracks, so their absence alone
        says nothing. A video counts as merged when the folder's merged file
        holds a chapter titled after it.
        """
        return media_file.stem in self.merged_titles()

    def discover_media_files(self) -> List[MediaFile]:
        """Lists the videos of the folder (non-recursive), sorted by file name."""
        try:
            entries = list(self.directory.iterdir())
        except OSError as e:
            logger.error(f"Cannot list folder {self.directory}: {e}")
            return []
        return [MediaFile(p) for p in sorted(entries, key=lambda p: p.name) if is_video_file(p)]

    def convert_one(self, media_file: MediaFile) -> FileOutcome:
        """
        Converts a single video unless its audio track already exists.

        A `ConversionFailureException` is turned into a failed outcome and any
        partial output ffmpeg left behind is removed, so the next run retries
        the file instead of skipping it.
        """
        target = media_file.audio_path(AUDIO_EXTENSION)

        if target.exists():
            logger.info(f"Skipping conversion, output file already exists: {target}")
            self.tracks.append(AudioTrack(target, source=media_file))
            return FileOutcome(media_file.path, target, FILE_STATUS_SKIPPED_EXISTING)

        if self.already_merged(media_file):
            logger.info(f"Skipping conversion, already part of {self.merged_path.name}: {media_file.path}")
            return FileOutcome(media_file.path, self.merged_path, FILE_STATUS_SKIPPED_MERGED)

        logger.info(f"Converting file: {media_file.path}")
        try:
            output_path = self.transcoder.convert(media_file.path, AUDIO_FORMAT)
        except ConversionFailureException as e:
            logger.error(f"Conversion failed for {media_file.path}: {e}")
            self._remove_partial_output(target)
            return FileOutcome(media_file.path, target, FILE_STATUS_CONVERSION_FAILED, reason=str(e))

        logger.info(f"Converted {media_file.filename} -> {output_path.name}")
        self.tracks.append(AudioTrack(output_path, source=media_file))
        return FileOutcome(media_file.path, output_path, FILE_STATUS_CONVERTED)

    @staticmethod
    def _remove_partial_output(target: Path):
        if not target.exists():
            return
        try:
            target.unlink()
            logger.debug(f"Removed partial output {target}")
        except OSError as e:
            logger.warning(f"Could not remove partial output {target}: {e}")

    def run(self) -> List[FileOutcome]:
        """Converts all videos of the folder and returns one outcome per video."""
        logger.info(f"Converting video files to {AUDIO_FORMAT.upper()} in folder: {self.directory}")
        self.outcomes = []
        self.tracks = []
        self._merged_titles = None
        for media_file in self.discover_media_files():
            self.outcomes.append(self.convert_one(media_file))

        failed = sum(1 for outcome in self.outcomes if outcome.status == FILE_STATUS_CONVERSION_FAILED)
        if failed:
            logger.warning(f"{failed} of {len(self.outcomes)} conversion(s) failed in folder: {self.directory}")
        return self.outcomes
