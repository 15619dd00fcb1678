"""
This module defines the Transcoder service used by every pipeline stage.

The pipeline only relies on a few operations: converting a video to audio,
probing a file's duration or embedded chapters, and concatenating audio files
with chapter metadata.
`Transcoder` describes that contract, and `FFmpegTranscoder` implements it with
ffmpeg and ffprobe (through the ffmpeg-python library). Every call blocks until
the external process has finished, and failures are raised as the typed
exceptions of `chaptermerge.domain.exceptions`.
"""

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

import ffmpeg
from loguru import logger

from ..config.audio import (
    AUDIO_FORMAT,
    AUDIO_QUALITY_SCALE,
    DEFAULT_AUDIO_ENCODER,
    FFMPEG_LOG_LEVEL,
    FFMPEG_THREADS,
    ID3V2_VERSION,
)
from ..domain.exceptions import (
    ConversionFailureException,
    MergeFailureException,
    ProbeFailureException,
)
from ..domain.media import parse_duration
from ..domain.models import ChapterEntry
from ..utils.ffmpeg_utils import run_cmd
from ..utils.module_updater import Modules


class Transcoder:
    """
    The contract between the pipeline and a media transcoding engine.

    Implementations must raise `ConversionFailureException`,
    `ProbeFailureException` or `MergeFailureException` when the corresponding
    operation fails, and must not return before the output is complete.
    """

    def convert(self, source: Path, target_format: str = AUDIO_FORMAT) -> Path:
        """Converts `source` to `target_format` next to it and returns the output path."""
        raise NotImplementedError("Subclasses must implement convert().")

    def probe_duration(self, path: Path) -> float:
        """Returns the duration of `path` in seconds."""
        raise NotImplementedError("Subclasses must implement probe_duration().")

    def probe_chapters(self, path: Path) -> List[ChapterEntry]:
        """Returns the chapters embedded in `path`, offsets in milliseconds."""
        raise NotImplementedError("Subclasses must implement probe_chapters().")

    def concatenate(self, manifest_path: Path, chapter_metadata_path: Path, output_path: Path) -> None:
        """
        Concatenates the files listed in `manifest_path`, in order, into `output_path`
        and embeds the chapters described in `chapter_metadata_path`.
        """
        raise NotImplementedError("Subclasses must implement concatenate().")


def _stderr_tail(stderr: Optional[str], max_lines: int = 5) -> str:
    if not stderr:
        return ""
    lines = [line for line in stderr.strip().splitlines() if line.strip()]
    return " | ".join(lines[-max_lines:])


class FFmpegTranscoder(Transcoder):
    """
    Transcoder backed by the ffmpeg and ffprobe executables.

    Attributes:
        ffmpeg_path (str): The ffmpeg command or absolute path.
        ffprobe_path (str): The ffprobe command or absolute path.
        error_log_dir (Path | None): Where `run_cmd` records commands that could not start.
        show_cmd (bool): Log every ffmpeg command at DEBUG level before running it.
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        ffprobe_path: Optional[str] = None,
        error_log_dir: Optional[Path] = None,
        show_cmd: bool = False,
    ):
        self.ffmpeg_path = ffmpeg_path or Modules.get_ffmpeg_path()
        self.ffprobe_path = ffprobe_path or Modules.get_ffprobe_path()
        self.error_log_dir = error_log_dir
        self.show_cmd = show_cmd

    def _base_cmd(self) -> List[str]:
        # -nostdin keeps concurrent ffmpeg processes from competing for the terminal.
        return [
            self.ffmpeg_path,
            "-nostdin",
            "-hide_banner",
            "-loglevel", FFMPEG_LOG_LEVEL,
            "-stats",
            "-y",
            "-threads", str(FFMPEG_THREADS),
        ]

    def build_convert_cmd(self, source: Path, destination: Path) -> List[str]:
        cmd_list = self._base_cmd()
        cmd_list.extend(["-i", str(source)])
        cmd_list.append("-vn")
        cmd_list.extend(["-c:a", DEFAULT_AUDIO_ENCODER, "-qscale:a", str(AUDIO_QUALITY_SCALE)])
        cmd_list.append(str(destination))
        return cmd_list

    def build_concat_cmd(self, manifest_path: Path, chapter_metadata_path: Path, output_path: Path) -> List[str]:
        cmd_list = self._base_cmd()
        # Manifest entries are absolute paths, which the concat demuxer only accepts with -safe 0.
        cmd_list.extend(["-f", "concat", "-safe", "0", "-i", str(manifest_path)])
        cmd_list.extend(["-f", "ffmetadata", "-i", str(chapter_metadata_path)])
        cmd_list.extend(["-map", "0:a", "-map_metadata", "1", "-map_chapters", "1"])
        cmd_list.extend(["-c:a", DEFAULT_AUDIO_ENCODER, "-qscale:a", str(AUDIO_QUALITY_SCALE)])
        cmd_list.extend(["-id3v2_version", str(ID3V2_VERSION), "-write_id3v2", "1"])
        cmd_list.append(str(output_path))
        return cmd_list

    def convert(self, source: Path, target_format: str = AUDIO_FORMAT) -> Path:
        """
        Extracts the audio of `source` into a sibling file with the `target_format` extension.

        Video streams are dropped (-vn) and the audio is encoded with LAME at the
        best variable quality setting.

        Raises:
            ConversionFailureException: If ffmpeg could not be run, exited with an
                                        error, or produced no output file.
        """
        destination = source.with_suffix(f".{target_format.lstrip('.')}")
        cmd_list = self.build_convert_cmd(source, destination)

        res = run_cmd(
            cmd_list,
            src_file_for_log=source,
            error_log_dir_for_run_cmd=self.error_log_dir,
            show_cmd=self.show_cmd,
        )
        if res is None:
            raise ConversionFailureException(f"ffmpeg could not be started for {source.name}")
        if res.returncode != 0:
            raise ConversionFailureException(
                f"ffmpeg exited with code {res.returncode} for {source.name}: {_stderr_tail(res.stderr)}"
            )
        if not destination.exists():
            raise ConversionFailureException(
                f"ffmpeg reported success but output file {destination.name} is missing."
            )
        return destination

    def _probe(self, path: Path, **ffprobe_kwargs) -> dict:
        try:
            return ffmpeg.probe(str(path), cmd=self.ffprobe_path, **ffprobe_kwargs)
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else e.stderr
            raise ProbeFailureException(f"ffprobe failed for {path.name}: {_stderr_tail(stderr)}") from e
        except FileNotFoundError as e:
            raise ProbeFailureException(f"ffprobe not found while probing {path.name}") from e

    def probe_chapters(self, path: Path) -> List[ChapterEntry]:
        """
        Reads the chapters of `path` with `ffprobe -show_chapters`.

        Titles come from each chapter's `title` tag, offsets from its
        `start_time`/`end_time` in seconds, truncated to milliseconds.

        Raises:
            ProbeFailureException: If ffprobe fails or reports unreadable offsets.
        """
        probe = self._probe(path, show_chapters=None)

        chapters = []
        for chapter in probe.get("chapters") or []:
            title = (chapter.get("tags") or {}).get("title", "")
            try:
                start = int(Decimal(str(chapter["start_time"])) * 1000)
                end = int(Decimal(str(chapter["end_time"])) * 1000)
            except (KeyError, InvalidOperation) as e:
                raise ProbeFailureException(f"Unreadable chapter offsets in {path.name}: {chapter}") from e
            chapters.append(ChapterEntry(title=title, start=start, end=end))
        logger.trace(f"Probed {len(chapters)} chapter(s) in {path.name}")
        return chapters

    def probe_duration(self, path: Path) -> float:
        """
        Reads the duration of `path` with ffprobe.

        The container ('format') duration is preferred, the first stream
        duration is used as a fallback.

        Raises:
            ProbeFailureException: If ffprobe fails or no positive duration is found.
        """
        probe = self._probe(path)

        duration_val = (probe.get("format") or {}).get("duration")
        if duration_val is None:
            for stream in probe.get("streams", []):
                if "duration" in stream:
                    duration_val = stream["duration"]
                    break

        if duration_val is None:
            raise ProbeFailureException(f"No duration reported for {path.name}")

        duration = parse_duration(str(duration_val))
        if duration <= 0:
            raise ProbeFailureException(f"No valid (positive) duration found for {path.name}: {duration_val}")
        logger.trace(f"Probed duration for {path.name}: {duration}s")
        return duration

    def concatenate(self, manifest_path: Path, chapter_metadata_path: Path, output_path: Path) -> None:
        """
        Joins the tracks listed in the concat manifest into `output_path` with chapters.

        Raises:
            MergeFailureException: If ffmpeg could not be run, exited with an
                                   error, or produced no output file.
        """
        cmd_list = self.build_concat_cmd(manifest_path, chapter_metadata_path, output_path)

        res = run_cmd(
            cmd_list,
            src_file_for_log=output_path,
            error_log_dir_for_run_cmd=self.error_log_dir,
            show_cmd=self.show_cmd,
        )
        if res is None:
            raise MergeFailureException(f"ffmpeg could not be started for {output_path.name}")
        if res.returncode != 0:
            raise MergeFailureException(
                f"ffmpeg exited with code {res.returncode} while merging {output_path.name}: {_stderr_tail(res.stderr)}"
            )
        if not output_path.exists():
            raise MergeFailureException(
                f"ffmpeg reported success but merged file {output_path.name} is missing."
            )
