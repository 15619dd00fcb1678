"""
Plans the chapters of a folder's merged audio file.

The planner lists the audio tracks of a folder in lexicographic file name
order, probes each track's duration and folds the durations into consecutive
chapters: every chapter starts where the previous one ended and the first one
starts at 0. Offsets are integer milliseconds, each track's duration being
truncated before it is added to the running total.

Ordering is plain string order on the file name, so "10.mp3" comes before
"2.mp3" unless the names are zero-padded.

When the folder's merged file from an earlier run is one of the tracks, its
own chapters replace the single chapter it would otherwise get, so the titles
of everything merged so far survive a re-merge.
"""

from decimal import Decimal
from itertools import accumulate
from typing import Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from ..config.common import MERGE_TEMP_PREFIX
from ..domain.media import AudioTrack, is_audio_file, merged_output_path
from ..domain.models import ChapterEntry, ChapterPlan, FolderJob
from ..utils.format_utils import format_milliseconds
from .transcoder import Transcoder

# A folder needs at least this many tracks to be merged.
MIN_TRACKS_TO_MERGE = 2


def seconds_to_milliseconds(seconds: float) -> int:
    """
    Converts a duration in seconds to whole milliseconds, truncating the remainder.

    Decimal arithmetic on the shortest repr of the float keeps values such as
    1.001 s at 1001 ms instead of 1000 ms.
    """
    milliseconds = int(Decimal(str(seconds)) * 1000)
    if milliseconds < 0:
        raise ValueError(f"Duration cannot be negative: {seconds}")
    return milliseconds


def build_chapters(titled_durations: Sequence[Tuple[str, float]]) -> List[ChapterEntry]:
    """
    Folds (title, duration in seconds) pairs into consecutive chapters.

    >>> build_chapters([("1", 10.0), ("2", 5.0)])
    [ChapterEntry(title='1', start=0, end=10000), ChapterEntry(title='2', start=10000, end=15000)]
    """
    lengths = [seconds_to_milliseconds(duration) for _, duration in titled_durations]
    ends = list(accumulate(lengths))
    starts = [0] + ends[:-1]
    return [
        ChapterEntry(title=title, start=start, end=end)
        for (title, _), start, end in zip(titled_durations, starts, ends)
    ]


def splice_chapters(outer: ChapterEntry, inner: Sequence[ChapterEntry]) -> List[ChapterEntry]:
    """
    Replaces `outer` by the `inner` chapters of the file it stands for.

    Inner offsets are relative to that file. They are shifted by `outer.start`
    and clamped to `outer`, the first chapter starts where `outer` starts and
    the last one ends where `outer` ends, so the result stays contiguous.

    >>> splice_chapters(ChapterEntry("A", 5000, 9000), [ChapterEntry("1", 0, 1000), ChapterEntry("3", 1000, 4100)])
    [ChapterEntry(title='1', start=5000, end=6000), ChapterEntry(title='3', start=6000, end=9000)]
    """
    length = outer.end - outer.start
    ordered = sorted(inner, key=lambda chapter: chapter.start)
    kept = [chapter for i, chapter in enumerate(ordered) if i == 0 or chapter.start < length]
    if not kept:
        return [outer]

    starts = [outer.start] + [outer.start + max(chapter.start, 0) for chapter in kept[1:]]
    ends = starts[1:] + [outer.end]
    return [
        ChapterEntry(title=chapter.title, start=start, end=end)
        for chapter, start, end in zip(kept, starts, ends)
    ]


class ChapterPlanner:
    """
    Builds the `ChapterPlan` of one folder.

    Attributes:
        job (FolderJob): The folder being planned; its `tracks` are filled by `plan()`.
        transcoder (Transcoder): Used to probe track durations.
    """

    def __init__(self, job: FolderJob, transcoder: Transcoder):
        self.job = job
        self.transcoder = transcoder

    def discover_tracks(self, known_tracks: Iterable[AudioTrack] = ()) -> List[AudioTrack]:
        """
        Lists the audio tracks of the folder, sorted lexicographically by file name.

        Tracks already known from the conversion stage are reused so that their
        source video stays attached. Leftover temporary merge outputs are ignored.
        """
        known = {track.path: track for track in known_tracks}
        try:
            entries = list(self.job.directory.iterdir())
        except OSError as e:
            logger.error(f"Cannot list folder {self.job.directory}: {e}")
            return []

        audio_paths = sorted(
            (p for p in entries if is_audio_file(p) and not p.name.startswith(MERGE_TEMP_PREFIX)),
            key=lambda p: p.name,
        )
        tracks = []
        for path in audio_paths:
            resolved = path.resolve()
            tracks.append(known.get(resolved) or AudioTrack(resolved))
        return tracks

    def plan(self, known_tracks: Iterable[AudioTrack] = ()) -> Optional[ChapterPlan]:
        """
        Probes the folder's tracks and computes their chapters.

        Returns:
            The chapter plan, or None when the folder has fewer than two tracks
            and therefore nothing to merge.

        Raises:
            ProbeFailureException: If any track's duration, or the chapters of an
                                   earlier merged file among the tracks, cannot be
                                   probed. No partial plan is returned.
        """
        tracks = self.discover_tracks(known_tracks)
        self.job.tracks = tracks

        if len(tracks) < MIN_TRACKS_TO_MERGE:
            logger.info(
                f"Skipping merge and chapter addition for folder: {self.job.directory} (found {len(tracks)} track(s))."
            )
            return None

        titled_durations: List[Tuple[str, float]] = []
        for track in tracks:
            titled_durations.append((track.title, track.get_duration(self.transcoder)))

        chapters = build_chapters(titled_durations)
        merged_path = merged_output_path(self.job.directory)
        for i, track in enumerate(tracks):
            if track.path == merged_path:
                # An earlier merge is an input: keep its chapters instead of one chapter for the whole file.
                chapters[i:i + 1] = splice_chapters(chapters[i], self.transcoder.probe_chapters(track.path))
                break
        for chapter in chapters:
            logger.debug(
                f"Chapter '{chapter.title}': {format_milliseconds(chapter.start)} -> {format_milliseconds(chapter.end)}"
            )
        plan = ChapterPlan(tracks=tracks, chapters=chapters)
        logger.info(
            f"Planned {len(chapters)} chapters ({format_milliseconds(plan.total_duration_ms)}) "
            f"for folder: {self.job.directory}"
        )
        return plan
