import re
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.audio import AUDIO_EXTENSION
from ..config.common import FALLBACK_MERGED_NAME
from ..config.video import VIDEO_EXTENSIONS


def parse_duration(duration_str: str) -> float:
    """
    Parses a duration string into total seconds.

    This function handles the two duration formats ffprobe may report:
    1. A string representing a floating-point number of seconds (e.g., "3600.5").
    2. A timecode string in the format 'HH:MM:SS.sss' (e.g., "01:00:00.500").
       Hours are optional in the timecode format.

    Args:
        duration_str: The string containing the duration to parse.

    Returns:
        The total duration in seconds as a float. Returns 0.0 if parsing fails.
    """
    try:
        return float(duration_str)
    except ValueError:
        pattern = r"(?:(\d{1,2}):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)"
        match = re.fullmatch(pattern, duration_str.strip())
        if match:
            hours_str, minutes_str, seconds_str = match.groups()
            hours = int(hours_str) if hours_str else 0
            minutes = int(minutes_str)
            seconds = float(seconds_str)
            return float(hours * 3600 + minutes * 60 + seconds)
        logger.warning(f"Could not parse duration string: {duration_str}")
    return 0.0


def is_video_file(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in VIDEO_EXTENSIONS


def is_audio_file(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() == AUDIO_EXTENSION


def merged_output_path(directory: Path) -> Path:
    """
    Returns where the merged file of `directory` lives: `<dir>/<dir name>.mp3`.

    The directory is resolved first, so a root given as "." is named after the
    working directory.
    """
    directory = directory.resolve()
    name = directory.name or FALLBACK_MERGED_NAME
    return directory / f"{name}{AUDIO_EXTENSION}"


class MediaFile:
    """
    A source video discovered in a folder.

    The object is immutable once created: conversions never rename or move the
    source, they only create a sibling audio file.

    Attributes:
        path (Path): The absolute path to the video file.
        filename (str): The file name with its extension.
        stem (str): The file name without its extension.
        directory (Path): The folder containing the file.
    """

    __slots__ = ("_path",)

    def __init__(self, path: Path):
        object.__setattr__(self, "_path", path.resolve())

    def __setattr__(self, name, value):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    @property
    def path(self) -> Path:
        return self._path

    @property
    def filename(self) -> str:
        return self._path.name

    @property
    def stem(self) -> str:
        return self._path.stem

    @property
    def directory(self) -> Path:
        return self._path.parent

    def audio_path(self, extension: str = AUDIO_EXTENSION) -> Path:
        """Returns the path of the audio track this video converts to."""
        return self._path.with_suffix(extension)

    def __eq__(self, other):
        if not isinstance(other, MediaFile):
            return NotImplemented
        return self._path == other._path

    def __hash__(self):
        return hash(self._path)

    def __repr__(self):
        return f"MediaFile({str(self._path)!r})"


class AudioTrack:
    """
    An audio file that takes part in a folder's merge.

    Tracks are either produced by converting a `MediaFile` or found on disk from
    a previous run, in which case `source` is None. The duration is probed only
    when the chapter planner first asks for it and is cached afterwards.

    Attributes:
        path (Path): The absolute path to the audio file.
        source (MediaFile | None): The video this track was converted from, if known.
        title (str): The chapter title, i.e. the file name without extension.
    """

    def __init__(self, path: Path, source: Optional[MediaFile] = None):
        self.path: Path = path.resolve()
        self.source: Optional[MediaFile] = source
        self._duration: Optional[float] = None

    @property
    def title(self) -> str:
        return self.path.stem

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def duration(self) -> Optional[float]:
        """The cached duration in seconds, or None if not probed yet."""
        return self._duration

    def get_duration(self, transcoder) -> float:
        """
        Returns the track duration in seconds, probing it on first use.

        Raises:
            ProbeFailureException: If the transcoder cannot determine the duration.
        """
        if self._duration is None:
            self._duration = transcoder.probe_duration(self.path)
            logger.debug(f"Duration for {self.filename}: {self._duration}s")
        return self._duration

    def __eq__(self, other):
        if not isinstance(other, AudioTrack):
            return NotImplemented
        return self.path == other.path

    def __hash__(self):
        return hash(self.path)

    def __repr__(self):
        return f"AudioTrack({str(self.path)!r})"
