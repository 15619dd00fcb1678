"""
Defines the data structures passed between the pipeline stages.

A folder goes through three stages (convert, plan, merge). Each stage hands
its result to the next as one of the models below, and every outcome ends up
in a `FolderReport` so a run can be audited per file and per folder.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config.common import (
    FILE_STATUS_CONVERSION_FAILED,
    MERGE_STATUS_COMPLETED,
    MERGE_STATUS_FAILED,
)
from .media import AudioTrack


@dataclass(frozen=True)
class ChapterEntry:
    """One chapter of a merged file. Offsets are integer milliseconds."""

    title: str
    start: int
    end: int

    def to_dict(self) -> dict:
        return {"title": self.title, "start": self.start, "end": self.end}


@dataclass
class FolderJob:
    """
    The unit of work for one directory.

    Attributes:
        directory: The folder being processed.
        merge_enabled: False when the run was started with --no-merge.
        tracks: The folder's audio tracks in merge order, filled by the chapter planner.
    """

    directory: Path
    merge_enabled: bool = True
    tracks: List[AudioTrack] = field(default_factory=list)


@dataclass
class ChapterPlan:
    """The ordered tracks of a folder and their chapters, one per track unless an earlier merge is among them."""

    tracks: List[AudioTrack]
    chapters: List[ChapterEntry]

    @property
    def manifest(self) -> List[Path]:
        """The track paths in concatenation order."""
        return [track.path for track in self.tracks]

    @property
    def total_duration_ms(self) -> int:
        return self.chapters[-1].end if self.chapters else 0


@dataclass(frozen=True)
class MergeResult:
    """
    The outcome of a merge: the merged file on success, a reason on failure.

    Use `MergeResult.succeeded()` and `MergeResult.failed()` to build one.
    """

    output_path: Optional[Path] = None
    reason: Optional[str] = None

    @classmethod
    def succeeded(cls, output_path: Path) -> "MergeResult":
        return cls(output_path=output_path)

    @classmethod
    def failed(cls, reason: str) -> "MergeResult":
        return cls(reason=reason)

    @property
    def ok(self) -> bool:
        return self.output_path is not None


@dataclass
class FileOutcome:
    """What happened to one video during conversion."""

    source: Path
    target: Path
    status: str
    reason: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == FILE_STATUS_CONVERSION_FAILED

    def to_dict(self) -> dict:
        entry = {"source": str(self.source), "target": str(self.target), "status": self.status}
        if self.reason:
            entry["reason"] = self.reason
        return entry


@dataclass
class FolderReport:
    """Everything that happened in one folder during a run."""

    directory: Path
    file_outcomes: List[FileOutcome] = field(default_factory=list)
    merge_status: Optional[str] = None
    merged_path: Optional[Path] = None
    chapters: List[ChapterEntry] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def conversion_failures(self) -> List[FileOutcome]:
        return [outcome for outcome in self.file_outcomes if outcome.failed]

    @property
    def merged(self) -> bool:
        return self.merge_status == MERGE_STATUS_COMPLETED

    @property
    def has_failures(self) -> bool:
        return bool(self.conversion_failures) or self.merge_status == MERGE_STATUS_FAILED

    def to_dict(self) -> dict:
        entry = {
            "directory": str(self.directory),
            "files": [outcome.to_dict() for outcome in self.file_outcomes],
            "merge_status": self.merge_status,
        }
        if self.merged_path:
            entry["merged_path"] = str(self.merged_path)
        if self.chapters:
            entry["chapters"] = [chapter.to_dict() for chapter in self.chapters]
        if self.reason:
            entry["reason"] = self.reason
        return entry
