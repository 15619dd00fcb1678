"""Shared fixtures: a filesystem-backed fake transcoder."""

import threading
from pathlib import Path

import pytest
from loguru import logger

from chaptermerge.domain.exceptions import (
    ConversionFailureException,
    MergeFailureException,
    ProbeFailureException,
)
from chaptermerge.domain.models import ChapterEntry
from chaptermerge.services.transcoder import Transcoder


class FakeTranscoder(Transcoder):
    """
    Creates real files instead of running ffmpeg.

    durations: audio file name -> seconds returned by probe_duration.
    fail_convert: video file names whose conversion fails.
    partial_convert: when True, a failing conversion leaves a truncated output behind.
    fail_probe: audio file names whose duration or chapter probe fails.
    fail_concat: when True, every concatenation fails. A successful one writes
                 the ffmetadata chapter document as the merged file's content.
    """

    def __init__(
        self,
        durations=None,
        fail_convert=(),
        partial_convert=False,
        fail_probe=(),
        fail_concat=False,
        default_duration=1.0,
    ):
        self.durations = dict(durations or {})
        self.fail_convert = set(fail_convert)
        self.partial_convert = partial_convert
        self.fail_probe = set(fail_probe)
        self.fail_concat = fail_concat
        self.default_duration = default_duration
        self.converted = []
        self.probed = []
        self.chapter_probes = []
        self.concatenations = []
        self._lock = threading.Lock()

    def convert(self, source: Path, target_format: str = "mp3") -> Path:
        destination = source.with_suffix(f".{target_format}")
        with self._lock:
            self.converted.append(source)
        if source.name in self.fail_convert:
            if self.partial_convert:
                destination.write_bytes(b"partial")
            raise ConversionFailureException(f"forced failure for {source.name}")
        destination.write_bytes(b"audio:" + source.name.encode("utf-8"))
        return destination

    def probe_duration(self, path: Path) -> float:
        with self._lock:
            self.probed.append(path)
        if path.name in self.fail_probe:
            raise ProbeFailureException(f"forced probe failure for {path.name}")
        return self.durations.get(path.name, self.default_duration)

    def concatenate(self, manifest_path: Path, chapter_metadata_path: Path, output_path: Path) -> None:
        record = {
            "manifest": manifest_path,
            "manifest_text": manifest_path.read_text(encoding="utf-8"),
            "chapters": chapter_metadata_path,
            "chapters_text": chapter_metadata_path.read_text(encoding="utf-8"),
            "output": output_path,
        }
        with self._lock:
            self.concatenations.append(record)
        if self.fail_concat:
            output_path.write_bytes(b"partial merge")
            raise MergeFailureException(f"forced merge failure for {output_path.name}")
        # The merged file carries its chapter document so probe_chapters can read it back.
        output_path.write_text(record["chapters_text"], encoding="utf-8")

    def probe_chapters(self, path: Path) -> list:
        with self._lock:
            self.chapter_probes.append(path)
        if path.name in self.fail_probe:
            raise ProbeFailureException(f"forced chapter probe failure for {path.name}")
        text = path.read_text(encoding="utf-8", errors="replace")
        if not text.startswith(";FFMETADATA1"):
            return []
        chapters = []
        for block in text.split("[CHAPTER]")[1:]:
            fields = dict(line.split("=", 1) for line in block.strip().splitlines() if "=" in line)
            chapters.append(ChapterEntry(fields["title"], int(fields["START"]), int(fields["END"])))
        return chapters


@pytest.fixture
def fake_transcoder():
    return FakeTranscoder()


@pytest.fixture
def make_files():
    def _make(directory: Path, *names: str) -> list:
        directory.mkdir(parents=True, exist_ok=True)
        paths = []
        for name in names:
            path = directory / name
            path.write_bytes(b"data:" + name.encode("utf-8"))
            paths.append(path)
        return paths

    return _make


@pytest.fixture
def caplog_loguru():
    """Collects loguru messages emitted during the test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
