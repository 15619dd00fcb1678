"""Tests for the ffmpeg-backed transcoder, with the external processes stubbed out."""

import subprocess

import ffmpeg
import pytest

from chaptermerge.domain.exceptions import (
    ConversionFailureException,
    MergeFailureException,
    ProbeFailureException,
)
from chaptermerge.domain.models import ChapterEntry
from chaptermerge.services import transcoder as transcoder_module
from chaptermerge.services.transcoder import FFmpegTranscoder
from chaptermerge.utils import ffmpeg_utils
from chaptermerge.utils.ffmpeg_utils import format_cmd, run_cmd


@pytest.fixture
def transcoder():
    return FFmpegTranscoder(ffmpeg_path="ffmpeg", ffprobe_path="ffprobe")


@pytest.fixture
def fake_run_cmd(monkeypatch):
    """Replaces run_cmd; `returncode` and `write_output` control the fake ffmpeg."""
    state = {"calls": [], "returncode": 0, "write_output": True, "stderr": "", "result": "process"}

    def _run_cmd(cmd_list, src_file_for_log=None, error_log_dir_for_run_cmd=None, show_cmd=False):
        state["calls"].append(cmd_list)
        if state["result"] is None:
            return None
        if state["write_output"]:
            with open(cmd_list[-1], "wb") as f:
                f.write(b"out")
        return subprocess.CompletedProcess(cmd_list, state["returncode"], "", state["stderr"])

    monkeypatch.setattr(transcoder_module, "run_cmd", _run_cmd)
    return state


def test_convert_command_strips_video_and_uses_variable_quality(transcoder, tmp_path):
    cmd = transcoder.build_convert_cmd(tmp_path / "in.mp4", tmp_path / "in.mp3")

    assert cmd[0] == "ffmpeg"
    assert "-nostdin" in cmd
    assert cmd[cmd.index("-threads") + 1] == "0"
    assert cmd[cmd.index("-i") + 1] == str(tmp_path / "in.mp4")
    assert "-vn" in cmd
    assert cmd[cmd.index("-c:a") + 1] == "libmp3lame"
    assert cmd[cmd.index("-qscale:a") + 1] == "0"
    assert cmd[-1] == str(tmp_path / "in.mp3")


def test_concat_command_reads_manifest_and_chapters(transcoder, tmp_path):
    cmd = transcoder.build_concat_cmd(tmp_path / "files.txt", tmp_path / "chapters.txt", tmp_path / "out.mp3")

    first_input = cmd.index("-i")
    assert cmd[first_input - 4:first_input + 2] == ["-f", "concat", "-safe", "0", "-i", str(tmp_path / "files.txt")]
    second_input = cmd.index("-i", first_input + 1)
    assert cmd[second_input - 2:second_input + 2] == ["-f", "ffmetadata", "-i", str(tmp_path / "chapters.txt")]
    assert cmd[cmd.index("-map_chapters") + 1] == "1"
    assert cmd[-1] == str(tmp_path / "out.mp3")


def test_convert_returns_sibling_output(transcoder, fake_run_cmd, tmp_path):
    source = tmp_path / "it's a clip.MP4"
    source.write_bytes(b"video")

    output = transcoder.convert(source)

    assert output == tmp_path / "it's a clip.mp3"
    assert output.exists()
    # The name is passed as one argument, unquoted.
    assert str(source) in fake_run_cmd["calls"][0]


def test_convert_raises_on_nonzero_exit(transcoder, fake_run_cmd, tmp_path):
    fake_run_cmd.update(returncode=1, write_output=False, stderr="frame=1\nInvalid data found\n")
    source = tmp_path / "bad.mp4"
    source.write_bytes(b"video")

    with pytest.raises(ConversionFailureException, match="Invalid data found"):
        transcoder.convert(source)


def test_convert_raises_when_ffmpeg_cannot_start(transcoder, fake_run_cmd, tmp_path):
    fake_run_cmd["result"] = None
    with pytest.raises(ConversionFailureException, match="could not be started"):
        transcoder.convert(tmp_path / "a.mp4")


def test_convert_raises_when_output_is_missing(transcoder, fake_run_cmd, tmp_path):
    fake_run_cmd["write_output"] = False
    with pytest.raises(ConversionFailureException, match="missing"):
        transcoder.convert(tmp_path / "a.mp4")


def test_concatenate_failure_raises_merge_failure(transcoder, fake_run_cmd, tmp_path):
    fake_run_cmd.update(returncode=1, stderr="Impossible to open 'x.mp3'")
    with pytest.raises(MergeFailureException, match="Impossible to open"):
        transcoder.concatenate(tmp_path / "files.txt", tmp_path / "chapters.txt", tmp_path / "out.mp3")


def test_concatenate_success(transcoder, fake_run_cmd, tmp_path):
    transcoder.concatenate(tmp_path / "files.txt", tmp_path / "chapters.txt", tmp_path / "out.mp3")
    assert (tmp_path / "out.mp3").exists()


@pytest.mark.parametrize(
    "probe_result, expected",
    [
        ({"format": {"duration": "10.000000"}, "streams": [{"duration": "9.5"}]}, 10.0),
        ({"format": {}, "streams": [{"codec_type": "audio", "duration": "5.25"}]}, 5.25),
        ({"format": {"duration": "00:01:02.500"}}, 62.5),
    ],
)
def test_probe_duration(transcoder, monkeypatch, tmp_path, probe_result, expected):
    calls = []

    def _probe(filename, cmd="ffprobe", **kwargs):
        calls.append((filename, cmd))
        return probe_result

    monkeypatch.setattr(transcoder_module.ffmpeg, "probe", _probe)

    assert transcoder.probe_duration(tmp_path / "a.mp3") == expected
    assert calls == [(str(tmp_path / "a.mp3"), "ffprobe")]


@pytest.mark.parametrize(
    "probe_result",
    [{"format": {}, "streams": []}, {"format": {"duration": "0.0"}}, {"format": {"duration": "N/A"}}],
)
def test_probe_duration_rejects_missing_or_empty_duration(transcoder, monkeypatch, tmp_path, probe_result):
    monkeypatch.setattr(transcoder_module.ffmpeg, "probe", lambda filename, cmd="ffprobe", **kwargs: probe_result)
    with pytest.raises(ProbeFailureException):
        transcoder.probe_duration(tmp_path / "a.mp3")


def test_probe_duration_maps_ffprobe_error(transcoder, monkeypatch, tmp_path):
    def _probe(filename, cmd="ffprobe", **kwargs):
        raise ffmpeg.Error("ffprobe", b"", b"a.mp3: Invalid data found when processing input\n")

    monkeypatch.setattr(transcoder_module.ffmpeg, "probe", _probe)

    with pytest.raises(ProbeFailureException, match="Invalid data found"):
        transcoder.probe_duration(tmp_path / "a.mp3")


def test_probe_duration_maps_missing_ffprobe(transcoder, monkeypatch, tmp_path):
    def _probe(filename, cmd="ffprobe", **kwargs):
        raise FileNotFoundError(cmd)

    monkeypatch.setattr(transcoder_module.ffmpeg, "probe", _probe)

    with pytest.raises(ProbeFailureException, match="not found"):
        transcoder.probe_duration(tmp_path / "a.mp3")


def test_probe_chapters_reads_titles_and_offsets(transcoder, monkeypatch, tmp_path):
    calls = []

    def _probe(filename, cmd="ffprobe", **kwargs):
        calls.append((filename, cmd, kwargs))
        return {
            "chapters": [
                {"start_time": "0.000000", "end_time": "10.000000", "tags": {"title": "1"}},
                {"start_time": "10.000000", "end_time": "15.250000", "tags": {"title": "it's two"}},
                {"start_time": "15.250000", "end_time": "16.000000"},
            ]
        }

    monkeypatch.setattr(transcoder_module.ffmpeg, "probe", _probe)

    chapters = transcoder.probe_chapters(tmp_path / "Book.mp3")

    assert chapters == [
        ChapterEntry(title="1", start=0, end=10000),
        ChapterEntry(title="it's two", start=10000, end=15250),
        ChapterEntry(title="", start=15250, end=16000),
    ]
    assert calls == [(str(tmp_path / "Book.mp3"), "ffprobe", {"show_chapters": None})]


def test_probe_chapters_of_file_without_chapters(transcoder, monkeypatch, tmp_path):
    monkeypatch.setattr(transcoder_module.ffmpeg, "probe", lambda filename, cmd="ffprobe", **kwargs: {"streams": []})
    assert transcoder.probe_chapters(tmp_path / "Book.mp3") == []


def test_probe_chapters_rejects_missing_offsets(transcoder, monkeypatch, tmp_path):
    probe_result = {"chapters": [{"end_time": "1.0", "tags": {"title": "1"}}]}
    monkeypatch.setattr(transcoder_module.ffmpeg, "probe", lambda filename, cmd="ffprobe", **kwargs: probe_result)
    with pytest.raises(ProbeFailureException, match="Book.mp3"):
        transcoder.probe_chapters(tmp_path / "Book.mp3")


def test_probe_chapters_maps_ffprobe_error(transcoder, monkeypatch, tmp_path):
    def _probe(filename, cmd="ffprobe", **kwargs):
        raise ffmpeg.Error("ffprobe", b"", b"Book.mp3: No such file or directory\n")

    monkeypatch.setattr(transcoder_module.ffmpeg, "probe", _probe)

    with pytest.raises(ProbeFailureException, match="No such file"):
        transcoder.probe_chapters(tmp_path / "Book.mp3")


def test_format_cmd_quotes_for_display():
    assert format_cmd(["ffmpeg", "-i", "it's here.mp4"]) == "ffmpeg -i 'it'\"'\"'s here.mp4'"


def test_run_cmd_missing_executable_returns_none_and_logs(tmp_path):
    error_dir = tmp_path / "errors"

    result = run_cmd(
        ["chaptermerge-no-such-executable", "-version"],
        src_file_for_log=tmp_path / "a.mp4",
        error_log_dir_for_run_cmd=error_dir,
    )

    assert result is None
    text = (error_dir / "error.txt").read_text(encoding="utf-8")
    assert "Command not found" in text
    assert "a.mp4" in text


def test_run_cmd_passes_argument_list_without_shell(monkeypatch):
    seen = {}

    def _run(cmd_list, **kwargs):
        seen["cmd"] = cmd_list
        seen["shell"] = kwargs.get("shell")
        return subprocess.CompletedProcess(cmd_list, 0, "", "")

    monkeypatch.setattr(ffmpeg_utils.subprocess, "run", _run)

    result = run_cmd(["ffmpeg", "-i", "$(rm -rf x).mp4"])

    assert result.returncode == 0
    assert seen == {"cmd": ["ffmpeg", "-i", "$(rm -rf x).mp4"], "shell": False}
