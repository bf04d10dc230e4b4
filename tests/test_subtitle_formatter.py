"""
Tests for subtitle rendering and export.
"""

import os
import re

import pytest

from capgen.exceptions import ExportPreconditionError, FormattingError
from capgen.models import Segment
from capgen.subtitle_formatter import (
    EXPORT_MIME_TYPE,
    export_subtitles,
    format_subtitles,
    format_time_srt,
    format_time_txt,
    format_time_vtt,
    get_formatter,
)


@pytest.fixture
def sample_segments():
    return [
        Segment(7, 1.2, 4.8, "Hello everyone, welcome to the show."),
        Segment(8, 5.1, 6.3, "Thanks for coming."),
        Segment(9, 65.25, 70.5, "Hi", translated_text="Hola"),
    ]


class TestTimestampFormat:

    def test_zero(self):
        assert format_time_srt(0.0) == "00:00:00,000"

    def test_example_times(self):
        assert format_time_srt(65.25) == "00:01:05,250"
        assert format_time_srt(70.5) == "00:01:10,500"

    def test_hours(self):
        assert format_time_srt(3661.123) == "01:01:01,123"

    def test_vtt_uses_dot(self):
        assert format_time_vtt(65.25) == "00:01:05.250"

    def test_rounding_carries_into_seconds(self):
        assert format_time_srt(1.9996) == "00:00:02,000"

    def test_negative_clamps_to_zero(self):
        assert format_time_srt(-1.0) == "00:00:00,000"

    def test_txt(self):
        assert format_time_txt(65.25) == "01:05"
        assert format_time_txt(70.5) == "01:10"

    def test_txt_minutes_grow_past_an_hour(self):
        assert format_time_txt(3725.0) == "62:05"


class TestFormats:

    def test_srt_single_segment(self):
        result = format_subtitles([Segment(1, 65.25, 70.5, "Hi")], "srt")
        assert result == "1\n00:01:05,250 --> 00:01:10,500\nHi\n"

    def test_srt_renumbers_blocks(self, sample_segments):
        result = format_subtitles(sample_segments, "srt")
        blocks = result.split("\n\n")
        assert len(blocks) == 3
        assert [block.split("\n")[0] for block in blocks] == ["1", "2", "3"]

    def test_srt_block_count_matches_segments(self, sample_segments):
        result = format_subtitles(sample_segments, "srt")
        numbers = re.findall(r"^(\d+)\n\d\d:\d\d:\d\d,\d{3} --> ", result, flags=re.MULTILINE)
        assert numbers == ["1", "2", "3"]

    def test_translation_preferred(self, sample_segments):
        result = format_subtitles(sample_segments, "srt")
        assert "Hola" in result
        assert "\nHi\n" not in result

    def test_empty_translation_falls_back(self):
        result = format_subtitles([Segment(1, 0, 1, "Original", translated_text="")], "txt")
        assert result == "[00:00 - 00:01] Original"

    def test_vtt(self):
        segments = [Segment(1, 0.0, 1.5, "One"), Segment(2, 1.5, 3.0, "Two")]
        assert format_subtitles(segments, "vtt") == (
            "WEBVTT\n\n"
            "00:00:00.000 --> 00:00:01.500\nOne\n"
            "\n"
            "00:00:01.500 --> 00:00:03.000\nTwo\n"
        )

    def test_txt(self):
        assert format_subtitles([Segment(1, 65.25, 70.5, "Hi")], "txt") == "[01:05 - 01:10] Hi"

    def test_empty_input(self):
        assert format_subtitles([], "srt") == ""
        assert format_subtitles([], "txt") == ""
        assert format_subtitles([], "vtt") == "WEBVTT\n\n"

    def test_unknown_format(self):
        with pytest.raises(FormattingError):
            get_formatter("ass")

    def test_format_is_case_insensitive(self):
        assert get_formatter("SRT").extension == "srt"


class TestExport:

    def test_writes_named_file(self, sample_segments, tmp_path):
        path = export_subtitles(sample_segments, "vtt", str(tmp_path))
        assert os.path.basename(path) == "subtitles.vtt"
        with open(path, encoding="utf-8") as f:
            assert f.read() == format_subtitles(sample_segments, "vtt")

    def test_creates_missing_directory(self, sample_segments, tmp_path):
        target = tmp_path / "nested" / "out"
        path = export_subtitles(sample_segments, "txt", str(target))
        assert os.path.exists(path)

    def test_utf8_content(self, tmp_path):
        segments = [Segment(1, 0, 1, "Hi", translated_text="欢迎使用CapGen")]
        path = export_subtitles(segments, "srt", str(tmp_path))
        with open(path, "rb") as f:
            assert "欢迎使用CapGen".encode("utf-8") in f.read()

    def test_empty_segments_rejected(self, tmp_path):
        with pytest.raises(ExportPreconditionError):
            export_subtitles([], "srt", str(tmp_path))
        assert not os.listdir(tmp_path)

    def test_mime_type(self):
        assert EXPORT_MIME_TYPE == "text/plain;charset=utf-8"
