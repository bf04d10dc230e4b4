"""
Tests for building segments from recognizer output.
"""

import pytest

from capgen.models import RawRecognizerOutput, Segment, TranscriptChunk
from capgen.segmenter import TranscriptSegmenter


@pytest.fixture
def segmenter():
    return TranscriptSegmenter()


class TestFromChunks:

    def test_empty(self, segmenter):
        assert segmenter.from_chunks([]) == []

    def test_one_segment_per_chunk(self, segmenter):
        chunks = [
            TranscriptChunk(" Hello there. ", (0.0, 1.5)),
            TranscriptChunk("General Kenobi!", (1.5, 3.2)),
        ]
        assert segmenter.from_chunks(chunks) == [
            Segment(id=1, start=0.0, end=1.5, text="Hello there."),
            Segment(id=2, start=1.5, end=3.2, text="General Kenobi!"),
        ]

    def test_empty_chunks_dropped_and_ids_gapless(self, segmenter):
        chunks = [
            TranscriptChunk("first", (0.0, 1.0)),
            TranscriptChunk("   ", (1.0, 2.0)),
            TranscriptChunk("third", (2.0, 3.0)),
        ]
        segments = segmenter.from_chunks(chunks)
        assert [s.id for s in segments] == [1, 2]
        assert [s.text for s in segments] == ["first", "third"]

    def test_missing_timestamps_default_to_zero(self, segmenter):
        chunks = [
            TranscriptChunk("no timing", None),
            TranscriptChunk("open ended", (4.0, None)),
        ]
        segments = segmenter.from_chunks(chunks)
        assert (segments[0].start, segments[0].end) == (0.0, 0.0)
        assert (segments[1].start, segments[1].end) == (4.0, 0.0)


class TestFromFlatText:

    def test_example(self, segmenter):
        assert segmenter.from_flat_text("Hello world. How are you?", 4) == [
            Segment(id=1, start=0, end=4, text="Hello world"),
            Segment(id=2, start=4, end=8, text="How are you?"),
        ]

    def test_empty(self, segmenter):
        assert segmenter.from_flat_text("", 4) == []

    def test_consecutive_punctuation(self, segmenter):
        segments = segmenter.from_flat_text("Wait... What?! Really", 2)
        assert [s.text for s in segments] == ["Wait", "What", "Really"]
        assert [(s.start, s.end) for s in segments] == [(0, 2), (2, 4), (4, 6)]

    def test_only_punctuation(self, segmenter):
        assert segmenter.from_flat_text("... !!", 4) == []

    def test_break_needs_whitespace(self, segmenter):
        assert [s.text for s in segmenter.from_flat_text("Hello world.How are you?", 4)] == ["Hello world.How are you?"]

    def test_only_last_sentence_keeps_punctuation(self, segmenter):
        assert [s.text for s in segmenter.from_flat_text("Stop! Go. Done.", 4)] == ["Stop", "Go", "Done."]


class TestRouting:

    def test_chunked_output_uses_chunks(self, segmenter):
        output = RawRecognizerOutput(text="ignored", chunks=[TranscriptChunk("Hi", (1.0, 2.0))])
        assert segmenter.segment(output) == [Segment(id=1, start=1.0, end=2.0, text="Hi")]

    def test_flat_output_uses_text(self, segmenter):
        output = RawRecognizerOutput(text="One. Two.")
        segments = segmenter.segment(output)
        assert [(s.start, s.end) for s in segments] == [(0, 4), (4, 8)]

    def test_from_dict(self, segmenter):
        output = RawRecognizerOutput.from_dict({
            "text": " Hi there",
            "chunks": [{"text": " Hi", "timestamp": (0.0, 0.4)}, {"text": " there", "timestamp": [0.4, None]}],
        })
        assert output.has_timestamps
        segments = segmenter.segment(output)
        assert [(s.text, s.start, s.end) for s in segments] == [("Hi", 0.0, 0.4), ("there", 0.4, 0.0)]
