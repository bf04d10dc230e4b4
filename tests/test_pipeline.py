"""
Tests for the transcription pipeline, using stand-in decoder and recognizer.
"""

import asyncio
import logging

import numpy as np
import pytest

from capgen.exceptions import DecodeError, RecognitionError
from capgen.models import AudioSampleBuffer, RawRecognizerOutput, Segment, TranscriptChunk
from capgen.pipeline import TranscriptionPipeline
from capgen.recognizer import Recognizer
from capgen.segmenter import TranscriptSegmenter


class FakeDecoder:
    def __init__(self, buffer=None, error=None):
        self.buffer = buffer
        self.error = error
        self.calls = []

    def decode(self, file_bytes, mime_type=None):
        self.calls.append((file_bytes, mime_type))
        if self.error:
            raise self.error
        return self.buffer


class FakeRecognizer(Recognizer):
    def __init__(self, output=None, error=None):
        super().__init__()
        self.output = output
        self.error = error
        self.received = None

    def _load_model(self):
        return object()

    def _run(self, model, samples):
        self.received = samples
        if self.error:
            raise self.error
        return self.output


def stereo_buffer(rate=32000, frames=3200, value=0.5):
    samples = np.full((2, frames), value, dtype=np.float32)
    return AudioSampleBuffer(samples=samples, sample_rate=rate, channels=2)


def run(pipeline, data=b"media", mime="audio/wav"):
    return asyncio.run(pipeline.run(data, mime))


class TestTranscriptionPipeline:

    def test_chunked_output(self):
        recognizer = FakeRecognizer(RawRecognizerOutput(
            text="Hi there",
            chunks=[TranscriptChunk(" Hi", (0.0, 0.5)), TranscriptChunk(" there", (0.5, 1.0))],
        ))
        decoder = FakeDecoder(stereo_buffer())
        segments = run(TranscriptionPipeline(decoder, recognizer))

        assert segments == [Segment(1, 0.0, 0.5, "Hi"), Segment(2, 0.5, 1.0, "there")]
        assert decoder.calls == [(b"media", "audio/wav")]

    def test_recognizer_receives_mono_16k(self):
        recognizer = FakeRecognizer(RawRecognizerOutput(text="Hello."))
        run(TranscriptionPipeline(FakeDecoder(stereo_buffer(rate=32000, frames=3200)), recognizer))

        assert recognizer.received.ndim == 1
        assert len(recognizer.received) == 1600
        assert np.all(recognizer.received == np.float32(0.5))

    def test_flat_output_uses_default_duration(self):
        recognizer = FakeRecognizer(RawRecognizerOutput(text="Hello world. How are you?"))
        segments = run(TranscriptionPipeline(FakeDecoder(stereo_buffer()), recognizer))
        assert [(s.start, s.end, s.text) for s in segments] == [
            (0.0, 4.0, "Hello world"),
            (4.0, 8.0, "How are you?"),
        ]

    def test_decode_error_propagates(self):
        recognizer = FakeRecognizer(RawRecognizerOutput(text="unused"))
        pipeline = TranscriptionPipeline(FakeDecoder(error=DecodeError("corrupt")), recognizer)
        with pytest.raises(DecodeError):
            run(pipeline)
        assert recognizer.received is None

    def test_recognizer_failure_is_recognition_error(self):
        recognizer = FakeRecognizer(error=RuntimeError("model exploded"))
        pipeline = TranscriptionPipeline(FakeDecoder(stereo_buffer()), recognizer)
        with pytest.raises(RecognitionError, match="model exploded"):
            run(pipeline)

    def test_unsupported_channel_layout_is_decode_error(self):
        buffer = AudioSampleBuffer(samples=np.zeros((3, 10), dtype=np.float32), sample_rate=16000, channels=3)
        pipeline = TranscriptionPipeline(FakeDecoder(buffer), FakeRecognizer(RawRecognizerOutput(text="x")))
        with pytest.raises(DecodeError):
            run(pipeline)

    def test_independent_runs_in_parallel(self):
        recognizer = FakeRecognizer(RawRecognizerOutput(text="One. Two."))
        pipelines = [TranscriptionPipeline(FakeDecoder(stereo_buffer()), recognizer) for _ in range(3)]

        async def run_all():
            return await asyncio.gather(*(p.run(b"media", "audio/wav") for p in pipelines))

        results = asyncio.run(run_all())
        assert len(results) == 3
        assert all([s.text for s in segments] == ["One", "Two."] for segments in results)

    def test_run_file_missing(self, tmp_path):
        pipeline = TranscriptionPipeline(FakeDecoder(stereo_buffer()), FakeRecognizer(RawRecognizerOutput(text="x")))
        with pytest.raises(FileNotFoundError):
            asyncio.run(pipeline.run_file(str(tmp_path / "missing.mp3")))

    def test_run_file_guesses_mime_type(self, tmp_path):
        media = tmp_path / "clip.mp3"
        media.write_bytes(b"ID3fake")
        decoder = FakeDecoder(stereo_buffer())
        pipeline = TranscriptionPipeline(decoder, FakeRecognizer(RawRecognizerOutput(text="Hi.")))
        asyncio.run(pipeline.run_file(str(media)))
        assert decoder.calls == [(b"ID3fake", "audio/mpeg")]

    def test_segmenting_goes_through_the_segmenter(self, caplog):
        class RecordingSegmenter(TranscriptSegmenter):
            def __init__(self):
                self.calls = []

            def segment(self, output, avg_duration_seconds=4.0):
                self.calls.append(avg_duration_seconds)
                return super().segment(output, avg_duration_seconds)

        segmenter = RecordingSegmenter()
        pipeline = TranscriptionPipeline(
            FakeDecoder(stereo_buffer()), FakeRecognizer(RawRecognizerOutput(text="One. Two.")),
            segmenter=segmenter, default_avg_duration=2.5,
        )
        with caplog.at_level(logging.WARNING, logger="capgen.pipeline"):
            segments = run(pipeline)

        assert segmenter.calls == [2.5]
        assert [(s.start, s.end) for s in segments] == [(0.0, 2.5), (2.5, 5.0)]
        assert "no timestamps" in caplog.text
