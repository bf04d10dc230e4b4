"""Orchestrates the transcription pipeline: decode, resample, recognize, segment."""

import asyncio
import logging
import os
import time
from typing import List, Optional

from .audio_decoder import AudioDecoder
from .audio_resampler import TARGET_SAMPLE_RATE, mix_to_mono, resample
from .recognizer import Recognizer
from .segmenter import DEFAULT_AVG_DURATION_SECONDS, TranscriptSegmenter
from .models import RawRecognizerOutput, Segment
from .exceptions import DecodeError, RecognitionError
from .utils import guess_mime_type

logger = logging.getLogger(__name__)

class TranscriptionPipeline:
    """
    Turns one media file into subtitle segments.

    Each run is a single attempt: there is no retry, no timeout and no
    fallback here. Failures surface as DecodeError or RecognitionError and
    no partial result is returned. Instances hold no per-run state, so
    independent runs may proceed concurrently.
    """

    def __init__(
        self,
        decoder: AudioDecoder,
        recognizer: Recognizer,
        segmenter: Optional[TranscriptSegmenter] = None,
        target_sample_rate: int = TARGET_SAMPLE_RATE,
        default_avg_duration: float = DEFAULT_AVG_DURATION_SECONDS,
    ):
        """
        Initializes the TranscriptionPipeline.

        Args:
            decoder: Decodes uploaded bytes into samples.
            recognizer: The speech recognizer to invoke.
            segmenter: Builds segments from recognizer output.
            target_sample_rate: Sample rate the recognizer expects.
            default_avg_duration: Seconds per sentence for untimed transcripts.
        """
        self.decoder = decoder
        self.recognizer = recognizer
        self.segmenter = segmenter or TranscriptSegmenter()
        self.target_sample_rate = target_sample_rate
        self.default_avg_duration = default_avg_duration

    async def run(self, file_bytes: bytes, mime_type: Optional[str] = None) -> List[Segment]:
        """
        Executes the pipeline for one file.

        Args:
            file_bytes: The raw file contents.
            mime_type: The declared MIME type, if known.

        Returns:
            The ordered list of segments.

        Raises:
            DecodeError: If the media cannot be decoded.
            RecognitionError: If the recognizer fails.
        """
        start_time = time.time()

        logger.info("Step 1: Decoding audio...")
        buffer = self.decoder.decode(file_bytes, mime_type)
        logger.info(f"Decoded {buffer.duration:.2f}s of audio at {buffer.sample_rate} Hz")

        logger.info("Step 2: Mixing to mono...")
        try:
            mono = mix_to_mono(buffer.samples, buffer.channels)
        except ValueError as e:
            raise DecodeError(f"Decoded audio has an unsupported layout: {e}") from e

        logger.info(f"Step 3: Resampling to {self.target_sample_rate} Hz...")
        samples = resample(mono, buffer.sample_rate, self.target_sample_rate)

        logger.info("Step 4: Recognizing speech...")
        output = await self._recognize(samples)

        logger.info("Step 5: Building segments...")
        segments = self._segment(output)

        logger.info(f"Transcription produced {len(segments)} segments in {time.time() - start_time:.2f} seconds")
        return segments

    async def run_file(self, file_path: str) -> List[Segment]:
        """
        Reads a media file from disk and runs the pipeline on it.

        Raises:
            FileNotFoundError: If the file does not exist.
            DecodeError: If the file cannot be read or decoded.
            RecognitionError: If the recognizer fails.
        """
        logger.info(f"--- Starting transcription for: {file_path} ---")
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"Input media file not found: {file_path}")
        try:
            with open(file_path, 'rb') as f:
                file_bytes = f.read()
        except OSError as e:
            raise DecodeError(f"Could not read {file_path}: {e}") from e
        return await self.run(file_bytes, guess_mime_type(file_path))

    async def _recognize(self, samples) -> RawRecognizerOutput:
        # The recognizer blocks for seconds; keep it off the event loop
        try:
            return await asyncio.to_thread(self.recognizer.recognize, samples)
        except RecognitionError:
            raise
        except Exception as e:
            logger.error(f"Recognizer raised an unexpected error: {e}", exc_info=True)
            raise RecognitionError(f"Speech recognition failed: {e}") from e

    def _segment(self, output: RawRecognizerOutput) -> List[Segment]:
        if not output.has_timestamps:
            logger.warning("Recognizer returned no timestamps; using placeholder timing per sentence.")
        return self.segmenter.segment(output, self.default_avg_duration)
