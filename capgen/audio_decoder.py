"""Handles decoding uploaded audio/video bytes into raw samples using ffmpeg."""

import ffmpeg
import logging
import mimetypes
import os
import tempfile
from typing import Optional, Tuple

import numpy as np

from .exceptions import DecodeError
from .models import AudioSampleBuffer
from .utils import is_media_mime_type

logger = logging.getLogger(__name__)

# Sources with more channels are downmixed to stereo by ffmpeg
MAX_CHANNELS = 2

class AudioDecoder:
    """Decodes the audio track of a media file into float32 samples."""

    def __init__(self, ffmpeg_path: Optional[str] = None, ffprobe_path: Optional[str] = None):
        """
        Initializes the AudioDecoder.

        Args:
            ffmpeg_path: Optional path to the ffmpeg executable.
                         If None, assumes ffmpeg is in the system PATH.
            ffprobe_path: Optional path to the ffprobe executable.
        """
        self.ffmpeg_cmd = ffmpeg_path or 'ffmpeg'
        self.ffprobe_cmd = ffprobe_path or 'ffprobe'
        logger.info(f"Using ffmpeg command: {self.ffmpeg_cmd}")

    def decode(self, file_bytes: bytes, mime_type: Optional[str] = None) -> AudioSampleBuffer:
        """
        Decodes media bytes at their native sample rate.

        Args:
            file_bytes: The raw contents of the uploaded file.
            mime_type: The declared MIME type, if known. Anything other than
                       audio/* or video/* is rejected.

        Returns:
            An AudioSampleBuffer with 1 or 2 channels.

        Raises:
            DecodeError: If the input is empty, not audio/video, has no audio
                         stream, or ffmpeg fails to decode it.
        """
        if not file_bytes:
            raise DecodeError("Cannot decode an empty file.")
        if not is_media_mime_type(mime_type):
            raise DecodeError(f"Unsupported media type: {mime_type}")

        suffix = (mimetypes.guess_extension(mime_type) if mime_type else None) or ""
        temp_path = None
        try:
            with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
                tmp.write(file_bytes)
                temp_path = tmp.name
            logger.debug(f"Wrote {len(file_bytes)} bytes to temporary file {temp_path} for decoding")

            sample_rate, source_channels = self._probe(temp_path)
            channels = min(source_channels, MAX_CHANNELS)
            if source_channels > MAX_CHANNELS:
                logger.info(f"Source has {source_channels} channels; downmixing to {channels}")

            samples = self._decode_pcm(temp_path, channels)
            logger.info(f"Decoded {samples.shape[-1]} frames at {sample_rate} Hz ({channels} channel(s))")
            return AudioSampleBuffer(samples=samples, sample_rate=sample_rate, channels=channels)
        except OSError as e:
            logger.error(f"Could not stage media for decoding: {e}", exc_info=True)
            raise DecodeError(f"Could not stage media for decoding: {e}") from e
        finally:
            if temp_path and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    logger.warning(f"Could not clean up temporary media file: {temp_path}")

    def _probe(self, path: str) -> Tuple[int, int]:
        """Returns (sample_rate, channels) of the first audio stream."""
        try:
            info = ffmpeg.probe(path, cmd=self.ffprobe_cmd)
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            logger.error(f"ffprobe stderr: {stderr_output}")
            raise DecodeError(f"Unrecognised or corrupt media: {stderr_output}") from e

        audio_streams = [s for s in info.get('streams', []) if s.get('codec_type') == 'audio']
        if not audio_streams:
            raise DecodeError("Media contains no audio stream.")

        stream = audio_streams[0]
        try:
            sample_rate = int(stream['sample_rate'])
            channels = int(stream['channels'])
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Audio stream is missing sample rate or channel information: {e}") from e
        if sample_rate <= 0 or channels <= 0:
            raise DecodeError(f"Invalid audio stream parameters: {sample_rate} Hz, {channels} channel(s)")
        return sample_rate, channels

    def _decode_pcm(self, path: str, channels: int) -> np.ndarray:
        try:
            out, _ = (
                ffmpeg
                .input(path)
                .output('pipe:', format='f32le', acodec='pcm_f32le', ac=channels)
                .run(cmd=self.ffmpeg_cmd, capture_stdout=True, capture_stderr=True)
            )
        except ffmpeg.Error as e:
            logger.error(f"ffmpeg error while decoding {path}", exc_info=True)
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            logger.error(f"ffmpeg stderr: {stderr_output}")
            raise DecodeError(f"ffmpeg failed: {stderr_output}") from e

        samples = np.frombuffer(out, dtype=np.float32)
        usable = len(samples) - (len(samples) % channels)
        samples = samples[:usable]
        if channels == 1:
            return samples.copy()
        # Interleaved frames -> (channels, frames)
        return samples.reshape(-1, channels).T.copy()
