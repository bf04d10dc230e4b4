"""Handles formatting segments into subtitle text (SRT, VTT, TXT) and exporting it."""

import logging
import math
import os
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence, Tuple

from .models import Segment
from .exceptions import ExportPreconditionError, FormattingError
from .utils import ensure_dir_exists

logger = logging.getLogger(__name__)

EXPORT_MIME_TYPE = "text/plain;charset=utf-8"
EXPORT_BASENAME = "subtitles"

EXPORT_FORMATS: List[Tuple[str, str, str]] = [
    ('srt', 'SRT', 'SubRip Subtitle'),
    ('vtt', 'VTT', 'WebVTT'),
    ('txt', 'TXT', 'Plain Text'),
]

def _split_time(seconds: float) -> Tuple[int, int, int, int]:
    """Splits seconds into (hours, minutes, seconds, milliseconds)."""
    if seconds < 0:
        seconds = 0.0 # Ensure non-negative time
    whole = math.floor(seconds)
    millis = math.floor((seconds % 1) * 1000 + 0.5)
    # A remainder that rounds up to 1000 ms carries into the next second
    total_ms = whole * 1000 + millis
    hrs, total_ms = divmod(total_ms, 3600000)
    mins, total_ms = divmod(total_ms, 60000)
    secs, millis = divmod(total_ms, 1000)
    return hrs, mins, secs, millis

def format_time_srt(seconds: float) -> str:
    """
    Formats seconds into SRT time format HH:MM:SS,mmm.

    Args:
        seconds: Time in seconds.

    Returns:
        Formatted time string.
    """
    hrs, mins, secs, millis = _split_time(seconds)
    return f"{hrs:02d}:{mins:02d}:{secs:02d},{millis:03d}"

def format_time_vtt(seconds: float) -> str:
    """Formats seconds into WebVTT time format HH:MM:SS.mmm."""
    hrs, mins, secs, millis = _split_time(seconds)
    return f"{hrs:02d}:{mins:02d}:{secs:02d}.{millis:03d}"

def format_time_txt(seconds: float) -> str:
    """
    Formats seconds as MM:SS. There is no hours field, so minutes keep
    growing past 59 for long media.
    """
    if seconds < 0:
        seconds = 0.0
    mins = math.floor(seconds / 60)
    secs = math.floor(seconds % 60)
    return f"{mins:02d}:{secs:02d}"


class SubtitleFormatter(ABC):
    """Abstract base class for subtitle formatters."""

    extension: str = ""

    @abstractmethod
    def format_subtitles(self, segments: Sequence[Segment]) -> str:
        """
        Renders segments as subtitle text.

        Each segment shows its translated text when present, otherwise its
        original text. An empty sequence is valid input.

        Args:
            segments: Segments in timeline order.

        Returns:
            The subtitle document as a string.
        """
        pass


class SRTFormatter(SubtitleFormatter):
    """Formats subtitles into the SRT (SubRip Text) format."""

    extension = "srt"

    def format_subtitles(self, segments: Sequence[Segment]) -> str:
        blocks = []
        # Sequence numbers are reassigned; Segment.id is not reused
        for subtitle_index, segment in enumerate(segments, start=1):
            start_time_str = format_time_srt(segment.start)
            end_time_str = format_time_srt(segment.end)
            blocks.append(f"{subtitle_index}\n{start_time_str} --> {end_time_str}\n{segment.display_text}\n")
        return "\n".join(blocks)


class VTTFormatter(SubtitleFormatter):
    """Formats subtitles into the VTT (Web Video Text Tracks) format."""

    extension = "vtt"

    def format_subtitles(self, segments: Sequence[Segment]) -> str:
        blocks = [
            f"{format_time_vtt(segment.start)} --> {format_time_vtt(segment.end)}\n{segment.display_text}\n"
            for segment in segments
        ]
        return "WEBVTT\n\n" + "\n".join(blocks)


class TXTFormatter(SubtitleFormatter):
    """Formats subtitles as plain text with a [MM:SS - MM:SS] prefix per line."""

    extension = "txt"

    def format_subtitles(self, segments: Sequence[Segment]) -> str:
        return "\n".join(
            f"[{format_time_txt(segment.start)} - {format_time_txt(segment.end)}] {segment.display_text}"
            for segment in segments
        )


_FORMATTERS: Dict[str, type] = {
    'srt': SRTFormatter,
    'vtt': VTTFormatter,
    'txt': TXTFormatter,
}

def get_formatter(kind: str) -> SubtitleFormatter:
    """
    Returns the formatter for a format id.

    Raises:
        FormattingError: If the format is not one of srt, vtt or txt.
    """
    formatter_cls = _FORMATTERS.get((kind or "").lower())
    if formatter_cls is None:
        raise FormattingError(f"Unsupported subtitle format '{kind}'. Choose one of: {', '.join(_FORMATTERS)}.")
    return formatter_cls()

def format_subtitles(segments: Sequence[Segment], kind: str) -> str:
    """Renders segments in the given format ('srt', 'vtt' or 'txt')."""
    return get_formatter(kind).format_subtitles(segments)

def export_subtitles(segments: Sequence[Segment], kind: str, output_dir: str) -> str:
    """
    Writes segments to `<output_dir>/subtitles.<ext>` as UTF-8 text.

    Args:
        segments: The segments to export.
        kind: Format id ('srt', 'vtt' or 'txt').
        output_dir: Directory to write into; created if missing.

    Returns:
        The path of the written file.

    Raises:
        ExportPreconditionError: If there are no segments to export.
        FormattingError: If the format is unknown or the file cannot be written.
        FileSystemError: If the output directory is invalid.
    """
    if not segments:
        raise ExportPreconditionError("No subtitles to export.")

    formatter = get_formatter(kind)
    ensure_dir_exists(output_dir)
    output_path = os.path.join(output_dir, f"{EXPORT_BASENAME}.{formatter.extension}")

    logger.info(f"Exporting {len(segments)} subtitles as {formatter.extension.upper()}: {output_path}")
    content = formatter.format_subtitles(segments)
    try:
        with open(output_path, 'w', encoding='utf-8', newline='') as f:
            f.write(content)
    except IOError as e:
        logger.error(f"Failed to write subtitle file to {output_path}: {e}", exc_info=True)
        raise FormattingError(f"Could not write subtitle file: {e}") from e

    logger.info(f"Successfully wrote {len(segments)} subtitle blocks to {output_path}")
    return output_path
