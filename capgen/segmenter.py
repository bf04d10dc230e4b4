"""Turns raw recognizer output into ordered subtitle segments."""

import logging
import re
from typing import Iterable, List

from .models import RawRecognizerOutput, Segment, TranscriptChunk

logger = logging.getLogger(__name__)

DEFAULT_AVG_DURATION_SECONDS = 4.0

# A run of terminal punctuation followed by whitespace ends a sentence.
# The last sentence keeps its punctuation since nothing follows it.
_SENTENCE_BREAK = re.compile(r"[.!?]+\s+")

class TranscriptSegmenter:
    """Builds Segment lists from chunked or flat recognizer output."""

    def from_chunks(self, chunks: Iterable[TranscriptChunk]) -> List[Segment]:
        """
        Creates one segment per chunk, in input order.

        Chunk text is stripped and chunks left empty are dropped; ids are
        assigned 1..N over the retained chunks. A missing timestamp pair, or
        a missing side of one, becomes 0. That loses timing information, so
        it is logged rather than passed over silently.

        Args:
            chunks: Recognizer chunks in timeline order.

        Returns:
            The list of segments.
        """
        segments: List[Segment] = []
        for index, chunk in enumerate(chunks):
            text = (chunk.text or "").strip()
            if not text:
                logger.debug(f"Dropping empty chunk at position {index}")
                continue

            start, end = self._chunk_bounds(chunk)
            if not chunk.timestamp or len(chunk.timestamp) < 2 or None in chunk.timestamp:
                logger.debug(f"Chunk {index} has incomplete timestamp {chunk.timestamp}; defaulting missing sides to 0")

            segments.append(Segment(id=len(segments) + 1, start=start, end=end, text=text))
        return segments

    def from_flat_text(self, text: str, avg_duration_seconds: float = DEFAULT_AVG_DURATION_SECONDS) -> List[Segment]:
        """
        Splits an untimed transcript into sentence segments.

        A sentence ends at a run of '.', '!' or '?' followed by whitespace;
        punctuation with no whitespace after it ("world.How") does not split.
        The break consumes the punctuation, so only the last sentence keeps
        its own: "Stop! Go. Done." gives "Stop", "Go" and "Done.".

        The timing is a placeholder: the k-th sentence is given the window
        [k * avg_duration_seconds, (k + 1) * avg_duration_seconds].

        Args:
            text: The full transcript.
            avg_duration_seconds: Duration assigned to each sentence.

        Returns:
            The list of segments.
        """
        fragments = [fragment.strip() for fragment in _SENTENCE_BREAK.split(text or "")]
        # Punctuation-only leftovers count as empty
        fragments = [fragment for fragment in fragments if fragment.strip(".!?")]

        segments = []
        for k, fragment in enumerate(fragments):
            segments.append(Segment(
                id=k + 1,
                start=k * avg_duration_seconds,
                end=(k + 1) * avg_duration_seconds,
                text=fragment,
            ))
        if segments:
            logger.info(f"Split untimed transcript into {len(segments)} segments using {avg_duration_seconds}s placeholder timing")
        return segments

    def segment(self, output: RawRecognizerOutput, avg_duration_seconds: float = DEFAULT_AVG_DURATION_SECONDS) -> List[Segment]:
        """Routes recognizer output to the chunked or flat-text path."""
        if output.has_timestamps:
            return self.from_chunks(output.chunks)
        return self.from_flat_text(output.text, avg_duration_seconds)

    @staticmethod
    def _chunk_bounds(chunk: TranscriptChunk):
        if not chunk.timestamp:
            return 0.0, 0.0
        start = chunk.timestamp[0] if len(chunk.timestamp) > 0 else None
        end = chunk.timestamp[1] if len(chunk.timestamp) > 1 else None
        return float(start or 0.0), float(end or 0.0)
