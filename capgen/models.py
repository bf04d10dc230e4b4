"""Data models for CapGen."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

@dataclass
class Segment:
    """Represents a single timed subtitle entry."""
    id: int
    start: float
    end: float
    text: str
    translated_text: Optional[str] = None

    @property
    def display_text(self) -> str:
        """The text shown in exports: the translation when present, else the original."""
        if isinstance(self.translated_text, str) and self.translated_text:
            return self.translated_text
        return self.text

@dataclass
class AudioSampleBuffer:
    """
    Decoded audio for one file.

    `samples` is float32, shaped (frames,) for mono or (channels, frames)
    for multi-channel audio.
    """
    samples: np.ndarray
    sample_rate: int
    channels: int

    @property
    def frames(self) -> int:
        return int(self.samples.shape[-1]) if self.samples.size else 0

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frames / self.sample_rate

@dataclass
class TranscriptChunk:
    """One recognizer fragment; timestamp sides may be missing."""
    text: str
    timestamp: Optional[Tuple[Optional[float], Optional[float]]] = None

@dataclass
class RawRecognizerOutput:
    """Holds the unprocessed output of a recognizer, chunked or flat."""
    text: str
    chunks: Optional[List[TranscriptChunk]] = None

    @property
    def has_timestamps(self) -> bool:
        if not self.chunks:
            return False
        return any(chunk.timestamp is not None for chunk in self.chunks)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawRecognizerOutput":
        """Builds an output from the dict shape returned by ASR pipelines."""
        raw_chunks = data.get('chunks')
        chunks = None
        if raw_chunks is not None:
            chunks = []
            for raw in raw_chunks:
                timestamp = raw.get('timestamp')
                if timestamp is not None:
                    timestamp = tuple(timestamp)
                chunks.append(TranscriptChunk(text=raw.get('text') or "", timestamp=timestamp))
        return cls(text=data.get('text') or "", chunks=chunks)

@dataclass
class TranslationResult:
    """Result of translating one text."""
    translated_text: str
    source_language: str
    target_language: str
    confidence: Optional[float] = None

@dataclass(frozen=True)
class LanguageInfo:
    code: str
    name: str

DEFAULT_LANGUAGES: List[LanguageInfo] = [
    LanguageInfo('en', 'English'),
    LanguageInfo('es', 'Spanish'),
    LanguageInfo('fr', 'French'),
    LanguageInfo('de', 'German'),
    LanguageInfo('it', 'Italian'),
    LanguageInfo('pt', 'Portuguese'),
    LanguageInfo('ru', 'Russian'),
    LanguageInfo('ja', 'Japanese'),
    LanguageInfo('ko', 'Korean'),
    LanguageInfo('zh', 'Chinese'),
    LanguageInfo('ar', 'Arabic'),
    LanguageInfo('hi', 'Hindi'),
]
