"""Handles Speech-to-Text recognition using Whisper models."""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Any, Optional

import numpy as np
import torch

from .models import RawRecognizerOutput, TranscriptChunk
from .exceptions import RecognitionError

logger = logging.getLogger(__name__)

RECOGNIZER_SAMPLE_RATE = 16000

# Available Whisper models
WHISPER_MODELS = [
    {'id': 'whisper-tiny', 'name': 'Tiny', 'size': '39 MB', 'speed': 'Fastest'},
    {'id': 'whisper-base', 'name': 'Base', 'size': '74 MB', 'speed': 'Fast'},
    {'id': 'whisper-small', 'name': 'Small', 'size': '244 MB', 'speed': 'Medium'},
    {'id': 'whisper-medium', 'name': 'Medium', 'size': '769 MB', 'speed': 'Slow'},
    {'id': 'whisper-large', 'name': 'Large', 'size': '1550 MB', 'speed': 'Slowest'},
]

def resolve_device(device: str) -> str:
    """
    Validates a device name, falling back to CPU when CUDA is unavailable.

    Raises:
        ValueError: If the device is neither 'cuda' nor 'cpu'.
    """
    if device not in ["cuda", "cpu"]:
        raise ValueError(f"Invalid device specified: {device}. Choose 'cuda' or 'cpu'.")
    if device == "cuda" and not torch.cuda.is_available():
        logger.warning("CUDA device requested but not available. Falling back to CPU.")
        return "cpu"
    return device


class Recognizer(ABC):
    """
    Abstract base class for speech recognizers.

    Instances are constructed by the caller and passed to whatever needs
    them. The model is loaded lazily, once per instance; callers arriving
    while a load is in progress block on the same Future until it resolves.
    """

    def __init__(self):
        self._load_lock = threading.Lock()
        self._ready: Optional[Future] = None

    @abstractmethod
    def _load_model(self) -> Any:
        """Loads and returns the underlying model."""
        pass

    @abstractmethod
    def _run(self, model: Any, samples: np.ndarray) -> RawRecognizerOutput:
        """Runs the loaded model over mono 16 kHz samples."""
        pass

    def load(self) -> Any:
        """
        Loads the model if needed and returns it.

        Raises:
            RecognitionError: If the model fails to load.
        """
        with self._load_lock:
            ready = self._ready
            # A failed load stays visible until the next load() replaces it
            owner = ready is None or (ready.done() and ready.exception() is not None)
            if owner:
                ready = self._ready = Future()

        if owner:
            try:
                model = self._load_model()
            except Exception as e:
                logger.error(f"Failed to load recognition model: {e}", exc_info=True)
                ready.set_exception(RecognitionError(f"Failed to load recognition model: {e}"))
            else:
                ready.set_result(model)

        return ready.result()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Blocks until a load started by another caller completes.

        Returns:
            True once the model is loaded; False if no load has started or
            the timeout expired first.

        Raises:
            RecognitionError: If the most recent load failed. The error is
                              reported until load() is called again.
        """
        ready = self._ready
        if ready is None:
            return False
        try:
            ready.result(timeout=timeout)
        except FutureTimeoutError:
            return False
        return True

    def recognize(self, samples: np.ndarray) -> RawRecognizerOutput:
        """
        Recognizes speech in mono 16 kHz float samples.

        This call is blocking and may take seconds; async callers should run
        it in a worker thread.

        Args:
            samples: 1-D float32 samples at 16 kHz.

        Returns:
            The raw recognizer output, chunked or flat.

        Raises:
            RecognitionError: If the model is unavailable or recognition fails.
        """
        model = self.load()
        logger.info(f"Starting recognition of {len(samples) / RECOGNIZER_SAMPLE_RATE:.2f}s of audio")
        try:
            output = self._run(model, samples)
        except RecognitionError:
            raise
        except Exception as e:
            logger.error(f"Error during speech recognition: {e}", exc_info=True)
            raise RecognitionError(f"Speech recognition failed: {e}") from e
        logger.info(f"Recognition completed ({len(output.chunks or [])} chunks)")
        return output


class TransformersRecognizer(Recognizer):
    """Recognizes speech with a Hugging Face Transformers ASR pipeline."""

    def __init__(self, model_name: str = "openai/whisper-tiny", device: str = "cpu", chunk_length_s: int = 30):
        """
        Initializes the TransformersRecognizer. The model loads on first use.

        Args:
            model_name: Hugging Face model id (e.g., "openai/whisper-tiny").
            device: The device to run the model on ("cuda" or "cpu").
            chunk_length_s: Window length for long-form audio.

        Raises:
            ValueError: If the specified device is invalid.
        """
        super().__init__()
        self.model_name = model_name
        self.device = resolve_device(device)
        self.chunk_length_s = chunk_length_s
        logger.info(f"Configured TransformersRecognizer with model '{self.model_name}' on device '{self.device}'")

    def _load_model(self):
        from transformers import pipeline as hf_pipeline

        logger.info(f"Loading ASR pipeline '{self.model_name}'...")
        asr = hf_pipeline(
            "automatic-speech-recognition",
            model=self.model_name,
            device=self.device,
            chunk_length_s=self.chunk_length_s,
        )
        logger.info(f"ASR pipeline '{self.model_name}' loaded successfully.")
        return asr

    def _run(self, model, samples: np.ndarray) -> RawRecognizerOutput:
        result = model(
            {"raw": np.asarray(samples, dtype=np.float32), "sampling_rate": RECOGNIZER_SAMPLE_RATE},
            return_timestamps=True,
        )
        return RawRecognizerOutput.from_dict(result)


class WhisperRecognizer(Recognizer):
    """Implements recognition using OpenAI's Whisper package."""

    def __init__(self, model_name: str = "tiny", device: str = "cuda", fp16: bool = True, language: Optional[str] = None):
        """
        Initializes the WhisperRecognizer. The model loads on first use.

        Args:
            model_name: The name of the Whisper model to use (e.g., "base", "medium.en").
            device: The device to run the model on ("cuda" or "cpu").
            fp16: Whether to use float16 precision (faster on compatible GPUs).
            language: Language to decode in; None lets Whisper detect it.

        Raises:
            ValueError: If the specified device is invalid.
        """
        super().__init__()
        self.model_name = model_name
        self.device = resolve_device(device)
        self.fp16 = fp16 and self.device == "cuda" # FP16 only works on CUDA
        self.language = language
        logger.info(f"Configured WhisperRecognizer with model '{self.model_name}' on device '{self.device}' (FP16: {self.fp16})")

    def _load_model(self):
        import whisper

        model = whisper.load_model(self.model_name, device=self.device)
        logger.info(f"Whisper model '{self.model_name}' loaded successfully.")
        return model

    def _run(self, model, samples: np.ndarray) -> RawRecognizerOutput:
        result = model.transcribe(
            np.asarray(samples, dtype=np.float32),
            language=self.language,
            fp16=self.fp16,
            verbose=None,
        )
        chunks = []
        for seg_data in result.get('segments', []):
            chunks.append(TranscriptChunk(
                text=seg_data.get('text', ""),
                timestamp=(seg_data.get('start'), seg_data.get('end')),
            ))
        return RawRecognizerOutput(text=result.get('text', ""), chunks=chunks)


class MockRecognizer(Recognizer):
    """
    Returns a fixed transcript regardless of input.

    For offline development only. Callers select it explicitly, through
    offline mode or the fallback_to_mock setting; nothing swaps it in by itself.
    """

    MOCK_TEXT = (
        "Welcome to CapGen, the AI-powered subtitle generator. "
        "Upload your video or audio file to get started. "
        "Our AI will automatically generate accurate subtitles for you."
    )
    MOCK_CHUNKS = [
        ("Welcome to CapGen, the AI-powered subtitle generator.", (0.0, 3.0)),
        ("Upload your video or audio file to get started.", (3.0, 7.0)),
        ("Our AI will automatically generate accurate subtitles for you.", (7.0, 11.0)),
    ]

    def _load_model(self):
        logger.warning("Using mock recognizer: transcripts are canned, not recognized.")
        return None

    def _run(self, model, samples: np.ndarray) -> RawRecognizerOutput:
        return RawRecognizerOutput(
            text=self.MOCK_TEXT,
            chunks=[TranscriptChunk(text=text, timestamp=timestamp) for text, timestamp in self.MOCK_CHUNKS],
        )
