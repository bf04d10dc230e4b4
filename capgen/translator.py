"""Handles subtitle translation via LibreTranslate or local Hugging Face models."""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, MutableSequence, Optional, Sequence

import requests
import torch

from .models import DEFAULT_LANGUAGES, LanguageInfo, Segment, TranslationResult
from .exceptions import ExportPreconditionError, TranslationError
from .recognizer import resolve_device

logger = logging.getLogger(__name__)

LIBRETRANSLATE_URL = "https://libretranslate.de/translate"
LIBRETRANSLATE_LANGUAGES_URL = "https://libretranslate.de/languages"

class Translator(ABC):
    """Abstract base class for translation services."""

    max_batch_workers = 8

    @abstractmethod
    def translate(self, text: str, target_language: str, source_language: str = 'auto') -> TranslationResult:
        """
        Translates text into the target language.

        Args:
            text: The text to translate.
            target_language: Target language code (e.g., 'es').
            source_language: Source language code, or 'auto' to detect it.

        Returns:
            A TranslationResult.

        Raises:
            TranslationError: If translation fails.
        """
        pass

    def translate_batch(self, texts: Sequence[str], target_language: str, source_language: str = 'auto') -> List[TranslationResult]:
        """
        Translates several texts, returning results in request order.

        Requests are submitted together on a thread pool of up to
        `max_batch_workers` threads. The batch is all-or-nothing: every text
        is attempted, and if any of them fail a single TranslationError
        naming the failed positions is raised and no results are returned.

        Raises:
            TranslationError: If one or more texts failed to translate.
        """
        if not texts:
            return []
        results: List[Optional[TranslationResult]] = [None] * len(texts)
        failures = []

        with ThreadPoolExecutor(max_workers=min(self.max_batch_workers, len(texts))) as executor:
            futures = {
                executor.submit(self.translate, text, target_language, source_language): index
                for index, text in enumerate(texts)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except TranslationError as e:
                    logger.warning(f"Failed to translate text {index + 1}/{len(texts)} ('{texts[index][:30]}...'): {e}")
                    failures.append(index)

        if failures:
            failures.sort()
            raise TranslationError(
                f"Translation failed for {len(failures)} of {len(texts)} texts (positions {failures})."
            )
        logger.info(f"Translated {len(results)} texts to '{target_language}'")
        return results

    def get_supported_languages(self) -> List[LanguageInfo]:
        """Lists languages this translator accepts."""
        return list(DEFAULT_LANGUAGES)


class LibreTranslateTranslator(Translator):
    """Implements translation using a LibreTranslate HTTP API."""

    def __init__(
        self,
        api_url: str = LIBRETRANSLATE_URL,
        languages_url: str = LIBRETRANSLATE_LANGUAGES_URL,
        api_key: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url or LIBRETRANSLATE_URL
        self.languages_url = languages_url or LIBRETRANSLATE_LANGUAGES_URL
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        logger.info(f"Initialized LibreTranslateTranslator with endpoint {self.api_url}")

    def translate(self, text: str, target_language: str, source_language: str = 'auto') -> TranslationResult:
        if not text:
            return TranslationResult('', source_language, target_language) # Handle empty input gracefully

        payload = {
            'q': text,
            'source': source_language,
            'target': target_language,
            'format': 'text',
        }
        if self.api_key:
            payload['api_key'] = self.api_key

        logger.debug(f"Translating ({source_language}->{target_language}): '{text[:50]}...'")
        try:
            response = self.session.post(self.api_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Translation request to {self.api_url} failed: {e}", exc_info=True)
            raise TranslationError(f"Translation request failed: {e}") from e

        if not response.ok:
            raise TranslationError(f"Translation API error: {response.status_code}")

        try:
            data = response.json()
            translated_text = data['translatedText']
        except (ValueError, KeyError, TypeError) as e:
            raise TranslationError(f"Malformed translation response: {e}") from e

        detected = data.get('detectedLanguage')
        if isinstance(detected, dict):
            detected_code = detected.get('language')
            confidence = detected.get('confidence')
        else:
            detected_code = detected
            confidence = data.get('confidence')

        logger.debug(f"Translation result: '{translated_text[:50]}...'")
        return TranslationResult(
            translated_text=translated_text,
            source_language=detected_code or source_language,
            target_language=target_language,
            confidence=confidence,
        )

    def get_supported_languages(self) -> List[LanguageInfo]:
        """
        Fetches the language list from the server.

        Raises:
            TranslationError: If the list cannot be fetched. Callers wanting a
                              fallback can use DEFAULT_LANGUAGES.
        """
        try:
            response = self.session.get(self.languages_url, timeout=self.timeout)
            response.raise_for_status()
            return [LanguageInfo(code=lang['code'], name=lang['name']) for lang in response.json()]
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to fetch supported languages: {e}")
            raise TranslationError(f"Failed to fetch supported languages: {e}") from e


class HuggingFaceTranslator(Translator):
    """Implements translation using Hugging Face Transformers models."""

    # One model instance; generate() calls are not run side by side
    max_batch_workers = 1

    def __init__(self, model_name: str = "Helsinki-NLP/opus-mt-en-es", device: str = "cpu"):
        """
        Initializes the HuggingFaceTranslator.

        The model fixes the language pair, so the language arguments of
        translate() are only recorded in the result.

        Args:
            model_name: The name of the Hugging Face translation model.
            device: The device to run the model on ("cuda" or "cpu").

        Raises:
            ValueError: If the specified device is invalid.
            TranslationError: If the model or tokenizer fails to load.
        """
        from transformers import AutoTokenizer, AutoModelForSeq2SeqLM

        self.model_name = model_name
        self.device = resolve_device(device)

        logger.info(f"Initializing HuggingFaceTranslator with model '{self.model_name}' on device '{self.device}'")
        try:
            self.tokenizer = AutoTokenizer.from_pretrained(self.model_name)
            self.model = AutoModelForSeq2SeqLM.from_pretrained(self.model_name)
            self.model.to(self.device)
            self.model.eval()
            logger.info(f"Hugging Face translation model '{self.model_name}' loaded successfully.")
        except Exception as e:
            logger.error(f"Failed to load translation model or tokenizer '{self.model_name}': {e}", exc_info=True)
            raise TranslationError(f"Failed to load translation model/tokenizer '{self.model_name}': {e}") from e

    def translate(self, text: str, target_language: str, source_language: str = 'auto') -> TranslationResult:
        if not text:
            return TranslationResult('', source_language, target_language)

        logger.debug(f"Translating with {self.model_name}: '{text[:50]}...'")
        try:
            inputs = self.tokenizer(text, return_tensors="pt", padding=True, truncation=True, max_length=512)
            inputs = {k: v.to(self.device) for k, v in inputs.items()}

            with torch.no_grad():
                translated_tokens = self.model.generate(**inputs)

            translated_text = self.tokenizer.decode(translated_tokens[0], skip_special_tokens=True)
        except Exception as e:
            logger.error(f"Error during translation of text '{text[:50]}...': {e}", exc_info=True)
            raise TranslationError(f"Hugging Face translation failed: {e}") from e

        logger.debug(f"Translation result: '{translated_text[:50]}...'")
        return TranslationResult(translated_text, source_language, target_language)


class MockTranslator(Translator):
    """
    Returns a canned sentence per target language.

    Offline development only: selected explicitly, never substituted for a
    failing translator.
    """

    MOCK_TRANSLATIONS = {
        'es': 'Bienvenido a CapGen, el generador de subtítulos con IA.',
        'fr': 'Bienvenue sur CapGen, le générateur de sous-titres IA.',
        'de': 'Willkommen bei CapGen, dem KI-gestützten Untertitel-Generator.',
        'it': 'Benvenuto in CapGen, il generatore di sottotitoli AI.',
        'pt': 'Bem-vindo ao CapGen, o gerador de legendas com IA.',
        'ru': 'Добро пожаловать в CapGen, генератор субтитров с ИИ.',
        'ja': 'CapGenへようこそ、AI搭載字幕ジェネレーターです。',
        'ko': 'AI 기반 자막 생성기 CapGen에 오신 것을 환영합니다.',
        'zh': '欢迎使用CapGen，AI驱动的字幕生成器。',
        'ar': 'مرحباً بك في CapGen، مولد الترجمة المدعوم بالذكاء الاصطناعي.',
        'hi': 'CapGen में आपका स्वागत है, AI-संचालित उपशीर्षक जेनरेटर।',
    }

    def translate(self, text: str, target_language: str, source_language: str = 'auto') -> TranslationResult:
        return TranslationResult(
            translated_text=self.MOCK_TRANSLATIONS.get(target_language, text),
            source_language='en' if source_language == 'auto' else source_language,
            target_language=target_language,
            confidence=0.85,
        )


def apply_translations(segments: MutableSequence[Segment], results: Sequence[TranslationResult]) -> None:
    """
    Stores translations on segments by position: results[i] goes to segments[i].

    Raises:
        TranslationError: If the lengths differ.
    """
    if len(segments) != len(results):
        raise TranslationError(
            f"Got {len(results)} translations for {len(segments)} subtitles; cannot apply them by position."
        )
    for segment, result in zip(segments, results):
        segment.translated_text = result.translated_text

def translate_segments(
    segments: MutableSequence[Segment],
    translator: Translator,
    target_language: str,
    source_language: str = 'auto',
) -> MutableSequence[Segment]:
    """
    Translates every segment's original text in one batch, in place.

    Returns:
        The same segment list, with translated_text filled in.

    Raises:
        ExportPreconditionError: If there are no segments.
        TranslationError: If the batch fails; no segment is modified then.
    """
    if not segments:
        raise ExportPreconditionError("No subtitles to translate.")

    logger.info(f"Translating {len(segments)} subtitles ({source_language} -> {target_language})...")
    results = translator.translate_batch([segment.text for segment in segments], target_language, source_language)
    apply_translations(segments, results)
    return segments
