"""Command-Line Interface handler for CapGen."""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

import numpy as np

from .config_loader import ConfigLoader
from .log_setup import setup_logging
from .audio_decoder import AudioDecoder
from .recognizer import MockRecognizer, Recognizer, TransformersRecognizer, WhisperRecognizer
from .translator import (
    HuggingFaceTranslator,
    LibreTranslateTranslator,
    MockTranslator,
    Translator,
    translate_segments,
)
from .pipeline import TranscriptionPipeline
from .segmenter import TranscriptSegmenter
from .subtitle_formatter import export_subtitles
from .models import Segment
from .exceptions import CapGenError, ConfigurationError, RecognitionError

logger = logging.getLogger(__name__) # Get logger for this module

def build_recognizer(config: dict) -> Recognizer:
    """Creates the recognizer selected by the configuration."""
    if config.get('offline') or config.get('recognizer') == 'mock':
        return MockRecognizer()
    device = config.get('device', 'cpu')
    if config.get('recognizer') == 'whisper':
        return WhisperRecognizer(
            model_name=config.get('whisper_model', 'tiny'),
            device=device,
            fp16=config.get('whisper_fp16', True) if device == 'cuda' else False,
        )
    return TransformersRecognizer(
        model_name=config.get('asr_model', 'openai/whisper-tiny'),
        device=device,
        chunk_length_s=config.get('chunk_length_s', 30),
    )

def build_translator(config: dict) -> Translator:
    """Creates the translator selected by the configuration."""
    if config.get('offline') or config.get('translator') == 'mock':
        return MockTranslator()
    if config.get('translator') == 'huggingface':
        return HuggingFaceTranslator(
            model_name=config.get('translation_model', 'Helsinki-NLP/opus-mt-en-es'),
            device=config.get('device', 'cpu'),
        )
    return LibreTranslateTranslator(
        api_url=config.get('translation_api_url'),
        languages_url=config.get('translation_languages_url'),
        api_key=config.get('translation_api_key'),
        timeout=config.get('translation_timeout', 30),
    )

def build_pipeline(config: dict, recognizer: Recognizer) -> TranscriptionPipeline:
    return TranscriptionPipeline(
        decoder=AudioDecoder(ffmpeg_path=config.get('ffmpeg_path')),
        recognizer=recognizer,
        segmenter=TranscriptSegmenter(),
        target_sample_rate=int(config.get('target_sample_rate', 16000)),
        default_avg_duration=float(config.get('avg_segment_duration', 4.0)),
    )

async def transcribe_file(pipeline: TranscriptionPipeline, media_path: str, config: dict) -> List[Segment]:
    """
    Runs the pipeline on one file.

    With `fallback_to_mock` enabled, a RecognitionError is replaced by the
    mock transcript and a warning; otherwise it propagates.
    """
    try:
        return await pipeline.run_file(media_path)
    except RecognitionError as e:
        if not config.get('fallback_to_mock'):
            raise
        logger.warning(f"Recognition failed ({e}); fallback_to_mock is enabled, using the mock transcript.")
        mock_output = MockRecognizer().recognize(np.zeros(0, dtype=np.float32))
        return pipeline.segmenter.segment(mock_output, pipeline.default_avg_duration)

async def process_file(pipeline: TranscriptionPipeline, media_path: str, output_dir: str, config: dict,
                       translator: Optional[Translator] = None) -> str:
    """Transcribes, optionally translates, and exports one file. Returns the export path."""
    segments = await transcribe_file(pipeline, media_path, config)
    target_language = config.get('target_language')
    if target_language:
        await asyncio.to_thread(
            translate_segments, segments, translator or build_translator(config), target_language,
            config.get('source_language', 'auto'),
        )
    return export_subtitles(segments, config.get('output_format', 'srt'), output_dir)


class CLIHandler:
    """Parses arguments and orchestrates the CapGen process."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            description="CapGen: Generate (and optionally translate) subtitles for an audio or video file.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter # Show defaults in help
        )
        parser.add_argument(
            "-i", "--input",
            required=True,
            help="Path to the input audio or video file."
        )
        parser.add_argument(
            "-o", "--output-dir",
            required=True,
            help="Directory to save the subtitles file (subtitles.<ext>)."
        )
        parser.add_argument(
            "-f", "--format",
            default=None, # Default taken from config
            choices=["srt", "vtt", "txt"],
            help="Override the output format specified in config."
        )
        parser.add_argument(
            "-t", "--translate-to",
            default=None,
            help="Target language code to translate subtitles into (e.g. 'es')."
        )
        parser.add_argument(
            "--source-lang",
            default=None,
            help="Source language code for translation ('auto' to detect)."
        )
        parser.add_argument(
            "-c", "--config",
            default=None,
            help="Path to a configuration YAML file. Built-in defaults are used when omitted."
        )
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Set the logging level for console and file output."
        )
        parser.add_argument(
            "--device",
            default=None, # Default taken from config
            choices=["cuda", "cpu"],
            help="Override the processing device (cuda or cpu) specified in config."
        )
        parser.add_argument(
            "--offline",
            action="store_true",
            help="Use canned recognizer and translator output instead of real models."
        )
        return parser

    def apply_overrides(self, config: dict, args: argparse.Namespace) -> dict:
        """Applies command-line overrides on top of the loaded configuration."""
        if args.format:
            config['output_format'] = args.format
        if args.translate_to:
            config['target_language'] = args.translate_to
        if args.source_lang:
            config['source_language'] = args.source_lang
        if args.device:
            logger.info(f"Overriding device from config with CLI argument: {args.device}")
            config['device'] = args.device
        if args.offline:
            logger.warning("Offline mode enabled: recognizer and translator output is canned.")
            config['offline'] = True
        return config

    def run(self, argv=None) -> None:
        """Parses arguments, sets up logging, loads config, and runs the pipeline."""
        args = self.parser.parse_args(argv)

        log_level = getattr(logging, args.log_level.upper(), logging.INFO)
        setup_logging(log_level=log_level, log_dir='logs', log_file='capgen_init.log')

        try:
            config = ConfigLoader().load_config(args.config)
        except (ConfigurationError, FileNotFoundError) as e:
            logger.critical(f"Failed to load configuration from {args.config}: {e}")
            sys.exit(1)

        setup_logging(log_level=log_level, log_dir=config.get('log_dir', 'logs'),
                      log_file=config.get('log_file', 'capgen.log'))
        config = self.apply_overrides(config, args)

        if not os.path.isfile(args.input):
            logger.critical(f"Input media file not found or is not a file: {args.input}")
            sys.exit(1)

        try:
            logger.info("Initializing CapGen components...")
            pipeline = build_pipeline(config, build_recognizer(config))
            output_path = asyncio.run(process_file(pipeline, args.input, args.output_dir, config))
            logger.info(f"CapGen finished successfully. Subtitles written to {output_path}")
            sys.exit(0)
        except (CapGenError, FileNotFoundError, ValueError) as e:
            logger.error(f"A CapGen error occurred: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
            sys.exit(1)
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
            sys.exit(2) # Use a different exit code for unexpected crashes


def main() -> None:
    CLIHandler().run()
