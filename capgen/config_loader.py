"""Handles loading configuration from YAML files."""

import yaml
import os
import logging
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'log_dir': 'logs',
    'log_file': 'capgen.log',
    'output_format': 'srt',
    'device': 'cpu',
    'recognizer': 'transformers',
    'asr_model': 'openai/whisper-tiny',
    'whisper_model': 'tiny',
    'whisper_fp16': True,
    'chunk_length_s': 30,
    'ffmpeg_path': None,
    'target_sample_rate': 16000,
    'avg_segment_duration': 4.0,
    'translator': 'libretranslate',
    'translation_api_url': 'https://libretranslate.de/translate',
    'translation_languages_url': 'https://libretranslate.de/languages',
    'translation_api_key': None,
    'translation_timeout': 30,
    'translation_model': 'Helsinki-NLP/opus-mt-en-es',
    'source_language': 'auto',
    'target_language': None,
    'offline': False,
    'fallback_to_mock': False,
    'batch_concurrency': 1,
}

class ConfigLoader:
    """Loads configuration settings from a YAML file over built-in defaults."""

    def load_config(self, config_path: Optional[str]) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Keys missing from the file keep their values from DEFAULT_CONFIG.
        Passing None returns the defaults.

        Args:
            config_path: The path to the YAML configuration file.

        Returns:
            A dictionary containing the merged configuration settings.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML or
                              if there are other reading errors.
        """
        config = dict(DEFAULT_CONFIG)
        if config_path is None:
            logger.info("No configuration file given; using defaults.")
            return config

        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
             logger.error(f"Configuration path is not a file: {config_path}")
             raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except IOError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if loaded is None:
            logger.warning(f"Configuration file {config_path} is empty; using defaults.")
            return config
        if not isinstance(loaded, dict):
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")

        unknown = sorted(set(loaded) - set(DEFAULT_CONFIG))
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
        config.update({key: value for key, value in loaded.items() if key in DEFAULT_CONFIG})

        self._validate(config, config_path)
        logger.info(f"Configuration loaded successfully from {config_path}")
        return config

    @staticmethod
    def _validate(config: dict, config_path: str) -> None:
        if str(config['output_format']).lower() not in ('srt', 'vtt', 'txt'):
            raise ConfigurationError(f"Unsupported output_format '{config['output_format']}' in {config_path}.")
        if config['recognizer'] not in ('transformers', 'whisper', 'mock'):
            raise ConfigurationError(f"Unknown recognizer '{config['recognizer']}' in {config_path}.")
        if config['translator'] not in ('libretranslate', 'huggingface', 'mock'):
            raise ConfigurationError(f"Unknown translator '{config['translator']}' in {config_path}.")
        try:
            if float(config['avg_segment_duration']) <= 0:
                raise ConfigurationError("avg_segment_duration must be positive.")
            if int(config['target_sample_rate']) <= 0:
                raise ConfigurationError("target_sample_rate must be positive.")
            if int(config['batch_concurrency']) < 1:
                raise ConfigurationError("batch_concurrency must be at least 1.")
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid numeric setting in {config_path}: {e}") from e
