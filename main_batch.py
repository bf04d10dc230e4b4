#!/usr/bin/env python3
"""
CapGen Batch Processing Entry Point

Processes every supported audio/video file in a directory, smallest first,
writing each file's subtitles to <input-dir>/Subs/<file-stem>/subtitles.<ext>.
"""

import argparse
import asyncio
import logging
import os
import sys
import time
from typing import List, Tuple

# Progress bar library
from tqdm import tqdm

from capgen.config_loader import ConfigLoader
from capgen.log_setup import setup_logging
from capgen.cli import build_pipeline, build_recognizer, build_translator, process_file
from capgen.exceptions import CapGenError, ConfigurationError, FileSystemError
from capgen.utils import ensure_dir_exists, is_supported_media

logger = logging.getLogger(__name__)

def find_and_sort_media(input_dir: str) -> List[Tuple[str, int]]:
    """
    Finds all supported media files in the input directory and sorts them by size.

    Args:
        input_dir: The directory to search for media files.

    Returns:
        A list of (filepath, filesize) tuples, smallest first.

    Raises:
        FileNotFoundError: If the input directory doesn't exist.
        ValueError: If the input path is not a directory.
    """
    if not os.path.exists(input_dir):
        raise FileNotFoundError(f"Input directory not found: {input_dir}")
    if not os.path.isdir(input_dir):
        raise ValueError(f"Input path is not a directory: {input_dir}")

    media = []
    logger.info(f"Scanning directory for media files: {input_dir}")
    for filename in os.listdir(input_dir):
        filepath = os.path.join(input_dir, filename)
        if not is_supported_media(filename):
            continue
        try:
            if os.path.isfile(filepath):
                media.append((filepath, os.path.getsize(filepath)))
        except OSError as e:
            logger.warning(f"Could not access file {filepath}: {e}. Skipping.")

    media.sort(key=lambda item: item[1])
    logger.info(f"Found {len(media)} media files. Sorted by size (smallest first).")
    return media


async def process_all(media_paths: List[str], subs_dir: str, config: dict) -> Tuple[int, int]:
    """
    Runs one pipeline per file, at most `batch_concurrency` at a time.

    The recognizer and translator are created once and shared; each file
    gets its own pipeline instance.

    Returns:
        (files_processed, files_failed)
    """
    recognizer = build_recognizer(config)
    translator = build_translator(config) if config.get('target_language') else None
    semaphore = asyncio.Semaphore(int(config.get('batch_concurrency', 1)))
    processed = 0
    failed = 0

    with tqdm(total=len(media_paths), unit="file", desc="Starting Batch") as pbar:
        async def run_one(media_path: str) -> None:
            nonlocal processed, failed
            filename = os.path.basename(media_path)
            output_dir = os.path.join(subs_dir, os.path.splitext(filename)[0])
            async with semaphore:
                pbar.set_description(f"Processing: {filename[:30]}...")
                start_time = time.time()
                try:
                    pipeline = build_pipeline(config, recognizer)
                    output_path = await process_file(pipeline, media_path, output_dir, config, translator)
                    logger.info(f"Subtitles for {filename} written to {output_path} ({time.time() - start_time:.2f}s).")
                    processed += 1
                except (CapGenError, FileNotFoundError) as e:
                    logger.error(f"CapGen failed for '{filename}': {e}")
                    failed += 1
                except Exception as e:
                    logger.error(f"An unexpected error occurred processing '{filename}': {e}", exc_info=True)
                    failed += 1
                finally:
                    pbar.update(1)

        await asyncio.gather(*(run_one(path) for path in media_paths))

    return processed, failed


def run_batch_processing():
    """Parses arguments, sets up, and runs batch subtitle generation."""
    parser = argparse.ArgumentParser(
        description="CapGen Batch: Generate subtitles for every audio/video file in a directory.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "-i", "--input-dir",
        required=True,
        help="Directory containing the input media files."
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to a configuration YAML file. Built-in defaults are used when omitted."
    )
    parser.add_argument(
        "-f", "--format",
        default=None,
        choices=["srt", "vtt", "txt"],
        help="Override the output format specified in config."
    )
    parser.add_argument(
        "-t", "--translate-to",
        default=None,
        help="Target language code to translate subtitles into."
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level for console and file output."
    )
    parser.add_argument(
        "--device",
        default=None,
        choices=["cuda", "cpu"],
        help="Override the processing device (cuda or cpu) specified in config."
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use canned recognizer and translator output instead of real models."
    )

    args = parser.parse_args()

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    setup_logging(log_level=log_level, log_dir='logs', log_file='capgen_batch_init.log')

    try:
        config = ConfigLoader().load_config(args.config)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.critical(f"Failed to load configuration: {e}")
        sys.exit(1)

    setup_logging(log_level=log_level, log_dir=config.get('log_dir', 'logs'), log_file='capgen_batch.log')
    logger.info("Logging re-configured with settings from config file for batch processing.")

    if args.format:
        config['output_format'] = args.format
    if args.translate_to:
        config['target_language'] = args.translate_to
    if args.device:
        logger.info(f"Overriding device from config with CLI argument: {args.device}")
        config['device'] = args.device
    if args.offline:
        logger.warning("Offline mode enabled: recognizer and translator output is canned.")
        config['offline'] = True

    try:
        media_paths = [item[0] for item in find_and_sort_media(args.input_dir)]
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Input directory error: {e}")
        sys.exit(1)
    if not media_paths:
        logger.warning(f"No supported media files found in {args.input_dir}. Exiting.")
        sys.exit(0)

    subs_dir = os.path.join(args.input_dir, "Subs")
    try:
        ensure_dir_exists(subs_dir)
    except FileSystemError as e:
        logger.critical(f"Could not create output directory: {e}")
        sys.exit(1)

    total_files = len(media_paths)
    batch_start_time = time.time()
    logger.info(f"--- Starting Batch Subtitle Generation for {total_files} files ---")

    try:
        files_processed, files_failed = asyncio.run(process_all(media_paths, subs_dir, config))
    except (CapGenError, ValueError) as e:
        logger.critical(f"Failed to initialize CapGen components: {e}", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Batch process interrupted by user (Ctrl+C). Exiting.")
        sys.exit(1)

    logger.info(f"--- Batch Subtitle Generation Finished ---")
    logger.info(f"Total time: {time.time() - batch_start_time:.2f} seconds")
    logger.info(f"Successfully processed: {files_processed}/{total_files} files")
    logger.info(f"Failed: {files_failed}/{total_files} files")

    sys.exit(1 if files_failed > 0 else 0)


if __name__ == "__main__":
    if sys.version_info < (3, 9):
        sys.stderr.write("CapGen requires Python 3.9 or later.\n")
        sys.exit(1)
    run_batch_processing()
