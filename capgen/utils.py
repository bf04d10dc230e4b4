"""Utility functions for CapGen."""

import os
import logging
import mimetypes
from typing import Optional

from .exceptions import FileSystemError

logger = logging.getLogger(__name__)

# Container formats ffmpeg can decode that the batch runner picks up
SUPPORTED_MEDIA_EXTENSIONS = frozenset({
    ".mp4", ".mkv", ".mov", ".webm", ".avi",
    ".mp3", ".wav", ".m4a", ".flac", ".ogg", ".aac",
})

def ensure_dir_exists(dir_path: str) -> None:
    """
    Ensures that a directory exists. Creates it if it doesn't.

    Args:
        dir_path: The path to the directory.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def guess_mime_type(file_path: str) -> Optional[str]:
    """Guesses a media file's MIME type from its extension."""
    mime_type, _ = mimetypes.guess_type(file_path)
    return mime_type

def is_media_mime_type(mime_type: Optional[str]) -> bool:
    """True for audio/* and video/* types. An unknown (empty) type is let through."""
    if not mime_type:
        return True
    return mime_type.startswith('audio/') or mime_type.startswith('video/')

def is_supported_media(file_path: str) -> bool:
    return os.path.splitext(file_path)[1].lower() in SUPPORTED_MEDIA_EXTENSIONS
