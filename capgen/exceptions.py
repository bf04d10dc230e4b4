"""Custom Exceptions for the CapGen application."""

class CapGenError(Exception):
    """Base class for exceptions in this module."""
    pass

class ConfigurationError(CapGenError):
    """Exception raised for errors in configuration loading."""
    pass

class DecodeError(CapGenError):
    """Exception raised when a media file cannot be decoded into audio samples."""
    pass

class RecognitionError(CapGenError):
    """Exception raised when the speech recognizer is unavailable or fails."""
    pass

class TranslationError(CapGenError):
    """Exception raised when translating one or more texts fails."""
    pass

class ExportPreconditionError(CapGenError):
    """Exception raised when export or translation is attempted with no segments."""
    pass

class FormattingError(CapGenError):
    """Exception raised for errors during subtitle formatting or writing."""
    pass

class FileSystemError(CapGenError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass
