"""Domain error types."""

from __future__ import annotations


class WhisperBindError(Exception):
    """Base class for every error raised by whisper-bind."""


class UnsupportedPlatformError(WhisperBindError):
    """Raised when the host OS/architecture pair has no prebuilt libraries."""


class UnsupportedLibraryError(WhisperBindError):
    """Raised when a library name is not in the library registry."""


class LibraryDownloadError(WhisperBindError):
    """Raised when the native library archive cannot be fetched."""

    def __init__(self, url: str, cause: BaseException) -> None:
        super().__init__(f'Failed to download libraries from {url}: {cause}')
        self.url = url
        self.cause = cause


class LibraryExtractionError(WhisperBindError):
    """Raised when a downloaded library archive cannot be unpacked."""


class LibraryBindError(WhisperBindError):
    """Raised when a shared library cannot be loaded or lacks a symbol."""


class InvalidModelNameError(WhisperBindError):
    """Raised when a model name is neither a known model nor a local file."""


class ModelDownloadError(WhisperBindError):
    """Raised when model weights cannot be downloaded or moved into place."""

    def __init__(self, url: str, cause: BaseException) -> None:
        super().__init__(f'Failed to download model from {url}: {cause}')
        self.url = url
        self.cause = cause


class ModelLoadError(WhisperBindError):
    """Raised when the engine rejects a model file."""


class AudioFileNotFoundError(WhisperBindError, FileNotFoundError):
    """Raised when an audio path passed for transcription does not exist."""


class ContextNotInitializedError(WhisperBindError):
    """Raised when a session is used before a model context was opened."""


class UseAfterReleaseError(WhisperBindError):
    """Raised when a released native handle is used."""


class DecodeError(WhisperBindError):
    """Raised when the native decode call reports failure."""


class AudioDecodeError(WhisperBindError):
    """Raised when an audio file cannot be decoded or resampled."""
