"""Error taxonomy shared by every module."""

from __future__ import annotations

from enum import Enum


class DanmuCompanionError(Exception):
    """Base class for all errors raised by this package."""


class ParseFailure(str, Enum):
    ENVELOPE_INVALID = "envelope_invalid"
    PAYLOAD_INVALID = "payload_invalid"


class ParseError(DanmuCompanionError):
    """A feed frame could not be decoded into an event."""

    def __init__(self, reason: ParseFailure, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = reason.value if not detail else f"{reason.value}: {detail}"
        super().__init__(message)


class AIRequestFailed(DanmuCompanionError):
    """The completion endpoint answered non-2xx or could not be reached."""


class TTSError(DanmuCompanionError):
    """Base class for speech output failures."""


class TTSRequestFailed(TTSError):
    """A TTS proxy answered non-2xx or could not be reached."""


class PlaybackFailed(TTSError):
    """The local audio engine (or the overlay's speech engine) failed."""


class UnsupportedBackend(TTSError):
    """No backend is registered under the requested name."""


class ProviderError(DanmuCompanionError):
    """Server-side synthesis through a third-party provider failed."""


class ProviderNotConfigured(ProviderError):
    """Credentials for the provider are missing."""


class UnsupportedProvider(ProviderError):
    """The provider name is unknown or has no implementation."""


class ConfigStoreError(DanmuCompanionError):
    """Base class for chat config table errors."""


class ConfigNotFound(ConfigStoreError):
    pass


class DuplicatePageKey(ConfigStoreError):
    pass


class NothingToUpdate(ConfigStoreError):
    pass
