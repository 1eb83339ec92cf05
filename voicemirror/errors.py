"""
Error taxonomy shared by the providers, the pipeline and the HTTP layer.

Every error carries a machine-readable ``error_code`` and the HTTP status the
blueprints answer with. Provider detail is kept on the exception for logging
while ``message`` stays safe to show to the user.
"""

from typing import Any, Dict, Optional


class MirrorError(Exception):
    """Base exception for all voice mirror errors."""

    error_code = "internal_error"
    http_status = 500
    default_message: Optional[str] = None

    def __init__(self, message: Optional[str] = None, detail: Any = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message or self.error_code)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error envelope."""
        result: Dict[str, Any] = {"error": self.error_code}
        if self.message:
            result["message"] = self.message
        return result


class ConfigurationError(MirrorError):
    """Required credentials are missing."""
    error_code = "not_configured"
    http_status = 500


class ValidationError(MirrorError):
    """A request is missing a required field or carries an invalid one."""
    error_code = "invalid_request"
    http_status = 400


class NoSpeechError(MirrorError):
    """Transcription succeeded but nothing was said."""
    error_code = "no_speech"
    http_status = 400
    default_message = "I didn't hear anything. Try speaking a bit louder or closer to your mic."


class ConversionError(MirrorError):
    """Audio could not be transcoded."""
    error_code = "conversion_failed"
    http_status = 400
    default_message = "Failed to process audio. Please try uploading a WAV or MP3 file instead."


class ProviderCapabilityError(MirrorError):
    """The selected provider does not support the requested operation."""
    error_code = "unsupported_operation"
    http_status = 400


class UpstreamError(MirrorError):
    """A provider call returned a non-success outcome."""
    error_code = "upstream_error"
    http_status = 500

    def __init__(
        self,
        message: Optional[str] = None,
        detail: Any = None,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, detail)
        self.provider = provider
        self.status_code = status_code


class ModelOverloadedError(UpstreamError):
    """The LLM answered 529 or 503; the next model may be tried."""
    error_code = "model_overloaded"


class EmptyCompletionError(UpstreamError):
    """The LLM returned no text."""
    error_code = "empty_completion"
    default_message = "LLM returned empty response"


class AudioDecodeError(UpstreamError):
    """Returned audio was neither hex nor base64."""
    error_code = "audio_decode_failed"


class VoiceExpiredError(MirrorError):
    """The voice clone is gone; the caller must clone again."""
    error_code = "voice_expired"
    http_status = 410
    default_message = "Your voice clone has expired. Please re-clone your voice."

    def __init__(
        self,
        message: Optional[str] = None,
        detail: Any = None,
        transcript: Optional[str] = None,
        reflection: Optional[str] = None,
    ):
        super().__init__(message, detail)
        self.transcript = transcript
        self.reflection = reflection

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        if self.transcript is not None:
            result["transcript"] = self.transcript
        if self.reflection is not None:
            result["reflection"] = self.reflection
        return result
