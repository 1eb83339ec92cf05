"""
Base provider interfaces and data classes for the voice and LLM providers.

This module defines the abstract base classes that the ElevenLabs, MiniMax and
Anthropic adapters implement, along with the standardized structures they
return so the pipeline never has to inspect provider-specific payloads.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Dict, Any

import requests
from requests.exceptions import RequestException

from ..errors import ProviderCapabilityError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


class Provider(Enum):
    """Voice providers a clone can live on."""
    ELEVENLABS = "elevenlabs"
    MINIMAX = "minimax"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Provider":
        """Parse a request value; empty means ElevenLabs."""
        if isinstance(value, Provider):
            return value
        if value is None or value == "":
            return cls.ELEVENLABS
        if not isinstance(value, str):
            raise ValidationError(f"Unknown provider: {value!r}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown provider: {value}")


class ProviderCapability(Enum):
    """Capabilities that a provider may support."""
    VOICE_CLONING = "voice_cloning"
    SYNTHESIS = "synthesis"
    TRANSCRIPTION = "transcription"


@dataclass
class ChatMessage:
    """Standardized chat message structure."""
    role: str  # 'user', 'assistant'
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatResponse:
    """Standardized chat response structure."""
    content: str
    model: str
    usage: Optional[Dict[str, int]] = None
    finish_reason: Optional[str] = None


@dataclass
class VoiceInfo:
    """A voice as listed by a provider."""
    voice_id: str
    name: str = ""
    category: str = ""
    accent: str = ""
    gender: str = ""
    preview_url: Optional[str] = None

    @property
    def is_clone(self) -> bool:
        return self.category == "cloned"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voice_id": self.voice_id,
            "name": self.name,
            "category": self.category,
            "accent": self.accent,
            "gender": self.gender,
            "preview_url": self.preview_url,
        }


class SynthesisStatus(Enum):
    OK = "ok"
    VOICE_EXPIRED = "voice_expired"
    FAILED = "failed"


@dataclass(frozen=True)
class SynthesisResult:
    """
    Normalized outcome of a synthesis call.

    ElevenLabs signals failure through HTTP status and MiniMax through an
    embedded ``base_resp.status_code``; both collapse into this type.
    """
    status: SynthesisStatus
    audio: Optional[bytes] = None
    detail: Any = None

    @classmethod
    def ok(cls, audio: bytes) -> "SynthesisResult":
        return cls(SynthesisStatus.OK, audio=audio)

    @classmethod
    def voice_expired(cls, detail: Any = None) -> "SynthesisResult":
        return cls(SynthesisStatus.VOICE_EXPIRED, detail=detail)

    @classmethod
    def failed(cls, detail: Any = None) -> "SynthesisResult":
        return cls(SynthesisStatus.FAILED, detail=detail)

    @property
    def is_ok(self) -> bool:
        return self.status is SynthesisStatus.OK


@dataclass
class ProviderConfig:
    """Configuration for a provider instance."""
    provider_type: str
    api_key: Optional[str] = None
    group_id: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    timeout: int = 60


# Substrings of a provider error message that mean the clone itself is unusable
VOICE_EXPIRED_MARKERS = ("voice", "slot", "not found", "invalid")


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def is_voice_expired_message(message: Optional[str], markers=VOICE_EXPIRED_MARKERS) -> bool:
    msg = (message or "").lower()
    return any(marker in msg for marker in markers)


def truncate_payload(payload: Any, limit: int = 500) -> str:
    """Render a provider payload for logs without flooding them."""
    text = payload if isinstance(payload, str) else repr(payload)
    return text[:limit]


class HTTPProviderMixin:
    """Shared request plumbing for HTTP-backed providers."""

    provider_name: str = "base"
    config: ProviderConfig

    def _headers(self) -> Dict[str, str]:
        return {}

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make an HTTP request to the provider API.

        The response is returned whatever its status; callers decide what
        counts as success because the providers disagree on that.

        Raises:
            UpstreamError: If the request could not be sent or timed out
        """
        url = f"{self.config.base_url}{endpoint}"
        headers = dict(self._headers())
        headers.update(kwargs.pop('headers', {}))
        timeout = kwargs.pop('timeout', self.config.timeout)
        try:
            return requests.request(method, url, headers=headers, timeout=timeout, **kwargs)
        except RequestException as e:
            logger.error("%s request to %s failed: %s", self.provider_name, endpoint, e)
            raise UpstreamError(
                f"Failed to reach {self.provider_name}",
                detail=str(e),
                provider=self.provider_name,
            )

    @staticmethod
    def _is_success(response: requests.Response) -> bool:
        return 200 <= response.status_code < 300

    @staticmethod
    def _json_or_empty(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}


class BaseVoiceProvider(HTTPProviderMixin, ABC):
    """Abstract base class that the voice (clone/TTS/STT) providers inherit from."""

    provider_name: str = "base"
    provider_display_name: str = "Base Voice Provider"
    default_capabilities: List[ProviderCapability] = []
    api_base_url: str = ""
    speed_range = (0.5, 2.0)

    def __init__(self, config: ProviderConfig):
        """
        Initialize the provider with configuration.

        Args:
            config: ProviderConfig instance with provider-specific settings
        """
        self.config = config
        self._validate_config()

    def _validate_config(self):
        """Validate the provider configuration. Override in subclasses if needed."""
        if not self.config.base_url:
            self.config.base_url = self.api_base_url
        self.config.base_url = self.config.base_url.rstrip('/')

    @property
    def provider(self) -> Provider:
        return Provider(self.provider_name)

    def clamp_speed(self, speed: float) -> float:
        """Clamp a requested speed into this provider's supported range."""
        low, high = self.speed_range
        return clamp(float(speed), low, high)

    @abstractmethod
    def clone_voice(self, name: str, audio: bytes, filename: str = "voice-sample.wav") -> str:
        """
        Create a voice clone from an audio sample.

        Returns:
            The id of the new voice

        Raises:
            UpstreamError: If the provider rejects the clone
        """
        pass

    @abstractmethod
    def delete_voice(self, voice_id: str) -> bool:
        """Delete one voice. Returns True when the provider confirmed it."""
        pass

    @abstractmethod
    def list_voices(self) -> List[VoiceInfo]:
        """
        List the voices on the account.

        Raises:
            UpstreamError: If the listing fails
        """
        pass

    def list_clones(self) -> List[VoiceInfo]:
        """List only the cloned voices, the ones occupying clone slots."""
        return [v for v in self.list_voices() if v.is_clone]

    @abstractmethod
    def synthesize(self, text: str, voice_id: str, speed: Optional[float] = 1.0) -> SynthesisResult:
        """
        Speak ``text`` with ``voice_id``.

        ``speed`` is clamped into the provider range; ``None`` leaves the
        provider default. Never raises for provider-side failures.
        """
        pass

    def transcribe(self, audio: bytes, filename: str = "recording.webm") -> str:
        """Transcribe audio to text. Returns an empty string when nothing was said."""
        raise ProviderCapabilityError(f"{self.provider_display_name} does not support transcription")

    def get_capabilities(self) -> List[ProviderCapability]:
        return self.default_capabilities.copy()

    def supports_transcription(self) -> bool:
        return ProviderCapability.TRANSCRIPTION in self.get_capabilities()


class BaseLLMProvider(HTTPProviderMixin, ABC):
    """Abstract base class for chat completion providers."""

    provider_name: str = "base"
    provider_display_name: str = "Base LLM Provider"
    api_base_url: str = ""

    def __init__(self, config: ProviderConfig):
        self.config = config
        self._validate_config()

    def _validate_config(self):
        if not self.config.base_url:
            self.config.base_url = self.api_base_url
        self.config.base_url = self.config.base_url.rstrip('/')

    @abstractmethod
    def chat_completion(
        self,
        messages: List[ChatMessage],
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 512,
    ) -> ChatResponse:
        """
        Generate a chat completion.

        Raises:
            ModelOverloadedError: If the model is overloaded or unavailable
            UpstreamError: For other provider errors
        """
        pass
