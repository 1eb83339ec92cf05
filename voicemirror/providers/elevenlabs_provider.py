"""
ElevenLabs Provider Plugin

Implements voice cloning, synthesis, listing, deletion and speech-to-text
against the ElevenLabs REST API. Success is signaled by the HTTP status;
error bodies carry a ``detail`` object with a ``message``.
"""

import logging
from typing import List, Optional, Dict, Any

from .base import (
    BaseVoiceProvider, ProviderCapability, SynthesisResult, VoiceInfo,
    is_voice_expired_message, truncate_payload,
)
from ..errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

EXPIRED_STATUSES = ("voice_not_found", "voice_does_not_exist")
# "invalid" also shows up in plain settings errors here
EXPIRED_MARKERS = ("voice", "not found")


def _detail_message(body: Dict[str, Any]) -> Optional[str]:
    detail = body.get('detail')
    if isinstance(detail, dict):
        return detail.get('message')
    if isinstance(detail, str):
        return detail
    return None


class ElevenLabsProvider(BaseVoiceProvider):
    """
    Provider for the ElevenLabs API.

    Clones occupy a slot of the account's plan, so every clone created here
    should be deleted again once it has been used.
    """

    provider_name = "elevenlabs"
    provider_display_name = "ElevenLabs"
    default_capabilities = [
        ProviderCapability.VOICE_CLONING,
        ProviderCapability.SYNTHESIS,
        ProviderCapability.TRANSCRIPTION,
    ]
    api_base_url = "https://api.elevenlabs.io"
    speed_range = (0.25, 4.0)

    TTS_MODEL = "eleven_multilingual_v2"
    STT_MODEL = "scribe_v1"
    STABILITY = 0.5
    SIMILARITY_BOOST = 0.75

    def _validate_config(self):
        super()._validate_config()
        if not self.config.api_key:
            raise ConfigurationError("ElevenLabs requires an API key")

    def _headers(self) -> Dict[str, str]:
        return {"xi-api-key": self.config.api_key}

    def clone_voice(self, name: str, audio: bytes, filename: str = "voice-sample.wav") -> str:
        response = self._make_request(
            'post', '/v1/voices/add',
            data={'name': name},
            files={'files': (filename, audio)},
        )
        body = self._json_or_empty(response)
        if not self._is_success(response):
            logger.error("ElevenLabs clone error (%s): %s", response.status_code, truncate_payload(body))
            raise UpstreamError(
                _detail_message(body) or "Voice cloning failed",
                detail=body, provider=self.provider_name, status_code=response.status_code,
            )
        voice_id = body.get('voice_id')
        if not voice_id:
            raise UpstreamError("Voice cloning did not return a voice ID", detail=body, provider=self.provider_name)
        logger.info("ElevenLabs clone created: %s", voice_id)
        return voice_id

    def delete_voice(self, voice_id: str) -> bool:
        response = self._make_request('delete', f'/v1/voices/{voice_id}')
        ok = self._is_success(response)
        logger.info("ElevenLabs delete %s: %s", voice_id, 'success' if ok else response.status_code)
        return ok

    def list_voices(self) -> List[VoiceInfo]:
        response = self._make_request('get', '/v1/voices')
        if not self._is_success(response):
            raise UpstreamError(
                "Failed to fetch voices", provider=self.provider_name, status_code=response.status_code,
            )
        voices = []
        for v in self._json_or_empty(response).get('voices') or []:
            labels = v.get('labels') or {}
            voices.append(VoiceInfo(
                voice_id=v.get('voice_id', ''),
                name=v.get('name', ''),
                category=v.get('category', ''),
                accent=labels.get('accent', ''),
                gender=labels.get('gender', ''),
                preview_url=v.get('preview_url') or None,
            ))
        return voices

    def synthesize(self, text: str, voice_id: str, speed: Optional[float] = 1.0) -> SynthesisResult:
        voice_settings = {"stability": self.STABILITY, "similarity_boost": self.SIMILARITY_BOOST}
        if speed is not None:
            voice_settings["speed"] = self.clamp_speed(speed)
        payload = {"text": text, "model_id": self.TTS_MODEL, "voice_settings": voice_settings}

        try:
            response = self._make_request('post', f'/v1/text-to-speech/{voice_id}/stream', json=payload)
        except UpstreamError as e:
            return SynthesisResult.failed(e.detail)

        if self._is_success(response):
            if not response.content:
                return SynthesisResult.failed("empty audio stream")
            return SynthesisResult.ok(response.content)

        body = self._json_or_empty(response)
        logger.error("ElevenLabs TTS error (%s): %s", response.status_code, truncate_payload(body))
        detail = body.get('detail')
        status = detail.get('status', '') if isinstance(detail, dict) else ''
        message = _detail_message(body)
        if (response.status_code == 404 or status in EXPIRED_STATUSES
                or is_voice_expired_message(message, EXPIRED_MARKERS)):
            return SynthesisResult.voice_expired(body)
        return SynthesisResult.failed(body or response.status_code)

    def transcribe(self, audio: bytes, filename: str = "recording.webm") -> str:
        response = self._make_request(
            'post', '/v1/speech-to-text',
            data={'model_id': self.STT_MODEL},
            files={'file': (filename, audio)},
        )
        body = self._json_or_empty(response)
        if not self._is_success(response):
            logger.error("STT error (%s): %s", response.status_code, truncate_payload(body))
            raise UpstreamError(
                "Speech transcription failed",
                detail=body, provider=self.provider_name, status_code=response.status_code,
            )
        return (body.get('text') or '').strip()
