"""
MiniMax Provider Plugin

Implements voice cloning, synthesis, listing and deletion against the MiniMax
API. MiniMax answers HTTP 200 on some failures, so a call only succeeded when
the status is 2xx AND the body's ``base_resp.status_code`` is 0 (or absent).
"""

import logging
import re
import secrets
import time
from typing import List, Optional, Dict, Any

from .base import (
    BaseVoiceProvider, ProviderCapability, SynthesisResult, VoiceInfo,
    is_voice_expired_message, truncate_payload,
)
from ..audio_decoder import decode_audio_field
from ..errors import AudioDecodeError, ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


def make_voice_id(name: str) -> str:
    """
    Build a client-side voice id; MiniMax does not hand one back.

    ``mirror_{slug}_{epoch ms}_{random}``. The random suffix keeps ids unique
    when two clones are requested within the same millisecond.
    """
    slug = re.sub(r'\s+', '_', name.strip().lower())
    slug = re.sub(r'[^a-z0-9_]', '', slug) or 'voice'
    return f"mirror_{slug}_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


class MiniMaxProvider(BaseVoiceProvider):
    """
    Provider for the MiniMax API.

    Every endpoint is scoped by the account's ``GroupId``. Clone creation is
    two requests: a file upload, then the clone call referencing the file.
    """

    provider_name = "minimax"
    provider_display_name = "MiniMax"
    default_capabilities = [ProviderCapability.VOICE_CLONING, ProviderCapability.SYNTHESIS]
    api_base_url = "https://api.minimax.io"
    speed_range = (0.5, 2.0)

    TTS_MODEL = "speech-02-turbo"
    AUDIO_SETTING = {"format": "mp3", "sample_rate": 32000}

    def _validate_config(self):
        super()._validate_config()
        if not self.config.api_key or not self.config.group_id:
            raise ConfigurationError("MiniMax requires an API key and a group id")

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def _call(self, method: str, endpoint: str, **kwargs):
        params = kwargs.pop('params', {})
        params['GroupId'] = self.config.group_id
        return self._make_request(method, endpoint, params=params, **kwargs)

    @staticmethod
    def _base_resp(body: Dict[str, Any]) -> Dict[str, Any]:
        return body.get('base_resp') or {}

    def _succeeded(self, response, body: Dict[str, Any]) -> bool:
        code = self._base_resp(body).get('status_code')
        return self._is_success(response) and not code

    def _upstream_error(self, default: str, response, body: Dict[str, Any]) -> UpstreamError:
        return UpstreamError(
            self._base_resp(body).get('status_msg') or default,
            detail=body, provider=self.provider_name, status_code=response.status_code,
        )

    def upload_file(self, audio: bytes, filename: str = "voice-sample.wav") -> str:
        """Upload a clone sample and return its ``file_id``."""
        response = self._call(
            'post', '/v1/files/upload',
            data={'purpose': 'voice_clone'},
            files={'file': (filename, audio, 'audio/wav')},
        )
        body = self._json_or_empty(response)
        if not self._succeeded(response, body):
            logger.error("MiniMax upload error (%s): %s", response.status_code, truncate_payload(body))
            raise self._upstream_error("File upload failed", response, body)
        file_id = (body.get('file') or {}).get('file_id')
        if not file_id:
            logger.error("MiniMax upload response missing file_id: %s", truncate_payload(body))
            raise UpstreamError("File upload did not return a file ID", detail=body, provider=self.provider_name)
        return file_id

    def clone_voice(self, name: str, audio: bytes, filename: str = "voice-sample.wav") -> str:
        file_id = self.upload_file(audio, filename)
        voice_id = make_voice_id(name)

        response = self._call('post', '/v1/voice_clone', json={"file_id": file_id, "voice_id": voice_id})
        body = self._json_or_empty(response)
        if not self._succeeded(response, body):
            logger.error("MiniMax clone error (%s): %s", response.status_code, truncate_payload(body))
            raise self._upstream_error("Voice cloning failed", response, body)

        logger.info("MiniMax clone created: %s", voice_id)
        return voice_id

    def delete_voice(self, voice_id: str) -> bool:
        response = self._call(
            'post', '/v1/delete_voice',
            json={"voice_id": voice_id, "voice_type": "voice_cloning"},
        )
        body = self._json_or_empty(response)
        ok = self._succeeded(response, body)
        logger.info("MiniMax delete %s: %s", voice_id, 'success' if ok else self._base_resp(body) or response.status_code)
        return ok

    def list_voices(self) -> List[VoiceInfo]:
        response = self._call('post', '/v1/get_voice', json={"voice_type": "voice_cloning"})
        body = self._json_or_empty(response)
        if not self._succeeded(response, body):
            logger.error("MiniMax list voices failed (%s): %s", response.status_code, truncate_payload(body))
            raise self._upstream_error("Failed to fetch voices", response, body)

        # The clone list has been seen under several keys
        cloned = body.get('voice_cloning') or body.get('voices') or (body.get('data') or {}).get('voice_cloning') or []
        logger.debug("MiniMax found %d clone(s)", len(cloned))
        return [
            VoiceInfo(voice_id=v.get('voice_id', ''), name=v.get('voice_name') or v.get('voice_id', ''), category="cloned")
            for v in cloned
            if v.get('voice_id')
        ]

    def synthesize(self, text: str, voice_id: str, speed: Optional[float] = 1.0) -> SynthesisResult:
        payload = {
            "model": self.TTS_MODEL,
            "text": text,
            "voice_setting": {
                "voice_id": voice_id,
                "speed": self.clamp_speed(1.0 if speed is None else speed),
                "vol": 1.0,
                "pitch": 0,
            },
            "audio_setting": dict(self.AUDIO_SETTING),
        }

        try:
            response = self._call('post', '/v1/t2a_v2', json=payload)
        except UpstreamError as e:
            return SynthesisResult.failed(e.detail)

        body = self._json_or_empty(response)
        if not self._succeeded(response, body):
            base_resp = self._base_resp(body)
            logger.error("MiniMax TTS error (%s): %s", response.status_code, truncate_payload(base_resp or body))
            if is_voice_expired_message(base_resp.get('status_msg')):
                return SynthesisResult.voice_expired(base_resp)
            return SynthesisResult.failed(base_resp or response.status_code)

        data = body.get('data') or {}
        audio_field = body.get('audio_file') or data.get('audio_file') or data.get('audio')
        if not audio_field:
            logger.error("MiniMax TTS returned no audio. Full response: %s", truncate_payload(body))
            return SynthesisResult.failed("no audio in response")

        try:
            return SynthesisResult.ok(decode_audio_field(audio_field))
        except AudioDecodeError as e:
            return SynthesisResult.failed(e.detail)
