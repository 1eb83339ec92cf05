"""
Pytest configuration and fixtures for the Voice Mirror tests.
"""

import pytest
import sys
import os
from unittest.mock import Mock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from voicemirror.errors import ModelOverloadedError, UpstreamError
from voicemirror.providers import (
    BaseLLMProvider, BaseVoiceProvider, ChatResponse, ProviderConfig,
    SynthesisResult, VoiceInfo,
)
from voicemirror.shared import Settings


# ============================================================
# HELPERS
# ============================================================

MP3_FRAME = b'\xff\xfb\x90\x00' + bytes(20)
ID3_AUDIO = b'ID3\x04\x00\x00\x00\x00\x00\x00' + bytes(20)


def make_response(status_code=200, json_data=None, content=b''):
    """Build a mock requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.content = content
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    return response


class FakeVoiceProvider(BaseVoiceProvider):
    """In-memory voice provider that records every call."""

    provider_name = "elevenlabs"
    provider_display_name = "Fake Voice"

    def __init__(self, clones=None, synthesis=None, transcript="I feel stuck.",
                 list_error=None, delete_ok=True):
        super().__init__(ProviderConfig(provider_type="elevenlabs"))
        self.clones = list(clones or [])
        self.synthesis = synthesis or SynthesisResult.ok(MP3_FRAME)
        self.transcript = transcript
        self.list_error = list_error
        self.delete_ok = delete_ok
        self.calls = []

    def clone_voice(self, name, audio, filename="voice-sample.wav"):
        self.calls.append(("clone", name))
        voice_id = f"clone_{len(self.calls)}"
        self.clones.append(voice_id)
        return voice_id

    def delete_voice(self, voice_id):
        self.calls.append(("delete", voice_id))
        if not self.delete_ok or voice_id not in self.clones:
            return False
        self.clones.remove(voice_id)
        return True

    def list_voices(self):
        self.calls.append(("list",))
        if self.list_error:
            raise self.list_error
        return [VoiceInfo(voice_id=v, name=v, category="cloned") for v in self.clones] + [
            VoiceInfo(voice_id="premade_rachel", name="Rachel", category="premade")
        ]

    def synthesize(self, text, voice_id, speed=1.0):
        self.calls.append(("synthesize", voice_id, speed))
        return self.synthesis

    def transcribe(self, audio, filename="recording.webm"):
        self.calls.append(("transcribe", filename))
        return self.transcript


class FakeLLMProvider(BaseLLMProvider):
    """Chat provider that answers from a script of replies or exceptions."""

    provider_name = "anthropic"

    def __init__(self, replies=None):
        super().__init__(ProviderConfig(provider_type="anthropic"))
        self.replies = list(replies or ["The stuck feeling is the edge of something new."])
        self.models = []

    def chat_completion(self, messages, system=None, model=None, max_tokens=512):
        self.models.append(model)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return ChatResponse(content=reply, model=model or "")


def overloaded(status_code=529):
    return ModelOverloadedError("overloaded", provider="anthropic", status_code=status_code)


def upstream(status_code=400):
    return UpstreamError("Reflection failed", provider="anthropic", status_code=status_code)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def settings():
    """Settings with every provider configured."""
    return Settings(
        elevenlabs_api_key="xi-test-key-1234",
        elevenlabs_voice_id="default_voice",
        minimax_api_key="mm-test-key-5678",
        minimax_group_id="group-42",
        anthropic_api_key="sk-ant-test-9999",
        reflection_models=["model-a", "model-b"],
    )


@pytest.fixture
def app(settings):
    """Create a test Flask app."""
    from app import create_app

    flask_app = create_app(settings)
    flask_app.config['TESTING'] = True

    yield flask_app


@pytest.fixture
def client(app):
    """Create a test client."""
    return app.test_client()

