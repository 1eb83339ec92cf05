"""
API endpoint tests for the Flask backend.
"""

import base64
import io
import pytest
from unittest.mock import patch

from voicemirror.errors import UpstreamError
from voicemirror.providers import Provider, SynthesisResult
from voicemirror.shared import Settings
from tests.conftest import MP3_FRAME, FakeLLMProvider, FakeVoiceProvider, make_response, overloaded


@pytest.fixture
def tts():
    return FakeVoiceProvider(clones=["v1"])


@pytest.fixture
def llm():
    return FakeLLMProvider(["Maybe stuck is just the pause before the turn."])


@pytest.fixture
def wired(monkeypatch, tts, llm):
    """Route every adapter lookup in the blueprints to the fakes."""
    chosen = []

    def voice_provider(settings, provider):
        chosen.append(provider)
        return tts

    monkeypatch.setattr('voicemirror.reflect.get_voice_provider', voice_provider)
    monkeypatch.setattr('voicemirror.reflect.get_stt_provider', lambda settings: tts)
    monkeypatch.setattr('voicemirror.reflect.get_llm_provider', lambda settings: llm)
    monkeypatch.setattr('voicemirror.voice.get_voice_provider', voice_provider)
    return chosen


def _audio(data=b'webm-bytes', filename='recording.webm'):
    return (io.BytesIO(data), filename)


class TestCoreEndpoints:

    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['providers']['minimax']['configured'] is True
        assert data['providers']['anthropic']['api_key'] == '***9999'

    def test_providers(self, client):
        data = client.get('/api/providers').get_json()
        assert [p['name'] for p in data['providers']] == ['elevenlabs', 'minimax', 'anthropic']
        assert all(p['configured'] for p in data['providers'])

    def test_favicon(self, client):
        assert client.get('/favicon.ico').status_code == 204

    def test_unknown_route_is_json(self, client):
        response = client.get('/api/nope')
        assert response.status_code == 404
        assert response.get_json()['error'] == 'not_found'


class TestReflectEndpoint:

    def test_reflect_with_transcript(self, client, wired, tts):
        response = client.post('/api/reflect', data={
            'transcript': 'I feel stuck.', 'voiceId': 'v1', 'speed': '1.1',
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['transcript'] == 'I feel stuck.'
        assert data['reflection'] == 'Maybe stuck is just the pause before the turn.'
        assert base64.b64decode(data['audio']) == MP3_FRAME
        assert 'error' not in data
        assert ('synthesize', 'v1', 1.1) in tts.calls
        assert tts.clones == []
        assert wired == [Provider.ELEVENLABS]

    def test_reflect_with_audio(self, client, wired, tts):
        tts.transcript = 'Spoken words.'
        response = client.post('/api/reflect', data={'audio': _audio(), 'voiceId': 'v1'},
                               content_type='multipart/form-data')
        assert response.status_code == 200
        assert response.get_json()['transcript'] == 'Spoken words.'
        assert ('transcribe', 'recording.webm') in tts.calls

    def test_reflect_minimax_provider(self, client, wired):
        response = client.post('/api/reflect', data={
            'transcript': 'hi', 'voiceId': 'mirror_me_1', 'provider': 'minimax',
        })
        assert response.status_code == 200
        assert wired == [Provider.MINIMAX]

    def test_reflect_default_voice_id(self, client, wired, tts):
        client.post('/api/reflect', data={'transcript': 'hi'})
        assert ('synthesize', 'default_voice', 1.0) in tts.calls

    def test_reflect_minimax_needs_its_own_voice_id(self, client, wired, tts):
        response = client.post('/api/reflect', data={'transcript': 'hi', 'provider': 'minimax'})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_request'
        assert not any(call[0] == 'synthesize' for call in tts.calls)

    def test_reflect_degraded(self, client, wired, tts):
        tts.synthesis = SynthesisResult.failed('quota')
        response = client.post('/api/reflect', data={'transcript': 'hi', 'voiceId': 'v1'})

        assert response.status_code == 200
        data = response.get_json()
        assert data['audio'] is None
        assert data['error'] == 'Voice synthesis failed, returning text only'
        assert data['reflection']

    def test_reflect_voice_expired(self, client, wired, tts):
        tts.synthesis = SynthesisResult.voice_expired()
        response = client.post('/api/reflect', data={'transcript': 'hi', 'voiceId': 'v1'})

        assert response.status_code == 410
        data = response.get_json()
        assert data['error'] == 'voice_expired'
        assert data['transcript'] == 'hi'
        assert data['reflection'] == 'Maybe stuck is just the pause before the turn.'

    def test_reflect_no_speech(self, client, wired, tts, llm):
        tts.transcript = '  '
        response = client.post('/api/reflect', data={'audio': _audio(), 'voiceId': 'v1'},
                               content_type='multipart/form-data')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'no_speech'
        assert llm.models == []

    def test_reflect_models_unavailable(self, client, wired, llm):
        llm.replies = [overloaded()]
        response = client.post('/api/reflect', data={'transcript': 'hi', 'voiceId': 'v1'})
        assert response.status_code == 500
        assert response.get_json()['message'] == 'All reflection models are unavailable'

    def test_reflect_missing_audio(self, client, wired):
        response = client.post('/api/reflect', data={'voiceId': 'v1'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_request'

    def test_reflect_unknown_theme(self, client, wired):
        response = client.post('/api/reflect', data={'transcript': 'hi', 'voiceId': 'v1', 'theme': 'tarot'})
        assert response.status_code == 400

    def test_reflect_unknown_provider(self, client, wired):
        response = client.post('/api/reflect', data={'transcript': 'hi', 'provider': 'openai'})
        assert response.status_code == 400

    def test_reflect_not_configured(self):
        from app import create_app
        client = create_app(Settings(elevenlabs_api_key='xi')).test_client()

        response = client.post('/api/reflect', data={'transcript': 'hi', 'voiceId': 'v1'})

        assert response.status_code == 500
        data = response.get_json()
        assert data['error'] == 'not_configured'
        assert 'ANTHROPIC_API_KEY' in data['message']


class TestSpeakAndTranscribe:

    def test_speak(self, client, wired, tts):
        response = client.post('/api/speak', json={'text': 'Hello', 'voiceId': 'v1', 'speed': 3})
        assert response.status_code == 200
        assert base64.b64decode(response.get_json()['audio']) == MP3_FRAME
        assert ('synthesize', 'v1', 3.0) in tts.calls
        assert tts.clones == ['v1']

    def test_speak_missing_fields(self, client, wired):
        assert client.post('/api/speak', json={'text': 'Hello'}).status_code == 400

    def test_speak_invalid_json(self, client, wired):
        response = client.post('/api/speak', data='nope', content_type='application/json')
        assert response.status_code == 400

    def test_speak_expired(self, client, wired, tts):
        tts.synthesis = SynthesisResult.voice_expired()
        assert client.post('/api/speak', json={'text': 'Hello', 'voiceId': 'v1'}).status_code == 410

    def test_transcribe(self, client, wired, tts):
        tts.transcript = ' Hello there '
        response = client.post('/api/transcribe', data={'audio': _audio()}, content_type='multipart/form-data')
        assert response.status_code == 200
        assert response.get_json() == {'transcript': 'Hello there'}

    def test_transcribe_missing_audio(self, client, wired):
        assert client.post('/api/transcribe', data={}).status_code == 400


class TestVoiceEndpoints:

    def test_clone_voice(self, client, wired, tts):
        response = client.post('/api/clone-voice', data={'name': 'Me', 'audio': _audio()},
                               content_type='multipart/form-data')

        assert response.status_code == 200
        data = response.get_json()
        assert data['provider'] == 'elevenlabs'
        assert tts.clones == [data['voice_id']]
        assert ('delete', 'v1') in tts.calls

    def test_clone_voice_missing_name(self, client, wired):
        response = client.post('/api/clone-voice', data={'audio': _audio()}, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_clone_voice_provider_error(self, client, wired, tts, monkeypatch):
        def refuse(name, audio, filename='voice-sample.wav'):
            raise UpstreamError('Voice limit reached', provider='elevenlabs', status_code=400)
        monkeypatch.setattr(tts, 'clone_voice', refuse)

        response = client.post('/api/clone-voice', data={'name': 'Me', 'audio': _audio()},
                               content_type='multipart/form-data')

        assert response.status_code == 400
        assert response.get_json() == {'error': 'Voice limit reached'}

    def test_minimax_clone_converts_webm(self, client, wired, monkeypatch):
        seen = []

        def fake_prepare(data, filename, provider):
            seen.append((filename, provider))
            return b'RIFF....WAVE', 'voice-sample.wav'
        monkeypatch.setattr('voicemirror.voice.prepare_clone_sample', fake_prepare)

        response = client.post('/api/minimax-clone-voice', data={'name': 'Me', 'audio': _audio()},
                               content_type='multipart/form-data')

        assert response.status_code == 200
        assert seen == [('recording.webm', Provider.MINIMAX)]
        assert wired == [Provider.MINIMAX]

    def test_delete_voice(self, client, wired, tts):
        response = client.post('/api/delete-voice', json={'voiceId': 'v1'})
        assert response.get_json() == {'status': 'ok', 'deleted': True}
        assert tts.clones == []

    def test_delete_voice_missing_id(self, client, wired):
        assert client.post('/api/delete-voice', json={}).status_code == 400

    @pytest.mark.parametrize("provider", [5, ["minimax"], {"name": "minimax"}])
    def test_delete_voice_non_string_provider(self, client, wired, provider):
        response = client.post('/api/delete-voice', json={'voiceId': 'v1', 'provider': provider})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_request'

    def test_speak_non_string_provider(self, client, wired):
        response = client.post('/api/speak', json={'text': 'Hello', 'voiceId': 'v1', 'provider': 5})
        assert response.status_code == 400

    def test_list_voices(self, client, wired):
        data = client.get('/api/voices').get_json()
        assert {v['voice_id'] for v in data['voices']} == {'v1', 'premade_rachel'}

    def test_preview_voice(self, client, wired, tts):
        response = client.post('/api/preview-voice?voiceId=v1')

        assert response.status_code == 200
        assert response.mimetype == 'audio/mpeg'
        assert response.headers['Cache-Control'] == 'no-cache'
        assert response.data == MP3_FRAME
        assert ('synthesize', 'v1', None) in tts.calls
        assert tts.clones == ['v1']

    def test_preview_expired(self, client, wired, tts):
        tts.synthesis = SynthesisResult.voice_expired()
        assert client.post('/api/minimax-preview-voice?voiceId=v1').status_code == 410

    def test_preview_failed(self, client, wired, tts):
        tts.synthesis = SynthesisResult.failed('boom')
        response = client.post('/api/preview-voice?voiceId=v1')
        assert response.status_code == 500
        assert response.get_json() == {'error': 'Voice preview failed'}

    def test_preview_missing_voice_id(self, client, wired):
        assert client.post('/api/preview-voice').status_code == 400


class TestProviderWiring:
    """Endpoints backed by the real adapters with the HTTP layer mocked."""

    @patch('voicemirror.providers.base.requests')
    def test_list_voices_elevenlabs(self, mock_requests, client):
        mock_requests.request.return_value = make_response(200, {"voices": [
            {"voice_id": "c1", "name": "Me", "category": "cloned",
             "labels": {"accent": "british", "gender": "male"}},
        ]})

        data = client.get('/api/voices?provider=elevenlabs').get_json()

        assert data['voices'] == [{
            "voice_id": "c1", "name": "Me", "category": "cloned",
            "accent": "british", "gender": "male", "preview_url": None,
        }]
        assert mock_requests.request.call_args[1]['headers']['xi-api-key'] == 'xi-test-key-1234'

    @patch('voicemirror.providers.base.requests')
    def test_preview_minimax(self, mock_requests, client):
        mock_requests.request.return_value = make_response(
            200, {"base_resp": {"status_code": 0}, "data": {"audio": MP3_FRAME.hex()}})

        response = client.post('/api/minimax-preview-voice?voiceId=mirror_me_1')

        assert response.data == MP3_FRAME
        assert mock_requests.request.call_args[1]['params'] == {'GroupId': 'group-42'}
