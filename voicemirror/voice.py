import logging
from flask import Blueprint, request, jsonify, Response

from voicemirror.clones import CloneLifecycleManager
from voicemirror.core import get_settings
from voicemirror.errors import UpstreamError, ValidationError, VoiceExpiredError
from voicemirror.providers import Provider, SynthesisStatus
from voicemirror.shared import PREVIEW_TEXT, get_voice_provider
from voicemirror.transcoder import prepare_clone_sample

logger = logging.getLogger(__name__)

voice_bp = Blueprint('voice', __name__)


def _clone(provider: Provider):
    settings = get_settings()
    tts = get_voice_provider(settings, provider)

    name = (request.form.get('name') or '').strip()
    a_file = request.files.get('audio')
    if not name or not a_file:
        raise ValidationError("Name and audio file are required")

    audio = a_file.read()
    if not audio:
        raise ValidationError("Audio file is empty")
    filename = a_file.filename or ('voice-sample.wav' if provider is Provider.MINIMAX else 'voice-sample.webm')
    audio, filename = prepare_clone_sample(audio, filename, provider)

    try:
        profile = CloneLifecycleManager(tts).create_clone(name, audio, filename)
    except UpstreamError as e:
        logger.error("%s clone error: %s | detail=%r", provider.value, e, e.detail)
        status = e.status_code if e.status_code and e.status_code >= 400 else 500
        return jsonify({"error": e.message or "Voice cloning failed"}), status
    return jsonify(profile.to_dict())


@voice_bp.route('/api/clone-voice', methods=['POST'])
def clone_voice():
    return _clone(Provider.parse(request.form.get('provider')))


@voice_bp.route('/api/minimax-clone-voice', methods=['POST'])
def minimax_clone_voice():
    return _clone(Provider.MINIMAX)


@voice_bp.route('/api/delete-voice', methods=['POST'])
def delete_voice():
    data = request.get_json(silent=True) or {}
    voice_id = data.get('voiceId')
    if not voice_id:
        raise ValidationError("voiceId is required")
    provider = Provider.parse(data.get('provider'))
    tts = get_voice_provider(get_settings(), provider)

    deleted = CloneLifecycleManager(tts).delete(voice_id)
    return jsonify({"status": "ok", "deleted": deleted})


@voice_bp.route('/api/voices', methods=['GET'])
def list_voices():
    provider = Provider.parse(request.args.get('provider'))
    tts = get_voice_provider(get_settings(), provider)
    voices = tts.list_voices()
    return jsonify({"voices": [v.to_dict() for v in voices]})


def _preview(provider: Provider):
    voice_id = request.args.get('voiceId')
    if not voice_id:
        raise ValidationError("voiceId is required")
    tts = get_voice_provider(get_settings(), provider)

    # Preview keeps the provider's default speed and never reclaims the clone
    result = tts.synthesize(PREVIEW_TEXT, voice_id, None)
    if result.status is SynthesisStatus.VOICE_EXPIRED:
        raise VoiceExpiredError(detail=result.detail)
    if not result.is_ok:
        logger.error("%s preview error: %s", provider.value, result.detail)
        return jsonify({"error": "Voice preview failed"}), 500
    return Response(result.audio, mimetype='audio/mpeg', headers={'Cache-Control': 'no-cache'})


@voice_bp.route('/api/preview-voice', methods=['POST'])
def preview_voice():
    return _preview(Provider.parse(request.args.get('provider')))


@voice_bp.route('/api/minimax-preview-voice', methods=['POST'])
def minimax_preview_voice():
    return _preview(Provider.MINIMAX)
