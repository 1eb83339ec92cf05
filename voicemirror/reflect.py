import base64
import logging
from flask import Blueprint, request, jsonify

from voicemirror.clones import CloneLifecycleManager
from voicemirror.core import get_settings
from voicemirror.errors import ValidationError
from voicemirror.pipeline import ReflectionPipeline, ReflectionRequest
from voicemirror.prompts import resolve_system_prompt
from voicemirror.providers import Provider
from voicemirror.shared import (
    Settings, get_llm_provider, get_stt_provider, get_voice_provider, parse_speed,
)

logger = logging.getLogger(__name__)

reflect_bp = Blueprint('reflect', __name__)


def build_pipeline(settings: Settings, provider: Provider, needs_stt: bool = True, needs_llm: bool = True) -> ReflectionPipeline:
    """Select every adapter up front so missing credentials fail before any stage runs."""
    required = [provider.value]
    if needs_stt:
        required.append(Provider.ELEVENLABS.value)
    if needs_llm:
        required.append("anthropic")
    settings.require(*required)

    tts = get_voice_provider(settings, provider)
    stt = get_stt_provider(settings) if needs_stt else tts
    llm = get_llm_provider(settings) if needs_llm else None
    return ReflectionPipeline(
        stt=stt,
        llm=llm,
        tts=tts,
        clones=CloneLifecycleManager(tts),
        models=settings.reflection_models,
    )


def _read_audio_upload(required: bool = True):
    a_file = request.files.get('audio')
    if not a_file:
        if required:
            raise ValidationError("Audio file is required")
        return None, None
    data = a_file.read()
    if not data:
        raise ValidationError("Audio file is empty")
    return data, a_file.filename or 'recording.webm'


@reflect_bp.route('/api/reflect', methods=['POST'])
def reflect():
    settings = get_settings()
    form = request.form
    provider = Provider.parse(form.get('provider'))
    transcript = (form.get('transcript') or '').strip() or None

    pipeline = build_pipeline(settings, provider, needs_stt=transcript is None)

    audio, filename = (None, None) if transcript else _read_audio_upload()
    voice_id = form.get('voiceId')
    if not voice_id and provider is Provider.ELEVENLABS:
        # The configured default is an ElevenLabs voice
        voice_id = settings.elevenlabs_voice_id
    reflection_request = ReflectionRequest(
        voice_id=voice_id or '',
        provider=provider,
        speed=parse_speed(form.get('speed')),
        audio=audio,
        audio_filename=filename or 'recording.webm',
        transcript=transcript,
        system_prompt=resolve_system_prompt(form.get('systemPrompt'), form.get('theme')),
    )

    result = pipeline.run(reflection_request)
    logger.info("Reflect finished: %s", result.state.value)
    return jsonify(result.to_dict())


@reflect_bp.route('/api/speak', methods=['POST'])
def speak():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Invalid JSON body")

    text, voice_id = data.get('text'), data.get('voiceId')
    if not text or not voice_id:
        raise ValidationError("text and voiceId are required")

    provider = Provider.parse(data.get('provider'))
    pipeline = build_pipeline(get_settings(), provider, needs_stt=False, needs_llm=False)
    audio = pipeline.speak(text, voice_id, parse_speed(data.get('speed')))
    return jsonify({"audio": base64.b64encode(audio).decode('utf-8')})


@reflect_bp.route('/api/transcribe', methods=['POST'])
def transcribe():
    settings = get_settings()
    settings.require(Provider.ELEVENLABS.value)
    audio, filename = _read_audio_upload()

    stt = get_stt_provider(settings)
    pipeline = ReflectionPipeline(stt=stt, llm=None, tts=stt, models=settings.reflection_models)
    return jsonify({"transcript": pipeline.transcribe(audio, filename)})
