"""
The reflection pipeline: speech-to-text, LLM reflection, text-to-speech.

One ``ReflectionPipeline`` serves one request. Stages run strictly in order
and all state lives on the stack of ``run``:

    RECEIVED -> TRANSCRIBING -> REFLECTING -> SYNTHESIZING
             -> DELIVERED | DEGRADED | FAILED

Only the LLM stage retries (by falling back to the next model). A failed
synthesis degrades the result to text instead of failing it, except when the
provider says the clone is gone.
"""

import base64
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Dict, Any, Sequence

from voicemirror.clones import CloneLifecycleManager
from voicemirror.errors import (
    EmptyCompletionError, MirrorError, ModelOverloadedError, NoSpeechError,
    UpstreamError, ValidationError, VoiceExpiredError,
)
from voicemirror.prompts import MIRROR_SYSTEM_PROMPT
from voicemirror.providers import (
    BaseLLMProvider, BaseVoiceProvider, ChatMessage, Provider, SynthesisStatus,
)
from voicemirror.shared import DEFAULT_REFLECTION_MODELS, MODEL_FALLBACK_BACKOFF, REFLECTION_MAX_TOKENS

logger = logging.getLogger(__name__)

DEGRADED_MESSAGE = "Voice synthesis failed, returning text only"


class PipelineState(Enum):
    RECEIVED = "received"
    TRANSCRIBING = "transcribing"
    REFLECTING = "reflecting"
    SYNTHESIZING = "synthesizing"
    DELIVERED = "delivered"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class ReflectionRequest:
    voice_id: str
    provider: Provider = Provider.ELEVENLABS
    speed: float = 1.0
    audio: Optional[bytes] = None
    audio_filename: str = "recording.webm"
    transcript: Optional[str] = None
    system_prompt: Optional[str] = None

    def validate(self):
        if not self.voice_id:
            raise ValidationError("No voice ID configured. Please clone your voice first.")
        if not self.audio and not (self.transcript and self.transcript.strip()):
            raise ValidationError("Audio file or transcript is required")


@dataclass(frozen=True)
class ReflectionResult:
    transcript: str
    reflection: str
    audio: Optional[bytes]
    state: PipelineState
    error: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.state is PipelineState.DEGRADED

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "transcript": self.transcript,
            "reflection": self.reflection,
            "audio": base64.b64encode(self.audio).decode('utf-8') if self.audio else None,
        }
        if self.error:
            result["error"] = self.error
        return result


class ReflectionPipeline:
    """
    Chains the STT, LLM and TTS adapters for one request.

    Args:
        stt: Adapter used for transcription
        llm: Chat completion adapter
        tts: Voice adapter the clone lives on, chosen once by the caller
        clones: Lifecycle manager for ``tts``; reclamation is skipped without one
        models: Ordered model names for the fallback loop
        backoff: Seconds to wait before trying the next model
        sleep: Injected for tests
    """

    def __init__(
        self,
        stt: BaseVoiceProvider,
        llm: BaseLLMProvider,
        tts: BaseVoiceProvider,
        clones: Optional[CloneLifecycleManager] = None,
        models: Sequence[str] = DEFAULT_REFLECTION_MODELS,
        max_tokens: int = REFLECTION_MAX_TOKENS,
        backoff: float = MODEL_FALLBACK_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not models:
            raise ValueError("At least one reflection model is required")
        self.stt = stt
        self.llm = llm
        self.tts = tts
        self.clones = clones
        self.models: List[str] = list(models)
        self.max_tokens = max_tokens
        self.backoff = backoff
        self.sleep = sleep
        self.state = PipelineState.RECEIVED

    def _enter(self, state: PipelineState):
        logger.debug("pipeline %s -> %s", self.state.value, state.value)
        self.state = state

    def transcribe(self, audio: bytes, filename: str = "recording.webm") -> str:
        """
        Raises:
            NoSpeechError: If the transcript is empty or whitespace
            UpstreamError: If the STT call fails
        """
        transcript = (self.stt.transcribe(audio, filename) or "").strip()
        if not transcript:
            raise NoSpeechError()
        return transcript

    def reflect(self, transcript: str, system_prompt: Optional[str] = None) -> str:
        """
        Ask the LLM for a reflection, walking the model list on overload.

        Raises:
            UpstreamError: If every model is overloaded or one fails otherwise
            EmptyCompletionError: If the chosen model returns no text
        """
        messages = [ChatMessage(role="user", content=transcript)]
        system = system_prompt or MIRROR_SYSTEM_PROMPT
        last_overload: Optional[ModelOverloadedError] = None

        for index, model in enumerate(self.models):
            if index > 0:
                self.sleep(self.backoff)
            try:
                response = self.llm.chat_completion(messages, system=system, model=model, max_tokens=self.max_tokens)
            except ModelOverloadedError as e:
                logger.warning("Model %s overloaded (%s), trying next", model, e.status_code)
                last_overload = e
                continue

            reflection = (response.content or "").strip()
            if not reflection:
                raise EmptyCompletionError(provider=getattr(self.llm, "provider_name", None))
            logger.info("Reflection generated by %s (%d chars, stop=%s, usage=%s)",
                        model, len(reflection), response.finish_reason, response.usage)
            return reflection

        raise UpstreamError(
            "All reflection models are unavailable",
            detail=last_overload.detail if last_overload else None,
            provider=getattr(self.llm, "provider_name", None),
            status_code=last_overload.status_code if last_overload else None,
        )

    def speak(self, text: str, voice_id: str, speed: Optional[float] = 1.0) -> bytes:
        """
        Plain synthesis for the speak and preview endpoints.

        Raises:
            VoiceExpiredError: If the clone is gone
            UpstreamError: If synthesis fails otherwise
        """
        result = self.tts.synthesize(text, voice_id, speed)
        if result.status is SynthesisStatus.VOICE_EXPIRED:
            raise VoiceExpiredError(detail=result.detail)
        if not result.is_ok:
            raise UpstreamError("Voice synthesis failed", detail=result.detail, provider=self.tts.provider_name)
        return result.audio

    def run(self, request: ReflectionRequest) -> ReflectionResult:
        """
        Run the whole pipeline for one request.

        Returns a DELIVERED or DEGRADED result. Every other terminal outcome
        is raised as a ``MirrorError``; a ``VoiceExpiredError`` carries the
        transcript and reflection computed so far.
        """
        request.validate()
        self.state = PipelineState.RECEIVED
        try:
            if request.transcript and request.transcript.strip():
                transcript = request.transcript.strip()
            else:
                self._enter(PipelineState.TRANSCRIBING)
                transcript = self.transcribe(request.audio, request.audio_filename)

            self._enter(PipelineState.REFLECTING)
            reflection = self.reflect(transcript, request.system_prompt)

            self._enter(PipelineState.SYNTHESIZING)
            result = self.tts.synthesize(reflection, request.voice_id, request.speed)
        except MirrorError:
            self._enter(PipelineState.FAILED)
            raise

        if result.status is SynthesisStatus.VOICE_EXPIRED:
            self._enter(PipelineState.FAILED)
            if self.clones:
                self.clones.mark_expired(request.voice_id)
            raise VoiceExpiredError(detail=result.detail, transcript=transcript, reflection=reflection)

        if not result.is_ok:
            logger.error("TTS error, returning text only: %s", result.detail)
            self._enter(PipelineState.DEGRADED)
            return ReflectionResult(transcript, reflection, None, PipelineState.DEGRADED, error=DEGRADED_MESSAGE)

        if self.clones:
            self.clones.mark_consumed(request.voice_id)
            self.clones.reclaim(request.voice_id)
        self._enter(PipelineState.DELIVERED)
        return ReflectionResult(transcript, reflection, result.audio, PipelineState.DELIVERED)
