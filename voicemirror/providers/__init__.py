"""
Provider adapters for speech-to-text, text-to-speech, voice cloning and LLM calls.

Each provider is a self-contained module implementing one of the base
interfaces; the registry instantiates them from a ProviderConfig.
"""

from .base import (
    Provider,
    ProviderCapability,
    ProviderConfig,
    ChatMessage,
    ChatResponse,
    VoiceInfo,
    SynthesisStatus,
    SynthesisResult,
    BaseVoiceProvider,
    BaseLLMProvider,
)
from .elevenlabs_provider import ElevenLabsProvider
from .minimax_provider import MiniMaxProvider
from .anthropic_provider import AnthropicProvider
from .registry import ProviderRegistry, get_registry, list_available_providers

__all__ = [
    'Provider',
    'ProviderCapability',
    'ProviderConfig',
    'ChatMessage',
    'ChatResponse',
    'VoiceInfo',
    'SynthesisStatus',
    'SynthesisResult',
    'BaseVoiceProvider',
    'BaseLLMProvider',
    'ElevenLabsProvider',
    'MiniMaxProvider',
    'AnthropicProvider',
    'ProviderRegistry',
    'get_registry',
    'list_available_providers',
]
