import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Mapping

from voicemirror.errors import ConfigurationError
from voicemirror.providers import (
    Provider, ProviderConfig, BaseVoiceProvider, BaseLLMProvider, get_registry,
)

logger = logging.getLogger(__name__)

# Shared Service Constants
ELEVENLABS_BASE_URL = "https://api.elevenlabs.io"
MINIMAX_BASE_URL = "https://api.minimax.io"
ANTHROPIC_BASE_URL = "https://api.anthropic.com"

DEFAULT_REFLECTION_MODELS = ["claude-sonnet-4-20250514", "claude-3-5-haiku-20241022"]
REFLECTION_MAX_TOKENS = 512
MODEL_FALLBACK_BACKOFF = 0.5
DEFAULT_TIMEOUT = 60

PREVIEW_TEXT = "Hello, this is a test of your cloned voice. If this sounds like you, your voice mirror is ready."

# Environment variables required per provider
REQUIRED_ENV = {
    "elevenlabs": ["ELEVENLABS_API_KEY"],
    "minimax": ["MINIMAX_API_KEY", "MINIMAX_GROUP_ID"],
    "anthropic": ["ANTHROPIC_API_KEY"],
}


def _mask(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return "***" + value[-4:] if len(value) > 4 else "****"


@dataclass
class Settings:
    """Credentials and tunables, read once from the environment and passed around explicitly."""
    elevenlabs_api_key: Optional[str] = None
    elevenlabs_voice_id: Optional[str] = None
    minimax_api_key: Optional[str] = None
    minimax_group_id: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    reflection_models: List[str] = field(default_factory=lambda: list(DEFAULT_REFLECTION_MODELS))
    timeout: int = DEFAULT_TIMEOUT
    log_level: str = "INFO"

    def _values(self) -> Dict[str, Optional[str]]:
        return {
            "ELEVENLABS_API_KEY": self.elevenlabs_api_key,
            "MINIMAX_API_KEY": self.minimax_api_key,
            "MINIMAX_GROUP_ID": self.minimax_group_id,
            "ANTHROPIC_API_KEY": self.anthropic_api_key,
        }

    def missing(self, provider_name: str) -> List[str]:
        values = self._values()
        return [name for name in REQUIRED_ENV[provider_name] if not values.get(name)]

    def is_configured(self, provider_name: str) -> bool:
        return not self.missing(provider_name)

    def require(self, *provider_names: str) -> None:
        """
        Fail fast when credentials for any of the named providers are missing.

        Raises:
            ConfigurationError: Naming the missing environment variables
        """
        missing = [name for p in provider_names for name in self.missing(p)]
        if missing:
            raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")

    def provider_config(self, provider_name: str) -> ProviderConfig:
        self.require(provider_name)
        if provider_name == "elevenlabs":
            return ProviderConfig(provider_type=provider_name, api_key=self.elevenlabs_api_key,
                                  base_url=ELEVENLABS_BASE_URL, timeout=self.timeout)
        if provider_name == "minimax":
            return ProviderConfig(provider_type=provider_name, api_key=self.minimax_api_key,
                                  group_id=self.minimax_group_id, base_url=MINIMAX_BASE_URL, timeout=self.timeout)
        return ProviderConfig(provider_type=provider_name, api_key=self.anthropic_api_key,
                              base_url=ANTHROPIC_BASE_URL, model=self.reflection_models[0], timeout=self.timeout)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding sensitive data."""
        return {
            "elevenlabs": {"configured": self.is_configured("elevenlabs"), "api_key": _mask(self.elevenlabs_api_key),
                           "default_voice_id": self.elevenlabs_voice_id},
            "minimax": {"configured": self.is_configured("minimax"), "api_key": _mask(self.minimax_api_key),
                        "group_id": self.minimax_group_id},
            "anthropic": {"configured": self.is_configured("anthropic"), "api_key": _mask(self.anthropic_api_key),
                          "models": self.reflection_models},
            "timeout": self.timeout,
        }


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    models = [m.strip() for m in env.get("REFLECTION_MODELS", "").split(",") if m.strip()]
    try:
        timeout = int(env.get("PROVIDER_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        logger.warning("Ignoring invalid PROVIDER_TIMEOUT=%r", env.get("PROVIDER_TIMEOUT"))
        timeout = DEFAULT_TIMEOUT
    return Settings(
        elevenlabs_api_key=env.get("ELEVENLABS_API_KEY") or None,
        elevenlabs_voice_id=env.get("ELEVENLABS_VOICE_ID") or None,
        minimax_api_key=env.get("MINIMAX_API_KEY") or None,
        minimax_group_id=env.get("MINIMAX_GROUP_ID") or None,
        anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
        reflection_models=models or list(DEFAULT_REFLECTION_MODELS),
        timeout=timeout,
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )


def get_voice_provider(settings: Settings, provider: Provider) -> BaseVoiceProvider:
    """Build the adapter for ``provider``, failing fast on missing credentials."""
    return get_registry().create_provider(provider.value, settings.provider_config(provider.value))


def get_stt_provider(settings: Settings) -> BaseVoiceProvider:
    # Transcription always runs on ElevenLabs
    return get_voice_provider(settings, Provider.ELEVENLABS)


def get_llm_provider(settings: Settings) -> BaseLLMProvider:
    return get_registry().create_provider("anthropic", settings.provider_config("anthropic"))


def parse_speed(value: Any, default: float = 1.0) -> float:
    """Read a speed from a request; garbage falls back to the default."""
    if value is None or value == "":
        return default
    try:
        speed = float(value)
    except (TypeError, ValueError):
        return default
    return speed if speed == speed else default  # NaN
