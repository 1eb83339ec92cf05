"""
Provider Registry - maps provider names to adapter classes.

The pipeline and the blueprints ask the registry for an adapter once per
request and only ever talk to it through the base class interface.
"""

import logging
from typing import Dict, Type, List, Any, Union

from .base import BaseVoiceProvider, BaseLLMProvider, ProviderConfig
from .exceptions import ProviderRegistrationError
from .elevenlabs_provider import ElevenLabsProvider
from .minimax_provider import MiniMaxProvider
from .anthropic_provider import AnthropicProvider

logger = logging.getLogger(__name__)

ProviderClass = Union[Type[BaseVoiceProvider], Type[BaseLLMProvider]]


class ProviderRegistry:
    """
    Registry for provider plugins.

    Handles registration and factory-based instantiation of voice and LLM
    providers.
    """

    def __init__(self):
        self._providers: Dict[str, ProviderClass] = {}

    def register_provider(self, provider_class: ProviderClass) -> None:
        """
        Register a provider class.

        Raises:
            ProviderRegistrationError: If provider name is invalid or already registered
        """
        if not issubclass(provider_class, (BaseVoiceProvider, BaseLLMProvider)):
            raise ProviderRegistrationError(f"{provider_class.__name__} must inherit from a provider base class")

        provider_name = provider_class.provider_name
        if not provider_name or provider_name == "base":
            raise ProviderRegistrationError(f"Invalid provider name: {provider_name}")

        if provider_name in self._providers:
            raise ProviderRegistrationError(f"Provider '{provider_name}' is already registered")

        self._providers[provider_name] = provider_class
        logger.debug("Registered provider: %s", provider_name)

    def list_providers(self) -> List[Dict[str, Any]]:
        """Get list of all registered providers with metadata."""
        return [
            {
                "name": name,
                "display_name": getattr(provider_class, "provider_display_name", name),
                "capabilities": [c.value for c in getattr(provider_class, "default_capabilities", [])],
            }
            for name, provider_class in self._providers.items()
        ]

    def create_provider(self, provider_name: str, provider_config: ProviderConfig):
        """
        Factory method to create a provider instance.

        Raises:
            ProviderRegistrationError: If no provider is registered under that name
        """
        provider_class = self._providers.get(provider_name)
        if not provider_class:
            raise ProviderRegistrationError(f"Provider '{provider_name}' not found")
        return provider_class(config=provider_config)


def _build_default_registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    for provider_class in (ElevenLabsProvider, MiniMaxProvider, AnthropicProvider):
        registry.register_provider(provider_class)
    return registry


# Global registry instance
_registry = _build_default_registry()


def get_registry() -> ProviderRegistry:
    """Get the global provider registry instance."""
    return _registry


def list_available_providers() -> List[Dict[str, Any]]:
    return get_registry().list_providers()
