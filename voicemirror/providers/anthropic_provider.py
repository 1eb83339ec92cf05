"""
Anthropic Provider Plugin

Implements BaseLLMProvider for the Anthropic Messages API.
"""

import logging
from typing import List, Optional, Dict

from .base import BaseLLMProvider, ChatMessage, ChatResponse, truncate_payload
from ..errors import ConfigurationError, ModelOverloadedError, UpstreamError

logger = logging.getLogger(__name__)

# Statuses after which another model may still answer
OVERLOADED_STATUSES = (529, 503)


class AnthropicProvider(BaseLLMProvider):
    """Provider for the Anthropic Messages API."""

    provider_name = "anthropic"
    provider_display_name = "Anthropic"
    api_base_url = "https://api.anthropic.com"
    API_VERSION = "2023-06-01"
    MESSAGES_ENDPOINT = "/v1/messages"

    def _validate_config(self):
        super()._validate_config()
        if not self.config.api_key:
            raise ConfigurationError("Anthropic requires an API key")

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key,
            "anthropic-version": self.API_VERSION,
            "content-type": "application/json",
        }

    def chat_completion(
        self,
        messages: List[ChatMessage],
        system: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 512,
    ) -> ChatResponse:
        if not messages:
            raise ValueError("Messages list cannot be empty")

        model = model or self.config.model
        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [m.to_dict() for m in messages],
        }
        if system:
            payload["system"] = system

        response = self._make_request('post', self.MESSAGES_ENDPOINT, json=payload)
        data = self._json_or_empty(response)

        if response.status_code in OVERLOADED_STATUSES:
            logger.warning("Model %s unavailable (%s)", model, response.status_code)
            raise ModelOverloadedError(
                f"Model {model} is overloaded",
                detail=data, provider=self.provider_name, status_code=response.status_code,
            )
        if not self._is_success(response):
            logger.error("Anthropic error (%s) for %s: %s", response.status_code, model, truncate_payload(data))
            raise UpstreamError(
                "Reflection failed",
                detail=data, provider=self.provider_name, status_code=response.status_code,
            )

        text = next(
            (block.get('text') or '' for block in data.get('content') or [] if block.get('type') == 'text'),
            '',
        )
        return ChatResponse(
            content=text,
            model=data.get('model', model or ''),
            usage=data.get('usage'),
            finish_reason=data.get('stop_reason'),
        )
