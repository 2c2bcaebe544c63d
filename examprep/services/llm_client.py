# examprep/services/llm_client.py
"""
LLM gateway client.

Talks to an OpenAI compatible ``/chat/completions`` endpoint. Used for OCR
(vision requests with image content parts), structured scoring (declared
function + forced tool choice) and plain JSON generation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from examprep.core.config import Settings, settings as default_settings
from examprep.services.errors import (
    PaymentRequiredError,
    RateLimitError,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)


class LLMGatewayClient:
    def __init__(
        self,
        config: Optional[Settings] = None,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        config = config or default_settings
        # may be unset; chat() refuses to send without it
        self.api_key = api_key or config.LLM_API_KEY
        self.base_url = base_url or config.LLM_GATEWAY_URL
        self.model = model or config.LLM_MODEL
        self._client = httpx.Client(
            timeout=config.LLM_TIMEOUT_SECONDS,
            transport=transport,
        )

    def chat(
        self,
        messages: List[Dict[str, Any]],
        *,
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send one chat-completion request and return ``choices[0].message``."""
        if not self.api_key:
            logger.error("LLM_API_KEY is not configured")
            raise UpstreamServiceError("AI service is not configured.")

        payload: Dict[str, Any] = {"model": self.model, "messages": messages}
        if tools:
            payload["tools"] = tools
        if tool_choice:
            payload["tool_choice"] = tool_choice

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            r = self._client.post(self.base_url, headers=headers, json=payload)
        except httpx.RequestError as net_err:
            logger.error(f"LLM gateway unreachable: {net_err}")
            raise UpstreamServiceError("AI service is unreachable. Please retry.") from net_err

        if r.status_code == 429:
            logger.error(f"LLM gateway rate limited: {r.text}")
            raise RateLimitError(upstream_status=429)
        if r.status_code == 402:
            logger.error(f"LLM gateway payment required: {r.text}")
            raise PaymentRequiredError(upstream_status=402)
        if r.is_error:
            logger.error(f"LLM gateway error: status={r.status_code} body={r.text}")
            raise UpstreamServiceError(upstream_status=r.status_code)

        try:
            data = r.json()
            return data["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as err:
            logger.error(f"Unexpected LLM gateway response: {r.text}")
            raise UpstreamServiceError("Malformed AI response.") from err

    def complete_text(self, messages: List[Dict[str, Any]]) -> str:
        message = self.chat(messages)
        content = message.get("content")
        if not isinstance(content, str):
            raise UpstreamServiceError("Malformed AI response: content is missing.")
        return content

    def extract_text(self, instruction: str, image_urls: List[str]) -> str:
        """Vision OCR: one request carrying the instruction plus every page image."""
        parts: List[Dict[str, Any]] = [{"type": "text", "text": instruction}]
        for url in image_urls:
            parts.append({"type": "image_url", "image_url": {"url": url}})
        message = self.chat([{"role": "user", "content": parts}])
        content = message.get("content")
        return content if isinstance(content, str) else ""

    def close(self) -> None:
        self._client.close()
