"""
OpenAI-compatible client.

Works with OpenAI itself and any provider exposing the chat completions
API (Z.AI GLM, local gateways) through a base URL override.
"""
import time
from typing import Optional, List

import httpx
from openai import OpenAI
from loguru import logger

from .base import LLMClient, LLMResponse, Message


class OpenAICompatClient(LLMClient):
    """
    Chat completions client using the OpenAI SDK.

    Example:
        client = OpenAICompatClient(api_key="...", model="gpt-4o-mini")
        response = client.generate("Extract tokens from: ...")
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 120.0,
        verify_ssl: bool = True,
    ):
        """
        Args:
            api_key: Provider API key
            model: Model name
            base_url: Endpoint override (None = OpenAI default)
            timeout: Request timeout in seconds
            verify_ssl: Whether to verify SSL certificates (disable for dev if needed)
        """
        super().__init__(api_key, model)
        self.timeout = timeout

        http_client = None
        if not verify_ssl:
            http_client = httpx.Client(verify=False)
            logger.warning("SSL verification disabled for LLM client")

        self._client = OpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=timeout,
            http_client=http_client,
        )

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Generate response from a single prompt."""
        messages = [Message(role="user", content=prompt)]
        return self.chat(messages, system=system, max_tokens=max_tokens, temperature=temperature)

    def chat(
        self,
        messages: List[Message],
        system: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Generate response from conversation."""
        api_messages = []
        if system:
            api_messages.append({"role": "system", "content": system})
        for msg in messages:
            api_messages.append({"role": msg.role, "content": msg.content})

        logger.debug(f"LLM request: model={self.model}, messages={len(api_messages)}")

        started = time.monotonic()
        response = self._client.chat.completions.create(
            model=self.model,
            messages=api_messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )

        choice = response.choices[0]
        usage = response.usage

        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage={
                "input_tokens": usage.prompt_tokens if usage else 0,
                "output_tokens": usage.completion_tokens if usage else 0,
            },
            stop_reason=choice.finish_reason,
            latency_ms=int((time.monotonic() - started) * 1000),
        )
