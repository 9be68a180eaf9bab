import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import httpx
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_ollama import ChatOllama

from core.errors import LLMError
from services.config import AppConfig, LLMConfig

logger = logging.getLogger(__name__)


class LLMClient(ABC):
    """
    Best-effort chat completion returning a JSON-formatted string.
    Raises LLMError on transport failure, non-success status or empty content.
    """

    name: str

    @abstractmethod
    async def complete_json(self, system: str, user: str) -> str:
        raise NotImplementedError


class OpenAIChatClient(LLMClient):
    """
    OpenAI-compatible chat completions over plain HTTP.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        temperature: float = 0.4,
        max_tokens: int = 800,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.transport = transport

    async def complete_json(self, system: str, user: str) -> str:
        body = {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(f"{self.base_url}/chat/completions", json=body, headers=headers)
        except httpx.HTTPError as e:
            raise LLMError(f"OpenAI request failed: {e!r}") from e

        if resp.status_code != 200:
            raise LLMError(f"OpenAI returned {resp.status_code}: {resp.text[:300]}")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Unexpected OpenAI response shape: {e!r}") from e

        if not content or not str(content).strip():
            raise LLMError("OpenAI returned empty content")
        return str(content).strip()


class OllamaClient(LLMClient):
    """
    LangChain-based Ollama client with retry logic and proper connection handling.
    """

    name = "ollama"

    def __init__(
        self,
        base_url: str,
        model: str,
        temperature: float = 0.4,
        max_retries: int = 2,
        retry_delay: float = 2.0,
        timeout: float = 30.0,
        llm: Optional[Any] = None,
    ):
        # ChatOllama uses Ollama's native API, not the OpenAI-compatible /v1 endpoint
        if base_url.endswith("/v1"):
            base_url = base_url[:-3]
        elif base_url.endswith("/v1/"):
            base_url = base_url[:-4]

        self.base_url = base_url.rstrip('/')
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        self.llm = llm or ChatOllama(
            base_url=self.base_url,
            model=model,
            temperature=temperature,
            format="json",
            num_ctx=4096,
        )

    async def _invoke_with_retry(self, messages: List[BaseMessage]) -> Any:
        """
        Invoke LLM with retry logic for connection failures.
        """
        last_exception: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return await asyncio.wait_for(
                    self.llm.ainvoke(messages),
                    timeout=self.timeout,
                )

            except asyncio.TimeoutError:
                last_exception = TimeoutError(f"Request timed out after {self.timeout}s")
                logger.warning(f"Attempt {attempt}/{self.max_retries}: Timeout, retrying...")

            except Exception as e:
                last_exception = e
                error_msg = str(e)

                if "connection" in error_msg.lower() or "connect" in error_msg.lower():
                    logger.warning(
                        f"Attempt {attempt}/{self.max_retries}: Connection error - {error_msg} "
                        f"(base_url={self.base_url}, model={self.model})"
                    )
                else:
                    raise LLMError(f"Ollama invocation failed: {e}") from e

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * attempt)

        raise LLMError(f"All Ollama attempts failed: {last_exception}")

    async def complete_json(self, system: str, user: str) -> str:
        response = await self._invoke_with_retry(
            [SystemMessage(content=system), HumanMessage(content=user)]
        )
        content = getattr(response, "content", "") or ""
        if not str(content).strip():
            raise LLMError("Ollama returned empty content")
        return str(content).strip()


def create_llm_client(config: AppConfig) -> Optional[LLMClient]:
    """
    Build the configured LLM client, or None when synthesis must stay extractive
    (LLM disabled, or the provider's credential is not configured).
    """
    llm_config: LLMConfig = config.llm
    if not llm_config.enabled:
        logger.info("LLM disabled, briefs will be extractive")
        return None

    provider = llm_config.provider.lower()

    if provider == "openai":
        if not config.secrets.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY not configured, briefs will be extractive")
            return None
        return OpenAIChatClient(
            api_key=config.secrets.OPENAI_API_KEY,
            model=llm_config.openai_model,
            base_url=llm_config.openai_base_url,
            temperature=llm_config.temperature,
            max_tokens=llm_config.max_tokens,
            timeout=llm_config.timeout_seconds,
        )

    if provider == "ollama":
        return OllamaClient(
            base_url=llm_config.ollama_base_url,
            model=llm_config.ollama_model,
            temperature=llm_config.temperature,
            timeout=llm_config.timeout_seconds,
        )

    logger.error(f"Unknown LLM provider '{llm_config.provider}', briefs will be extractive")
    return None
