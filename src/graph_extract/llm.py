from __future__ import annotations
from typing import Dict, List, Tuple

import httpx
import requests
from langchain_ollama import ChatOllama
from langchain_core.prompts import ChatPromptTemplate
from ollama import ResponseError

from .config import settings
from .exceptions import ModelError, ModelUnavailable
from .schemas import ExtractionRequest


def _debug(msg: str) :
    if settings.debug_pipeline:
        print(f"[LLM] {msg}", flush=True)


# Both turns are variables so braces in prompts or segment text are never
# read as template fields.
_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", "{system}"),
        ("user", "{input}"),
    ]
)


class LLMClient:
    def __init__(
        self,
        chat_model: str | None = None,
        base_url: str | None = None,
        temperature: float | None = None,
    ):
        self.model = chat_model or settings.ollama_extraction_model
        self.base_url = base_url or settings.ollama_base_url
        self.temperature = settings.temperature if temperature is None else temperature

        client_kwargs = {}
        if settings.request_timeout is not None:
            client_kwargs["timeout"] = settings.request_timeout

        self.chat = ChatOllama(
            model=self.model,
            temperature=self.temperature,
            base_url=self.base_url,
            client_kwargs=client_kwargs,
        )
        self.chain = _PROMPT | self.chat

    @staticmethod
    def _content(resp) :
        content = getattr(resp, "content", resp)
        return content if isinstance(content, str) else ""

    def _translate_error(self, exc: Exception) :
        if isinstance(exc, ResponseError):
            return ModelError(
                f"Model '{self.model}' at {self.base_url} returned an error: {exc.error}",
                status_code=exc.status_code,
            )
        return ModelUnavailable(
            f"Could not reach model endpoint {self.base_url}: {exc}",
            details={"type": type(exc).__name__},
        )

    def simple_chat(self, system_prompt: str, user_prompt: str) :
        try:
            resp = self.chain.invoke({"system": system_prompt, "input": user_prompt})
        except (ResponseError, ConnectionError, httpx.TransportError, OSError) as e:
            raise self._translate_error(e) from e
        return self._content(resp)

    async def ainvoke(self, request: ExtractionRequest) :
        """Send one extraction request and return the generated text."""
        try:
            resp = await self.chain.ainvoke(
                {"system": request.system_prompt, "input": request.user_prompt}
            )
        except (ResponseError, ConnectionError, httpx.TransportError, OSError) as e:
            raise self._translate_error(e) from e
        return self._content(resp)


class ModelCache:
    """
    Holds the client for the last (endpoint, model, temperature) seen.
    Asking for a different key replaces the cached client.
    """

    def __init__(self, factory=LLMClient):
        self._factory = factory
        self._key: Tuple[str, str, float] | None = None
        self._client = None

    @property
    def key(self) :
        return self._key

    def get(self, base_url: str, model: str, temperature: float) :
        if not model:
            return None
        key = (base_url, model, temperature)
        if self._client is None or key != self._key:
            _debug(f"Creating model client for {model} at {base_url} (temperature={temperature})")
            self._client = self._factory(
                chat_model=model, base_url=base_url, temperature=temperature
            )
            self._key = key
        return self._client

    def clear(self) :
        self._key = None
        self._client = None


def list_models(base_url: str | None = None, timeout: float = 10.0) -> List[Dict[str, str]]:
    """Return the models installed on an Ollama server as [{name, alias}]."""
    base_url = (base_url or settings.ollama_base_url).rstrip("/")
    _debug(f"Fetching models from {base_url}...")
    try:
        resp = requests.get(f"{base_url}/api/tags", timeout=timeout)
        resp.raise_for_status()
    except requests.HTTPError as e:
        raise ModelError(
            f"Error fetching models from {base_url}: {e}",
            status_code=e.response.status_code if e.response is not None else None,
        ) from e
    except requests.RequestException as e:
        raise ModelUnavailable(f"Could not reach {base_url}: {e}") from e

    data = resp.json()
    if not isinstance(data, dict) or not isinstance(data.get("models"), list):
        raise ModelError(f"Invalid response structure from {base_url}/api/tags")

    models = [
        {"name": m.get("name", ""), "alias": m.get("model") or m.get("name", "")}
        for m in data["models"]
        if isinstance(m, dict)
    ]
    _debug(f"Successfully fetched {len(models)} models.")
    return models
