from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from sitegen.llm_parsing import json_from_text

log = logging.getLogger(__name__)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").strip().rstrip("/")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo").strip()
OPENAI_FALLBACK_MODEL = os.getenv("OPENAI_FALLBACK_MODEL", "").strip()
try:
    LLM_TIMEOUT_SECS = float(os.getenv("LLM_TIMEOUT_SECS", "60"))
except Exception:
    LLM_TIMEOUT_SECS = 60.0
try:
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1000"))
except Exception:
    LLM_MAX_TOKENS = 1000

# USD per 1K tokens (input, output)
_PRICING = {
    "gpt-4": (0.03, 0.06),
    "gpt-3.5-turbo": (0.001, 0.002),
}


class CompletionError(Exception):
    """Base class for failures talking to the completion service."""


class ConfigurationError(CompletionError):
    pass


class CompletionAuthError(CompletionError):
    pass


class CompletionRateLimitError(CompletionError):
    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class CompletionUpstreamError(CompletionError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CompletionTimeoutError(CompletionError):
    pass


@dataclass
class Completion:
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


def estimate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    rate_in, rate_out = _PRICING["gpt-4"] if "gpt-4" in model else _PRICING["gpt-3.5-turbo"]
    return (prompt_tokens / 1000) * rate_in + (completion_tokens / 1000) * rate_out


def _retry_after(resp: httpx.Response) -> Optional[float]:
    raw = resp.headers.get("Retry-After")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _error_for(resp: httpx.Response) -> CompletionError:
    status = resp.status_code
    if status in (401, 403):
        return CompletionAuthError(
            "Invalid completion service API key. Please check your OPENAI_API_KEY environment variable."
        )
    if status == 429:
        return CompletionRateLimitError(
            "Completion service rate limit exceeded. Please try again in a moment.",
            retry_after=_retry_after(resp),
        )
    if status >= 500:
        return CompletionUpstreamError("Completion service error. Please try again.", status_code=status)
    return CompletionUpstreamError(f"Completion service error: HTTP {status}", status_code=status)


class CompletionGateway:
    """Thin async adapter over an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        fallback_model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = (OPENAI_API_KEY if api_key is None else api_key).strip()
        self.model = model or OPENAI_MODEL
        self.base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self.fallback_model = OPENAI_FALLBACK_MODEL if fallback_model is None else fallback_model
        self.timeout = LLM_TIMEOUT_SECS if timeout is None else timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    @property
    def has_token(self) -> bool:
        return bool(self.api_key)

    def status(self) -> Dict[str, Any]:
        return {
            "provider": "openai-compatible" if self.has_token else None,
            "model": self.model,
            "has_token": self.has_token,
            "endpoint": self.endpoint,
        }

    async def _post(self, client: httpx.AsyncClient, body: Dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            return await client.post(self.endpoint, headers=headers, json=body)
        except httpx.TimeoutException as exc:
            log.warning("llm.request: timeout after %.0fs model=%s", self.timeout, body.get("model"))
            raise CompletionTimeoutError(
                f"Completion service did not answer within {self.timeout:.0f}s"
            ) from exc
        except httpx.HTTPError as exc:
            log.warning("llm.request: transport error model=%s err=%r", body.get("model"), exc)
            raise CompletionUpstreamError(f"Could not reach completion service: {exc}") from exc

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_mode: bool = True,
    ) -> Completion:
        if not self.api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is not configured. Set it in the environment to enable AI generation."
            )
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens or LLM_MAX_TOKENS,
            "top_p": 1.0,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        log.info("llm.request: model=%s messages=%d max_tokens=%d", self.model, len(messages), body["max_tokens"])
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await self._post(client, body)

            # Some compatible providers reject JSON mode; retry once without it
            if resp.status_code == 400 and "response_format" in body and "response_format" in resp.text:
                log.warning("llm.request: JSON mode rejected; retrying without response_format")
                body.pop("response_format", None)
                resp = await self._post(client, body)

            if resp.status_code != 200 and self.fallback_model and self.fallback_model != self.model:
                lower = resp.text.lower()
                model_rejected = "model" in lower and ("not found" in lower or "invalid" in lower)
                if resp.status_code == 429 or model_rejected:
                    log.warning(
                        "llm.request: model=%s failed status=%s; retrying with fallback=%s",
                        self.model,
                        resp.status_code,
                        self.fallback_model,
                    )
                    body = dict(body, model=self.fallback_model)
                    resp = await self._post(client, body)

        if resp.status_code != 200:
            log.warning("llm.response: HTTP %s body=%s", resp.status_code, resp.text[:400])
            raise _error_for(resp)

        try:
            data = resp.json()
        except ValueError as exc:
            raise CompletionUpstreamError("Completion service returned a non-JSON body") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content.strip():
            raise CompletionUpstreamError("Completion service returned an empty response")

        raw_usage = data.get("usage") or {}
        usage = {
            "prompt_tokens": int(raw_usage.get("prompt_tokens", 0) or 0),
            "completion_tokens": int(raw_usage.get("completion_tokens", 0) or 0),
            "total_tokens": int(raw_usage.get("total_tokens", 0) or 0),
        }
        used_model = str(data.get("model") or body["model"])
        log.info(
            "llm.response: model=%s tokens=%d cost~$%.4f",
            used_model,
            usage["total_tokens"],
            estimate_cost(used_model, usage["prompt_tokens"], usage["completion_tokens"]),
        )
        return Completion(content=content, model=used_model, usage=usage)

    async def complete_json(
        self,
        system: str,
        user: str,
        *,
        context: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Send a system+user prompt and return the parsed JSON object."""
        completion = await self.complete(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return json_from_text(completion.content, context=context)
