"""
Dispatcher Handlers - Transport selection, retry and provider calls.

This module turns a chat message list into provider text, choosing how to
reach the provider and recovering from transient failures:

1. PreferProxy: when PROXY_URL is set, POST to the proxy first. 429/503 are
   retried on the proxy with linear backoff; anything else (including 404
   when no proxy is deployed) falls through to the direct transport.
2. FallbackDirect: call the provider directly, rotating across the
   credential pool. Quota failures wait for the provider's "retry in N s"
   hint (plus a margin) or back off linearly; network failures get a
   smaller retry budget.

Key components:
- RetryPolicy: Attempt budgets and backoff units
- DispatchResult: Provider text plus how it was obtained
- ProviderClients: Lazy-initialized shared HTTP / OpenAI clients
- dispatch(): Main entry point returning raw text
- dispatch_json(): dispatch() followed by JSON repair and parsing
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from interview_coach.config import Settings, get_settings
from interview_coach.dispatcher.classify import (
    FailureKind,
    classify_failure,
    parse_retry_hint,
)
from interview_coach.dispatcher.credentials import (
    CallPurpose,
    CredentialPool,
    SessionContext,
    rotate_credentials,
)
from interview_coach.dispatcher.errors import (
    ConfigurationError,
    ProviderError,
    ProviderUnavailableError,
    QuotaExceededError,
    ResponseShapeError,
    TranslationError,
)
from interview_coach.dispatcher.messages import (
    ChatMessage,
    translate_for_gemini,
    translate_for_openai,
    translate_for_proxy,
)
from interview_coach.dispatcher.repair import parse_model_json

logger = logging.getLogger(__name__)

# Proxy statuses worth retrying on the proxy itself
PROXY_RETRY_STATUSES = frozenset({429, 503})


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt budgets and backoff units for one logical call.

    All durations are in seconds.
    """

    proxy_max_attempts: int = 3
    proxy_backoff_s: float = 2.0
    direct_quota_attempts: int = 5
    direct_network_attempts: int = 2
    direct_backoff_s: float = 2.0
    retry_hint_margin_s: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            proxy_max_attempts=settings.proxy_max_attempts,
            proxy_backoff_s=settings.proxy_backoff_ms / 1000,
            direct_quota_attempts=settings.direct_quota_attempts,
            direct_network_attempts=settings.direct_network_attempts,
            direct_backoff_s=settings.direct_backoff_ms / 1000,
            retry_hint_margin_s=settings.retry_hint_margin_ms / 1000,
        )

    def quota_delay(self, attempt: int, hint_s: float | None) -> float:
        """Wait before retrying a quota failure: hint + margin, else linear."""
        if hint_s is not None:
            return hint_s + self.retry_hint_margin_s
        return self.direct_backoff_s * attempt


@dataclass
class DispatchResult:
    """
    Result of a dispatched call.

    Attributes:
        text: Raw provider text output
        transport: "proxy", "gemini" or "openai"
        latency_ms: Wall time including retries and backoff
        attempts: Proxy attempts, or direct rotation passes
        key_index: Index of the key that succeeded (direct transport only)
        purpose: Credential pool the call drew from
        context: The caller's session context, as updated by this call
    """

    text: str
    transport: str
    latency_ms: float
    attempts: int = 1
    key_index: int | None = None
    purpose: CallPurpose = CallPurpose.GENERAL
    context: SessionContext = field(default_factory=SessionContext)


class ProviderClients:
    """
    Lazy-initialized shared clients.

    The HTTP client serves both the proxy and the Gemini REST API.
    OpenAI clients are created per key, with SDK retries disabled so that
    rotation and backoff stay in this module.
    """

    def __init__(self, http: httpx.AsyncClient | None = None) -> None:
        self._settings = get_settings()
        self._http = http
        self._openai: dict[str, AsyncOpenAI] = {}

    @property
    def http(self) -> httpx.AsyncClient:
        """Get the shared HTTP client (lazy initialization)."""
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._settings.request_timeout_s)
            logger.debug("Initialized HTTP client")
        return self._http

    def openai_for(self, api_key: str) -> AsyncOpenAI:
        """Get an OpenAI client bound to one key (lazy initialization)."""
        client = self._openai.get(api_key)
        if client is None:
            client = AsyncOpenAI(
                api_key=api_key,
                timeout=self._settings.request_timeout_s,
                max_retries=0,
            )
            self._openai[api_key] = client
        return client

    async def aclose(self) -> None:
        """Close every client that was created."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None
        for client in self._openai.values():
            await client.close()
        self._openai.clear()


# Global client instance (singleton pattern)
_clients: ProviderClients | None = None


def get_clients() -> ProviderClients:
    """
    Get the global provider clients instance.

    Uses lazy initialization to create clients only when first needed.

    Returns:
        The singleton ProviderClients instance.
    """
    global _clients
    if _clients is None:
        _clients = ProviderClients()
    return _clients


async def close_clients() -> None:
    """Close and drop the global clients, if any were created."""
    global _clients
    if _clients is not None:
        await _clients.aclose()
        _clients = None


def get_credential_pool(purpose: CallPurpose) -> CredentialPool:
    """
    Build the credential pool for a call purpose from settings.

    Args:
        purpose: General calls or document analysis.

    Returns:
        CredentialPool named after the purpose.
    """
    settings = get_settings()
    match purpose:
        case CallPurpose.GENERAL:
            keys = settings.general_keys()
        case CallPurpose.DOCUMENT:
            keys = settings.document_keys()
        case _:
            raise ValueError(f"Unknown call purpose: {purpose!r}")
    return CredentialPool.from_keys(purpose.value, keys)


async def backoff(seconds: float) -> None:
    """Suspend this call without blocking the event loop."""
    if seconds > 0:
        await asyncio.sleep(seconds)


def _error_details(response: httpx.Response) -> tuple[str, str | None]:
    """
    Pull (message, provider_code) out of an error response.

    Handles the proxy form {"error": "..."} and the Gemini form
    {"error": {"code": 429, "message": "...", "status": "RESOURCE_EXHAUSTED"}}.
    """
    fallback = f"HTTP {response.status_code}"
    try:
        data = response.json()
    except ValueError:
        return (response.text.strip()[:500] or fallback), None

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, str):
        return error or fallback, None
    if isinstance(error, dict):
        message = error.get("message") or fallback
        return str(message), error.get("status")
    return fallback, None


def _provider_error(response: httpx.Response, source: str) -> ProviderError:
    message, provider_code = _error_details(response)
    return ProviderError(
        f"{source} error {response.status_code}: {message}",
        status=response.status_code,
        provider_code=provider_code,
        kind=classify_failure(response.status_code, provider_code, message),
        retry_after_s=parse_retry_hint(response.text),
    )


async def call_proxy(
    url: str,
    messages: Sequence[ChatMessage],
    max_tokens: int,
    temperature: float,
) -> str:
    """
    Make one request to the server-side proxy.

    Returns:
        The proxy's `text` field.

    Raises:
        ProviderError: On network failure or non-200 status.
        ResponseShapeError: When a 200 body has no text.
    """
    payload = {
        "messages": translate_for_proxy(messages),
        "maxTokens": max_tokens,
        "temperature": temperature,
    }
    try:
        response = await get_clients().http.post(url, json=payload)
    except httpx.HTTPError as e:
        raise ProviderError(
            f"Proxy network error: {e}", kind=FailureKind.UNAVAILABLE
        ) from e

    if response.status_code != 200:
        raise _provider_error(response, "Proxy")

    try:
        data = response.json()
    except ValueError as e:
        raise ResponseShapeError("Proxy returned a non-JSON body") from e

    text = data.get("text") if isinstance(data, dict) else None
    if not isinstance(text, str) or not text:
        raise ResponseShapeError("Proxy response has no 'text' field")
    return text


async def dispatch_proxy(
    url: str,
    messages: Sequence[ChatMessage],
    max_tokens: int,
    temperature: float,
    policy: RetryPolicy,
) -> tuple[str, int]:
    """
    Call the proxy, retrying 429/503 with linear backoff.

    Returns:
        Tuple of (text, attempts used).

    Raises:
        ProviderError: Non-retryable proxy failure, or the last retryable
            failure once attempts are exhausted.
        ResponseShapeError: When the proxy answers 200 without text.
    """
    attempt = 1
    while True:
        try:
            return await call_proxy(url, messages, max_tokens, temperature), attempt
        except ProviderError as e:
            if e.status not in PROXY_RETRY_STATUSES or attempt >= policy.proxy_max_attempts:
                raise
            wait_time = policy.proxy_backoff_s * attempt
            logger.warning(
                f"Proxy returned {e.status} (attempt {attempt}/{policy.proxy_max_attempts}), "
                f"retrying in {wait_time:.1f}s"
            )
            await backoff(wait_time)
            attempt += 1


async def call_gemini(
    api_key: str,
    contents: list[dict[str, Any]],
    max_tokens: int,
    temperature: float,
) -> str:
    """
    Make one generateContent request with a single key.

    Returns:
        Text of the first part of the first candidate.

    Raises:
        ProviderError: On network failure or non-200 status.
        ResponseShapeError: When a 200 body has no candidate text.
    """
    settings = get_settings()
    payload = {
        "contents": contents,
        "generationConfig": {
            "maxOutputTokens": max_tokens,
            "temperature": temperature,
        },
    }
    try:
        response = await get_clients().http.post(
            settings.gemini_api_url,
            json=payload,
            headers={"x-goog-api-key": api_key},
        )
    except httpx.HTTPError as e:
        raise ProviderError(
            f"Gemini network error: {e}", kind=FailureKind.UNAVAILABLE
        ) from e

    if response.status_code != 200:
        raise _provider_error(response, "Gemini")

    try:
        data = response.json()
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise ResponseShapeError("Unexpected response format from Gemini API") from e

    if not isinstance(text, str) or not text:
        raise ResponseShapeError("Gemini candidate has no text")
    return text


async def call_openai(
    api_key: str,
    messages: list[dict[str, str]],
    max_tokens: int,
    temperature: float,
) -> str:
    """
    Make one Chat Completions request with a single key.

    Raises:
        ProviderError: On SDK status or connection errors.
        ResponseShapeError: When the completion has no content.
    """
    settings = get_settings()
    client = get_clients().openai_for(api_key)
    try:
        response = await client.chat.completions.create(
            model=settings.openai_model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
    except APIStatusError as e:
        raise ProviderError(
            f"OpenAI error {e.status_code}: {e.message}",
            status=e.status_code,
            kind=classify_failure(e.status_code, None, e.message),
            retry_after_s=parse_retry_hint(e.message),
        ) from e
    except APIConnectionError as e:
        raise ProviderError(
            f"OpenAI network error: {e}", kind=FailureKind.UNAVAILABLE
        ) from e

    try:
        text = response.choices[0].message.content
    except (AttributeError, IndexError) as e:
        raise ResponseShapeError("Unexpected response format from OpenAI API") from e
    if not text:
        raise ResponseShapeError("OpenAI completion has no content")
    return text


async def dispatch_direct(
    messages: Sequence[ChatMessage],
    max_tokens: int,
    temperature: float,
    context: SessionContext,
    purpose: CallPurpose,
    policy: RetryPolicy,
) -> DispatchResult:
    """
    Call the provider directly with credential rotation and retry.

    Each attempt is one rotation pass over the pool. When a pass ends in
    a quota failure the call waits and retries up to
    direct_quota_attempts passes; network/unavailable failures get
    direct_network_attempts passes. Other failures propagate at once.

    Raises:
        ConfigurationError: Empty credential pool.
        QuotaExceededError: Quota failures outlasted every retry.
        ProviderUnavailableError: Network failures outlasted every retry.
        ProviderError: Terminal or auth failure on every key.
        ResponseShapeError: Provider answered 200 without text.
    """
    settings = get_settings()
    pool = get_credential_pool(purpose)
    if not pool:
        raise ConfigurationError(
            f"No {settings.ai_provider} API keys configured for '{purpose.value}' calls"
        )

    if settings.ai_provider == "openai":
        transport = "openai"
        wire_messages = translate_for_openai(messages)

        async def call(api_key: str) -> str:
            return await call_openai(api_key, wire_messages, max_tokens, temperature)
    else:
        transport = "gemini"
        contents = translate_for_gemini(messages)

        async def call(api_key: str) -> str:
            return await call_gemini(api_key, contents, max_tokens, temperature)

    start_time = time.perf_counter()
    quota_failures = 0
    network_failures = 0
    passes = 0

    while True:
        passes += 1
        try:
            text, key_index = await rotate_credentials(pool, context, call)
        except ProviderError as e:
            if e.kind is FailureKind.QUOTA:
                quota_failures += 1
                if quota_failures >= policy.direct_quota_attempts:
                    logger.error(f"Quota exhausted after {quota_failures} attempts: {e.message}")
                    raise QuotaExceededError(
                        f"API quota exceeded, please retry later. Last error: {e.message}",
                        retry_after_s=policy.quota_delay(quota_failures, e.retry_after_s),
                    ) from e
                wait_time = policy.quota_delay(quota_failures, e.retry_after_s)
            elif e.kind is FailureKind.UNAVAILABLE:
                network_failures += 1
                if network_failures >= policy.direct_network_attempts:
                    logger.error(
                        f"Provider unreachable after {network_failures} attempts: {e.message}"
                    )
                    raise ProviderUnavailableError(
                        f"AI provider is unavailable. Last error: {e.message}"
                    ) from e
                wait_time = policy.direct_backoff_s * network_failures
            else:
                raise

            logger.warning(
                f"Direct {transport} call failed ({e.kind.value}, pass {passes}), "
                f"retrying in {wait_time:.1f}s: {e.message}"
            )
            await backoff(wait_time)
            continue

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Direct {transport} dispatch completed: pool={pool.name}, "
            f"key=#{key_index}, passes={passes}, latency={latency_ms:.0f}ms"
        )
        return DispatchResult(
            text=text,
            transport=transport,
            latency_ms=latency_ms,
            attempts=passes,
            key_index=key_index,
            purpose=purpose,
            context=context,
        )


def _validate_request(
    messages: Sequence[ChatMessage], max_tokens: int, temperature: float
) -> None:
    translate_for_proxy(messages)
    if max_tokens <= 0:
        raise TranslationError(f"max_tokens must be positive, got {max_tokens}")
    if not 0.0 <= temperature <= 1.0:
        raise TranslationError(f"temperature must be within [0, 1], got {temperature}")


async def dispatch(
    messages: Sequence[ChatMessage],
    max_tokens: int = 1000,
    temperature: float = 0.7,
    *,
    context: SessionContext | None = None,
    purpose: CallPurpose = CallPurpose.GENERAL,
) -> DispatchResult:
    """
    Dispatch a conversation and return the provider's raw text.

    This is the main entry point for the dispatcher. The proxy is tried
    first when configured; the direct transport is the fallback.

    Args:
        messages: Ordered, non-empty conversation.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature in [0, 1].
        context: Caller's session context; a fresh one is used if omitted.
        purpose: Which credential pool direct calls draw from.

    Returns:
        DispatchResult with the text and the updated session context.

    Raises:
        TranslationError: Malformed request, before any I/O.
        ConfigurationError: Neither proxy nor keys are configured.
        DispatchError: Any subclass, once local recovery is exhausted.
    """
    _validate_request(messages, max_tokens, temperature)
    context = context if context is not None else SessionContext()
    settings = get_settings()
    policy = RetryPolicy.from_settings(settings)

    if settings.proxy_url is None:
        return await dispatch_direct(messages, max_tokens, temperature, context, purpose, policy)

    start_time = time.perf_counter()
    try:
        text, attempts = await dispatch_proxy(
            settings.proxy_url, messages, max_tokens, temperature, policy
        )
    except (ProviderError, ResponseShapeError) as e:
        logger.info(f"Proxy failed, falling back to direct transport: {e}")
        if not get_credential_pool(purpose):
            raise ConfigurationError(
                f"Proxy failed ({e}) and no API keys are configured for direct calls"
            ) from e
        return await dispatch_direct(messages, max_tokens, temperature, context, purpose, policy)

    latency_ms = (time.perf_counter() - start_time) * 1000
    logger.info(f"Proxy dispatch completed: attempts={attempts}, latency={latency_ms:.0f}ms")
    return DispatchResult(
        text=text,
        transport="proxy",
        latency_ms=latency_ms,
        attempts=attempts,
        purpose=purpose,
        context=context,
    )


async def dispatch_json(
    messages: Sequence[ChatMessage],
    max_tokens: int = 1000,
    temperature: float = 0.7,
    *,
    context: SessionContext | None = None,
    purpose: CallPurpose = CallPurpose.GENERAL,
) -> tuple[dict[str, Any], DispatchResult]:
    """
    Dispatch and parse the reply as a JSON object.

    Returns:
        Tuple of (parsed object, DispatchResult).

    Raises:
        ResponseParseError: If the reply cannot be repaired into an object.
    """
    result = await dispatch(
        messages, max_tokens, temperature, context=context, purpose=purpose
    )
    return parse_model_json(result.text), result


def get_api_status(context: SessionContext | None = None) -> dict[str, Any]:
    """
    Describe the configured transports and pools.

    Never includes key material, only counts and indexes.
    """
    settings = get_settings()
    general = get_credential_pool(CallPurpose.GENERAL)
    document = get_credential_pool(CallPurpose.DOCUMENT)
    active = context.index_for(general) if context is not None else None
    return {
        "provider": settings.ai_provider,
        "proxy_configured": settings.proxy_url is not None,
        "keys_configured": general.size,
        "document_keys_configured": document.size,
        "active_key_index": active,
        "failover": general.size > 1,
    }
