"""
Dispatcher module: AI request dispatch with rotation, retry and repair.

This module turns a provider-agnostic chat message list into provider
text. It translates messages to the provider wire format, prefers a
server-side proxy, falls back to direct calls that rotate across a pool
of API keys, retries transient failures with backoff, and repairs the
model's JSON output.

Key exports:
- ChatMessage / Role: Provider-agnostic conversation messages
- SessionContext: Caller-owned session-sticky key indexes
- CallPurpose: Selects the credential pool (general or document)
- DispatchResult: Provider text plus transport metadata
- dispatch(): Main dispatch function returning raw text
- dispatch_json(): Dispatch and parse a JSON object reply
- repair_json() / parse_model_json(): Model output repair
"""

from interview_coach.dispatcher.classify import (
    FailureKind,
    classify_failure,
    parse_retry_hint,
)
from interview_coach.dispatcher.credentials import (
    CallPurpose,
    CredentialPool,
    RoundRobinCounter,
    SessionContext,
    get_assignment_counter,
    rotate_credentials,
)
from interview_coach.dispatcher.errors import (
    ConfigurationError,
    DispatchError,
    ProviderError,
    ProviderUnavailableError,
    QuotaExceededError,
    ResponseParseError,
    ResponseShapeError,
    TranslationError,
)
from interview_coach.dispatcher.handlers import (
    # Data classes
    DispatchResult,
    RetryPolicy,
    # Provider clients
    ProviderClients,
    get_clients,
    close_clients,
    # Core dispatch functions
    dispatch,
    dispatch_json,
    get_api_status,
    # Transport-specific (for testing/advanced use)
    dispatch_proxy,
    dispatch_direct,
    call_gemini,
    call_openai,
)
from interview_coach.dispatcher.messages import (
    ChatMessage,
    Role,
    messages_from_dicts,
    translate_for_gemini,
    translate_for_proxy,
)
from interview_coach.dispatcher.repair import parse_model_json, repair_json

__all__ = [
    # Messages
    "ChatMessage",
    "Role",
    "messages_from_dicts",
    "translate_for_gemini",
    "translate_for_proxy",
    # Credentials
    "CallPurpose",
    "CredentialPool",
    "RoundRobinCounter",
    "SessionContext",
    "get_assignment_counter",
    "rotate_credentials",
    # Classification
    "FailureKind",
    "classify_failure",
    "parse_retry_hint",
    # Errors
    "DispatchError",
    "ConfigurationError",
    "TranslationError",
    "ProviderError",
    "QuotaExceededError",
    "ProviderUnavailableError",
    "ResponseShapeError",
    "ResponseParseError",
    # Data classes
    "DispatchResult",
    "RetryPolicy",
    # Provider clients
    "ProviderClients",
    "get_clients",
    "close_clients",
    # Core dispatch functions
    "dispatch",
    "dispatch_json",
    "get_api_status",
    # Transport-specific
    "dispatch_proxy",
    "dispatch_direct",
    "call_gemini",
    "call_openai",
    # Repair
    "repair_json",
    "parse_model_json",
]
