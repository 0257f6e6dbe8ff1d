"""
Message Translator

Converts the provider-agnostic chat message list into the shapes the
outbound transports expect:

- translate_for_gemini(): Gemini `contents` turns. Gemini has no system
  role, so system messages are folded into the first turn as a
  "System: ..." preface.
- translate_for_proxy(): plain {role, content} dicts for the proxy, which
  does its own folding.
- translate_for_openai(): native role/content dicts for the OpenAI path.

All functions are pure and never mutate the caller's messages.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from interview_coach.dispatcher.errors import TranslationError


class Role(str, Enum):
    """Chat message author."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """One conversation message."""

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(Role.ASSISTANT, content)

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {"role": self.role.value, "content": self.content}


def system_preface(content: str) -> str:
    """Label a system message for inclusion in a user turn."""
    return f"System: {content}\n\n"


def _validate(messages: Sequence[ChatMessage]) -> None:
    if not messages:
        raise TranslationError("Message list must not be empty")
    for index, message in enumerate(messages):
        if not isinstance(message, ChatMessage):
            raise TranslationError(
                f"Message {index} is {type(message).__name__}, expected ChatMessage"
            )
        if not isinstance(message.content, str):
            raise TranslationError(f"Message {index} content must be a string")


def translate_for_gemini(messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
    """
    Translate chat messages into Gemini `contents` turns.

    System messages fold into the first turn: the first one becomes a
    "System: <content>\\n\\n" preface, creating a synthetic user turn if
    nothing has been emitted yet. The first user message is appended to
    that synthetic turn. Later system messages are prepended to the same
    first turn, so the most recent system message ends up first.

    Args:
        messages: Ordered, non-empty conversation.

    Returns:
        New list of {"role": "user"|"model", "parts": [{"text": ...}]} turns.

    Raises:
        TranslationError: If the list is empty or holds non-messages.
    """
    _validate(messages)

    turns: list[dict[str, Any]] = []
    # Turn zero holds only system prefaces until the first user message fills it
    awaiting_user = False
    for message in messages:
        match message.role:
            case Role.SYSTEM:
                preface = system_preface(message.content)
                if not turns:
                    turns.append({"role": "user", "parts": [{"text": preface}]})
                    awaiting_user = True
                else:
                    first = turns[0]["parts"][0]
                    first["text"] = preface + first["text"]
            case Role.USER:
                if awaiting_user:
                    turns[0]["parts"][0]["text"] += message.content
                    awaiting_user = False
                else:
                    turns.append({"role": "user", "parts": [{"text": message.content}]})
            case Role.ASSISTANT:
                awaiting_user = False
                turns.append({"role": "model", "parts": [{"text": message.content}]})
            case _:
                raise TranslationError(f"Unsupported message role: {message.role!r}")
    return turns


def translate_for_proxy(messages: Sequence[ChatMessage]) -> list[dict[str, str]]:
    """Translate chat messages into the proxy's {role, content} wire form."""
    _validate(messages)
    return [message.to_dict() for message in messages]


# The OpenAI chat format accepts all three roles as-is.
translate_for_openai = translate_for_proxy


def messages_from_dicts(items: Sequence[dict[str, Any]]) -> list[ChatMessage]:
    """
    Build ChatMessage objects from {role, content} dictionaries.

    Raises:
        TranslationError: On unknown roles or missing content.
    """
    result = []
    for index, item in enumerate(items):
        try:
            role = Role(item["role"])
            content = item["content"]
        except (KeyError, TypeError, ValueError) as e:
            raise TranslationError(f"Malformed message at index {index}: {e}") from e
        if not isinstance(content, str):
            raise TranslationError(f"Message {index} content must be a string")
        result.append(ChatMessage(role, content))
    return result
