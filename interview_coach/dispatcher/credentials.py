"""
Credential Rotation

Chooses which API key serves a call and fails over to the next key when
a call fails for a reason another key might not share (quota, auth,
network).

Key components:
- CallPurpose: Which pool a call draws from (general or document analysis)
- CredentialPool: Ordered, immutable set of keys for one purpose
- SessionContext: Caller-owned session-sticky key index per pool
- RoundRobinCounter: Process-wide "last assigned" counter so new sessions
  fan out across the pool instead of all starting at key 0
- rotate_credentials(): Try keys circularly from the session index
"""

import logging
import threading
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from interview_coach.dispatcher.errors import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CallPurpose(str, Enum):
    """Call classes with strictly separate credential pools."""

    GENERAL = "general"
    DOCUMENT = "document"


@dataclass(frozen=True)
class CredentialPool:
    """
    Ordered set of opaque provider credentials for one call purpose.

    Keys are de-duplicated on construction; order is preserved.
    """

    name: str
    keys: tuple[str, ...] = ()

    @classmethod
    def from_keys(cls, name: str, keys: Iterable[str]) -> "CredentialPool":
        return cls(name=name, keys=tuple(dict.fromkeys(k for k in keys if k)))

    @property
    def size(self) -> int:
        return len(self.keys)

    def __bool__(self) -> bool:
        return bool(self.keys)

    def __repr__(self) -> str:
        # Never render the keys themselves
        return f"CredentialPool(name={self.name!r}, size={self.size})"


@dataclass
class SessionContext:
    """
    Session-sticky credential indexes, owned and passed in by the caller.

    The dispatcher reads the remembered index for a pool, and writes back
    the winning index after a successful call, so repeat calls in the same
    session prefer the same key.
    """

    key_indexes: dict[str, int] = field(default_factory=dict)

    def index_for(self, pool: CredentialPool) -> int | None:
        """Remembered index for a pool, or None if absent or out of range."""
        index = self.key_indexes.get(pool.name)
        if index is None or not 0 <= index < pool.size:
            return None
        return index

    def remember(self, pool: CredentialPool, index: int) -> None:
        self.key_indexes[pool.name] = index


class RoundRobinCounter:
    """
    Thread-safe "last assigned" counter per pool.

    Outlives individual sessions: each new session is assigned the index
    after the last one handed out, so sessions spread across the pool.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: dict[str, int] = {}

    def next_index(self, pool: CredentialPool) -> int:
        """
        Assign the next starting index for a new session.

        Raises:
            ConfigurationError: If the pool is empty.
        """
        if not pool:
            raise ConfigurationError(f"No API keys configured for '{pool.name}' calls")
        with self._lock:
            index = (self._last.get(pool.name, 0) + 1) % pool.size
            self._last[pool.name] = index
            return index

    def reset(self) -> None:
        """Forget all assignments. Primarily used for testing."""
        with self._lock:
            self._last.clear()


_counter: RoundRobinCounter | None = None


def get_assignment_counter() -> RoundRobinCounter:
    """
    Get the global round-robin counter.

    Returns:
        Singleton RoundRobinCounter instance
    """
    global _counter
    if _counter is None:
        _counter = RoundRobinCounter()
    return _counter


def session_start_index(
    pool: CredentialPool,
    context: SessionContext,
    counter: RoundRobinCounter | None = None,
) -> int:
    """
    Resolve the key index a session starts from.

    Uses the remembered index when valid; otherwise assigns one from the
    round-robin counter and remembers it for the session.
    """
    index = context.index_for(pool)
    if index is not None:
        return index
    index = (counter or get_assignment_counter()).next_index(pool)
    context.remember(pool, index)
    logger.debug(f"Assigned key #{index} of pool '{pool.name}' to session")
    return index


async def rotate_credentials(
    pool: CredentialPool,
    context: SessionContext,
    call: Callable[[str], Awaitable[T]],
    counter: RoundRobinCounter | None = None,
) -> tuple[T, int]:
    """
    Run `call` with each key in turn until one succeeds.

    Keys are tried circularly starting at the session index, each at most
    once. ProviderErrors that allow failover move on to the next key; any
    other error aborts the rotation and propagates.

    Args:
        pool: Credentials to rotate through.
        context: Caller's session; updated with the winning index.
        call: Coroutine function invoked with a single key.
        counter: Round-robin counter (defaults to the global one).

    Returns:
        Tuple of (call result, index of the key that succeeded).

    Raises:
        ConfigurationError: If the pool is empty (no call is attempted).
        ProviderError: The last failover error when every key failed, or
            the first terminal error.
    """
    if not pool:
        raise ConfigurationError(f"No API keys configured for '{pool.name}' calls")

    start = session_start_index(pool, context, counter)
    last_error: ProviderError | None = None

    for offset in range(pool.size):
        index = (start + offset) % pool.size
        try:
            result = await call(pool.keys[index])
        except ProviderError as e:
            last_error = e
            if not e.failover:
                logger.warning(
                    f"Key #{index} of pool '{pool.name}' failed with terminal error, "
                    f"not rotating: {e.message}"
                )
                raise
            logger.warning(
                f"Key #{index} of pool '{pool.name}' failed ({e.kind.value}), "
                f"trying next key: {e.message}"
            )
            continue

        context.remember(pool, index)
        return result, index

    logger.error(f"All {pool.size} keys of pool '{pool.name}' failed")
    raise last_error
