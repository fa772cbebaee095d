from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable


@dataclass(frozen=True)
class CachedToken:
    access_token: str
    issued_at: float
    expires_in: int


class TokenCache:
    """Single-slot bearer token holder with lazy-refresh semantics.

    The slot is swapped wholesale with an immutable ``CachedToken``; there is no
    lock. Concurrent callers that all observe a stale token each refresh once
    and the last write wins, which wastes a request but never yields an
    invalid token.
    """

    def __init__(
        self,
        *,
        refresh_margin_s: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._refresh_margin_s = refresh_margin_s
        self._clock = clock
        self._token: CachedToken | None = None

    def now(self) -> float:
        return self._clock()

    def is_fresh(self, token: CachedToken | None) -> bool:
        if token is None or not token.access_token or not token.expires_in:
            return False
        age_s = self._clock() - token.issued_at
        return age_s < token.expires_in - self._refresh_margin_s

    def get(self) -> str | None:
        # Read the slot once so a concurrent swap cannot split token and timestamp.
        token = self._token
        if self.is_fresh(token):
            return token.access_token  # type: ignore[union-attr]
        return None

    def store(self, token: CachedToken) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None
