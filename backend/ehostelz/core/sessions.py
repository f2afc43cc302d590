"""Explicit student session context, created at login and cleared at logout."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from loguru import logger


@dataclass(slots=True)
class StudentContext:
    """Who the current student is and which hostel their portal is showing."""

    user_id: str
    hostel_id: Optional[str] = None
    username: Optional[str] = None


class StudentSessionStore:
    """Maps opaque bearer tokens to ``StudentContext`` objects.

    Expired sessions are swept whenever a new one is created, so tokens that
    are never presented again do not pile up.
    """

    def __init__(self, *, ttl: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, tuple[StudentContext, float]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, context: StudentContext) -> str:
        self.evict_expired()
        token = secrets.token_urlsafe(32)
        self._sessions[token] = (context, self._clock())
        return token

    def get(self, token: str) -> Optional[StudentContext]:
        found = self._sessions.get(token)
        if found is None:
            return None
        context, issued_at = found
        if self._clock() - issued_at > self._ttl:
            del self._sessions[token]
            return None
        return context

    def clear(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None

    def evict_expired(self) -> int:
        now = self._clock()
        expired = [
            token
            for token, (_, issued_at) in self._sessions.items()
            if now - issued_at > self._ttl
        ]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.bind(count=len(expired)).info("student_sessions_expired")
        return len(expired)
