from __future__ import annotations

import time
from dataclasses import dataclass
from secrets import token_urlsafe
from typing import Callable, Optional, Protocol


@dataclass(frozen=True)
class SessionData:
    authenticated: bool
    username: str


class SessionStore(Protocol):
    async def create(self, data: SessionData) -> str:
        ...

    async def get(self, session_id: str) -> Optional[SessionData]:
        ...

    async def destroy(self, session_id: str) -> None:
        ...


class InMemorySessionStore:
    """Process-local sessions with a fixed lifetime.

    Methods never await while touching the dict, so no lock is needed on a
    single event loop.
    """

    def __init__(self, max_age: int, clock: Callable[[], float] = time.monotonic):
        self.max_age = max_age
        self._clock = clock
        self._sessions: dict[str, tuple[SessionData, float]] = {}

    async def create(self, data: SessionData) -> str:
        now = self._clock()
        self._purge_expired(now)
        session_id = token_urlsafe(32)
        self._sessions[session_id] = (data, now + self.max_age)
        return session_id

    async def get(self, session_id: str) -> Optional[SessionData]:
        record = self._sessions.get(session_id)
        if record is None:
            return None
        data, expires_at = record
        if expires_at <= self._clock():
            del self._sessions[session_id]
            return None
        return data

    async def destroy(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def _purge_expired(self, now: float) -> None:
        for session_id in [sid for sid, (_, expires_at) in self._sessions.items() if expires_at <= now]:
            del self._sessions[session_id]
