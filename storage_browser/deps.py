from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from .config import settings
from .security import SESSION_COOKIE, decode_session_token
from .services.sessions import InMemorySessionStore, SessionData, SessionStore

session_store: SessionStore = InMemorySessionStore(settings.session_max_age)


@dataclass(frozen=True)
class ActiveSession:
    session_id: str
    data: SessionData


def get_session_store() -> SessionStore:
    return session_store


async def lookup_session(request: Request, store: SessionStore) -> Optional[ActiveSession]:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None

    try:
        session_id = decode_session_token(token)
    except ValueError:
        return None

    data = await store.get(session_id)
    if data is None or not data.authenticated:
        return None
    return ActiveSession(session_id=session_id, data=data)


async def require_session(request: Request, store: SessionStore = Depends(get_session_store)) -> ActiveSession:
    session = await lookup_session(request, store)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Not authenticated')
    return session
