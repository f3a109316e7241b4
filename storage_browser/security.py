from __future__ import annotations

from datetime import datetime, timedelta, timezone
from secrets import compare_digest

from jose import JWTError, jwt

from .config import settings

SESSION_COOKIE = 'session'


def credentials_match(username: str, password: str) -> bool:
    user_ok = compare_digest(username.encode(), settings.auth_username.encode())
    password_ok = compare_digest(password.encode(), settings.auth_password.encode())
    return user_ok and password_ok


def create_session_token(session_id: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(seconds=settings.session_max_age)
    payload = {'sid': session_id, 'exp': expire}
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_session_token(token: str) -> str:
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[settings.session_algorithm])
    except JWTError as exc:
        raise ValueError('Invalid session token') from exc

    session_id = payload.get('sid')
    if not isinstance(session_id, str) or not session_id:
        raise ValueError('Invalid session token')
    return session_id
