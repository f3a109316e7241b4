from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ..config import settings
from ..deps import ActiveSession, get_session_store, lookup_session, require_session
from ..schemas import AuthStatus, LoginRequest, LoginResponse, MessageResponse
from ..security import SESSION_COOKIE, create_session_token, credentials_match
from ..services.sessions import SessionData, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api', tags=['auth'])


def _client_ip(request: Request) -> str:
    xff = request.headers.get('x-forwarded-for')
    if xff:
        return xff.split(',')[0].strip()
    return request.client.host if request.client else 'unknown'


@router.post('/login', response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
):
    if not credentials_match(payload.username, payload.password):
        logger.warning('Failed login for %r from %s', payload.username, _client_ip(request))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid username or password')

    session_id = await store.create(SessionData(authenticated=True, username=payload.username))
    is_https = request.url.scheme == 'https'
    response.set_cookie(
        SESSION_COOKIE,
        create_session_token(session_id),
        httponly=True,
        secure=is_https,
        samesite='strict',
        max_age=settings.session_max_age,
    )
    logger.info('User %r logged in from %s', payload.username, _client_ip(request))
    return LoginResponse(message='Login successful', username=payload.username)


@router.post('/logout', response_model=MessageResponse)
async def logout(
    response: Response,
    session: ActiveSession = Depends(require_session),
    store: SessionStore = Depends(get_session_store),
):
    try:
        await store.destroy(session.session_id)
    except Exception:
        logger.exception('Failed to destroy session')
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail='Logout failed')

    response.delete_cookie(SESSION_COOKIE)
    return MessageResponse(message='Logged out')


@router.get('/auth-status', response_model=AuthStatus, response_model_exclude_none=True)
async def auth_status(request: Request, store: SessionStore = Depends(get_session_store)):
    session = await lookup_session(request, store)
    if session is None:
        return AuthStatus(authenticated=False)
    return AuthStatus(authenticated=True, username=session.data.username)
