from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from .config import settings
from .routers import auth, files

logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    'Content-Security-Policy': "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'",
    'X-Frame-Options': 'DENY',
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}

_ERROR_PAGE = (
    '<!doctype html><html><head><title>Error</title></head>'
    '<body><h1>Unexpected error</h1><p>Something went wrong. Please try again.</p></body></html>'
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging(settings.log_level)

    Path(settings.storage_dir).mkdir(parents=True, exist_ok=True)
    if 'session_secret' not in settings.model_fields_set:
        logger.warning('SESSION_SECRET is not set; sessions will not survive a restart')
    if settings.auth_password == 'admin':
        logger.warning('Using the default login password; set AUTH_PASSWORD in .env')

    logger.info('Storage directory: %s', files.ops.root)
    logger.info('Listening on http://%s:%d', settings.app_host, settings.app_port)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)


def _parse_cors_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


cors_origins = _parse_cors_origins(settings.cors_origins)
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=['GET', 'POST', 'OPTIONS'],
        allow_headers=['Content-Type'],
    )


def _apply_security_headers(response):
    for key, value in _SECURITY_HEADERS.items():
        response.headers[key] = value
    return response


@app.middleware('http')
async def security_middleware(request: Request, call_next):
    response = await call_next(request)
    return _apply_security_headers(response)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    path = request.url.path
    if path.startswith('/api/') or path.startswith('/download/'):
        response = JSONResponse({'detail': 'Internal server error. Please try again.'}, status_code=500)
    else:
        response = HTMLResponse(_ERROR_PAGE, status_code=500)
    return _apply_security_headers(response)


app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get('/healthz')
def healthz():
    return {'ok': True}


app.include_router(auth.router)
app.include_router(files.router)
app.include_router(files.download_router)

app.mount('/', StaticFiles(directory=settings.public_dir, html=True, check_dir=False), name='public')
