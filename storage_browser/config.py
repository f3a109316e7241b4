from __future__ import annotations

from pathlib import Path
from secrets import token_urlsafe
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    app_name: str = 'Storage Browser'
    app_host: str = '0.0.0.0'
    app_port: int = Field(default=3000, validation_alias=AliasChoices('port', 'app_port'))
    storage_dir: str = str(_PACKAGE_DIR.parent / 'files')
    public_dir: str = str(_PACKAGE_DIR / 'public')
    session_secret: str = Field(default_factory=lambda: token_urlsafe(32))
    session_algorithm: str = 'HS256'
    session_max_age: int = Field(default=86400, ge=60)
    auth_username: str = 'admin'
    auth_password: str = 'admin'
    strict_containment: bool = False
    search_max_depth: Optional[int] = Field(default=None, ge=0)
    search_max_results: Optional[int] = Field(default=None, ge=1)
    log_level: str = 'info'
    cors_origins: str = ''


settings = Settings()
