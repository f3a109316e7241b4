from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    message: str
    username: str


class MessageResponse(BaseModel):
    message: str


class AuthStatus(BaseModel):
    authenticated: bool
    username: Optional[str] = None


class FileEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    size: int
    modified: datetime
    is_directory: bool = Field(alias='isDirectory')
    path: str


class SearchResult(FileEntry):
    relative_path: str = Field(alias='relativePath')


class FileListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_path: str = Field(alias='currentPath')
    files: list[FileEntry]


class SearchResponse(BaseModel):
    results: list[SearchResult]
    query: str


class UploadResponse(BaseModel):
    message: str
    filename: str
    size: int
    path: str
