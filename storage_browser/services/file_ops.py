from __future__ import annotations

import asyncio
import logging
import os
import posixpath
import stat
import time
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Protocol, Sequence, TypeVar
from urllib.parse import quote

import aiofiles
import aiofiles.os

from ..schemas import FileEntry

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 1024 * 1024
# Characters encodeURIComponent leaves alone on top of quote()'s defaults.
_URI_COMPONENT_SAFE = "!*'()"

_E = TypeVar('_E', bound=FileEntry)


class ListingError(Exception):
    """A directory could not be read as a whole."""


class AccessDenied(PermissionError):
    """A client path resolved outside the storage root."""


class AsyncReader(Protocol):
    async def read(self, size: int = -1) -> bytes:
        ...


@dataclass(frozen=True)
class StoredFile:
    name: str
    size: int
    path: str


def validate_path(requested_path: str, root: str, strict: bool = False) -> Path:
    """Resolve ``requested_path`` under ``root`` or raise ``AccessDenied``.

    Containment is a plain string-prefix test on the resolved paths, so a
    sibling such as ``/data/storeX`` passes for a root of ``/data/store``.
    ``strict`` additionally requires a separator right after the prefix.
    """
    base = os.path.realpath(root)
    relative = (requested_path or '').lstrip('/')
    if '\x00' in relative:
        raise AccessDenied('Illegal access')
    candidate = os.path.realpath(os.path.join(base, relative))

    if not candidate.startswith(base):
        raise AccessDenied('Illegal access')
    if strict and candidate != base and not candidate.startswith(base.rstrip(os.sep) + os.sep):
        raise AccessDenied('Illegal access')
    return Path(candidate)


def join_relative(sub_path: str, name: str) -> str:
    if not sub_path:
        return name
    return posixpath.normpath(posixpath.join(sub_path, name))


def download_ref(relative_path: str) -> str:
    return f'/download/{quote(relative_path, safe=_URI_COMPONENT_SAFE)}'


def collation_key(name: str) -> tuple[str, str, str, str]:
    # accent/case-blind first, then accents, then lowercase before uppercase
    decomposed = unicodedata.normalize('NFKD', name)
    base = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), decomposed.casefold(), name.swapcase(), name


def sort_entries(entries: Sequence[_E]) -> list[_E]:
    return sorted(entries, key=lambda e: (not e.is_directory, collation_key(e.name)))


def build_entry(name: str, sub_path: str, st: os.stat_result) -> FileEntry:
    relative = join_relative(sub_path, name)
    is_dir = stat.S_ISDIR(st.st_mode)
    return FileEntry(
        name=name,
        size=0 if is_dir else st.st_size,
        modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        is_directory=is_dir,
        path=relative if is_dir else download_ref(relative),
    )


def repair_filename(name: str) -> str:
    """Undo latin-1 decoding of UTF-8 multipart filenames and drop directories."""
    try:
        repaired = name.encode('latin-1').decode('utf-8')
    except (UnicodeEncodeError, UnicodeDecodeError):
        repaired = name
    return PurePosixPath(repaired.replace('\\', '/')).name


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


class FileOps:
    def __init__(self, root: str, strict: bool = False):
        self.root = Path(root).resolve()
        self.strict = strict

    def safe_path(self, rel: str) -> Path:
        return validate_path(rel, str(self.root), strict=self.strict)

    async def list_dir(self, rel: str) -> list[FileEntry]:
        target = self.safe_path(rel)
        if not await aiofiles.os.path.isdir(target):
            raise FileNotFoundError('Directory not found')

        try:
            names = await aiofiles.os.listdir(target)
            stats = await asyncio.gather(*(aiofiles.os.stat(target / name) for name in names))
        except OSError as exc:
            raise ListingError('Failed to read file list') from exc

        return sort_entries([build_entry(name, rel, st) for name, st in zip(names, stats)])

    async def resolve_file(self, rel: str) -> Path:
        target = self.safe_path(rel)
        if not await aiofiles.os.path.isfile(target):
            raise FileNotFoundError('File not found')
        return target

    async def choose_name(self, target_dir: Path, desired_name: str) -> str:
        """Keep ``desired_name`` unless something already uses it.

        Not atomic with the write that follows: two uploads of the same name
        in the same millisecond can still collide.
        """
        existing = target_dir / desired_name
        if not await aiofiles.os.path.islink(existing) and not await aiofiles.os.path.exists(existing):
            return desired_name

        stem, ext = os.path.splitext(desired_name)
        return f'{stem}_{_now_millis()}{ext}'

    async def save_upload(self, rel: str, filename: str, stream: AsyncReader) -> StoredFile:
        target_dir = self.safe_path(rel)
        desired = repair_filename(filename)
        if desired in {'', '.', '..'}:
            raise ValueError('Invalid filename')

        await aiofiles.os.makedirs(target_dir, exist_ok=True)
        final_name = await self.choose_name(target_dir, desired)

        size = 0
        async with aiofiles.open(target_dir / final_name, 'wb') as f:
            while chunk := await stream.read(UPLOAD_CHUNK_SIZE):
                await f.write(chunk)
                size += len(chunk)
            await f.flush()
            await asyncio.to_thread(os.fsync, f.fileno())

        logger.info('Stored upload %s (%d bytes)', join_relative(rel, final_name), size)
        return StoredFile(name=final_name, size=size, path=download_ref(join_relative(rel, final_name)))
