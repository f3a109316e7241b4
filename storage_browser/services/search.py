from __future__ import annotations

import asyncio
import logging
import os
import posixpath
from pathlib import Path
from typing import Optional

import aiofiles.os

from ..schemas import SearchResult
from .file_ops import FileOps, build_entry, join_relative, sort_entries

logger = logging.getLogger(__name__)


async def _stat_or_none(path: Path) -> Optional[os.stat_result]:
    try:
        return await aiofiles.os.stat(path)
    except OSError:
        return None


async def search_tree(
    ops: FileOps,
    rel: str,
    query: str,
    max_depth: int | None = None,
    max_results: int | None = None,
) -> list[SearchResult]:
    """Case-insensitive substring search below ``rel``.

    Every directory is descended into whether or not its own name matched.
    Directories that cannot be read are skipped and the walk goes on.
    Symlinked directories are reported when they match but not entered.
    """
    if not query:
        return []

    start = ops.safe_path(rel)
    needle = query.casefold()
    results: list[SearchResult] = []
    start_rel = posixpath.normpath(rel) if rel else ''
    if start_rel == '.':
        start_rel = ''
    pending: list[tuple[Path, str, int]] = [(start, start_rel, 0)]

    while pending:
        directory, rel_dir, depth = pending.pop()
        try:
            names = await aiofiles.os.listdir(directory)
        except OSError as exc:
            logger.debug('Search skipped unreadable directory %r: %s', rel_dir, exc.strerror)
            continue

        children = [directory / name for name in names]
        stats = await asyncio.gather(*(_stat_or_none(child) for child in children))

        for name, child, st in zip(names, children, stats):
            if st is None:
                continue

            entry = build_entry(name, rel_dir, st)
            if needle in name.casefold():
                results.append(SearchResult(**entry.model_dump(), relative_path=rel_dir))
                if max_results is not None and len(results) >= max_results:
                    return sort_entries(results)

            if entry.is_directory and (max_depth is None or depth < max_depth):
                if not await aiofiles.os.path.islink(child):
                    pending.append((child, join_relative(rel_dir, name), depth + 1))

    return sort_entries(results)
