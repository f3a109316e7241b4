from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse

from ..config import settings
from ..deps import require_session
from ..schemas import FileListResponse, SearchResponse, UploadResponse
from ..services.file_ops import AccessDenied, FileOps, ListingError
from ..services.search import search_tree

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api', tags=['files'])
download_router = APIRouter(tags=['files'])
ops = FileOps(settings.storage_dir, strict=settings.strict_containment)


def _illegal_access(path: str) -> HTTPException:
    logger.warning('Rejected path outside storage root: %r', path)
    return HTTPException(status_code=403, detail='Illegal access')


@router.get('/files', response_model=FileListResponse)
async def list_files(path: str = Query(default=''), _=Depends(require_session)):
    try:
        items = await ops.list_dir(path)
    except AccessDenied:
        raise _illegal_access(path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail='Directory not found')
    except ListingError:
        logger.exception('Failed to list %r', path)
        raise HTTPException(status_code=500, detail='Failed to read file list')

    return FileListResponse(current_path=path, files=items)


@router.get('/search', response_model=SearchResponse)
async def search(q: str = Query(default=''), path: str = Query(default=''), _=Depends(require_session)):
    try:
        results = await search_tree(
            ops,
            path,
            q,
            max_depth=settings.search_max_depth,
            max_results=settings.search_max_results,
        )
    except AccessDenied:
        raise _illegal_access(path)
    except Exception:
        logger.exception('Search for %r under %r failed', q, path)
        raise HTTPException(status_code=500, detail='Search failed')

    return SearchResponse(results=results, query=q)


@router.post('/upload', response_model=UploadResponse)
async def upload(
    file: Optional[UploadFile] = File(default=None),
    current_path: str = Form(default='', alias='currentPath'),
    _=Depends(require_session),
):
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail='No file uploaded')

    try:
        stored = await ops.save_upload(current_path, file.filename, file)
    except AccessDenied:
        raise _illegal_access(current_path)
    except ValueError:
        raise HTTPException(status_code=400, detail='Invalid filename')
    except OSError:
        logger.exception('Upload into %r failed', current_path)
        raise HTTPException(status_code=500, detail='Upload failed')
    finally:
        await file.close()

    return UploadResponse(message='File uploaded successfully', filename=stored.name, size=stored.size, path=stored.path)


@download_router.get('/download/{filename:path}')
async def download(filename: str, _=Depends(require_session)):
    try:
        target = await ops.resolve_file(filename)
    except AccessDenied:
        raise _illegal_access(filename)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail='File not found')

    return FileResponse(target, filename=PurePosixPath(filename).name)
