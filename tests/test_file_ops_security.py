from __future__ import annotations

import os

import pytest
from fastapi import HTTPException

from storage_browser.routers import files
from storage_browser.services import file_ops


def test_validate_path_blocks_traversal(tmp_path):
    with pytest.raises(PermissionError):
        file_ops.validate_path('../../etc/passwd', str(tmp_path))


def test_validate_path_empty_is_root(tmp_path):
    assert str(file_ops.validate_path('', str(tmp_path))) == os.path.realpath(tmp_path)


@pytest.mark.parametrize('rel', ['..', 'a/../..', 'a/b/../../../x', './../', 'a/./../../etc'])
def test_validate_path_never_escapes(tmp_path, rel):
    root = tmp_path / 'root'
    root.mkdir()
    base = os.path.realpath(root)
    try:
        resolved = file_ops.validate_path(rel, str(root))
    except PermissionError:
        return
    assert str(resolved).startswith(base)


def test_validate_path_collapses_inner_dotdot(tmp_path):
    resolved = file_ops.validate_path('docs/../photos/./2024', str(tmp_path))
    assert str(resolved) == os.path.join(os.path.realpath(tmp_path), 'photos', '2024')


def test_validate_path_treats_leading_slash_as_relative(tmp_path):
    resolved = file_ops.validate_path('/etc/passwd', str(tmp_path))
    assert str(resolved) == os.path.join(os.path.realpath(tmp_path), 'etc', 'passwd')


def test_validate_path_prefix_sibling_passes_by_default(tmp_path):
    root = tmp_path / 'store'
    root.mkdir()
    (tmp_path / 'storeX').mkdir()

    resolved = file_ops.validate_path('../storeX', str(root))

    assert resolved.name == 'storeX'


def test_validate_path_prefix_sibling_rejected_when_strict(tmp_path):
    root = tmp_path / 'store'
    root.mkdir()
    (tmp_path / 'storeX').mkdir()

    with pytest.raises(PermissionError):
        file_ops.validate_path('../storeX', str(root), strict=True)
    assert file_ops.validate_path('', str(root), strict=True) == root.resolve()


def test_validate_path_rejects_symlink_escape(tmp_path):
    root = tmp_path / 'store'
    root.mkdir()
    outside = tmp_path / 'secret'
    outside.mkdir()
    (root / 'link').symlink_to(outside, target_is_directory=True)

    with pytest.raises(PermissionError):
        file_ops.validate_path('link', str(root))


def test_validate_path_rejects_nul_byte(tmp_path):
    with pytest.raises(PermissionError):
        file_ops.validate_path('a\x00b', str(tmp_path))


@pytest.mark.asyncio
async def test_list_files_returns_403_on_path_traversal(monkeypatch):
    async def _deny(_path: str):
        raise file_ops.AccessDenied('Illegal access')

    monkeypatch.setattr(files.ops, 'list_dir', _deny)

    with pytest.raises(HTTPException) as exc:
        await files.list_files(path='../../etc', _=None)

    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_download_direct_call_rejects_traversal(storage):
    with pytest.raises(HTTPException) as exc:
        await files.download('../../etc/passwd', _=None)

    assert exc.value.status_code == 403


def test_download_traversal_returns_403_even_if_target_exists(auth_client, storage):
    secret = storage.parent / 'secret.txt'
    secret.write_text('top secret')

    response = auth_client.get('/download/..%2Fsecret.txt')

    assert response.status_code == 403
    assert response.json() == {'detail': 'Illegal access'}
    assert 'top secret' not in response.text
    assert str(storage) not in response.text


def test_download_etc_passwd_style_input_is_rejected(auth_client, storage):
    response = auth_client.get('/download/..%2F..%2F..%2F..%2Fetc%2Fpasswd')

    assert response.status_code == 403


def test_list_files_traversal_returns_403(auth_client, storage):
    response = auth_client.get('/api/files', params={'path': '../..'})

    assert response.status_code == 403
    assert response.json() == {'detail': 'Illegal access'}
