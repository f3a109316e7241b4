from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from storage_browser import main
from storage_browser.config import settings
from storage_browser.routers import files
from storage_browser.services.file_ops import FileOps

USERNAME = 'alice'
PASSWORD = 'correct-horse'


@pytest.fixture
def storage(tmp_path, monkeypatch):
    root = tmp_path / 'store'
    root.mkdir()
    monkeypatch.setattr(files, 'ops', FileOps(str(root)))
    return root


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setattr(settings, 'auth_username', USERNAME)
    monkeypatch.setattr(settings, 'auth_password', PASSWORD)
    return USERNAME, PASSWORD


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def auth_client(client, credentials):
    username, password = credentials
    response = client.post('/api/login', json={'username': username, 'password': password})
    assert response.status_code == 200
    return client
