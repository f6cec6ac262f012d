"""Shared fixtures: a throwaway SQLite database, the API client and sample photos."""

import asyncio
import os
import tempfile

# Settings are read at import time, so point them at a scratch database first.
_TEST_DIR = tempfile.mkdtemp(prefix="teacher-directory-tests-")
os.environ["DIRECTORY_DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["DIRECTORY_IMAGES_DIR"] = os.path.join(_TEST_DIR, "images")
os.environ["DIRECTORY_JWT_SECRET"] = "test-secret"
os.environ["DIRECTORY_BCRYPT_ROUNDS"] = "4"
os.environ["DIRECTORY_REQUIRE_AUTH"] = "true"

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from teacher_directory import models
from teacher_directory.db import engine
from teacher_directory.main import app

ADMIN_USER = "admin"
ADMIN_PASSWORD = "correct horse"


def make_jpeg(width: int, height: int, color=(40, 120, 200)) -> bytes:
    image = np.full((height, width, 3), color, dtype=np.uint8)
    ok, buffer = cv2.imencode(".jpg", image)
    assert ok
    return buffer.tobytes()


async def _reset_database():
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.drop_all)
        await conn.run_sync(models.Base.metadata.create_all)


@pytest.fixture
def sample_jpeg():
    """A 1200x900 landscape photo."""
    return make_jpeg(1200, 900)


@pytest.fixture
def client():
    """API client over a freshly emptied database."""
    asyncio.run(_reset_database())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_token(client):
    """Bootstrap the first credential and log in with it."""
    response = client.post("/api/set-password", json={"username": ADMIN_USER, "password": ADMIN_PASSWORD})
    assert response.status_code == 201
    response = client.post("/api/verify-password", json={"username": ADMIN_USER, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def add_person(client, auth_headers, sample_jpeg):
    """Create a person through the API and return the response."""
    def _add(name="Asha Rao", floor="3", branch="CS", directions="Near elevator", image=None):
        return client.post(
            "/api/add-teacher",
            data={"name": name, "floor": floor, "branch": branch, "directions": directions},
            files={"image": ("photo.jpg", image if image is not None else sample_jpeg, "image/jpeg")},
            headers=auth_headers,
        )
    return _add


@pytest.fixture
def jpeg_factory():
    """Build a solid-colour JPEG of any size."""
    return make_jpeg
