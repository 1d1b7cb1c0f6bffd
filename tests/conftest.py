from os import environ, urandom
from pathlib import Path
from time import time
from typing import AsyncGenerator

import pytest
import pytest_asyncio

environ["cloudinary_cloud_name"] = "test-cloud"
environ["cloudinary_api_key"] = "test-key"
environ["cloudinary_api_secret"] = "test-secret"
environ["upload_network_probe"] = "false"
environ["db_connection_string"] = "sqlite://:memory:"
environ["CONNECTAPP_TESTING"] = "1"

from connectapp.db import connect_orm
from connectapp.models import User, MediaKind
from connectapp.utils.cloudinary import Cloudinary

MB = 1024 * 1024

IMAGE_UPLOAD_URL = Cloudinary.url(MediaKind.IMAGE, "upload")
VIDEO_UPLOAD_URL = Cloudinary.url(MediaKind.VIDEO, "upload")
IMAGE_DESTROY_URL = Cloudinary.url(MediaKind.IMAGE, "destroy")
VIDEO_DESTROY_URL = Cloudinary.url(MediaKind.VIDEO, "destroy")

httpx_mock_decorator = pytest.mark.httpx_mock(
    assert_all_requests_were_expected=False,
    assert_all_responses_were_requested=False,
    can_send_already_matched_responses=True,
)


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[None, None]:
    async with connect_orm("sqlite://:memory:"):
        yield


@pytest.fixture
def recorded_sleep(monkeypatch) -> list[float]:
    delays = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("connectapp.utils.cloudinary.sleep", _sleep)
    return delays


async def create_user() -> User:
    rand = int.from_bytes(urandom(4), "big")
    return await User.create(username=f"user{int(time() * 1000)}_{rand}")


def make_file(directory: Path, name: str, size: int) -> str:
    path = directory / name
    path.write_bytes(b"\x00" * size)
    return str(path)


def upload_response(kind: str = "image", public_id: str = "connect/abc123") -> dict:
    ext = "mp4" if kind == "video" else "png"
    return {
        "secure_url": f"https://res.cloudinary.com/test-cloud/{kind}/upload/v1/{public_id}.{ext}",
        "public_id": public_id,
        "resource_type": kind,
    }
