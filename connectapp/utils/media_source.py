import re
from asyncio import to_thread
from pathlib import Path
from urllib.parse import urlparse, unquote

from httpx import AsyncClient, HTTPError, InvalidURL

_EXTENSION_RE = re.compile(r"\.([\w\d]+)$")
DEFAULT_EXTENSION = "jpg"


class SourceReadError(OSError):
    pass


def is_remote(uri: str) -> bool:
    return urlparse(uri).scheme in ("http", "https")


def source_extension(uri: str) -> str:
    try:
        filename = urlparse(uri).path.split("/")[-1] if is_remote(uri) else uri.replace("\\", "/").split("/")[-1]
    except ValueError:
        return DEFAULT_EXTENSION
    if (match := _EXTENSION_RE.search(filename)) is None:
        return DEFAULT_EXTENSION
    return match.group(1)


def _local_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)


async def _read_local(uri: str) -> bytes:
    try:
        return await to_thread(_local_path(uri).read_bytes)
    except ValueError as e:
        raise SourceReadError(f"Unable to read {uri!r}: {e}") from e


async def read_source(uri: str) -> bytes:
    """Reads a local path, `file://` uri or http(s) url into memory.

    Raises OSError (SourceReadError for malformed or remote sources) if the source can not be read.
    """
    try:
        remote = is_remote(uri)
    except ValueError as e:
        raise SourceReadError(f"Invalid source uri {uri!r}: {e}") from e
    if not remote:
        return await _read_local(uri)

    try:
        async with AsyncClient(follow_redirects=True) as client:
            resp = await client.get(uri)
            resp.raise_for_status()
            return resp.content
    except (HTTPError, InvalidURL) as e:
        raise SourceReadError(f"Unable to read {uri}: {e}") from e
