from asyncio import get_running_loop, sleep, wait_for, TimeoutError as WaitTimeoutError
from functools import wraps
from hashlib import sha1
from random import uniform
from time import time
from typing import ParamSpec, TypeVar, Callable, Awaitable, Concatenate

from httpx import AsyncClient, HTTPError, TimeoutException, Response
from loguru import logger
from pydantic import ValidationError

from .custom_exception import UploadError, UploadErrorKind
from .media_source import read_source, source_extension
from ..config import config
from ..models import MediaKind
from ..schemas.media import SizePolicy, UploadRequest, UploadResult, CloudinaryUploadResponse, POSTS_SIZE_POLICY, \
    BYTES_IN_MB

P = ParamSpec("P")
T = TypeVar("T")


def with_httpx(func: Callable[Concatenate[AsyncClient, P], Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    @wraps(func)
    async def httpx_wrapper(*args: P.args, **kwargs: P.kwargs):
        async with AsyncClient() as client:
            return await func(*args, client=client, **kwargs)

    return httpx_wrapper


def backoff_delay(attempts_used: int) -> float:
    delay = config.upload_backoff_base * 2 ** attempts_used + uniform(0, config.upload_backoff_jitter)
    return min(delay, config.upload_backoff_max)


class _HostRejectedAttempt(Exception):
    pass


class Cloudinary:
    @staticmethod
    def url(kind: MediaKind | str, action: str) -> str:
        kind = kind.value if isinstance(kind, MediaKind) else kind
        return f"{config.cloudinary_api_base}/{config.cloudinary_cloud_name}/{kind}/{action}"

    @staticmethod
    def sign(params: dict[str, str | int], secret: str | None = None) -> str:
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        secret = config.cloudinary_api_secret if secret is None else secret
        return sha1(f"{to_sign}{secret}".encode("utf8")).hexdigest()

    @staticmethod
    def _too_large_message(kind: MediaKind, limit_mb: float) -> str:
        return f"File size too large. Please select a {kind.value} under {limit_mb:g}MB for reliable uploads."

    @staticmethod
    def _timed_out_message(policy: SizePolicy) -> str:
        return (
            f"Upload timed out. Please try with a smaller file or check your connection. "
            f"For videos, keep them under {policy.video_mb:g}MB and for images under {policy.image_mb:g}MB."
        )

    @classmethod
    async def _check_size(cls, request: UploadRequest) -> bytes | None:
        try:
            blob = await read_source(request.source_uri)
        except OSError as e:
            logger.opt(exception=e).warning(f"Could not check file size of {request.source_uri!r}")
            return None

        size_mb = len(blob) / BYTES_IN_MB
        limit_bytes = request.size_limit_bytes
        if limit_bytes is not None and len(blob) > limit_bytes:
            limit_mb = request.policy.limit_mb(request.media_kind)
            raise UploadError(UploadErrorKind.TOO_LARGE, cls._too_large_message(request.media_kind, limit_mb))

        logger.info(f"File size: {size_mb:.2f}MB")
        return blob

    @staticmethod
    async def _probe(client: AsyncClient, timeout: float) -> bool:
        try:
            resp = await client.head(config.cloudinary_api_base, timeout=timeout)
        except HTTPError as e:
            logger.warning(f"Network connection appears unstable ({UploadErrorKind.NETWORK_PROBE_FAILED.value}): {e!r}")
            return False

        if not resp.is_success:
            logger.warning(f"Network connection appears unstable, probe code={resp.status_code!r}")
            return False

        return True

    @staticmethod
    async def _send(
            client: AsyncClient, url: str, payload: bytes, filename: str, content_type: str, timeout: float,
    ) -> Response:
        resp = await client.post(
            url,
            files={"file": (filename, payload, content_type)},
            data={"upload_preset": config.cloudinary_upload_preset},
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
        if not resp.is_success:
            logger.error(f"Cloudinary upload HTTP error, code={resp.status_code!r}, body={resp.text!r}")
            raise _HostRejectedAttempt(f"HTTP error! status: {resp.status_code}")

        return resp

    @classmethod
    async def _attempt(
            cls, client: AsyncClient, url: str, source_uri: str, payload: bytes | None, filename: str,
            content_type: str, timeout: float,
    ) -> Response:
        if config.upload_network_probe:
            await cls._probe(client, min(config.upload_probe_timeout, timeout))
        if payload is None:
            payload = await read_source(source_uri)
        return await cls._send(client, url, payload, filename, content_type, timeout)

    @staticmethod
    def _parse_upload_response(resp: Response) -> UploadResult:
        try:
            j_resp = resp.json()
        except ValueError as e:
            raise UploadError(UploadErrorKind.REMOTE_REJECTED, "Media host returned an invalid response.") from e

        logger.debug(f"Cloudinary upload response, code={resp.status_code!r}, body={j_resp!r}")

        if isinstance(j_resp, dict) and (error := j_resp.get("error")):
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.error(f"Cloudinary API error: {error!r}")
            raise UploadError(UploadErrorKind.REMOTE_REJECTED, message or "Media host rejected the upload.")

        try:
            data = CloudinaryUploadResponse.model_validate(j_resp)
        except ValidationError as e:
            raise UploadError(UploadErrorKind.REMOTE_REJECTED, "Media host returned an invalid response.") from e

        return UploadResult(remote_url=data.secure_url, public_id=data.public_id, resource_kind=data.resource_type)

    @classmethod
    @with_httpx
    async def upload(
            cls, source_uri: str | None, media_kind: MediaKind | str = MediaKind.IMAGE,
            policy: SizePolicy = POSTS_SIZE_POLICY, *, client: AsyncClient,
    ) -> UploadResult:
        request = UploadRequest(source_uri=source_uri, media_kind=MediaKind(media_kind), policy=policy)
        if request.is_text:
            return UploadResult.text()

        kind = request.media_kind
        payload = await cls._check_size(request)

        ext = source_extension(source_uri)
        filename = f"{int(time() * 1000)}.{ext}"
        content_type = f"{kind.value}/{ext}"
        url = cls.url(kind, "upload")

        # one budget for the whole call, backoff sleeps included
        loop = get_running_loop()
        deadline = loop.time() + config.upload_timeout

        attempts = 0
        while True:
            attempts += 1
            if (remaining := deadline - loop.time()) <= 0:
                logger.error(f"Upload budget of {config.upload_timeout}s spent before attempt {attempts}")
                raise UploadError(UploadErrorKind.TIMED_OUT, cls._timed_out_message(policy))

            logger.info(f"Attempt {attempts}: uploading {kind.value} to Cloudinary...")
            try:
                resp = await wait_for(
                    cls._attempt(client, url, source_uri, payload, filename, content_type, remaining), remaining,
                )
                logger.info("Upload successful!")
                break
            except (WaitTimeoutError, TimeoutException) as e:
                logger.error("Upload timed out")
                raise UploadError(UploadErrorKind.TIMED_OUT, cls._timed_out_message(policy)) from e
            except (HTTPError, OSError, _HostRejectedAttempt) as e:
                logger.opt(exception=e).warning(f"Upload attempt {attempts} failed")

            if attempts >= config.upload_max_attempts:
                logger.error("All upload attempts failed")
                raise UploadError(
                    UploadErrorKind.UPLOAD_FAILED,
                    "Upload failed after multiple attempts. Please check your internet connection and try again later.",
                )

            delay = backoff_delay(attempts)
            logger.info(
                f"Retrying in {delay:.1f} seconds ({config.upload_max_attempts - attempts} attempts left)"
            )
            await sleep(delay)

        return cls._parse_upload_response(resp)

    @classmethod
    @with_httpx
    async def destroy(cls, public_id: str, resource_kind: MediaKind | str = MediaKind.IMAGE, *, client: AsyncClient) -> dict:
        if not public_id or resource_kind in (MediaKind.TEXT, MediaKind.TEXT.value):
            return {}

        params = {
            "public_id": public_id,
            "timestamp": int(time()),
        }

        try:
            resp = await client.post(cls.url(resource_kind, "destroy"), json={
                **params,
                "signature": cls.sign(params),
                "api_key": config.cloudinary_api_key,
            })
            j_resp = resp.json()
        except (HTTPError, ValueError) as e:
            logger.opt(exception=e).error(f"Failed to delete Cloudinary asset {public_id!r}")
            raise UploadError(UploadErrorKind.REMOTE_REJECTED, "Unable to delete media from storage.") from e

        logger.debug(f"Cloudinary destroy response, code={resp.status_code!r}, body={j_resp!r}")

        if isinstance(j_resp, dict) and (error := j_resp.get("error")):
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise UploadError(UploadErrorKind.REMOTE_REJECTED, message or "Unable to delete media from storage.")

        return j_resp
