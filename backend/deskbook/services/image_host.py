"""
DeskBook Backend - Image Host
===============================

What:  Turns a base64-encoded profile photo into a durable URL.
How:   Two interchangeable backends behind the ImageHost interface:

       LocalImageHost   decodes, validates with Pillow, writes the file under
                        STORAGE_ROOT/photos/YYYY/MM/DD/<uuid>.<ext> with
                        aiofiles, and returns a /files/... URL served by
                        routes/files.py.
       RemoteImageHost  posts the base64 payload to an Imgur-style API with
                        httpx, with tenacity retries and a circuit breaker.

Who:   UserService (profile completion and settings). Callers treat every
       ImageHostError as non-fatal: the failure is logged and the rest of
       the request proceeds.

Validation order (both backends):
    1. Strip an optional data-URL prefix ("data:image/png;base64,")
    2. Base64-decode strictly
    3. Size check against MAX_PHOTO_SIZE
    4. Pillow identifies and verifies the image; only PNG, JPEG and WEBP pass
"""

import base64
import binascii
import io
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import httpx
from PIL import Image, UnidentifiedImageError
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from deskbook.config import settings
from deskbook.exceptions import CircuitBreakerOpenError, ImageHostError
from deskbook.services.resilience import CircuitBreaker

logger = logging.getLogger(__name__)

# Pillow format name → stored file extension
ALLOWED_FORMATS = {
    "PNG": ".png",
    "JPEG": ".jpg",
    "WEBP": ".webp",
}


def decode_photo(photo: str) -> Tuple[bytes, str]:
    """
    Decode and validate a base64 photo.

    Returns:
        Tuple of (raw image bytes, file extension).

    Raises:
        ImageHostError if the payload is not base64, too large, or not a
        supported image.
    """
    payload = photo.strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]

    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ImageHostError(
            message="Photo is not valid base64",
            context={"length": len(photo)},
        ) from None

    if not content:
        raise ImageHostError(message="Photo is empty")

    if len(content) > settings.max_photo_size:
        raise ImageHostError(
            message="Photo exceeds the maximum size",
            context={"size": len(content), "max_size": settings.max_photo_size},
        )

    try:
        with Image.open(io.BytesIO(content)) as img:
            image_format = img.format
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise ImageHostError(
            message="Photo is not a readable image",
            context={"error": str(e)},
        ) from None

    if image_format not in ALLOWED_FORMATS:
        raise ImageHostError(
            message=f"Photo format '{image_format}' is not supported",
            context={"format": image_format, "allowed": sorted(ALLOWED_FORMATS)},
        )

    return content, ALLOWED_FORMATS[image_format]


class ImageHost(ABC):
    """
    Contract:
        - upload() accepts a base64 photo and returns a URL
        - All backend-specific failures are wrapped in ImageHostError
          (or CircuitBreakerOpenError, itself a DependencyError)
    """

    name = "image_host"

    @abstractmethod
    async def upload(self, photo: str) -> str:
        ...

    def status(self) -> str:
        """Short availability label for the health endpoint."""
        return "available"


class LocalImageHost(ImageHost):
    """Stores photos on the local storage volume."""

    name = "local"

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalImageHost initialized with storage_root=%s", self.storage_root)

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """photos/YYYY/MM/DD/<uuid>.<ext> under the storage root."""
        now = datetime.now(timezone.utc)
        relative_path = f"photos/{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def upload(self, photo: str) -> str:
        content, extension = decode_photo(photo)
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store photo at %s: %s", absolute_path, str(e))
            raise ImageHostError(
                message="Failed to save photo",
                context={"path": str(absolute_path), "os_error": str(e)},
            ) from None

        logger.info("Photo stored: %s (%d bytes)", relative_path, len(content))
        return f"/files/{relative_path}"


def _is_retryable(exc: BaseException) -> bool:
    """Network errors and 5xx responses are retried; 4xx are not."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


class RemoteImageHost(ImageHost):
    """
    Uploads photos to an Imgur-compatible API.

    Error Handling Chain:
        API call fails → tenacity retries transient errors
        → All retries fail → record circuit breaker failure
        → Threshold reached → later calls rejected instantly until recovery
    """

    name = "remote"

    def __init__(
        self,
        url: Optional[str] = None,
        client_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            url: Upload endpoint (defaults to IMAGE_HOST_URL)
            client_id: API client id (defaults to IMAGE_HOST_CLIENT_ID)
            transport: httpx transport override, used by tests
        """
        self.url = url or settings.image_host_url
        self.client_id = client_id if client_id is not None else settings.image_host_client_id
        self.transport = transport
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
            name="image host",
        )

    def status(self) -> str:
        return "circuit_open" if self.circuit_breaker.state == CircuitBreaker.OPEN else "available"

    async def upload(self, photo: str) -> str:
        content, _ = decode_photo(photo)
        self.circuit_breaker.can_execute()

        try:
            link = await self._post_with_retry(base64.b64encode(content).decode("ascii"))
        except CircuitBreakerOpenError:
            raise
        except RetryError as e:
            self.circuit_breaker.record_failure()
            raise ImageHostError(
                message="Photo upload failed after multiple attempts",
                context={"attempts": settings.retry_max_attempts, "error": str(e)},
            ) from None
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            self.circuit_breaker.record_failure()
            logger.error("Image host upload failed: %s", str(e))
            raise ImageHostError(
                message="Photo upload failed",
                context={"error_type": type(e).__name__},
            ) from None

        self.circuit_breaker.record_success()
        logger.info("Photo uploaded to image host")
        return link

    @retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential(multiplier=settings.retry_min_wait, max=settings.retry_max_wait)
        + wait_random(0, settings.retry_min_wait),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post_with_retry(self, encoded: str) -> str:
        headers = {"Authorization": f"Client-ID {self.client_id}"}
        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=settings.image_host_timeout,
        ) as client:
            response = await client.post(
                self.url,
                headers=headers,
                data={"image": encoded, "type": "base64"},
            )
            response.raise_for_status()
            body = response.json()
        return body["data"]["link"]


def build_image_host() -> ImageHost:
    """Backend selected by IMAGE_HOST_BACKEND."""
    if settings.image_host_backend == "remote":
        return RemoteImageHost()
    return LocalImageHost()


# Shared instance; holds the remote backend's circuit breaker state
image_host = build_image_host()
