"""Avatar hosting on Cloudinary."""

import hashlib
import logging
import re
import shutil
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse

import httpx

from accounts.config import Settings, get_settings
from accounts.errors import ImageHostError

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"

_VERSION_SEGMENT = re.compile(r"^v\d+$")


@dataclass
class HostedImage:
    """An image stored on the image host."""

    url: str
    public_id: str


def public_id_from_url(url: str) -> str | None:
    """Derive the Cloudinary public id from a delivery URL.

    ``https://res.cloudinary.com/demo/image/upload/v1712/user_images/abc.jpg``
    becomes ``user_images/abc``. Returns None for URLs that are not Cloudinary
    upload URLs.
    """
    if not url:
        return None
    path = urlparse(url).path
    if "/upload/" not in path:
        return None
    segments = [s for s in path.split("/upload/", 1)[1].split("/") if s]
    if segments and _VERSION_SEGMENT.match(segments[0]):
        segments = segments[1:]
    if not segments:
        return None
    segments[-1] = segments[-1].rsplit(".", 1)[0]
    return "/".join(segments)


class ImageHost:
    """Client for Cloudinary's signed upload API."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.folder = settings.avatar_folder
        self.timeout = 30.0

    @property
    def is_configured(self) -> bool:
        """Check if Cloudinary credentials are configured."""
        return self.settings.cloudinary_configured

    @property
    def base_url(self) -> str:
        return f"{CLOUDINARY_API_BASE}/{self.settings.cloudinary_cloud_name}/image"

    def _sign(self, params: dict[str, str]) -> str:
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        digest = hashlib.sha1(  # noqa: S324 - Cloudinary's signature scheme
            (to_sign + self.settings.cloudinary_api_secret).encode("utf-8")
        )
        return digest.hexdigest()

    def _signed(self, params: dict[str, str]) -> dict[str, str]:
        params = {**params, "timestamp": str(int(time.time()))}
        return {
            **params,
            "api_key": self.settings.cloudinary_api_key,
            "signature": self._sign(params),
        }

    async def upload(self, local_path: str | Path) -> HostedImage:
        """Upload a local image file into the avatar folder."""
        if not self.is_configured:
            raise ImageHostError("Image hosting is not configured")

        path = Path(local_path)
        data = self._signed({"folder": self.folder})
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/upload",
                    data=data,
                    files={"file": (path.name, path.read_bytes())},
                )
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.error(f"Avatar upload failed for {path.name}: {e}")
            raise ImageHostError() from e

        logger.info(f"Uploaded avatar {body['public_id']}")
        return HostedImage(url=body["secure_url"], public_id=body["public_id"])

    async def upload_file(self, filename: str, source: BinaryIO) -> HostedImage:
        """Stage an uploaded file on disk, host it, then remove the local copy.

        The staged file is removed whether or not the upload succeeds.
        """
        if not self.is_configured:
            raise ImageHostError("Image hosting is not configured")

        staging_dir = Path(self.settings.upload_dir)
        staging_dir.mkdir(parents=True, exist_ok=True)
        local_path = staging_dir / f"{uuid.uuid4().hex}{Path(filename).suffix.lower()}"
        try:
            with local_path.open("wb") as out:
                shutil.copyfileobj(source, out)
            return await self.upload(local_path)
        finally:
            local_path.unlink(missing_ok=True)

    async def destroy(self, public_id: str) -> None:
        """Delete a hosted image. A missing image is not an error."""
        if not self.is_configured:
            raise ImageHostError("Image hosting is not configured")

        data = self._signed({"public_id": public_id})
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/destroy", data=data)
                response.raise_for_status()
                result = response.json().get("result")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to destroy avatar {public_id}: {e}")
            raise ImageHostError("Failed to remove image") from e

        if result not in ("ok", "not found"):
            logger.warning(f"Unexpected destroy result for {public_id}: {result}")
        logger.info(f"Destroyed avatar {public_id}")

    async def discard(self, public_id: str) -> None:
        """Destroy an image that is no longer referenced, logging any failure."""
        try:
            await self.destroy(public_id)
        except ImageHostError:
            logger.error(f"Orphaned hosted image {public_id}")

    async def destroy_url(self, url: str) -> None:
        """Delete the hosted image behind a delivery URL, if it is one of ours."""
        public_id = public_id_from_url(url)
        if public_id is None:
            logger.info(f"Image {url} is not hosted, nothing to destroy")
            return
        await self.destroy(public_id)


def get_image_host() -> ImageHost:
    """Get an image host instance."""
    return ImageHost(get_settings())
