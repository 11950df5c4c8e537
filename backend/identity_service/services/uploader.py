"""
Remote asset uploader

Provides a small interface for pushing a local file to remote object storage,
with a Cloudinary implementation speaking the REST upload API.
"""
import hashlib
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from ..config import settings

logger = logging.getLogger("uvicorn.error")


@dataclass
class UploadResult:
    """Result of a successful remote upload"""
    url: str  # Public HTTPS URL of the stored asset
    public_id: Optional[str] = None
    resource_type: Optional[str] = None
    size: Optional[int] = None  # Bytes stored remotely


class AssetUploader(ABC):
    """Remote uploader abstract base class"""

    @abstractmethod
    async def upload(self, local_path: str) -> Optional[UploadResult]:
        """
        Upload a local file.

        Returns:
        - UploadResult on success
        - None on failure (the caller decides whether that is fatal)

        Implementations never delete the local file; cleanup belongs to the
        staging pipeline.
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if uploader is configured"""
        pass


class CloudinaryUploader(AssetUploader):
    """Cloudinary signed upload via the REST API"""

    def __init__(self):
        self.cloud_name = settings.cloudinary_cloud_name
        self.api_key = settings.cloudinary_api_key
        self.api_secret = settings.cloudinary_api_secret
        self.api_base = settings.cloudinary_api_base
        self.timeout = settings.upload_timeout_seconds

    def is_available(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    @property
    def upload_url(self) -> str:
        # "auto" lets Cloudinary detect image/video/raw
        return f"{self.api_base}/{self.cloud_name}/auto/upload"

    def sign(self, params: dict) -> str:
        """
        Cloudinary signature: sha1 of the alphabetically sorted
        "key=value" pairs joined by "&", followed by the API secret.
        """
        to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    async def upload(self, local_path: str) -> Optional[UploadResult]:
        if not local_path:
            return None
        if not self.is_available():
            logger.error("[cloudinary] credentials not configured, cannot upload %s", local_path)
            return None

        params = {"timestamp": int(time.time())}
        data = {
            **params,
            "api_key": self.api_key,
            "signature": self.sign(params),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                with open(local_path, "rb") as f:
                    files = {"file": (Path(local_path).name, f)}
                    resp = await client.post(self.upload_url, data=data, files=files)
                resp.raise_for_status()
                result = resp.json()
        except (httpx.HTTPError, OSError, ValueError) as e:
            # ValueError: body is not JSON (e.g. an HTML error page from a proxy)
            logger.warning("[cloudinary] upload failed for %s: %s", local_path, e)
            return None

        if not isinstance(result, dict):
            logger.warning("[cloudinary] unexpected response body for %s: %r", local_path, result)
            return None

        url = result.get("secure_url")
        if not url:
            logger.warning("[cloudinary] response without secure_url for %s", local_path)
            return None

        logger.info("[cloudinary] uploaded %s -> %s", local_path, url)
        return UploadResult(
            url=url,
            public_id=result.get("public_id"),
            resource_type=result.get("resource_type"),
            size=result.get("bytes"),
        )


# Global singleton
cloudinary_uploader = CloudinaryUploader()


def get_uploader() -> AssetUploader:
    """FastAPI dependency returning the configured remote uploader."""
    return cloudinary_uploader
