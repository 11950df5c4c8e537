"""
Asset upload pipeline.

Stages multipart files on local disk, hands them to the remote uploader and
guarantees the local copy is removed once the request concludes.

Usage (one pipeline per request):

    with AssetUploadPipeline(uploader) as pipeline:
        avatar = await pipeline.stage(avatar_file, "avatar")
        ...
        url = await pipeline.upload(avatar)

Leaving the `with` block, normally or through an exception, discards every
asset that has not reached a terminal state.
"""
import asyncio
import enum
import logging
import os
import shutil
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, List, Optional, Protocol

from ..config import settings
from .uploader import AssetUploader

logger = logging.getLogger("uvicorn.error")


class IncomingFile(Protocol):
    """What the pipeline needs from a multipart upload (FastAPI's UploadFile fits)."""
    filename: Optional[str]
    file: BinaryIO


class AssetState(str, enum.Enum):
    RECEIVED = "received"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    DISCARDED = "discarded"


TERMINAL_STATES = (AssetState.UPLOADED, AssetState.DISCARDED)


@dataclass
class StagedAsset:
    """A file that landed on local storage and is waiting for remote upload."""
    field_name: str  # Form field it arrived under ("avatar", "coverImage")
    filename: str  # Client supplied filename (basename only)
    path: Path  # Local copy
    state: AssetState = AssetState.RECEIVED
    remote_url: Optional[str] = None
    _released: bool = field(default=False, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def release(self) -> None:
        """
        Delete the local copy. Runs at most once and never raises for a
        file that is already gone or was never written.
        """
        if self._released:
            return
        self._released = True
        try:
            if self.path.exists():
                os.remove(self.path)
                logger.info("[assets] deleted local file %s", self.path)
        except OSError as e:
            logger.error("[assets] failed to delete local file %s: %s", self.path, e)

    def finish(self, state: AssetState, remote_url: Optional[str] = None) -> None:
        """Perform the single terminal transition and remove the local copy."""
        if self.is_terminal:
            return
        self.state = state
        self.remote_url = remote_url
        self.release()


def _copy_to_disk(source: BinaryIO, path: Path) -> None:
    source.seek(0)
    with open(path, "wb") as out:
        shutil.copyfileobj(source, out)


class AssetUploadPipeline:
    """Per-request staging area. Use as a context manager."""

    def __init__(self, uploader: AssetUploader, upload_dir: Optional[str] = None):
        self.uploader = uploader
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.assets: List[StagedAsset] = []

    def __enter__(self) -> "AssetUploadPipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    async def stage(self, upload: Optional[IncomingFile], field_name: str) -> Optional[StagedAsset]:
        """
        Copy an incoming file into the staging directory.

        Returns None when no file was supplied for `field_name`. The staged
        asset is registered for cleanup before any byte is written, so a
        partially written file is removed as well. The copy runs in the default
        executor so large files do not block the event loop.
        """
        if upload is None or not upload.filename:
            return None

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        filename = Path(upload.filename).name
        asset = StagedAsset(
            field_name=field_name,
            filename=filename,
            path=self.upload_dir / f"{uuid.uuid4().hex}-{filename}",
        )
        self.assets.append(asset)

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _copy_to_disk, upload.file, asset.path)
        logger.info("[assets] staged %s -> %s", field_name, asset.path)
        return asset

    async def upload(self, asset: Optional[StagedAsset]) -> Optional[str]:
        """
        Push a staged asset to remote storage.

        Returns the remote URL, or None when there is nothing to upload or the
        uploader reported a failure. The local copy is removed either way.
        """
        if asset is None:
            return None
        if asset.is_terminal:
            return asset.remote_url

        asset.state = AssetState.UPLOADING
        try:
            result = await self.uploader.upload(str(asset.path))
        except Exception:
            asset.finish(AssetState.DISCARDED)
            raise

        if result is None:
            logger.warning("[assets] upload failed for %s (%s)", asset.field_name, asset.filename)
            asset.finish(AssetState.DISCARDED)
            return None

        asset.finish(AssetState.UPLOADED, result.url)
        return result.url

    def cleanup(self) -> None:
        """Discard every asset that has not reached a terminal state."""
        for asset in self.assets:
            asset.finish(AssetState.DISCARDED)
