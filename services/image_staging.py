import asyncio
import logging
import uuid
from pathlib import Path

from config import settings
from core.models.meal import LocalImageRef

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/heic": ".heic",
}


class UnsupportedImageError(ValueError):
    pass


class ImageStaging:
    """
    Local holding area for picked images.

    A staged file is what a `LocalImageRef` points at. It lives as long as a
    slot refers to it and is re-uploaded on every save; the form discards it
    once the slot's image is replaced, cleared or deleted.
    """

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def _write(self, file_path: Path, data: bytes) -> None:
        file_path.write_bytes(data)
        logger.info("Staged %d bytes to %s", len(data), file_path)

    async def stage(self, data: bytes, content_type: str | None) -> LocalImageRef:
        content_type = (content_type or "").lower()
        if not content_type.startswith("image/"):
            raise UnsupportedImageError(f"not an image: {content_type or 'unknown type'}")

        file_path = self.root / f"{uuid.uuid4().hex}{_EXTENSIONS.get(content_type, '.img')}"
        await asyncio.to_thread(self._write, file_path, data)
        return LocalImageRef(path=file_path, content_type=content_type)

    def _unlink(self, file_path: Path) -> None:
        file_path.unlink(missing_ok=True)
        logger.info("Discarded staged image %s", file_path)

    async def discard(self, image: LocalImageRef) -> None:
        # only files this staging area created
        if image.path.resolve().parent != self.root.resolve():
            logger.warning("Refusing to discard %s outside %s", image.path, self.root)
            return
        await asyncio.to_thread(self._unlink, image.path)


def get_staging() -> ImageStaging:
    return ImageStaging(Path(settings.image_staging_dir))
