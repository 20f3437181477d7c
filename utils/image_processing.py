"""Screenshot decoding, normalisation and storage.

Screenshots are decoded with Pillow to prove they are real images inside the
accepted dimension range, re-encoded as WEBP no larger than 1920x1080, and
written to the upload directory as ``{report_id}_{random}.webp``. Pillow work
runs in a worker thread so the event loop keeps serving other commands.
"""

import asyncio
import os
import uuid
from dataclasses import dataclass
from io import BytesIO
from typing import Iterable, List, Tuple

import structlog
from PIL import Image, UnidentifiedImageError

from utils.exceptions import AttachmentError

logger = structlog.get_logger("image_processing")

MIN_DIMENSION = 50
MAX_DIMENSION = 4000
MAX_RESOLUTION: Tuple[int, int] = (1920, 1080)
WEBP_QUALITY = 85


@dataclass(frozen=True)
class ImageInfo:
    width: int
    height: int
    format: str


@dataclass
class DeletionSummary:
    deleted: int = 0
    missing: int = 0
    failed: int = 0


class ImageStore:
    """Validates, transcodes and deletes stored screenshots."""

    def __init__(
        self,
        upload_dir: str,
        max_resolution: Tuple[int, int] = MAX_RESOLUTION,
        min_dimension: int = MIN_DIMENSION,
        max_dimension: int = MAX_DIMENSION,
        quality: int = WEBP_QUALITY,
    ) -> None:
        self.upload_dir = upload_dir
        self.max_resolution = max_resolution
        self.min_dimension = min_dimension
        self.max_dimension = max_dimension
        self.quality = quality

    def inspect(self, data: bytes, filename: str) -> ImageInfo:
        """Decode ``data`` and check its dimensions.

        Raises:
            AttachmentError: If the bytes are not an image or fall outside the
                accepted dimension range.
        """
        try:
            with Image.open(BytesIO(data)) as img:
                width, height = img.size
                image_format = img.format or "unknown"
                if width < self.min_dimension or height < self.min_dimension:
                    raise AttachmentError(
                        filename,
                        f"Image too small (minimum {self.min_dimension}x{self.min_dimension} pixels)",
                    )
                if width > self.max_dimension or height > self.max_dimension:
                    raise AttachmentError(
                        filename,
                        f"Image too large (maximum {self.max_dimension}x{self.max_dimension} pixels)",
                    )
                img.verify()
            # verify() only checks headers; decoding the pixels catches truncated files
            with Image.open(BytesIO(data)) as img:
                img.load()
        except Image.DecompressionBombError:
            raise AttachmentError(
                filename,
                f"Image too large (maximum {self.max_dimension}x{self.max_dimension} pixels)",
            )
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise AttachmentError(filename, "File is not a valid image") from e

        return ImageInfo(width=width, height=height, format=image_format)

    async def validate(self, data: bytes, filename: str) -> ImageInfo:
        return await asyncio.to_thread(self.inspect, data, filename)

    def _transcode(self, data: bytes, path: str) -> None:
        with Image.open(BytesIO(data)) as img:
            # Animated formats keep only their first frame
            img.seek(0)
            has_alpha = img.mode in ("RGBA", "LA") or (
                img.mode == "P" and "transparency" in img.info
            )
            frame = img.convert("RGBA" if has_alpha else "RGB")
            # thumbnail() keeps the aspect ratio and never enlarges
            frame.thumbnail(self.max_resolution, Image.Resampling.LANCZOS)
            frame.save(path, "WEBP", quality=self.quality)

    async def store(self, data: bytes, report_id: str) -> str:
        """Transcode ``data`` to WEBP and write it under the upload directory.

        Returns:
            The stored file's path.
        """
        os.makedirs(self.upload_dir, exist_ok=True)
        path = os.path.join(self.upload_dir, f"{report_id}_{uuid.uuid4()}.webp")
        try:
            await asyncio.to_thread(self._transcode, data, path)
        except BaseException:
            # Never leave a half-written file behind
            self.delete([path])
            raise
        logger.debug("screenshot_stored", report_id=report_id, path=path)
        return path

    def delete(self, paths: Iterable[str]) -> DeletionSummary:
        """Best-effort removal of stored files; never raises for individual files."""
        summary = DeletionSummary()
        for path in paths:
            try:
                os.remove(path)
                summary.deleted += 1
            except FileNotFoundError:
                summary.missing += 1
                logger.warning("screenshot_already_missing", path=path)
            except OSError as e:
                summary.failed += 1
                logger.error("screenshot_delete_failed", path=path, error=str(e))
        return summary

    def stored_files(self) -> List[str]:
        """Paths of every file currently in the upload directory."""
        if not os.path.isdir(self.upload_dir):
            return []
        return [
            os.path.join(self.upload_dir, name)
            for name in sorted(os.listdir(self.upload_dir))
            if os.path.isfile(os.path.join(self.upload_dir, name))
        ]
