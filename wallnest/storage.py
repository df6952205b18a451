"""
File storage and the wallpaper upload handler.

`ImageUploadService.save_wallpaper` takes the raw upload, validates it,
reads its dimensions with Pillow, renders a WebP thumbnail and stores both
files through a storage backend: S3 when a bucket is configured, the local
UPLOAD_DIR otherwise.
"""
import logging
import uuid
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool
from PIL import Image, UnidentifiedImageError

from wallnest.config import settings
from wallnest.exceptions import ValidationException
from wallnest.wallpapers.exceptions import InvalidImageException
from wallnest.wallpapers.schemas import UploadedImage

logger = logging.getLogger(__name__)

THUMBNAIL_FORMAT = "webp"
THUMBNAIL_QUALITY = 80


class S3StorageService:
    def __init__(self):
        session = boto3.session.Session(
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=settings.AWS_S3_REGION or None,
        )
        self.s3 = session.client("s3", config=Config(s3={"addressing_style": "virtual"}))
        self.bucket = settings.AWS_S3_BUCKET
        self.public_base = settings.AWS_S3_PUBLIC_URL.strip() if settings.AWS_S3_PUBLIC_URL else ""

    def _base_url(self) -> str:
        if self.public_base:
            return self.public_base.rstrip("/")
        return f"https://{self.bucket}.s3.{settings.AWS_S3_REGION}.amazonaws.com"

    def save(self, data: bytes, key: str, content_type: str) -> str:
        if not self.bucket:
            raise RuntimeError("AWS_S3_BUCKET is not configured")

        self.s3.upload_fileobj(
            Fileobj=BytesIO(data),
            Bucket=self.bucket,
            Key=key,
            ExtraArgs={
                "ContentType": content_type,
                "CacheControl": "public, max-age=31536000",
            },
        )
        return f"{self._base_url()}/{key}"

    def delete(self, file_url: str) -> bool:
        key = self._extract_key_from_url(file_url)
        if not key:
            return False
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError):
            logger.warning("Could not delete %s from S3", file_url, exc_info=True)
            return False
        return True

    def _extract_key_from_url(self, file_url: str) -> str:
        if not file_url:
            return ""
        prefix = f"{self._base_url()}/"
        if file_url.startswith(prefix):
            return file_url[len(prefix):]
        return ""


class LocalStorageService:
    """Stores files under UPLOAD_DIR, served by the app at UPLOAD_URL_PREFIX."""

    def __init__(self, base_dir: Optional[str] = None, url_prefix: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR)
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")

    def save(self, data: bytes, key: str, content_type: str) -> str:
        path = self.base_dir / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return f"{self.url_prefix}/{key}"

    def delete(self, file_url: str) -> bool:
        prefix = f"{self.url_prefix}/"
        if not file_url or not file_url.startswith(prefix):
            return False
        path = self.base_dir / file_url[len(prefix):]
        if not path.is_file():
            return False
        path.unlink()
        return True


def get_storage_backend():
    if settings.AWS_S3_BUCKET:
        return S3StorageService()
    return LocalStorageService()


def _guess_ext_from_format(image_format: str) -> str:
    mapping = {
        "jpeg": ".jpg",
        "png": ".png",
        "webp": ".webp",
        "gif": ".gif",
    }
    return mapping.get(image_format, "")


def make_thumbnail(image: Image.Image, width: int) -> bytes:
    """Render a `width` pixel wide WebP thumbnail, keeping the aspect ratio."""
    thumb = image.copy()
    if thumb.mode not in ("RGB", "RGBA"):
        thumb = thumb.convert("RGBA" if "transparency" in thumb.info or thumb.mode in ("LA", "PA") else "RGB")
    if thumb.width > width:
        height = max(1, round(thumb.height * width / thumb.width))
        thumb = thumb.resize((width, height), Image.Resampling.LANCZOS)
    out = BytesIO()
    thumb.save(out, format=THUMBNAIL_FORMAT.upper(), quality=THUMBNAIL_QUALITY)
    return out.getvalue()


def read_image(data: bytes) -> Tuple[Image.Image, str]:
    """Open image bytes with Pillow, returning the image and its lower-case format."""
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageException() from e
    return image, (image.format or "").lower()


class ImageUploadService:
    def __init__(self, backend=None):
        self.backend = backend or get_storage_backend()

    async def save_wallpaper(self, upload: UploadFile, uploader_id: int) -> UploadedImage:
        """
        Validate and store an uploaded wallpaper image plus its thumbnail.

        Raises:
            ValidationException: missing file, wrong MIME type or too large
            InvalidImageException: the bytes are not a readable image
        """
        if upload is None or not upload.filename:
            raise ValidationException("Please choose an image to upload")
        content_type = (upload.content_type or "").lower()
        if content_type not in settings.ALLOWED_IMAGE_TYPES:
            raise ValidationException("Only JPEG, PNG, WebP and GIF images are accepted")

        data = await upload.read()
        return await run_in_threadpool(self.store_image, data, uploader_id)

    def store_image(self, data: bytes, uploader_id: int) -> UploadedImage:
        if not data:
            raise ValidationException("Uploaded file is empty")
        if len(data) > settings.MAX_UPLOAD_SIZE:
            raise ValidationException(
                f"Image exceeds the {settings.MAX_UPLOAD_SIZE // (1024 * 1024)} MB limit"
            )

        image, image_format = read_image(data)
        ext = _guess_ext_from_format(image_format)
        if not ext:
            raise ValidationException("Only JPEG, PNG, WebP and GIF images are accepted")

        width, height = image.size
        name = uuid.uuid4().hex
        file_url = self.backend.save(data, f"wallpapers/{uploader_id}/{name}{ext}", f"image/{image_format}")
        thumbnail_url = self.backend.save(
            make_thumbnail(image, settings.THUMBNAIL_WIDTH),
            f"thumbnails/{uploader_id}/{name}.{THUMBNAIL_FORMAT}",
            f"image/{THUMBNAIL_FORMAT}",
        )
        logger.info("Stored %sx%s %s upload for user %s", width, height, image_format, uploader_id)

        return UploadedImage(
            file_url=file_url,
            thumbnail_url=thumbnail_url,
            file_size=len(data),
            width=width,
            height=height,
            format=image_format,
            aspect_ratio=Decimal(str(round(width / height, 2))),
        )

    def delete_files(self, *urls: Optional[str]) -> None:
        for url in urls:
            if url:
                self.backend.delete(url)
