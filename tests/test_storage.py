"""
Tests for the upload handler with the local disk backend.
"""
from io import BytesIO

import pytest
from fastapi import UploadFile
from PIL import Image
from starlette.datastructures import Headers

from wallnest.exceptions import ValidationException
from wallnest.storage import ImageUploadService, LocalStorageService
from wallnest.wallpapers.exceptions import InvalidImageException


def image_bytes(size=(800, 400), image_format="PNG", mode="RGB"):
    out = BytesIO()
    Image.new(mode, size, color=(10, 120, 200) if mode == "RGB" else 128).save(out, format=image_format)
    return out.getvalue()


@pytest.fixture
def uploads(tmp_path):
    return ImageUploadService(LocalStorageService(str(tmp_path), "/uploads"))


# ── store_image ───────────────────────────────────────────────────────────────

class TestStoreImage:
    def test_reads_dimensions_and_format(self, uploads):
        stored = uploads.store_image(image_bytes(), uploader_id=7)
        assert (stored.width, stored.height) == (800, 400)
        assert stored.format == "png"
        assert str(stored.aspect_ratio) == "2.0"
        assert stored.file_url.startswith("/uploads/wallpapers/7/")
        assert stored.file_url.endswith(".png")

    def test_files_land_on_disk(self, uploads, tmp_path):
        stored = uploads.store_image(image_bytes(), uploader_id=7)
        original = tmp_path / stored.file_url[len("/uploads/"):]
        thumbnail = tmp_path / stored.thumbnail_url[len("/uploads/"):]
        assert original.read_bytes() == image_bytes()
        with Image.open(thumbnail) as thumb:
            assert thumb.format == "WEBP"
            assert thumb.size == (300, 150)

    def test_small_images_are_not_upscaled(self, uploads, tmp_path):
        stored = uploads.store_image(image_bytes(size=(120, 80), image_format="JPEG"), uploader_id=1)
        assert stored.file_url.endswith(".jpg")
        with Image.open(tmp_path / stored.thumbnail_url[len("/uploads/"):]) as thumb:
            assert thumb.size == (120, 80)

    def test_grayscale_thumbnail(self, uploads):
        stored = uploads.store_image(image_bytes(mode="L"), uploader_id=1)
        assert stored.thumbnail_url.endswith(".webp")

    def test_garbage_is_rejected(self, uploads):
        with pytest.raises(InvalidImageException):
            uploads.store_image(b"definitely not an image", uploader_id=1)

    def test_empty_is_rejected(self, uploads):
        with pytest.raises(ValidationException):
            uploads.store_image(b"", uploader_id=1)

    def test_unsupported_format_is_rejected(self, uploads):
        with pytest.raises(ValidationException):
            uploads.store_image(image_bytes(image_format="BMP"), uploader_id=1)


# ── save_wallpaper ────────────────────────────────────────────────────────────

class TestSaveWallpaper:
    async def test_wrong_mime_type(self, uploads):
        upload = UploadFile(
            file=BytesIO(b"%PDF-1.4"),
            filename="doc.pdf",
            headers=Headers({"content-type": "application/pdf"}),
        )
        with pytest.raises(ValidationException):
            await uploads.save_wallpaper(upload, uploader_id=1)

    async def test_valid_upload(self, uploads):
        upload = UploadFile(
            file=BytesIO(image_bytes()),
            filename="sky.png",
            headers=Headers({"content-type": "image/png"}),
        )
        stored = await uploads.save_wallpaper(upload, uploader_id=3)
        assert stored.file_size == len(image_bytes())


# ── deletion ──────────────────────────────────────────────────────────────────

class TestLocalDelete:
    def test_delete_stored_file(self, tmp_path):
        backend = LocalStorageService(str(tmp_path), "/uploads")
        url = backend.save(b"x", "a/b.txt", "text/plain")
        assert backend.delete(url)
        assert not (tmp_path / "a" / "b.txt").exists()

    def test_foreign_url_is_ignored(self, tmp_path):
        backend = LocalStorageService(str(tmp_path), "/uploads")
        assert not backend.delete("https://elsewhere.example/a.jpg")
