"""
Photo intake: validate, normalize to WebP, stage, and promote once the
report that references the files is safely stored.
"""
from __future__ import annotations

import io
import logging
import os
import uuid
from pathlib import Path
from typing import List, Sequence

from fastapi import UploadFile
from PIL import Image, ImageOps, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from civic_reports.core.config import Settings
from civic_reports.core.errors import ValidationError
from civic_reports.utils.mongo import utcnow

logger = logging.getLogger(__name__)

ALLOWED = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
OUTPUT_MIMETYPE = "image/webp"


class PhotoStorage:
    def __init__(self, settings: Settings):
        self.upload_dir = Path(settings.upload_dir)
        self.staging_dir = Path(settings.staging_dir)
        self.max_file_size = settings.max_file_size
        self.max_photos = settings.max_photos
        self.max_size = (settings.image_max_width, settings.image_max_height)
        self.quality = settings.image_quality

    def ensure_dirs(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.staging_dir.mkdir(parents=True, exist_ok=True)

    def normalize(self, data: bytes) -> bytes:
        """Fit inside the max box (never enlarging) and re-encode as WebP."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                img = ImageOps.exif_transpose(img)
                if img.mode not in ("RGB", "RGBA"):
                    img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
                img.thumbnail(self.max_size, Image.Resampling.LANCZOS)
                out = io.BytesIO()
                img.save(out, format="WEBP", quality=self.quality)
                return out.getvalue()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise ValidationError(f"Image processing failed: {exc}")

    async def stage(self, files: Sequence[UploadFile]) -> List[dict]:
        """
        Normalize every upload into the staging area and return photo
        descriptors. Nothing is left behind if any file is rejected.
        """
        files = [f for f in files or [] if f is not None and f.filename]
        if len(files) > self.max_photos:
            raise ValidationError(f"At most {self.max_photos} photos are allowed")

        self.ensure_dirs()
        staged: List[dict] = []
        try:
            for file in files:
                if file.content_type not in ALLOWED:
                    raise ValidationError(
                        f"Invalid file type: {file.content_type}. Only JPEG, PNG, GIF and WebP images are allowed."
                    )
                # one byte past the limit is enough to know it is too big
                data = await file.read(self.max_file_size + 1)
                if len(data) > self.max_file_size:
                    raise ValidationError(f"{file.filename} exceeds the {self.max_file_size} byte limit")

                encoded = await run_in_threadpool(self.normalize, data)
                filename = f"{uuid.uuid4().hex}.webp"
                (self.staging_dir / filename).write_bytes(encoded)

                staged.append({
                    "filename": filename,
                    "original_name": file.filename,
                    "mimetype": OUTPUT_MIMETYPE,
                    "size": len(encoded),
                    "url": f"/uploads/{filename}",
                    "uploaded_at": utcnow(),
                })
        except Exception:
            self.discard(staged)
            raise

        return staged

    def promote(self, photos: Sequence[dict]) -> None:
        for photo in photos:
            src = self.staging_dir / photo["filename"]
            os.replace(src, self.upload_dir / photo["filename"])

    def discard(self, photos: Sequence[dict]) -> None:
        for photo in photos:
            (self.staging_dir / photo["filename"]).unlink(missing_ok=True)

    def delete_photos(self, photos: Sequence[dict]) -> None:
        for photo in photos:
            filename = os.path.basename(photo.get("filename") or "")
            if not filename:
                continue
            try:
                (self.upload_dir / filename).unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not delete photo %s: %s", filename, exc)
