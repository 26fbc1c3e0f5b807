"""Dog image service — upload, list, fetch, replace, delete.

Learn: Every per-image operation follows the same shape:
1. Load the row (FOR UPDATE when we're about to mutate it)
2. Ownership guard: only the uploader gets past this point
3. Touch the filesystem / database

Ordering of file and row changes matters because they can't share a
transaction. New files are written before the row points at them, and
old files are removed only after the commit succeeds. If the process
dies mid-way the leftover is an unreferenced file on disk, never a row
whose file is gone. Removing a file that's already missing is logged
and tolerated.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dogapi.auth.dependencies import CurrentIdentity
from dogapi.auth.ownership import authorize
from dogapi.config import settings
from dogapi.db.models import DogImage
from dogapi.errors import Forbidden, NotFound, StorageError, ValidationError
from dogapi.storage.media import MediaStore

logger = structlog.get_logger()

# Width of dog_images.name
NAME_MAX_LENGTH = 255


def validate_upload(content_type: Optional[str], data: bytes) -> None:
    """Reject empty, oversized, or non-image uploads."""
    if not data:
        raise ValidationError("Please upload an image file.")
    if len(data) > settings.max_upload_bytes:
        raise ValidationError("Image file is too large.")
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError("Only image files can be uploaded.")


class DogService:
    """Business logic for a user's dog images."""

    def __init__(self, db: AsyncSession, media: MediaStore):
        self.db = db
        self.media = media

    # ─── Helpers ────────────────────────────────────────

    @staticmethod
    def _owner_uuid(identity: CurrentIdentity) -> uuid.UUID:
        try:
            return uuid.UUID(str(identity.user_id))
        except ValueError:
            raise Forbidden("Invalid token.")

    async def _load(self, image_id: str, for_update: bool = False) -> DogImage:
        try:
            iid = uuid.UUID(str(image_id))
        except ValueError:
            raise NotFound("Dog image not found.")

        q = select(DogImage).where(DogImage.id == iid)
        if for_update:
            q = q.with_for_update()
        try:
            result = await self.db.execute(q)
        except SQLAlchemyError as e:
            raise StorageError("Server error") from e

        record = result.scalars().first()
        if not record:
            raise NotFound("Dog image not found.")
        return record

    async def _discard(self, path: str) -> None:
        """Best-effort file removal after the row change is committed."""
        try:
            await asyncio.to_thread(self.media.delete, path)
        except OSError as e:
            logger.warning("dogs.file_cleanup_failed", path=path, error=str(e))

    async def _commit(self, message: str, written: Optional[str] = None) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            if written:
                await self._discard(written)
            raise StorageError(message) from e

    # ─── Operations ─────────────────────────────────────

    async def upload(
        self,
        identity: CurrentIdentity,
        filename: Optional[str],
        content_type: Optional[str],
        data: bytes,
    ) -> DogImage:
        validate_upload(content_type, data)
        owner_id = self._owner_uuid(identity)
        name = (filename or "upload")[:NAME_MAX_LENGTH]

        try:
            path = await asyncio.to_thread(self.media.store, data, name)
        except OSError as e:
            raise StorageError("Failed to upload image.") from e

        record = DogImage(
            user_id=owner_id,
            name=name,
            image_path=path,
            content_type=content_type,
        )
        self.db.add(record)
        await self._commit("Failed to upload image.", written=path)

        logger.info("dogs.uploaded", image_id=str(record.id), user_id=str(owner_id))
        return record

    async def list_for_owner(
        self, identity: CurrentIdentity, page: int = 1, limit: int = 10
    ) -> tuple[int, list[DogImage]]:
        """One page of the owner's images, oldest first, plus the total count."""
        owner_id = self._owner_uuid(identity)
        offset = (page - 1) * limit
        try:
            total = await self.db.scalar(
                select(func.count())
                .select_from(DogImage)
                .where(DogImage.user_id == owner_id)
            )
            result = await self.db.execute(
                select(DogImage)
                .where(DogImage.user_id == owner_id)
                .order_by(DogImage.created_at, DogImage.id)
                .limit(limit)
                .offset(offset)
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to fetch images") from e
        return total or 0, list(result.scalars().all())

    async def get_owned(self, identity: CurrentIdentity, image_id: str) -> DogImage:
        record = await self._load(image_id)
        authorize(identity, record)
        return record

    async def open_file(self, identity: CurrentIdentity, image_id: str) -> tuple[DogImage, Path]:
        """Owned record plus the resolved path of its backing file."""
        record = await self.get_owned(identity, image_id)
        if not self.media.exists(record.image_path):
            logger.error(
                "dogs.file_missing", image_id=str(record.id), path=record.image_path
            )
            raise StorageError("Failed to retrieve dog image.")
        return record, self.media.resolve(record.image_path)

    async def replace(
        self,
        identity: CurrentIdentity,
        image_id: str,
        filename: Optional[str],
        content_type: Optional[str],
        data: bytes,
    ) -> DogImage:
        """Swap in a new image file and metadata for an owned record."""
        record = await self._load(image_id, for_update=True)
        authorize(identity, record, "You are not authorized to update this image.")
        validate_upload(content_type, data)
        name = (filename or "upload")[:NAME_MAX_LENGTH]
        old_path = record.image_path

        try:
            new_path = await asyncio.to_thread(self.media.store, data, name)
        except OSError as e:
            await self.db.rollback()
            raise StorageError("Failed to update image.") from e

        record.name = name
        record.image_path = new_path
        record.content_type = content_type
        await self._commit("Failed to update image.", written=new_path)

        await self._discard(old_path)
        logger.info("dogs.replaced", image_id=str(record.id))
        return record

    async def delete(self, identity: CurrentIdentity, image_id: str) -> None:
        record = await self._load(image_id, for_update=True)
        authorize(
            identity, record, "You are not authorized to delete this dog image."
        )
        path = record.image_path

        try:
            await self.db.delete(record)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError("Failed to delete image file") from e
        await self._commit("Failed to delete image file")

        await self._discard(path)
        logger.info("dogs.deleted", image_id=str(image_id))
