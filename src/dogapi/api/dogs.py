"""Dog images API — per-user upload, listing, retrieval, replace, delete.

Learn: This router is mounted with the auth gateway as a router-level
dependency (api/__init__.py), so no handler here runs without a
verified token. Handlers declare get_current_user again only to get
hold of the identity; FastAPI resolves it once per request.

Routes:
- POST /dogs → upload (multipart field "image")
- GET /dogs?page=&limit= → the caller's images, paginated
- GET /dogs/{id} → raw image bytes (owner only)
- PUT /dogs/{id} → replace image (owner only)
- DELETE /dogs/{id} → delete (owner only)
- anything else under /dogs → 404 once past the gateway
"""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from dogapi.auth.dependencies import CurrentIdentity, get_current_user
from dogapi.config import settings
from dogapi.db.engine import get_db
from dogapi.errors import NotFound, ValidationError
from dogapi.services.dog_service import DogService
from dogapi.storage.media import MediaStore, get_media_store

router = APIRouter(prefix="/dogs")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
# Largest OFFSET the database drivers bind (signed 64-bit)
MAX_OFFSET = 2**63 - 1


# ─── Schemas ─────────────────────────────────────────────


class DogImageRead(BaseModel):
    id: uuid.UUID
    name: str
    content_type: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DogImagePage(BaseModel):
    page: int
    limit: int
    total: int
    data: list[DogImageRead]


class MessageResponse(BaseModel):
    message: str
    id: Optional[uuid.UUID] = None


# ─── Helpers ─────────────────────────────────────────────


def get_dog_service(
    db: AsyncSession = Depends(get_db),
    media: MediaStore = Depends(get_media_store),
) -> DogService:
    return DogService(db, media)


def parse_positive_int(
    value: Optional[str], default: int, maximum: Optional[int] = None
) -> int:
    """Lenient query parsing: absent, non-numeric, < 1 or > maximum → default."""
    try:
        parsed = int(value) if value is not None else default
    except ValueError:
        return default
    if parsed < 1 or (maximum is not None and parsed > maximum):
        return default
    return parsed


async def _read_upload(image: Optional[UploadFile]) -> tuple[str, Optional[str], bytes]:
    if image is None:
        raise ValidationError("Please upload an image file.")
    # One byte past the cap is enough for validate_upload to reject it
    data = await image.read(settings.max_upload_bytes + 1)
    return image.filename or "upload", image.content_type, data


# ─── Routes ──────────────────────────────────────────────


@router.post("", response_model=MessageResponse, status_code=201)
async def upload_dog(
    image: Optional[UploadFile] = File(None),
    identity: CurrentIdentity = Depends(get_current_user),
    service: DogService = Depends(get_dog_service),
):
    """Upload a new image owned by the caller."""
    filename, content_type, data = await _read_upload(image)
    record = await service.upload(identity, filename, content_type, data)
    return MessageResponse(message="Dog image uploaded", id=record.id)


@router.get("", response_model=DogImagePage)
async def list_dogs(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    identity: CurrentIdentity = Depends(get_current_user),
    service: DogService = Depends(get_dog_service),
):
    """List the caller's images, oldest first."""
    page_size = min(parse_positive_int(limit, DEFAULT_LIMIT), settings.max_page_size)
    page_num = parse_positive_int(page, DEFAULT_PAGE, MAX_OFFSET // page_size + 1)
    total, rows = await service.list_for_owner(identity, page_num, page_size)
    return DogImagePage(
        page=page_num,
        limit=page_size,
        total=total,
        data=[DogImageRead.model_validate(r) for r in rows],
    )


@router.get("/{image_id}")
async def get_dog(
    image_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    service: DogService = Depends(get_dog_service),
):
    """Stream the image bytes back with their stored content type."""
    record, path = await service.open_file(identity, image_id)
    return FileResponse(path, media_type=record.content_type)


@router.put("/{image_id}", response_model=MessageResponse)
async def update_dog(
    image_id: str,
    image: Optional[UploadFile] = File(None),
    identity: CurrentIdentity = Depends(get_current_user),
    service: DogService = Depends(get_dog_service),
):
    """Replace an owned image's file and metadata."""
    filename, content_type, data = await _read_upload(image)
    await service.replace(identity, image_id, filename, content_type, data)
    return MessageResponse(message="Dog image updated")


@router.delete("/{image_id}", response_model=MessageResponse)
async def delete_dog(
    image_id: str,
    identity: CurrentIdentity = Depends(get_current_user),
    service: DogService = Depends(get_dog_service),
):
    """Delete an owned image and its file."""
    await service.delete(identity, image_id)
    return MessageResponse(message="Dog image deleted")


@router.api_route(
    "/{rest:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def unknown_dog_path(rest: str):
    """Anything else under /dogs (trailing slash, nested paths).

    Registered last so it only catches what the routes above don't. It
    still sits behind the router-level gateway, so callers without a
    token get 401 here rather than a redirect or a bare 404.
    """
    raise NotFound("Not found.")
