import asyncio
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status

from campus.auth.dependencies import get_current_user, get_optional_user
from campus.auth.models import AuthenticatedUser
from campus.config import ALLOWED_MIME_TYPES, MAX_FILE_SIZES
from campus.db.media import (
    create_media,
    get_media_by_id,
    list_media,
    soft_delete_media,
)
from campus.errors import bad_request, forbidden, not_found
from campus.models import (
    EntityType,
    Media,
    MediaListResponse,
    MediaQuery,
    MediaStatus,
    MediaType,
    SignedUrlResponse,
)
from campus.settings import settings
from campus.utils.logging import logger
from campus.utils.s3 import (
    delete_file_from_s3,
    ensure_s3_configured,
    generate_presigned_url,
    get_media_s3_key,
    get_public_url,
    upload_bytes_to_s3,
)

router = APIRouter()


def get_media_type(mime_type: str) -> MediaType:
    for media_type in (MediaType.IMAGE, MediaType.VIDEO, MediaType.DOCUMENT, MediaType.AUDIO):
        if mime_type in ALLOWED_MIME_TYPES[media_type.value]:
            return media_type
    return MediaType.OTHER


def validate_upload(mime_type: str, size: int) -> MediaType:
    """Classify the upload and enforce the per-type allow-list and size cap."""
    media_type = get_media_type(mime_type)

    allowed = ALLOWED_MIME_TYPES[media_type.value]
    if mime_type not in allowed:
        raise bad_request(
            f"File type not allowed. Allowed types for {media_type.value}: {', '.join(allowed)}"
        )

    max_size = MAX_FILE_SIZES[media_type.value]
    if size > max_size:
        raise bad_request(
            f"File size exceeds maximum allowed size of {max_size // (1024 * 1024)}MB "
            f"for {media_type.value}"
        )

    return media_type


async def get_accessible_media(media_id: int, user_id: Optional[int]) -> Media:
    media = await get_media_by_id(media_id)
    if not media:
        raise not_found("Media not found")

    if not media.is_public and media.uploaded_by_id != user_id:
        raise forbidden("Access denied to this media")

    return media


@router.post("/upload", status_code=status.HTTP_201_CREATED, response_model=Media)
async def upload_media(
    request: Request,
    file: UploadFile = File(...),
    entity_type: Optional[EntityType] = Form(None),
    entity_id: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    alt: Optional[str] = Form(None),
    is_public: bool = Form(False),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> Media:
    if not file.filename:
        raise bad_request("No file provided")

    mime_type = file.content_type or "application/octet-stream"
    data = await file.read()
    media_type = validate_upload(mime_type, len(data))

    ensure_s3_configured()

    entity_type_value = entity_type.value if entity_type else None
    key = get_media_s3_key(file.filename, entity_type_value, entity_id)

    await asyncio.to_thread(
        upload_bytes_to_s3,
        data,
        key,
        mime_type,
        {
            "uploaded-by": str(current_user.id),
            "entity-type": entity_type_value or EntityType.OTHER.value,
            "entity-id": entity_id or "",
        },
    )

    media = await create_media(
        file_name=key.rsplit("/", 1)[-1],
        original_name=file.filename,
        mime_type=mime_type,
        file_size=len(data),
        type=media_type,
        status=MediaStatus.READY,
        s3_key=key,
        s3_bucket=settings.s3_bucket_name,
        s3_region=settings.aws_region,
        s3_url=get_public_url(key),
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        alt=alt,
        uploaded_by_id=current_user.id,
        uploaded_by_ip=request.client.host if request.client else None,
        is_public=is_public,
    )

    logger.info(f"Media uploaded successfully: {media.id} by user {current_user.id}")

    return media


@router.get("", response_model=MediaListResponse)
async def get_media_list(
    query: Annotated[MediaQuery, Query()],
    current_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> MediaListResponse:
    data, total = await list_media(query, current_user.id if current_user else None)
    return MediaListResponse(data=data, total=total, page=query.page, limit=query.limit)


@router.get("/{media_id}", response_model=Media)
async def get_media(
    media_id: int,
    current_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> Media:
    return await get_accessible_media(media_id, current_user.id if current_user else None)


@router.get("/{media_id}/signed-url", response_model=SignedUrlResponse)
async def get_signed_url(
    media_id: int,
    expires_in: Optional[int] = Query(None, ge=1, le=7 * 24 * 60 * 60),
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> SignedUrlResponse:
    media = await get_accessible_media(media_id, current_user.id)
    expires_in = expires_in or settings.signed_url_expire_seconds

    if media.is_public:
        return SignedUrlResponse(url=media.s3_url, expires_in=expires_in)

    url = await asyncio.to_thread(generate_presigned_url, media.s3_key, expires_in)
    return SignedUrlResponse(url=url, expires_in=expires_in)


@router.delete("/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media(
    media_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
):
    media = await get_media_by_id(media_id)
    if not media:
        raise not_found("Media not found")

    if media.uploaded_by_id != current_user.id:
        raise forbidden("You can only delete your own media")

    await asyncio.to_thread(delete_file_from_s3, media.s3_key)
    await soft_delete_media(media_id)

    logger.info(f"Media deleted successfully: {media_id} by user {current_user.id}")
