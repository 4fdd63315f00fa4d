from typing import List, Optional, Tuple
from campus.config import media_table_name
from campus.models import EntityType, Media, MediaQuery, MediaStatus, MediaType
from campus.utils.db import execute_db_operation, utc_now_str

MEDIA_COLUMNS = [
    "id",
    "file_name",
    "original_name",
    "mime_type",
    "file_size",
    "type",
    "status",
    "s3_key",
    "s3_bucket",
    "s3_region",
    "s3_url",
    "entity_type",
    "entity_id",
    "description",
    "alt",
    "uploaded_by_id",
    "uploaded_by_ip",
    "is_public",
    "created_at",
    "deleted_at",
]

_select_media = f"SELECT {', '.join(MEDIA_COLUMNS)} FROM {media_table_name}"


def convert_media_db_to_model(row) -> Media:
    return Media(**dict(zip(MEDIA_COLUMNS, row)))


async def create_media(
    file_name: str,
    original_name: str,
    mime_type: str,
    file_size: int,
    type: MediaType,
    s3_key: str,
    s3_bucket: str,
    s3_region: str,
    s3_url: str,
    uploaded_by_id: int,
    status: MediaStatus = MediaStatus.READY,
    entity_type: Optional[EntityType] = None,
    entity_id: Optional[str] = None,
    description: Optional[str] = None,
    alt: Optional[str] = None,
    uploaded_by_ip: Optional[str] = None,
    is_public: bool = False,
) -> Media:
    media_id = await execute_db_operation(
        f"""INSERT INTO {media_table_name} (
                file_name, original_name, mime_type, file_size, type, status,
                s3_key, s3_bucket, s3_region, s3_url, entity_type, entity_id,
                description, alt, uploaded_by_id, uploaded_by_ip, is_public
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            file_name,
            original_name,
            mime_type,
            file_size,
            MediaType(type).value,
            MediaStatus(status).value,
            s3_key,
            s3_bucket,
            s3_region,
            s3_url,
            EntityType(entity_type).value if entity_type else None,
            entity_id,
            description,
            alt,
            uploaded_by_id,
            uploaded_by_ip,
            is_public,
        ),
        get_last_row_id=True,
    )
    return await get_media_by_id(media_id)


async def get_media_by_id(media_id: int) -> Optional[Media]:
    """Soft-deleted media is treated as missing."""
    row = await execute_db_operation(
        f"{_select_media} WHERE id = ? AND deleted_at IS NULL",
        (media_id,),
        fetch_one=True,
    )
    return convert_media_db_to_model(row) if row else None


def _build_media_filters(query: MediaQuery, user_id: Optional[int]) -> Tuple[str, list]:
    clauses = ["deleted_at IS NULL"]
    params = []

    for column in ("type", "status", "entity_type", "entity_id"):
        value = getattr(query, column)
        if value is not None:
            clauses.append(f"{column} = ?")
            params.append(value.value if hasattr(value, "value") else value)

    # Anonymous callers only see public media; signed-in callers also see their own
    if user_id is None:
        clauses.append("is_public = 1")
    else:
        clauses.append("(is_public = 1 OR uploaded_by_id = ?)")
        params.append(user_id)

    return " AND ".join(clauses), params


async def list_media(query: MediaQuery, user_id: Optional[int] = None) -> Tuple[List[Media], int]:
    where, params = _build_media_filters(query, user_id)

    # sort_by and sort_order are restricted to fixed literals by MediaQuery
    rows = await execute_db_operation(
        f"""{_select_media} WHERE {where}
            ORDER BY {query.sort_by} {query.sort_order}, id {query.sort_order}
            LIMIT ? OFFSET ?""",
        (*params, query.limit, (query.page - 1) * query.limit),
        fetch_all=True,
    )

    total_row = await execute_db_operation(
        f"SELECT COUNT(*) FROM {media_table_name} WHERE {where}",
        tuple(params),
        fetch_one=True,
    )

    return [convert_media_db_to_model(row) for row in rows], total_row[0]


async def soft_delete_media(media_id: int) -> bool:
    rowcount = await execute_db_operation(
        f"""UPDATE {media_table_name} SET status = ?, deleted_at = ?
            WHERE id = ? AND deleted_at IS NULL""",
        (MediaStatus.DELETED.value, utc_now_str(), media_id),
    )
    return rowcount > 0
