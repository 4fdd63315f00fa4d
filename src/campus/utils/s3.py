import uuid
from os.path import join
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from campus.errors import internal_error
from campus.settings import settings
from campus.utils.logging import logger


def is_s3_configured() -> bool:
    return bool(settings.s3_bucket_name and settings.aws_region)


def ensure_s3_configured():
    if not is_s3_configured():
        raise internal_error(
            "S3 is not configured. Please check your environment variables."
        )


def get_s3_client():
    session = boto3.Session(region_name=settings.aws_region)
    return session.client("s3")


def generate_s3_uuid() -> str:
    return str(uuid.uuid4())


def get_file_extension(filename: str) -> str:
    """Extension including the dot, or empty string when there is none."""
    last_dot = filename.rfind(".")
    return filename[last_dot:] if last_dot != -1 else ""


def get_media_folder(entity_type: Optional[str] = None, entity_id: Optional[str] = None) -> str:
    if not entity_type:
        return join(settings.s3_folder_name, "general")

    folder = join(settings.s3_folder_name, entity_type.lower())
    return join(folder, entity_id) if entity_id else folder


def get_media_s3_key(original_name: str, entity_type: Optional[str] = None, entity_id: Optional[str] = None) -> str:
    file_name = f"{generate_s3_uuid()}{get_file_extension(original_name)}"
    return join(get_media_folder(entity_type, entity_id), file_name)


def get_public_url(key: str) -> str:
    ensure_s3_configured()
    return f"https://{settings.s3_bucket_name}.s3.{settings.aws_region}.amazonaws.com/{key}"


def upload_bytes_to_s3(
    data: bytes,
    key: str,
    content_type: str,
    metadata: Optional[Dict[str, str]] = None,
) -> str:
    ensure_s3_configured()

    try:
        logger.info(f"Uploading file to S3: {key}")
        get_s3_client().put_object(
            Bucket=settings.s3_bucket_name,
            Key=key,
            Body=data,
            ContentType=content_type,
            Metadata=metadata or {},
            ServerSideEncryption="AES256",
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to upload file to S3: {key} - {e}")
        raise internal_error("Failed to upload file to S3")

    return key


def delete_file_from_s3(key: str):
    ensure_s3_configured()

    try:
        logger.info(f"Deleting file from S3: {key}")
        get_s3_client().delete_object(Bucket=settings.s3_bucket_name, Key=key)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to delete file from S3: {key} - {e}")
        raise internal_error("Failed to delete file from S3")


def generate_presigned_url(key: str, expires_in: int) -> str:
    ensure_s3_configured()

    try:
        return get_s3_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.s3_bucket_name, "Key": key},
            ExpiresIn=expires_in,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to generate signed URL: {key} - {e}")
        raise internal_error("Failed to generate signed URL")
