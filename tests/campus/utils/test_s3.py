import uuid
from unittest.mock import patch, MagicMock

import pytest
from botocore.exceptions import ClientError
from fastapi import HTTPException

from campus.utils.s3 import (
    delete_file_from_s3,
    ensure_s3_configured,
    generate_presigned_url,
    generate_s3_uuid,
    get_file_extension,
    get_media_folder,
    get_media_s3_key,
    get_public_url,
    upload_bytes_to_s3,
)


@pytest.fixture
def configured_settings():
    with patch("campus.utils.s3.settings") as mock_settings:
        mock_settings.s3_bucket_name = "test-bucket"
        mock_settings.aws_region = "ap-south-1"
        mock_settings.s3_folder_name = "media"
        yield mock_settings


def _client_error(code: str = "AccessDenied") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "nope"}}, "PutObject")


class TestS3Configuration:
    def test_missing_bucket_is_server_error(self):
        with patch("campus.utils.s3.settings") as mock_settings:
            mock_settings.s3_bucket_name = None
            mock_settings.aws_region = "ap-south-1"

            with pytest.raises(HTTPException) as exc_info:
                ensure_s3_configured()

        assert exc_info.value.status_code == 500

    @patch("campus.utils.s3.boto3.Session")
    def test_upload_not_attempted_when_unconfigured(self, mock_session):
        with patch("campus.utils.s3.settings") as mock_settings:
            mock_settings.s3_bucket_name = None

            with pytest.raises(HTTPException):
                upload_bytes_to_s3(b"data", "media/a.png", "image/png")

        mock_session.assert_not_called()


class TestS3Keys:
    @patch("campus.utils.s3.uuid.uuid4")
    def test_generate_s3_uuid(self, mock_uuid4):
        mock_uuid4.return_value = uuid.UUID("12345678-1234-5678-1234-567812345678")

        assert generate_s3_uuid() == "12345678-1234-5678-1234-567812345678"

    @pytest.mark.parametrize(
        "filename,expected",
        [("photo.png", ".png"), ("archive.tar.gz", ".gz"), ("README", "")],
    )
    def test_get_file_extension(self, filename, expected):
        assert get_file_extension(filename) == expected

    def test_folder_without_entity(self, configured_settings):
        assert get_media_folder() == "media/general"

    def test_folder_with_entity(self, configured_settings):
        assert get_media_folder("COURSE") == "media/course"
        assert get_media_folder("COURSE", "42") == "media/course/42"

    @patch("campus.utils.s3.generate_s3_uuid", return_value="abc")
    def test_media_key(self, mock_uuid, configured_settings):
        assert get_media_s3_key("photo.PNG", "LESSON", "7") == "media/lesson/7/abc.PNG"

    def test_public_url(self, configured_settings):
        assert (
            get_public_url("media/general/abc.png")
            == "https://test-bucket.s3.ap-south-1.amazonaws.com/media/general/abc.png"
        )


class TestS3Operations:
    @patch("campus.utils.s3.boto3.Session")
    def test_upload_uses_server_side_encryption(self, mock_session, configured_settings):
        mock_s3_client = MagicMock()
        mock_session.return_value.client.return_value = mock_s3_client

        result = upload_bytes_to_s3(
            b"data", "media/a.png", "image/png", {"uploaded-by": "1"}
        )

        assert result == "media/a.png"
        mock_session.return_value.client.assert_called_once_with("s3")
        kwargs = mock_s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "test-bucket"
        assert kwargs["ContentType"] == "image/png"
        assert kwargs["ServerSideEncryption"] == "AES256"
        assert kwargs["Metadata"] == {"uploaded-by": "1"}

    @patch("campus.utils.s3.boto3.Session")
    def test_upload_failure_is_server_error(self, mock_session, configured_settings):
        mock_session.return_value.client.return_value.put_object.side_effect = _client_error()

        with pytest.raises(HTTPException) as exc_info:
            upload_bytes_to_s3(b"data", "media/a.png", "image/png")

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Failed to upload file to S3"

    @patch("campus.utils.s3.boto3.Session")
    def test_delete(self, mock_session, configured_settings):
        mock_s3_client = MagicMock()
        mock_session.return_value.client.return_value = mock_s3_client

        delete_file_from_s3("media/a.png")

        mock_s3_client.delete_object.assert_called_once_with(
            Bucket="test-bucket", Key="media/a.png"
        )

    @patch("campus.utils.s3.boto3.Session")
    def test_delete_failure(self, mock_session, configured_settings):
        mock_session.return_value.client.return_value.delete_object.side_effect = _client_error()

        with pytest.raises(HTTPException) as exc_info:
            delete_file_from_s3("media/a.png")
        assert exc_info.value.status_code == 500

    @patch("campus.utils.s3.boto3.Session")
    def test_presigned_url(self, mock_session, configured_settings):
        mock_s3_client = MagicMock()
        mock_session.return_value.client.return_value = mock_s3_client
        mock_s3_client.generate_presigned_url.return_value = "https://signed"

        assert generate_presigned_url("media/a.png", 600) == "https://signed"
        mock_s3_client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "test-bucket", "Key": "media/a.png"},
            ExpiresIn=600,
        )
