"""S3 service for course upload storage and retrieval."""

import boto3
from botocore.exceptions import ClientError

from calcify.config import get_settings

settings = get_settings()


class StorageError(Exception):
    """Raised when an object store operation fails."""


class S3Service:
    """Service for storing uploaded course materials in S3."""

    def __init__(self):
        """Initialize S3 client with credentials from settings."""
        client_kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
            "region_name": settings.aws_s3_region,
        }
        # Support MinIO / LocalStack by pointing to a custom endpoint
        if settings.aws_s3_endpoint_url:
            client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url

        self.s3_client = boto3.client("s3", **client_kwargs)
        self.bucket = settings.aws_s3_bucket

    async def upload_file(self, file_key: str, file_data: bytes, content_type: str | None) -> None:
        """
        Upload a file server-side.

        Args:
            file_key: S3 object key (path) for the file
            file_data: Raw bytes of the file
            content_type: MIME type, stored as the object's Content-Type

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=file_key,
                Body=file_data,
                ContentType=content_type or "application/octet-stream",
            )
        except ClientError as e:
            raise StorageError(f"Failed to upload file to S3: {str(e)}") from e

    async def download_file(self, file_key: str) -> bytes:
        """
        Download a stored file.

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=file_key)
            return response["Body"].read()
        except ClientError as e:
            raise StorageError(f"Failed to download file from S3: {str(e)}") from e

    async def delete_file(self, file_key: str) -> None:
        """
        Delete a stored file.

        Raises:
            StorageError: If S3 operation fails
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=file_key)
        except ClientError as e:
            raise StorageError(f"Failed to delete file from S3: {str(e)}") from e


# Singleton instance
s3_service = S3Service()
