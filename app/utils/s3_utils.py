import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)
from flask import current_app
from urllib.parse import urlparse

from app.errors import TransientError, UploadError

TRANSIENT_ERRORS = (ConnectTimeoutError, ReadTimeoutError, EndpointConnectionError)


class ObjectStorage:
    """
    Thin wrapper over the S3-compatible evidence bucket.

    Every call is bounded by ``timeout`` seconds; timeouts and unreachable
    endpoints raise ``TransientError``, any other storage failure raises
    ``UploadError``.
    """

    def __init__(
        self,
        bucket_name,
        base_url=None,
        endpoint_url=None,
        region=None,
        timeout=10,
        client=None,
    ):
        self.bucket_name = bucket_name
        self.base_url = (base_url or "").rstrip("/")
        self.endpoint_url = endpoint_url
        self.region = region
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(cls, config):
        return cls(
            bucket_name=config.get("S3_BUCKET_NAME"),
            base_url=config.get("S3_BASE_URL"),
            endpoint_url=config.get("S3_ENDPOINT_URL"),
            region=config.get("S3_REGION"),
            timeout=config.get("EXTERNAL_CALL_TIMEOUT", 10),
        )

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                region_name=self.region,
                config=BotoConfig(
                    connect_timeout=self.timeout,
                    read_timeout=self.timeout,
                    retries={"max_attempts": 1},
                ),
            )
        return self._client

    def put(self, path, data, content_type=None):
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.client.put_object(
                Bucket=self.bucket_name, Key=path, Body=data, **extra
            )
        except TRANSIENT_ERRORS as e:
            raise TransientError(f"Storage timed out uploading {path}", details=str(e))
        except NoCredentialsError:
            raise UploadError("Storage credentials not found. Check environment variables.")
        except (ClientError, BotoCoreError) as e:
            raise UploadError(f"Failed to upload {path}", details=str(e))

        return self.public_url(path)

    def delete(self, path):
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=path)
        except TRANSIENT_ERRORS as e:
            raise TransientError(f"Storage timed out deleting {path}", details=str(e))
        except NoCredentialsError:
            raise UploadError("Storage credentials not found. Check environment variables.")
        except (ClientError, BotoCoreError) as e:
            raise UploadError(f"Failed to delete {path}", details=str(e))

    def public_url(self, path):
        if self.base_url:
            return f"{self.base_url}/{path}"
        return f"https://{self.bucket_name}.s3.amazonaws.com/{path}"

    def path_from_url(self, image_url):
        """Recover the object key from a public URL produced by ``public_url``."""
        if self.base_url and image_url.startswith(self.base_url + "/"):
            return image_url[len(self.base_url) + 1:]

        key = urlparse(image_url).path.lstrip("/")
        marker = f"{self.bucket_name}/"
        if marker in key:
            return key.split(marker, 1)[1]
        return key


def get_storage():
    return current_app.extensions["object_storage"]
