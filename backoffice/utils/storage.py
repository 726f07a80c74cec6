# backoffice/utils/storage.py
import logging
import os
import posixpath

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from backoffice.config import Settings

log = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an uploaded file cannot be written, read or removed"""
    pass


def _clean_key(key: str) -> str:
    key = posixpath.normpath(key.lstrip("/"))
    if key.startswith("..") or key in (".", ""):
        raise StorageError(f"Invalid storage key: {key!r}")
    return key


class LocalFileStorage:
    """Uploads on local disk under `root`."""

    def __init__(self, root: str):
        self.root = root
        os.makedirs(self.root, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.root, *_clean_key(key).split("/"))

    async def put(self, key: str, body: bytes, content_type: str) -> str:
        path = self._path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as buffer:
                buffer.write(body)
        except OSError as exc:
            log.error("Local write failed for %s: %s", key, exc)
            raise StorageError(f"Could not store file: {exc.strerror or exc}") from exc
        return _clean_key(key)

    async def get(self, key: str) -> bytes:
        path = self._path(key)
        if not os.path.exists(path):
            raise StorageError("File not found on the server.")
        try:
            with open(path, "rb") as fh:
                return fh.read()
        except OSError as exc:
            raise StorageError(f"Could not read file: {exc.strerror or exc}") from exc

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as exc:
            raise StorageError(f"Could not delete file: {exc.strerror or exc}") from exc


class SpacesStorage:
    """DigitalOcean Spaces (S3 API) bucket; objects stay private."""

    def __init__(self, settings: Settings):
        if not all([settings.spaces_key, settings.spaces_secret, settings.spaces_bucket, settings.spaces_endpoint]):
            raise StorageError("Spaces env vars not fully configured")
        self._settings = settings
        self._session = aioboto3.Session()

    def _key(self, key: str) -> str:
        return f"{self._settings.spaces_prefix}/{_clean_key(key)}"

    def _client(self):
        s = self._settings
        return self._session.client(
            "s3",
            region_name=s.spaces_region,
            endpoint_url=s.spaces_endpoint,
            aws_access_key_id=s.spaces_key,
            aws_secret_access_key=s.spaces_secret,
        )

    async def put(self, key: str, body: bytes, content_type: str) -> str:
        try:
            async with self._client() as s3:
                await s3.put_object(
                    Bucket=self._settings.spaces_bucket,
                    Key=self._key(key),
                    Body=body,
                    ContentType=content_type or "application/octet-stream",
                )
        except (BotoCoreError, ClientError) as exc:
            log.error("Spaces upload failed for %s: %s", key, exc)
            raise StorageError(f"Could not store file: {exc}") from exc
        return _clean_key(key)

    async def get(self, key: str) -> bytes:
        try:
            async with self._client() as s3:
                obj = await s3.get_object(Bucket=self._settings.spaces_bucket, Key=self._key(key))
                async with obj["Body"] as stream:
                    return await stream.read()
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise StorageError("File not found on the server.") from exc
            raise StorageError(f"Could not read file: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Could not read file: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            async with self._client() as s3:
                await s3.delete_object(Bucket=self._settings.spaces_bucket, Key=self._key(key))
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Could not delete file: {exc}") from exc


def build_storage(settings: Settings):
    if settings.storage_backend == "spaces":
        return SpacesStorage(settings)
    return LocalFileStorage(settings.upload_dir)
