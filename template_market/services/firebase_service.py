import logging
import os
import time
import uuid
from urllib.parse import unquote, urlparse

import firebase_admin
from firebase_admin import credentials, storage

from template_market.config import Settings, settings

logger = logging.getLogger(__name__)


class StorageNotConfigured(RuntimeError):
    pass


class FirebaseStorage:
    """Uploads template assets and profile images to a Firebase Storage bucket."""

    def __init__(self, credentials_file: str | None, bucket_name: str | None):
        self.credentials_file = credentials_file
        self.bucket_name = bucket_name
        self._bucket = None

    @classmethod
    def from_settings(cls, config: Settings) -> "FirebaseStorage":
        return cls(config.FIREBASE_CREDENTIALS_FILE, config.FIREBASE_STORAGE_BUCKET)

    def _get_bucket(self):
        if self._bucket is not None:
            return self._bucket
        if not self.bucket_name or not self.credentials_file or not os.path.exists(self.credentials_file):
            raise StorageNotConfigured(
                "Firebase storage is not configured. Set FIREBASE_CREDENTIALS_FILE and FIREBASE_STORAGE_BUCKET env."
            )
        try:
            app = firebase_admin.get_app()
        except ValueError:
            cred = credentials.Certificate(self.credentials_file)
            app = firebase_admin.initialize_app(cred, {"storageBucket": self.bucket_name})
            logger.info("Firebase app initialized using %s", self.credentials_file)
        self._bucket = storage.bucket(self.bucket_name, app=app)
        return self._bucket

    def upload(self, data: bytes, filename: str, folder: str, content_type: str | None = None) -> str:
        bucket = self._get_bucket()
        safe_name = os.path.basename(filename or "file")
        path = f"{folder}/{int(time.time() * 1000)}-{uuid.uuid4().hex}-{safe_name}"
        blob = bucket.blob(path)
        blob.upload_from_string(data, content_type=content_type)
        blob.make_public()
        logger.info("Uploaded %s bytes to %s", len(data), path)
        return blob.public_url

    def delete(self, url: str) -> None:
        if not url:
            raise ValueError("No file URL provided.")
        bucket = self._get_bucket()
        path = self.object_path(url)
        bucket.blob(path).delete()
        logger.info("Deleted storage object %s", path)

    def object_path(self, url: str) -> str:
        """Resolve a public or download URL back to the object path in the bucket."""
        parsed = urlparse(url)
        path = unquote(parsed.path)
        # Firebase download URLs: /v0/b/<bucket>/o/<encoded path>
        if "/o/" in path:
            return path.split("/o/", 1)[1]
        # GCS public URLs: /<bucket>/<path>
        prefix = f"/{self.bucket_name}/"
        if path.startswith(prefix):
            return path[len(prefix):]
        return path.lstrip("/")


firebase_storage = FirebaseStorage.from_settings(settings)


def get_storage() -> FirebaseStorage:
    return firebase_storage
