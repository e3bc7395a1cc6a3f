"""
Result asset storage

Generated images and videos are written to an asset store and jobs keep the
returned URI. Local directory storage is the default; Google Cloud Storage is
used when a session bucket is configured.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse
from urllib.request import url2pathname

from ..core.config import DEPLOYMENT_ENV, OUTPUT_DIR, SESSION_BUCKET_NAME

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
}


def extension_for(mime_type: str) -> str:
    return EXTENSIONS.get(mime_type) or mimetypes.guess_extension(mime_type) or ".bin"


class AssetStore(Protocol):

    def save(self, session_id: str, name: str, data: bytes, mime_type: str) -> str:
        ...

    def load(self, uri: str) -> bytes:
        ...


class LocalAssetStore:
    """Stores assets under ``<root>/<session_id>/`` and returns file:// URIs"""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or OUTPUT_DIR)

    def save(self, session_id: str, name: str, data: bytes, mime_type: str) -> str:
        folder = self.root / session_id
        folder.mkdir(parents=True, exist_ok=True)
        path = (folder / f"{name}{extension_for(mime_type)}").resolve()
        path.write_bytes(data)
        logger.info(f"[AssetStore] Saved {len(data)} bytes to {path}")
        return path.as_uri()

    def load(self, uri: str) -> bytes:
        parsed = urlparse(uri)
        if parsed.scheme != "file":
            raise ValueError(f"Not a local asset URI: {uri}")
        return Path(url2pathname(parsed.path)).read_bytes()


class GCSAssetStore:
    """Stores assets in a GCS bucket and returns gs:// paths"""

    def __init__(self, bucket_name: Optional[str] = None, credentials=None):
        self.bucket_name = bucket_name or SESSION_BUCKET_NAME
        self.credentials = credentials
        self._bucket = None

    @property
    def bucket(self):
        """Get or create bucket instance"""
        if self._bucket is None:
            from google.cloud import storage
            client = storage.Client(credentials=self.credentials)
            self._bucket = client.bucket(self.bucket_name)
        return self._bucket

    def blob_name(self, session_id: str, name: str, mime_type: str) -> str:
        environment = DEPLOYMENT_ENV.lower() if DEPLOYMENT_ENV else 'local'
        return f"{environment}/sessions/{session_id}/renders/{name}{extension_for(mime_type)}"

    def save(self, session_id: str, name: str, data: bytes, mime_type: str) -> str:
        blob_name = self.blob_name(session_id, name, mime_type)
        blob = self.bucket.blob(blob_name)
        blob.upload_from_string(data, content_type=mime_type)
        logger.info(f"[AssetStore] Uploaded {len(data)} bytes to gs://{self.bucket_name}/{blob_name}")
        return f"gs://{self.bucket_name}/{blob_name}"

    def load(self, uri: str) -> bytes:
        prefix = f"gs://{self.bucket_name}/"
        if not uri.startswith(prefix):
            raise ValueError(f"Not an asset of bucket {self.bucket_name}: {uri}")
        return self.bucket.blob(uri[len(prefix):]).download_as_bytes()


def default_asset_store() -> AssetStore:
    if SESSION_BUCKET_NAME:
        from ..core.config import load_credentials
        return GCSAssetStore(SESSION_BUCKET_NAME, credentials=load_credentials())
    return LocalAssetStore()
