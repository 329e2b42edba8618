import logging
import os
from typing import Optional

from ...application.ports.object_store import ObjectStore
from ...exceptions import StorageError
from ...security import create_object_token

logger = logging.getLogger(__name__)


class LocalObjectStore(ObjectStore):
    """Bucketed object storage on the local filesystem: ``{upload_dir}/{bucket}/{path}``."""

    def __init__(self, upload_dir: str, base_url: str, secret_key: str, algorithm: str = "HS256") -> None:
        self.upload_dir = os.path.abspath(upload_dir)
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.algorithm = algorithm

    def _resolve(self, bucket: str, path: str) -> str:
        full = os.path.abspath(os.path.join(self.upload_dir, bucket, path))
        if not full.startswith(self.upload_dir + os.sep):
            raise StorageError(f"Storage path escapes the upload directory: {bucket}/{path}")
        return full

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/{bucket}/{path}"

    def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        dest = self._resolve(bucket, path)
        try:
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            with open(dest, "xb") as f:
                f.write(data)
        except FileExistsError:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        except OSError as e:
            logger.error(f"Error writing object {bucket}/{path}: {e}")
            raise StorageError(f"Storage operation failed: {e}")
        logger.info(f"Stored {len(data)} bytes ({content_type}) at {bucket}/{path}")
        return self.public_url(bucket, path)

    def get(self, bucket: str, path: str) -> Optional[bytes]:
        src = self._resolve(bucket, path)
        if not os.path.isfile(src):
            return None
        with open(src, "rb") as f:
            return f.read()

    def delete(self, bucket: str, path: str) -> bool:
        target = self._resolve(bucket, path)
        try:
            os.remove(target)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Error deleting object {bucket}/{path}: {e}")
            raise StorageError(f"Storage operation failed: {e}")

    def signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        token = create_object_token(bucket, path, self.secret_key, self.algorithm, expires_in)
        return f"{self.public_url(bucket, path)}?token={token}"
