from typing import Optional, Protocol


class ObjectStore(Protocol):
    def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Writes the object and returns its public URL. Never overwrites."""
        ...

    def get(self, bucket: str, path: str) -> Optional[bytes]:
        ...

    def delete(self, bucket: str, path: str) -> bool:
        ...

    def signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        ...
