from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import jwt


def create_jwt_token(data: Dict[str, Any], secret_key: str, algorithm: str = "HS256", expires_seconds: int = 3600) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(seconds=expires_seconds)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_jwt_token(token: Optional[str], secret_key: str, algorithm: str = "HS256") -> Optional[Dict[str, Any]]:
    if not token:
        return None
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except jwt.PyJWTError:
        return None


def create_object_token(bucket: str, path: str, secret_key: str, algorithm: str = "HS256", expires_seconds: int = 3600) -> str:
    return create_jwt_token({"sub": f"{bucket}/{path}", "type": "object"}, secret_key, algorithm, expires_seconds)


def verify_object_token(token: Optional[str], bucket: str, path: str, secret_key: str, algorithm: str = "HS256") -> bool:
    payload = decode_jwt_token(token, secret_key, algorithm)
    if not payload or payload.get("type") != "object":
        return False
    return payload.get("sub") == f"{bucket}/{path}"
