"""Security utilities for JWT handling.

Tokens are issued by the identity provider; this service only verifies them.
``create_access_token`` exists for internal tooling and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from pydantic import BaseModel, ValidationError
import uuid

from app.core.config import settings
from app.core.logging import get_logger


logger = get_logger(__name__)


class TokenPayload(BaseModel):
    """JWT token payload."""
    sub: str  # user_id
    email: Optional[str] = None
    role: Optional[str] = None
    tenant_id: Optional[str] = None
    type: Optional[str] = "access"
    exp: datetime
    iat: datetime
    app_metadata: dict = {}

    class Config:
        extra = "allow"


def create_access_token(
    user_id: str,
    tenant_id: str,
    role: str,
    email: Optional[str] = None,
) -> str:
    """Create a new access token."""
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": user_id,
        "tenant_id": tenant_id,
        "role": role,
        "email": email,
        "type": "access",
        "exp": expire,
        "iat": now,
        "jti": str(uuid.uuid4()),
    }

    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[TokenPayload]:
    """Decode and validate a JWT token; None when invalid or expired."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": False},
        )

        # Custom claims may live under app_metadata
        app_meta = payload.get("app_metadata", {})
        payload.setdefault("role", app_meta.get("role"))
        payload.setdefault("tenant_id", app_meta.get("tenant_id"))

        return TokenPayload(**payload)
    except (JWTError, ValidationError) as e:
        logger.debug(f"Token decode error: {e}")
        return None
