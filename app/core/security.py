from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import os

from jose import jwt, JWTError

from app.core.config import IS_PRODUCTION

logger = logging.getLogger(__name__)

# ======================
# JWT
# ======================
# Access tokens are issued by the external auth provider and signed with the
# project's shared HS256 secret. This service only validates them and reads
# the subject (the user id).

SECRET_KEY = os.getenv(
    "SECRET_KEY",
    os.getenv("JWT_SECRET_KEY", os.getenv("SUPABASE_JWT_SECRET", "")),
)
if not SECRET_KEY:
    # In production, require a secret; for local dev, use a default (UNSAFE for prod)
    if IS_PRODUCTION:
        raise RuntimeError("SECRET_KEY, JWT_SECRET_KEY or SUPABASE_JWT_SECRET env var is required in production")
    SECRET_KEY = "dev-secret-key-CHANGE-IN-PRODUCTION-12345678901234567890"
    print("[AUTH] WARNING: Using default SECRET_KEY for development. DO NOT USE IN PRODUCTION!", flush=True)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60
# The auth provider sets aud="authenticated" on user tokens.
TOKEN_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None, **claims) -> str:
    """Mint a token in the provider's format (local development and tests)."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": user_id, "aud": TOKEN_AUDIENCE, "exp": expire, **claims}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], audience=TOKEN_AUDIENCE)
    except jwt.ExpiredSignatureError:
        logger.info("[AUTH] Token expired")
        return None
    except JWTError as e:
        logger.info("[AUTH] JWT decode error: %s", type(e).__name__)
        return None


def bearer_token_from_header(auth_header: Optional[str]) -> Optional[str]:
    if not auth_header or not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None
