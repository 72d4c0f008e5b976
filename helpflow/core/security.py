# helpflow/core/security.py
import jwt

from helpflow.core.config import settings


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])


def create_access_token(sub: str, role: str, **claims) -> str:
    """Tokens come from the auth service in production; this helps local runs and tests."""
    return jwt.encode({"sub": sub, "role": role, **claims}, settings.secret_key, algorithm=settings.algorithm)
