"""JWT access token creation and decoding.

Tokens are issued by the identity service; SchoolHub only needs to read
them (and mint them in tests and the management CLI).

Token claims:
  - sub:        user ID
  - user_type:  student | teacher | admin | super_admin
  - tenant_id:  school group the user belongs to (if any)
  - type:       "access"
  - exp:        expiry timestamp
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from schoolhub.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: str,
    user_type: str,
    tenant_id: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "user_type": user_type,
        "type": "access",
        "exp": expire,
    }
    if tenant_id:
        payload["tenant_id"] = tenant_id
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
