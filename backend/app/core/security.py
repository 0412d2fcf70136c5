from datetime import datetime, timezone

from jose import jwt

from app.core.config import settings

ALGO = "HS256"

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def decode_token(token: str) -> dict:
    # Access tokens come from the external auth provider, signed with the shared project secret
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[ALGO],
        audience=settings.JWT_AUDIENCE,
        options=options,
    )
