from uuid import UUID

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session
import sqlalchemy as sa

from app.core.security import decode_token
from app.db.session import get_db
from app.models.profile import Profile

bearer = HTTPBearer()


def parse_uuid(value: str, field: str) -> UUID:
    try:
        return UUID(value)
    except (TypeError, ValueError):
        raise HTTPException(400, f"{field} must be a valid UUID")


def get_token_subject(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> UUID:
    """Auth provider user id carried in the access token's ``sub`` claim."""
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token subject")
    try:
        user_id = UUID(str(sub))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token subject")
    return user_id


def get_current_profile(
    user_id: UUID = Depends(get_token_subject),
    db: Session = Depends(get_db),
) -> Profile:
    profile = db.execute(sa.select(Profile).where(Profile.user_id == user_id)).scalar_one_or_none()
    if not profile:
        raise HTTPException(status_code=403, detail="Profile not found")
    return profile
