from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import sqlalchemy as sa

from app.api.deps import get_current_profile, get_token_subject
from app.db.session import get_db
from app.models.player import Player
from app.models.profile import Profile
from app.models.team import Team
from app.schemas.profile import ProfileCreateIn, ProfileOut, ProfileUpdateIn
from app.services.audit import audit

router = APIRouter()

def _clean(value: str | None) -> str | None:
    value = value.strip() if value else None
    return value or None

def profile_out(db: Session, p: Profile) -> ProfileOut:
    has_player = db.execute(sa.select(Player.id).where(Player.profile_id == p.id)).first() is not None
    team_id = db.execute(
        sa.select(Team.id).where(Team.captain_id == p.id).order_by(Team.created_at, Team.id)
    ).scalars().first()
    return ProfileOut(
        id=str(p.id),
        user_id=str(p.user_id),
        full_name=p.full_name,
        email=p.email,
        phone=p.phone,
        avatar_url=p.avatar_url,
        # onboarding is done once name and email are known
        is_complete=bool(p.full_name and p.email),
        has_player=has_player,
        captained_team_id=str(team_id) if team_id else None,
        created_at=p.created_at,
    )

@router.post("", response_model=ProfileOut)
def create_profile(payload: ProfileCreateIn, user_id: UUID = Depends(get_token_subject), db: Session = Depends(get_db)):
    exists = db.execute(sa.select(Profile.id).where(Profile.user_id == user_id)).first()
    if exists:
        raise HTTPException(409, "Profile already exists")

    p = Profile(
        user_id=user_id,
        full_name=_clean(payload.full_name),
        email=_clean(payload.email),
        phone=_clean(payload.phone),
        avatar_url=_clean(payload.avatar_url),
    )
    db.add(p)
    db.flush()
    audit(db, p.id, "profile", str(p.id), "created", {})

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "Profile already exists")
    db.refresh(p)
    return profile_out(db, p)

@router.get("/me", response_model=ProfileOut)
def my_profile(current=Depends(get_current_profile), db: Session = Depends(get_db)):
    return profile_out(db, current)

@router.patch("/me", response_model=ProfileOut)
def update_my_profile(payload: ProfileUpdateIn, current=Depends(get_current_profile), db: Session = Depends(get_db)):
    changed = {}
    for field in ("full_name", "email", "phone", "avatar_url"):
        value = getattr(payload, field)
        if value is not None:
            changed[field] = _clean(value)
            setattr(current, field, changed[field])

    if changed:
        current.updated_at = sa.func.now()
        audit(db, current.id, "profile", str(current.id), "updated", changed)
        db.commit()
        db.refresh(current)
    return profile_out(db, current)
