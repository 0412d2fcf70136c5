from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import sqlalchemy as sa

from app.api.deps import get_current_profile, parse_uuid
from app.db.session import get_db
from app.models.player import Player
from app.models.profile import Profile
from app.schemas.team import PlayerCreateIn, PlayerOut, PlayerUpdateIn
from app.services.audit import audit

router = APIRouter()

def player_out(p: Player, profile: Profile | None = None) -> PlayerOut:
    return PlayerOut(
        id=str(p.id),
        profile_id=str(p.profile_id),
        full_name=profile.full_name if profile else None,
        avatar_url=profile.avatar_url if profile else None,
        position=p.position,
        skill_level=p.skill_level,
        city=p.city,
        matches_played=p.matches_played,
        goals=p.goals,
        assists=p.assists,
        mvps=p.mvps,
        rating=float(p.rating),
    )

def _get_player_or_404(db: Session, player_id: str) -> Player:
    p = db.get(Player, parse_uuid(player_id, "player_id"))
    if not p:
        raise HTTPException(404, "Player not found")
    return p

@router.get("", response_model=list[PlayerOut])
def list_players(
    position: str | None = Query(default=None, max_length=30),
    city: str | None = Query(default=None, max_length=80),
    min_skill: int | None = Query(default=None, ge=1, le=5),
    max_skill: int | None = Query(default=None, ge=1, le=5),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    stmt = sa.select(Player, Profile).join(Profile, Profile.id == Player.profile_id)
    if position is not None:
        stmt = stmt.where(Player.position == position)
    if city is not None:
        stmt = stmt.where(Player.city == city)
    if min_skill is not None:
        stmt = stmt.where(Player.skill_level >= min_skill)
    if max_skill is not None:
        stmt = stmt.where(Player.skill_level <= max_skill)
    stmt = stmt.order_by(Player.rating.desc(), Player.id).limit(limit).offset(offset)
    return [player_out(p, prof) for p, prof in db.execute(stmt).all()]

@router.post("", response_model=PlayerOut)
def create_player(payload: PlayerCreateIn, current=Depends(get_current_profile), db: Session = Depends(get_db)):
    exists = db.execute(sa.select(Player.id).where(Player.profile_id == current.id)).first()
    if exists:
        raise HTTPException(409, "Player profile already exists")

    p = Player(
        profile_id=current.id,
        position=payload.position,
        skill_level=payload.skill_level,
        city=payload.city.strip() if payload.city else None,
    )
    db.add(p)
    db.flush()
    audit(db, current.id, "player", str(p.id), "created", {})

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "Player profile already exists")
    db.refresh(p)
    return player_out(p, current)

@router.get("/{player_id}", response_model=PlayerOut)
def get_player(player_id: str, db: Session = Depends(get_db)):
    p = _get_player_or_404(db, player_id)
    return player_out(p, db.get(Profile, p.profile_id))

@router.patch("/{player_id}", response_model=PlayerOut)
def update_player(player_id: str, payload: PlayerUpdateIn, current=Depends(get_current_profile), db: Session = Depends(get_db)):
    p = _get_player_or_404(db, player_id)
    if p.profile_id != current.id:
        raise HTTPException(403, "Players can only edit their own profile")

    changed = {}
    if payload.position is not None:
        changed["position"] = p.position = payload.position or None
    if payload.skill_level is not None:
        changed["skill_level"] = p.skill_level = payload.skill_level
    if payload.city is not None:
        changed["city"] = p.city = payload.city.strip() or None

    if changed:
        p.updated_at = sa.func.now()
        audit(db, current.id, "player", str(p.id), "updated", changed)
        db.commit()
        db.refresh(p)
    return player_out(p, current)
