from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import sqlalchemy as sa

from app.api.deps import get_current_profile, parse_uuid
from app.db.session import get_db
from app.models.player import Player
from app.models.profile import Profile
from app.models.team import Team, TeamMember
from app.schemas.team import TeamCreateIn, TeamMemberIn, TeamMemberOut, TeamOut, TeamUpdateIn
from app.services.audit import audit

router = APIRouter()

def team_out(t: Team) -> TeamOut:
    return TeamOut(
        id=str(t.id),
        name=t.name,
        captain_id=str(t.captain_id),
        logo_url=t.logo_url,
        age_group=t.age_group,
        team_level=t.team_level,
        rating=float(t.rating),
        wins=t.wins,
        losses=t.losses,
        draws=t.draws,
        total_goals=t.total_goals,
        total_mvps=t.total_mvps,
    )

def _get_team_or_404(db: Session, team_id: str) -> Team:
    t = db.get(Team, parse_uuid(team_id, "team_id"))
    if not t:
        raise HTTPException(404, "Team not found")
    return t

def _get_captained_team(db: Session, team_id: str, profile_id) -> Team:
    t = _get_team_or_404(db, team_id)
    if t.captain_id != profile_id:
        raise HTTPException(403, "Only the team captain can manage this team")
    return t

def _members(db: Session, team_id) -> list[TeamMemberOut]:
    rows = db.execute(
        sa.select(
            TeamMember.id,
            TeamMember.team_id,
            TeamMember.player_id,
            TeamMember.role,
            TeamMember.joined_at,
            Player.position,
            Player.rating,
            Profile.full_name,
            Profile.avatar_url,
        )
        .join(Player, Player.id == TeamMember.player_id)
        .join(Profile, Profile.id == Player.profile_id)
        .where(TeamMember.team_id == team_id)
        .order_by(TeamMember.role, TeamMember.joined_at, TeamMember.player_id)
    ).all()
    return [
        TeamMemberOut(
            id=str(r.id),
            team_id=str(r.team_id),
            player_id=str(r.player_id),
            role=r.role,
            full_name=r.full_name,
            avatar_url=r.avatar_url,
            position=r.position,
            rating=float(r.rating),
            joined_at=r.joined_at,
        )
        for r in rows
    ]

@router.get("", response_model=list[TeamOut])
def list_teams(
    age_group: str | None = Query(default=None, max_length=20),
    min_rating: float | None = Query(default=None, ge=1, le=10),
    max_rating: float | None = Query(default=None, ge=1, le=10),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    stmt = sa.select(Team)
    if age_group is not None:
        stmt = stmt.where(Team.age_group == age_group)
    if min_rating is not None:
        stmt = stmt.where(Team.rating >= min_rating)
    if max_rating is not None:
        stmt = stmt.where(Team.rating <= max_rating)
    stmt = stmt.order_by(Team.rating.desc(), Team.wins.desc(), Team.name).limit(limit).offset(offset)
    return [team_out(t) for t in db.execute(stmt).scalars().all()]

@router.post("", response_model=TeamOut)
def create_team(payload: TeamCreateIn, current=Depends(get_current_profile), db: Session = Depends(get_db)):
    t = Team(
        name=payload.name.strip(),
        captain_id=current.id,
        logo_url=payload.logo_url,
        age_group=payload.age_group,
        team_level=payload.team_level,
    )
    db.add(t)
    db.flush()

    # a captain who also plays is rostered right away
    player_id = db.execute(sa.select(Player.id).where(Player.profile_id == current.id)).scalar_one_or_none()
    if player_id is not None:
        db.add(TeamMember(team_id=t.id, player_id=player_id, role="captain"))

    audit(db, current.id, "team", str(t.id), "created", {"name": t.name})
    db.commit()
    db.refresh(t)
    return team_out(t)

@router.get("/{team_id}", response_model=TeamOut)
def get_team(team_id: str, db: Session = Depends(get_db)):
    return team_out(_get_team_or_404(db, team_id))

@router.patch("/{team_id}", response_model=TeamOut)
def update_team(team_id: str, payload: TeamUpdateIn, current=Depends(get_current_profile), db: Session = Depends(get_db)):
    t = _get_captained_team(db, team_id, current.id)

    changed = {}
    if payload.name is not None:
        changed["name"] = t.name = payload.name.strip()
    if payload.logo_url is not None:
        changed["logo_url"] = t.logo_url = payload.logo_url or None
    if payload.age_group is not None:
        changed["age_group"] = t.age_group = payload.age_group
    if payload.team_level is not None:
        changed["team_level"] = t.team_level = payload.team_level

    if changed:
        t.updated_at = sa.func.now()
        audit(db, current.id, "team", str(t.id), "updated", changed)
        db.commit()
        db.refresh(t)
    return team_out(t)

@router.get("/{team_id}/members", response_model=list[TeamMemberOut])
def team_members(team_id: str, db: Session = Depends(get_db)):
    t = _get_team_or_404(db, team_id)
    return _members(db, t.id)

@router.post("/{team_id}/members", response_model=list[TeamMemberOut])
def add_team_member(team_id: str, payload: TeamMemberIn, current=Depends(get_current_profile), db: Session = Depends(get_db)):
    t = _get_captained_team(db, team_id, current.id)
    player_id = parse_uuid(payload.player_id, "player_id")
    if db.get(Player, player_id) is None:
        raise HTTPException(404, "Player not found")

    exists = db.execute(
        sa.select(TeamMember.id).where(TeamMember.team_id == t.id, TeamMember.player_id == player_id)
    ).first()
    if exists:
        raise HTTPException(409, "Player is already on this team")

    db.add(TeamMember(team_id=t.id, player_id=player_id, role=payload.role))
    audit(db, current.id, "team", str(t.id), "member_added", {"player_id": str(player_id), "role": payload.role})
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(409, "Player is already on this team")
    return _members(db, t.id)

@router.delete("/{team_id}/members/{player_id}", response_model=list[TeamMemberOut])
def remove_team_member(team_id: str, player_id: str, current=Depends(get_current_profile), db: Session = Depends(get_db)):
    t = _get_captained_team(db, team_id, current.id)
    pid = parse_uuid(player_id, "player_id")

    res = db.execute(
        sa.delete(TeamMember)
        .where(TeamMember.team_id == t.id, TeamMember.player_id == pid)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.rollback()
        raise HTTPException(404, "Player is not on this team")

    audit(db, current.id, "team", str(t.id), "member_removed", {"player_id": str(pid)})
    db.commit()
    return _members(db, t.id)
