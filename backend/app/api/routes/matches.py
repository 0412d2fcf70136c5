from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import sqlalchemy as sa

from app.api.deps import get_current_profile, parse_uuid
from app.core.security import now_utc
from app.db.session import get_db
from app.models.match import Match
from app.models.team import Team
from app.services import match_results
from app.services.audit import audit
from app.services.match_results import GoalLine, submit_result

from app.schemas.match import (
    GoalScorerOut, GoalScorersOut, MatchCreateIn, MatchesOut, MatchOut, ResultSubmissionIn,
)

router = APIRouter()

_ERROR_STATUS = {
    match_results.MATCH_NOT_FOUND: 404,
    match_results.INVALID_PARTY: 403,
    match_results.INVALID_SUBMISSION: 422,
    match_results.SCORE_MISMATCH: 422,
    match_results.SCORES_DO_NOT_MATCH: 409,
    match_results.ALREADY_VERIFIED: 409,
    match_results.MATCH_CANCELLED: 409,
    match_results.STORE_FAILURE: 503,
}

def _assert_is_captain(db: Session, team_id, profile_id):
    ok = db.execute(
        sa.select(Team.id).where(Team.id == team_id, Team.captain_id == profile_id)
    ).first()
    if not ok:
        raise HTTPException(403, "Only the team captain can act for this team")

def _get_match_or_404(db: Session, match_id: str) -> Match:
    m = db.get(Match, parse_uuid(match_id, "match_id"))
    if not m:
        raise HTTPException(404, "Match not found")
    return m

@router.get("", response_model=MatchesOut)
def list_matches(
    team_id: str | None = Query(default=None),
    status: str | None = Query(default=None, description="pending|confirmed|completed|cancelled"),
    upcoming: bool = Query(default=False),
    limit: int = Query(default=20, ge=1, le=50),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    stmt = sa.select(Match)
    if team_id is not None:
        tid = parse_uuid(team_id, "team_id")
        stmt = stmt.where(sa.or_(Match.team_a_id == tid, Match.team_b_id == tid))
    if status is not None:
        stmt = stmt.where(Match.status == status)
    if upcoming:
        stmt = stmt.where(Match.scheduled_date >= date.today())
    stmt = (
        stmt.order_by(Match.scheduled_date.asc().nulls_last(), Match.created_at, Match.id)
        .limit(limit)
        .offset(offset)
    )

    rows = [MatchOut.from_row(m) for m in db.execute(stmt).scalars().all()]
    next_offset = (offset + limit) if len(rows) == limit else None
    return MatchesOut(rows=rows, limit=limit, offset=offset, next_offset=next_offset)

@router.post("", response_model=MatchOut)
def create_match(payload: MatchCreateIn, current=Depends(get_current_profile), db: Session = Depends(get_db)):
    team_a_id = parse_uuid(payload.team_a_id, "team_a_id")
    team_b_id = parse_uuid(payload.team_b_id, "team_b_id")

    teams = db.execute(
        sa.select(Team.id, Team.captain_id).where(Team.id.in_([team_a_id, team_b_id]))
    ).all()
    if len(teams) != 2:
        raise HTTPException(400, "Both teams must exist")
    if current.id not in {t.captain_id for t in teams}:
        raise HTTPException(403, "Only a captain of one of the teams can schedule the match")

    m = Match(
        team_a_id=team_a_id,
        team_b_id=team_b_id,
        status="pending",
        scheduled_date=payload.scheduled_date,
        scheduled_time=payload.scheduled_time,
        location=payload.location,
        notes=payload.notes,
    )
    db.add(m)
    db.flush()

    audit(db, current.id, "match", str(m.id), "created", {
        "team_a_id": str(team_a_id),
        "team_b_id": str(team_b_id),
    })
    db.commit()
    db.refresh(m)
    return MatchOut.from_row(m)

@router.get("/{match_id}", response_model=MatchOut)
def get_match(match_id: str, db: Session = Depends(get_db)):
    return MatchOut.from_row(_get_match_or_404(db, match_id))

@router.get("/{match_id}/goal-scorers", response_model=GoalScorersOut)
def match_goal_scorers(match_id: str, db: Session = Depends(get_db)):
    m = _get_match_or_404(db, match_id)

    rows = db.execute(sa.text("""
        SELECT
            gs.player_id::text as player_id,
            gs.team_id::text as team_id,
            gs.goals as goals
        FROM goal_scorers gs
        WHERE gs.match_id=:m
        ORDER BY gs.team_id, gs.goals DESC, gs.player_id
    """), {"m": m.id}).mappings().all()

    return GoalScorersOut(match_id=str(m.id), rows=[GoalScorerOut(**r) for r in rows])

@router.post("/{match_id}/result", response_model=MatchOut)
def submit_match_result(
    match_id: str,
    payload: ResultSubmissionIn,
    current=Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    mid = parse_uuid(match_id, "match_id")
    team_id = parse_uuid(payload.submitting_team_id, "submitting_team_id")
    _assert_is_captain(db, team_id, current.id)

    lines = [
        GoalLine(
            player_id=parse_uuid(g.player_id, "player_id"),
            team_id=parse_uuid(g.team_id, "team_id"),
            goals=g.goals,
        )
        for g in payload.goal_scorers
    ]
    mvp = parse_uuid(payload.mvp_player_id, "mvp_player_id") if payload.mvp_player_id else None

    out = submit_result(
        db,
        match_id=mid,
        team_a_score=payload.team_a_score,
        team_b_score=payload.team_b_score,
        goal_scorers=lines,
        mvp_player_id=mvp,
        submitting_team_id=team_id,
        actor_profile_id=current.id,
    )
    if out.error is not None:
        detail = out.error.message
        if out.error.kind == match_results.STORE_FAILURE:
            detail = "Could not save the result right now, please try again."
        raise HTTPException(status_code=_ERROR_STATUS.get(out.error.kind, 400), detail=detail)
    return MatchOut.from_row(out.data)

@router.post("/{match_id}/cancel", response_model=MatchOut)
def cancel_match(match_id: str, current=Depends(get_current_profile), db: Session = Depends(get_db)):
    m = _get_match_or_404(db, match_id)

    captains = db.execute(
        sa.select(Team.captain_id).where(Team.id.in_([m.team_a_id, m.team_b_id]))
    ).scalars().all()
    if current.id not in captains:
        raise HTTPException(403, "Only a captain of one of the teams can cancel the match")

    res = db.execute(
        sa.update(Match)
        .where(Match.id == m.id, Match.verified_result.is_(False), Match.status != "cancelled")
        .values(status="cancelled", updated_at=now_utc())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.rollback()
        raise HTTPException(409, f"Match cannot be cancelled (status={m.status})")

    audit(db, current.id, "match", str(m.id), "cancelled", {})
    db.commit()
    db.refresh(m)
    return MatchOut.from_row(m)
