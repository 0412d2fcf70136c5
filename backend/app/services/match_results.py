import logging
from dataclasses import dataclass
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.security import now_utc
from app.models.match import GoalScorer, Match
from app.models.team import TeamMember
from app.services.audit import audit
from app.services.match_stats import finalize_match

logger = logging.getLogger(__name__)

MATCH_NOT_FOUND = "match_not_found"
INVALID_PARTY = "invalid_party"
INVALID_SUBMISSION = "invalid_submission"
SCORE_MISMATCH = "score_mismatch"
SCORES_DO_NOT_MATCH = "scores_do_not_match"
ALREADY_VERIFIED = "already_verified"
MATCH_CANCELLED = "match_cancelled"
STORE_FAILURE = "store_failure"

# each submitted flag flips false -> true once, so one re-read settles any race
_CLAIM_ATTEMPTS = 2

@dataclass(frozen=True)
class GoalLine:
    player_id: UUID
    team_id: UUID
    goals: int

@dataclass
class ResultError:
    kind: str
    message: str

@dataclass
class SubmitResultOut:
    data: Match | None = None
    error: ResultError | None = None

def _fail(kind: str, message: str, match: Match | None = None) -> SubmitResultOut:
    return SubmitResultOut(data=match, error=ResultError(kind=kind, message=message))

def _is_int(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)

def merge_goal_lines(lines) -> list[GoalLine]:
    """Sum repeated (player, team) entries, keeping first-seen order."""
    merged: dict[tuple[UUID, UUID], int] = {}
    for line in lines:
        key = (line.player_id, line.team_id)
        merged[key] = merged.get(key, 0) + int(line.goals)
    return [GoalLine(player_id=p, team_id=t, goals=g) for (p, t), g in merged.items()]

def _load_match(db: Session, match_id: UUID) -> Match | None:
    return db.execute(
        sa.select(Match)
        .where(Match.id == match_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()

def _stored_goals(db: Session, match_id: UUID, team_id: UUID) -> int:
    return int(db.execute(
        sa.select(sa.func.coalesce(sa.func.sum(GoalScorer.goals), 0))
        .where(GoalScorer.match_id == match_id, GoalScorer.team_id == team_id)
    ).scalar_one())

def _mvp_is_eligible(db: Session, match: Match, mvp_player_id: UUID, lines: list[GoalLine]) -> bool:
    if any(l.player_id == mvp_player_id for l in lines):
        return True
    on_roster = db.execute(
        sa.select(TeamMember.id).where(
            TeamMember.player_id == mvp_player_id,
            TeamMember.team_id.in_([match.team_a_id, match.team_b_id]),
        )
    ).first()
    if on_roster:
        return True
    scored = db.execute(
        sa.select(GoalScorer.id).where(GoalScorer.match_id == match.id, GoalScorer.player_id == mvp_player_id)
    ).first()
    return scored is not None

def _sides(match: Match, team_id: UUID) -> tuple[str, str] | None:
    if team_id == match.team_a_id:
        return "a", "b"
    if team_id == match.team_b_id:
        return "b", "a"
    return None

def _check(
    db: Session,
    match: Match,
    team_a_score: int,
    team_b_score: int,
    lines: list[GoalLine],
    mvp_player_id: UUID | None,
    submitting_team_id: UUID,
) -> ResultError | None:
    if match.verified_result:
        return ResultError(ALREADY_VERIFIED, "Match result has already been verified.")
    if match.status == "cancelled":
        return ResultError(MATCH_CANCELLED, "Match has been cancelled.")

    sides = _sides(match, submitting_team_id)
    if sides is None:
        return ResultError(INVALID_PARTY, "Team is not a party to this match.")
    own, other = sides
    own_team_id = getattr(match, f"team_{own}_id")
    other_team_id = getattr(match, f"team_{other}_id")

    if any(l.team_id not in (match.team_a_id, match.team_b_id) for l in lines):
        return ResultError(INVALID_SUBMISSION, "Every goal scorer must belong to one of the two teams.")
    off_roster = _off_roster(db, lines)
    if off_roster:
        return ResultError(
            INVALID_SUBMISSION,
            f"Goal scorers not on the roster of the team they scored for: {', '.join(str(p) for p in off_roster)}.",
        )
    if mvp_player_id is not None and not _mvp_is_eligible(db, match, mvp_player_id, lines):
        return ResultError(INVALID_SUBMISSION, "MVP must be a goal scorer or a member of one of the two teams.")

    other_submitted = bool(getattr(match, f"team_{other}_submitted"))
    if other_submitted and (match.team_a_score, match.team_b_score) != (team_a_score, team_b_score):
        return ResultError(
            SCORES_DO_NOT_MATCH,
            f"Submitted score {team_a_score}-{team_b_score} does not match the score reported by the opponent "
            f"({match.team_a_score}-{match.team_b_score}).",
        )

    return _totals_error(db, match, own_team_id, other_team_id, lines, team_a_score + team_b_score, other_submitted)

def _off_roster(db: Session, lines: list[GoalLine]) -> list[UUID]:
    if not lines:
        return []
    rows = db.execute(
        sa.select(TeamMember.player_id, TeamMember.team_id).where(
            TeamMember.player_id.in_(list({l.player_id for l in lines})),
            TeamMember.team_id.in_(list({l.team_id for l in lines})),
        )
    ).all()
    rostered = {(r.player_id, r.team_id) for r in rows}
    return [l.player_id for l in lines if (l.player_id, l.team_id) not in rostered]

def _totals_error(
    db: Session,
    match: Match,
    own_team_id: UUID,
    other_team_id: UUID,
    lines: list[GoalLine],
    total: int,
    other_submitted: bool,
) -> ResultError | None:
    own_goals = sum(l.goals for l in lines if l.team_id == own_team_id)
    if other_submitted:
        # once the rival has reported, its own rows are authoritative for its goals
        other_goals = _stored_goals(db, match.id, other_team_id)
    else:
        other_goals = sum(l.goals for l in lines if l.team_id == other_team_id)

    if own_goals + other_goals != total:
        return ResultError(
            SCORE_MISMATCH,
            f"Total goals from scorers ({own_goals + other_goals}) does not match total score ({total}).",
        )
    return None

def _claim(
    db: Session,
    match: Match,
    own: str,
    other: str,
    team_a_score: int,
    team_b_score: int,
    mvp_player_id: UUID | None,
) -> bool:
    """Single conditional UPDATE on the match row.

    Succeeds only if the rival flag still holds the value we decided on and
    the match is not verified yet, so two simultaneous submissions can never
    both believe they completed verification.
    """
    observed_other = bool(getattr(match, f"team_{other}_submitted"))
    verifying = observed_other
    now = now_utc()

    conds = [
        Match.id == match.id,
        Match.verified_result.is_(False),
        Match.status != "cancelled",
        getattr(Match, f"team_{other}_submitted").is_(observed_other),
    ]
    if verifying:
        conds += [Match.team_a_score == team_a_score, Match.team_b_score == team_b_score]

    values = {
        f"team_{own}_submitted": True,
        f"team_{own}_submitted_at": now,
        "team_a_score": team_a_score,
        "team_b_score": team_b_score,
        "status": "completed" if verifying else "confirmed",
        "verified_result": verifying,
        "updated_at": now,
    }
    if mvp_player_id is not None:
        values["mvp_player_id"] = mvp_player_id

    res = db.execute(
        sa.update(Match)
        .where(*conds)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1

def _replace_goal_lines(db: Session, match_id: UUID, team_id: UUID, lines: list[GoalLine]):
    wanted = {l.player_id: l.goals for l in lines if l.team_id == team_id}
    existing = db.execute(
        sa.select(GoalScorer).where(GoalScorer.match_id == match_id, GoalScorer.team_id == team_id)
    ).scalars().all()

    for row in existing:
        goals = wanted.pop(row.player_id, None)
        if goals is None:
            db.delete(row)
        elif row.goals != goals:
            row.goals = goals

    for player_id, goals in wanted.items():
        db.add(GoalScorer(match_id=match_id, player_id=player_id, team_id=team_id, goals=goals))
    db.flush()

def submit_result(
    db: Session,
    match_id: UUID,
    team_a_score: int,
    team_b_score: int,
    goal_scorers,
    mvp_player_id: UUID | None,
    submitting_team_id: UUID,
    actor_profile_id: UUID | None = None,
) -> SubmitResultOut:
    """Record one team's report of a match result.

    The first report moves the match to ``confirmed``. A report from the
    other team with the same score verifies it (``completed``) and applies
    ratings and statistics exactly once. Failures are returned in
    ``SubmitResultOut.error`` and leave the stored match untouched.
    """
    if not (_is_int(team_a_score) and _is_int(team_b_score)) or team_a_score < 0 or team_b_score < 0:
        return _fail(INVALID_SUBMISSION, "Scores must be non-negative integers.")
    if any(not _is_int(l.goals) or l.goals <= 0 for l in goal_scorers):
        return _fail(INVALID_SUBMISSION, "Every goal scorer must have at least one goal.")
    lines = merge_goal_lines(goal_scorers)

    try:
        for _ in range(_CLAIM_ATTEMPTS):
            match = _load_match(db, match_id)
            if match is None:
                db.rollback()
                return _fail(MATCH_NOT_FOUND, "Match not found.")

            err = _check(db, match, team_a_score, team_b_score, lines, mvp_player_id, submitting_team_id)
            if err is not None:
                db.rollback()
                return SubmitResultOut(data=match if err.kind == ALREADY_VERIFIED else None, error=err)

            own, other = _sides(match, submitting_team_id)
            verifying = bool(getattr(match, f"team_{other}_submitted"))
            if _claim(db, match, own, other, team_a_score, team_b_score, mvp_player_id):
                break
            logger.info("match %s changed while team %s was submitting, re-evaluating", match_id, submitting_team_id)
        else:
            db.rollback()
            return _fail(STORE_FAILURE, "Match changed while submitting. Please try again.")

        if verifying:
            # the claim holds the match row now; the rival may have replaced its rows since the check
            other_team_id = getattr(match, f"team_{other}_id")
            err = _totals_error(
                db, match, submitting_team_id, other_team_id, lines, team_a_score + team_b_score, True,
            )
            if err is not None:
                db.rollback()
                logger.info("match %s: rival goal rows changed before verification by team %s", match_id, submitting_team_id)
                return SubmitResultOut(error=err)

        _replace_goal_lines(db, match.id, submitting_team_id, lines)
        audit(db, actor_profile_id, "match", str(match.id), "result_submitted", {
            "team_id": str(submitting_team_id),
            "team_a_score": team_a_score,
            "team_b_score": team_b_score,
            "goal_scorers": [
                {"player_id": str(l.player_id), "team_id": str(l.team_id), "goals": l.goals}
                for l in lines if l.team_id == submitting_team_id
            ],
            "mvp_player_id": str(mvp_player_id) if mvp_player_id else None,
        })
        db.flush()

        match = _load_match(db, match.id)
        if verifying:
            audit(db, actor_profile_id, "match", str(match.id), "result_verified", {
                "team_a_score": team_a_score,
                "team_b_score": team_b_score,
            })
            scorers = db.execute(
                sa.select(GoalScorer).where(GoalScorer.match_id == match.id)
            ).scalars().all()
            finalize_match(db, match, scorers)
            match = _load_match(db, match.id)

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("match %s: result submission by team %s failed", match_id, submitting_team_id)
        return _fail(STORE_FAILURE, str(getattr(exc, "orig", None) or exc))

    logger.info(
        "match %s: team %s submitted %s-%s (%s)",
        match_id, submitting_team_id, team_a_score, team_b_score,
        "verified" if verifying else "awaiting rival",
    )
    return SubmitResultOut(data=match)
