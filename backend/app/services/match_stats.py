import logging
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import now_utc
from app.models.match import Match
from app.models.player import Player
from app.models.team import Team, TeamMember
from app.services.audit import audit
from app.services.ratings import (
    classify_outcome,
    clamped_rating_expr,
    select_mvp,
    tally_by_player,
    winner_team_id,
)

logger = logging.getLogger(__name__)

def _bump(db: Session, model, row_id: UUID, counters: dict[str, int], rating_delta: float = 0.0):
    values = {name: getattr(model, name) + inc for name, inc in counters.items()}
    if rating_delta:
        values["rating"] = clamped_rating_expr(model.rating, rating_delta)
    values["updated_at"] = sa.func.now()
    db.execute(
        sa.update(model)
        .where(model.id == row_id)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )

def _mvp_team_id(db: Session, match: Match, mvp_player_id: UUID, tallies) -> UUID | None:
    for t in tallies:
        if t.player_id == mvp_player_id:
            return t.team_id
    return db.execute(
        sa.select(TeamMember.team_id)
        .where(
            TeamMember.player_id == mvp_player_id,
            TeamMember.team_id.in_([match.team_a_id, match.team_b_id]),
        )
        .order_by(TeamMember.team_id)
    ).scalars().first()

def finalize_match(db: Session, match: Match, goal_scorers) -> None:
    """Apply team/player statistics and ratings for a freshly verified match.

    Callers guarantee this runs once per match. Every step is applied in its
    own savepoint: a failing step is logged and skipped so the verified result
    itself is never lost.
    """
    a_score = int(match.team_a_score)
    b_score = int(match.team_b_score)
    outcome = classify_outcome(a_score, b_score)
    winner = winner_team_id(match.team_a_id, match.team_b_id, outcome)
    tallies = tally_by_player(goal_scorers)
    failed: list[str] = []

    def step(name: str, fn):
        try:
            with db.begin_nested():
                fn()
        except SQLAlchemyError:
            logger.exception("match %s: stats step %s failed", match.id, name)
            failed.append(name)

    team_delta = settings.TEAM_RESULT_DELTA
    if outcome.is_draw:
        step("team_a", lambda: _bump(db, Team, match.team_a_id, {"draws": 1, "total_goals": a_score}))
        step("team_b", lambda: _bump(db, Team, match.team_b_id, {"draws": 1, "total_goals": b_score}))
    else:
        a_counter = "wins" if outcome.team_a_won else "losses"
        b_counter = "wins" if outcome.team_b_won else "losses"
        a_delta = team_delta if outcome.team_a_won else -team_delta
        step("team_a", lambda: _bump(db, Team, match.team_a_id, {a_counter: 1, "total_goals": a_score}, a_delta))
        step("team_b", lambda: _bump(db, Team, match.team_b_id, {b_counter: 1, "total_goals": b_score}, -a_delta))

    mvp_player_id = match.mvp_player_id
    # draws only get an MVP when a team named one explicitly
    if mvp_player_id is None and not outcome.is_draw:
        best = select_mvp(goal_scorers, winner)
        if best is not None:
            mvp_player_id = best.player_id

            def persist_mvp():
                db.execute(
                    sa.update(Match)
                    .where(Match.id == match.id)
                    .values(mvp_player_id=best.player_id)
                    .execution_options(synchronize_session="fetch")
                )

            step("mvp_select", persist_mvp)

    for t in tallies:
        step(
            f"player_{t.player_id}",
            lambda t=t: _bump(db, Player, t.player_id, {"goals": t.goals}, settings.SCORER_RATING_DELTA),
        )

    if mvp_player_id is not None:
        step("mvp_player", lambda: _bump(db, Player, mvp_player_id, {"mvps": 1}, settings.MVP_RATING_BONUS))

        def credit_mvp_team():
            mvp_team = _mvp_team_id(db, match, mvp_player_id, tallies)
            if mvp_team is None:
                logger.warning("match %s: mvp %s is not on either roster, team total_mvps unchanged", match.id, mvp_player_id)
                return
            _bump(db, Team, mvp_team, {"total_mvps": 1})

        step("mvp_team", credit_mvp_team)

    def stamp():
        db.execute(
            sa.update(Match)
            .where(Match.id == match.id)
            .values(stats_applied_at=now_utc())
            .execution_options(synchronize_session="fetch")
        )
        audit(db, None, "match", str(match.id), "stats_applied", {
            "team_a_score": a_score,
            "team_b_score": b_score,
            "winner_team_id": str(winner) if winner else None,
            "mvp_player_id": str(mvp_player_id) if mvp_player_id else None,
            "scorers": len(tallies),
            "failed_steps": failed,
        })

    step("stamp", stamp)
    if failed:
        logger.warning("match %s: statistics applied with failed steps %s", match.id, failed)
    else:
        logger.info("match %s: statistics applied (mvp=%s)", match.id, mvp_player_id)
