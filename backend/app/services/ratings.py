from dataclasses import dataclass
from uuid import UUID

import sqlalchemy as sa

from app.core.config import settings

@dataclass
class Outcome:
    team_a_won: bool
    team_b_won: bool
    is_draw: bool

@dataclass
class PlayerTally:
    player_id: UUID
    team_id: UUID
    goals: int

def classify_outcome(team_a_score: int, team_b_score: int) -> Outcome:
    return Outcome(
        team_a_won=team_a_score > team_b_score,
        team_b_won=team_b_score > team_a_score,
        is_draw=team_a_score == team_b_score,
    )

def winner_team_id(team_a_id: UUID, team_b_id: UUID, outcome: Outcome) -> UUID | None:
    if outcome.team_a_won:
        return team_a_id
    if outcome.team_b_won:
        return team_b_id
    return None

def clamped_rating_expr(column, delta: float):
    """SQL expression for ``column + delta`` kept inside the rating bounds.

    Evaluated by the database against the stored value at write time, so
    concurrent matches touching the same team or player never overwrite
    each other with a stale absolute rating.
    """
    raised = column + delta
    return sa.case(
        (raised > settings.RATING_CEILING, settings.RATING_CEILING),
        (raised < settings.RATING_FLOOR, settings.RATING_FLOOR),
        else_=raised,
    )

def tally_by_player(goal_rows) -> list[PlayerTally]:
    """Collapse goal-scorer rows into one total per player.

    A player credited for both sides keeps the team they scored most for.
    """
    totals: dict[UUID, int] = {}
    per_team: dict[UUID, dict[UUID, int]] = {}
    for row in goal_rows:
        totals[row.player_id] = totals.get(row.player_id, 0) + int(row.goals)
        teams = per_team.setdefault(row.player_id, {})
        teams[row.team_id] = teams.get(row.team_id, 0) + int(row.goals)

    out = []
    for player_id, goals in totals.items():
        teams = per_team[player_id]
        team_id = min(teams, key=lambda t: (-teams[t], str(t)))
        out.append(PlayerTally(player_id=player_id, team_id=team_id, goals=goals))
    return out

def select_mvp(goal_rows, winner: UUID | None = None) -> PlayerTally | None:
    """Most goals wins; ties go to the winning side, then the lowest player id."""
    tallies = tally_by_player(goal_rows)
    if not tallies:
        return None
    return min(
        tallies,
        key=lambda t: (-t.goals, 0 if winner is not None and t.team_id == winner else 1, str(t.player_id)),
    )
