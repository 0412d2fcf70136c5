from datetime import date, datetime, time
from pydantic import BaseModel, Field, model_validator

class MatchCreateIn(BaseModel):
    team_a_id: str
    team_b_id: str
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    location: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def distinct_teams(self):
        if self.team_a_id == self.team_b_id:
            raise ValueError("A match needs two different teams")
        return self

class GoalScorerIn(BaseModel):
    player_id: str
    team_id: str
    goals: int = Field(..., ge=1, le=99)

class ResultSubmissionIn(BaseModel):
    team_a_score: int = Field(..., ge=0, le=99)
    team_b_score: int = Field(..., ge=0, le=99)
    goal_scorers: list[GoalScorerIn] = Field(default_factory=list)
    mvp_player_id: str | None = None
    submitting_team_id: str

    @model_validator(mode="after")
    def goals_match_score(self):
        # client-side invariant; the server re-checks it against stored rows
        total = sum(g.goals for g in self.goal_scorers)
        if total != self.team_a_score + self.team_b_score:
            raise ValueError(
                f"Total goals from scorers ({total}) doesn't match total score ({self.team_a_score + self.team_b_score})"
            )
        return self

class MatchOut(BaseModel):
    id: str
    team_a_id: str
    team_b_id: str
    status: str
    scheduled_date: date | None
    scheduled_time: time | None
    location: str | None
    notes: str | None
    team_a_score: int | None
    team_b_score: int | None
    team_a_submitted: bool
    team_b_submitted: bool
    team_a_submitted_at: datetime | None
    team_b_submitted_at: datetime | None
    verified_result: bool
    mvp_player_id: str | None
    stats_applied_at: datetime | None

    @classmethod
    def from_row(cls, m) -> "MatchOut":
        return cls(
            id=str(m.id),
            team_a_id=str(m.team_a_id),
            team_b_id=str(m.team_b_id),
            status=m.status,
            scheduled_date=m.scheduled_date,
            scheduled_time=m.scheduled_time,
            location=m.location,
            notes=m.notes,
            team_a_score=m.team_a_score,
            team_b_score=m.team_b_score,
            team_a_submitted=m.team_a_submitted,
            team_b_submitted=m.team_b_submitted,
            team_a_submitted_at=m.team_a_submitted_at,
            team_b_submitted_at=m.team_b_submitted_at,
            verified_result=m.verified_result,
            mvp_player_id=str(m.mvp_player_id) if m.mvp_player_id else None,
            stats_applied_at=m.stats_applied_at,
        )

class GoalScorerOut(BaseModel):
    player_id: str
    team_id: str
    goals: int

class GoalScorersOut(BaseModel):
    match_id: str
    rows: list[GoalScorerOut]

class MatchesOut(BaseModel):
    rows: list[MatchOut]
    limit: int
    offset: int
    next_offset: int | None
