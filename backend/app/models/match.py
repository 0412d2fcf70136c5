import uuid
from datetime import date, datetime, time

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base

class Match(Base):
    __tablename__ = "matches"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    # order is fixed at creation, team A is never swapped with team B
    team_a_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False)
    team_b_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False)

    status: Mapped[str] = mapped_column(sa.Text, nullable=False, default="pending", server_default="pending")  # pending/confirmed/completed/cancelled
    scheduled_date: Mapped[date | None] = mapped_column(sa.Date, nullable=True)
    scheduled_time: Mapped[time | None] = mapped_column(sa.Time, nullable=True)
    location: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    team_a_score: Mapped[int | None] = mapped_column(sa.SmallInteger, nullable=True)
    team_b_score: Mapped[int | None] = mapped_column(sa.SmallInteger, nullable=True)

    team_a_submitted: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False, server_default=sa.false())
    team_b_submitted: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False, server_default=sa.false())
    team_a_submitted_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    team_b_submitted_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)
    verified_result: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False, server_default=sa.false())

    mvp_player_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, sa.ForeignKey("players.id", ondelete="SET NULL"), nullable=True)
    stats_applied_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.Index("ix_matches_team_a_date", "team_a_id", "scheduled_date"),
        sa.Index("ix_matches_team_b_date", "team_b_id", "scheduled_date"),
        sa.Index("ix_matches_status_date", "status", "scheduled_date"),
        sa.CheckConstraint("status in ('pending','confirmed','completed','cancelled')", name="ck_match_status"),
        sa.CheckConstraint("team_a_id <> team_b_id", name="ck_match_distinct_teams"),
        sa.CheckConstraint("team_a_score IS NULL OR team_a_score >= 0", name="ck_match_team_a_score"),
        sa.CheckConstraint("team_b_score IS NULL OR team_b_score >= 0", name="ck_match_team_b_score"),
    )

class GoalScorer(Base):
    __tablename__ = "goal_scorers"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    match_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    player_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("players.id", ondelete="RESTRICT"), nullable=False)
    # the team the goals count for, which is also the team that owns the row
    team_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False)
    goals: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.UniqueConstraint("match_id", "player_id", "team_id", name="uq_goal_scorers_match_player_team"),
        sa.Index("ix_goal_scorers_match_team", "match_id", "team_id"),
        sa.CheckConstraint("goals > 0", name="ck_goal_scorer_goals"),
    )
