import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base

class Team(Base):
    __tablename__ = "teams"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(sa.Text, nullable=False)
    captain_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False)
    logo_url: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    age_group: Mapped[str] = mapped_column(sa.Text, nullable=False, server_default="open")
    team_level: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False, server_default="1")

    rating: Mapped[float] = mapped_column(sa.Numeric(4, 2, asdecimal=False), nullable=False, default=5.0, server_default="5.00")
    wins: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")
    losses: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")
    draws: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")
    total_goals: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")
    total_mvps: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
    updated_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.Index("ix_teams_rating_wins", sa.text("rating DESC"), sa.text("wins DESC")),
        sa.Index("ix_teams_captain", "captain_id"),
        sa.CheckConstraint("rating >= 1 AND rating <= 10", name="ck_team_rating_bounds"),
    )

class TeamMember(Base):
    __tablename__ = "team_members"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    team_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    player_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[str] = mapped_column(sa.Text, nullable=False, default="member", server_default="member")  # captain/member
    joined_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.UniqueConstraint("team_id", "player_id", name="uq_team_members_team_player"),
        sa.Index("ix_team_members_player", "player_id"),
        sa.CheckConstraint("role in ('captain','member')", name="ck_team_member_role"),
    )
