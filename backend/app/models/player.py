import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base

class Player(Base):
    __tablename__ = "players"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    skill_level: Mapped[int] = mapped_column(sa.SmallInteger, nullable=False, server_default="1")
    city: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    matches_played: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")
    goals: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")
    assists: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")
    mvps: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0, server_default="0")
    rating: Mapped[float] = mapped_column(sa.Numeric(4, 2, asdecimal=False), nullable=False, default=5.0, server_default="5.00")

    created_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
    updated_at: Mapped[sa.DateTime] = mapped_column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())

    __table_args__ = (
        sa.Index("ux_players_profile", "profile_id", unique=True),
        sa.CheckConstraint("rating >= 1 AND rating <= 10", name="ck_player_rating_bounds"),
    )
