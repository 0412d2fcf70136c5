"""init core schema: teams, players, matches, goal scorers

Revision ID: 0001_init_core
Revises: 
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = "0001_init_core"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # profiles
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", sa.Uuid, nullable=False, unique=True),
        sa.Column("full_name", sa.Text, nullable=True),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("phone", sa.Text, nullable=True),
        sa.Column("avatar_url", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    # teams
    op.create_table(
        "teams",
        sa.Column("id", sa.Uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("captain_id", sa.Uuid, sa.ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("logo_url", sa.Text, nullable=True),
        sa.Column("age_group", sa.Text, nullable=False, server_default="open"),
        sa.Column("team_level", sa.SmallInteger, nullable=False, server_default="1"),
        sa.Column("rating", sa.Numeric(4, 2), nullable=False, server_default="5.00"),
        sa.Column("wins", sa.Integer, nullable=False, server_default="0"),
        sa.Column("losses", sa.Integer, nullable=False, server_default="0"),
        sa.Column("draws", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_goals", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_mvps", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("rating >= 1 AND rating <= 10", name="ck_team_rating_bounds"),
    )
    op.create_index("ix_teams_rating_wins", "teams", [sa.text("rating DESC"), sa.text("wins DESC")])
    op.create_index("ix_teams_captain", "teams", ["captain_id"])

    # players
    op.create_table(
        "players",
        sa.Column("id", sa.Uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("profile_id", sa.Uuid, sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Text, nullable=True),
        sa.Column("skill_level", sa.SmallInteger, nullable=False, server_default="1"),
        sa.Column("city", sa.Text, nullable=True),
        sa.Column("matches_played", sa.Integer, nullable=False, server_default="0"),
        sa.Column("goals", sa.Integer, nullable=False, server_default="0"),
        sa.Column("assists", sa.Integer, nullable=False, server_default="0"),
        sa.Column("mvps", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rating", sa.Numeric(4, 2), nullable=False, server_default="5.00"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("rating >= 1 AND rating <= 10", name="ck_player_rating_bounds"),
    )
    op.create_index("ux_players_profile", "players", ["profile_id"], unique=True)

    # team_members
    op.create_table(
        "team_members",
        sa.Column("id", sa.Uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("team_id", sa.Uuid, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("player_id", sa.Uuid, sa.ForeignKey("players.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.Text, nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("team_id", "player_id", name="uq_team_members_team_player"),
        sa.CheckConstraint("role in ('captain','member')", name="ck_team_member_role"),
    )
    op.create_index("ix_team_members_player", "team_members", ["player_id"])

    # matches
    op.create_table(
        "matches",
        sa.Column("id", sa.Uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("team_a_id", sa.Uuid, sa.ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("team_b_id", sa.Uuid, sa.ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("scheduled_date", sa.Date, nullable=True),
        sa.Column("scheduled_time", sa.Time, nullable=True),
        sa.Column("location", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("team_a_score", sa.SmallInteger, nullable=True),
        sa.Column("team_b_score", sa.SmallInteger, nullable=True),
        sa.Column("team_a_submitted", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("team_b_submitted", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("team_a_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("team_b_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_result", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("mvp_player_id", sa.Uuid, sa.ForeignKey("players.id", ondelete="SET NULL"), nullable=True),
        sa.Column("stats_applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status in ('pending','confirmed','completed','cancelled')", name="ck_match_status"),
        sa.CheckConstraint("team_a_id <> team_b_id", name="ck_match_distinct_teams"),
        sa.CheckConstraint("team_a_score IS NULL OR team_a_score >= 0", name="ck_match_team_a_score"),
        sa.CheckConstraint("team_b_score IS NULL OR team_b_score >= 0", name="ck_match_team_b_score"),
    )
    op.create_index("ix_matches_team_a_date", "matches", ["team_a_id", "scheduled_date"])
    op.create_index("ix_matches_team_b_date", "matches", ["team_b_id", "scheduled_date"])
    op.create_index("ix_matches_status_date", "matches", ["status", "scheduled_date"])

    # goal_scorers
    op.create_table(
        "goal_scorers",
        sa.Column("id", sa.Uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("match_id", sa.Uuid, sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False),
        sa.Column("player_id", sa.Uuid, sa.ForeignKey("players.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("team_id", sa.Uuid, sa.ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("goals", sa.SmallInteger, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("match_id", "player_id", "team_id", name="uq_goal_scorers_match_player_team"),
        sa.CheckConstraint("goals > 0", name="ck_goal_scorer_goals"),
    )
    op.create_index("ix_goal_scorers_match_team", "goal_scorers", ["match_id", "team_id"])

    # audit_log
    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("actor_profile_id", sa.Uuid, sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("entity_type", sa.Text, nullable=False),
        sa.Column("entity_id", sa.Text, nullable=False),
        sa.Column("action", sa.Text, nullable=False),
        sa.Column("data", sa.JSON, nullable=False, server_default=sa.text("'{}'::json")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_actor_created", "audit_log", ["actor_profile_id", sa.text("created_at DESC")])

def downgrade():
    op.drop_table("audit_log")
    op.drop_table("goal_scorers")
    op.drop_table("matches")
    op.drop_table("team_members")
    op.drop_table("players")
    op.drop_table("teams")
    op.drop_table("profiles")
