from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

class TeamCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)
    logo_url: str | None = Field(default=None, max_length=2048)
    age_group: str = Field(default="open", min_length=1, max_length=20)
    team_level: int = Field(default=1, ge=1, le=5)

class TeamUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=80)
    logo_url: str | None = Field(default=None, max_length=2048)
    age_group: str | None = Field(default=None, min_length=1, max_length=20)
    team_level: int | None = Field(default=None, ge=1, le=5)

class TeamOut(BaseModel):
    id: str
    name: str
    captain_id: str
    logo_url: str | None
    age_group: str
    team_level: int
    rating: float
    wins: int
    losses: int
    draws: int
    total_goals: int
    total_mvps: int

class TeamMemberIn(BaseModel):
    player_id: str
    role: Literal["captain", "member"] = "member"

class TeamMemberOut(BaseModel):
    id: str
    team_id: str
    player_id: str
    role: str
    full_name: str | None
    avatar_url: str | None
    position: str | None
    rating: float
    joined_at: datetime | None

class PlayerCreateIn(BaseModel):
    position: str | None = Field(default=None, max_length=30)
    skill_level: int = Field(default=1, ge=1, le=5)
    city: str | None = Field(default=None, max_length=80)

class PlayerUpdateIn(BaseModel):
    position: str | None = Field(default=None, max_length=30)
    skill_level: int | None = Field(default=None, ge=1, le=5)
    city: str | None = Field(default=None, max_length=80)

class PlayerOut(BaseModel):
    id: str
    profile_id: str
    full_name: str | None = None
    avatar_url: str | None = None
    position: str | None
    skill_level: int
    city: str | None
    matches_played: int
    goals: int
    assists: int
    mvps: int
    rating: float
