from datetime import datetime
from pydantic import BaseModel, Field

class ProfileCreateIn(BaseModel):
    full_name: str | None = Field(default=None, max_length=120)
    email: str | None = Field(default=None, max_length=254)
    phone: str | None = Field(default=None, max_length=32)
    avatar_url: str | None = Field(default=None, max_length=2048)

class ProfileUpdateIn(BaseModel):
    full_name: str | None = Field(default=None, max_length=120)
    email: str | None = Field(default=None, max_length=254)
    phone: str | None = Field(default=None, max_length=32)
    avatar_url: str | None = Field(default=None, max_length=2048)

class ProfileOut(BaseModel):
    id: str
    user_id: str
    full_name: str | None
    email: str | None
    phone: str | None
    avatar_url: str | None
    is_complete: bool
    has_player: bool
    captained_team_id: str | None
    created_at: datetime | None
