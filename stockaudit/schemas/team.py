"""Audit team schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TeamMemberCreate(BaseModel):
    user_id: int
    warehouse_id: int


class TeamMemberRead(TeamMemberCreate):
    id: int
    manager_id: int
    username: str
    warehouse_name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
