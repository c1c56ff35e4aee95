from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CreateGroupRequest(BaseModel):
    name: str
    restaurant_id: str
    owner_id: str
    owner_name: Optional[str] = None
    deadline_at: datetime


class JoinRequest(BaseModel):
    user_id: str
    username: Optional[str] = None


class MemberRequest(BaseModel):
    user_id: str


class DishDeltaRequest(BaseModel):
    user_id: str
    dish_id: str
    qty: int = Field(..., strict=True)


class ViewRequest(BaseModel):
    viewer_id: str
    username: Optional[str] = None
    selections: dict[str, int] = Field(default_factory=dict)
