from pydantic import BaseModel, Field, ConfigDict
from typing import List
from datetime import datetime


class GroupBase(BaseModel):
    name: str = Field(..., max_length=100)


class GroupCreate(GroupBase):
    # Name shown for the creator in settlement reports
    display_name: str = Field(..., max_length=100)


class GroupOut(GroupBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_by: str
    created_at: datetime


class GroupMemberBase(BaseModel):
    user_id: str
    display_name: str = Field(..., max_length=100)
    is_admin: bool = False


class GroupMemberCreate(GroupMemberBase):
    pass


class GroupMemberOut(GroupMemberBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    joined_at: datetime


class GroupWithMembers(GroupOut):
    members: List[GroupMemberOut] = []


class GroupMemberRoleUpdate(BaseModel):
    is_admin: bool
