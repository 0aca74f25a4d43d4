from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from split_ledger.api.dependencies import get_current_user_id
from split_ledger.db.database import get_db
from split_ledger.services.group_service import (
    create_group, get_group, get_user_groups, add_member_as_admin,
    remove_member_from_group, get_group_members, is_group_member,
    update_member_role, delete_group
)
from split_ledger.schemas.group_schema import (
    GroupCreate, GroupOut, GroupMemberCreate, GroupMemberOut, GroupMemberRoleUpdate, GroupWithMembers
)

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("/", response_model=GroupOut)
def create_new_group(
    group_data: GroupCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new group"""
    return create_group(db, group_data, user_id)


@router.get("/", response_model=List[GroupOut])
def get_my_groups(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all groups for current user"""
    return get_user_groups(db, user_id)


@router.get("/{group_id}", response_model=GroupWithMembers)
def get_group_details(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get group details with members"""
    group = get_group(db, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    if not is_group_member(db, group.id, user_id):
        raise HTTPException(status_code=403, detail="You are not a member of this group")

    members = get_group_members(db, group.id)
    return GroupWithMembers(
        id=group.id,
        name=group.name,
        created_by=group.created_by,
        created_at=group.created_at,
        members=[GroupMemberOut.model_validate(member) for member in members]
    )


@router.delete("/{group_id}")
def delete_existing_group(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete a group and all its expenses (admin only)"""
    delete_group(db, group_id, user_id)
    return {"message": "Group deleted"}


@router.post("/{group_id}/members", response_model=GroupMemberOut)
def add_group_member(
    group_id: str,
    member_data: GroupMemberCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Add a member to a group (admin only)"""
    return add_member_as_admin(db, group_id, member_data, user_id)


@router.delete("/{group_id}/members/{member_user_id}")
def remove_group_member(
    group_id: str,
    member_user_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Remove a member from a group (admins, or members removing themselves)"""
    remove_member_from_group(db, group_id, member_user_id, user_id)
    return {"message": "Member removed"}


@router.put("/{group_id}/members/{member_user_id}", response_model=GroupMemberOut)
def update_group_member_role(
    group_id: str,
    member_user_id: str,
    role_data: GroupMemberRoleUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Grant or revoke a member's admin role (admin only)"""
    return update_member_role(db, group_id, member_user_id, role_data.is_admin, user_id)
