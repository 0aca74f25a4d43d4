import logging
from sqlalchemy.orm import Session
from sqlalchemy import and_
from fastapi import HTTPException
from typing import Dict, List, Optional
from split_ledger.models.expenses import Expense, ExpenseShare
from split_ledger.models.groups import Group, GroupMember
from split_ledger.schemas.group_schema import GroupCreate, GroupMemberCreate
from split_ledger.schemas.settlement_schema import MemberLookup, MemberSummary

logger = logging.getLogger(__name__)


def create_group(db: Session, group_data: GroupCreate, created_by: str) -> Group:
    """Create a new group; the creator joins as admin"""
    group = Group(
        name=group_data.name,
        created_by=created_by
    )
    db.add(group)
    db.commit()
    db.refresh(group)

    add_member_to_group(db, group.id, created_by, group_data.display_name, is_admin=True)
    logger.info(f"Group {group.id} created by {created_by}")
    return group


def get_group(db: Session, group_id: str) -> Optional[Group]:
    """Get a group by ID"""
    return db.query(Group).filter(Group.id == group_id).first()


def get_user_groups(db: Session, user_id: str) -> List[Group]:
    """Get all groups for a user"""
    return db.query(Group).join(GroupMember).filter(GroupMember.user_id == user_id).all()


def add_member_to_group(db: Session, group_id: str, user_id: str, display_name: str, is_admin: bool = False) -> GroupMember:
    """Add a member to a group"""
    existing = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()

    if existing:
        raise HTTPException(status_code=400, detail="User is already a member of this group")

    member = GroupMember(
        group_id=group_id,
        user_id=user_id,
        display_name=display_name,
        is_admin=is_admin
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def add_member_as_admin(db: Session, group_id: str, member_data: GroupMemberCreate, admin_user_id: str) -> GroupMember:
    """Add a member on behalf of a group admin"""
    if not get_group(db, group_id):
        raise HTTPException(status_code=404, detail="Group not found")

    if not is_group_admin(db, group_id, admin_user_id):
        raise HTTPException(status_code=403, detail="Only group admins can add members")

    member = add_member_to_group(db, group_id, member_data.user_id, member_data.display_name, member_data.is_admin)
    logger.info(f"User {member_data.user_id} added to group {group_id} by {admin_user_id}")
    return member


def remove_member_from_group(db: Session, group_id: str, user_id: str, remover_id: str):
    """Remove a member from a group"""
    member = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()

    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    # Only admins can remove others, users can remove themselves
    if user_id != remover_id and not is_group_admin(db, group_id, remover_id):
        raise HTTPException(status_code=403, detail="Only group admins can remove other members")

    group = get_group(db, group_id)
    if group.created_by == user_id:
        raise HTTPException(status_code=400, detail="The group's creator cannot be removed")

    db.delete(member)
    db.commit()
    logger.info(f"User {user_id} removed from group {group_id} by {remover_id}")


def update_member_role(db: Session, group_id: str, user_id: str, is_admin: bool, admin_user_id: str) -> GroupMember:
    """Grant or revoke a member's admin role (admin only)"""
    group = get_group(db, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    if not is_group_admin(db, group_id, admin_user_id):
        raise HTTPException(status_code=403, detail="Only group admins can change member roles")

    member = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    # The creator stays admin so the group always has one
    if group.created_by == user_id and not is_admin:
        raise HTTPException(status_code=400, detail="The group's creator must remain an admin")

    member.is_admin = is_admin
    db.commit()
    db.refresh(member)
    logger.info(f"User {user_id} in group {group_id} set to admin={is_admin} by {admin_user_id}")
    return member


def delete_group(db: Session, group_id: str, user_id: str):
    """Delete a group with its members, expenses and shares (admin only)"""
    if not get_group(db, group_id):
        raise HTTPException(status_code=404, detail="Group not found")

    if not is_group_admin(db, group_id, user_id):
        raise HTTPException(status_code=403, detail="Only group admins can delete the group")

    expense_ids = [expense_id for (expense_id,) in db.query(Expense.id).filter(Expense.group_id == group_id).all()]
    if expense_ids:
        db.query(ExpenseShare).filter(ExpenseShare.expense_id.in_(expense_ids)).delete(synchronize_session=False)
    db.query(Expense).filter(Expense.group_id == group_id).delete(synchronize_session=False)
    db.query(GroupMember).filter(GroupMember.group_id == group_id).delete(synchronize_session=False)
    db.query(Group).filter(Group.id == group_id).delete(synchronize_session=False)
    db.commit()
    logger.info(f"Group {group_id} deleted by {user_id} with {len(expense_ids)} expenses")


def is_group_admin(db: Session, group_id: str, user_id: str) -> bool:
    """Check if user is admin of the group"""
    member = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()
    return bool(member and member.is_admin)


def is_group_member(db: Session, group_id: str, user_id: str) -> bool:
    """Check if user is member of the group"""
    member = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()
    return member is not None


def get_group_members(db: Session, group_id: str) -> List[GroupMember]:
    """Get all members of a group"""
    return db.query(GroupMember).filter(GroupMember.group_id == group_id).all()


def get_member_lookup(db: Session, group_id: str) -> MemberLookup:
    """
    Snapshot the group's membership as a lookup function.

    The members are read once, so every lookup made while building a
    settlement report sees the same membership.
    """
    directory: Dict[str, MemberSummary] = {
        member.user_id: MemberSummary(user_id=member.user_id, display_name=member.display_name)
        for member in get_group_members(db, group_id)
    }
    return directory.get
