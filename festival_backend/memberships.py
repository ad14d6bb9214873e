"""
Membership helpers.

Answer "does this user belong to that population right now": project
owner / sub-owner / member, and active committee membership. Also grants
committee membership for the operator script.
"""

from datetime import datetime
from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from .db.models import (
    Bureau, CommitteeMember, CommitteeMemberPermission, CommitteePermission,
    Project, ProjectMember, User,
)


def get_project(db: Session, project_id: str) -> Optional[Project]:
    return (
        db.query(Project)
        .filter(Project.id == project_id, Project.deleted_at.is_(None))
        .first()
    )


def get_project_member(db: Session, project_id: str, user_id: str) -> Optional[ProjectMember]:
    return (
        db.query(ProjectMember)
        .filter(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
            ProjectMember.deleted_at.is_(None),
        )
        .first()
    )


def is_project_member(db: Session, project: Project, user_id: str) -> bool:
    """Owner, sub-owner or current member of the project."""
    if user_id in (project.owner_id, project.sub_owner_id):
        return True
    return get_project_member(db, project.id, user_id) is not None


def get_committee_member(db: Session, user_id: str) -> Optional[CommitteeMember]:
    return (
        db.query(CommitteeMember)
        .filter(
            CommitteeMember.user_id == user_id,
            CommitteeMember.deleted_at.is_(None),
        )
        .first()
    )


def is_committee_member(db: Session, user_id: str) -> bool:
    return get_committee_member(db, user_id) is not None


def grant_committee_membership(
    db: Session,
    user: User,
    bureau: Bureau,
    permissions: Iterable[CommitteePermission] = (),
) -> Tuple[CommitteeMember, str]:
    """
    Make ``user`` a committee member of ``bureau`` (no commit).

    Returns the membership and what happened: "created", "reactivated" or
    "existing". Existing active memberships keep their bureau; requested
    permissions are added in every case.
    """
    member = db.query(CommitteeMember).filter(CommitteeMember.user_id == user.id).first()
    if member is None:
        member = CommitteeMember(user_id=user.id, bureau=bureau)
        db.add(member)
        outcome = "created"
    elif member.deleted_at is not None:
        member.bureau = bureau
        member.deleted_at = None
        member.joined_at = datetime.utcnow()
        outcome = "reactivated"
    else:
        outcome = "existing"
    db.flush()

    held = {p.permission for p in member.permissions}
    for permission in permissions:
        if permission not in held:
            member.permissions.append(CommitteeMemberPermission(permission=permission))
            held.add(permission)
    db.flush()
    return member, outcome
