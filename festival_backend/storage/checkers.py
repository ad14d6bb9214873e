"""
Built-in file access checkers.

Registered in this order by ``build_default_chain``:
1. inquiry attachments
2. notice attachments
"""

from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..assignees import is_assignee
from ..auth import AuthContext
from ..db.models import (
    Inquiry, InquiryAttachment, NoticeAttachment, NoticeCollaborator, NoticeDelivery,
    Project, ProjectMember, Side,
)
from ..permissions import can_view
from .access import AccessVerdict, FileAccessCheckerChain


def inquiry_attachment_checker(db: Session, file_id: str, user: AuthContext) -> AccessVerdict:
    """
    Committee members follow the inquiry view rules; everyone else needs to
    be a PROJECT assignee of the inquiry.
    """
    attachment = db.query(InquiryAttachment).filter(InquiryAttachment.file_id == file_id).first()
    if attachment is None:
        return AccessVerdict.ABSTAIN

    if user.is_committee_member:
        inquiry = db.query(Inquiry).filter(Inquiry.id == attachment.inquiry_id).first()
        if inquiry is not None and can_view(db, inquiry, user):
            return AccessVerdict.ALLOW
        return AccessVerdict.ABSTAIN

    if is_assignee(db, attachment.inquiry_id, user.user_id, Side.PROJECT):
        return AccessVerdict.ALLOW
    return AccessVerdict.ABSTAIN


def notice_attachment_checker(db: Session, file_id: str, user: AuthContext) -> AccessVerdict:
    """Owner, collaborators, and members of projects the notice was delivered to."""
    attachment = (
        db.query(NoticeAttachment)
        .filter(NoticeAttachment.file_id == file_id, NoticeAttachment.deleted_at.is_(None))
        .first()
    )
    if attachment is None:
        return AccessVerdict.ABSTAIN

    notice = attachment.notice
    if notice.owner_id == user.user_id:
        return AccessVerdict.ALLOW

    collaborator = (
        db.query(NoticeCollaborator.id)
        .filter(
            NoticeCollaborator.notice_id == notice.id,
            NoticeCollaborator.user_id == user.user_id,
            NoticeCollaborator.deleted_at.is_(None),
        )
        .first()
    )
    if collaborator is not None:
        return AccessVerdict.ALLOW

    delivered_project_ids = [
        row.project_id
        for row in db.query(NoticeDelivery.project_id).filter(
            NoticeDelivery.notice_id == notice.id,
            NoticeDelivery.approved.is_(True),
            NoticeDelivery.delivered_at <= datetime.utcnow(),
        )
    ]
    if not delivered_project_ids:
        return AccessVerdict.ABSTAIN

    membership = (
        db.query(Project.id)
        .filter(
            Project.id.in_(delivered_project_ids),
            Project.deleted_at.is_(None),
            or_(
                Project.owner_id == user.user_id,
                Project.sub_owner_id == user.user_id,
                Project.members.any(
                    (ProjectMember.user_id == user.user_id) & ProjectMember.deleted_at.is_(None)
                ),
            ),
        )
        .first()
    )
    return AccessVerdict.ALLOW if membership is not None else AccessVerdict.ABSTAIN


DEFAULT_CHECKERS = (
    inquiry_attachment_checker,
    notice_attachment_checker,
)


def build_default_chain() -> FileAccessCheckerChain:
    return FileAccessCheckerChain(DEFAULT_CHECKERS)
