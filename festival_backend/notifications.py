"""
Inquiry notifications.

Sent after the triggering mutation has committed. A failed notification is
logged and never reaches the caller.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from .config import get_settings
from .db.models import (
    CommitteeMember, CommitteeMemberPermission, CommitteePermission,
    Inquiry, InquiryAssignee, Side, User,
)
from .email_utils import send_inquiry_email

logger = logging.getLogger(__name__)

SUBJECT_PREFIX = "[Festival]"
PREVIEW_LENGTH = 100


def inquiry_url(inquiry_id: str, side: Side) -> str:
    app_url = get_settings().app_url.rstrip("/")
    if side == Side.COMMITTEE:
        return f"{app_url}/committee/support/{inquiry_id}"
    return f"{app_url}/project/support/{inquiry_id}"


def _active_email(db: Session, user_id: str):
    user = db.query(User).filter(User.id == user_id, User.deleted_at.is_(None)).first()
    return user.email if user else None


def notify_assignee_added(db: Session, inquiry: Inquiry, user_id: str, side: Side) -> None:
    try:
        email = _active_email(db, user_id)
        if not email:
            return
        send_inquiry_email(
            to_email=email,
            subject=f"{SUBJECT_PREFIX} You were added to an inquiry",
            message=f"You were added as an assignee of the inquiry \"{inquiry.title}\".",
            link=inquiry_url(inquiry.id, side),
        )
    except Exception as e:
        logger.error(f"notify_assignee_added failed for inquiry {inquiry.id}: {e}")


def notify_comment_added(db: Session, inquiry: Inquiry, commenter: User, body: str) -> None:
    """Every assignee except the commenter."""
    try:
        preview = body if len(body) <= PREVIEW_LENGTH else body[:PREVIEW_LENGTH] + "..."
        recipients = (
            db.query(InquiryAssignee)
            .filter(
                InquiryAssignee.inquiry_id == inquiry.id,
                InquiryAssignee.user_id != commenter.id,
            )
            .all()
        )
        for assignee in recipients:
            if assignee.user is None or assignee.user.deleted_at is not None:
                continue
            send_inquiry_email(
                to_email=assignee.user.email,
                subject=f"{SUBJECT_PREFIX} New comment on an inquiry",
                message=f"{commenter.name} commented on \"{inquiry.title}\": {preview}",
                link=inquiry_url(inquiry.id, assignee.side),
            )
    except Exception as e:
        logger.error(f"notify_comment_added failed for inquiry {inquiry.id}: {e}")


def _inquiry_admin_emails(db: Session) -> List[str]:
    rows = (
        db.query(User.email)
        .join(CommitteeMember, CommitteeMember.user_id == User.id)
        .join(CommitteeMemberPermission, CommitteeMemberPermission.committee_member_id == CommitteeMember.id)
        .filter(
            CommitteeMemberPermission.permission == CommitteePermission.INQUIRY_ADMIN,
            CommitteeMember.deleted_at.is_(None),
            User.deleted_at.is_(None),
        )
        .all()
    )
    return [row.email for row in rows]


def notify_inquiry_created(db: Session, inquiry: Inquiry) -> None:
    """
    Committee-created inquiries go to the project assignees; project-created
    inquiries go to every INQUIRY_ADMIN holder.
    """
    try:
        project_name = inquiry.project.name if inquiry.project else ""
        if inquiry.creator_role == Side.COMMITTEE:
            recipients = [
                a.user.email for a in inquiry.assignees
                if a.side == Side.PROJECT and a.user is not None and a.user.deleted_at is None
            ]
            link = inquiry_url(inquiry.id, Side.PROJECT)
            message = f"The committee opened an inquiry for {project_name}: \"{inquiry.title}\"."
        else:
            recipients = _inquiry_admin_emails(db)
            link = inquiry_url(inquiry.id, Side.COMMITTEE)
            creator_name = inquiry.created_by.name if inquiry.created_by else ""
            message = f"{creator_name} of {project_name} opened an inquiry: \"{inquiry.title}\"."

        for email in recipients:
            send_inquiry_email(
                to_email=email,
                subject=f"{SUBJECT_PREFIX} New inquiry",
                message=message,
                link=link,
            )
        logger.info(f"Inquiry {inquiry.id} created, notified {len(recipients)} recipient(s)")
    except Exception as e:
        logger.error(f"notify_inquiry_created failed for inquiry {inquiry.id}: {e}")
