"""
Inquiry permission gate.

Committee side:
- view:   INQUIRY_ADMIN, or COMMITTEE assignee, or a matching viewer rule
- mutate: INQUIRY_ADMIN, or COMMITTEE assignee (viewer rules never grant it)

Project side: a user may act on an inquiry iff they are a PROJECT assignee.
"""

import logging

from sqlalchemy.orm import Session

from . import viewer_scope
from .assignees import is_assignee
from .auth import AuthContext
from .db.models import Inquiry, Side
from .errors import ForbiddenError

logger = logging.getLogger(__name__)


def can_view(db: Session, inquiry: Inquiry, user: AuthContext) -> bool:
    if user.is_inquiry_admin:
        return True
    if user.is_committee_member and is_assignee(db, inquiry.id, user.user_id, Side.COMMITTEE):
        return True
    if not user.is_committee_member:
        return False
    return viewer_scope.matches(inquiry.viewers, user.user_id, user.bureau)


def can_mutate(db: Session, inquiry: Inquiry, user: AuthContext) -> bool:
    if user.is_inquiry_admin:
        return True
    return user.is_committee_member and is_assignee(db, inquiry.id, user.user_id, Side.COMMITTEE)


def require_view(db: Session, inquiry: Inquiry, user: AuthContext) -> None:
    if not can_view(db, inquiry, user):
        logger.warning(f"View denied: user {user.user_id} on inquiry {inquiry.id}")
        raise ForbiddenError("You do not have access to this inquiry")


def require_mutate(db: Session, inquiry: Inquiry, user: AuthContext) -> None:
    if not can_mutate(db, inquiry, user):
        logger.warning(f"Mutation denied: user {user.user_id} on inquiry {inquiry.id}")
        raise ForbiddenError("You are not allowed to modify this inquiry")


def require_project_assignee(db: Session, inquiry: Inquiry, user: AuthContext) -> None:
    if not is_assignee(db, inquiry.id, user.user_id, Side.PROJECT):
        logger.warning(f"Project access denied: user {user.user_id} on inquiry {inquiry.id}")
        raise ForbiddenError("You are not assigned to this inquiry")
