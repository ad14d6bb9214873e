"""
Assignee registry.

Assignees are partitioned by side (PROJECT / COMMITTEE). Exactly one
assignee per inquiry carries ``is_creator``; it is set at creation and can
never be removed. A user holds at most one assignee row per inquiry,
whichever side it is on.

Eligibility is checked by one validator parameterized with a side-specific
membership predicate.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import activity
from .db.models import ActivityType, Inquiry, InquiryAssignee, Project, Side
from .errors import AlreadyExistsError, ForbiddenError, InvalidRequestError, NotFoundError
from .memberships import is_committee_member, is_project_member

logger = logging.getLogger(__name__)

MembershipPredicate = Callable[[Session, Project, str], bool]


def _eligible_project_side(db: Session, project: Project, user_id: str) -> bool:
    return is_project_member(db, project, user_id)


def _eligible_committee_side(db: Session, project: Project, user_id: str) -> bool:
    return is_committee_member(db, user_id)


ELIGIBILITY: Dict[Side, MembershipPredicate] = {
    Side.PROJECT: _eligible_project_side,
    Side.COMMITTEE: _eligible_committee_side,
}


def dedupe(user_ids: Iterable[str], exclude: Optional[str] = None) -> List[str]:
    """Collapse duplicates (keeping first-seen order) and drop ``exclude``."""
    seen = []
    for user_id in user_ids:
        if user_id != exclude and user_id not in seen:
            seen.append(user_id)
    return seen


def validate_candidates(db: Session, project: Project, user_ids: Iterable[str], side: Side) -> None:
    """Raise InvalidRequestError unless every user is eligible for ``side``."""
    predicate = ELIGIBILITY[side]
    invalid = [user_id for user_id in user_ids if not predicate(db, project, user_id)]
    if invalid:
        if side == Side.PROJECT:
            message = "Assignees must be members of the project"
        else:
            message = "Assignees must be committee members"
        raise InvalidRequestError(message, details={"user_ids": invalid, "side": side.value})


def get_assignee(db: Session, inquiry_id: str, user_id: str) -> Optional[InquiryAssignee]:
    return (
        db.query(InquiryAssignee)
        .filter(
            InquiryAssignee.inquiry_id == inquiry_id,
            InquiryAssignee.user_id == user_id,
        )
        .first()
    )


def is_assignee(db: Session, inquiry_id: str, user_id: str, side: Side) -> bool:
    return (
        db.query(InquiryAssignee.id)
        .filter(
            InquiryAssignee.inquiry_id == inquiry_id,
            InquiryAssignee.user_id == user_id,
            InquiryAssignee.side == side,
        )
        .first()
        is not None
    )


def add(db: Session, inquiry: Inquiry, user_id: str, side: Side, actor_id: str) -> InquiryAssignee:
    """
    Add an assignee and its ASSIGNEE_ADDED activity (no commit).

    Raises:
        InvalidRequestError: user is not eligible for the side
        AlreadyExistsError: user is already assigned to the inquiry
    """
    validate_candidates(db, inquiry.project, [user_id], side)

    if get_assignee(db, inquiry.id, user_id) is not None:
        raise AlreadyExistsError("User is already assigned to this inquiry")

    assignee = InquiryAssignee(inquiry_id=inquiry.id, user_id=user_id, side=side)
    db.add(assignee)
    try:
        db.flush()
    except IntegrityError:
        # A concurrent add won the race on uq_inquiry_assignee
        db.rollback()
        raise AlreadyExistsError("User is already assigned to this inquiry")

    activity.record(db, inquiry.id, ActivityType.ASSIGNEE_ADDED, actor_id, target_id=user_id)
    logger.info(f"Assignee {user_id} ({side.value}) added to inquiry {inquiry.id}")
    return assignee


def remove(
    db: Session,
    inquiry: Inquiry,
    assignee_id: str,
    actor_id: str,
    allowed_side: Optional[Side] = None,
) -> InquiryAssignee:
    """
    Remove an assignee and write ASSIGNEE_REMOVED (no commit).

    ``allowed_side`` restricts which side the caller may remove from.
    """
    assignee = (
        db.query(InquiryAssignee)
        .filter(
            InquiryAssignee.id == assignee_id,
            InquiryAssignee.inquiry_id == inquiry.id,
        )
        .first()
    )
    if not assignee:
        raise NotFoundError("Assignee not found")
    if allowed_side is not None and assignee.side != allowed_side:
        raise ForbiddenError(f"Only {allowed_side.value} assignees can be removed here")
    if assignee.is_creator:
        raise InvalidRequestError("The creator cannot be removed from an inquiry")

    target_id = assignee.user_id
    db.delete(assignee)
    db.flush()
    activity.record(db, inquiry.id, ActivityType.ASSIGNEE_REMOVED, actor_id, target_id=target_id)
    logger.info(f"Assignee {target_id} removed from inquiry {inquiry.id}")
    return assignee
