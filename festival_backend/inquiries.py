"""
Inquiry Workflow
================

Status lifecycle and the inquiry operations built on it.

    UNASSIGNED --(committee assignee added)--> IN_PROGRESS
    UNASSIGNED / IN_PROGRESS --(resolve)--> RESOLVED
    RESOLVED --(reopen)--> IN_PROGRESS

Committee-created inquiries start IN_PROGRESS, project-created ones start
UNASSIGNED. There is no terminal state.

Every operation here assumes the caller already passed the permission gate.
Compound writes commit once through ``atomic``; notifications go out after
the commit.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from . import activity, assignees, notifications
from .auth import AuthContext
from .db.models import (
    ActivityType, File, FileStatus, Inquiry, InquiryAssignee, InquiryAttachment,
    InquiryComment, InquiryStatus, InquiryViewer, Project, Side, User, ViewerScope,
)
from .db.session import atomic
from .errors import InvalidRequestError, InvalidStateError, NotFoundError
from .memberships import get_project
from .schemas import CommitteeInquiryCreate, ProjectInquiryCreate, ViewerInput

logger = logging.getLogger(__name__)


# =============================================================================
# STATE MACHINE
# =============================================================================

INITIAL_STATUS = {
    Side.COMMITTEE: InquiryStatus.IN_PROGRESS,
    Side.PROJECT: InquiryStatus.UNASSIGNED,
}


def initial_status(creator_role: Side) -> InquiryStatus:
    return INITIAL_STATUS[creator_role]


def status_after_assignee_added(status: InquiryStatus, side: Side) -> InquiryStatus:
    """Only a committee assignee on an UNASSIGNED inquiry moves it forward."""
    if side == Side.COMMITTEE and status == InquiryStatus.UNASSIGNED:
        return InquiryStatus.IN_PROGRESS
    return status


def status_after_resolve(status: InquiryStatus) -> InquiryStatus:
    if status == InquiryStatus.RESOLVED:
        raise InvalidStateError("Inquiry is already resolved")
    return InquiryStatus.RESOLVED


def status_after_reopen(status: InquiryStatus) -> InquiryStatus:
    if status != InquiryStatus.RESOLVED:
        raise InvalidStateError("Only resolved inquiries can be reopened")
    return InquiryStatus.IN_PROGRESS


def ensure_accepts_comments(status: InquiryStatus) -> None:
    if status == InquiryStatus.RESOLVED:
        raise InvalidStateError("Resolved inquiries do not accept comments")


# =============================================================================
# LOOKUPS
# =============================================================================

def get_inquiry(db: Session, inquiry_id: str, project_id: Optional[str] = None) -> Inquiry:
    query = db.query(Inquiry).filter(Inquiry.id == inquiry_id)
    if project_id is not None:
        query = query.filter(Inquiry.project_id == project_id)
    inquiry = query.first()
    if not inquiry:
        raise NotFoundError("Inquiry not found")
    return inquiry


def list_committee_inquiries(db: Session, user: AuthContext) -> List[Inquiry]:
    """All inquiries for INQUIRY_ADMIN; otherwise assigned or viewer-matched ones."""
    query = db.query(Inquiry)
    if not user.is_inquiry_admin:
        assigned = Inquiry.assignees.any(and_(
            InquiryAssignee.user_id == user.user_id,
            InquiryAssignee.side == Side.COMMITTEE,
        ))
        viewer_rules = [
            InquiryViewer.scope == ViewerScope.ALL,
            and_(InquiryViewer.scope == ViewerScope.INDIVIDUAL, InquiryViewer.user_id == user.user_id),
        ]
        if user.bureau is not None:
            viewer_rules.append(
                and_(InquiryViewer.scope == ViewerScope.BUREAU, InquiryViewer.bureau_value == user.bureau)
            )
        query = query.filter(or_(assigned, Inquiry.viewers.any(or_(*viewer_rules))))
    return query.order_by(Inquiry.updated_at.desc()).all()


def list_project_inquiries(db: Session, user: AuthContext, project: Project) -> List[Inquiry]:
    """Inquiries of the project on which the caller is a PROJECT assignee."""
    return (
        db.query(Inquiry)
        .filter(
            Inquiry.project_id == project.id,
            Inquiry.assignees.any(and_(
                InquiryAssignee.user_id == user.user_id,
                InquiryAssignee.side == Side.PROJECT,
            )),
        )
        .order_by(Inquiry.updated_at.desc())
        .all()
    )


# =============================================================================
# HELPERS
# =============================================================================

def _attachable_files(db: Session, file_ids: Iterable[str], uploader_id: str) -> List[File]:
    """Resolve attachment ids to CONFIRMED, non-deleted files uploaded by ``uploader_id``."""
    ids = assignees.dedupe(file_ids)
    if not ids:
        return []
    files = (
        db.query(File)
        .filter(
            File.id.in_(ids),
            File.status == FileStatus.CONFIRMED,
            File.deleted_at.is_(None),
            File.uploaded_by_id == uploader_id,
        )
        .all()
    )
    if len(files) != len(ids):
        found = {f.id for f in files}
        raise InvalidRequestError(
            "Some files cannot be attached",
            details={"file_ids": [i for i in ids if i not in found]},
        )
    return files


def _viewer_rows(db: Session, inquiry_id: str, inputs: Iterable[ViewerInput]) -> List[InquiryViewer]:
    rows: List[InquiryViewer] = []
    seen = set()
    for item in inputs:
        key = (item.scope, item.bureau_value, item.user_id)
        if key in seen:
            continue
        seen.add(key)
        if item.scope == ViewerScope.INDIVIDUAL:
            exists = db.query(User.id).filter(User.id == item.user_id, User.deleted_at.is_(None)).first()
            if not exists:
                raise InvalidRequestError("Viewer user not found", details={"user_id": item.user_id})
        rows.append(InquiryViewer(
            inquiry_id=inquiry_id,
            scope=item.scope,
            bureau_value=item.bureau_value,
            user_id=item.user_id,
            position=len(rows),
        ))
    return rows


def _load_user(db: Session, user_id: str) -> User:
    return db.query(User).filter(User.id == user_id).one()


# =============================================================================
# CREATE
# =============================================================================

def create_committee_inquiry(db: Session, user: AuthContext, data: CommitteeInquiryCreate) -> Inquiry:
    """
    Open an inquiry from the committee side.

    The caller becomes the COMMITTEE creator assignee and the inquiry starts
    IN_PROGRESS. Files must be CONFIRMED uploads of the caller.
    """
    project = get_project(db, data.project_id)
    if not project:
        raise NotFoundError("Project not found")

    project_ids = assignees.dedupe(data.project_assignee_user_ids)
    committee_ids = assignees.dedupe(data.committee_assignee_user_ids, exclude=user.user_id)
    both_sides = [i for i in project_ids if i in committee_ids or i == user.user_id]
    if both_sides:
        raise InvalidRequestError(
            "A user can only be assigned on one side", details={"user_ids": both_sides}
        )
    assignees.validate_candidates(db, project, project_ids, Side.PROJECT)
    assignees.validate_candidates(db, project, committee_ids, Side.COMMITTEE)
    files = _attachable_files(db, data.file_ids, uploader_id=user.user_id)

    with atomic(db):
        inquiry = Inquiry(
            title=data.title,
            body=data.body,
            status=initial_status(Side.COMMITTEE),
            creator_role=Side.COMMITTEE,
            created_by_id=user.user_id,
            project_id=project.id,
            related_form_id=data.related_form_id,
        )
        db.add(inquiry)
        db.flush()

        inquiry.assignees.append(InquiryAssignee(user_id=user.user_id, side=Side.COMMITTEE, is_creator=True))
        for user_id in project_ids:
            inquiry.assignees.append(InquiryAssignee(user_id=user_id, side=Side.PROJECT))
        for user_id in committee_ids:
            inquiry.assignees.append(InquiryAssignee(user_id=user_id, side=Side.COMMITTEE))
        for f in files:
            inquiry.attachments.append(InquiryAttachment(file_id=f.id))
        for row in _viewer_rows(db, inquiry.id, data.viewers):
            inquiry.viewers.append(row)

    logger.info(f"Committee inquiry {inquiry.id} created by {user.user_id} for project {project.id}")
    notifications.notify_inquiry_created(db, inquiry)
    return inquiry


def create_project_inquiry(
    db: Session, user: AuthContext, project: Project, data: ProjectInquiryCreate
) -> Inquiry:
    """Open an inquiry from a project. Starts UNASSIGNED."""
    co_ids = assignees.dedupe(data.co_assignee_user_ids, exclude=user.user_id)
    assignees.validate_candidates(db, project, co_ids, Side.PROJECT)
    files = _attachable_files(db, data.file_ids, uploader_id=user.user_id)

    with atomic(db):
        inquiry = Inquiry(
            title=data.title,
            body=data.body,
            status=initial_status(Side.PROJECT),
            creator_role=Side.PROJECT,
            created_by_id=user.user_id,
            project_id=project.id,
        )
        db.add(inquiry)
        db.flush()

        inquiry.assignees.append(InquiryAssignee(user_id=user.user_id, side=Side.PROJECT, is_creator=True))
        for user_id in co_ids:
            inquiry.assignees.append(InquiryAssignee(user_id=user_id, side=Side.PROJECT))
        for f in files:
            inquiry.attachments.append(InquiryAttachment(file_id=f.id))

    logger.info(f"Project inquiry {inquiry.id} created by {user.user_id} in project {project.id}")
    notifications.notify_inquiry_created(db, inquiry)
    return inquiry


# =============================================================================
# MUTATIONS
# =============================================================================

def add_comment(
    db: Session,
    user: AuthContext,
    inquiry: Inquiry,
    body: str,
    sender_role: Side,
    file_ids: Iterable[str] = (),
) -> InquiryComment:
    ensure_accepts_comments(inquiry.status)
    files = _attachable_files(db, file_ids, uploader_id=user.user_id)

    with atomic(db):
        comment = InquiryComment(
            inquiry_id=inquiry.id,
            body=body,
            created_by_id=user.user_id,
            sender_role=sender_role,
        )
        db.add(comment)
        db.flush()
        for f in files:
            comment.attachments.append(InquiryAttachment(inquiry_id=inquiry.id, file_id=f.id))
        inquiry.updated_at = datetime.utcnow()

    db.expire(inquiry)
    notifications.notify_comment_added(db, inquiry, _load_user(db, user.user_id), body)
    return comment


def _set_status(db: Session, inquiry: Inquiry, expected: InquiryStatus, new_status: InquiryStatus) -> None:
    """Write ``new_status`` only if the row still holds ``expected`` (no commit)."""
    updated = (
        db.query(Inquiry)
        .filter(Inquiry.id == inquiry.id, Inquiry.status == expected)
        .update({Inquiry.status: new_status}, synchronize_session=False)
    )
    if not updated:
        raise InvalidStateError("Inquiry status was changed by another request")


def resolve(db: Session, user: AuthContext, inquiry: Inquiry) -> Inquiry:
    with atomic(db):
        current = inquiry.status
        _set_status(db, inquiry, current, status_after_resolve(current))
        activity.record(db, inquiry.id, ActivityType.STATUS_RESOLVED, user.user_id)

    db.expire(inquiry)
    logger.info(f"Inquiry {inquiry.id} resolved by {user.user_id}")
    return inquiry


def reopen(db: Session, user: AuthContext, inquiry: Inquiry) -> Inquiry:
    with atomic(db):
        current = inquiry.status
        _set_status(db, inquiry, current, status_after_reopen(current))
        activity.record(db, inquiry.id, ActivityType.STATUS_REOPENED, user.user_id)

    db.expire(inquiry)
    logger.info(f"Inquiry {inquiry.id} reopened by {user.user_id}")
    return inquiry


def add_assignee(
    db: Session, user: AuthContext, inquiry: Inquiry, user_id: str, side: Side
) -> InquiryAssignee:
    """Add an assignee; a committee assignee on an UNASSIGNED inquiry starts work on it."""
    with atomic(db):
        assignee = assignees.add(db, inquiry, user_id, side, actor_id=user.user_id)
        new_status = status_after_assignee_added(inquiry.status, side)
        if new_status != inquiry.status:
            logger.info(f"Inquiry {inquiry.id}: {inquiry.status.value} -> {new_status.value}")
            inquiry.status = new_status

    db.expire(inquiry)
    notifications.notify_assignee_added(db, inquiry, user_id, side)
    return assignee


def remove_assignee(
    db: Session,
    user: AuthContext,
    inquiry: Inquiry,
    assignee_id: str,
    allowed_side: Optional[Side] = None,
) -> None:
    with atomic(db):
        assignees.remove(db, inquiry, assignee_id, actor_id=user.user_id, allowed_side=allowed_side)
    db.expire(inquiry)


def set_viewers(
    db: Session, user: AuthContext, inquiry: Inquiry, inputs: Iterable[ViewerInput]
) -> List[InquiryViewer]:
    """Replace the whole viewer set and record VIEWER_UPDATED."""
    with atomic(db):
        db.query(InquiryViewer).filter(InquiryViewer.inquiry_id == inquiry.id).delete(
            synchronize_session=False
        )
        rows = _viewer_rows(db, inquiry.id, inputs)
        db.add_all(rows)
        db.flush()
        activity.record(db, inquiry.id, ActivityType.VIEWER_UPDATED, user.user_id)

    db.expire(inquiry)
    logger.info(f"Viewers of inquiry {inquiry.id} replaced by {user.user_id} ({len(rows)} rule(s))")
    return rows
