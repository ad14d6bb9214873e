"""
Project-side Inquiry Endpoints
==============================

Callers must belong to the project in the path, and may only act on
inquiries where they are a PROJECT assignee. Assignee changes from this
side are limited to PROJECT assignees.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import inquiries
from ..auth import AuthContext, get_auth_context, require_project_member
from ..db.models import Project, Side
from ..db.session import get_db
from ..errors import ForbiddenError
from ..permissions import require_project_assignee
from ..schemas import (
    AssigneeAdd, AssigneeResponse, CommentCreate, CommentResponse,
    InquiryDetailResponse, InquiryListResponse, InquiryResponse, ProjectInquiryCreate, SuccessResponse,
    assignee_out, comment_out, inquiry_detail_out, inquiry_out, inquiry_summary_out,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/project/{project_id}/inquiries", tags=["project-inquiry"])


def _assigned_inquiry(db: Session, project: Project, inquiry_id: str, auth: AuthContext):
    inquiry = inquiries.get_inquiry(db, inquiry_id, project_id=project.id)
    require_project_assignee(db, inquiry, auth)
    return inquiry


@router.post("", response_model=InquiryResponse, status_code=201)
def create_inquiry(
    data: ProjectInquiryCreate,
    project: Project = Depends(require_project_member),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    inquiry = inquiries.create_project_inquiry(db, auth, project, data)
    return InquiryResponse(inquiry=inquiry_out(inquiry))


@router.get("", response_model=InquiryListResponse)
def list_inquiries(
    project: Project = Depends(require_project_member),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    rows = inquiries.list_project_inquiries(db, auth, project)
    return InquiryListResponse(inquiries=[inquiry_summary_out(i) for i in rows])


@router.get("/{inquiry_id}", response_model=InquiryDetailResponse)
def get_inquiry(
    inquiry_id: str,
    project: Project = Depends(require_project_member),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    inquiry = _assigned_inquiry(db, project, inquiry_id, auth)
    return InquiryDetailResponse(inquiry=inquiry_detail_out(inquiry, include_viewers=False))


@router.post("/{inquiry_id}/comments", response_model=CommentResponse, status_code=201)
def add_comment(
    inquiry_id: str,
    data: CommentCreate,
    project: Project = Depends(require_project_member),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    inquiry = _assigned_inquiry(db, project, inquiry_id, auth)
    comment = inquiries.add_comment(db, auth, inquiry, data.body, Side.PROJECT, data.file_ids)
    return CommentResponse(comment=comment_out(comment))


@router.patch("/{inquiry_id}/reopen", response_model=InquiryResponse)
def reopen_inquiry(
    inquiry_id: str,
    project: Project = Depends(require_project_member),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    inquiry = _assigned_inquiry(db, project, inquiry_id, auth)
    inquiries.reopen(db, auth, inquiry)
    return InquiryResponse(inquiry=inquiry_out(inquiry))


@router.post("/{inquiry_id}/assignees", response_model=AssigneeResponse, status_code=201)
def add_assignee(
    inquiry_id: str,
    data: AssigneeAdd,
    project: Project = Depends(require_project_member),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    inquiry = _assigned_inquiry(db, project, inquiry_id, auth)
    if data.side != Side.PROJECT:
        raise ForbiddenError("Only PROJECT assignees can be added here")
    assignee = inquiries.add_assignee(db, auth, inquiry, data.user_id, Side.PROJECT)
    return AssigneeResponse(assignee=assignee_out(assignee))


@router.delete("/{inquiry_id}/assignees/{assignee_id}", response_model=SuccessResponse)
def remove_assignee(
    inquiry_id: str,
    assignee_id: str,
    project: Project = Depends(require_project_member),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    inquiry = _assigned_inquiry(db, project, inquiry_id, auth)
    inquiries.remove_assignee(db, auth, inquiry, assignee_id, allowed_side=Side.PROJECT)
    return SuccessResponse()
