"""
Committee-side Inquiry Endpoints
================================

All routes require committee membership. Reads go through the view gate
(admin, committee assignee, or viewer rule); writes through the mutate
gate (admin or committee assignee).
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import inquiries
from ..auth import AuthContext, require_committee_member
from ..db.models import Side
from ..db.session import get_db
from ..permissions import require_mutate, require_view
from ..schemas import (
    AssigneeAdd, AssigneeResponse, CommentCreate, CommentResponse,
    CommitteeInquiryCreate, InquiryDetailResponse, InquiryListResponse, InquiryResponse,
    StatusUpdate, SuccessResponse, ViewersResponse, ViewersUpdate,
    assignee_out, comment_out, inquiry_detail_out, inquiry_out, inquiry_summary_out, viewer_out,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/committee/inquiries", tags=["committee-inquiry"])


@router.post("", response_model=InquiryResponse, status_code=201)
def create_inquiry(
    data: CommitteeInquiryCreate,
    auth: AuthContext = Depends(require_committee_member),
    db: Session = Depends(get_db),
):
    inquiry = inquiries.create_committee_inquiry(db, auth, data)
    return InquiryResponse(inquiry=inquiry_out(inquiry))


@router.get("", response_model=InquiryListResponse)
def list_inquiries(
    auth: AuthContext = Depends(require_committee_member),
    db: Session = Depends(get_db),
):
    rows = inquiries.list_committee_inquiries(db, auth)
    return InquiryListResponse(inquiries=[inquiry_summary_out(i) for i in rows])


@router.get("/{inquiry_id}", response_model=InquiryDetailResponse)
def get_inquiry(
    inquiry_id: str,
    auth: AuthContext = Depends(require_committee_member),
    db: Session = Depends(get_db),
):
    inquiry = inquiries.get_inquiry(db, inquiry_id)
    require_view(db, inquiry, auth)
    return InquiryDetailResponse(inquiry=inquiry_detail_out(inquiry, include_viewers=True))


@router.post("/{inquiry_id}/comments", response_model=CommentResponse, status_code=201)
def add_comment(
    inquiry_id: str,
    data: CommentCreate,
    auth: AuthContext = Depends(require_committee_member),
    db: Session = Depends(get_db),
):
    inquiry = inquiries.get_inquiry(db, inquiry_id)
    require_mutate(db, inquiry, auth)
    comment = inquiries.add_comment(db, auth, inquiry, data.body, Side.COMMITTEE, data.file_ids)
    return CommentResponse(comment=comment_out(comment))


@router.patch("/{inquiry_id}/status", response_model=InquiryResponse)
def update_status(
    inquiry_id: str,
    data: StatusUpdate,
    auth: AuthContext = Depends(require_committee_member),
    db: Session = Depends(get_db),
):
    inquiry = inquiries.get_inquiry(db, inquiry_id)
    require_mutate(db, inquiry, auth)
    inquiries.resolve(db, auth, inquiry)
    return InquiryResponse(inquiry=inquiry_out(inquiry))


@router.patch("/{inquiry_id}/reopen", response_model=InquiryResponse)
def reopen_inquiry(
    inquiry_id: str,
    auth: AuthContext = Depends(require_committee_member),
    db: Session = Depends(get_db),
):
    inquiry = inquiries.get_inquiry(db, inquiry_id)
    require_mutate(db, inquiry, auth)
    inquiries.reopen(db, auth, inquiry)
    return InquiryResponse(inquiry=inquiry_out(inquiry))


@router.post("/{inquiry_id}/assignees", response_model=AssigneeResponse, status_code=201)
def add_assignee(
    inquiry_id: str,
    data: AssigneeAdd,
    auth: AuthContext = Depends(require_committee_member),
    db: Session = Depends(get_db),
):
    inquiry = inquiries.get_inquiry(db, inquiry_id)
    require_mutate(db, inquiry, auth)
    assignee = inquiries.add_assignee(db, auth, inquiry, data.user_id, data.side)
    return AssigneeResponse(assignee=assignee_out(assignee))


@router.delete("/{inquiry_id}/assignees/{assignee_id}", response_model=SuccessResponse)
def remove_assignee(
    inquiry_id: str,
    assignee_id: str,
    auth: AuthContext = Depends(require_committee_member),
    db: Session = Depends(get_db),
):
    inquiry = inquiries.get_inquiry(db, inquiry_id)
    require_mutate(db, inquiry, auth)
    inquiries.remove_assignee(db, auth, inquiry, assignee_id)
    return SuccessResponse()


@router.put("/{inquiry_id}/viewers", response_model=ViewersResponse)
def update_viewers(
    inquiry_id: str,
    data: ViewersUpdate,
    auth: AuthContext = Depends(require_committee_member),
    db: Session = Depends(get_db),
):
    inquiry = inquiries.get_inquiry(db, inquiry_id)
    require_mutate(db, inquiry, auth)
    rows = inquiries.set_viewers(db, auth, inquiry, data.viewers)
    return ViewersResponse(viewers=[viewer_out(v) for v in rows])
