"""
Pydantic Schemas for the Inquiry Service
========================================

Request bodies are validated here; responses are built from ORM rows by
the ``*_out`` helpers at the bottom of the module.
"""

from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from .db.models import (
    ActivityType, Bureau, InquiryStatus, Side, ViewerScope,
    Inquiry, InquiryActivity, InquiryAssignee, InquiryAttachment, InquiryComment, InquiryViewer, User,
)


# =============================================================================
# REQUESTS
# =============================================================================

class ViewerInput(BaseModel):
    """One read-access rule"""
    scope: ViewerScope
    bureau_value: Optional[Bureau] = Field(None, description="Required for BUREAU scope")
    user_id: Optional[str] = Field(None, description="Required for INDIVIDUAL scope")

    @model_validator(mode="after")
    def check_target(self):
        if self.scope == ViewerScope.ALL:
            if self.bureau_value is not None or self.user_id is not None:
                raise ValueError("ALL scope takes neither bureau_value nor user_id")
        elif self.scope == ViewerScope.BUREAU:
            if self.bureau_value is None or self.user_id is not None:
                raise ValueError("BUREAU scope requires bureau_value only")
        elif self.scope == ViewerScope.INDIVIDUAL:
            if not self.user_id or self.bureau_value is not None:
                raise ValueError("INDIVIDUAL scope requires user_id only")
        return self


class CommitteeInquiryCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    body: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    project_assignee_user_ids: List[str] = Field(..., min_length=1, description="At least one project-side assignee")
    committee_assignee_user_ids: List[str] = Field(default_factory=list)
    file_ids: List[str] = Field(default_factory=list)
    viewers: List[ViewerInput] = Field(default_factory=list)
    related_form_id: Optional[str] = None


class ProjectInquiryCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    body: str = Field(..., min_length=1)
    co_assignee_user_ids: List[str] = Field(default_factory=list)
    file_ids: List[str] = Field(default_factory=list)


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1)
    file_ids: List[str] = Field(default_factory=list)


class StatusUpdate(BaseModel):
    """Only RESOLVED can be requested; reopening has its own route."""
    status: InquiryStatus

    @field_validator("status")
    @classmethod
    def only_resolved(cls, value: InquiryStatus) -> InquiryStatus:
        if value != InquiryStatus.RESOLVED:
            raise ValueError("status can only be set to RESOLVED")
        return value


class AssigneeAdd(BaseModel):
    user_id: str = Field(..., min_length=1)
    side: Side


class ViewersUpdate(BaseModel):
    viewers: List[ViewerInput]


# =============================================================================
# RESPONSES
# =============================================================================

class UserSummary(BaseModel):
    id: str
    name: str
    email: str


class AssigneeOut(BaseModel):
    id: str
    user_id: str
    side: Side
    is_creator: bool
    assigned_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


class ViewerOut(BaseModel):
    id: str
    scope: ViewerScope
    bureau_value: Optional[Bureau] = None
    user: Optional[UserSummary] = None
    created_at: Optional[datetime] = None


class AttachmentOut(BaseModel):
    id: str
    file_id: str
    file_name: str
    mime_type: str
    size: int
    is_public: bool


class CommentOut(BaseModel):
    id: str
    body: str
    sender_role: Side
    created_at: Optional[datetime] = None
    created_by: Optional[UserSummary] = None
    attachments: List[AttachmentOut] = Field(default_factory=list)


class ActivityOut(BaseModel):
    id: str
    type: ActivityType
    created_at: Optional[datetime] = None
    actor: Optional[UserSummary] = None
    target: Optional[UserSummary] = None


class InquiryOut(BaseModel):
    id: str
    title: str
    body: str
    status: InquiryStatus
    creator_role: Side
    created_by_id: Optional[str] = None
    project_id: str
    related_form_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectRef(BaseModel):
    id: str
    name: str


class InquirySummary(InquiryOut):
    project: Optional[ProjectRef] = None
    project_assignees: List[AssigneeOut] = Field(default_factory=list)
    committee_assignees: List[AssigneeOut] = Field(default_factory=list)
    comment_count: int = 0


class InquiryDetail(InquiryOut):
    created_by: Optional[UserSummary] = None
    project: Optional[ProjectRef] = None
    project_assignees: List[AssigneeOut] = Field(default_factory=list)
    committee_assignees: List[AssigneeOut] = Field(default_factory=list)
    viewers: Optional[List[ViewerOut]] = Field(None, description="Committee side only")
    comments: List[CommentOut] = Field(default_factory=list)
    activities: List[ActivityOut] = Field(default_factory=list)
    attachments: List[AttachmentOut] = Field(default_factory=list)


class InquiryResponse(BaseModel):
    inquiry: InquiryOut


class InquiryDetailResponse(BaseModel):
    inquiry: InquiryDetail


class InquiryListResponse(BaseModel):
    inquiries: List[InquirySummary]


class CommentResponse(BaseModel):
    comment: CommentOut


class AssigneeResponse(BaseModel):
    assignee: AssigneeOut


class ViewersResponse(BaseModel):
    viewers: List[ViewerOut]


class SuccessResponse(BaseModel):
    success: bool = True


class FileTokenResponse(BaseModel):
    token: str
    expires_at: int = Field(..., description="Unix seconds")


# =============================================================================
# ORM -> RESPONSE HELPERS
# =============================================================================

def user_out(user: Optional[User]) -> Optional[UserSummary]:
    if user is None:
        return None
    return UserSummary(id=user.id, name=user.name, email=user.email)


def assignee_out(assignee: InquiryAssignee) -> AssigneeOut:
    return AssigneeOut(
        id=assignee.id,
        user_id=assignee.user_id,
        side=assignee.side,
        is_creator=assignee.is_creator,
        assigned_at=assignee.assigned_at,
        user=user_out(assignee.user),
    )


def viewer_out(viewer: InquiryViewer) -> ViewerOut:
    return ViewerOut(
        id=viewer.id,
        scope=viewer.scope,
        bureau_value=viewer.bureau_value,
        user=user_out(viewer.user),
        created_at=viewer.created_at,
    )


def attachment_out(attachment: InquiryAttachment) -> AttachmentOut:
    f = attachment.file
    return AttachmentOut(
        id=attachment.id,
        file_id=f.id,
        file_name=f.file_name,
        mime_type=f.mime_type,
        size=f.size or 0,
        is_public=f.is_public,
    )


def comment_out(comment: InquiryComment) -> CommentOut:
    return CommentOut(
        id=comment.id,
        body=comment.body,
        sender_role=comment.sender_role,
        created_at=comment.created_at,
        created_by=user_out(comment.created_by),
        attachments=[attachment_out(a) for a in comment.attachments],
    )


def activity_out(entry: InquiryActivity) -> ActivityOut:
    return ActivityOut(
        id=entry.id,
        type=entry.type,
        created_at=entry.created_at,
        actor=user_out(entry.actor),
        target=user_out(entry.target),
    )


def _base_fields(inquiry: Inquiry) -> dict:
    return dict(
        id=inquiry.id,
        title=inquiry.title,
        body=inquiry.body,
        status=inquiry.status,
        creator_role=inquiry.creator_role,
        created_by_id=inquiry.created_by_id,
        project_id=inquiry.project_id,
        related_form_id=inquiry.related_form_id,
        created_at=inquiry.created_at,
        updated_at=inquiry.updated_at,
    )


def _project_ref(inquiry: Inquiry) -> Optional[ProjectRef]:
    if inquiry.project is None:
        return None
    return ProjectRef(id=inquiry.project.id, name=inquiry.project.name)


def _by_side(inquiry: Inquiry, side: Side) -> List[AssigneeOut]:
    return [assignee_out(a) for a in inquiry.assignees if a.side == side]


def inquiry_out(inquiry: Inquiry) -> InquiryOut:
    return InquiryOut(**_base_fields(inquiry))


def inquiry_summary_out(inquiry: Inquiry) -> InquirySummary:
    return InquirySummary(
        **_base_fields(inquiry),
        project=_project_ref(inquiry),
        project_assignees=_by_side(inquiry, Side.PROJECT),
        committee_assignees=_by_side(inquiry, Side.COMMITTEE),
        comment_count=len(inquiry.comments),
    )


def inquiry_detail_out(inquiry: Inquiry, include_viewers: bool) -> InquiryDetail:
    return InquiryDetail(
        **_base_fields(inquiry),
        created_by=user_out(inquiry.created_by),
        project=_project_ref(inquiry),
        project_assignees=_by_side(inquiry, Side.PROJECT),
        committee_assignees=_by_side(inquiry, Side.COMMITTEE),
        viewers=[viewer_out(v) for v in inquiry.viewers] if include_viewers else None,
        comments=[comment_out(c) for c in inquiry.comments],
        activities=[activity_out(a) for a in inquiry.activities],
        attachments=[attachment_out(a) for a in inquiry.attachments if a.comment_id is None],
    )
