"""
SQLAlchemy Models for Database
==============================

Schema for the festival inquiry service:
- Identity facts (Users, Committee members + permissions, Projects + members)
- Files (metadata only; bytes live in object storage)
- Inquiries with assignees, viewers, comments, attachments and activity log
- Notices (read side only, for attachment access checks)

Supports both PostgreSQL and SQLite via SQLAlchemy.
"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Integer, BigInteger, Boolean, DateTime, Enum, ForeignKey,
    UniqueConstraint, Index
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


# =============================================================================
# ENUMS
# =============================================================================

class Bureau(str, enum.Enum):
    """Committee sub-departments"""
    FINANCE = "FINANCE"
    GENERAL_AFFAIRS = "GENERAL_AFFAIRS"
    PUBLIC_RELATIONS = "PUBLIC_RELATIONS"
    EXTERNAL = "EXTERNAL"
    PROMOTION = "PROMOTION"
    PLANNING = "PLANNING"
    STAGE_MANAGEMENT = "STAGE_MANAGEMENT"
    HQ_PLANNING = "HQ_PLANNING"
    INFO_SYSTEM = "INFO_SYSTEM"
    INFORMATION = "INFORMATION"


class CommitteePermission(str, enum.Enum):
    """Grants held by individual committee members"""
    INQUIRY_ADMIN = "INQUIRY_ADMIN"
    MEMBER_EDIT = "MEMBER_EDIT"
    NOTICE_DELIVER = "NOTICE_DELIVER"
    FORM_DELIVER = "FORM_DELIVER"


class InquiryStatus(str, enum.Enum):
    """Inquiry lifecycle status"""
    UNASSIGNED = "UNASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"


class Side(str, enum.Enum):
    """Population an assignee, creator or comment sender belongs to"""
    PROJECT = "PROJECT"
    COMMITTEE = "COMMITTEE"


class ViewerScope(str, enum.Enum):
    """Breadth of a read-access rule"""
    ALL = "ALL"
    BUREAU = "BUREAU"
    INDIVIDUAL = "INDIVIDUAL"


class ActivityType(str, enum.Enum):
    """Audit trail entry types"""
    ASSIGNEE_ADDED = "ASSIGNEE_ADDED"
    ASSIGNEE_REMOVED = "ASSIGNEE_REMOVED"
    VIEWER_UPDATED = "VIEWER_UPDATED"
    STATUS_RESOLVED = "STATUS_RESOLVED"
    STATUS_REOPENED = "STATUS_REOPENED"


class FileStatus(str, enum.Enum):
    """Upload status"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"


# =============================================================================
# IDENTITY MODELS
# =============================================================================

class User(Base):
    """Registered user (committee staff or project member)"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    committee_member = relationship("CommitteeMember", back_populates="user", uselist=False)


class CommitteeMember(Base):
    """Organizing-committee membership (revoked by setting deleted_at)"""
    __tablename__ = "committee_members"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    bureau = Column(Enum(Bureau), nullable=False)
    is_executive = Column(Boolean, default=False)
    joined_at = Column(DateTime, default=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="committee_member")
    permissions = relationship("CommitteeMemberPermission", back_populates="committee_member", cascade="all, delete-orphan")


class CommitteeMemberPermission(Base):
    """Permission granted to a committee member"""
    __tablename__ = "committee_member_permissions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    committee_member_id = Column(String(36), ForeignKey("committee_members.id", ondelete="CASCADE"), nullable=False)
    permission = Column(Enum(CommitteePermission), nullable=False)
    granted_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("committee_member_id", "permission", name="uq_member_permission"),
    )

    committee_member = relationship("CommitteeMember", back_populates="permissions")


class Project(Base):
    """Exhibiting project"""
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sub_owner_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")


class ProjectMember(Base):
    """Project membership (left projects keep the row with deleted_at set)"""
    __tablename__ = "project_members"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at = Column(DateTime, default=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_member"),
    )

    project = relationship("Project", back_populates="members")


# =============================================================================
# FILES
# =============================================================================

class File(Base):
    """Uploaded file metadata"""
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    key = Column(String(500), nullable=False, unique=True)  # object storage key
    file_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    is_public = Column(Boolean, default=False, nullable=False)
    status = Column(Enum(FileStatus), default=FileStatus.PENDING, nullable=False)
    uploaded_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)


# =============================================================================
# INQUIRY MODELS
# =============================================================================

class Inquiry(Base):
    """Inquiry thread between a project and the committee"""
    __tablename__ = "inquiries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)
    status = Column(Enum(InquiryStatus), default=InquiryStatus.UNASSIGNED, nullable=False)
    creator_role = Column(Enum(Side), nullable=False)
    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    related_form_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_inquiry_project", "project_id"),
        Index("ix_inquiry_updated", "updated_at"),
    )

    created_by = relationship("User", foreign_keys=[created_by_id])
    project = relationship("Project")
    assignees = relationship(
        "InquiryAssignee", back_populates="inquiry", cascade="all, delete-orphan",
        order_by="InquiryAssignee.assigned_at",
    )
    viewers = relationship(
        "InquiryViewer", back_populates="inquiry", cascade="all, delete-orphan",
        order_by="InquiryViewer.position",
    )
    comments = relationship(
        "InquiryComment", back_populates="inquiry", cascade="all, delete-orphan",
        order_by="InquiryComment.created_at",
    )
    activities = relationship(
        "InquiryActivity", back_populates="inquiry", cascade="all, delete-orphan",
        order_by="InquiryActivity.seq",
    )
    attachments = relationship("InquiryAttachment", back_populates="inquiry", cascade="all, delete-orphan")


class InquiryAssignee(Base):
    """User responsible for an inquiry on one side"""
    __tablename__ = "inquiry_assignees"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    side = Column(Enum(Side), nullable=False)
    is_creator = Column(Boolean, default=False, nullable=False)
    assigned_at = Column(DateTime, default=datetime.utcnow)

    # One row per (inquiry, user) regardless of side
    __table_args__ = (
        UniqueConstraint("inquiry_id", "user_id", name="uq_inquiry_assignee"),
        Index("ix_assignee_user_side", "user_id", "side"),
    )

    inquiry = relationship("Inquiry", back_populates="assignees")
    user = relationship("User")


class InquiryViewer(Base):
    """Read-access rule on an inquiry"""
    __tablename__ = "inquiry_viewers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id", ondelete="CASCADE"), nullable=False)
    scope = Column(Enum(ViewerScope), nullable=False)
    bureau_value = Column(Enum(Bureau), nullable=True)  # set for BUREAU
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)  # set for INDIVIDUAL
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_viewer_inquiry", "inquiry_id", "position"),
    )

    inquiry = relationship("Inquiry", back_populates="viewers")
    user = relationship("User")


class InquiryComment(Base):
    """Message posted on an inquiry thread"""
    __tablename__ = "inquiry_comments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id", ondelete="CASCADE"), nullable=False)
    body = Column(Text, nullable=False)
    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    sender_role = Column(Enum(Side), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    inquiry = relationship("Inquiry", back_populates="comments")
    created_by = relationship("User")
    attachments = relationship("InquiryAttachment", back_populates="comment")


class InquiryAttachment(Base):
    """File attached to an inquiry body (comment_id NULL) or to a comment"""
    __tablename__ = "inquiry_attachments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id", ondelete="CASCADE"), nullable=False)
    comment_id = Column(String(36), ForeignKey("inquiry_comments.id", ondelete="CASCADE"), nullable=True)
    file_id = Column(String(36), ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_inquiry_attachment_file", "file_id"),
    )

    inquiry = relationship("Inquiry", back_populates="attachments")
    comment = relationship("InquiryComment", back_populates="attachments")
    file = relationship("File")


class InquiryActivity(Base):
    """Append-only audit record"""
    __tablename__ = "inquiry_activities"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    inquiry_id = Column(String(36), ForeignKey("inquiries.id", ondelete="CASCADE"), nullable=False)
    type = Column(Enum(ActivityType), nullable=False)
    actor_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    target_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    seq = Column(Integer, nullable=False, default=0)  # per-inquiry insertion order
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_activity_inquiry", "inquiry_id", "created_at"),
    )

    inquiry = relationship("Inquiry", back_populates="activities")
    actor = relationship("User", foreign_keys=[actor_id])
    target = relationship("User", foreign_keys=[target_id])


# =============================================================================
# NOTICE MODELS (read side for attachment checks)
# =============================================================================

class Notice(Base):
    """Broadcast notice authored by the committee"""
    __tablename__ = "notices"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(500), nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    collaborators = relationship("NoticeCollaborator", back_populates="notice", cascade="all, delete-orphan")
    deliveries = relationship("NoticeDelivery", back_populates="notice", cascade="all, delete-orphan")


class NoticeCollaborator(Base):
    __tablename__ = "notice_collaborators"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    notice_id = Column(String(36), ForeignKey("notices.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    notice = relationship("Notice", back_populates="collaborators")


class NoticeAttachment(Base):
    __tablename__ = "notice_attachments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    notice_id = Column(String(36), ForeignKey("notices.id", ondelete="CASCADE"), nullable=False)
    file_id = Column(String(36), ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    notice = relationship("Notice")


class NoticeDelivery(Base):
    """Approved (or pending) delivery of a notice to a project"""
    __tablename__ = "notice_deliveries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    notice_id = Column(String(36), ForeignKey("notices.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    approved = Column(Boolean, default=False, nullable=False)
    delivered_at = Column(DateTime, nullable=True)

    notice = relationship("Notice", back_populates="deliveries")
