"""
Database Package - SQLAlchemy
=============================

Persistence layer for inquiries, identity facts, files and notices.
"""

from .models import (
    Base,
    User, CommitteeMember, CommitteeMemberPermission, Project, ProjectMember,
    File,
    Inquiry, InquiryAssignee, InquiryViewer, InquiryComment, InquiryAttachment, InquiryActivity,
    Notice, NoticeCollaborator, NoticeAttachment, NoticeDelivery,
    Bureau, CommitteePermission, InquiryStatus, Side, ViewerScope, ActivityType, FileStatus,
)
from .session import get_db, get_db_session, init_db, get_engine, reset_engine, atomic

__all__ = [
    # Base
    "Base",
    # Identity
    "User", "CommitteeMember", "CommitteeMemberPermission", "Project", "ProjectMember",
    # Files
    "File",
    # Inquiries
    "Inquiry", "InquiryAssignee", "InquiryViewer", "InquiryComment", "InquiryAttachment", "InquiryActivity",
    # Notices
    "Notice", "NoticeCollaborator", "NoticeAttachment", "NoticeDelivery",
    # Enums
    "Bureau", "CommitteePermission", "InquiryStatus", "Side", "ViewerScope", "ActivityType", "FileStatus",
    # Session
    "get_db", "get_db_session", "init_db", "get_engine", "reset_engine", "atomic",
]
