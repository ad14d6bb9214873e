"""
Identity Resolution
===================

Builds the per-request authorization context. Authentication happens
upstream: the gateway forwards the verified user id in ``X-User-Id``.

Committee facts (bureau, granted permissions) are loaded alongside the user
so the permission gate can decide without further lookups of its own.

Authorization Flow:
1. Read the user id from the X-User-Id header
2. Load the active user and, if any, their committee membership
3. Committee routes additionally require committee membership
4. Project routes additionally require project membership
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Set

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .db.models import Bureau, CommitteePermission, Project, User
from .db.session import get_db
from .errors import ForbiddenError, NotFoundError, UnauthorizedError
from .memberships import get_committee_member, get_project, is_project_member

logger = logging.getLogger(__name__)


# =============================================================================
# AUTH CONTEXT
# =============================================================================

@dataclass
class AuthContext:
    """Authorization context for a request"""
    user_id: str
    name: str
    email: str
    committee_member_id: Optional[str] = None
    bureau: Optional[Bureau] = None
    permissions: Set[CommitteePermission] = field(default_factory=set)

    @property
    def is_committee_member(self) -> bool:
        return self.committee_member_id is not None

    @property
    def is_inquiry_admin(self) -> bool:
        return self.has_permission(CommitteePermission.INQUIRY_ADMIN)

    def has_permission(self, permission: CommitteePermission) -> bool:
        """Check if the user holds a committee permission"""
        return self.is_committee_member and permission in self.permissions


# =============================================================================
# AUTH SERVICE
# =============================================================================

class AuthService:
    """Loads identity facts for a user id"""

    def __init__(self, db: Session):
        self.db = db

    def get_auth_context(self, user_id: str) -> Optional[AuthContext]:
        """
        Build auth context for a user.

        Args:
            user_id: User ID forwarded by the gateway

        Returns:
            AuthContext if the user exists and is not deleted, None otherwise
        """
        user = (
            self.db.query(User)
            .filter(User.id == user_id, User.deleted_at.is_(None))
            .first()
        )
        if not user:
            logger.warning(f"Auth failed: user {user_id} not found or deleted")
            return None

        member = get_committee_member(self.db, user.id)
        if member is None:
            return AuthContext(user_id=user.id, name=user.name, email=user.email)

        return AuthContext(
            user_id=user.id,
            name=user.name,
            email=user.email,
            committee_member_id=member.id,
            bureau=member.bureau,
            permissions={p.permission for p in member.permissions},
        )


def get_auth_service(db: Session) -> AuthService:
    """Get AuthService instance for a database session"""
    return AuthService(db)


# =============================================================================
# FASTAPI DEPENDENCY HELPERS
# =============================================================================

async def get_auth_context(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Resolve the caller, or fail with 401."""
    if not x_user_id:
        raise UnauthorizedError("Authentication required")

    auth = get_auth_service(db).get_auth_context(x_user_id.strip())
    if not auth:
        raise UnauthorizedError("User not found")
    return auth


async def require_committee_member(
    auth: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Caller must currently hold committee membership."""
    if not auth.is_committee_member:
        logger.warning(f"Committee access denied: {auth.user_id} is not a committee member")
        raise ForbiddenError("Committee membership required")
    return auth


async def require_project_member(
    project_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> Project:
    """Caller must be owner, sub-owner or member of the project in the path."""
    project = get_project(db, project_id)
    if not project:
        raise NotFoundError("Project not found")
    if not is_project_member(db, project, auth.user_id):
        logger.warning(f"Project access denied: {auth.user_id} is not in project {project_id}")
        raise ForbiddenError("Not a member of this project")
    return project
