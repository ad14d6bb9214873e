"""
File Access Endpoints
=====================

- GET /files/{file_id}/token   - Issue a short-lived access token
- GET /files/{file_id}/content - Redeem a token (or serve a public file)

Bytes are served by object storage; ``/content`` authorizes and redirects.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ..auth import AuthContext, get_auth_context
from ..config import get_settings
from ..db.models import File, FileStatus
from ..db.session import get_db
from ..errors import ForbiddenError, InvalidRequestError, NotFoundError, UnauthorizedError
from ..schemas import FileTokenResponse
from ..storage import FileAccessCheckerChain, build_default_chain, issue_file_token, verify_file_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


@lru_cache()
def get_file_access_chain() -> FileAccessCheckerChain:
    """Chain used by the file routes (override in tests via dependency_overrides)."""
    return build_default_chain()


def _get_file(db: Session, file_id: str) -> File:
    f = (
        db.query(File)
        .filter(File.id == file_id, File.status == FileStatus.CONFIRMED, File.deleted_at.is_(None))
        .first()
    )
    if not f:
        raise NotFoundError("File not found")
    return f


def _storage_url(f: File) -> str:
    return f"{get_settings().storage_base_url.rstrip('/')}/{f.key}"


@router.get("/{file_id}/token", response_model=FileTokenResponse)
def get_file_token(
    file_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
    chain: FileAccessCheckerChain = Depends(get_file_access_chain),
):
    f = _get_file(db, file_id)
    if f.is_public:
        raise InvalidRequestError("Public files do not need a token")

    if f.uploaded_by_id != auth.user_id and not chain.can_access_file(db, f.id, auth):
        logger.warning(f"File token denied: user {auth.user_id} on file {file_id}")
        raise ForbiddenError("You do not have access to this file")

    ttl = get_settings().file_token_ttl_seconds
    token, payload = issue_file_token(f.id, auth.user_id, ttl_seconds=ttl)
    logger.info(f"File token issued: file {file_id} to {auth.user_id}")
    return FileTokenResponse(token=token, expires_at=payload.expires_at)


@router.get("/{file_id}/content")
def get_file_content(
    file_id: str,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    f = _get_file(db, file_id)
    if not f.is_public:
        if not token or verify_file_token(token, f.id) is None:
            raise UnauthorizedError("Invalid or expired file token")
    return RedirectResponse(_storage_url(f), status_code=307)
