"""
Inquiry activity log.

Append-only audit trail. Entries are added to the caller's session and
commit together with the mutation they describe.
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .db.models import ActivityType, InquiryActivity

logger = logging.getLogger(__name__)


def record(
    db: Session,
    inquiry_id: str,
    activity_type: ActivityType,
    actor_id: str,
    target_id: Optional[str] = None,
) -> InquiryActivity:
    """Append one activity entry (no commit)."""
    last_seq = (
        db.query(func.max(InquiryActivity.seq))
        .filter(InquiryActivity.inquiry_id == inquiry_id)
        .scalar()
    )
    entry = InquiryActivity(
        inquiry_id=inquiry_id,
        type=activity_type,
        actor_id=actor_id,
        target_id=target_id,
        seq=(last_seq or 0) + 1,
    )
    db.add(entry)
    db.flush()
    logger.info(f"Activity {activity_type.value} on inquiry {inquiry_id} by {actor_id}")
    return entry


def list_for_inquiry(db: Session, inquiry_id: str) -> List[InquiryActivity]:
    return (
        db.query(InquiryActivity)
        .filter(InquiryActivity.inquiry_id == inquiry_id)
        .order_by(InquiryActivity.seq.asc())
        .all()
    )
