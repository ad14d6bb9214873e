"""
Viewer scope matching.

A viewer rule grants read access to everyone (ALL), to one bureau (BUREAU)
or to one named user (INDIVIDUAL). Rules are scanned in insertion order and
the first match wins.
"""

from typing import Iterable, Optional

from .db.models import Bureau, InquiryViewer, ViewerScope


def rule_matches(viewer: InquiryViewer, user_id: str, user_bureau: Optional[Bureau]) -> bool:
    if viewer.scope == ViewerScope.ALL:
        return True
    if viewer.scope == ViewerScope.BUREAU:
        return user_bureau is not None and viewer.bureau_value == user_bureau
    if viewer.scope == ViewerScope.INDIVIDUAL:
        return viewer.user_id == user_id
    return False


def matches(viewers: Iterable[InquiryViewer], user_id: str, user_bureau: Optional[Bureau]) -> bool:
    """True if any rule admits the user."""
    for viewer in viewers:
        if rule_matches(viewer, user_id, user_bureau):
            return True
    return False
