"""
Membership lookups, committee grants and notification fan-out.
"""

from unittest.mock import patch

from conftest import auth_for, committee_inquiry, project_inquiry

from festival_backend import inquiries
from festival_backend.db.models import Bureau, CommitteePermission, Side, User
from festival_backend.memberships import (
    get_project, grant_committee_membership, is_committee_member, is_project_member,
)
from festival_backend.notifications import inquiry_url


def _user(db, seeded, key):
    return db.query(User).filter(User.id == seeded.users[key]).one()


def test_project_membership(db, seeded):
    project = get_project(db, seeded.project_id)
    for key in ("owner", "sub_owner", "member"):
        assert is_project_member(db, project, seeded.users[key])
    for key in ("former_member", "other_owner", "outsider", "staff"):
        assert not is_project_member(db, project, seeded.users[key])


def test_committee_membership(db, seeded):
    assert is_committee_member(db, seeded.users["staff"])
    assert not is_committee_member(db, seeded.users["revoked"])
    assert not is_committee_member(db, seeded.users["owner"])


def test_grant_creates_membership(db, seeded):
    member, outcome = grant_committee_membership(
        db, _user(db, seeded, "outsider"), Bureau.FINANCE, [CommitteePermission.INQUIRY_ADMIN]
    )
    db.commit()

    assert outcome == "created"
    auth = auth_for(db, seeded.users["outsider"])
    assert auth.bureau == Bureau.FINANCE
    assert auth.is_inquiry_admin


def test_grant_reactivates_revoked_membership(db, seeded):
    assert not auth_for(db, seeded.users["revoked"]).is_committee_member

    member, outcome = grant_committee_membership(db, _user(db, seeded, "revoked"), Bureau.PLANNING)
    db.commit()

    assert outcome == "reactivated"
    auth = auth_for(db, seeded.users["revoked"])
    assert auth.is_committee_member
    assert auth.bureau == Bureau.PLANNING


def test_grant_on_existing_member_only_adds_permissions(db, seeded):
    member, outcome = grant_committee_membership(
        db, _user(db, seeded, "staff"), Bureau.FINANCE,
        [CommitteePermission.INQUIRY_ADMIN, CommitteePermission.INQUIRY_ADMIN],
    )
    db.commit()

    assert outcome == "existing"
    assert member.bureau == Bureau.GENERAL_AFFAIRS
    assert [p.permission for p in member.permissions] == [CommitteePermission.INQUIRY_ADMIN]


# =============================================================================
# Notifications
# =============================================================================

def test_inquiry_url_depends_on_side(monkeypatch):
    from festival_backend.config import get_settings

    monkeypatch.setenv("APP_URL", "https://festival.example/")
    get_settings.cache_clear()
    try:
        assert inquiry_url("i1", Side.COMMITTEE) == "https://festival.example/committee/support/i1"
        assert inquiry_url("i1", Side.PROJECT) == "https://festival.example/project/support/i1"
    finally:
        monkeypatch.delenv("APP_URL")
        get_settings.cache_clear()


def test_committee_inquiry_notifies_project_assignees(db, seeded):
    with patch("festival_backend.notifications.send_inquiry_email") as send:
        committee_inquiry(db, seeded, project_assignee_user_ids=[seeded.users["owner"], seeded.users["member"]])

    assert sorted(c.kwargs["to_email"] for c in send.call_args_list) == [
        "member@festival.local", "owner@festival.local",
    ]
    assert all("/project/support/" in c.kwargs["link"] for c in send.call_args_list)


def test_project_inquiry_notifies_inquiry_admins(db, seeded):
    with patch("festival_backend.notifications.send_inquiry_email") as send:
        project_inquiry(db, seeded)

    assert [c.kwargs["to_email"] for c in send.call_args_list] == ["admin@festival.local"]
    assert "/committee/support/" in send.call_args.kwargs["link"]


def test_comment_notifies_everyone_but_the_commenter(db, seeded):
    inquiry = committee_inquiry(db, seeded)
    with patch("festival_backend.notifications.send_inquiry_email") as send:
        inquiries.add_comment(db, auth_for(db, seeded.users["owner"]), inquiry, "x" * 150, Side.PROJECT)

    assert [c.kwargs["to_email"] for c in send.call_args_list] == ["staff@festival.local"]
    assert send.call_args.kwargs["message"].endswith("x" * 100 + "...")


def test_notification_failure_does_not_fail_the_mutation(db, seeded):
    inquiry = project_inquiry(db, seeded)
    with patch("festival_backend.notifications.send_inquiry_email", side_effect=RuntimeError("smtp down")):
        assignee = inquiries.add_assignee(
            db, auth_for(db, seeded.users["admin"]), inquiry, seeded.users["staff"], Side.COMMITTEE
        )

    assert assignee.id
    assert inquiries.get_inquiry(db, inquiry.id).status.value == "IN_PROGRESS"
