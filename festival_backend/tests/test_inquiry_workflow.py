"""
Inquiry workflow tests: status lifecycle, creation, assignees, comments,
viewers and the activity trail.
"""

from datetime import datetime
from unittest.mock import patch

import pytest

from conftest import activity_types, auth_for, committee_inquiry, project_inquiry

from festival_backend import activity, inquiries
from festival_backend.db.models import (
    ActivityType, Bureau, InquiryAssignee, InquiryStatus, InquiryViewer, Side, ViewerScope,
)
from festival_backend.errors import (
    AlreadyExistsError, ForbiddenError, InvalidRequestError, InvalidStateError, NotFoundError,
)
from festival_backend.schemas import ViewerInput


# =============================================================================
# State machine (pure)
# =============================================================================

class TestStateMachine:

    def test_initial_status_depends_on_creator_side(self):
        assert inquiries.initial_status(Side.COMMITTEE) == InquiryStatus.IN_PROGRESS
        assert inquiries.initial_status(Side.PROJECT) == InquiryStatus.UNASSIGNED

    @pytest.mark.parametrize("status,side,expected", [
        (InquiryStatus.UNASSIGNED, Side.COMMITTEE, InquiryStatus.IN_PROGRESS),
        (InquiryStatus.IN_PROGRESS, Side.COMMITTEE, InquiryStatus.IN_PROGRESS),
        (InquiryStatus.RESOLVED, Side.COMMITTEE, InquiryStatus.RESOLVED),
        (InquiryStatus.UNASSIGNED, Side.PROJECT, InquiryStatus.UNASSIGNED),
        (InquiryStatus.IN_PROGRESS, Side.PROJECT, InquiryStatus.IN_PROGRESS),
        (InquiryStatus.RESOLVED, Side.PROJECT, InquiryStatus.RESOLVED),
    ])
    def test_assignee_added(self, status, side, expected):
        assert inquiries.status_after_assignee_added(status, side) == expected

    @pytest.mark.parametrize("status", [InquiryStatus.UNASSIGNED, InquiryStatus.IN_PROGRESS])
    def test_resolve_from_open_states(self, status):
        assert inquiries.status_after_resolve(status) == InquiryStatus.RESOLVED

    def test_resolve_twice_is_invalid(self):
        with pytest.raises(InvalidStateError):
            inquiries.status_after_resolve(InquiryStatus.RESOLVED)

    def test_reopen_always_goes_to_in_progress(self):
        assert inquiries.status_after_reopen(InquiryStatus.RESOLVED) == InquiryStatus.IN_PROGRESS

    @pytest.mark.parametrize("status", [InquiryStatus.UNASSIGNED, InquiryStatus.IN_PROGRESS])
    def test_reopen_requires_resolved(self, status):
        with pytest.raises(InvalidRequestError):
            inquiries.status_after_reopen(status)

    def test_invalid_state_is_an_invalid_request(self):
        assert issubclass(InvalidStateError, InvalidRequestError)
        assert InvalidStateError("x").status_code == 400
        assert InvalidStateError("x").code == "INVALID_REQUEST"

    def test_resolved_rejects_comments(self):
        inquiries.ensure_accepts_comments(InquiryStatus.IN_PROGRESS)
        inquiries.ensure_accepts_comments(InquiryStatus.UNASSIGNED)
        with pytest.raises(InvalidStateError):
            inquiries.ensure_accepts_comments(InquiryStatus.RESOLVED)


# =============================================================================
# Creation
# =============================================================================

class TestCreate:

    def test_committee_create(self, db, seeded):
        inquiry = committee_inquiry(
            db, seeded,
            project_assignee_user_ids=[seeded.users["owner"], seeded.users["member"], seeded.users["owner"]],
            committee_assignee_user_ids=[seeded.users["staff"], seeded.users["planner"]],
            file_ids=[seeded.files["staff_doc"]],
            viewers=[
                ViewerInput(scope=ViewerScope.BUREAU, bureau_value=Bureau.FINANCE),
                ViewerInput(scope=ViewerScope.INDIVIDUAL, user_id=seeded.users["promoter"]),
            ],
        )

        assert inquiry.status == InquiryStatus.IN_PROGRESS
        assert inquiry.creator_role == Side.COMMITTEE

        rows = {(a.user_id, a.side, a.is_creator) for a in inquiry.assignees}
        assert rows == {
            (seeded.users["staff"], Side.COMMITTEE, True),
            (seeded.users["planner"], Side.COMMITTEE, False),
            (seeded.users["owner"], Side.PROJECT, False),
            (seeded.users["member"], Side.PROJECT, False),
        }
        assert [a.file_id for a in inquiry.attachments] == [seeded.files["staff_doc"]]
        assert [v.scope for v in inquiry.viewers] == [ViewerScope.BUREAU, ViewerScope.INDIVIDUAL]
        assert activity_types(db, inquiry.id) == []

    def test_committee_create_rejects_non_member_project_assignee(self, db, seeded):
        with pytest.raises(InvalidRequestError):
            committee_inquiry(db, seeded, project_assignee_user_ids=[seeded.users["outsider"]])

    def test_committee_create_rejects_former_project_member(self, db, seeded):
        with pytest.raises(InvalidRequestError):
            committee_inquiry(db, seeded, project_assignee_user_ids=[seeded.users["former_member"]])

    @pytest.mark.parametrize("user", ["owner", "revoked", "outsider"])
    def test_committee_create_rejects_non_committee_assignee(self, db, seeded, user):
        with pytest.raises(InvalidRequestError):
            committee_inquiry(db, seeded, committee_assignee_user_ids=[seeded.users[user]])

    def test_committee_create_unknown_project(self, db, seeded):
        with pytest.raises(NotFoundError):
            committee_inquiry(db, seeded, project_id="missing")

    @pytest.mark.parametrize("file_key", ["owner_doc", "pending_doc"])
    def test_committee_create_rejects_unattachable_files(self, db, seeded, file_key):
        with pytest.raises(InvalidRequestError):
            committee_inquiry(db, seeded, file_ids=[seeded.files[file_key]])

    def test_committee_create_rejects_user_on_both_sides(self, db, seeded):
        from festival_backend.db.models import Bureau, User
        from festival_backend.memberships import grant_committee_membership

        member = db.query(User).filter(User.id == seeded.users["member"]).one()
        grant_committee_membership(db, member, Bureau.PLANNING)
        db.commit()

        with pytest.raises(InvalidRequestError) as exc:
            committee_inquiry(
                db, seeded,
                project_assignee_user_ids=[seeded.users["member"]],
                committee_assignee_user_ids=[seeded.users["member"]],
            )
        assert exc.value.details == {"user_ids": [seeded.users["member"]]}

    def test_project_create(self, db, seeded):
        inquiry = project_inquiry(
            db, seeded,
            co_assignee_user_ids=[seeded.users["owner"], seeded.users["sub_owner"], seeded.users["member"]],
            file_ids=[seeded.files["owner_doc"]],
        )

        assert inquiry.status == InquiryStatus.UNASSIGNED
        assert inquiry.creator_role == Side.PROJECT
        creators = [a for a in inquiry.assignees if a.is_creator]
        assert len(creators) == 1
        assert creators[0].user_id == seeded.users["owner"]
        assert creators[0].side == Side.PROJECT
        assert sorted(a.user_id for a in inquiry.assignees) == sorted(
            [seeded.users["owner"], seeded.users["sub_owner"], seeded.users["member"]]
        )

    def test_project_create_rejects_other_project_member(self, db, seeded):
        with pytest.raises(InvalidRequestError):
            project_inquiry(db, seeded, co_assignee_user_ids=[seeded.users["other_owner"]])

    @pytest.mark.parametrize("file_key", ["staff_doc", "orphan_doc", "pending_doc"])
    def test_project_create_only_attaches_own_uploads(self, db, seeded, file_key):
        from festival_backend.db.models import Inquiry

        with pytest.raises(InvalidRequestError) as exc:
            project_inquiry(db, seeded, file_ids=[seeded.files["owner_doc"], seeded.files[file_key]])
        assert exc.value.details == {"file_ids": [seeded.files[file_key]]}
        assert db.query(Inquiry).count() == 0

    def test_failed_create_leaves_nothing_behind(self, db, seeded):
        from festival_backend.db.models import Inquiry

        with pytest.raises(InvalidRequestError):
            committee_inquiry(
                db, seeded,
                viewers=[ViewerInput(scope=ViewerScope.INDIVIDUAL, user_id="ghost")],
            )
        assert db.query(Inquiry).count() == 0
        assert db.query(InquiryAssignee).count() == 0


# =============================================================================
# Assignees
# =============================================================================

class TestAssignees:

    def test_committee_assignee_moves_unassigned_to_in_progress(self, db, seeded):
        inquiry = project_inquiry(db, seeded)
        actor = auth_for(db, seeded.users["admin"])

        inquiries.add_assignee(db, actor, inquiry, seeded.users["staff"], Side.COMMITTEE)

        assert inquiry.status == InquiryStatus.IN_PROGRESS
        entries = activity.list_for_inquiry(db, inquiry.id)
        assert [(e.type, e.actor_id, e.target_id) for e in entries] == [
            (ActivityType.ASSIGNEE_ADDED, seeded.users["admin"], seeded.users["staff"]),
        ]

    def test_project_assignee_does_not_move_unassigned(self, db, seeded):
        inquiry = project_inquiry(db, seeded)
        actor = auth_for(db, seeded.users["owner"])

        inquiries.add_assignee(db, actor, inquiry, seeded.users["member"], Side.PROJECT)

        assert inquiry.status == InquiryStatus.UNASSIGNED

    def test_committee_assignee_on_resolved_keeps_status(self, db, seeded):
        inquiry = committee_inquiry(db, seeded)
        actor = auth_for(db, seeded.users["staff"])
        inquiries.resolve(db, actor, inquiry)

        inquiries.add_assignee(db, actor, inquiry, seeded.users["planner"], Side.COMMITTEE)

        assert inquiry.status == InquiryStatus.RESOLVED

    def test_committee_assignee_on_in_progress_keeps_status(self, db, seeded):
        inquiry = committee_inquiry(db, seeded)
        actor = auth_for(db, seeded.users["staff"])

        inquiries.add_assignee(db, actor, inquiry, seeded.users["planner"], Side.COMMITTEE)

        assert inquiry.status == InquiryStatus.IN_PROGRESS

    def test_ineligible_assignee_is_rejected_without_activity(self, db, seeded):
        inquiry = project_inquiry(db, seeded)
        actor = auth_for(db, seeded.users["admin"])

        with pytest.raises(InvalidRequestError):
            inquiries.add_assignee(db, actor, inquiry, seeded.users["outsider"], Side.PROJECT)
        with pytest.raises(InvalidRequestError):
            inquiries.add_assignee(db, actor, inquiry, seeded.users["revoked"], Side.COMMITTEE)

        assert inquiry.status == InquiryStatus.UNASSIGNED
        assert activity_types(db, inquiry.id) == []

    def test_duplicate_assignee(self, db, seeded):
        inquiry = committee_inquiry(db, seeded)
        actor = auth_for(db, seeded.users["staff"])

        with pytest.raises(AlreadyExistsError):
            inquiries.add_assignee(db, actor, inquiry, seeded.users["owner"], Side.PROJECT)
        with pytest.raises(AlreadyExistsError):
            inquiries.add_assignee(db, actor, inquiry, seeded.users["staff"], Side.COMMITTEE)

    def test_concurrent_duplicate_surfaces_as_already_exists(self, db, seeded):
        inquiry = project_inquiry(db, seeded)
        actor = auth_for(db, seeded.users["admin"])
        inquiries.add_assignee(db, actor, inquiry, seeded.users["staff"], Side.COMMITTEE)

        # Simulate a racing request that passed the up-front check
        with patch("festival_backend.assignees.get_assignee", return_value=None):
            with pytest.raises(AlreadyExistsError):
                inquiries.add_assignee(db, actor, inquiry, seeded.users["staff"], Side.COMMITTEE)

        rows = db.query(InquiryAssignee).filter(
            InquiryAssignee.inquiry_id == inquiry.id,
            InquiryAssignee.user_id == seeded.users["staff"],
        ).count()
        assert rows == 1
        assert activity_types(db, inquiry.id) == [ActivityType.ASSIGNEE_ADDED]

    @pytest.mark.parametrize("factory,actor", [("committee", "staff"), ("project", "owner")])
    def test_creator_can_never_be_removed(self, db, seeded, factory, actor):
        make = committee_inquiry if factory == "committee" else project_inquiry
        inquiry = make(db, seeded)
        creator = next(a for a in inquiry.assignees if a.is_creator)

        with pytest.raises(InvalidRequestError):
            inquiries.remove_assignee(db, auth_for(db, seeded.users["admin"]), inquiry, creator.id)
        with pytest.raises(InvalidRequestError):
            inquiries.remove_assignee(db, auth_for(db, seeded.users[actor]), inquiry, creator.id)
        assert activity_types(db, inquiry.id) == []

    def test_remove_unknown_assignee(self, db, seeded):
        inquiry = committee_inquiry(db, seeded)
        with pytest.raises(NotFoundError):
            inquiries.remove_assignee(db, auth_for(db, seeded.users["staff"]), inquiry, "missing")

    def test_remove_records_activity(self, db, seeded):
        inquiry = committee_inquiry(db, seeded, project_assignee_user_ids=[seeded.users["owner"], seeded.users["member"]])
        member_row = next(a for a in inquiry.assignees if a.user_id == seeded.users["member"])

        inquiries.remove_assignee(db, auth_for(db, seeded.users["staff"]), inquiry, member_row.id)

        entries = activity.list_for_inquiry(db, inquiry.id)
        assert [(e.type, e.target_id) for e in entries] == [
            (ActivityType.ASSIGNEE_REMOVED, seeded.users["member"]),
        ]
        assert seeded.users["member"] not in [a.user_id for a in inquiry.assignees]

    def test_removing_last_committee_assignee_keeps_status(self, db, seeded):
        inquiry = project_inquiry(db, seeded)
        admin = auth_for(db, seeded.users["admin"])
        added = inquiries.add_assignee(db, admin, inquiry, seeded.users["staff"], Side.COMMITTEE)

        inquiries.remove_assignee(db, admin, inquiry, added.id)

        assert inquiry.status == InquiryStatus.IN_PROGRESS

    def test_side_restricted_removal(self, db, seeded):
        inquiry = committee_inquiry(db, seeded, committee_assignee_user_ids=[seeded.users["planner"]])
        planner_row = next(a for a in inquiry.assignees if a.user_id == seeded.users["planner"])

        with pytest.raises(ForbiddenError):
            inquiries.remove_assignee(
                db, auth_for(db, seeded.users["owner"]), inquiry, planner_row.id, allowed_side=Side.PROJECT
            )


# =============================================================================
# Status changes, comments and viewers
# =============================================================================

class TestLifecycle:

    def test_reopen_scenario(self, db, seeded):
        inquiry = committee_inquiry(db, seeded)
        staff = auth_for(db, seeded.users["staff"])
        inquiries.resolve(db, staff, inquiry)
        assert inquiry.status == InquiryStatus.RESOLVED

        inquiries.reopen(db, staff, inquiry)

        assert inquiry.status == InquiryStatus.IN_PROGRESS
        assert activity_types(db, inquiry.id).count(ActivityType.STATUS_REOPENED) == 1
        with pytest.raises(InvalidRequestError):
            inquiries.reopen(db, staff, inquiry)
        assert activity_types(db, inquiry.id) == [ActivityType.STATUS_RESOLVED, ActivityType.STATUS_REOPENED]

    def test_resolve_unassigned_inquiry(self, db, seeded):
        inquiry = project_inquiry(db, seeded)
        inquiries.resolve(db, auth_for(db, seeded.users["admin"]), inquiry)
        assert inquiry.status == InquiryStatus.RESOLVED

    def test_resolve_twice_fails_without_second_activity(self, db, seeded):
        inquiry = committee_inquiry(db, seeded)
        staff = auth_for(db, seeded.users["staff"])
        inquiries.resolve(db, staff, inquiry)

        with pytest.raises(InvalidStateError):
            inquiries.resolve(db, staff, inquiry)
        assert activity_types(db, inquiry.id) == [ActivityType.STATUS_RESOLVED]

    def test_comment_bumps_updated_at_and_keeps_attachments(self, db, seeded):
        inquiry = committee_inquiry(db, seeded)
        inquiry.updated_at = datetime(2020, 1, 1)
        db.commit()

        comment = inquiries.add_comment(
            db, auth_for(db, seeded.users["staff"]), inquiry, "See attached plan.",
            Side.COMMITTEE, [seeded.files["staff_doc_2"]],
        )

        assert inquiry.updated_at > datetime(2020, 1, 1)
        assert comment.sender_role == Side.COMMITTEE
        assert [a.file_id for a in comment.attachments] == [seeded.files["staff_doc_2"]]
        assert [c.id for c in inquiry.comments] == [comment.id]

    def test_comment_on_resolved_is_invalid(self, db, seeded):
        inquiry = committee_inquiry(db, seeded)
        owner = auth_for(db, seeded.users["owner"])
        inquiries.resolve(db, auth_for(db, seeded.users["staff"]), inquiry)

        with pytest.raises(InvalidStateError):
            inquiries.add_comment(db, owner, inquiry, "Hello?", Side.PROJECT)
        assert inquiry.comments == []

    def test_project_comment_only_attaches_own_uploads(self, db, seeded):
        inquiry = committee_inquiry(db, seeded)
        owner = auth_for(db, seeded.users["owner"])

        with pytest.raises(InvalidRequestError):
            inquiries.add_comment(db, owner, inquiry, "Is this it?", Side.PROJECT, [seeded.files["staff_doc_2"]])
        assert inquiry.comments == []

        comment = inquiries.add_comment(db, owner, inquiry, "Our plan.", Side.PROJECT, [seeded.files["owner_doc"]])
        assert [a.file_id for a in comment.attachments] == [seeded.files["owner_doc"]]

    def test_resolve_with_stale_status_is_rejected(self, db, seeded):
        from festival_backend.db.session import get_db_session

        inquiry = committee_inquiry(db, seeded)
        staff = auth_for(db, seeded.users["staff"])
        assert inquiry.status == InquiryStatus.IN_PROGRESS

        with get_db_session() as other:
            inquiries.resolve(other, staff, inquiries.get_inquiry(other, inquiry.id))

        # ``inquiry`` still carries the IN_PROGRESS it was loaded with
        with pytest.raises(InvalidStateError):
            inquiries.resolve(db, staff, inquiry)
        assert activity_types(db, inquiry.id) == [ActivityType.STATUS_RESOLVED]
        assert inquiries.get_inquiry(db, inquiry.id).status == InquiryStatus.RESOLVED

    def test_set_viewers_replaces_whole_set(self, db, seeded):
        inquiry = committee_inquiry(
            db, seeded, viewers=[ViewerInput(scope=ViewerScope.ALL)],
        )
        staff = auth_for(db, seeded.users["staff"])

        rows = inquiries.set_viewers(db, staff, inquiry, [
            ViewerInput(scope=ViewerScope.INDIVIDUAL, user_id=seeded.users["promoter"]),
            ViewerInput(scope=ViewerScope.BUREAU, bureau_value=Bureau.PLANNING),
            ViewerInput(scope=ViewerScope.BUREAU, bureau_value=Bureau.PLANNING),
        ])

        assert [(r.scope, r.bureau_value, r.user_id) for r in rows] == [
            (ViewerScope.INDIVIDUAL, None, seeded.users["promoter"]),
            (ViewerScope.BUREAU, Bureau.PLANNING, None),
        ]
        stored = db.query(InquiryViewer).filter(InquiryViewer.inquiry_id == inquiry.id).all()
        assert ViewerScope.ALL not in [v.scope for v in stored]
        assert [v.scope for v in inquiry.viewers] == [ViewerScope.INDIVIDUAL, ViewerScope.BUREAU]
        assert activity_types(db, inquiry.id) == [ActivityType.VIEWER_UPDATED]

    def test_set_viewers_to_empty(self, db, seeded):
        inquiry = committee_inquiry(db, seeded, viewers=[ViewerInput(scope=ViewerScope.ALL)])
        inquiries.set_viewers(db, auth_for(db, seeded.users["staff"]), inquiry, [])
        assert inquiry.viewers == []

    def test_failed_viewer_replace_rolls_back(self, db, seeded):
        inquiry = committee_inquiry(db, seeded, viewers=[ViewerInput(scope=ViewerScope.ALL)])

        with pytest.raises(InvalidRequestError):
            inquiries.set_viewers(db, auth_for(db, seeded.users["staff"]), inquiry, [
                ViewerInput(scope=ViewerScope.INDIVIDUAL, user_id="ghost"),
            ])

        db.expire_all()
        assert [v.scope for v in inquiry.viewers] == [ViewerScope.ALL]
        assert activity_types(db, inquiry.id) == []

    def test_activity_trail_is_ordered(self, db, seeded):
        inquiry = project_inquiry(db, seeded)
        admin = auth_for(db, seeded.users["admin"])

        inquiries.add_assignee(db, admin, inquiry, seeded.users["staff"], Side.COMMITTEE)
        inquiries.set_viewers(db, admin, inquiry, [ViewerInput(scope=ViewerScope.ALL)])
        inquiries.resolve(db, admin, inquiry)
        inquiries.reopen(db, admin, inquiry)

        entries = activity.list_for_inquiry(db, inquiry.id)
        assert [e.type for e in entries] == [
            ActivityType.ASSIGNEE_ADDED,
            ActivityType.VIEWER_UPDATED,
            ActivityType.STATUS_RESOLVED,
            ActivityType.STATUS_REOPENED,
        ]
        assert [e.seq for e in entries] == [1, 2, 3, 4]
        assert [e.type for e in inquiry.activities] == [e.type for e in entries]
