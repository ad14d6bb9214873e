"""
Shared fixtures: a fresh SQLite database per test and a seeded festival.
"""

import os
import sys
from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))


@pytest.fixture
def sqlalchemy_db(tmp_path):
    """Configure a fresh SQLAlchemy SQLite DB for tests."""
    from festival_backend.db.session import reset_engine, init_db

    old_db_url = os.environ.get("DATABASE_URL")
    db_path = tmp_path / "festival.db"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"
    reset_engine()
    init_db()

    yield

    if old_db_url is not None:
        os.environ["DATABASE_URL"] = old_db_url
    else:
        os.environ.pop("DATABASE_URL", None)
    reset_engine()


def _seed():
    from festival_backend.db.session import get_db_session
    from festival_backend.db.models import (
        Bureau, CommitteeMember, CommitteeMemberPermission, CommitteePermission,
        File, FileStatus, Notice, NoticeAttachment, NoticeCollaborator, NoticeDelivery,
        Project, ProjectMember, User,
    )

    with get_db_session() as db:
        def user(key):
            u = User(name=key.replace("_", " ").title(), email=f"{key}@festival.local")
            db.add(u)
            return u

        users = {key: user(key) for key in (
            "admin", "staff", "staff_finance", "planner", "promoter", "revoked",
            "owner", "sub_owner", "member", "former_member", "other_owner", "outsider",
        )}
        db.flush()

        def committee(key, bureau, *permissions, deleted=False):
            m = CommitteeMember(
                user_id=users[key].id,
                bureau=bureau,
                deleted_at=datetime.utcnow() if deleted else None,
            )
            for p in permissions:
                m.permissions.append(CommitteeMemberPermission(permission=p))
            db.add(m)

        committee("admin", Bureau.INFO_SYSTEM, CommitteePermission.INQUIRY_ADMIN)
        committee("staff", Bureau.GENERAL_AFFAIRS)
        committee("staff_finance", Bureau.FINANCE)
        committee("planner", Bureau.PLANNING)
        committee("promoter", Bureau.PROMOTION, CommitteePermission.NOTICE_DELIVER)
        committee("revoked", Bureau.FINANCE, deleted=True)

        project = Project(name="Tea Ceremony Club", owner_id=users["owner"].id, sub_owner_id=users["sub_owner"].id)
        other_project = Project(name="Robotics Lab", owner_id=users["other_owner"].id)
        db.add_all([project, other_project])
        db.flush()
        db.add_all([
            ProjectMember(project_id=project.id, user_id=users["member"].id),
            ProjectMember(project_id=project.id, user_id=users["former_member"].id, deleted_at=datetime.utcnow()),
        ])

        def stored_file(key, uploader, status=FileStatus.CONFIRMED, is_public=False):
            f = File(
                key=f"uploads/{key}",
                file_name=f"{key}.pdf",
                mime_type="application/pdf",
                size=1024,
                is_public=is_public,
                status=status,
                uploaded_by_id=users[uploader].id,
            )
            db.add(f)
            return f

        files = {
            "staff_doc": stored_file("staff_doc", "staff"),
            "staff_doc_2": stored_file("staff_doc_2", "staff"),
            "owner_doc": stored_file("owner_doc", "owner"),
            "pending_doc": stored_file("pending_doc", "staff", status=FileStatus.PENDING),
            "public_doc": stored_file("public_doc", "staff", is_public=True),
            "notice_doc": stored_file("notice_doc", "promoter"),
            "orphan_doc": stored_file("orphan_doc", "staff"),
        }
        db.flush()

        notice = Notice(title="Stall layout", owner_id=users["promoter"].id)
        db.add(notice)
        db.flush()
        db.add_all([
            NoticeCollaborator(notice_id=notice.id, user_id=users["staff_finance"].id),
            NoticeAttachment(notice_id=notice.id, file_id=files["notice_doc"].id),
            NoticeDelivery(
                notice_id=notice.id,
                project_id=project.id,
                approved=True,
                delivered_at=datetime.utcnow() - timedelta(hours=1),
            ),
            NoticeDelivery(
                notice_id=notice.id,
                project_id=other_project.id,
                approved=True,
                delivered_at=datetime.utcnow() + timedelta(days=1),
            ),
        ])

        return SimpleNamespace(
            users={k: u.id for k, u in users.items()},
            project_id=project.id,
            other_project_id=other_project.id,
            files={k: f.id for k, f in files.items()},
            notice_id=notice.id,
        )


@pytest.fixture
def seeded(sqlalchemy_db):
    """Committee staff, two projects, uploaded files and a delivered notice."""
    return _seed()


@pytest.fixture
def db(seeded):
    from festival_backend.db.session import get_db_session

    with get_db_session() as session:
        yield session


def auth_for(db, user_id):
    from festival_backend.auth import AuthService

    auth = AuthService(db).get_auth_context(user_id)
    assert auth is not None
    return auth


@pytest.fixture
def client(seeded):
    from fastapi.testclient import TestClient
    from festival_backend.api import app

    return TestClient(app)


def headers(user_id):
    return {"X-User-Id": user_id}


def committee_inquiry(db, seeded, creator="staff", **overrides):
    """Open an inquiry from the committee side as ``creator``."""
    from festival_backend import inquiries
    from festival_backend.schemas import CommitteeInquiryCreate

    fields = dict(
        title="Power supply for the stall",
        body="Please confirm the wattage you need.",
        project_id=seeded.project_id,
        project_assignee_user_ids=[seeded.users["owner"]],
    )
    fields.update(overrides)
    return inquiries.create_committee_inquiry(
        db, auth_for(db, seeded.users[creator]), CommitteeInquiryCreate(**fields)
    )


def project_inquiry(db, seeded, creator="owner", **overrides):
    """Open an inquiry from the seeded project as ``creator``."""
    from festival_backend import inquiries
    from festival_backend.memberships import get_project
    from festival_backend.schemas import ProjectInquiryCreate

    fields = dict(title="Can we use a gas burner?", body="For the tea kettle.")
    fields.update(overrides)
    return inquiries.create_project_inquiry(
        db,
        auth_for(db, seeded.users[creator]),
        get_project(db, seeded.project_id),
        ProjectInquiryCreate(**fields),
    )


def activity_types(db, inquiry_id):
    from festival_backend import activity

    return [a.type for a in activity.list_for_inquiry(db, inquiry_id)]
