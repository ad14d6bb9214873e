#!/usr/bin/env python3
"""
Grant committee membership to a registered user.

Usage:
    python scripts/make_committee_member.py --email user@example.com
    python scripts/make_committee_member.py --email user@example.com --bureau FINANCE --permission INQUIRY_ADMIN
"""

import argparse
import sys


def main() -> int:
    from festival_backend.db.models import Bureau, CommitteePermission, User
    from festival_backend.db.session import get_db_session, init_db
    from festival_backend.memberships import grant_committee_membership

    parser = argparse.ArgumentParser(description="Make a registered user a committee member.")
    parser.add_argument("--email", required=True, help="Email of an existing user")
    parser.add_argument(
        "--bureau",
        default=Bureau.INFO_SYSTEM.value,
        choices=[b.value for b in Bureau],
        help="Bureau (default: INFO_SYSTEM)",
    )
    parser.add_argument(
        "--permission",
        action="append",
        default=[],
        choices=[p.value for p in CommitteePermission],
        help="Permission to grant (repeatable)",
    )
    args = parser.parse_args()

    init_db()

    with get_db_session() as db:
        user = db.query(User).filter(User.email == args.email, User.deleted_at.is_(None)).first()
        if not user:
            print(f"Error: no user with email {args.email!r}", file=sys.stderr)
            print("The user must sign up in the app first", file=sys.stderr)
            return 1

        member, outcome = grant_committee_membership(
            db,
            user,
            Bureau(args.bureau),
            [CommitteePermission(p) for p in args.permission],
        )

        if outcome == "existing":
            print(f"{user.name} ({args.email}) is already a committee member")
        elif outcome == "reactivated":
            print("Reactivated committee membership:")
        else:
            print("Registered committee member:")
        print(f"  user:        {user.name} ({args.email})")
        print(f"  bureau:      {member.bureau.value}")
        print(f"  permissions: {', '.join(sorted(p.permission.value for p in member.permissions)) or '-'}")
        print(f"  id:          {member.id}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
