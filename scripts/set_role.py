#!/usr/bin/env python3
"""Set a user's role (idempotent).

Usage:
  python scripts/set_role.py --email someone@example.com --role ADMIN
"""

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.growshare.models import User  # noqa: E402
from app.growshare.rbac import ALL_ROLES  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402


def set_role(db_url: str, email: str, role: str) -> bool:
    """Return True if the user exists (role updated or already set)."""
    with script_session(db_url) as s:
        user = s.query(User).filter(User.email == email.strip().lower()).one_or_none()
        if not user:
            print(f"User not found: {email}")
            return False
        if user.role == role:
            print(f"User already has role {role}: {email}")
            return True
        user.role = role
    print(f"Role {role} set for {email}")
    return True


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--role", required=True, choices=ALL_ROLES, help="Role to assign")
    args = parser.parse_args()

    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///growshare.db").strip()
    if not set_role(db_url, args.email, args.role):
        sys.exit(1)


if __name__ == "__main__":
    main()
