#!/usr/bin/env python3
"""
Create a superadmin account, or promote an existing user to superadmin.

    python create_admin_user.py admin@example.com --name "Site Admin" --password 'S3curePassw0rd'
"""
import argparse
import getpass
import sys
from adblockpro.db import engine, SessionLocal
from adblockpro.errors import DuplicateEmail
from adblockpro.models import Base, Role
from adblockpro.repository import create_user, get_user_by_email
from adblockpro.security import hash_password, password_strong_enough


def create_admin_user(db, email, name, password):
    user = get_user_by_email(db, email)
    if user:
        user.role = Role.superadmin
        db.commit()
        print(f"Promoted {user.email} to superadmin")
        return user
    if not password_strong_enough(password):
        raise ValueError("Password must be at least 8 characters and contain uppercase, lowercase, and number")
    user = create_user(
        db,
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=Role.superadmin,
        is_verified=True,
    )
    print(f"Created superadmin {user.email} (id {user.id})")
    return user


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create or promote an AdBlock Pro superadmin")
    parser.add_argument("email")
    parser.add_argument("--name", default="Admin")
    parser.add_argument("--password", help="prompted for when omitted and the user does not exist yet")
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        password = args.password
        if not password and not get_user_by_email(db, args.email):
            password = getpass.getpass("Password: ")
        create_admin_user(db, args.email, args.name, password)
    except (ValueError, DuplicateEmail) as e:
        print(f"Error: {getattr(e, 'detail', e)}", file=sys.stderr)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
