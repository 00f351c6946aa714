#!/usr/bin/env python3
"""
Create (or re-activate) a back-office admin account.

Usage: python create_admin.py <email> [name]
The password is read from ADMIN_PASSWORD or prompted for.
"""
import getpass
import os
import sys

from app import create_app
from app.utils.auth_utils import ensure_admin_user


def main(argv):
    if len(argv) not in (2, 3):
        print("Usage: python create_admin.py <email> [name]")
        return 1

    email = argv[1]
    name = argv[2] if len(argv) == 3 else None
    password = os.getenv('ADMIN_PASSWORD') or getpass.getpass('Password: ')
    if len(password) < 8:
        print("❌ Password must be at least 8 characters")
        return 1

    app = create_app()
    with app.app_context():
        try:
            user, created = ensure_admin_user(email, password, name=name)
        except ValueError as e:
            print(f"❌ {e}")
            return 1

        action = 'created' if created else 'updated and re-activated'
        print(f"✅ Admin {user.email} {action}")
        print(f"   User ID: {user.id}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
