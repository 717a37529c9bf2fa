#!/usr/bin/env python3
# =============================================================================
# scripts/create_admin.py - Bootstrap an Administrator
# =============================================================================
# Registration always creates members, so the first admin has to be made
# from the command line. Promotes an existing account, or creates one.
#
# Usage:
#   python scripts/create_admin.py admin@example.com admin
#   python scripts/create_admin.py admin@example.com admin --password 'S3cure!pass'
# =============================================================================

import argparse
import getpass
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from app.exceptions import AgoraException
from core.models.user import UserRole
from core.services.user_service import UserService
from lib.security import hash_password, validate_password_strength
from lib.supabase_client import SupabaseClient
from lib.utils import utc_now_iso


def main():
    parser = argparse.ArgumentParser(description="Create or promote an Agora administrator")
    parser.add_argument("email")
    parser.add_argument("username")
    parser.add_argument("--password", help="Prompted for when omitted")
    args = parser.parse_args()

    existing = UserService.find_by_email(args.email)
    if existing:
        SupabaseClient.update_row("users", existing["id"], {
            "role": UserRole.ADMIN.value,
            "updated_at": utc_now_iso(),
        })
        print(f"Promoted {existing['username']} ({existing['email']}) to admin")
        return

    password = args.password or getpass.getpass("Password: ")
    try:
        validate_password_strength(password)
        user = UserService.create_user(
            email=args.email,
            password_hash=hash_password(password),
            username=args.username,
            role=UserRole.ADMIN,
        )
    except AgoraException as e:
        print(f"Error: {e.message}")
        if e.suggestion:
            print(f"  {e.suggestion}")
        sys.exit(1)

    print(f"Created admin {user['username']} ({user['email']}) with id {user['id']}")


if __name__ == "__main__":
    main()
