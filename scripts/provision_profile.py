#!/usr/bin/env python3
"""
Provision a role-bearing profile document for an existing Firebase user.

Sign-up does not create profile documents, so new accounts land on the
patient dashboard until one exists. Run this out-of-band to assign a role.

Usage:
    python scripts/provision_profile.py <uid> nurse
    python scripts/provision_profile.py <uid> doctor --name "Dr. Amal Haddad" --department Oncology

Environment Variables:
    FIREBASE_CREDENTIALS_PATH: Path to the service account JSON file
    FIREBASE_CONFIG_JSON: Raw service account JSON (alternative)
    PROFILE_COLLECTION: Profile collection name (default: users)
"""

import argparse
import os
import sys
from datetime import UTC, datetime

import dotenv
from firebase_admin import auth, firestore

from app.core.firebase import get_firebase_app, initialize_firebase
from app.schemas.routing import Role

dotenv.load_dotenv()

ROLE_CHOICES = [role.value for role in Role] + ["responsibleparty"]


def build_profile_document(
    email: str | None,
    role: str,
    name: str | None = None,
    department: str | None = None,
    phone: str | None = None,
) -> dict:
    """Build the profile document written for a user."""
    profile = {
        key: value
        for key, value in {"name": name, "department": department, "phone": phone}.items()
        if value
    }
    now = datetime.now(UTC)
    return {
        "email": email,
        "activeRole": role,
        "profile": profile,
        "platforms": [],
        "preferences": {"language": "ar", "notifications": True},
        "createdAt": now,
    }


def provision_profile(uid: str, role: str, **profile_fields: str | None) -> dict:
    """Create or merge the profile document for a Firebase user."""
    initialize_firebase(
        os.getenv("FIREBASE_CREDENTIALS_PATH"),
        os.getenv("FIREBASE_CONFIG_JSON"),
    )
    app = get_firebase_app()

    user = auth.get_user(uid, app=app)
    document = build_profile_document(user.email, role, **profile_fields)

    collection = os.getenv("PROFILE_COLLECTION", "users")
    client = firestore.client(app=app)
    client.collection(collection).document(uid).set(document, merge=True)
    return document


def main() -> int:
    """Parse arguments and provision the profile."""
    parser = argparse.ArgumentParser(description="Provision a user profile document")
    parser.add_argument("uid", help="Firebase user id")
    parser.add_argument("role", choices=ROLE_CHOICES, help="Role to assign")
    parser.add_argument("--name", help="Display name")
    parser.add_argument("--department", help="Department")
    parser.add_argument("--phone", help="Phone number")
    args = parser.parse_args()

    try:
        document = provision_profile(
            args.uid,
            args.role,
            name=args.name,
            department=args.department,
            phone=args.phone,
        )
    except auth.UserNotFoundError:
        print(f"Error: no Firebase user with uid {args.uid}", file=sys.stderr)
        return 1

    print(f"✓ Profile provisioned for {args.uid} with role '{document['activeRole']}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
