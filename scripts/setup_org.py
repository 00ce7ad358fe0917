#!/usr/bin/env python3
import sys
import os
from datetime import datetime, timezone
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from onboarding.app import create_app
from onboarding.db import db
from onboarding.db.models import Organisation, User
from onboarding.middleware.auth import AuthService


def setup_org(name: str, admin_email: str, admin_name: str) -> User:
    """
    Create a new organization and its admin user.
    """
    try:
        now = datetime.now(timezone.utc)
        org = Organisation(name=name, created_at=now, updated_at=now)
        db.session.add(org)
        db.session.flush()  # Get the org ID

        user = User(
            email=admin_email,
            name=admin_name,
            organisation_id=org.id,
            role='admin',
            created_at=now,
            updated_at=now
        )
        db.session.add(user)
        db.session.commit()

        print(f"""
Organization and admin user created successfully!
Organization: {org.name} (ID: {org.id})
Admin User: {user.email} (ID: {user.id})
Bearer token: {AuthService.create_access_token(user)}
        """)
        return user

    except Exception as e:
        db.session.rollback()
        print(f"Error: {str(e)}")
        sys.exit(1)

def main():
    if len(sys.argv) != 4:
        print("Usage: python setup_org.py <org_name> <admin_email> <admin_name>")
        sys.exit(1)

    org_name = sys.argv[1]
    admin_email = sys.argv[2]
    admin_name = sys.argv[3]

    app = create_app()
    with app.app_context():
        # Check if org already exists
        existing_org = Organisation.query.filter_by(name=org_name).first()
        if existing_org:
            print(f"Error: Organization '{org_name}' already exists")
            sys.exit(1)

        # Check if admin email already exists
        existing_user = User.query.filter_by(email=admin_email).first()
        if existing_user:
            print(f"Error: User with email '{admin_email}' already exists")
            sys.exit(1)

        setup_org(org_name, admin_email, admin_name)

if __name__ == '__main__':
    main()
