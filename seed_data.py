"""Seed the first admin account.
Run with: python seed_data.py [username] [email]

The password is read from ADMIN_PASSWORD or prompted for.
"""
import getpass
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app import create_app
from app.extensions import db
from app.models import User
from app.models.user import ROLE_ADMIN


def seed_admin(username='admin', email='admin@example.com'):
    """Create an admin user, or promote an existing one."""
    app = create_app()
    with app.app_context():
        user = User.query.filter_by(username=username).first()
        if user is not None:
            if user.is_admin:
                print(f"User '{username}' is already an admin. Skipping seed.")
                return
            user.role = ROLE_ADMIN
            db.session.commit()
            print(f"Promoted existing user '{username}' to admin.")
            return

        password = os.environ.get('ADMIN_PASSWORD') or getpass.getpass('Admin password: ')
        if len(password) < 6:
            print("Password must be at least 6 characters.")
            sys.exit(1)

        user = User(username=username, email=email.lower(), role=ROLE_ADMIN)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        print(f"Created admin user '{username}' <{email}>.")


if __name__ == '__main__':
    seed_admin(*sys.argv[1:3])
