"""Create an administrator or promote an existing user.

Usage:
  python scripts/create_admin.py --email admin@example.com --name Admin --password '...'
  python scripts/create_admin.py --email existing@example.com --promote

The API never grants admin rights itself; this script is the only way in.
Tokens issued before a promotion keep the old role until they expire.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sqlmodel import Session

from service_shop import models, repositories
from service_shop.auth import hash_password
from service_shop.config import Settings
from service_shop.database import create_db_and_tables, make_engine


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--name")
    ap.add_argument("--password")
    ap.add_argument("--promote", action="store_true", help="grant admin to an existing user")
    args = ap.parse_args()

    settings = Settings()
    engine = make_engine(settings)
    create_db_and_tables(engine)
    email = args.email.strip().lower()

    with Session(engine) as session:
        repo = repositories.UserRepository(session)
        user = repo.get_by_email(email)
        if args.promote:
            if user is None:
                sys.exit(f"no user with email {email}")
            user.is_admin = True
            repo.save(user)
            print(f"Promoted user {user.id} ({email}) to admin")
            return
        if user is not None:
            sys.exit(f"user {email} already exists; use --promote")
        if not args.name or not args.password or len(args.password) < 6:
            sys.exit("--name and a --password of 6 or more characters are required")
        user = repo.create(models.User(
            name=args.name.strip(),
            email=email,
            password_hash=hash_password(args.password),
            is_admin=True,
        ))
        print(f"Created admin user {user.id} ({email})")


if __name__ == "__main__":
    main()
