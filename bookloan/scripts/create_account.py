"""
Create an active account without the email activation flow (e.g. the first superadmin).
Run from project root:
  python -m bookloan.scripts.create_account NAME EMAIL PASSWORD [--level N] [--kind staff|student]
Example:
  python -m bookloan.scripts.create_account "Head Librarian" admin@example.com 'S3cure!pass' --level 3
"""
import argparse
import sys

from pydantic import EmailStr, TypeAdapter, ValidationError

from bookloan.core.database import SessionLocal
from bookloan.core.security import hash_password
from bookloan.models import Account
from bookloan.models.account import KIND_STAFF, KIND_STUDENT, STATUS_ACTIVE
from bookloan.schemas.auth import validate_password_strength


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an active bookloan account.")
    parser.add_argument("name", help="Display name (3-255 chars)")
    parser.add_argument("email", help="Login email")
    parser.add_argument("password", help="Password (8-128 chars, upper, lower, digit, symbol)")
    parser.add_argument("--level", type=int, default=3, choices=[0, 1, 2, 3])
    parser.add_argument("--kind", default=KIND_STAFF, choices=[KIND_STAFF, KIND_STUDENT])
    args = parser.parse_args(argv)

    name = args.name.strip()
    try:
        # Stored in the form LoginRequest produces.
        email = TypeAdapter(EmailStr).validate_python(args.email.strip())
    except ValidationError:
        print("Invalid email.", file=sys.stderr)
        return 1
    if not (3 <= len(name) <= 255):
        print("Name must be 3-255 characters.", file=sys.stderr)
        return 1
    try:
        validate_password_strength(args.password)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        existing = db.query(Account).filter(Account.email == email).first()
        if existing:
            print(f"Account '{email}' already exists.", file=sys.stderr)
            return 1
        account = Account(
            kind=args.kind,
            name=name,
            email=email,
            password_hash=hash_password(args.password),
            access_level=args.level,
            status=STATUS_ACTIVE,
        )
        db.add(account)
        db.commit()
        print(f"Created {args.kind} account '{email}' with access level {args.level}.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
