"""
Create an account (e.g. the first system admin). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD HOSPITAL [role]
Example:
  python -m app.scripts.create_user admin@hospital.example 'S3cure-Passw0rd' "Central Hospital" systemAdmin
"""
import argparse
import sys

from app.core.database import SessionLocal
from app.core.permissions import DEFAULT_ROLE, VALID_ROLES
from app.core.security import hash_password
from app.services import credential_store
from app.services.passwords import validate_password_complexity
from app.services.users import EMAIL_PATTERN


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Create a hospital portal account (no registration UI)."
    )
    parser.add_argument("email", help="Account email")
    parser.add_argument("password", help="Password (8-128 chars, upper, lower and digit)")
    parser.add_argument("hospital", help="Hospital (tenant) name")
    parser.add_argument("role", nargs="?", default=DEFAULT_ROLE.value, choices=VALID_ROLES)
    args = parser.parse_args(argv)

    email = credential_store.normalize_email(args.email)
    if not EMAIL_PATTERN.match(email):
        print("Invalid email format.", file=sys.stderr)
        return 1
    if len(args.password) > 128:
        print("Password must be at most 128 characters.", file=sys.stderr)
        return 1
    errors = validate_password_complexity(args.password)
    if errors:
        for message in errors:
            print(message, file=sys.stderr)
        return 1
    hospital = args.hospital.strip()
    if not hospital:
        print("Hospital name cannot be empty.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        if credential_store.get_user_by_email(db, email) is not None:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        credential_store.create_user(
            db,
            email=email,
            password_hash=hash_password(args.password),
            hospital_name=hospital,
            role=args.role,
            is_active=True,
            created_by="cli",
        )
        print(f"Created user '{email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
