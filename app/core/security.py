"""Password hashing and one-way fingerprints for stored secrets."""

import hashlib
import hmac
import secrets

import bcrypt

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for email and password validation (input validation).
EMAIL_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# Bytes of entropy in a password-reset token (hex-encoded, so 64 characters).
RESET_TOKEN_BYTES = 32

_dummy_hash: str | None = None


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def burn_password_check(plain_password: str) -> None:
    """
    Run a bcrypt check against a throwaway hash.

    Used when no account matched so the response time does not reveal
    whether the email exists.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password(secrets.token_hex(16))
    verify_password(plain_password, _dummy_hash)


def fingerprint(secret: str) -> str:
    """SHA-256 hex digest stored in place of a raw refresh or reset token."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def fingerprints_match(stored: str | None, candidate: str) -> bool:
    """Constant-time comparison of a stored fingerprint with a freshly computed one."""
    if not stored:
        return False
    return hmac.compare_digest(stored.encode("utf-8"), candidate.encode("utf-8"))


def generate_reset_token() -> str:
    """High-entropy random value handed to the user once and never stored."""
    return secrets.token_hex(RESET_TOKEN_BYTES)
