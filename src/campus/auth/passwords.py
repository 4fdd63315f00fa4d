import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from campus.auth.constants import VERIFICATION_TOKEN_BYTES

_password_hasher = PasswordHasher()

# Verified against when the email is unknown so both login paths cost the same
_DUMMY_HASH = _password_hasher.hash("campus-dummy-password")


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Constant-time check of a password against a stored Argon2 hash.

    A missing hash still runs a full verification so callers cannot be
    timed into revealing whether an account exists.
    """
    try:
        return _password_hasher.verify(password_hash or _DUMMY_HASH, password) and bool(
            password_hash
        )
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def generate_single_use_token() -> str:
    return secrets.token_hex(VERIFICATION_TOKEN_BYTES)
