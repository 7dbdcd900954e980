import bcrypt

from lireddit.config import settings

# bcrypt only ever looks at the first 72 bytes of a secret.
_BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_secret(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hashed value; a malformed hash never verifies."""
    try:
        return bcrypt.checkpw(_secret(password), hashed.encode("utf-8"))
    except ValueError:
        return False
