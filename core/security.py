import hashlib
import hmac
import secrets

_PBKDF2_ITERATIONS = 200_000


def generate_token(length: int = 32) -> str:
    """Generate a secure random token."""
    return secrets.token_urlsafe(length)


def hash_token(token: str) -> str:
    """Hash an opaque bearer token for storage and lookup."""
    return hashlib.sha256(token.encode()).hexdigest()


def hash_password(password: str, salt: str | None = None) -> str:
    """
    Hash a password with PBKDF2-SHA256.

    Returns:
        ``"<salt>$<hex digest>"``
    """
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _PBKDF2_ITERATIONS).hex()
    return f"{salt}${digest}"


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against its hash."""
    salt, sep, _ = hashed.partition("$")
    if not sep:
        return False
    return hmac.compare_digest(hash_password(password, salt), hashed)
