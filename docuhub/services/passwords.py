"""
Secret hashing.

The portal this grew out of kept passwords in cleartext. We store a salted
werkzeug hash instead; the login flow only ever compares against the hash.
"""

from werkzeug.security import check_password_hash, generate_password_hash


def hash_secret(secret: str) -> str:
    """Salted hash of a secret, safe to persist."""
    return generate_password_hash(secret)


def verify_secret(secret_hash: str, secret: str) -> bool:
    """Check a cleartext secret against a stored hash."""
    if not secret_hash or secret is None:
        return False
    return check_password_hash(secret_hash, secret)
