"""Password hashing.

Stored values are SHA-256 hex digests. Accounts created before hashing
was introduced may still hold plaintext; verify_password accepts those so
they can log in and be re-hashed.
"""

import hashlib
import hmac
import re

_HEX_DIGEST = re.compile(r"^[0-9a-fA-F]{64}$")


def hash_password(raw: str) -> str:
    """SHA-256 hex digest of a password."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def is_hashed(stored: str) -> bool:
    return bool(_HEX_DIGEST.match(stored))


def verify_password(raw: str, stored: str) -> bool:
    """Constant-time check of a password against its stored value."""
    if is_hashed(stored):
        return hmac.compare_digest(hash_password(raw), stored.lower())
    return hmac.compare_digest(raw.encode("utf-8"), stored.encode("utf-8"))
