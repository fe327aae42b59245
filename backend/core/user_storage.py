"""
Login with auto-registration: an unknown email creates the account on first login.
Passwords are stored as salted PBKDF2-SHA256 digests in the "users" scope.
"""
import hashlib
import hmac
import logging
import secrets
import uuid
from typing import Dict, Optional

from core.errors import AuthenticationError
from core.record_store import RecordStore

logger = logging.getLogger(__name__)

USERS_SCOPE = "users"
PBKDF2_ITERATIONS = 100_000


def _hash_password(password: str, salt: str) -> str:
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), PBKDF2_ITERATIONS)
    return dk.hex()


def login_or_register(store: RecordStore, email: Optional[str], password: Optional[str]) -> Dict[str, str]:
    """
    Return {"user_id", "email"}; raise AuthenticationError on blank credentials or wrong password.
    Registration is a single find_or_append, so concurrent first logins for one email
    end up with one account and the later caller is checked against it.
    """
    email = (email or "").strip().lower()
    if not email or not password:
        raise AuthenticationError("Invalid credentials")

    salt = secrets.token_hex(16)
    candidate = {
        "id": str(uuid.uuid4()),
        "username": email,
        "salt": salt,
        "password_hash": _hash_password(password, salt),
    }
    user, created = store.find_or_append(USERS_SCOPE, candidate, key="username")
    if created:
        logger.info("LOGIN registered user_id=%s", user["id"])
    elif not hmac.compare_digest(user.get("password_hash", ""), _hash_password(password, user.get("salt", ""))):
        logger.info("LOGIN rejected user_id=%s", user.get("id"))
        raise AuthenticationError("Invalid credentials")

    return {"user_id": user["id"], "email": email}
