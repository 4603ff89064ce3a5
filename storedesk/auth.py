"""
Authentication Module for StoreDesk
===================================

This module handles authentication for the store-owner dashboard API. Every
dashboard route resolves two things before touching data: the authenticated
user and the store that user owns. Public widget routes (`/chat*` and
`POST /orders`) are not authenticated; they are rate limited instead.

Authentication Methods:
-----------------------
1. **HTTP Basic Auth (Owners)**: The username is the owner's email, the
   password is checked against a PBKDF2-SHA256 hash stored on the `users`
   row. Uses constant-time comparison to prevent timing attacks.

Security Features:
------------------
- **Salted Hashes**: Passwords are stored as
  `pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>`; the plain password is
  never persisted.

- **Timing Attack Prevention**: `secrets.compare_digest()` compares the
  derived key with the stored one in constant time.

- **Generic Errors**: Unknown email and wrong password both return the same
  401 "Invalid credentials" so the response does not reveal which one failed.

Store Resolution:
-----------------
`get_current_store` maps the authenticated user to the store they own. A
user without a store gets 403 "Store not found"; all queries downstream are
scoped to `store.id`, which is what keeps tenants apart.

Usage:
------
    from storedesk.auth import get_current_store

    @router.get("/deals")
    def list_deals(
        store: Store = Depends(get_current_store),
        db: Session = Depends(get_db),
    ):
        return db.query(Deal).filter(Deal.store_id == store.id).all()

The dependency will:
- Return 401 with WWW-Authenticate header if credentials are missing or invalid
- Return 403 if the user owns no store
- Return the Store row if authentication succeeds
"""

import hashlib
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session

from .db import get_db
from .models import Store, User


# =============================================================================
# HTTP Basic Auth Setup
# =============================================================================
# auto_error=False so a missing header produces our own 401 payload.

security = HTTPBasic(realm="StoreDesk", auto_error=False)

HASH_ALGORITHM = "pbkdf2_sha256"
HASH_ITERATIONS = 120_000


# =============================================================================
# Password Hashing
# =============================================================================

def hash_password(password: str, salt: str = None, iterations: int = HASH_ITERATIONS) -> str:
    """Derive a storable PBKDF2 hash for a password."""
    if salt is None:
        salt = secrets.token_hex(16)
    derived = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt),
        iterations,
    )
    return f"{HASH_ALGORITHM}${iterations}${salt}${derived.hex()}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a password against a hash produced by hash_password()."""
    try:
        algorithm, iterations, salt, expected = stored_hash.split("$")
    except (AttributeError, ValueError):
        return False
    if algorithm != HASH_ALGORITHM:
        return False

    candidate = hash_password(password, salt=salt, iterations=int(iterations))
    return secrets.compare_digest(
        candidate.split("$")[-1].encode("utf-8"),
        expected.encode("utf-8"),
    )


# =============================================================================
# Owner Authentication Dependencies
# =============================================================================

def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Basic"},
    )


def get_current_user(
    credentials: HTTPBasicCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the authenticated user from HTTP Basic credentials.

    Raises:
        HTTPException (401): Missing header, unknown email or wrong password.
    """
    if credentials is None:
        raise _unauthorized()

    user = db.query(User).filter(User.email == credentials.username).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        raise _unauthorized()
    return user


def get_current_store(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Store:
    """
    Resolve the store owned by the authenticated user.

    Raises:
        HTTPException (403): The user owns no store.
    """
    store = (
        db.query(Store)
        .filter(Store.owner_id == user.id)
        .order_by(Store.created_at)
        .first()
    )
    if not store:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Store not found")
    return store
