"""
E-mail/password accounts backed by the ``profiles`` table and opaque bearer
tokens stored in ``auth_sessions``.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from legalflow.dates import utc_now_iso
from legalflow.db import DbClient
from legalflow.errors import BackendError
from legalflow.schemas import SessionResponse, User
from legalflow.types import UserRole

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("role", "oab", "cpf", "phone", "avatar_url", "logo_url")


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def profile_to_user(profile: dict) -> User:
    email = profile.get("email") or ""
    role = profile.get("role") or UserRole.LAWYER.value
    return User(
        id=profile["id"],
        email=email,
        name=profile.get("full_name") or email.split("@")[0],
        role=UserRole(role),
        avatar_url=profile.get("avatar_url"),
        logo_url=profile.get("logo_url"),
        oab=profile.get("oab"),
        cpf=profile.get("cpf"),
        phone=profile.get("phone"),
    )


def _open_session(db: DbClient, profile: dict) -> SessionResponse:
    token = secrets.token_urlsafe(32)
    db.insert(
        "auth_sessions",
        {"id": token, "user_id": profile["id"], "created_at": utc_now_iso()},
    )
    return SessionResponse(access_token=token, user=profile_to_user(profile))


def sign_up(
    db: DbClient,
    email: str,
    password: str,
    name: Optional[str] = None,
    role: UserRole = UserRole.LAWYER,
    oab: Optional[str] = None,
    cpf: Optional[str] = None,
    phone: Optional[str] = None,
    avatar_url: Optional[str] = None,
    logo_url: Optional[str] = None,
) -> SessionResponse:
    """Create an account and sign it in straight away."""
    email = _normalize_email(email)
    now = utc_now_iso()
    profile = db.insert(
        "profiles",
        {
            "email": email,
            "full_name": name or email.split("@")[0],
            "role": UserRole(role or UserRole.LAWYER).value,
            "oab": oab,
            "cpf": cpf,
            "phone": phone,
            "avatar_url": avatar_url,
            "logo_url": logo_url,
            "password_hash": generate_password_hash(password),
            "created_at": now,
            "updated_at": now,
        },
    )
    logger.info("Created profile %s", profile["id"])
    return _open_session(db, profile)


def sign_in(db: DbClient, email: str, password: str) -> SessionResponse:
    matches = db.select("profiles", equals={"email": _normalize_email(email)}, limit=1)
    profile = matches[0] if matches else None
    if (
        profile is None
        or not profile.get("password_hash")
        or not check_password_hash(profile["password_hash"], password)
    ):
        raise BackendError("Invalid login credentials", code="invalid_credentials")
    return _open_session(db, profile)


def sign_out(db: DbClient, token: str) -> None:
    db.delete("auth_sessions", token)


def get_user_for_token(db: DbClient, token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    session = db.get("auth_sessions", token)
    if session is None:
        return None
    profile = db.get("profiles", session["user_id"])
    return profile_to_user(profile) if profile else None


def update_profile(db: DbClient, user_id: str, values: dict) -> User:
    """
    Update the editable profile fields. ``name`` maps onto ``full_name``;
    keys left as None are not touched.
    """
    changes = {key: values[key] for key in PROFILE_FIELDS if values.get(key) is not None}
    if values.get("name") is not None:
        changes["full_name"] = values["name"]
    if isinstance(changes.get("role"), UserRole):
        changes["role"] = changes["role"].value
    changes["updated_at"] = utc_now_iso()
    profile = db.update("profiles", user_id, changes)
    if profile is None:
        raise BackendError(f"profile {user_id} not found", code="PGRST116")
    return profile_to_user(profile)
