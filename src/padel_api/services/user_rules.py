# src/padel_api/services/user_rules.py
"""
Pure rules shared by the user handlers: parameter validation, duplicate
messages, ownership checks and the per-role field visibility.
"""

import re
from typing import Dict, FrozenSet, List, Optional

from padel_api.models.user import EMAIL_PATTERN
from padel_api.schemas.user import UserInDB

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 16
PHONE_LENGTH = 9

ADMIN_ROLE = "admin"
ROLES = ("admin", "user")

_email_re = re.compile(EMAIL_PATTERN)

PUBLIC_FIELDS: FrozenSet[str] = frozenset({"_id", "name", "phone", "image", "padel_matches"})
PRIVILEGED_FIELDS: FrozenSet[str] = PUBLIC_FIELDS | {"email", "role", "created_at", "updated_at"}

FIELD_VISIBILITY: Dict[str, FrozenSet[str]] = {
    "user": PUBLIC_FIELDS,
    "admin": PRIVILEGED_FIELDS,
}


def visible_fields(role: str) -> FrozenSet[str]:
    """Fields a caller with `role` may see on other users' records."""
    return FIELD_VISIBILITY.get(role, PUBLIC_FIELDS)


def project(record: dict, fields: FrozenSet[str]) -> dict:
    return {key: value for key, value in record.items() if key in fields}


def is_valid_phone(phone: Optional[str]) -> bool:
    return phone is not None and len(phone) == PHONE_LENGTH and phone.isascii() and phone.isdigit()


def password_error(password: str) -> Optional[str]:
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        return f"The password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters long."
    return None


def email_error(email: str) -> Optional[str]:
    if not _email_re.match(email):
        return "The email address is not valid."
    return None


def phone_error(phone: str) -> Optional[str]:
    if not is_valid_phone(phone):
        return f"The phone number must have {PHONE_LENGTH} digits."
    return None


def registration_error(
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    phone: Optional[str],
    role: Optional[str] = None,
) -> Optional[str]:
    """Returns the first problem found in the registration parameters, or None."""
    if not name or not name.strip():
        return "The name is required."
    if not email or not email.strip():
        return "The email is required."
    if not password:
        return "The password is required."
    if not phone:
        return "The phone number is required."
    if role is not None and role not in ROLES:
        return f"The role must be one of: {', '.join(ROLES)}."
    return email_error(email.strip()) or password_error(password) or phone_error(phone.strip())


def update_error(
    email: Optional[str],
    password: Optional[str],
    phone: Optional[str],
) -> Optional[str]:
    """Validates only the fields supplied to an update."""
    if email is not None:
        message = email_error(email.strip())
        if message:
            return message
    if password is not None:
        message = password_error(password)
        if message:
            return message
    if phone is not None:
        return phone_error(phone.strip())
    return None


def duplicated_fields(
    existing: UserInDB,
    name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[int] = None,
) -> List[str]:
    fields = []
    if name is not None and existing.name == name:
        fields.append("name")
    if email is not None and existing.email == email:
        fields.append("email")
    if phone is not None and existing.phone == phone:
        fields.append("phone")
    return fields


def duplicate_message(fields: List[str]) -> str:
    if not fields:
        return "A user with this data already exists."
    if len(fields) == 1:
        joined = fields[0]
    else:
        joined = ", ".join(fields[:-1]) + " and " + fields[-1]
    return f"A user with this {joined} already exists."


def ownership_error(target_id: str, caller: UserInDB) -> Optional[str]:
    """Callers may act on their own record; admins on any record."""
    if caller.role == ADMIN_ROLE or str(caller.id) == target_id:
        return None
    return "You are not allowed to modify another user's account."
