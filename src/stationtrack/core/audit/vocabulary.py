"""Audit action and target type vocabularies.

Codes are stored as free text so new actions need no migration, but
every code written by the application comes from one of these
enumerations or passes through the ``custom_*`` validators when an
endpoint or call site is registered.
"""

import re
from enum import StrEnum

from stationtrack.core.constants import (
    MAX_AUDIT_ACTION_LENGTH,
    MAX_AUDIT_TARGET_TYPE_LENGTH,
)


class AuditAction(StrEnum):
    """What happened."""

    # Auth
    USER_REGISTERED = "USER_REGISTERED"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"

    # User management
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DELETED = "USER_DELETED"
    USER_PASSWORD_RESET = "USER_PASSWORD_RESET"

    # Role management
    ROLE_CREATED = "ROLE_CREATED"
    ROLE_UPDATED = "ROLE_UPDATED"
    ROLE_DELETED = "ROLE_DELETED"

    # Station management
    STATION_CREATED = "STATION_CREATED"
    STATION_UPDATED = "STATION_UPDATED"
    STATION_DELETED = "STATION_DELETED"

    # Profile management
    PROFILE_CREATED = "PROFILE_CREATED"
    PROFILE_UPDATED = "PROFILE_UPDATED"
    PROFILE_DELETED = "PROFILE_DELETED"

    # Backup management
    BACKUP_CREATED = "BACKUP_CREATED"
    BACKUP_UPDATED = "BACKUP_UPDATED"
    BACKUP_DELETED = "BACKUP_DELETED"
    BACKUP_STATUS_BULK_UPDATE = "BACKUP_STATUS_BULK_UPDATE"

    # Backup reminders
    REMINDER_CREATED = "REMINDER_CREATED"
    REMINDER_UPDATED = "REMINDER_UPDATED"
    REMINDER_DELETED = "REMINDER_DELETED"
    REMINDER_RESOLVED = "REMINDER_RESOLVED"


class TargetType(StrEnum):
    """Kind of resource affected."""

    USER = "User"
    ROLE = "Role"
    STATION = "Station"
    PROFILE = "Profile"
    BACKUP = "Backup"
    BACKUP_REMINDER = "BackupReminder"


_ACTION_PATTERN = re.compile(r"^[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*$")
_TARGET_TYPE_PATTERN = re.compile(r"^[A-Z][A-Za-z0-9]*$")


def custom_action(code: str) -> str:
    """Validate an action code outside the built-in vocabulary.

    Args:
        code: Upper snake case code, e.g. ``FIRMWARE_FLASHED``

    Returns:
        The validated code

    Raises:
        ValueError: If the code is malformed or too long
    """
    if len(code) > MAX_AUDIT_ACTION_LENGTH or not _ACTION_PATTERN.match(code):
        raise ValueError(
            f"Invalid audit action {code!r}: expected UPPER_SNAKE_CASE "
            f"of at most {MAX_AUDIT_ACTION_LENGTH} characters"
        )
    return code


def custom_target_type(code: str) -> str:
    """Validate a target type outside the built-in vocabulary.

    Args:
        code: PascalCase resource name, e.g. ``Firmware``

    Returns:
        The validated code

    Raises:
        ValueError: If the code is malformed or too long
    """
    if len(code) > MAX_AUDIT_TARGET_TYPE_LENGTH or not _TARGET_TYPE_PATTERN.match(code):
        raise ValueError(
            f"Invalid audit target type {code!r}: expected PascalCase "
            f"of at most {MAX_AUDIT_TARGET_TYPE_LENGTH} characters"
        )
    return code


def normalize_action(action: AuditAction | str) -> str:
    """Return the stored form of an action, validating custom codes."""
    if isinstance(action, AuditAction):
        return action.value
    return custom_action(action)


def normalize_target_type(target_type: TargetType | str) -> str:
    """Return the stored form of a target type, validating custom codes."""
    if isinstance(target_type, TargetType):
        return target_type.value
    return custom_target_type(target_type)
