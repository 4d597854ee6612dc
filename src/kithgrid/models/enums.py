"""Shared enums for models."""

from enum import Enum


class Role(str, Enum):
    """Role a membership can hold within a community.

    Values are the labels persisted in the legacy single-role column, so they
    keep their historical capitalisation.
    """

    RESIDENT = "Resident"
    BOARD_MEMBER = "Board Member"
    EVENT_MANAGER = "Event Manager"
    ADMIN = "Admin"


class InvitationStatus(str, Enum):
    """Stored invitation status.

    ``EXPIRED`` is only ever written by the reaper; a pending code past its
    expiry is reported as expired at read time without being rewritten.
    """

    PENDING = "pending"
    USED = "used"
    EXPIRED = "expired"
