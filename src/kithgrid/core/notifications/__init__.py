"""Notification utilities - email."""

from src.kithgrid.core.notifications.email import send_invitation_email

__all__ = [
    "send_invitation_email",
]
