"""Notification domain exports."""

from .models import NOTIFICATION_TYPES, Notification  # noqa: F401
